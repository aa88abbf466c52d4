"""
Core services shared by every omnideploy component: errors, configuration,
polling and prompting.
"""
