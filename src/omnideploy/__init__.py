#!/usr/bin/env python3
"""
omnideploy - one-shot deployment of service specs to the Omnistrate control plane.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

__version__ = "0.1.0"
