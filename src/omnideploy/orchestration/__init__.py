"""
Orchestration layer for omnideploy workflows.

Sits between the CLI (presentation) and the control-plane client.

Architecture:
- AccountResolver: Matches or onboards cloud accounts
- HierarchyResolver: Find-or-create of the service definition chain
- BuildDispatcher: Submits spec builds
- InstanceManager: Creates or upgrades workload instances
- DeployOrchestrator: Runs the phases above in order
"""

from .account_resolver import AccountResolution, AccountResolver
from .build_dispatcher import BuildDispatcher
from .deploy_orchestrator import DeployOrchestrator, DeploymentSummary
from .hierarchy_resolver import HierarchyResolver
from .instance_manager import InstanceManager, InstanceOutcome

__all__ = [
    "AccountResolution",
    "AccountResolver",
    "BuildDispatcher",
    "DeployOrchestrator",
    "DeploymentSummary",
    "HierarchyResolver",
    "InstanceManager",
    "InstanceOutcome",
]
