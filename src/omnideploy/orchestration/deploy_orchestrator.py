#!/usr/bin/env python3
"""
Deploy Orchestrator - coordinates the one-shot deployment workflow.

Phases, each feeding the next:
1. Spec: load and classify the spec, settle the deployment target
2. Accounts: resolve linked cloud accounts (onboard one if needed)
3. Hierarchy: find-or-create service, environment, API, model and tier
4. Build: submit the spec and release a new version
5. Instance: upgrade the existing instance or create a new one

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from rich.console import Console

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.config import DeployConfig
from omnideploy.core.errors import ConfigurationError, create_error_context
from omnideploy.core.prompter import Prompter
from omnideploy.models import (
    BuildResult,
    CloudAccount,
    CloudAccountDescriptor,
    CloudProvider,
    DeploymentModel,
    DeploymentTarget,
    InstanceAction,
    ServiceHierarchy,
)
from omnideploy.orchestration.account_resolver import AccountResolution, AccountResolver
from omnideploy.orchestration.build_dispatcher import BuildDispatcher
from omnideploy.orchestration.hierarchy_resolver import HierarchyResolver
from omnideploy.orchestration.instance_manager import InstanceManager, InstanceOutcome
from omnideploy.spec.classifier import SpecDocument, SpecKind, load_spec, resolve_deployment_model
from omnideploy.spec.deployment_block import inject_deployment_block

logger = logging.getLogger(__name__)


@dataclass
class DeploymentSummary:
    """What one deploy run resolved and changed."""

    service_name: str
    spec_kind: str
    target: str
    deployment_model: str
    plan_name: str = ""
    account_config_ids: List[str] = field(default_factory=list)
    hierarchy: ServiceHierarchy = field(default_factory=ServiceHierarchy)
    build: Optional[BuildResult] = None
    instance_action: InstanceAction = InstanceAction.NONE
    instance_id: Optional[str] = None
    version: str = ""
    dry_run: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["instance_action"] = self.instance_action.value
        return data


def reconcile_target(
    spec_target: DeploymentTarget, cli_target: Optional[DeploymentTarget]
) -> Tuple[DeploymentTarget, Optional[str]]:
    """
    Command-line deployment type wins over the spec; a mismatch is a warning.

    Returns:
        (effective target, warning message or None)
    """
    if cli_target is None:
        return spec_target, None
    if spec_target not in (DeploymentTarget.UNKNOWN, cli_target):
        return cli_target, (
            f"Deployment type '{cli_target.value}' from the command line overrides "
            f"'{spec_target.value}' declared in the spec"
        )
    return cli_target, None


def descriptor_from_accounts(
    base: CloudAccountDescriptor, accounts: List[CloudAccount]
) -> CloudAccountDescriptor:
    """Fill unset descriptor fields from resolved accounts."""
    merged = replace(base)
    for account in accounts:
        merged.aws_account_id = merged.aws_account_id or (account.aws_account_id or "")
        merged.aws_bootstrap_role_arn = merged.aws_bootstrap_role_arn or (
            account.aws_bootstrap_role_arn or ""
        )
        merged.gcp_project_id = merged.gcp_project_id or (account.gcp_project_id or "")
        merged.gcp_project_number = merged.gcp_project_number or (account.gcp_project_number or "")
        merged.azure_subscription_id = merged.azure_subscription_id or (
            account.azure_subscription_id or ""
        )
        merged.azure_tenant_id = merged.azure_tenant_id or (account.azure_tenant_id or "")
        merged.oci_tenancy_id = merged.oci_tenancy_id or (account.oci_tenancy_id or "")
    providers = merged.providers()
    if merged.provider is None and len(providers) == 1:
        merged.provider = providers[0]
    return merged


class DeployOrchestrator:
    """
    Runs the deploy workflow end to end.

    Every error propagates unchanged; entities created before a failure
    are left in place and reused by the next run.
    """

    def __init__(
        self,
        config: DeployConfig,
        client: ControlPlaneClient,
        prompter: Prompter,
        console: Optional[Console] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.client = client
        self.prompter = prompter
        self.console = console or Console()

        self.account_resolver = AccountResolver(client, prompter, config, sleep=sleep, clock=clock)
        self.hierarchy_resolver = HierarchyResolver(client)
        self.build_dispatcher = BuildDispatcher(client)
        self.instance_manager = InstanceManager(client, prompter, config, sleep=sleep, clock=clock)

    def _phase(self, title: str) -> None:
        self.console.print(f"\n[dim]{'=' * 60}[/dim]")
        self.console.print(f"[bold blue]{title}[/bold blue]")
        self.console.print(f"[dim]{'=' * 60}[/dim]\n")

    def execute(self, document: Optional[SpecDocument] = None) -> DeploymentSummary:
        """
        Execute the deploy workflow.

        Args:
            document: Pre-loaded spec; loaded from config.spec_path otherwise

        Returns:
            DeploymentSummary of the run
        """
        if not self.config.service_name:
            raise ConfigurationError(
                "No service name resolved for this deployment",
                context=create_error_context(operation="deploy", component="DeployOrchestrator"),
                suggestions=["Pass --service-name"],
            )
        service_name = self.config.service_name

        self._phase("📄 SPEC PHASE")
        if document is None:
            if not self.config.spec_path:
                raise ConfigurationError(
                    "No spec file given",
                    context=create_error_context(operation="deploy", component="DeployOrchestrator"),
                    suggestions=["Pass the spec path as the first argument"],
                )
            document = load_spec(self.config.spec_path)

        warnings: List[str] = []
        target, warning = reconcile_target(document.target, self.config.target_override)
        if warning:
            logger.warning(warning)
            warnings.append(warning)
        model = self._deployment_model(document, target)
        plan_name = document.plan_name or service_name
        logger.info(
            f"Spec kind {document.kind.value}, target {target.value}, model {model.value}, "
            f"plan '{plan_name}'"
        )

        summary = DeploymentSummary(
            service_name=service_name,
            spec_kind=document.kind.value,
            target=target.value,
            deployment_model=model.value,
            plan_name=plan_name,
            dry_run=self.config.dry_run,
            warnings=warnings,
        )

        self._phase("🔐 ACCOUNT PHASE")
        resolution = self._resolve_accounts(document, model)
        summary.account_config_ids = resolution.account_config_ids
        if resolution.pending:
            warnings.append(
                "Newly linked account is not READY yet; deployments into it may fail "
                "until verification completes"
            )

        document = self._inject_deployment_block(document, target, resolution)

        self._phase("🏗️  HIERARCHY PHASE")
        hierarchy = self.hierarchy_resolver.resolve(
            service_name=service_name,
            plan_name=plan_name,
            account_config_ids=resolution.account_config_ids,
            deployment_model=model,
            tenancy_type=document.tenancy_type,
            description=self.config.release_description,
            environment_name=self.config.environment_name,
            environment_type=self.config.environment_type,
        )
        summary.hierarchy = hierarchy

        self._phase("🔨 BUILD PHASE")
        build = self.build_dispatcher.dispatch(document, service_name, self.config, hierarchy)
        summary.build = build
        for resource, reason in build.undefined_resources.items():
            warnings.append(f"Resource '{resource}' is not defined: {reason}")

        deployed = ServiceHierarchy(
            service_id=build.service_id,
            environment_id=build.environment_id,
            service_api_id=hierarchy.service_api_id,
            service_model_id=hierarchy.service_model_id,
            product_tier_id=build.product_tier_id,
            is_new_service=hierarchy.is_new_service,
            is_new_tier=hierarchy.is_new_tier,
        )

        self._phase("🚀 INSTANCE PHASE")
        outcome = self.instance_manager.run(deployed, model)
        self._record_outcome(summary, outcome)

        if (
            self.config.wait
            and outcome.instance_id
            and outcome.action in (InstanceAction.CREATED, InstanceAction.UPGRADED)
        ):
            self.instance_manager.wait_for_instance_ready(deployed, outcome.instance_id)

        return summary

    def _deployment_model(self, document: SpecDocument, target: DeploymentTarget) -> DeploymentModel:
        if target == document.target:
            return document.model
        return resolve_deployment_model(target, None, document.descriptor, document.kind)

    def _resolve_accounts(self, document: SpecDocument, model: DeploymentModel) -> AccountResolution:
        descriptor = document.descriptor
        if not descriptor.has_identity() and not model.requires_account_configs:
            logger.info("Hosted deployment, no cloud account needed")
            return AccountResolution()

        providers = None
        if self.config.cloud_provider:
            providers = [CloudProvider.parse(self.config.cloud_provider)]
        return self.account_resolver.resolve(descriptor, providers)

    def _inject_deployment_block(
        self,
        document: SpecDocument,
        target: DeploymentTarget,
        resolution: AccountResolution,
    ) -> SpecDocument:
        """Add a deployment block to plan specs that lack one."""
        if document.kind != SpecKind.PLAN or document.has_deployment_block:
            return document
        descriptor = descriptor_from_accounts(document.descriptor, resolution.accounts)
        if not descriptor.has_identity():
            return document

        org_id = None
        if descriptor.gcp_project_id and not descriptor.gcp_service_account_email:
            org_id = self.client.get_org_id()
        if target == DeploymentTarget.UNKNOWN:
            target = DeploymentTarget.BYOA
        return inject_deployment_block(document, target, descriptor, org_id)

    @staticmethod
    def _record_outcome(summary: DeploymentSummary, outcome: InstanceOutcome) -> None:
        summary.instance_action = outcome.action
        summary.instance_id = outcome.instance_id
        summary.version = outcome.version
        summary.warnings.extend(outcome.warnings)
