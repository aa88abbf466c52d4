#!/usr/bin/env python3
"""
Instance Lifecycle Manager - create or upgrade the workload instance.

State machine:
    SEARCH  -> instances of (service, environment, plan) exist -> UPGRADE
    SEARCH  -> nothing found and no instance requested         -> CREATE
    CREATE  -> resource, cloud/region, parameters, BYOA account
               instance, then submit

BYOA plans need a cloud account instance (an instance of the injected
account-config resource) before a workload can be created. When the
caller does not pass one, the manager offers an existing READY one or
onboards a new one and waits for it to verify.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.config import DeployConfig
from omnideploy.core.errors import (
    InstanceNotFoundError,
    MissingAccountConfigError,
    MissingParameterError,
    ResourceAmbiguityError,
    ResourceNotFoundError,
    RuntimeError as DeployRuntimeError,
    ValidationError,
    VerificationTimeoutError,
    create_error_context,
)
from omnideploy.core.polling import PollPolicy, PollTimeoutError
from omnideploy.core.prompter import Prompter, PromptUnavailableError
from omnideploy.models import (
    INJECTED_ACCOUNT_RESOURCE_PREFIX,
    CloudProvider,
    DeploymentModel,
    Instance,
    InstanceAction,
    InstanceCreateRequest,
    InstanceStatus,
    Offering,
    ResourceInfo,
    ServiceHierarchy,
    WorkloadParameter,
)
from omnideploy.orchestration.onboarding import (
    SetupInstructions,
    build_account_request,
    collect_credentials,
)

logger = logging.getLogger(__name__)

# Request parameter that links a BYOA workload to its cloud account instance
ACCOUNT_CONFIG_PARAM = "cloud_provider_account_config_id"

BYOA_MODEL_TYPE = "BYOA"
CREATE_NEW_ACCOUNT = "Create a new cloud account"


@dataclass
class InstanceOutcome:
    """Result of the instance step."""

    action: InstanceAction
    instance_ids: List[str] = field(default_factory=list)
    version: str = ""
    resource: Optional[ResourceInfo] = None
    cloud_provider: str = ""
    region: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    account_instance_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def instance_id(self) -> Optional[str]:
        return self.instance_ids[0] if self.instance_ids else None


def resolve_parameters(
    schema: Sequence[WorkloadParameter], supplied: Dict[str, Any]
) -> Tuple[Dict[str, Any], List[str], List[str]]:
    """
    Merge caller values with schema defaults.

    Returns:
        (resolved, missing required keys, ignored caller keys)
    """
    resolved: Dict[str, Any] = {}
    missing: List[str] = []
    declared = set()

    for param in schema:
        declared.add(param.key)
        if param.key in supplied:
            resolved[param.key] = supplied[param.key]
        elif param.default is not None:
            resolved[param.key] = param.default
        elif param.required:
            missing.append(param.key)

    ignored = [key for key in supplied if key not in declared]
    return resolved, missing, ignored


class InstanceManager:
    """
    Decides between creating and upgrading the workload instance.

    Args:
        client: Control-plane client
        prompter: Used for resource and account-instance selection
        config: Deploy configuration (instance/resource ids, cloud, region,
            parameters, dry run, poll settings)
        sleep: Injectable sleep for poll loops
        clock: Injectable monotonic clock for poll loops
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        prompter: Prompter,
        config: DeployConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.prompter = prompter
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self.instructions = SetupInstructions()

    def run(
        self,
        hierarchy: ServiceHierarchy,
        deployment_model: Optional[DeploymentModel] = None,
    ) -> InstanceOutcome:
        """
        Search, then upgrade what was found or create a new instance.

        Args:
            hierarchy: Resolved service hierarchy ids
            deployment_model: Model the service was deployed with. When
                omitted the offering's model type decides whether a cloud
                account instance is needed.
        """
        instances = self.search(hierarchy)
        if instances:
            return self.upgrade(hierarchy, instances)
        return self.create(hierarchy, deployment_model)

    # SEARCH

    def search(self, hierarchy: ServiceHierarchy) -> List[Instance]:
        """
        List workload instances of the plan, filtered by the requested id.

        Raises:
            InstanceNotFoundError: An instance id was requested but is not
                among the plan's workload instances
        """
        instances = [
            i
            for i in self.client.list_instances(
                hierarchy.service_id, hierarchy.environment_id, hierarchy.product_tier_id
            )
            if not i.is_account_instance
        ]

        requested = self.config.instance_id
        if requested:
            instances = [i for i in instances if i.id == requested]
            if not instances:
                raise InstanceNotFoundError(
                    f"No matching instance '{requested}' found for this plan",
                    context=create_error_context(
                        operation="search_instances",
                        resource_id=requested,
                        component="InstanceManager",
                    ),
                )

        logger.debug(f"Found {len(instances)} existing instance(s)")
        return instances

    # UPGRADE

    def upgrade(self, hierarchy: ServiceHierarchy, instances: List[Instance]) -> InstanceOutcome:
        version = self.client.find_latest_version(hierarchy.service_id, hierarchy.product_tier_id)
        outcome = InstanceOutcome(
            action=InstanceAction.UPGRADED,
            instance_ids=[i.id for i in instances],
            version=version,
        )

        if self.config.dry_run:
            for instance in instances:
                logger.info(f"Dry run: would upgrade instance {instance.id} to version {version}")
            outcome.action = InstanceAction.DRY_RUN
            return outcome

        for instance in instances:
            logger.info(f"Upgrading instance {instance.id} to version {version}")
            self.client.patch_instance(
                hierarchy.service_id,
                hierarchy.environment_id,
                instance.id,
                {},
                version,
            )
        return outcome

    # CREATE

    def create(
        self,
        hierarchy: ServiceHierarchy,
        deployment_model: Optional[DeploymentModel] = None,
    ) -> InstanceOutcome:
        """
        Create a workload instance.

        Parameters are checked before any cloud account instance is
        onboarded, so a run missing required values creates nothing.

        Raises:
            ResourceNotFoundError: Unknown resource id, or missing injected
                account resource on a BYOA plan
            MissingAccountConfigError: BYOA deployment whose offering
                reports another model, or no account instance available
                without prompting
            ResourceAmbiguityError: Several resources and no selection
            MissingParameterError: Required parameters without a value
            VerificationTimeoutError: Account instance did not verify in time
        """
        version = self.client.find_latest_version(hierarchy.service_id, hierarchy.product_tier_id)
        offering = self.client.describe_offering(hierarchy.service_id, hierarchy.product_tier_id)
        resources = self.client.list_resources(hierarchy.service_id, hierarchy.product_tier_id)

        resource = self.select_resource(resources)
        cloud_provider, region = self.select_cloud_region(offering)
        logger.info(f"Creating {resource.name or resource.id} on {cloud_provider}/{region}")

        if deployment_model is None:
            byoa = offering.service_model_type == BYOA_MODEL_TYPE
        else:
            byoa = deployment_model is DeploymentModel.BYOA

        supplied = dict(self.config.parameters)
        injected = None
        account_instance_id = None
        if byoa:
            injected = self.find_injected_account_resource(offering, resources)
            account_instance_id = supplied.pop(ACCOUNT_CONFIG_PARAM, None)

        schema = self.client.describe_resource_parameters(
            hierarchy.service_id, resource.id, hierarchy.product_tier_id, version
        )
        parameters, missing, ignored = resolve_parameters(schema, supplied)

        warnings = []
        for key in ignored:
            message = (
                f"Parameter '{key}' is not declared by resource "
                f"{resource.name or resource.id} and will be ignored"
            )
            logger.warning(message)
            warnings.append(message)

        if missing:
            raise MissingParameterError(
                f"Missing required parameters: {', '.join(missing)}",
                missing_keys=missing,
                context=create_error_context(
                    operation="resolve_parameters",
                    resource_id=resource.id,
                    component="InstanceManager",
                ),
            )

        if injected is not None and not account_instance_id:
            account_instance_id = self.ensure_account_instance(
                hierarchy, injected, version, cloud_provider, region
            )
        if account_instance_id:
            parameters[ACCOUNT_CONFIG_PARAM] = account_instance_id

        outcome = InstanceOutcome(
            action=InstanceAction.CREATED,
            version=version,
            resource=resource,
            cloud_provider=cloud_provider,
            region=region,
            parameters=parameters,
            account_instance_id=account_instance_id,
            warnings=warnings,
        )

        if self.config.dry_run:
            logger.info(
                f"Dry run: would create {resource.key or resource.id} instance "
                f"(version {version}) on {cloud_provider}/{region}"
            )
            outcome.action = InstanceAction.DRY_RUN
            return outcome

        request = InstanceCreateRequest(
            resource_key=resource.key,
            product_tier_version=version,
            cloud_provider=cloud_provider,
            region=region,
            request_params=parameters,
        )
        instance_id = self.client.create_instance(
            hierarchy.service_id,
            hierarchy.environment_id,
            hierarchy.product_tier_id,
            resource.id,
            request,
        )
        logger.info(f"Created instance {instance_id}")
        outcome.instance_ids = [instance_id]
        return outcome

    def select_resource(self, resources: Sequence[ResourceInfo]) -> ResourceInfo:
        """Pick the workload resource; never guesses between several."""
        candidates = [r for r in resources if not r.is_internal]
        context = create_error_context(operation="select_resource", component="InstanceManager")

        requested = self.config.resource_id
        if requested:
            for resource in candidates:
                if requested in (resource.id, resource.key, resource.name):
                    return resource
            raise ResourceNotFoundError(
                f"Resource '{requested}' is not part of this plan "
                f"(available: {', '.join(r.id for r in candidates) or 'none'})",
                context=context,
            )

        if not candidates:
            raise ResourceNotFoundError("The plan has no deployable resources", context=context)
        if len(candidates) == 1:
            return candidates[0]

        labels = [f"{r.name} ({r.id})" for r in candidates]
        try:
            index = self.prompter.choose("resource", "Select the resource to deploy", labels)
        except PromptUnavailableError as e:
            raise ResourceAmbiguityError(
                f"The plan has {len(candidates)} resources; select one with --resource-id",
                candidates=[r.id for r in candidates],
                context=context,
            ) from e
        return candidates[index]

    def select_cloud_region(self, offering: Offering) -> Tuple[str, str]:
        """Resolve (cloud provider, region) from config, the offering and fallbacks."""
        context = create_error_context(operation="select_cloud_region", component="InstanceManager")
        supported = [p.lower() for p in offering.cloud_providers] or list(offering.regions)
        provider = (self.config.cloud_provider or "").lower() or None
        region = self.config.region or None

        if provider and supported and provider not in supported:
            raise ValidationError(
                f"Cloud provider '{provider}' is not supported by this plan",
                context=context,
                suggestions=[f"Use one of: {', '.join(supported)}"],
            )

        if not provider and region:
            provider = next((p for p, rs in offering.regions.items() if region in rs), None)
            if provider is None:
                raise ValidationError(
                    f"Region '{region}' is not offered by any cloud provider of this plan",
                    context=context,
                    suggestions=["Pass --cloud-provider together with --region"],
                )

        if not provider:
            if not supported:
                raise ValidationError("The plan does not offer any cloud provider", context=context)
            provider = supported[0]
            regions = offering.regions.get(provider) or []
            region = regions[0] if regions else None

        if not region:
            region = self.config.fallback_regions.get(provider)
            if not region:
                raise ValidationError(
                    f"No region given and no default region known for {provider}",
                    context=context,
                    suggestions=["Pass --region"],
                )
            logger.info(f"No region specified, using default {provider} region {region}")

        return provider, region

    # BYOA account instance

    def find_injected_account_resource(
        self, offering: Offering, resources: Sequence[ResourceInfo]
    ) -> ResourceInfo:
        """
        Locate the synthetic account-config resource of a BYOA plan.

        Raises:
            MissingAccountConfigError: Offering is not a BYOA model
            ResourceNotFoundError: No injected account resource on the plan
        """
        context = create_error_context(operation="find_account_resource", component="InstanceManager")
        if offering.service_model_type != BYOA_MODEL_TYPE:
            raise MissingAccountConfigError(
                f"Plan uses {offering.service_model_type or 'an unknown'} model, cloud account "
                "instances are only available for BYOA plans",
                context=context,
            )

        for resource in list(resources) + list(offering.resources):
            if resource.id.startswith(INJECTED_ACCOUNT_RESOURCE_PREFIX):
                return resource

        raise ResourceNotFoundError(
            "BYOA plan has no injected account configuration resource",
            context=context,
            suggestions=["Rebuild the service so the control plane injects account configuration"],
        )

    def ensure_account_instance(
        self,
        hierarchy: ServiceHierarchy,
        injected: ResourceInfo,
        version: str,
        cloud_provider: str,
        region: str,
    ) -> Optional[str]:
        """Reuse a READY cloud account instance or onboard a new one."""
        existing = [
            i
            for i in self.client.list_instances(
                hierarchy.service_id, hierarchy.environment_id, hierarchy.product_tier_id
            )
            if i.is_account_instance
        ]
        groups: Dict[Tuple[str, str], List[Instance]] = {}
        for instance in existing:
            key = (instance.cloud_provider, instance.raw_status or instance.status.value)
            groups.setdefault(key, []).append(instance)
        for (provider, status), members in sorted(groups.items()):
            logger.info(f"{len(members)} {provider or 'unknown'} cloud account instance(s) in status {status}")

        ready = [i for i in existing if i.status == InstanceStatus.READY]
        if ready:
            labels = [f"{i.id} ({i.cloud_provider})" for i in ready] + [CREATE_NEW_ACCOUNT]
            try:
                index = self.prompter.choose("account_instance", "Select a cloud account", labels)
            except PromptUnavailableError:
                index = 0
            if index < len(ready):
                logger.info(f"Using cloud account instance {ready[index].id}")
                return ready[index].id

        if self.config.dry_run:
            logger.info("Dry run: would create a new cloud account instance")
            return None

        return self.create_account_instance(hierarchy, injected, version, cloud_provider, region)

    def create_account_instance(
        self,
        hierarchy: ServiceHierarchy,
        injected: ResourceInfo,
        version: str,
        cloud_provider: str,
        region: str,
    ) -> str:
        """
        Onboard a cloud account instance and wait for it to verify.

        Raises:
            VerificationTimeoutError: Not READY within the poll budget
            RuntimeError: Verification FAILED
        """
        provider = CloudProvider.parse(cloud_provider)
        try:
            answers = collect_credentials(self.prompter, provider)
        except PromptUnavailableError as e:
            raise MissingAccountConfigError(
                f"No READY cloud account instance exists for this BYOA plan and "
                f"{provider.value.upper()} credentials cannot be prompted for",
                context=create_error_context(
                    operation="create_account_instance",
                    resource_id=injected.id,
                    component="InstanceManager",
                ),
                suggestions=[
                    f"Pass an existing account instance with "
                    f"--param '{{\"{ACCOUNT_CONFIG_PARAM}\": \"<instance-id>\"}}'",
                    "Or re-run without --non-interactive to onboard a cloud account",
                    "Link the account using 'omnideploy account create'",
                ],
            ) from e
        org_id = self.client.get_org_id() if provider == CloudProvider.GCP else None
        account_request = build_account_request(answers, org_id=org_id)

        request = InstanceCreateRequest(
            resource_key=injected.key,
            product_tier_version=version,
            cloud_provider=cloud_provider,
            region=region,
            network_type="INTERNAL",
            request_params=answers,
        )
        instance_id = self.client.create_instance(
            hierarchy.service_id,
            hierarchy.environment_id,
            hierarchy.product_tier_id,
            injected.id,
            request,
        )
        logger.info(f"Created cloud account instance {instance_id}, waiting for verification")

        instructions = self.instructions.render(account_request, account_config_id=instance_id)
        grace = self.config.instructions_grace_attempts
        every = max(1, self.config.instructions_every_attempts)

        def on_attempt(attempt, instance):
            logger.debug(f"Account instance {instance_id} status {instance.raw_status} (check {attempt})")
            if attempt == grace or (attempt > grace and (attempt - grace) % every == 0):
                self.prompter.show(instructions)

        policy = self.config.account_instance_poll.to_policy(sleep=self._sleep, clock=self._clock)
        try:
            instance = policy.run(
                lambda: self.client.describe_instance(
                    hierarchy.service_id, hierarchy.environment_id, instance_id
                ),
                lambda i: i.status in (InstanceStatus.READY, InstanceStatus.FAILED),
                on_attempt=on_attempt,
            )
        except PollTimeoutError as e:
            raise VerificationTimeoutError(
                f"Cloud account instance {instance_id} was not verified after {e.attempts} checks",
                context=create_error_context(
                    operation="verify_account_instance", resource_id=instance_id
                ),
            ) from e

        if instance.status == InstanceStatus.FAILED:
            raise DeployRuntimeError(
                f"Cloud account instance {instance_id} verification FAILED",
                context=create_error_context(
                    operation="verify_account_instance", resource_id=instance_id
                ),
                suggestions=[
                    "Check the account setup steps shown above and retry",
                    "Inspect the instance with 'omnideploy instance list'",
                ],
            )

        logger.info(f"Cloud account instance {instance_id} is READY")
        return instance_id

    # Wait helper

    def wait_for_instance_ready(
        self,
        hierarchy: ServiceHierarchy,
        instance_id: str,
        policy: Optional[PollPolicy] = None,
    ) -> Instance:
        """
        Block until an instance is READY or RUNNING.

        Raises:
            RuntimeError: Instance ended FAILED or CANCELLED
            VerificationTimeoutError: Poll budget ran out
        """
        policy = policy or self.config.instance_ready_poll.to_policy(
            sleep=self._sleep, clock=self._clock
        )
        context = create_error_context(
            operation="wait_for_instance", resource_id=instance_id, component="InstanceManager"
        )

        try:
            instance = policy.run(
                lambda: self.client.describe_instance(
                    hierarchy.service_id, hierarchy.environment_id, instance_id
                ),
                lambda i: i.status.is_terminal,
                on_attempt=lambda attempt, i: logger.info(
                    f"Instance {instance_id} is {i.raw_status or i.status.value}"
                ),
            )
        except PollTimeoutError as e:
            raise VerificationTimeoutError(
                f"Instance {instance_id} did not become ready after {e.attempts} checks",
                context=context,
            ) from e

        if instance.status in (InstanceStatus.FAILED, InstanceStatus.CANCELLED):
            raise DeployRuntimeError(
                f"Instance {instance_id} ended in status {instance.raw_status or instance.status.value}",
                context=context,
                suggestions=["Check the instance events in the Omnistrate console"],
            )

        logger.info(f"Instance {instance_id} is {instance.status.value}")
        return instance
