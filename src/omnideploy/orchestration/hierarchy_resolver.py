#!/usr/bin/env python3
"""
Hierarchy Resolver - find-or-create the service definition chain.

Service -> Environment -> ServiceAPI -> ServiceModel -> ProductTier

Every level is looked up before it is created, so repeated runs with the
same names converge on the same identifiers without redundant creations.
A failure at any level aborts the rest; levels already created are left
in place for the next run to reuse.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from typing import List, Optional, Tuple

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.errors import (
    DeployError,
    HierarchyResolutionError,
    MissingAccountConfigError,
    create_error_context,
)
from omnideploy.models import DeploymentModel, ServiceHierarchy

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT_NAME = "Development"
DEFAULT_ENVIRONMENT_TYPE = "DEV"
ENVIRONMENT_VISIBILITY = "PRIVATE"

LEVEL_SERVICE = "service"
LEVEL_ENVIRONMENT = "environment"
LEVEL_PRODUCT_TIER_SEARCH = "product tier lookup"
LEVEL_SERVICE_API = "service API"
LEVEL_SERVICE_MODEL = "service model"
LEVEL_PRODUCT_TIER = "product tier"


class HierarchyResolver:
    """Resolves or creates the (service, environment, API, model, tier) tuple."""

    def __init__(self, client: ControlPlaneClient):
        self.client = client

    def resolve(
        self,
        service_name: str,
        plan_name: str,
        account_config_ids: List[str],
        deployment_model: DeploymentModel,
        tenancy_type: str,
        description: Optional[str] = None,
        environment_name: Optional[str] = None,
        environment_type: Optional[str] = None,
    ) -> ServiceHierarchy:
        """
        Find or create every level of the hierarchy.

        Args:
            service_name: Exact service name
            plan_name: Exact product tier name
            account_config_ids: Linked account configs for non-hosted models
            deployment_model: Decides the service model type
            tenancy_type: Tier type used when creating the product tier
            description: Optional service/tier description
            environment_name: Defaults to "Development"
            environment_type: Defaults to "DEV", always upper-cased

        Raises:
            MissingAccountConfigError: Non-hosted model without account configs
            HierarchyResolutionError: Any lookup or creation failed
        """
        env_name = environment_name or DEFAULT_ENVIRONMENT_NAME
        env_type = (environment_type or DEFAULT_ENVIRONMENT_TYPE).upper()
        model_type = deployment_model.service_model_type
        result = ServiceHierarchy()

        result.service_id, result.is_new_service = self._step(
            LEVEL_SERVICE, service_name, self._find_or_create_service, service_name, description
        )
        result.environment_id = self._step(
            LEVEL_ENVIRONMENT,
            service_name,
            self._find_or_create_environment,
            result.service_id,
            env_name,
            env_type,
        )

        tier_id, api_id, model_id = self._step(
            LEVEL_PRODUCT_TIER_SEARCH,
            service_name,
            self._find_product_tier_by_name,
            result.service_id,
            result.environment_id,
            plan_name,
        )
        if tier_id:
            logger.info(f"Found existing product tier '{plan_name}' ({tier_id})")
            result.product_tier_id = tier_id
            result.service_api_id = api_id
            result.service_model_id = model_id
            result.is_new_tier = False
            return result

        result.service_api_id = self._step(
            LEVEL_SERVICE_API,
            service_name,
            self._find_or_create_service_api,
            result.service_id,
            result.environment_id,
            plan_name,
        )

        if deployment_model.requires_account_configs and not account_config_ids:
            raise MissingAccountConfigError(
                f"{model_type} deployment requires at least one linked cloud account",
                context=create_error_context(
                    operation="resolve_hierarchy",
                    phase=LEVEL_SERVICE_MODEL,
                    service_name=service_name,
                ),
            )

        result.service_model_id = self._step(
            LEVEL_SERVICE_MODEL,
            service_name,
            self._find_or_create_service_model,
            result.service_id,
            result.service_api_id,
            plan_name,
            model_type,
            account_config_ids,
        )

        tier_description = description or f"Product tier for {plan_name}"
        result.product_tier_id, result.is_new_tier = self._step(
            LEVEL_PRODUCT_TIER,
            service_name,
            self._find_or_create_product_tier,
            result.service_id,
            result.service_model_id,
            plan_name,
            tier_description,
            tenancy_type,
        )
        return result

    def _step(self, level: str, service_name: str, func, *args):
        """Run one level, wrapping failures with the level name."""
        try:
            return func(*args)
        except DeployError as e:
            raise HierarchyResolutionError(
                f"failed to find or create {level}: {e}",
                level=level,
                context=create_error_context(
                    operation="resolve_hierarchy", phase=level, service_name=service_name
                ),
                cause=e,
            ) from e

    def _find_or_create_service(self, name: str, description: Optional[str]) -> Tuple[str, bool]:
        for service in self.client.list_services():
            if service.name == name:
                return service.id, False

        service_id = self.client.create_service(name, description or f"Service for {name}")
        logger.info(f"Created service '{name}' ({service_id})")
        return service_id, True

    def _find_or_create_environment(self, service_id: str, name: str, env_type: str) -> str:
        environment_id = self.client.find_environment(service_id, env_type)
        if environment_id:
            return environment_id

        deployment_config_id = self.client.get_default_deployment_config_id()
        environment_id = self.client.create_environment(
            service_id,
            name,
            f"{name} environment",
            ENVIRONMENT_VISIBILITY,
            env_type,
            deployment_config_id,
        )
        logger.info(f"Created {env_type} environment '{name}' ({environment_id})")
        return environment_id

    def _find_product_tier_by_name(
        self, service_id: str, environment_id: str, plan_name: str
    ) -> Tuple[str, str, str]:
        """Scan APIs, models and tiers; per-entry failures are skipped."""
        for api_id in self.client.list_service_apis(service_id, environment_id):
            try:
                model_ids = self.client.list_service_models(service_id, api_id)
            except DeployError as e:
                logger.debug(f"Skipping service API {api_id}: {e}")
                continue

            for model_id in model_ids:
                try:
                    tier_ids = self.client.list_product_tiers(service_id, model_id)
                except DeployError as e:
                    logger.debug(f"Skipping service model {model_id}: {e}")
                    continue

                for tier_id in tier_ids:
                    try:
                        tier = self.client.describe_product_tier(service_id, tier_id)
                    except DeployError as e:
                        logger.debug(f"Skipping product tier {tier_id}: {e}")
                        continue
                    if tier.name == plan_name:
                        return tier_id, api_id, model_id

        return "", "", ""

    def _find_or_create_service_api(self, service_id: str, environment_id: str, plan_name: str) -> str:
        api_ids = self.client.list_service_apis(service_id, environment_id)
        if api_ids:
            return api_ids[0]

        api_id = self.client.create_service_api(
            service_id, environment_id, f"Service API for {plan_name}"
        )
        logger.info(f"Created service API ({api_id})")
        return api_id

    def _find_or_create_service_model(
        self,
        service_id: str,
        api_id: str,
        plan_name: str,
        model_type: str,
        account_config_ids: List[str],
    ) -> str:
        try:
            model_ids = self.client.list_service_models(service_id, api_id)
        except DeployError as e:
            logger.debug(f"Could not list service models of {api_id}: {e}")
            model_ids = []

        for model_id in model_ids:
            try:
                model = self.client.describe_service_model(service_id, model_id)
            except DeployError as e:
                logger.debug(f"Skipping service model {model_id}: {e}")
                continue
            if model.model_type == model_type:
                return model_id

        model_id = self.client.create_service_model(
            service_id,
            api_id,
            f"{plan_name} Model",
            f"Service model for {plan_name}",
            model_type,
            list(account_config_ids),
        )
        logger.info(f"Created {model_type} service model ({model_id})")
        return model_id

    def _find_or_create_product_tier(
        self,
        service_id: str,
        model_id: str,
        plan_name: str,
        description: str,
        tenancy_type: str,
    ) -> Tuple[str, bool]:
        try:
            tier_ids = self.client.list_product_tiers(service_id, model_id)
        except DeployError as e:
            logger.debug(f"Could not list product tiers of {model_id}: {e}")
            tier_ids = []

        for tier_id in tier_ids:
            try:
                tier = self.client.describe_product_tier(service_id, tier_id)
            except DeployError as e:
                logger.debug(f"Skipping product tier {tier_id}: {e}")
                continue
            if tier.name == plan_name:
                return tier_id, False

        tier_id = self.client.create_product_tier(
            service_id, model_id, plan_name, description, tenancy_type
        )
        logger.info(f"Created product tier '{plan_name}' ({tier_id})")
        return tier_id, True
