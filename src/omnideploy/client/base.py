#!/usr/bin/env python3
"""
Control-plane client interface.

Every remote operation the deployment engine performs goes through
ControlPlaneClient. The engine never sees the wire format; concrete
clients (REST, in-memory fakes) decode payloads into omnideploy.models
records.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from omnideploy.models import (
    AccountCreateRequest,
    BuildRequest,
    BuildResult,
    CloudAccount,
    CloudProvider,
    Instance,
    InstanceCreateRequest,
    NamedEntity,
    Offering,
    ResourceInfo,
    ServiceModelInfo,
    WorkloadParameter,
)


class ControlPlaneClient(ABC):
    """
    Abstract control-plane client.

    Lookups that find nothing return None or an empty list; transport and
    server failures raise omnideploy.core.errors exceptions.
    """

    # Accounts

    @abstractmethod
    def list_accounts(self, provider: CloudProvider) -> List[CloudAccount]:
        pass

    @abstractmethod
    def describe_account(self, account_id: str) -> CloudAccount:
        pass

    @abstractmethod
    def create_account(self, request: AccountCreateRequest) -> str:
        """Link a cloud account; returns the new account-config id."""

    @abstractmethod
    def get_org_id(self) -> str:
        """Organization id of the authenticated user."""

    # Services and environments

    @abstractmethod
    def list_services(self) -> List[NamedEntity]:
        pass

    @abstractmethod
    def create_service(self, name: str, description: str) -> str:
        pass

    @abstractmethod
    def find_environment(self, service_id: str, environment_type: str) -> Optional[str]:
        """Environment id of the given type, or None if the service has none."""

    @abstractmethod
    def get_default_deployment_config_id(self) -> str:
        pass

    @abstractmethod
    def create_environment(
        self,
        service_id: str,
        name: str,
        description: str,
        visibility: str,
        environment_type: str,
        deployment_config_id: str,
    ) -> str:
        pass

    # Service APIs, models and product tiers

    @abstractmethod
    def list_service_apis(self, service_id: str, environment_id: str) -> List[str]:
        pass

    @abstractmethod
    def create_service_api(self, service_id: str, environment_id: str, description: str) -> str:
        pass

    @abstractmethod
    def list_service_models(self, service_id: str, service_api_id: str) -> List[str]:
        pass

    @abstractmethod
    def describe_service_model(self, service_id: str, service_model_id: str) -> ServiceModelInfo:
        pass

    @abstractmethod
    def create_service_model(
        self,
        service_id: str,
        service_api_id: str,
        name: str,
        description: str,
        model_type: str,
        account_config_ids: List[str],
    ) -> str:
        pass

    @abstractmethod
    def list_product_tiers(self, service_id: str, service_model_id: str) -> List[str]:
        pass

    @abstractmethod
    def describe_product_tier(self, service_id: str, product_tier_id: str) -> NamedEntity:
        pass

    @abstractmethod
    def create_product_tier(
        self,
        service_id: str,
        service_model_id: str,
        name: str,
        description: str,
        tenancy_type: str,
    ) -> str:
        pass

    @abstractmethod
    def find_latest_version(self, service_id: str, product_tier_id: str) -> str:
        pass

    # Resources and offerings

    @abstractmethod
    def list_resources(self, service_id: str, product_tier_id: str) -> List[ResourceInfo]:
        pass

    @abstractmethod
    def describe_resource_parameters(
        self,
        service_id: str,
        resource_id: str,
        product_tier_id: str,
        version: str,
    ) -> List[WorkloadParameter]:
        """Creation parameter schema of a resource."""

    @abstractmethod
    def describe_offering(self, service_id: str, product_tier_id: str) -> Offering:
        pass

    # Instances

    @abstractmethod
    def list_instances(
        self, service_id: str, environment_id: str, product_tier_id: str
    ) -> List[Instance]:
        pass

    @abstractmethod
    def describe_instance(self, service_id: str, environment_id: str, instance_id: str) -> Instance:
        pass

    @abstractmethod
    def create_instance(
        self,
        service_id: str,
        environment_id: str,
        product_tier_id: str,
        resource_id: str,
        request: InstanceCreateRequest,
    ) -> str:
        pass

    @abstractmethod
    def patch_instance(
        self,
        service_id: str,
        environment_id: str,
        instance_id: str,
        resource_override_config: Dict[str, Any],
        target_version: str,
    ) -> None:
        pass

    # Builds

    @abstractmethod
    def build_from_compose_spec(self, request: BuildRequest) -> BuildResult:
        pass

    @abstractmethod
    def build_from_plan_spec(self, request: BuildRequest) -> BuildResult:
        pass

    def close(self) -> None:
        """Release transport resources."""
