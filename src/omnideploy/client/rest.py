#!/usr/bin/env python3
"""
REST control-plane client built on httpx.

Maps ControlPlaneClient operations onto control-plane REST endpoints and
translates HTTP failures into omnideploy errors:
- 401/403 -> AuthenticationError
- 404 -> RemoteNotFoundError
- other 4xx/5xx and unreadable 2xx bodies -> RuntimeError
- transport failures -> ConnectionError

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.errors import (
    AuthenticationError,
    ConnectionError,
    RemoteNotFoundError,
    RuntimeError as DeployRuntimeError,
    create_error_context,
)
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

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the REST client."""

    base_url: str
    token: Optional[str] = None
    timeout: float = 60.0


class RestControlPlaneClient(ControlPlaneClient):
    """ControlPlaneClient talking to the control-plane REST API."""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.BaseTransport] = None):
        self.config = config
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=headers,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        context = create_error_context(
            operation=f"{method} {path}", component="RestControlPlaneClient"
        )
        logger.debug(f"{method} {path}")

        try:
            response = self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise ConnectionError(
                f"Request to {path} timed out after {self.config.timeout:g}s",
                context=context,
                suggestions=["Retry, or raise api.timeout in the config file"],
                cause=e,
            ) from e
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Could not reach control plane at {self.config.base_url}: {e}",
                context=context,
                suggestions=["Check network access and the OMNISTRATE_API_URL setting"],
                cause=e,
            ) from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Control plane rejected credentials ({response.status_code})",
                context=context,
            )
        if response.status_code == 404:
            raise RemoteNotFoundError(f"Not found: {path}", context=context)
        if response.status_code >= 400:
            context.additional_info = {
                "status_code": response.status_code,
                "body": response.text[:500],
            }
            raise DeployRuntimeError(
                f"Control plane returned {response.status_code} for {method} {path}",
                context=context,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            context.additional_info = {
                "status_code": response.status_code,
                "body": response.text[:500],
            }
            raise DeployRuntimeError(
                f"Control plane returned a non-JSON body for {method} {path}",
                context=context,
                cause=e,
            ) from e

    @staticmethod
    def _field(data: Any, key: str) -> Any:
        """Required field of a response object."""
        if not isinstance(data, dict) or key not in data:
            raise DeployRuntimeError(
                f"Control plane response is missing '{key}'",
                context=create_error_context(
                    operation="parse_response",
                    component="RestControlPlaneClient",
                    additional_info={"body": str(data)[:500]},
                ),
            )
        return data[key]

    # Accounts

    def list_accounts(self, provider: CloudProvider) -> List[CloudAccount]:
        data = self._request("GET", f"/accountconfig/cloudprovider/{provider.value}")
        return [CloudAccount.from_dict(a) for a in (data or {}).get("accountConfigs", [])]

    def describe_account(self, account_id: str) -> CloudAccount:
        return CloudAccount.from_dict(self._request("GET", f"/accountconfig/{account_id}"))

    def create_account(self, request: AccountCreateRequest) -> str:
        data = self._request("POST", "/accountconfig", json=request.to_dict())
        return self._field(data, "id")

    def get_org_id(self) -> str:
        return self._field(self._request("GET", "/user"), "orgId")

    # Services and environments

    def list_services(self) -> List[NamedEntity]:
        data = self._request("GET", "/service")
        return [NamedEntity.from_dict(s) for s in (data or {}).get("services", [])]

    def create_service(self, name: str, description: str) -> str:
        data = self._request("POST", "/service", json={"name": name, "description": description})
        return self._field(data, "id")

    def find_environment(self, service_id: str, environment_type: str) -> Optional[str]:
        try:
            data = self._request(
                "GET", f"/service/{service_id}/environmenttype/{environment_type.upper()}"
            )
        except RemoteNotFoundError:
            return None
        return self._field(data, "id")

    def get_default_deployment_config_id(self) -> str:
        return self._field(self._request("GET", "/deploymentconfig/default"), "id")

    def create_environment(
        self,
        service_id,
        name,
        description,
        visibility,
        environment_type,
        deployment_config_id,
    ) -> str:
        payload = {
            "name": name,
            "description": description,
            "visibility": visibility,
            "type": environment_type,
            "deploymentConfigId": deployment_config_id,
            "autoApproveSubscription": True,
        }
        data = self._request("POST", f"/service/{service_id}/environment", json=payload)
        return self._field(data, "id")

    # Service APIs, models and product tiers

    def list_service_apis(self, service_id: str, environment_id: str) -> List[str]:
        data = self._request(
            "GET", f"/service/{service_id}/environment/{environment_id}/service-api"
        )
        return list((data or {}).get("ids", []))

    def create_service_api(self, service_id: str, environment_id: str, description: str) -> str:
        data = self._request(
            "POST",
            f"/service/{service_id}/service-api",
            json={"serviceEnvironmentId": environment_id, "description": description},
        )
        return self._field(data, "id")

    def list_service_models(self, service_id: str, service_api_id: str) -> List[str]:
        data = self._request(
            "GET", f"/service/{service_id}/service-api/{service_api_id}/service-model"
        )
        return list((data or {}).get("ids", []))

    def describe_service_model(self, service_id: str, service_model_id: str) -> ServiceModelInfo:
        return ServiceModelInfo.from_dict(
            self._request("GET", f"/service/{service_id}/service-model/{service_model_id}")
        )

    def create_service_model(
        self,
        service_id,
        service_api_id,
        name,
        description,
        model_type,
        account_config_ids,
    ) -> str:
        payload = {
            "serviceApiId": service_api_id,
            "name": name,
            "description": description,
            "modelType": model_type,
            "accountConfigIds": list(account_config_ids),
        }
        data = self._request("POST", f"/service/{service_id}/service-model", json=payload)
        return self._field(data, "id")

    def list_product_tiers(self, service_id: str, service_model_id: str) -> List[str]:
        data = self._request(
            "GET", f"/service/{service_id}/service-model/{service_model_id}/product-tier"
        )
        return list((data or {}).get("ids", []))

    def describe_product_tier(self, service_id: str, product_tier_id: str) -> NamedEntity:
        return NamedEntity.from_dict(
            self._request("GET", f"/service/{service_id}/product-tier/{product_tier_id}")
        )

    def create_product_tier(
        self, service_id, service_model_id, name, description, tenancy_type
    ) -> str:
        payload = {
            "serviceModelId": service_model_id,
            "name": name,
            "description": description,
            "tierType": tenancy_type,
        }
        data = self._request("POST", f"/service/{service_id}/product-tier", json=payload)
        return self._field(data, "id")

    def find_latest_version(self, service_id: str, product_tier_id: str) -> str:
        data = self._request(
            "GET",
            f"/service/{service_id}/productTier/{product_tier_id}/version-set",
            params={"latest": "true"},
        )
        versions = (data or {}).get("tierVersionSets", [])
        if not versions:
            raise RemoteNotFoundError(
                f"No released version found for product tier {product_tier_id}",
                context=create_error_context(operation="find_latest_version"),
            )
        return self._field(versions[0], "version")

    # Resources and offerings

    def list_resources(self, service_id: str, product_tier_id: str) -> List[ResourceInfo]:
        data = self._request(
            "GET",
            f"/service/{service_id}/resource",
            params={"productTierId": product_tier_id},
        )
        return [ResourceInfo.from_dict(r) for r in (data or {}).get("resources", [])]

    def describe_resource_parameters(
        self, service_id, resource_id, product_tier_id, version
    ) -> List[WorkloadParameter]:
        data = self._request(
            "GET",
            f"/service/{service_id}/resource/{resource_id}/input-parameter",
            params={"productTierId": product_tier_id, "productTierVersion": version},
        )
        return [WorkloadParameter.from_dict(p) for p in (data or {}).get("inputParameters", [])]

    def describe_offering(self, service_id: str, product_tier_id: str) -> Offering:
        data = self._request(
            "GET",
            "/service-offering",
            params={"serviceId": service_id, "productTierId": product_tier_id},
        )
        return Offering.from_dict(data or {})

    # Instances

    def list_instances(self, service_id, environment_id, product_tier_id) -> List[Instance]:
        data = self._request(
            "GET",
            f"/fleet/service/{service_id}/environment/{environment_id}/instances",
            params={"productTierId": product_tier_id},
        )
        return [Instance.from_dict(i) for i in (data or {}).get("resourceInstances", [])]

    def describe_instance(self, service_id, environment_id, instance_id) -> Instance:
        return Instance.from_dict(
            self._request(
                "GET",
                f"/fleet/service/{service_id}/environment/{environment_id}/instance/{instance_id}",
            )
        )

    def create_instance(
        self, service_id, environment_id, product_tier_id, resource_id, request
    ) -> str:
        payload = request.to_dict()
        payload["productTierId"] = product_tier_id
        data = self._request(
            "POST",
            f"/fleet/service/{service_id}/environment/{environment_id}/resource/{resource_id}/instance",
            json=payload,
        )
        return self._field(data, "id")

    def patch_instance(
        self, service_id, environment_id, instance_id, resource_override_config, target_version
    ) -> None:
        self._request(
            "PATCH",
            f"/fleet/service/{service_id}/environment/{environment_id}/instance/{instance_id}/one-off-patch",
            json={
                "resourceOverrideConfiguration": resource_override_config,
                "targetTierVersion": target_version,
            },
        )

    # Builds

    def build_from_compose_spec(self, request: BuildRequest) -> BuildResult:
        data = self._request("POST", "/service/build", json=request.to_dict())
        return BuildResult.from_dict(data or {})

    def build_from_plan_spec(self, request: BuildRequest) -> BuildResult:
        data = self._request("POST", "/service/build-from-service-plan-spec", json=request.to_dict())
        return BuildResult.from_dict(data or {})
