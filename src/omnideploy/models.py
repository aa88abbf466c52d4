#!/usr/bin/env python3
"""
Data model shared by the deployment engine.

Remote records (accounts, instances, resources) are plain dataclasses
decoded from control-plane payloads; enums carry the status and type
vocabularies used across components.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CloudProvider(Enum):
    """Supported cloud providers."""

    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    OCI = "oci"

    @classmethod
    def parse(cls, value: str) -> "CloudProvider":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown cloud provider '{value}'. Valid: {valid}") from None


class DeploymentTarget(Enum):
    """Where the workload runs."""

    HOSTED = "hosted"
    BYOA = "byoa"
    UNKNOWN = "unknown"


class DeploymentModel(Enum):
    """Deployment model declared by a spec, mapped to the remote model type."""

    HOSTED = "hostedDeployment"
    CUSTOMER_HOSTED = "customerHostedDeployment"
    BYOA = "byoaDeployment"
    ON_PREM = "onPremDeployment"
    ON_PREM_COPILOT = "onPremCopilotDeployment"

    @property
    def service_model_type(self) -> str:
        return _SERVICE_MODEL_TYPES[self]

    @property
    def requires_account_configs(self) -> bool:
        return self is not DeploymentModel.HOSTED


_SERVICE_MODEL_TYPES = {
    DeploymentModel.HOSTED: "OMNISTRATE_HOSTED",
    DeploymentModel.CUSTOMER_HOSTED: "CUSTOMER_HOSTED",
    DeploymentModel.BYOA: "BYOA",
    DeploymentModel.ON_PREM: "ON_PREM",
    DeploymentModel.ON_PREM_COPILOT: "ON_PREM_COPILOT",
}

TENANCY_TYPE_CUSTOM = "CUSTOM_TENANCY"
TENANCY_TYPE_DEDICATED = "OMNISTRATE_DEDICATED_TENANCY"

# Synthetic resource that carries account config for BYOA instances
INJECTED_ACCOUNT_RESOURCE_PREFIX = "r-injectedaccountconfig"


class AccountStatus(Enum):
    PENDING = "PENDING"
    VERIFYING = "VERIFYING"
    READY = "READY"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


class InstanceStatus(Enum):
    PENDING = "PENDING"
    DEPLOYING = "DEPLOYING"
    RUNNING = "RUNNING"
    READY = "READY"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in (
            InstanceStatus.RUNNING,
            InstanceStatus.READY,
            InstanceStatus.FAILED,
            InstanceStatus.CANCELLED,
        )


def _parse_status(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value or "").upper())
    except ValueError:
        return enum_cls.UNKNOWN


@dataclass
class CloudAccountDescriptor:
    """Account identity declared in a spec or collected from the operator."""

    provider: Optional[CloudProvider] = None
    aws_account_id: str = ""
    aws_bootstrap_role_arn: str = ""
    gcp_project_id: str = ""
    gcp_project_number: str = ""
    gcp_service_account_email: str = ""
    azure_subscription_id: str = ""
    azure_tenant_id: str = ""
    oci_tenancy_id: str = ""
    oci_domain_id: str = ""

    def providers(self) -> List[CloudProvider]:
        """Providers whose primary identity field is set, in fixed order."""
        found = []
        if self.aws_account_id:
            found.append(CloudProvider.AWS)
        if self.gcp_project_id:
            found.append(CloudProvider.GCP)
        if self.azure_subscription_id:
            found.append(CloudProvider.AZURE)
        if self.oci_tenancy_id:
            found.append(CloudProvider.OCI)
        return found

    def has_identity(self) -> bool:
        return bool(self.providers())


@dataclass
class CloudAccount:
    """A cloud account linked on the control plane."""

    id: str
    name: str
    provider: CloudProvider
    status: AccountStatus
    raw_status: str = ""
    aws_account_id: Optional[str] = None
    aws_bootstrap_role_arn: Optional[str] = None
    gcp_project_id: Optional[str] = None
    gcp_project_number: Optional[str] = None
    azure_subscription_id: Optional[str] = None
    azure_tenant_id: Optional[str] = None
    oci_tenancy_id: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status == AccountStatus.READY

    def identity_label(self) -> str:
        if self.provider == CloudProvider.AWS:
            return f"AWS account {self.aws_account_id}"
        if self.provider == CloudProvider.GCP:
            return f"GCP project {self.gcp_project_id}"
        if self.provider == CloudProvider.AZURE:
            return f"Azure subscription {self.azure_subscription_id}"
        return f"OCI tenancy {self.oci_tenancy_id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CloudAccount":
        raw_status = str(data.get("status", ""))
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            provider=CloudProvider.parse(data.get("cloudProvider") or data.get("provider", "")),
            status=_parse_status(AccountStatus, raw_status),
            raw_status=raw_status,
            aws_account_id=data.get("awsAccountID"),
            aws_bootstrap_role_arn=data.get("awsBootstrapRoleARN"),
            gcp_project_id=data.get("gcpProjectID"),
            gcp_project_number=data.get("gcpProjectNumber"),
            azure_subscription_id=data.get("azureSubscriptionID"),
            azure_tenant_id=data.get("azureTenantID"),
            oci_tenancy_id=data.get("ociTenancyID"),
        )


@dataclass
class AccountCreateRequest:
    """Payload for linking a new cloud account."""

    provider: CloudProvider
    name: str
    description: str
    aws_account_id: Optional[str] = None
    aws_bootstrap_role_arn: Optional[str] = None
    gcp_project_id: Optional[str] = None
    gcp_project_number: Optional[str] = None
    gcp_service_account_email: Optional[str] = None
    azure_subscription_id: Optional[str] = None
    azure_tenant_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "name": self.name,
            "description": self.description,
            "cloudProviderName": self.provider.value,
            "awsAccountID": self.aws_account_id,
            "awsBootstrapRoleARN": self.aws_bootstrap_role_arn,
            "gcpProjectID": self.gcp_project_id,
            "gcpProjectNumber": self.gcp_project_number,
            "gcpServiceAccountEmail": self.gcp_service_account_email,
            "azureSubscriptionID": self.azure_subscription_id,
            "azureTenantID": self.azure_tenant_id,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class ServiceHierarchy:
    """Identifiers of one deployable service definition."""

    service_id: str = ""
    environment_id: str = ""
    service_api_id: str = ""
    service_model_id: str = ""
    product_tier_id: str = ""
    is_new_service: bool = False
    is_new_tier: bool = False


@dataclass
class ResourceInfo:
    """A resource belonging to a plan."""

    id: str
    name: str
    key: str = ""
    is_internal: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceInfo":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            key=data.get("urlKey") or data.get("key", ""),
            is_internal=bool(data.get("internal") or data.get("isInternal", False)),
        )


@dataclass
class WorkloadParameter:
    """One entry of a resource's creation parameter schema."""

    key: str
    required: bool = False
    default: Optional[Any] = None
    description: str = ""
    param_type: str = "String"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkloadParameter":
        default = data.get("defaultValue", data.get("default"))
        return cls(
            key=data["key"],
            required=bool(data.get("required", False)),
            default=default if default != "" else None,
            description=data.get("description", ""),
            param_type=data.get("type", "String"),
        )


@dataclass
class Offering:
    """Cloud/region/model information for a plan."""

    service_model_type: str
    cloud_providers: List[str] = field(default_factory=list)
    regions: Dict[str, List[str]] = field(default_factory=dict)
    resources: List[ResourceInfo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Offering":
        regions = {
            "aws": list(data.get("awsRegions") or []),
            "gcp": list(data.get("gcpRegions") or []),
            "azure": list(data.get("azureRegions") or []),
            "oci": list(data.get("ociRegions") or []),
        }
        return cls(
            service_model_type=data.get("serviceModelType", ""),
            cloud_providers=list(data.get("cloudProviders") or []),
            regions={k: v for k, v in regions.items() if v},
            resources=[ResourceInfo.from_dict(r) for r in data.get("resourceParameters") or []],
        )


@dataclass
class Instance:
    """A workload instance (or account-only instance) on the control plane."""

    id: str
    resource_id: str = ""
    cloud_provider: str = ""
    region: str = ""
    version: str = ""
    status: InstanceStatus = InstanceStatus.UNKNOWN
    raw_status: str = ""
    is_account_instance: bool = False
    account_config_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Instance":
        raw_status = str(data.get("status", ""))
        resource_id = data.get("resourceID", "") or ""
        return cls(
            id=data.get("id") or data["instanceId"],
            resource_id=resource_id,
            cloud_provider=data.get("cloudProvider", ""),
            region=data.get("region", ""),
            version=data.get("productTierVersion", ""),
            status=_parse_status(InstanceStatus, raw_status),
            raw_status=raw_status,
            is_account_instance=bool(data.get("isAccountInstance"))
            or resource_id.startswith(INJECTED_ACCOUNT_RESOURCE_PREFIX),
            account_config_id=data.get("accountConfigID", "") or "",
        )


@dataclass
class BuildResult:
    """Outcome of submitting a spec build."""

    service_id: str
    environment_id: str
    product_tier_id: str
    version: str = ""
    undefined_resources: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildResult":
        return cls(
            service_id=data.get("serviceID", ""),
            environment_id=data.get("serviceEnvironmentID", ""),
            product_tier_id=data.get("productTierID", ""),
            version=data.get("version", "") or "",
            undefined_resources=dict(data.get("undefinedResources") or {}),
        )


class InstanceAction(Enum):
    """What the instance step did."""

    CREATED = "created"
    UPGRADED = "upgraded"
    DRY_RUN = "dry_run"
    NONE = "none"


@dataclass
class NamedEntity:
    """Remote entity identified by id and name (service, product tier)."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NamedEntity":
        return cls(id=data["id"], name=data.get("name", ""))


@dataclass
class ServiceModelInfo:
    id: str
    name: str
    model_type: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceModelInfo":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            model_type=data.get("modelType", ""),
        )


@dataclass
class BuildRequest:
    """Payload for building a service from a spec."""

    name: str
    file_content: str
    description: Optional[str] = None
    environment: Optional[str] = None
    environment_type: Optional[str] = None
    release: bool = True
    release_as_preferred: bool = True
    release_version_name: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "name": self.name,
            "fileContent": self.file_content,
            "description": self.description,
            "environment": self.environment,
            "environmentType": self.environment_type,
            "release": self.release,
            "releaseAsPreferred": self.release_as_preferred,
            "releaseVersionName": self.release_version_name,
            "dryrun": self.dry_run,
        }
        return {k: v for k, v in payload.items() if v is not None}


@dataclass
class InstanceCreateRequest:
    """Payload for creating a workload or account-only instance."""

    resource_key: str
    product_tier_version: str
    cloud_provider: str
    region: str
    network_type: str = "PUBLIC"
    request_params: Dict[str, Any] = field(default_factory=dict)
    subscription_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "productTierVersion": self.product_tier_version,
            "cloud_provider": self.cloud_provider,
            "region": self.region,
            "network_type": self.network_type,
            "requestParams": self.request_params,
            "subscriptionId": self.subscription_id,
        }
        return {k: v for k, v in payload.items() if v is not None}
