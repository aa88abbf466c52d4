#!/usr/bin/env python3
"""
Cloud account onboarding helpers.

Collects provider credentials through a Prompter, validates them into an
AccountCreateRequest, and renders provider setup instructions from the
jinja2 templates under templates/account_setup.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from omnideploy.core.errors import ValidationError, create_error_context
from omnideploy.core.prompter import Prompter
from omnideploy.models import AccountCreateRequest, CloudProvider
from omnideploy.spec.deployment_block import aws_bootstrap_role_arn, gcp_service_account_email

# Providers that can be linked interactively
ONBOARDING_PROVIDERS: List[CloudProvider] = [
    CloudProvider.AWS,
    CloudProvider.GCP,
    CloudProvider.AZURE,
]

ACCOUNT_CONFIGURATION_METHOD = "CloudFormation"

_AWS_ACCOUNT_ID = re.compile(r"^\d{12}$")

_DESCRIPTIONS = {
    CloudProvider.AWS: "AWS Account {}",
    CloudProvider.GCP: "GCP Account {}",
    CloudProvider.AZURE: "Azure Account {}",
}


def prompt_provider(prompter: Prompter, providers: Optional[List[CloudProvider]] = None) -> CloudProvider:
    providers = providers or ONBOARDING_PROVIDERS
    if len(providers) == 1:
        return providers[0]
    labels = [p.value.upper() for p in providers]
    index = prompter.choose("cloud_provider", "Select the cloud provider to link", labels)
    return providers[index]


def collect_credentials(prompter: Prompter, provider: CloudProvider) -> Dict[str, str]:
    """Ask for the identity fields a provider needs."""
    answers: Dict[str, str] = {"cloud_provider": provider.value}

    if provider == CloudProvider.AWS:
        account_id = prompter.ask("aws_account_id", "AWS account ID (12 digits)")
        answers["aws_account_id"] = account_id
        answers["aws_bootstrap_role_arn"] = prompter.ask(
            "aws_bootstrap_role_arn",
            "Bootstrap role ARN",
            default=aws_bootstrap_role_arn(account_id),
        )
        answers["account_configuration_method"] = ACCOUNT_CONFIGURATION_METHOD
    elif provider == CloudProvider.GCP:
        answers["gcp_project_id"] = prompter.ask("gcp_project_id", "GCP project ID")
        answers["gcp_project_number"] = prompter.ask("gcp_project_number", "GCP project number")
    elif provider == CloudProvider.AZURE:
        answers["azure_subscription_id"] = prompter.ask(
            "azure_subscription_id", "Azure subscription ID"
        )
        answers["azure_tenant_id"] = prompter.ask("azure_tenant_id", "Azure tenant ID")
    else:
        raise ValidationError(
            f"{provider.value.upper()} accounts cannot be linked interactively",
            context=create_error_context(operation="collect_credentials"),
            suggestions=["Link the account from the Omnistrate console"],
        )

    return answers


def build_account_request(
    answers: Dict[str, str],
    org_id: Optional[str] = None,
    name: Optional[str] = None,
) -> AccountCreateRequest:
    """
    Validate collected answers and turn them into an account request.

    Exactly one provider identity may be given. GCP project id and number,
    and Azure subscription and tenant, must be given together.

    Raises:
        ValidationError: On missing, conflicting or malformed identity fields
    """
    context = create_error_context(operation="build_account_request", component="onboarding")
    aws_id = (answers.get("aws_account_id") or "").strip()
    gcp_id = (answers.get("gcp_project_id") or "").strip()
    gcp_number = (answers.get("gcp_project_number") or "").strip()
    azure_sub = (answers.get("azure_subscription_id") or "").strip()
    azure_tenant = (answers.get("azure_tenant_id") or "").strip()

    given = [bool(aws_id), bool(gcp_id or gcp_number), bool(azure_sub or azure_tenant)]
    if sum(given) == 0:
        raise ValidationError("no cloud provider credentials provided", context=context)
    if sum(given) > 1:
        raise ValidationError(
            "only one of AWS account id, GCP project id, or Azure subscription id can be used at a time",
            context=context,
        )
    if bool(gcp_id) != bool(gcp_number):
        raise ValidationError(
            "both GCP project id and GCP project number must be provided together",
            context=context,
        )
    if bool(azure_sub) != bool(azure_tenant):
        raise ValidationError(
            "both Azure subscription id and Azure tenant id must be provided together",
            context=context,
        )

    if aws_id:
        if not _AWS_ACCOUNT_ID.match(aws_id):
            raise ValidationError(
                f"invalid AWS account id '{aws_id}'",
                context=context,
                suggestions=["AWS account ids are exactly 12 digits"],
            )
        return AccountCreateRequest(
            provider=CloudProvider.AWS,
            name=name or f"aws-{aws_id}",
            description=_DESCRIPTIONS[CloudProvider.AWS].format(aws_id),
            aws_account_id=aws_id,
            aws_bootstrap_role_arn=answers.get("aws_bootstrap_role_arn") or aws_bootstrap_role_arn(aws_id),
        )

    if gcp_id:
        email = answers.get("gcp_service_account_email")
        if not email and org_id:
            email = gcp_service_account_email(org_id, gcp_id)
        return AccountCreateRequest(
            provider=CloudProvider.GCP,
            name=name or f"gcp-{gcp_id}",
            description=_DESCRIPTIONS[CloudProvider.GCP].format(gcp_id),
            gcp_project_id=gcp_id,
            gcp_project_number=gcp_number,
            gcp_service_account_email=email,
        )

    return AccountCreateRequest(
        provider=CloudProvider.AZURE,
        name=name or f"azure-{azure_sub}",
        description=_DESCRIPTIONS[CloudProvider.AZURE].format(azure_sub),
        azure_subscription_id=azure_sub,
        azure_tenant_id=azure_tenant,
    )


class SetupInstructions:
    """Renders provider setup instructions from jinja2 templates."""

    def __init__(self):
        template_dir = Path(__file__).parent / "templates" / "account_setup"
        self.jinja_env = Environment(loader=FileSystemLoader(str(template_dir)))

    def render(self, request: AccountCreateRequest, account_config_id: Optional[str] = None) -> str:
        template = self.jinja_env.get_template(f"{request.provider.value}.txt.j2")
        return template.render(
            aws_account_id=request.aws_account_id,
            aws_bootstrap_role_arn=request.aws_bootstrap_role_arn,
            gcp_project_id=request.gcp_project_id,
            gcp_project_number=request.gcp_project_number,
            gcp_service_account_email=request.gcp_service_account_email,
            azure_subscription_id=request.azure_subscription_id,
            azure_tenant_id=request.azure_tenant_id,
            account_config_id=account_config_id,
        ).strip()
