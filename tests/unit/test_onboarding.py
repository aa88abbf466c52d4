#!/usr/bin/env python3
"""
Unit tests for cloud account onboarding helpers.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import pytest

from omnideploy.core.errors import ValidationError
from omnideploy.models import CloudProvider
from omnideploy.orchestration.onboarding import (
    SetupInstructions,
    build_account_request,
    collect_credentials,
    prompt_provider,
)


class TestCollectCredentials:
    """Test provider-specific prompting."""

    @pytest.mark.unit
    def test_aws_defaults_role_and_method(self, scripted_prompter):
        prompter = scripted_prompter({"aws_account_id": "123456789012"})

        answers = collect_credentials(prompter, CloudProvider.AWS)

        assert answers == {
            "cloud_provider": "aws",
            "aws_account_id": "123456789012",
            "aws_bootstrap_role_arn": "arn:aws:iam::123456789012:role/omnistrate-bootstrap-role",
            "account_configuration_method": "CloudFormation",
        }

    @pytest.mark.unit
    def test_gcp_and_azure_fields(self, scripted_prompter):
        gcp = collect_credentials(
            scripted_prompter({"gcp_project_id": "p", "gcp_project_number": "9"}), CloudProvider.GCP
        )
        azure = collect_credentials(
            scripted_prompter({"azure_subscription_id": "s", "azure_tenant_id": "t"}),
            CloudProvider.AZURE,
        )

        assert gcp["gcp_project_number"] == "9"
        assert azure["azure_tenant_id"] == "t"

    @pytest.mark.unit
    def test_oci_cannot_be_onboarded(self, scripted_prompter):
        with pytest.raises(ValidationError):
            collect_credentials(scripted_prompter(), CloudProvider.OCI)

    @pytest.mark.unit
    def test_prompt_provider(self, scripted_prompter):
        """A single candidate is returned without asking."""
        prompter = scripted_prompter({"cloud_provider": "AZURE"})

        assert prompt_provider(prompter, [CloudProvider.GCP]) == CloudProvider.GCP
        assert prompter.asked == []
        assert prompt_provider(prompter) == CloudProvider.AZURE


class TestBuildAccountRequest:
    """Test validation of collected identity fields."""

    @pytest.mark.unit
    def test_aws_request(self):
        request = build_account_request({"aws_account_id": " 123456789012 "})

        assert request.provider == CloudProvider.AWS
        assert request.name == "aws-123456789012"
        assert request.description == "AWS Account 123456789012"
        assert request.aws_bootstrap_role_arn.startswith("arn:aws:iam::123456789012:")

    @pytest.mark.unit
    def test_gcp_request_derives_email_from_org(self):
        request = build_account_request(
            {"gcp_project_id": "proj", "gcp_project_number": "42"}, org_id="ORG1", name="mine"
        )

        assert request.name == "mine"
        assert request.gcp_service_account_email == "bootstrap-org1@proj.iam.gserviceaccount.com"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "answers,message",
        [
            ({}, "no cloud provider credentials"),
            ({"aws_account_id": "123456789012", "gcp_project_id": "p"}, "only one of"),
            ({"gcp_project_id": "p"}, "GCP project id and GCP project number"),
            ({"azure_tenant_id": "t"}, "Azure subscription id and Azure tenant id"),
            ({"aws_account_id": "12345"}, "invalid AWS account id"),
        ],
    )
    def test_invalid_answers(self, answers, message):
        with pytest.raises(ValidationError, match=message):
            build_account_request(answers)


class TestSetupInstructions:
    """Test jinja2 rendering of provider setup steps."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "answers,expected",
        [
            ({"aws_account_id": "123456789012"}, "123456789012"),
            ({"gcp_project_id": "proj", "gcp_project_number": "42"}, "proj"),
            ({"azure_subscription_id": "sub", "azure_tenant_id": "ten"}, "sub"),
        ],
    )
    def test_render_each_provider(self, answers, expected):
        request = build_account_request(answers, org_id="org")

        text = SetupInstructions().render(request, account_config_id="ac-7")

        assert expected in text
        assert "ac-7" in text
