#!/usr/bin/env python3
"""
Unit tests for deployment block generation and injection.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import pytest
import yaml

from omnideploy.models import CloudAccountDescriptor, DeploymentModel, DeploymentTarget
from omnideploy.spec.classifier import classify
from omnideploy.spec.deployment_block import (
    aws_bootstrap_role_arn,
    gcp_service_account_email,
    generate_deployment_block,
    inject_deployment_block,
)


class TestGenerateDeploymentBlock:
    """Test deployment mapping generation."""

    @pytest.mark.unit
    def test_aws_role_is_derived(self):
        block = generate_deployment_block(
            DeploymentTarget.BYOA, CloudAccountDescriptor(aws_account_id="123456789012")
        )

        assert block == {
            "deployment": {
                "byoaDeployment": {
                    "AwsAccountId": "123456789012",
                    "AwsBootstrapRoleAccountArn": "arn:aws:iam::123456789012:role/omnistrate-bootstrap-role",
                }
            }
        }

    @pytest.mark.unit
    def test_gcp_email_needs_org_id(self):
        """Service-account email is derived only when the org id is known."""
        descriptor = CloudAccountDescriptor(gcp_project_id="proj", gcp_project_number="42")

        without_org = generate_deployment_block(DeploymentTarget.HOSTED, descriptor)
        with_org = generate_deployment_block(DeploymentTarget.HOSTED, descriptor, org_id="Org-XY")

        assert "GcpServiceAccountEmail" not in without_org["deployment"]["hostedDeployment"]
        assert with_org["deployment"]["hostedDeployment"]["GcpServiceAccountEmail"] == (
            "bootstrap-org-xy@proj.iam.gserviceaccount.com"
        )

    @pytest.mark.unit
    def test_unknown_target_rejected(self):
        with pytest.raises(ValueError):
            generate_deployment_block(DeploymentTarget.UNKNOWN, CloudAccountDescriptor())

    @pytest.mark.unit
    def test_helpers(self):
        assert aws_bootstrap_role_arn("1").endswith("::1:role/omnistrate-bootstrap-role")
        assert gcp_service_account_email("ORG", "p") == "bootstrap-org@p.iam.gserviceaccount.com"


class TestInjectDeploymentBlock:
    """Test appending a block to a spec document."""

    @pytest.mark.unit
    def test_injects_and_reclassifies(self, plan_spec_bytes):
        document = classify(plan_spec_bytes, path="spec.yaml")
        descriptor = CloudAccountDescriptor(aws_account_id="123456789012")

        injected = inject_deployment_block(document, DeploymentTarget.BYOA, descriptor)

        assert injected is not document
        assert injected.has_deployment_block
        assert injected.target == DeploymentTarget.BYOA
        assert injected.model == DeploymentModel.BYOA
        assert injected.descriptor.aws_account_id == "123456789012"
        assert injected.text.startswith(document.text)
        assert yaml.safe_load(injected.raw)["name"] == "helm-plan"
        # the original document is untouched
        assert not document.has_deployment_block

    @pytest.mark.unit
    def test_existing_block_is_kept(self):
        raw = b"name: p\nhelm: {}\ndeployment:\n  hostedDeployment: {}\n"
        document = classify(raw)

        result = inject_deployment_block(
            document, DeploymentTarget.BYOA, CloudAccountDescriptor(aws_account_id="123456789012")
        )

        assert result is document

    @pytest.mark.unit
    def test_unknown_target_is_noop(self, plan_spec_bytes):
        document = classify(plan_spec_bytes)
        assert inject_deployment_block(document, DeploymentTarget.UNKNOWN, CloudAccountDescriptor()) is document


class TestRoundTrip:
    """A byoaDeployment block survives extraction and regeneration."""

    SPEC = (
        b"name: multi-cloud\n"
        b"helm: {}\n"
        b"deployment:\n"
        b"  byoaDeployment:\n"
        b"    awsAccountID: '123456789012'\n"
        b"    AwsBootstrapRoleAccountArn: arn:aws:iam::123456789012:role/custom-role\n"
        b"    GcpProjectId: proj\n"
        b"    GcpProjectNumber: 987654321\n"
        b"    GcpServiceAccountEmail: bootstrap-org@proj.iam.gserviceaccount.com\n"
        b"    AzureSubscriptionId: sub-1\n"
        b"    azureTenantId: tenant-1\n"
    )

    @pytest.mark.unit
    def test_extracted_identity_regenerates_block(self):
        """Alias spellings and integer ids come back in canonical form."""
        document = classify(self.SPEC)

        regenerated = generate_deployment_block(DeploymentTarget.BYOA, document.descriptor)

        assert regenerated == {
            "deployment": {
                "byoaDeployment": {
                    "AwsAccountId": "123456789012",
                    "AwsBootstrapRoleAccountArn": "arn:aws:iam::123456789012:role/custom-role",
                    "GcpProjectId": "proj",
                    "GcpProjectNumber": "987654321",
                    "GcpServiceAccountEmail": "bootstrap-org@proj.iam.gserviceaccount.com",
                    "AzureSubscriptionId": "sub-1",
                    "AzureTenantId": "tenant-1",
                }
            }
        }

    @pytest.mark.unit
    def test_regenerated_block_classifies_the_same(self):
        document = classify(self.SPEC)
        tree = {"name": "multi-cloud", "helm": {}}
        tree.update(generate_deployment_block(DeploymentTarget.BYOA, document.descriptor))

        again = classify(yaml.safe_dump(tree).encode("utf-8"))

        assert again.descriptor == document.descriptor
        assert again.target == DeploymentTarget.BYOA
