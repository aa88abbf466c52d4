#!/usr/bin/env python3
"""
Unit tests for spec classification and account extraction.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import textwrap

import pytest

from omnideploy.core.errors import SpecFormatError
from omnideploy.models import (
    TENANCY_TYPE_CUSTOM,
    CloudAccountDescriptor,
    CloudProvider,
    DeploymentModel,
    DeploymentTarget,
)
from omnideploy.spec.classifier import (
    SpecKind,
    classify,
    detect_kind,
    extract_deployment_info,
    load_spec,
    resolve_deployment_model,
)


def _spec(text):
    return textwrap.dedent(text).encode("utf-8")


class TestKindDetection:
    """Test compose versus plan detection."""

    @pytest.mark.unit
    def test_compose_spec(self, compose_spec_bytes):
        """Compose spec with metadata defaults to a hosted model."""
        document = classify(compose_spec_bytes)

        assert document.kind == SpecKind.COMPOSE
        assert document.target == DeploymentTarget.UNKNOWN
        assert document.model == DeploymentModel.HOSTED
        assert document.plan_name == "starter"
        assert document.tenancy_type == "OMNISTRATE_DEDICATED_TENANCY"
        assert not document.descriptor.has_identity()

    @pytest.mark.unit
    def test_plan_spec(self, plan_spec_bytes):
        """Plan spec without deployment section defaults to BYOA."""
        document = classify(plan_spec_bytes)

        assert document.kind == SpecKind.PLAN
        assert document.model == DeploymentModel.BYOA
        assert document.plan_name == "helm-plan"
        assert document.tenancy_type == TENANCY_TYPE_CUSTOM
        assert not document.has_deployment_block

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["helm", "operatorCRDConfiguration", "terraformConfigurations", "kustomize"])
    def test_plan_keys_at_any_depth(self, key):
        tree = {"services": [{"name": "a", "nested": {key: {}}}]}
        assert detect_kind(tree) == SpecKind.PLAN

    @pytest.mark.unit
    def test_compose_without_metadata_rejected(self):
        spec = _spec(
            """\
            services:
              web:
                image: nginx
            """
        )
        with pytest.raises(SpecFormatError, match="x-omnistrate-"):
            classify(spec)

        assert classify(spec, require_metadata=False).kind == SpecKind.COMPOSE

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [b"services: [unclosed", b"- just\n- a list\n"])
    def test_malformed_documents(self, raw):
        with pytest.raises(SpecFormatError):
            classify(raw)


class TestAccountExtraction:
    """Test the ordered extraction strategies."""

    @pytest.mark.unit
    def test_byoa_service_plan_block(self, byoa_compose_spec_bytes):
        document = classify(byoa_compose_spec_bytes)

        assert document.target == DeploymentTarget.BYOA
        assert document.model == DeploymentModel.BYOA
        assert document.descriptor.aws_account_id == "123456789012"
        assert document.descriptor.provider == CloudProvider.AWS

    @pytest.mark.unit
    def test_first_non_empty_value_wins(self):
        """Root deployment section is consulted before extension blocks."""
        tree = {
            "deployment": {"hostedDeployment": {"AwsAccountId": "111111111111"}},
            "x-omnistrate-byoa": {"AwsAccountId": "222222222222", "GcpProjectId": "proj"},
        }

        info = extract_deployment_info(tree)

        assert info.target == DeploymentTarget.HOSTED
        assert info.model == DeploymentModel.HOSTED
        assert info.descriptor.aws_account_id == "111111111111"
        assert info.descriptor.gcp_project_id == "proj"
        assert info.descriptor.provider is None

    @pytest.mark.unit
    def test_aliases_and_integer_values(self):
        tree = {
            "x-omnistrate-service-plan": {
                "deployment": {"byoaDeployment": {"gcpProjectID": "p1", "GcpProjectNumber": 1234}}
            }
        }

        descriptor = extract_deployment_info(tree).descriptor

        assert descriptor.gcp_project_id == "p1"
        assert descriptor.gcp_project_number == "1234"
        assert descriptor.provider == CloudProvider.GCP

    @pytest.mark.unit
    def test_hosted_with_identity_is_customer_hosted(self):
        spec = _spec(
            """\
            x-omnistrate-service-plan:
              name: p
            deployment:
              hostedDeployment:
                AzureSubscriptionId: sub-1
                AzureTenantId: tenant-1
            services:
              web:
                image: nginx
            """
        )

        document = classify(spec)

        assert document.model == DeploymentModel.CUSTOMER_HOSTED
        assert document.has_deployment_block


class TestResolveDeploymentModel:
    """Test model resolution from target and declaration."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "target,declared,identity,kind,expected",
        [
            (DeploymentTarget.BYOA, None, False, SpecKind.COMPOSE, DeploymentModel.BYOA),
            (DeploymentTarget.BYOA, DeploymentModel.ON_PREM, False, SpecKind.PLAN, DeploymentModel.ON_PREM),
            (DeploymentTarget.HOSTED, None, False, SpecKind.PLAN, DeploymentModel.HOSTED),
            (DeploymentTarget.HOSTED, None, True, SpecKind.PLAN, DeploymentModel.CUSTOMER_HOSTED),
            (DeploymentTarget.UNKNOWN, None, False, SpecKind.PLAN, DeploymentModel.BYOA),
            (DeploymentTarget.UNKNOWN, None, False, SpecKind.COMPOSE, DeploymentModel.HOSTED),
        ],
    )
    def test_resolution(self, target, declared, identity, kind, expected):
        descriptor = CloudAccountDescriptor(aws_account_id="123456789012" if identity else "")
        assert resolve_deployment_model(target, declared, descriptor, kind) == expected


class TestLoadSpec:
    """Test reading spec files."""

    @pytest.mark.unit
    def test_expands_file_references(self, tmp_path):
        (tmp_path / "values.yaml").write_text("replicas: 2\nimage: redis\n")
        spec_path = tmp_path / "spec.yaml"
        spec_path.write_text(
            "name: plan\n"
            "helm:\n"
            "  values:\n"
            "    {{ $file:values.yaml }}\n"
        )

        document = load_spec(str(spec_path))

        assert document.tree["helm"]["values"] == {"replicas": 2, "image": "redis"}
        assert document.path == str(spec_path)

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(SpecFormatError, match="could not read"):
            load_spec(str(tmp_path / "nope.yaml"))

    @pytest.mark.unit
    def test_invalid_utf8(self, tmp_path):
        spec_path = tmp_path / "spec.yaml"
        spec_path.write_bytes(b"x-omnistrate-service-plan:\n  name: \xff\xfe\n")

        with pytest.raises(SpecFormatError, match="not valid UTF-8") as exc_info:
            load_spec(str(spec_path))

        assert exc_info.value.suggestions == ["Save the spec file with UTF-8 encoding"]
