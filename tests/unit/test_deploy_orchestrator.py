#!/usr/bin/env python3
"""
Unit tests for DeployOrchestrator.

Runs the full workflow against the in-memory control plane.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import base64
import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console

from omnideploy.core.errors import ConfigurationError, SpecFormatError
from omnideploy.models import (
    CloudAccountDescriptor,
    CloudProvider,
    DeploymentModel,
    DeploymentTarget,
    InstanceAction,
)
from omnideploy.orchestration.deploy_orchestrator import (
    DeployOrchestrator,
    descriptor_from_accounts,
    reconcile_target,
)
from omnideploy.orchestration.instance_manager import InstanceOutcome
from omnideploy.spec.classifier import classify


@pytest.fixture
def make_orchestrator(fake_client, deploy_config, fake_clock, scripted_prompter):
    def _make(answers=None, interactive=True):
        return DeployOrchestrator(
            deploy_config,
            fake_client,
            scripted_prompter(answers, interactive=interactive),
            console=Console(file=io.StringIO()),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

    return _make


class TestReconcileTarget:
    """Command-line deployment type against the spec."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "spec_target,cli_target,expected,warns",
        [
            (DeploymentTarget.BYOA, None, DeploymentTarget.BYOA, False),
            (DeploymentTarget.UNKNOWN, DeploymentTarget.HOSTED, DeploymentTarget.HOSTED, False),
            (DeploymentTarget.BYOA, DeploymentTarget.BYOA, DeploymentTarget.BYOA, False),
            (DeploymentTarget.BYOA, DeploymentTarget.HOSTED, DeploymentTarget.HOSTED, True),
        ],
    )
    def test_cli_wins(self, spec_target, cli_target, expected, warns):
        target, warning = reconcile_target(spec_target, cli_target)

        assert target == expected
        assert (warning is not None) == warns


class TestDescriptorFromAccounts:
    """Identity fields are filled from resolved accounts."""

    @pytest.mark.unit
    def test_fills_missing_fields(self, fake_client):
        account = fake_client.add_account(
            CloudProvider.AWS,
            aws_account_id="123456789012",
            aws_bootstrap_role_arn="arn:aws:iam::123456789012:role/omnistrate-bootstrap-role",
        )

        merged = descriptor_from_accounts(CloudAccountDescriptor(), [account])

        assert merged.aws_account_id == "123456789012"
        assert merged.provider == CloudProvider.AWS

    @pytest.mark.unit
    def test_declared_fields_kept(self, fake_client):
        account = fake_client.add_account(CloudProvider.AWS, aws_account_id="999999999999")
        base = CloudAccountDescriptor(aws_account_id="123456789012")

        merged = descriptor_from_accounts(base, [account])

        assert merged.aws_account_id == "123456789012"
        assert merged is not base


class TestExecute:
    """End-to-end runs of the deploy workflow."""

    @pytest.mark.unit
    def test_first_run_creates_everything(self, fake_client, make_orchestrator, compose_spec_bytes):
        summary = make_orchestrator().execute(classify(compose_spec_bytes))

        assert summary.instance_action == InstanceAction.CREATED
        assert summary.instance_id is not None
        assert summary.plan_name == "starter"
        assert summary.deployment_model == "hostedDeployment"
        assert summary.account_config_ids == []
        assert summary.version == "1.0"
        assert fake_client.called("list_accounts") == 0
        assert fake_client.creations == {
            "service": 1,
            "environment": 1,
            "service_api": 1,
            "service_model": 1,
            "product_tier": 1,
            "instance": 1,
        }

    @pytest.mark.unit
    def test_second_run_upgrades(self, fake_client, make_orchestrator, compose_spec_bytes):
        """Re-running the same spec upgrades the instance to the new version."""
        first = make_orchestrator().execute(classify(compose_spec_bytes))

        second = make_orchestrator().execute(classify(compose_spec_bytes))

        assert second.instance_action == InstanceAction.UPGRADED
        assert second.instance_id == first.instance_id
        assert fake_client.patches == [(first.instance_id, {}, "2.0")]
        assert fake_client.creations["instance"] == 1
        assert fake_client.creations["service"] == 1

    @pytest.mark.unit
    def test_dry_run_creates_no_instance(self, fake_client, deploy_config, make_orchestrator, compose_spec_bytes):
        deploy_config.dry_run = True

        summary = make_orchestrator().execute(classify(compose_spec_bytes))

        assert summary.instance_action == InstanceAction.DRY_RUN
        assert summary.dry_run is True
        assert fake_client.creations["instance"] == 0
        assert fake_client.build_requests[0][1].dry_run is True

    @pytest.mark.unit
    def test_cli_deployment_type_overrides_spec(
        self, fake_client, deploy_config, make_orchestrator, byoa_compose_spec_bytes
    ):
        fake_client.add_account(CloudProvider.AWS, aws_account_id="123456789012")
        deploy_config.deployment_type = "hosted"

        summary = make_orchestrator().execute(classify(byoa_compose_spec_bytes))

        assert summary.target == "hosted"
        assert summary.deployment_model == "customerHostedDeployment"
        assert any("overrides 'byoa'" in w for w in summary.warnings)

    @pytest.mark.unit
    def test_plan_spec_gets_deployment_block(
        self, fake_client, deploy_config, make_orchestrator, plan_spec_bytes
    ):
        """A plan spec without deployment is built with the linked account's block."""
        account = fake_client.add_account(
            CloudProvider.AWS,
            aws_account_id="123456789012",
            aws_bootstrap_role_arn="arn:aws:iam::123456789012:role/omnistrate-bootstrap-role",
        )
        deploy_config.service_name = "helm-app"
        orchestrator = make_orchestrator()
        outcome = InstanceOutcome(action=InstanceAction.CREATED, instance_ids=["instance-x"], version="1.0")

        with patch.object(orchestrator.instance_manager, "run", return_value=outcome) as run:
            summary = orchestrator.execute(classify(plan_spec_bytes))

        assert summary.account_config_ids == [account.id]
        assert summary.deployment_model == "byoaDeployment"
        method, request = fake_client.build_requests[0]
        assert method == "build_from_plan_spec"
        built = base64.b64decode(request.file_content).decode("utf-8")
        assert "byoaDeployment" in built
        assert "123456789012" in built
        assert fake_client.model_requests[0][2:] == ("BYOA", [account.id])
        assert run.call_args[0][1] is DeploymentModel.BYOA

    @pytest.mark.unit
    def test_missing_service_name(self, deploy_config, make_orchestrator, compose_spec_bytes):
        deploy_config.service_name = None

        with pytest.raises(ConfigurationError, match="No service name"):
            make_orchestrator().execute(classify(compose_spec_bytes))

    @pytest.mark.unit
    def test_spec_loaded_from_path(self, fake_client, deploy_config, make_orchestrator, spec_dir):
        deploy_config.spec_path = str(spec_dir / "compose.yaml")

        summary = make_orchestrator().execute()

        assert summary.spec_kind == "DockerCompose"
        assert fake_client.build_requests[0][0] == "build_from_compose_spec"

    @pytest.mark.unit
    def test_missing_spec_file(self, deploy_config, make_orchestrator, tmp_path):
        deploy_config.spec_path = str(tmp_path / "absent.yaml")

        with pytest.raises(SpecFormatError):
            make_orchestrator().execute()

    @pytest.mark.unit
    def test_wait_for_new_instance(self, fake_client, deploy_config, make_orchestrator, compose_spec_bytes):
        deploy_config.wait = True
        orchestrator = make_orchestrator()

        with patch.object(orchestrator.instance_manager, "wait_for_instance_ready") as wait:
            summary = orchestrator.execute(classify(compose_spec_bytes))

        wait.assert_called_once()
        assert wait.call_args[0][1] == summary.instance_id

    @pytest.mark.unit
    def test_summary_is_json_serializable(self, make_orchestrator, compose_spec_bytes):
        summary = make_orchestrator().execute(classify(compose_spec_bytes))

        data = json.loads(json.dumps(summary.to_dict()))

        assert data["instance_action"] == "created"
        assert data["hierarchy"]["product_tier_id"] == summary.hierarchy.product_tier_id
