"""Test the CLI module.

This module tests the Typer command-line interface end to end with
CliRunner. Control-plane access is replaced by the in-memory fake, so
no command talks to a real API.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

# built-in modules
import importlib
import json
from unittest.mock import patch

# third-party modules
import pytest
from typer.testing import CliRunner

# project modules
from omnideploy import __version__
from omnideploy.cli import ExitCode, app, cli_main
from omnideploy.core.errors import AccountNotLinkedError, VerificationTimeoutError
from omnideploy.models import CloudProvider, Instance, InstanceStatus
from tests.fixtures.fake_control_plane import FakeControlPlane


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's control-plane settings out of the tests."""
    monkeypatch.delenv("OMNISTRATE_TOKEN", raising=False)
    monkeypatch.delenv("OMNISTRATE_API_URL", raising=False)


class TestMainApp:
    """Test the top-level app."""

    @pytest.mark.unit
    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == ExitCode.SUCCESS
        assert __version__ in result.output

    @pytest.mark.unit
    def test_help_lists_commands(self, runner):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == ExitCode.SUCCESS
        for command in ("deploy", "account", "instance"):
            assert command in result.output

    @pytest.mark.unit
    def test_entry_point_maps_escaped_errors(self):
        """Typed errors that escape a command still get their exit code."""
        entry = importlib.import_module("omnideploy.cli.app")

        with patch.object(entry, "app", side_effect=AccountNotLinkedError("no account")), patch.object(
            entry, "handle_error"
        ) as handle:
            with pytest.raises(SystemExit) as exc_info:
                cli_main()

        assert exc_info.value.code == ExitCode.ACCOUNT_ERROR
        handle.assert_called_once()


class TestDeployCommand:
    """Test the deploy command."""

    @pytest.mark.unit
    def test_deploy_creates_instance(self, runner, spec_dir):
        fake = FakeControlPlane()

        with patch("omnideploy.cli.commands.deploy.create_client", return_value=fake):
            result = runner.invoke(
                app,
                ["deploy", str(spec_dir / "compose.yaml"), "--non-interactive", "--output", "json"],
            )

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert fake.creations["instance"] == 1
        assert fake.closed is True
        assert [s.name for s in fake.services] == ["my-service"]
        assert '"instance_action": "created"' in result.output

    @pytest.mark.unit
    def test_deploy_dry_run_table(self, runner, spec_dir):
        fake = FakeControlPlane()

        with patch("omnideploy.cli.commands.deploy.create_client", return_value=fake):
            result = runner.invoke(
                app,
                ["deploy", str(spec_dir / "compose.yaml"), "--dry-run", "--service-name", "web-app"],
            )

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert fake.creations["instance"] == 0
        assert "Dry run complete" in result.output

    @pytest.mark.unit
    def test_invalid_param_json(self, runner, spec_dir):
        with patch("omnideploy.cli.commands.deploy.create_client") as create_client:
            result = runner.invoke(
                app, ["deploy", str(spec_dir / "compose.yaml"), "--param", "not json"]
            )

        assert result.exit_code == ExitCode.INVALID_ARGS
        create_client.assert_not_called()

    @pytest.mark.unit
    def test_invalid_cloud_provider(self, runner, spec_dir):
        result = runner.invoke(
            app, ["deploy", str(spec_dir / "compose.yaml"), "--cloud-provider", "mars"]
        )

        assert result.exit_code == ExitCode.INVALID_ARGS
        assert "Invalid cloud provider" in result.output

    @pytest.mark.unit
    def test_missing_token(self, runner, spec_dir):
        result = runner.invoke(app, ["deploy", str(spec_dir / "compose.yaml")])

        assert result.exit_code == ExitCode.FAILURE
        assert "No API token configured" in result.output

    @pytest.mark.unit
    def test_missing_spec_file(self, runner, tmp_path):
        result = runner.invoke(app, ["deploy", str(tmp_path / "absent.yaml"), "--token", "t"])

        assert result.exit_code == ExitCode.SPEC_ERROR

    @pytest.mark.unit
    def test_declared_account_not_linked(self, runner, tmp_path, byoa_compose_spec_bytes):
        spec = tmp_path / "compose.yaml"
        spec.write_bytes(byoa_compose_spec_bytes)

        with patch("omnideploy.cli.commands.deploy.create_client", return_value=FakeControlPlane()):
            result = runner.invoke(app, ["deploy", str(spec), "--non-interactive"])

        assert result.exit_code == ExitCode.ACCOUNT_ERROR


class TestAccountCommands:
    """Test the account sub-commands."""

    @pytest.mark.unit
    def test_list_accounts(self, runner):
        fake = FakeControlPlane()
        fake.add_account(CloudProvider.AWS, aws_account_id="123456789012")
        fake.add_account(CloudProvider.GCP, status="PENDING", gcp_project_id="proj")

        with patch("omnideploy.cli.commands.account.create_client", return_value=fake):
            result = runner.invoke(app, ["account", "list"])

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "ac-1" in result.output
        assert "PENDING" in result.output
        assert fake.called("list_accounts") == len(CloudProvider)

    @pytest.mark.unit
    def test_list_accounts_for_provider(self, runner):
        fake = FakeControlPlane()

        with patch("omnideploy.cli.commands.account.create_client", return_value=fake):
            result = runner.invoke(app, ["account", "list", "--cloud-provider", "gcp"])

        assert result.exit_code == ExitCode.SUCCESS
        assert "No cloud accounts linked" in result.output
        assert fake.calls == [("list_accounts", CloudProvider.GCP)]

    @pytest.mark.unit
    def test_describe_pending_account(self, runner):
        fake = FakeControlPlane()
        account = fake.add_account(CloudProvider.AZURE, status="VERIFYING", azure_subscription_id="sub")

        with patch("omnideploy.cli.commands.account.create_client", return_value=fake):
            result = runner.invoke(app, ["account", "describe", account.id])

        assert result.exit_code == ExitCode.SUCCESS
        assert "Account is VERIFYING" in result.output

    @pytest.mark.unit
    def test_describe_missing_account(self, runner):
        with patch("omnideploy.cli.commands.account.create_client", return_value=FakeControlPlane()):
            result = runner.invoke(app, ["account", "describe", "ac-missing"])

        assert result.exit_code == ExitCode.FAILURE

    @pytest.mark.unit
    def test_create_from_options_without_wait(self, runner):
        fake = FakeControlPlane()

        with patch("omnideploy.cli.commands.account.create_client", return_value=fake):
            result = runner.invoke(
                app, ["account", "create", "--aws-account-id", "123456789012", "--no-wait"]
            )

        assert result.exit_code == ExitCode.SUCCESS, result.output
        request = fake.account_requests[0]
        assert request.provider == CloudProvider.AWS
        assert request.aws_bootstrap_role_arn == (
            "arn:aws:iam::123456789012:role/omnistrate-bootstrap-role"
        )
        assert fake.called("get_org_id") == 0

    @pytest.mark.unit
    def test_create_with_invalid_identity(self, runner):
        with patch("omnideploy.cli.commands.account.create_client", return_value=FakeControlPlane()):
            result = runner.invoke(app, ["account", "create", "--gcp-project-id", "proj"])

        assert result.exit_code == ExitCode.INVALID_ARGS


class TestInstanceCommands:
    """Test the instance sub-commands."""

    OPTIONS = ["--service-id", "s-1", "--environment-id", "se-1", "--token", "t"]

    @pytest.mark.unit
    def test_list_hides_account_instances(self, runner):
        fake = FakeControlPlane()
        hierarchy = fake.add_plan("web-app", "starter")
        workload = fake.add_instance(hierarchy)
        fake.add_instance(hierarchy, resource_id="r-injectedaccountconfig-1", status="READY")

        with patch("omnideploy.cli.commands.instance.create_client", return_value=fake):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "list",
                    "--service-id",
                    hierarchy.service_id,
                    "--environment-id",
                    hierarchy.environment_id,
                    "--plan-id",
                    hierarchy.product_tier_id,
                ],
            )

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert workload.id in result.output
        assert "(account)" not in result.output

    @pytest.mark.unit
    def test_wait_success(self, runner):
        ready = Instance(id="instance-1", status=InstanceStatus.RUNNING, raw_status="RUNNING")

        with patch("omnideploy.cli.commands.instance.create_client", return_value=FakeControlPlane()), patch(
            "omnideploy.cli.commands.instance.InstanceManager.wait_for_instance_ready",
            return_value=ready,
        ) as wait:
            result = runner.invoke(app, ["instance", "wait", "instance-1"] + self.OPTIONS)

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "Instance instance-1 is RUNNING" in result.output
        hierarchy, instance_id = wait.call_args[0]
        assert (hierarchy.service_id, instance_id) == ("s-1", "instance-1")

    @pytest.mark.unit
    def test_wait_timeout(self, runner):
        with patch("omnideploy.cli.commands.instance.create_client", return_value=FakeControlPlane()), patch(
            "omnideploy.cli.commands.instance.InstanceManager.wait_for_instance_ready",
            side_effect=VerificationTimeoutError("Instance instance-1 did not become ready after 3 checks"),
        ):
            result = runner.invoke(
                app, ["instance", "wait", "instance-1", "--timeout", "30"] + self.OPTIONS
            )

        assert result.exit_code == ExitCode.INSTANCE_ERROR


class TestJsonOutput:
    """Test the JSON summary shape."""

    @pytest.mark.unit
    def test_summary_keys(self, runner, spec_dir):
        fake = FakeControlPlane()

        with patch("omnideploy.cli.commands.deploy.create_client", return_value=fake), patch(
            "omnideploy.cli.commands.deploy.console.print_json"
        ) as print_json:
            result = runner.invoke(
                app,
                ["deploy", str(spec_dir / "compose.yaml"), "--non-interactive", "-o", "json"],
            )

        assert result.exit_code == ExitCode.SUCCESS, result.output
        summary = json.loads(print_json.call_args[0][0])
        assert summary["service_name"] == "my-service"
        assert summary["plan_name"] == "starter"
        assert summary["hierarchy"]["is_new_service"] is True
