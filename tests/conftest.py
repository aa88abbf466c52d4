"""
Pytest configuration and shared fixtures for omnideploy tests.

Provides an in-memory control plane, scripted prompters, a fake clock
for poll loops, and sample spec documents.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import textwrap

import pytest

from omnideploy.core.config import DeployConfig, PollSettings
from omnideploy.core.prompter import ScriptedPrompter
from tests.fixtures.fake_control_plane import FakeControlPlane


# ============================================================================
# Clock and Configuration Fixtures
# ============================================================================

class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Fake clock; pass fake_clock.sleep and fake_clock as sleep/clock."""
    return FakeClock()


@pytest.fixture
def deploy_config():
    """DeployConfig with short, deterministic poll budgets."""
    return DeployConfig(
        service_name="my-service",
        api_base_url="https://api.example.test",
        api_token="token",
        fallback_regions={"aws": "ap-south-1", "gcp": "us-central1", "azure": "eastus2"},
        account_ready_poll=PollSettings(interval=10, timeout=60),
        account_instance_poll=PollSettings(interval=10, max_attempts=12, timeout=600),
        instance_ready_poll=PollSettings(interval=10, timeout=120),
    )


# ============================================================================
# Control Plane and Prompter Fixtures
# ============================================================================

@pytest.fixture
def fake_client():
    """Empty in-memory control plane."""
    return FakeControlPlane()


@pytest.fixture
def scripted_prompter():
    """Factory for ScriptedPrompter with the given answers."""

    def _make(answers=None, interactive=True):
        return ScriptedPrompter(answers or {}, interactive=interactive)

    return _make


# ============================================================================
# Sample Specs
# ============================================================================

COMPOSE_SPEC = textwrap.dedent(
    """\
    version: "3.9"
    x-omnistrate-service-plan:
      name: starter
      tenancyType: OMNISTRATE_DEDICATED_TENANCY
    services:
      web:
        image: nginx:latest
        ports:
          - "80:80"
    """
)

BYOA_COMPOSE_SPEC = textwrap.dedent(
    """\
    x-omnistrate-service-plan:
      name: byoa-plan
      deployment:
        byoaDeployment:
          AwsAccountId: "123456789012"
          AwsBootstrapRoleAccountArn: arn:aws:iam::123456789012:role/omnistrate-bootstrap-role
    services:
      web:
        image: nginx:latest
    """
)

PLAN_SPEC = textwrap.dedent(
    """\
    name: helm-plan
    services:
      - name: redis
        helmChartConfiguration:
          chartName: redis
          chartVersion: 19.0.0
          chartRepoName: bitnami
          chartRepoURL: https://charts.bitnami.com/bitnami
    """
)


@pytest.fixture
def compose_spec_bytes():
    return COMPOSE_SPEC.encode("utf-8")


@pytest.fixture
def byoa_compose_spec_bytes():
    return BYOA_COMPOSE_SPEC.encode("utf-8")


@pytest.fixture
def plan_spec_bytes():
    return PLAN_SPEC.encode("utf-8")


@pytest.fixture
def spec_dir(tmp_path):
    """Directory named like a service, holding a compose.yaml."""
    directory = tmp_path / "My Service"
    directory.mkdir()
    (directory / "compose.yaml").write_text(COMPOSE_SPEC)
    return directory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (may be slow)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as fast unit tests"
    )
