#!/usr/bin/env python3
"""
Configuration loader with multi-layer merging for deploy runs.

Layers (low to high priority):
1. System defaults (built-in presets/defaults.json)
2. User file (--config, YAML or JSON)
3. Environment variables (OMNISTRATE_API_URL, OMNISTRATE_TOKEN)
4. User CLI options

The merged dictionary is turned into an explicit DeployConfig that is
passed to every component of the engine.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import json
import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from omnideploy.core.errors import ConfigurationError, create_error_context
from omnideploy.core.polling import PollPolicy
from omnideploy.models import CloudProvider, DeploymentTarget

ENV_API_URL = "OMNISTRATE_API_URL"
ENV_TOKEN = "OMNISTRATE_TOKEN"


@dataclass
class PollSettings:
    """Interval and budget for one poll loop."""

    interval: float = 10.0
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None

    def to_policy(self, **overrides) -> PollPolicy:
        return PollPolicy(
            interval=self.interval,
            max_attempts=self.max_attempts,
            timeout=self.timeout,
            **overrides,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PollSettings":
        return cls(
            interval=float(data.get("interval", 10)),
            max_attempts=data.get("max_attempts"),
            timeout=data.get("timeout"),
        )


@dataclass
class DeployConfig:
    """Everything one deploy invocation needs, resolved up front."""

    spec_path: Optional[str] = None
    service_name: Optional[str] = None
    cloud_provider: Optional[str] = None
    region: Optional[str] = None
    deployment_type: Optional[str] = None
    environment_name: str = "Development"
    environment_type: str = "DEV"
    instance_id: Optional[str] = None
    resource_id: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    wait: bool = False
    interactive: bool = True
    release: bool = True
    release_as_preferred: bool = True
    release_description: Optional[str] = None
    api_base_url: str = ""
    api_token: Optional[str] = None
    api_timeout: float = 60.0
    fallback_regions: Dict[str, str] = field(default_factory=dict)
    account_ready_poll: PollSettings = field(
        default_factory=lambda: PollSettings(interval=10, timeout=600)
    )
    account_instance_poll: PollSettings = field(
        default_factory=lambda: PollSettings(interval=10, max_attempts=60, timeout=600)
    )
    instance_ready_poll: PollSettings = field(
        default_factory=lambda: PollSettings(interval=10, timeout=1800)
    )
    instructions_grace_attempts: int = 3
    instructions_every_attempts: int = 6

    @property
    def target_override(self) -> Optional[DeploymentTarget]:
        """Deployment target requested on the command line, if any."""
        if not self.deployment_type:
            return None
        return DeploymentTarget(self.deployment_type.lower())


class ConfigLoader:
    """Layered configuration loader with preset support."""

    PRESET_DIR = Path(__file__).parent / "presets"

    @classmethod
    def load_preset(cls, preset_path: str = "defaults.json") -> Dict[str, Any]:
        """
        Load a preset JSON file.

        Args:
            preset_path: Relative path to preset file from PRESET_DIR

        Returns:
            Dict containing preset configuration, or empty dict if not found
        """
        full_path = cls.PRESET_DIR / preset_path
        if not full_path.exists():
            return {}

        with open(full_path, "r") as f:
            return json.load(f)

    @classmethod
    def deep_merge(cls, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries. Override wins conflicts.
        Nested dicts are merged, lists/primitives are replaced.
        None values in override are ignored.
        """
        result = deepcopy(base)

        for key, value in override.items():
            if value is None:
                continue
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls.deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    @classmethod
    def load_file(cls, path: str) -> Dict[str, Any]:
        """Load a user config file (YAML or JSON, chosen by extension)."""
        config_path = Path(path)
        context = create_error_context(operation="load_config", file_path=str(config_path))

        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}",
                context=context,
                suggestions=["Check the --config path"],
            )

        try:
            with open(config_path, "r") as f:
                if config_path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not parse config file {config_path}: {e}",
                context=context,
                cause=e,
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping at the top level",
                context=context,
            )
        return data

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        environ = os.environ if environ is None else environ
        api = {}
        if environ.get(ENV_API_URL):
            api["base_url"] = environ[ENV_API_URL]
        if environ.get(ENV_TOKEN):
            api["token"] = environ[ENV_TOKEN]
        return {"api": api} if api else {}

    @classmethod
    def load(
        cls,
        cli_options: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> DeployConfig:
        """
        Build a DeployConfig from all layers.

        Args:
            cli_options: Nested dict from CLI options (None values are ignored)
            config_file: Optional user config file path
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Validated DeployConfig
        """
        merged = cls.load_preset()
        if config_file:
            merged = cls.deep_merge(merged, cls.load_file(config_file))
        merged = cls.deep_merge(merged, cls.from_environment(environ))
        if cli_options:
            merged = cls.deep_merge(merged, cli_options)

        config = cls.to_deploy_config(merged)
        cls.validate(config)
        return config

    @classmethod
    def to_deploy_config(cls, merged: Dict[str, Any]) -> DeployConfig:
        api = merged.get("api", {})
        environment = merged.get("environment", {})
        polling = merged.get("polling", {})
        release = merged.get("release", {})
        deploy = merged.get("deploy", {})
        account_instance = polling.get("account_instance", {})

        return DeployConfig(
            spec_path=deploy.get("spec_path"),
            service_name=deploy.get("service_name"),
            cloud_provider=deploy.get("cloud_provider"),
            region=deploy.get("region"),
            deployment_type=deploy.get("deployment_type"),
            environment_name=environment.get("name", "Development"),
            environment_type=str(environment.get("type", "DEV")).upper(),
            instance_id=deploy.get("instance_id"),
            resource_id=deploy.get("resource_id"),
            parameters=dict(deploy.get("parameters") or {}),
            dry_run=bool(deploy.get("dry_run", False)),
            wait=bool(deploy.get("wait", False)),
            interactive=bool(deploy.get("interactive", True)),
            release=bool(release.get("release", True)),
            release_as_preferred=bool(release.get("release_as_preferred", True)),
            release_description=release.get("description"),
            api_base_url=api.get("base_url", ""),
            api_token=api.get("token"),
            api_timeout=float(api.get("timeout", 60.0)),
            fallback_regions=dict(merged.get("fallback_regions", {})),
            account_ready_poll=PollSettings.from_dict(polling.get("account_ready", {})),
            account_instance_poll=PollSettings.from_dict(account_instance),
            instance_ready_poll=PollSettings.from_dict(polling.get("instance_ready", {})),
            instructions_grace_attempts=int(account_instance.get("instructions_grace_attempts", 3)),
            instructions_every_attempts=int(account_instance.get("instructions_every_attempts", 6)),
        )

    @classmethod
    def validate(cls, config: DeployConfig) -> None:
        """
        Validate a DeployConfig.

        Raises:
            ConfigurationError: On unknown provider/deployment type or bad poll settings
        """
        context = create_error_context(operation="validate_config", component="ConfigLoader")

        if config.cloud_provider:
            try:
                CloudProvider.parse(config.cloud_provider)
            except ValueError as e:
                raise ConfigurationError(str(e), context=context) from e

        if config.deployment_type:
            valid = [t.value for t in DeploymentTarget if t != DeploymentTarget.UNKNOWN]
            if config.deployment_type.lower() not in valid:
                raise ConfigurationError(
                    f"Unknown deployment type '{config.deployment_type}'",
                    context=context,
                    suggestions=[f"Use one of: {', '.join(valid)}"],
                )

        for name in ("account_ready_poll", "account_instance_poll", "instance_ready_poll"):
            settings = getattr(config, name)
            if settings.interval <= 0:
                raise ConfigurationError(
                    f"polling interval for {name} must be positive", context=context
                )
            if settings.max_attempts is None and settings.timeout is None:
                raise ConfigurationError(
                    f"polling for {name} needs max_attempts or timeout", context=context
                )
            if (settings.max_attempts is not None and settings.max_attempts <= 0) or (
                settings.timeout is not None and settings.timeout <= 0
            ):
                raise ConfigurationError(
                    f"polling limits for {name} must be positive", context=context
                )
