#!/usr/bin/env python3
"""
Constants and configuration for omnideploy CLI

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""


# Exit codes
class ExitCode:
    """Exit codes for CLI commands."""

    SUCCESS = 0
    FAILURE = 1
    INVALID_ARGS = 2
    SPEC_ERROR = 3
    ACCOUNT_ERROR = 4
    HIERARCHY_ERROR = 5
    INSTANCE_ERROR = 6


# Valid values for validation
VALID_CLOUD_PROVIDERS = ["aws", "gcp", "azure", "oci"]
VALID_DEPLOYMENT_TYPES = ["hosted", "byoa"]
VALID_OUTPUT_FORMATS = ["table", "json"]

# Probed in order when no spec path is given
DEFAULT_SPEC_FILES = [
    "compose.yaml",
    "compose.yml",
    "docker-compose.yaml",
    "docker-compose.yml",
    "spec.yaml",
]
DEFAULT_SERVICE_NAME = "my-service"
