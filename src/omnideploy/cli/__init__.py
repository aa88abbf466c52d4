#!/usr/bin/env python3
"""
CLI Package for omnideploy

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .app import app, cli_main
from .constants import ExitCode, VALID_CLOUD_PROVIDERS, VALID_DEPLOYMENT_TYPES
from .utils import (
    setup_logging,
    exit_code_for,
    sanitize_service_name,
    find_default_spec,
    default_service_name,
    display_summary_table,
)
from .validators import validate_parameters

__all__ = [
    "app",
    "cli_main",
    "ExitCode",
    "VALID_CLOUD_PROVIDERS",
    "VALID_DEPLOYMENT_TYPES",
    "setup_logging",
    "exit_code_for",
    "sanitize_service_name",
    "find_default_spec",
    "default_service_name",
    "display_summary_table",
    "validate_parameters",
]
