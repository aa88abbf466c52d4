#!/usr/bin/env python3
"""
Spec handling for omnideploy.

- classifier: parse a spec and decide its kind, target and account identity
- deployment_block: generate and inject deployment sections
- templating: expand {{ $file:path }} references

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .classifier import SpecDocument, SpecKind, classify, load_spec
from .deployment_block import generate_deployment_block, inject_deployment_block

__all__ = [
    "SpecDocument",
    "SpecKind",
    "classify",
    "load_spec",
    "generate_deployment_block",
    "inject_deployment_block",
]
