#!/usr/bin/env python3
"""
CLI Commands Package for omnideploy

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from .deploy import deploy
from .account import account_app
from .instance import instance_app

__all__ = ["deploy", "account_app", "instance_app"]
