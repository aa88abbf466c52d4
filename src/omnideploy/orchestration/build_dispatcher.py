#!/usr/bin/env python3
"""
Build Dispatcher - submits a spec build to the control plane.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import base64
import logging
from typing import Optional

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.config import DeployConfig
from omnideploy.core.errors import (
    DeployError,
    ErrorCategory,
    create_error_context,
)
from omnideploy.models import BuildRequest, BuildResult, ServiceHierarchy
from omnideploy.spec.classifier import SpecDocument, SpecKind

logger = logging.getLogger(__name__)


class BuildDispatcher:
    """Encodes a spec and calls the build operation matching its kind."""

    def __init__(self, client: ControlPlaneClient):
        self.client = client

    def build_request(
        self, document: SpecDocument, service_name: str, config: DeployConfig
    ) -> BuildRequest:
        return BuildRequest(
            name=service_name,
            file_content=base64.b64encode(document.raw).decode("ascii"),
            description=config.release_description,
            environment=config.environment_name,
            environment_type=config.environment_type,
            release=config.release,
            release_as_preferred=config.release_as_preferred,
            release_version_name=config.release_description,
            dry_run=config.dry_run,
        )

    def dispatch(
        self,
        document: SpecDocument,
        service_name: str,
        config: DeployConfig,
        hierarchy: Optional[ServiceHierarchy] = None,
    ) -> BuildResult:
        """
        Submit the build.

        Ids missing from the build response are taken from the resolved
        hierarchy when one is given.

        Raises:
            DeployError: BUILD category when the control plane rejects the build
        """
        request = self.build_request(document, service_name, config)
        logger.info(f"Building service '{service_name}' from {document.kind.value} spec")

        try:
            if document.kind == SpecKind.PLAN:
                result = self.client.build_from_plan_spec(request)
            else:
                result = self.client.build_from_compose_spec(request)
        except DeployError as e:
            if e.category != ErrorCategory.RUNTIME:
                raise
            raise DeployError(
                f"Build of service '{service_name}' failed: {e}",
                ErrorCategory.BUILD,
                context=create_error_context(
                    operation="build_service",
                    service_name=service_name,
                    file_path=document.path,
                ),
                suggestions=[
                    "Run with --dry-run to validate the spec without releasing",
                    "Check the spec against the control plane's validation message above",
                ],
                cause=e,
            ) from e

        if hierarchy is not None:
            result.service_id = result.service_id or hierarchy.service_id
            result.environment_id = result.environment_id or hierarchy.environment_id
            result.product_tier_id = result.product_tier_id or hierarchy.product_tier_id

        for resource, reason in result.undefined_resources.items():
            logger.warning(f"Resource '{resource}' is not defined: {reason}")

        logger.info(
            f"Build complete: service {result.service_id}, "
            f"environment {result.environment_id}, plan {result.product_tier_id}"
        )
        return result
