#!/usr/bin/env python3
"""
Unified error handling system for omnideploy.

Provides the error taxonomy raised by the deployment engine, structured
error context, and a Rich-based handler that renders errors with
remediation suggestions.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


class ErrorCategory(Enum):
    """Error categories for classification and display."""

    VALIDATION = "validation"
    CONNECTION = "connection"
    AUTHENTICATION = "authentication"
    RUNTIME = "runtime"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    SPEC = "spec"
    ACCOUNT = "account"
    HIERARCHY = "hierarchy"
    BUILD = "build"
    INSTANCE = "instance"


@dataclass
class ErrorContext:
    """Context information attached to an error."""

    operation: Optional[str] = None
    phase: Optional[str] = None
    component: Optional[str] = None
    service_name: Optional[str] = None
    resource_id: Optional[str] = None
    file_path: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class DeployError(Exception):
    """Base exception for all omnideploy errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        context: Optional[ErrorContext] = None,
        recoverable: bool = False,
        suggestions: Optional[List[str]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext()
        self.recoverable = recoverable
        self.suggestions = suggestions or []
        self.cause = cause

    def __str__(self) -> str:
        return self.message


# Generic errors

class ValidationError(DeployError):
    """Invalid user input or arguments."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message, ErrorCategory.VALIDATION, context, recoverable=True, **kwargs
        )


class ConnectionError(DeployError):
    """Control plane unreachable or network failure."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message, ErrorCategory.CONNECTION, context, recoverable=True, **kwargs
        )


class AuthenticationError(DeployError):
    """Credentials rejected by the control plane."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            [
                "Check that OMNISTRATE_TOKEN is set and has not expired",
                "Pass --token or set api.token in the config file",
            ],
        )
        super().__init__(
            message, ErrorCategory.AUTHENTICATION, context, recoverable=True, **kwargs
        )


class ConfigurationError(DeployError):
    """Invalid configuration file or settings."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message, ErrorCategory.CONFIGURATION, context, recoverable=True, **kwargs
        )


class TimeoutError(DeployError):
    """Operation timed out."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message, ErrorCategory.TIMEOUT, context, recoverable=True, **kwargs
        )


class RuntimeError(DeployError):
    """Unexpected failure reported by the control plane."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        super().__init__(
            message, ErrorCategory.RUNTIME, context, recoverable=False, **kwargs
        )


class RemoteNotFoundError(RuntimeError):
    """The control plane reported that an entity does not exist (HTTP 404)."""


# Deployment engine errors

class SpecFormatError(DeployError):
    """Spec document is malformed or lacks required metadata."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            [
                "Add at least one 'x-omnistrate-' extension (for example "
                "'x-omnistrate-service-plan') to the compose file",
                "See the compose spec reference for the list of supported tags",
            ],
        )
        super().__init__(
            message, ErrorCategory.SPEC, context, recoverable=True, **kwargs
        )


class AccountNotLinkedError(DeployError):
    """No linked account matches the identity declared in the spec."""

    def __init__(
        self,
        message: str,
        identity: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        kwargs.setdefault(
            "suggestions",
            ["Link the account using 'omnideploy account create'"],
        )
        super().__init__(
            message, ErrorCategory.ACCOUNT, context, recoverable=True, **kwargs
        )
        self.identity = identity


class AccountNotReadyError(DeployError):
    """The matching account exists but is not READY."""

    def __init__(
        self,
        message: str,
        status: Optional[str] = None,
        account_id: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        if "suggestions" not in kwargs:
            target = account_id or "<account-id>"
            kwargs["suggestions"] = [
                f"Check the account status with 'omnideploy account describe {target}'",
                "Complete the account setup steps and retry once the account is READY",
            ]
        super().__init__(
            message, ErrorCategory.ACCOUNT, context, recoverable=True, **kwargs
        )
        self.status = status
        self.account_id = account_id


class NoReadyAccountError(DeployError):
    """Accounts exist but none of them is READY."""

    def __init__(
        self,
        message: str,
        status_breakdown: Optional[Dict[str, int]] = None,
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        kwargs.setdefault(
            "suggestions",
            [
                "List accounts with 'omnideploy account list' and finish verifying one",
                "Or link a new account using 'omnideploy account create'",
            ],
        )
        super().__init__(
            message, ErrorCategory.ACCOUNT, context, recoverable=True, **kwargs
        )
        self.status_breakdown = status_breakdown or {}


class HierarchyResolutionError(DeployError):
    """A find-or-create step of the service hierarchy failed."""

    def __init__(
        self,
        message: str,
        level: str,
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        kwargs.setdefault(
            "suggestions",
            [
                "Re-run the command; entities created so far are reused",
                "Inspect the partially created service in the Omnistrate console",
            ],
        )
        super().__init__(
            message, ErrorCategory.HIERARCHY, context, recoverable=True, **kwargs
        )
        self.level = level


class MissingAccountConfigError(DeployError):
    """Deployment model needs linked accounts but none were resolved."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            [
                "Add a deployment section with AwsAccountId, GcpProjectId, "
                "AzureSubscriptionId or OCITenancyId to the spec",
                "Link the account using 'omnideploy account create'",
            ],
        )
        super().__init__(
            message, ErrorCategory.ACCOUNT, context, recoverable=True, **kwargs
        )


class ResourceAmbiguityError(DeployError):
    """Several resources qualify and none was chosen."""

    def __init__(
        self,
        message: str,
        candidates: Optional[List[str]] = None,
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        kwargs.setdefault(
            "suggestions",
            ["Pass --resource-id to pick one of the plan's resources"],
        )
        super().__init__(
            message, ErrorCategory.INSTANCE, context, recoverable=True, **kwargs
        )
        self.candidates = candidates or []


class ResourceNotFoundError(DeployError):
    """The requested resource is not part of the plan."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            ["Run 'omnideploy deploy --dry-run' to list the plan's resources"],
        )
        super().__init__(
            message, ErrorCategory.INSTANCE, context, recoverable=True, **kwargs
        )


class MissingParameterError(DeployError):
    """Required instance parameters have neither a value nor a default."""

    def __init__(
        self,
        message: str,
        missing_keys: List[str],
        context: Optional[ErrorContext] = None,
        **kwargs,
    ):
        if "suggestions" not in kwargs:
            keys = ", ".join(missing_keys)
            kwargs["suggestions"] = [
                f"Provide values for {keys} with --param (JSON) or --param-file"
            ]
        super().__init__(
            message, ErrorCategory.INSTANCE, context, recoverable=True, **kwargs
        )
        self.missing_keys = list(missing_keys)


class InstanceNotFoundError(DeployError):
    """The requested instance does not exist for this service and plan."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            ["List existing instances with 'omnideploy instance list'"],
        )
        super().__init__(
            message, ErrorCategory.INSTANCE, context, recoverable=True, **kwargs
        )


class VerificationTimeoutError(DeployError):
    """Polling did not reach a terminal state within its budget."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, **kwargs):
        kwargs.setdefault(
            "suggestions",
            ["Check progress with 'omnideploy instance wait' and retry later"],
        )
        super().__init__(
            message, ErrorCategory.TIMEOUT, context, recoverable=True, **kwargs
        )


_CATEGORY_TITLES = {
    ErrorCategory.VALIDATION: "⚠️  Validation Error",
    ErrorCategory.CONNECTION: "🔌 Connection Error",
    ErrorCategory.AUTHENTICATION: "🔐 Authentication Error",
    ErrorCategory.RUNTIME: "💥 Runtime Error",
    ErrorCategory.CONFIGURATION: "⚙️  Configuration Error",
    ErrorCategory.TIMEOUT: "⏱️  Timeout Error",
    ErrorCategory.SPEC: "📄 Spec Error",
    ErrorCategory.ACCOUNT: "☁️  Account Error",
    ErrorCategory.HIERARCHY: "🧱 Hierarchy Error",
    ErrorCategory.BUILD: "🔨 Build Error",
    ErrorCategory.INSTANCE: "🚀 Instance Error",
}


class ErrorHandler:
    """Renders errors to a Rich console and logs them."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None,
        show_traceback: bool = False,
    ) -> None:
        """Display an error panel and log it."""
        if isinstance(error, DeployError):
            title = _CATEGORY_TITLES.get(error.category, "❌ Error")
            context = context or error.context
            suggestions = error.suggestions
            log_level = logging.WARNING if error.recoverable else logging.ERROR
        else:
            title = f"❌ {type(error).__name__}"
            suggestions = []
            log_level = logging.ERROR

        body = Text()
        body.append(str(error), style="bold red")

        if context is not None:
            details = [
                (label, value)
                for label, value in (
                    ("Operation", context.operation),
                    ("Phase", context.phase),
                    ("Component", context.component),
                    ("Service", context.service_name),
                    ("Resource", context.resource_id),
                    ("File", context.file_path),
                )
                if value
            ]
            if details:
                body.append("\n")
            for label, value in details:
                body.append(f"\n{label}: ", style="dim")
                body.append(str(value))
            if context.additional_info:
                for key, value in context.additional_info.items():
                    body.append(f"\n{key}: ", style="dim")
                    body.append(str(value))

        if suggestions:
            body.append("\n\n💡 Suggestions:", style="bold cyan")
            for suggestion in suggestions:
                body.append(f"\n  • {suggestion}")

        self.console.print(Panel(body, title=title, border_style="red", expand=False))
        self.logger.log(log_level, f"{title.strip()}: {error}")

        if show_traceback or self.verbose:
            self.console.print_exception()


_error_handler: Optional[ErrorHandler] = None


def set_error_handler(handler: ErrorHandler) -> None:
    """Install the global error handler."""
    global _error_handler
    _error_handler = handler


def get_error_handler() -> Optional[ErrorHandler]:
    """Return the global error handler, if one is installed."""
    return _error_handler


def handle_error(
    error: Exception,
    context: Optional[ErrorContext] = None,
    show_traceback: bool = False,
) -> None:
    """Route an error through the global handler, or log it if none is set."""
    if _error_handler is not None:
        _error_handler.handle_error(error, context=context, show_traceback=show_traceback)
    else:
        logging.error(f"{type(error).__name__}: {error}")


def create_error_context(**kwargs) -> ErrorContext:
    """Convenience constructor for ErrorContext."""
    return ErrorContext(**kwargs)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DeployError",
    "ValidationError",
    "ConnectionError",
    "AuthenticationError",
    "ConfigurationError",
    "TimeoutError",
    "RuntimeError",
    "RemoteNotFoundError",
    "SpecFormatError",
    "AccountNotLinkedError",
    "AccountNotReadyError",
    "NoReadyAccountError",
    "HierarchyResolutionError",
    "MissingAccountConfigError",
    "ResourceAmbiguityError",
    "ResourceNotFoundError",
    "MissingParameterError",
    "InstanceNotFoundError",
    "VerificationTimeoutError",
    "ErrorHandler",
    "set_error_handler",
    "get_error_handler",
    "handle_error",
    "create_error_context",
]
