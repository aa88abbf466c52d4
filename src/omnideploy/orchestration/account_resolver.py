#!/usr/bin/env python3
"""
Account Resolver - matches spec account identity against linked accounts.

When the spec names an account, the resolver only ever returns that exact
account (READY) or fails. When it names none, the resolver picks among
linked READY accounts, or onboards a new one interactively and waits for
it to be verified.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from omnideploy.client.base import ControlPlaneClient
from omnideploy.core.config import DeployConfig
from omnideploy.core.errors import (
    AccountNotLinkedError,
    AccountNotReadyError,
    NoReadyAccountError,
    ValidationError,
    create_error_context,
)
from omnideploy.core.polling import PollTimeoutError
from omnideploy.core.prompter import Prompter, PromptUnavailableError
from omnideploy.models import (
    AccountStatus,
    CloudAccount,
    CloudAccountDescriptor,
    CloudProvider,
)
from omnideploy.orchestration.onboarding import (
    ONBOARDING_PROVIDERS,
    SetupInstructions,
    build_account_request,
    collect_credentials,
    prompt_provider,
)

logger = logging.getLogger(__name__)


@dataclass
class AccountResolution:
    """Accounts selected for this deployment."""

    accounts: List[CloudAccount] = field(default_factory=list)
    created: bool = False
    pending: bool = False

    @property
    def account_config_ids(self) -> List[str]:
        return [account.id for account in self.accounts]

    @property
    def providers(self) -> List[CloudProvider]:
        return [account.provider for account in self.accounts]


def _matches(account: CloudAccount, descriptor: CloudAccountDescriptor, provider: CloudProvider) -> bool:
    """Exact identity-tuple match for one provider."""
    if account.provider != provider:
        return False
    if provider == CloudProvider.AWS:
        return account.aws_account_id == descriptor.aws_account_id
    if provider == CloudProvider.GCP:
        if account.gcp_project_id != descriptor.gcp_project_id:
            return False
        if descriptor.gcp_project_number and account.gcp_project_number:
            return account.gcp_project_number == descriptor.gcp_project_number
        return True
    if provider == CloudProvider.AZURE:
        if account.azure_subscription_id != descriptor.azure_subscription_id:
            return False
        if descriptor.azure_tenant_id and account.azure_tenant_id:
            return account.azure_tenant_id == descriptor.azure_tenant_id
        return True
    return account.oci_tenancy_id == descriptor.oci_tenancy_id


def _declared_label(descriptor: CloudAccountDescriptor, provider: CloudProvider) -> str:
    if provider == CloudProvider.AWS:
        return f"AWS account {descriptor.aws_account_id}"
    if provider == CloudProvider.GCP:
        return f"GCP project {descriptor.gcp_project_id}"
    if provider == CloudProvider.AZURE:
        return f"Azure subscription {descriptor.azure_subscription_id}"
    return f"OCI tenancy {descriptor.oci_tenancy_id}"


def status_breakdown(accounts: Sequence[CloudAccount]) -> Dict[str, int]:
    return dict(Counter(a.raw_status or a.status.value for a in accounts))


class AccountResolver:
    """
    Resolves the cloud accounts a deployment runs against.

    Args:
        client: Control-plane client
        prompter: Used for account choice and onboarding
        config: Deploy configuration (poll settings)
        sleep: Injectable sleep for the readiness poll
        clock: Injectable monotonic clock for the readiness poll
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        prompter: Prompter,
        config: DeployConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.prompter = prompter
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self.instructions = SetupInstructions()

    def resolve(
        self,
        descriptor: Optional[CloudAccountDescriptor] = None,
        providers: Optional[Sequence[CloudProvider]] = None,
    ) -> AccountResolution:
        """
        Resolve accounts for a descriptor.

        Args:
            descriptor: Identity from the spec (may be empty)
            providers: Candidate providers when the descriptor is empty

        Raises:
            AccountNotLinkedError: Declared identity has no linked account
            AccountNotReadyError: Declared account is linked but not READY
            NoReadyAccountError: Accounts exist but none is READY
        """
        descriptor = descriptor or CloudAccountDescriptor()
        if descriptor.has_identity():
            return self._resolve_declared(descriptor)
        return self._resolve_undeclared(list(providers or CloudProvider))

    def list_accounts(self, providers: Sequence[CloudProvider]) -> List[CloudAccount]:
        accounts: List[CloudAccount] = []
        for provider in providers:
            accounts.extend(self.client.list_accounts(provider))
        return accounts

    def _resolve_declared(self, descriptor: CloudAccountDescriptor) -> AccountResolution:
        providers = descriptor.providers()
        accounts = self.list_accounts(providers)
        context = create_error_context(operation="resolve_accounts", component="AccountResolver")

        matched: List[CloudAccount] = []
        missing: List[str] = []
        unverified: List[CloudAccount] = []

        for provider in providers:
            account = next((a for a in accounts if _matches(a, descriptor, provider)), None)
            if account is None:
                missing.append(_declared_label(descriptor, provider))
            elif not account.is_ready:
                unverified.append(account)
            else:
                matched.append(account)

        if missing:
            raise AccountNotLinkedError(
                "; ".join(f"{label} is not linked" for label in missing),
                identity=missing[0],
                context=context,
            )

        if unverified:
            account = unverified[0]
            status = account.raw_status or account.status.value
            raise AccountNotReadyError(
                "; ".join(
                    f"{a.identity_label()} (ID: {a.id}) is in status {a.raw_status or a.status.value}"
                    for a in unverified
                ),
                status=status,
                account_id=account.id,
                context=context,
            )

        for account in matched:
            logger.info(f"Using linked {account.identity_label()} (ID: {account.id})")
        return AccountResolution(accounts=matched)

    def _resolve_undeclared(self, providers: List[CloudProvider]) -> AccountResolution:
        accounts = self.list_accounts(providers)

        if not accounts:
            logger.info("No linked cloud accounts found, starting account onboarding")
            onboarding = [p for p in providers if p in ONBOARDING_PROVIDERS] or ONBOARDING_PROVIDERS
            account = self.create_account_interactively(onboarding)
            return AccountResolution(
                accounts=[account], created=True, pending=not account.is_ready
            )

        ready = [a for a in accounts if a.is_ready]

        if not ready:
            breakdown = status_breakdown(accounts)
            summary = ", ".join(f"{status}: {count}" for status, count in sorted(breakdown.items()))
            raise NoReadyAccountError(
                f"Found {len(accounts)} linked account(s) but none is READY ({summary})",
                status_breakdown=breakdown,
                context=create_error_context(
                    operation="resolve_accounts", component="AccountResolver"
                ),
            )

        if len(ready) == 1:
            logger.info(f"Using linked {ready[0].identity_label()} (ID: {ready[0].id})")
            return AccountResolution(accounts=ready)

        labels = [f"{a.name or a.id}: {a.identity_label()} ({a.id})" for a in ready]
        try:
            index = self.prompter.choose("account", "Select the cloud account to deploy into", labels)
        except PromptUnavailableError as e:
            raise ValidationError(
                f"{len(ready)} READY accounts are linked and none was selected",
                context=create_error_context(operation="select_account"),
                suggestions=[
                    "Declare the account in the spec's deployment section "
                    "(AwsAccountId, GcpProjectId, AzureSubscriptionId)",
                    "Or pass --cloud-provider to narrow the candidates",
                ],
            ) from e
        return AccountResolution(accounts=[ready[index]])

    def create_account_interactively(
        self, providers: Optional[List[CloudProvider]] = None
    ) -> CloudAccount:
        """
        Onboard a new account: prompt, create, show setup, wait for READY.

        A readiness timeout is reported as a warning; the last observed
        account state is returned.
        """
        try:
            provider = prompt_provider(self.prompter, providers)
            answers = collect_credentials(self.prompter, provider)
        except PromptUnavailableError as e:
            raise AccountNotLinkedError(
                "No cloud account is linked and account onboarding needs an interactive terminal",
                context=create_error_context(
                    operation="create_account", component="AccountResolver"
                ),
                suggestions=[
                    "Link the account using 'omnideploy account create'",
                    "Or re-run without --non-interactive to onboard an account",
                ],
            ) from e
        org_id = self.client.get_org_id() if provider == CloudProvider.GCP else None
        request = build_account_request(answers, org_id=org_id)

        account_id = self.client.create_account(request)
        logger.info(f"Created {provider.value.upper()} account config {account_id}")
        self.prompter.show(self.instructions.render(request, account_config_id=account_id))

        return self.wait_for_account_ready(account_id)

    def wait_for_account_ready(self, account_id: str) -> CloudAccount:
        """Poll an account until READY; timeout degrades to a warning."""
        policy = self.config.account_ready_poll.to_policy(sleep=self._sleep, clock=self._clock)

        def on_attempt(attempt, account):
            logger.debug(f"Account {account_id} status {account.raw_status} (check {attempt})")

        try:
            account = policy.run(
                lambda: self.client.describe_account(account_id),
                lambda a: a.status in (AccountStatus.READY, AccountStatus.FAILED),
                on_attempt=on_attempt,
            )
        except PollTimeoutError as e:
            minutes = (policy.timeout or 0) / 60
            logger.warning(
                f"Account did not become READY after {minutes:g} minutes. Please check account "
                f"status with 'omnideploy account describe {account_id}'"
            )
            return e.last_value

        if account.status == AccountStatus.FAILED:
            logger.warning(
                f"Account {account_id} verification FAILED. Please check account status with "
                f"'omnideploy account describe {account_id}'"
            )
        else:
            logger.info(f"Account {account_id} is READY")
        return account
