#!/usr/bin/env python3
"""
Bounded polling for remote readiness checks.

Account verification and account-instance setup are eventually consistent
on the control plane. PollPolicy captures the fixed-interval loop used to
wait for them: an interval, an attempt budget and/or a deadline, and a
terminal-state predicate. Sleep and clock are injectable so the loop can
be driven by a fake clock in tests.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class PollOutcome(Enum):
    """How a poll loop ended."""

    TERMINAL = "terminal"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    DEADLINE_EXCEEDED = "deadline_exceeded"


class PollTimeoutError(Exception):
    """Polling budget ran out before a terminal state was observed."""

    def __init__(self, message: str, outcome: PollOutcome, attempts: int, last_value: Any = None):
        super().__init__(message)
        self.outcome = outcome
        self.attempts = attempts
        self.last_value = last_value


@dataclass
class PollPolicy:
    """
    Fixed-interval polling bounded by attempts, a deadline, or both.

    Whichever limit is reached first ends the loop.

    Example:
        policy = PollPolicy(interval=10, timeout=600)
        account = policy.run(
            lambda: client.describe_account(account_id),
            lambda acc: acc.status == AccountStatus.READY,
        )
    """

    interval: float = 10.0
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self):
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.max_attempts is None and self.timeout is None:
            raise ValueError("PollPolicy needs max_attempts, timeout, or both")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def run(
        self,
        fetch: Callable[[], Any],
        is_terminal: Callable[[Any], bool],
        on_attempt: Optional[Callable[[int, Any], None]] = None,
    ) -> Any:
        """
        Poll until is_terminal(fetch()) holds.

        Args:
            fetch: Zero-argument callable returning the current state
            is_terminal: Predicate deciding whether polling can stop
            on_attempt: Called as on_attempt(attempt, value) after every
                non-terminal observation

        Returns:
            The first value for which is_terminal returned True

        Raises:
            PollTimeoutError: If the attempt budget or deadline runs out.
                Exceptions raised by fetch propagate unchanged.
        """
        deadline = self.clock() + self.timeout if self.timeout is not None else None
        attempt = 0
        value = None

        while True:
            attempt += 1
            value = fetch()
            if is_terminal(value):
                return value

            if on_attempt:
                on_attempt(attempt, value)

            if self.max_attempts is not None and attempt >= self.max_attempts:
                raise PollTimeoutError(
                    f"no terminal state after {attempt} attempts",
                    PollOutcome.ATTEMPTS_EXHAUSTED,
                    attempt,
                    value,
                )

            if deadline is not None and self.clock() + self.interval > deadline:
                raise PollTimeoutError(
                    f"no terminal state within {self.timeout:g}s",
                    PollOutcome.DEADLINE_EXCEEDED,
                    attempt,
                    value,
                )

            if self.interval > 0:
                self.sleep(self.interval)
