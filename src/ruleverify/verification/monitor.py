"""Poll loop driving one matchable through a temporal verification mode."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List

from ..config.policies import PollingPolicy
from ..entities.core import MetaData
from ..storage.base import Matchable
from ..utils.logging import get_logger, log_timing
from .executors import Executor


@dataclass(frozen=True)
class PollingParameters:
    """Polling window in seconds; ``timeout`` of ``None`` leaves ``attempts`` as the only limit."""

    initial_delay: float = 0.0
    interval: float = 1.0
    attempts: int = 10
    timeout: float | None = 30.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.initial_delay < 0 or self.interval < 0:
            raise ValueError("delays must not be negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_policy(cls, policy: PollingPolicy) -> "PollingParameters":
        return cls(
            initial_delay=policy.initial_delay_seconds,
            interval=policy.interval_seconds,
            attempts=policy.attempts,
            timeout=policy.timeout_seconds,
        )


class VerificationMode(Enum):
    """``(expected_result, end_on_first_match, end_on_first_failure)`` per mode."""

    EXISTS = (True, True, False)
    DOES_NOT_EXIST = (False, True, False)
    ALWAYS_EXISTS = (True, False, True)
    NEVER_EXISTS = (False, False, True)

    @property
    def expected_result(self) -> bool:
        return self.value[0]

    @property
    def end_on_first_match(self) -> bool:
        return self.value[1]

    @property
    def end_on_first_failure(self) -> bool:
        return self.value[2]


@dataclass
class MonitorResult:
    name: str
    mode: VerificationMode
    succeeded: bool
    matched: List[MetaData] = field(default_factory=list)
    attempts: int = 0
    error: str | None = None
    last_rule_description: str | None = None


Clock = Callable[[], float]
Sleep = Callable[[float], None]


class Monitor:
    """Run the poll loop for one verification call.

    The loop runs on the calling thread. The matchable is opened on
    :meth:`run` and always closed before it returns; storage errors
    propagate after the close. The first poll always runs and the timeout is
    checked at the top of every later iteration.
    """

    def __init__(
        self,
        name: str,
        matchable: Matchable,
        executor: Executor,
        polling: PollingParameters,
        mode: VerificationMode,
        *,
        only_new: bool = False,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.name = name
        self.matchable = matchable
        self.executor = executor
        self.polling = polling
        self.mode = mode
        self.only_new = only_new
        self._clock = clock
        self._sleep = sleep
        self._logger = get_logger(component="monitor", monitor=name)

    def run(self) -> MonitorResult:
        self._log_expected_behaviour()
        self.matchable.open()
        try:
            with log_timing(f"{self.name} verification", logger_=self._logger):
                if self.mode is VerificationMode.DOES_NOT_EXIST:
                    result = self._poll_once()
                else:
                    result = self._poll_loop()
        finally:
            if self.matchable.is_open:
                self.matchable.close()

        result.last_rule_description = self.executor.last_rule_description
        self._logger.info(
            "{name} finished after {attempts} attempt(s): {verdict}",
            name=self.name,
            attempts=result.attempts,
            verdict="success" if result.succeeded else "failure",
        )
        return result

    # -- modes -----------------------------------------------------------------

    def _poll_once(self) -> MonitorResult:
        matched = self._poll(1)
        if matched:
            return self._result(False, matched, 1, f"Expected to not find {self._target}, but found it")
        return self._result(True, [], 1)

    def _poll_loop(self) -> MonitorResult:
        start = self._clock()
        if self.polling.initial_delay:
            self._sleep(self.polling.initial_delay)

        expected = self.mode.expected_result
        last_matches: List[MetaData] = []
        seen_match = False
        attempt = 0
        while attempt < self.polling.attempts:
            if attempt and self._timed_out(start):
                self._logger.info(
                    "{name} timed out after {attempts} attempt(s)", name=self.name, attempts=attempt
                )
                break

            attempt += 1
            matched = self._poll(attempt)

            if expected:
                if matched:
                    seen_match = True
                    last_matches = matched
                    if self.mode.end_on_first_match:
                        return self._result(True, matched, attempt)
                elif seen_match and self.mode.end_on_first_failure:
                    return self._result(
                        False,
                        last_matches,
                        attempt,
                        f"Expected to find {self._target} on all attempts, "
                        f"but did not find it on attempt number {attempt}",
                    )
            elif matched:
                return self._result(
                    False,
                    matched,
                    attempt,
                    f"Expected to not find {self._target} on all attempts, "
                    f"but found it on attempt number {attempt}",
                )

            if attempt < self.polling.attempts:
                self._sleep(self.polling.interval)
        else:
            self._logger.info("{name} no more attempts left - done", name=self.name)

        if not expected:
            return self._result(True, [], attempt)
        if seen_match:
            return self._result(True, last_matches, attempt)
        return self._result(False, [], attempt, f"Expected to find {self._target}, but did not find it")

    # -- helpers ---------------------------------------------------------------

    def _poll(self, attempt: int) -> List[MetaData]:
        self._logger.info(
            "{name} polling for {target}, attempt {attempt} of {attempts}",
            name=self.name,
            target=self._target,
            attempt=attempt,
            attempts=self.polling.attempts,
        )
        if self.only_new:
            meta_data = self.matchable.get_new_meta_data()
        else:
            meta_data = self.matchable.get_all_meta_data()
        self._logger.info("{name} {counts}", name=self.name, counts=self.matchable.get_meta_data_counts())
        return self.executor.evaluate(meta_data)

    def _timed_out(self, start: float) -> bool:
        timeout = self.polling.timeout
        return timeout is not None and self._clock() - start >= timeout

    @property
    def _target(self) -> str:
        return self.matchable.description

    def _result(
        self,
        succeeded: bool,
        matched: List[MetaData],
        attempts: int,
        error: str | None = None,
    ) -> MonitorResult:
        return MonitorResult(
            name=self.name,
            mode=self.mode,
            succeeded=succeeded,
            matched=list(matched),
            attempts=attempts,
            error=error,
        )

    def _log_expected_behaviour(self) -> None:
        self._logger.info(
            "{name} expects to{negation} match {target}; will{first_match} end on first match; "
            "will{first_failure} end on first failure",
            name=self.name,
            negation="" if self.mode.expected_result else " not",
            target=self._target,
            first_match="" if self.mode.end_on_first_match else " not",
            first_failure="" if self.mode.end_on_first_failure else " not",
        )


__all__ = ["PollingParameters", "VerificationMode", "MonitorResult", "Monitor"]
