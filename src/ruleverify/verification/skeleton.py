"""Shared lifecycle of the verification drivers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..config.settings import Settings, get_settings
from ..entities.core import MetaData
from ..exceptions import VerificationFailedError
from ..rules.base import Rule, RuleIdGenerator
from ..rules.operations import AndRuleOperation
from ..storage.base import Matchable
from ..utils.logging import get_logger, logging_context
from .executors import Executor, MetaExecutor
from .monitor import Clock, Monitor, MonitorResult, PollingParameters, Sleep, VerificationMode

_LOGGER = get_logger(component="verification")


class VerificationSkeleton(ABC):
    """Owns the root rule, the matchable and the executor of one driver.

    User checks are AND-ed into :attr:`root_rule`. Each temporal call wraps
    the root rule together with an optional entity-kind rule in a fresh AND
    operation, so the root rule itself is never mutated by a verification.
    """

    def __init__(
        self,
        folder: Matchable,
        *,
        executor: Executor | None = None,
        settings: Settings | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.folder = folder
        self.executor = executor or MetaExecutor()
        self.id_generator = RuleIdGenerator()
        self.root_rule = AndRuleOperation(name="root", id_generator=self.id_generator)
        self.last_result: MonitorResult | None = None
        self._settings = settings
        self._polling_overrides: Dict[str, Any] = {}
        self._clock = clock
        self._sleep = sleep

    @property
    @abstractmethod
    def monitor_name(self) -> str:
        """Name used in monitor logs."""

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # -- rules -----------------------------------------------------------------

    def add_rule(self, rule: Rule) -> None:
        self.root_rule.add_rule(rule)

    def clear_rules(self) -> None:
        self.root_rule.clear_rules()

    # -- polling ---------------------------------------------------------------

    def configure_polling(
        self,
        *,
        initial_delay: float | None = None,
        interval: float | None = None,
        attempts: int | None = None,
        timeout: float | None = None,
    ) -> "VerificationSkeleton":
        """Override the configured polling window; ``None`` keeps the configured value."""

        values = {
            "initial_delay": initial_delay,
            "interval": interval,
            "attempts": attempts,
            "timeout": timeout,
        }
        self._polling_overrides.update({key: value for key, value in values.items() if value is not None})
        return self

    @property
    def polling_parameters(self) -> PollingParameters:
        defaults = PollingParameters.from_policy(self.settings.policies.polling)
        if not self._polling_overrides:
            return defaults
        return PollingParameters(
            initial_delay=self._polling_overrides.get("initial_delay", defaults.initial_delay),
            interval=self._polling_overrides.get("interval", defaults.interval),
            attempts=self._polling_overrides.get("attempts", defaults.attempts),
            timeout=self._polling_overrides.get("timeout", defaults.timeout),
        )

    # -- temporal verifications ------------------------------------------------

    def verify_exists(self, only_new: bool = False) -> List[MetaData]:
        return self._verify(VerificationMode.EXISTS, only_new=only_new)

    def verify_always_exists(self) -> List[MetaData]:
        return self._verify(VerificationMode.ALWAYS_EXISTS)

    def verify_never_exists(self) -> None:
        self._verify(VerificationMode.NEVER_EXISTS)

    def verify_does_not_exist(self) -> None:
        self._verify(VerificationMode.DOES_NOT_EXIST)

    def _entity_rule(self) -> Rule | None:
        """Entity-kind rule evaluated before the user checks, if the backend has one."""

        return None

    def _verify(
        self,
        mode: VerificationMode,
        *,
        only_new: bool = False,
        kind_rule: Rule | None = None,
    ) -> List[MetaData]:
        if kind_rule is None:
            kind_rule = self._entity_rule()
        if kind_rule is None:
            rule: Rule = self.root_rule
        else:
            rule = AndRuleOperation(
                [kind_rule, self.root_rule], name="verification", id_generator=self.id_generator
            )
        self.executor.set_root_rule(rule)

        monitor = Monitor(
            self.monitor_name,
            self.folder,
            self.executor,
            self.polling_parameters,
            mode,
            only_new=only_new,
            clock=self._clock,
            sleep=self._sleep,
        )
        with logging_context(monitor=self.monitor_name):
            result = monitor.run()
        self.last_result = result

        if not result.succeeded:
            _LOGGER.error(
                "Verification failed for {name}: {error}", name=self.monitor_name, error=result.error
            )
            raise VerificationFailedError(
                f"Verification failed - {result.error}",
                rule_description=result.last_rule_description,
                matched=result.matched,
            )
        return result.matched


__all__ = ["VerificationSkeleton"]
