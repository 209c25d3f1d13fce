"""Runs rules in dependency order.

Each requested rule runs after all of its dependencies succeeded, and every
rule runs at most once per invocation even when several rules depend on it.
Up to `jobs` rule actions run at the same time.

By default the run stops at the first failure: rules that have not started
yet are skipped, like `make`. With `keep_going` unrelated rules continue and
only the rules that depend on a failed rule are skipped, like `make -k`.
Either way the run raises `TargetFailedError` if any rule failed.
"""

import asyncio
from collections.abc import Iterable
import enum
import logging

from .context import trace_collector, trace_context
from .exceptions import KernelMatrixException, TargetFailedError, UnknownTargetError
from .rules import Rule

__all__ = [
    "Scheduler",
    "Status",
]

_LOGGER = logging.getLogger(__name__)


class Status(enum.Enum):
    """Outcome of a rule."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class Scheduler:
    """Runs a set of rules."""

    def __init__(
        self, rules: dict[str, Rule], jobs: int = 1, keep_going: bool = False
    ) -> None:
        """Initialize Scheduler."""
        self._rules = rules
        self._jobs = max(jobs, 1)
        self._keep_going = keep_going
        self._sem = asyncio.Semaphore(self._jobs)
        self._tasks: dict[str, asyncio.Task[Status]] = {}
        self._results: dict[str, Status] = {}
        self._failures: dict[str, BaseException] = {}

    @property
    def results(self) -> dict[str, Status]:
        """Outcome of every rule that was scheduled, in completion order."""
        return dict(self._results)

    def validate(self, names: Iterable[str]) -> None:
        """Check that the rules and everything they depend on are defined."""
        pending = list(names)
        seen: set[str] = set()
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            if (rule := self._rules.get(name)) is None:
                raise UnknownTargetError(name)
            pending.extend(rule.deps)

    async def run(self, names: list[str]) -> dict[str, Status]:
        """Run the named rules and their dependencies."""
        self.validate(names)
        with trace_collector() as collector:
            try:
                await asyncio.gather(*(self._schedule(name) for name in names))
            finally:
                await self._cancel_pending()
        for label, duration in collector.summary():
            _LOGGER.debug("%s: %0.2fs", label, duration)
        if self._failures:
            raise TargetFailedError(self._failures)
        return self.results

    def _schedule(self, name: str) -> "asyncio.Task[Status]":
        if (task := self._tasks.get(name)) is None:
            task = asyncio.ensure_future(self._run_rule(self._rules[name]))
            self._tasks[name] = task
        return task

    async def _cancel_pending(self) -> None:
        """Cancel rules still running after an unexpected error and wait for them."""
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            _LOGGER.debug("Cancelling %d running targets", len(pending))
            await asyncio.wait(pending)

    def _stopped(self) -> bool:
        return bool(self._failures) and not self._keep_going

    def _finish(self, rule: Rule, status: Status) -> Status:
        self._results[rule.name] = status
        return status

    def _fail(self, rule: Rule, err: KernelMatrixException) -> Status:
        _LOGGER.error("Target %s failed: %s", rule.name, err)
        self._failures[rule.name] = err
        return self._finish(rule, Status.FAILED)

    async def _run_rule(self, rule: Rule) -> Status:
        if self._stopped():
            return self._finish(rule, Status.SKIPPED)
        if rule.guard is not None:
            try:
                rule.guard()
            except KernelMatrixException as err:
                return self._fail(rule, err)

        deps = await asyncio.gather(*(self._schedule(dep) for dep in rule.deps))
        if any(status != Status.SUCCEEDED for status in deps):
            _LOGGER.debug("Skipping %s, a dependency did not succeed", rule.name)
            return self._finish(rule, Status.SKIPPED)
        if rule.action is None:
            return self._finish(rule, Status.SUCCEEDED)

        async with self._sem:
            if self._stopped():
                return self._finish(rule, Status.SKIPPED)
            _LOGGER.info("Running %s", rule.name)
            with trace_context(rule.name):
                try:
                    await rule.action()
                except KernelMatrixException as err:
                    return self._fail(rule, err)
        return self._finish(rule, Status.SUCCEEDED)
