"""UnitOfWork — all-or-nothing wrapper around one orchestrator operation.

On entry the proposal's state is captured. While the operation runs it can
register undo and commit callbacks for shared state (treasury) and buffer
events. On success the commit callbacks run and the events are published; if
anything raised, undo callbacks run in reverse order, the captured state is
put back, and no event is published.
"""
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from src.pm_proposal.domain.events import DomainEvent, EventLog

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork(Generic[T]):
    def __init__(
        self,
        capture: Callable[[], T],
        restore: Callable[[T], None],
        event_log: EventLog,
    ) -> None:
        self._restore = restore
        self._event_log = event_log
        self._saved: T = capture()
        self._undo: list[Callable[[], Any]] = []
        self._on_commit: list[Callable[[], Any]] = []
        self._events: list[DomainEvent] = []
        self._done = False

    def on_rollback(self, undo: Callable[[], Any]) -> None:
        self._undo.append(undo)

    def on_commit(self, hook: Callable[[], Any]) -> None:
        self._on_commit.append(hook)

    def emit(self, event: DomainEvent) -> None:
        self._events.append(event)

    def commit(self) -> None:
        if self._done:
            return
        self._done = True
        for hook in self._on_commit:
            hook()
        self._event_log.publish(self._events)

    def rollback(self) -> None:
        if self._done:
            return
        self._done = True
        for undo in reversed(self._undo):
            undo()
        self._restore(self._saved)
        logger.info("Unit of work rolled back (%d pending events dropped)", len(self._events))
