"""Follow a stack's event log, emitting each new event once, oldest first."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError

from stackscope.aws.client import CloudFormationClient
from stackscope.errors import TransientFetchError
from stackscope.models import StackEvent
from stackscope.options import TailOptions
from stackscope.ticker import Ticker

logger = logging.getLogger(__name__)


@dataclass
class TailCursor:
    """Position in the event log.

    ``seen_ids`` only ever holds ids of events stamped exactly
    ``high_water_mark``; older events are ruled out by timestamp alone.
    """

    high_water_mark: datetime | None = None
    seen_ids: set[str] = field(default_factory=set)

    def is_new(self, event: StackEvent) -> bool:
        if self.high_water_mark is None or event.timestamp > self.high_water_mark:
            return True
        if event.timestamp == self.high_water_mark:
            return bool(event.event_id) and event.event_id not in self.seen_ids
        return False

    def advance(self, event: StackEvent) -> None:
        if self.high_water_mark is None or event.timestamp > self.high_water_mark:
            self.high_water_mark = event.timestamp
            self.seen_ids = set()
        if event.timestamp == self.high_water_mark and event.event_id:
            self.seen_ids.add(event.event_id)

    def select(self, events: Iterable[StackEvent]) -> list[StackEvent]:
        """Pick the unseen events from a newest-first log and return them oldest first."""
        fresh = [e for e in events if self.is_new(e)]
        fresh.reverse()
        # Stable: equal timestamps keep their reversed provider order.
        fresh.sort(key=lambda e: e.timestamp)
        for event in fresh:
            self.advance(event)
        return fresh


class EventTailer:
    """Polls a stack's events until cancelled."""

    def __init__(
        self,
        client: CloudFormationClient,
        options: TailOptions | None = None,
        ticker: Ticker | None = None,
    ):
        self._client = client
        self._options = options or TailOptions()
        self._ticker = ticker or Ticker(self._options.interval)
        self.cursor = TailCursor()

    def seed(self, stack_name: str) -> StackEvent | None:
        """Position the cursor at the newest event and return it."""
        events = self._client.list_events(stack_name, limit=1)
        if not events:
            return None
        self.cursor.advance(events[0])
        return events[0]

    def poll(self, stack_name: str) -> list[StackEvent]:
        """Fetch the full log and return events not emitted before."""
        try:
            events = self._client.list_events(stack_name)
        except (ClientError, BotoCoreError) as exc:
            raise TransientFetchError(f"failed to fetch events for {stack_name}: {exc}") from exc
        return self.cursor.select(events)

    def tail(self, stack_name: str, emit: Callable[[StackEvent], None]) -> None:
        """Emit the newest event, then every new event, until the ticker is cancelled.

        A failed seed fetch propagates; failed polls are logged and retried on
        the next tick.
        """
        initial = self.seed(stack_name)
        if initial is not None:
            emit(initial)
        self.follow(stack_name, emit)

    def follow(self, stack_name: str, emit: Callable[[StackEvent], None]) -> None:
        """Poll once per tick and emit new events until cancelled."""
        while self._ticker.wait():
            try:
                fresh = self.poll(stack_name)
            except TransientFetchError as exc:
                logger.warning("%s", exc)
                continue
            for event in fresh:
                emit(event)
