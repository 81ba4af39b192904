"""Event sinks for orchestration records.

The orchestrator emits typed ``GenerationEvent`` records instead of formatted
log lines; sinks decide where they go.
"""

from __future__ import annotations

import logging
from typing import Protocol

from resume_ai.generation.models import EventType, GenerationEvent

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Anything that accepts generation events."""

    def emit(self, event: GenerationEvent) -> None: ...


class LoggingEventSink:
    """Write events to a stdlib logger.

    The event fields are attached as ``extra`` so structured handlers can pick
    them up; the message itself stays human readable.
    """

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def emit(self, event: GenerationEvent) -> None:
        level = logging.INFO
        if event.event in (EventType.ATTEMPT_FAILURE, EventType.RATE_LIMITED):
            level = logging.WARNING
        elif event.event == EventType.ALL_FAILED:
            level = logging.ERROR

        fields = event.to_dict()
        message = " ".join(f"{key}={value}" for key, value in fields.items())
        self.log.log(level, message, extra={"generation_event": fields})


class InMemoryEventSink:
    """Collect events in a list, for inspection after a call."""

    def __init__(self) -> None:
        self.events: list[GenerationEvent] = []

    def emit(self, event: GenerationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[GenerationEvent]:
        return [event for event in self.events if event.event == event_type]

    @property
    def attempts(self) -> list[GenerationEvent]:
        """Per-candidate records, in the order they were emitted."""
        return [
            event
            for event in self.events
            if event.event in (EventType.ATTEMPT_SUCCESS, EventType.ATTEMPT_FAILURE)
        ]

    def clear(self) -> None:
        self.events.clear()


class FanOutEventSink:
    """Forward every event to several sinks."""

    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def emit(self, event: GenerationEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
