"""
Structured Event Logging

Every lifecycle step of a fault (prepare, inject, remove, kills, exhaustion
rounds) is recorded as a structured event:
- Machine-readable (JSON lines)
- One session per CLI invocation
- Append-only

An injected fault is usually removed by a later, separate invocation. The
event file is what ties the two together when diagnosing a run.
"""

import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime
from enum import Enum, auto
import uuid


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of events that can occur."""
    # Lifecycle
    FAULT_PREPARED = auto()
    FAULT_INJECTED = auto()
    FAULT_REMOVED = auto()
    FAULT_FAILED = auto()

    # Supervision
    PROCESS_LAUNCHED = auto()
    PROCESS_KILLED = auto()

    # Exhaustion pool
    EXHAUSTION_ROUND = auto()
    EXHAUSTION_DRAINED = auto()


class EventSeverity(Enum):
    """Severity levels for events."""
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass
class StructuredEvent:
    """A structured event with consistent format."""
    event_id: str
    event_type: EventType
    timestamp: datetime
    severity: EventSeverity
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'event_id': self.event_id,
            'event_type': self.event_type.name,
            'timestamp': self.timestamp.isoformat(),
            'severity': self.severity.name,
            'message': self.message,
            'context': self.context,
            'session_id': self.session_id,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class EventEmitter:
    """
    Emits structured events to the standard log, a JSON lines file and an
    in-memory buffer.
    """

    def __init__(
        self,
        log_file: Optional[Path] = None,
        session_id: Optional[str] = None,
        enable_console: bool = True,
        enable_file: bool = True
    ):
        """
        Initialize event emitter.

        Args:
            log_file: Path to event log file (JSON lines format)
            session_id: Session identifier for grouping events
            enable_console: Emit to the standard logging tree
            enable_file: Emit to file
        """
        self.log_file = log_file or Path('logs') / 'events.jsonl'
        self.session_id = session_id or str(uuid.uuid4())
        self.enable_console = enable_console
        self.enable_file = enable_file

        self.event_buffer: List[StructuredEvent] = []

        if self.enable_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def emit(
        self,
        event_type: EventType,
        message: str,
        severity: EventSeverity = EventSeverity.INFO,
        context: Optional[Dict] = None
    ) -> StructuredEvent:
        """
        Emit a structured event.

        Args:
            event_type: Type of event
            message: Human-readable message
            severity: Event severity
            context: Operation-specific data (fault type, path, pids, ...)

        Returns:
            The emitted event
        """
        event = StructuredEvent(
            event_id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.now(),
            severity=severity,
            message=message,
            context=context or {},
            session_id=self.session_id
        )

        self.event_buffer.append(event)

        if self.enable_console:
            self._emit_to_console(event)

        if self.enable_file:
            self._emit_to_file(event)

        return event

    def _emit_to_console(self, event: StructuredEvent):
        """Emit event via standard logging."""
        level_map = {
            EventSeverity.DEBUG: logging.DEBUG,
            EventSeverity.INFO: logging.INFO,
            EventSeverity.WARNING: logging.WARNING,
            EventSeverity.ERROR: logging.ERROR,
            EventSeverity.CRITICAL: logging.CRITICAL
        }

        context_str = ""
        key_context = {k: v for k, v in event.context.items()
                       if k in ['fault_type', 'path', 'pids', 'round']}
        if key_context:
            context_str = " | " + ", ".join(f"{k}={v}" for k, v in key_context.items())

        logger.log(
            level_map.get(event.severity, logging.INFO),
            f"[{event.event_type.name}] {event.message}{context_str}"
        )

    def _emit_to_file(self, event: StructuredEvent):
        """Emit event to JSON lines file."""
        try:
            with open(self.log_file, 'a') as f:
                f.write(event.to_json() + '\n')
        except OSError as e:
            logger.error(f"Failed to write event to file: {e}")

    def get_session_events(self) -> List[StructuredEvent]:
        """Get all events for current session."""
        return self.event_buffer.copy()

    def events_of_type(self, event_type: EventType) -> List[StructuredEvent]:
        return [e for e in self.event_buffer if e.event_type == event_type]


class MemoryEmitter(EventEmitter):
    """Emitter that only buffers in memory."""

    def __init__(self):
        super().__init__(enable_console=False, enable_file=False)
