"""
Test suite for the events module.

Tests cover:
- Event creation and serialization
- Emission to the JSON lines file and the in-memory buffer
- Filtering by event type
"""

import json
import logging
from datetime import datetime

import pytest

from core.events import EventEmitter, EventSeverity, EventType, MemoryEmitter, StructuredEvent


class TestStructuredEvent:
    """Test structured event data structure."""

    def test_event_serialization(self):
        """Test event serialization to dict/JSON."""
        event = StructuredEvent(
            event_id="test123",
            event_type=EventType.FAULT_INJECTED,
            timestamp=datetime.now(),
            severity=EventSeverity.INFO,
            message="cpu-overload injected",
            context={'fault_type': 'cpu-overload'}
        )

        data = event.to_dict()
        assert data['event_type'] == 'FAULT_INJECTED'
        assert data['severity'] == 'INFO'

        parsed = json.loads(event.to_json())
        assert parsed['event_id'] == "test123"
        assert parsed['context'] == {'fault_type': 'cpu-overload'}


class TestEventEmitter:
    """Test event emission."""

    @pytest.fixture
    def log_file(self, tmp_path):
        return tmp_path / "logs" / "events.jsonl"

    @pytest.fixture
    def emitter(self, log_file):
        return EventEmitter(
            log_file=log_file,
            session_id="test_session",
            enable_console=False,
            enable_file=True
        )

    def test_emitter_creates_log_folder(self, emitter, log_file):
        assert log_file.parent.is_dir()
        assert emitter.session_id == "test_session"
        assert emitter.event_buffer == []

    def test_emit_to_file(self, emitter, log_file):
        """Test events are appended as JSON lines."""
        emitter.emit(EventType.FAULT_PREPARED, "prepared", context={'fault_type': 'file-lost'})
        emitter.emit(EventType.FAULT_INJECTED, "injected", context={'fault_type': 'file-lost'})

        with open(log_file) as f:
            lines = [json.loads(line) for line in f]
        assert [line['event_type'] for line in lines] == ['FAULT_PREPARED', 'FAULT_INJECTED']
        assert {line['session_id'] for line in lines} == {"test_session"}

    def test_events_of_type(self, emitter):
        emitter.emit(EventType.EXHAUSTION_ROUND, "round 1", severity=EventSeverity.DEBUG)
        emitter.emit(EventType.EXHAUSTION_ROUND, "round 2", severity=EventSeverity.DEBUG)
        emitter.emit(EventType.EXHAUSTION_DRAINED, "drained")

        assert len(emitter.events_of_type(EventType.EXHAUSTION_ROUND)) == 2
        assert len(emitter.get_session_events()) == 3

    def test_console_goes_through_logging(self, log_file, caplog):
        emitter = EventEmitter(log_file=log_file, enable_file=False)
        with caplog.at_level(logging.INFO, logger='core.events'):
            emitter.emit(EventType.PROCESS_LAUNCHED, "stress tool launched", context={'pids': [42]})
        assert "[PROCESS_LAUNCHED] stress tool launched | pids=[42]" in caplog.text
        assert not log_file.exists()


def test_memory_emitter_only_buffers(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    emitter = MemoryEmitter()
    emitter.emit(EventType.FAULT_FAILED, "boom", severity=EventSeverity.ERROR)
    assert len(emitter.get_session_events()) == 1
    assert not (tmp_path / 'logs').exists()
