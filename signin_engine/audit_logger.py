"""
Audit trail for sign-in attempts.

Records the sign-in lifecycle (attempt started, completed, failed) and
discovery activity for incident review. Events carry provider names, error
kinds and endpoint URLs; detail values under secret-bearing keys are replaced
before an event is stored or written to the 'audit' logger.
"""

import itertools
import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional

MAX_EVENTS = 10000

SENSITIVE_KEYS = frozenset({
    'client_secret', 'access_token', 'refresh_token', 'id_token',
    'code', 'code_verifier', 'nonce', 'state', 'authorization'
})

REDACTED = '[redacted]'


class AuditEventType(Enum):
    SIGNIN_STARTED = "signin_started"
    SIGNIN_COMPLETED = "signin_completed"
    SIGNIN_FAILED = "signin_failed"
    DISCOVERY_FETCHED = "discovery_fetched"
    SIGNING_KEYS_REFRESHED = "signing_keys_refreshed"


@dataclass
class AuditEvent:
    """One recorded step of a sign-in attempt or of discovery."""
    event_id: str
    event_type: AuditEventType
    timestamp: str
    provider: Optional[str]
    success: bool
    error_kind: Optional[str]
    details: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['event_type'] = self.event_type.value
        return record


def redact(details: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of details with secret-bearing values replaced."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_KEYS else value
        for key, value in details.items()
    }


def _audit_stream_logger() -> logging.Logger:
    """The 'audit' logger, given a stream handler on first use."""
    stream_logger = logging.getLogger('audit')
    stream_logger.setLevel(logging.INFO)
    if not stream_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - AUDIT - %(levelname)s - %(message)s'))
        stream_logger.addHandler(handler)
    return stream_logger


class AuditLogger:
    """
    Bounded in-memory audit trail.

    The most recent `max_events` events are kept; each event is also written
    as one line to the 'audit' logger.
    """

    def __init__(self, max_events: int = MAX_EVENTS):
        self.events: deque = deque(maxlen=max_events)
        self.storage_lock = threading.Lock()
        self._sequence = itertools.count(1)
        self.audit_logger = _audit_stream_logger()

    def log_event(self, event_type: AuditEventType, provider: Optional[str] = None,
                  success: bool = True, error_kind: Optional[str] = None,
                  details: Optional[Dict[str, Any]] = None) -> str:
        """
        Record an audit event.

        Args:
            event_type: Kind of event
            provider: Provider name, when the event belongs to a sign-in attempt
            success: False for failures
            error_kind: SigninErrorKind value for failures
            details: Extra context; values under secret-bearing keys are redacted

        Returns:
            The new event's ID
        """
        with self.storage_lock:
            event_id = f"audit_{int(time.time())}_{next(self._sequence)}"
            event = AuditEvent(
                event_id=event_id,
                event_type=event_type,
                timestamp=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                provider=provider,
                success=success,
                error_kind=error_kind,
                details=redact(details or {})
            )
            self.events.append(event)

        self.audit_logger.info(
            f"{event_type.value} provider={provider} success={success} error={error_kind}"
        )
        return event_id

    def get_provider_audit_log(self, provider: str, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Events of one provider, most recent first.

        Args:
            provider: Provider name
            limit: Maximum number of events returned
        """
        with self.storage_lock:
            matching = (event for event in reversed(self.events) if event.provider == provider)
            return [event.to_dict() for event in itertools.islice(matching, limit)]

    def get_events(self, event_type: Optional[AuditEventType] = None) -> List[Dict[str, Any]]:
        """Retained events, oldest first, optionally of one type."""
        with self.storage_lock:
            return [
                event.to_dict() for event in self.events
                if event_type is None or event.event_type == event_type
            ]

    def get_audit_statistics(self) -> Dict[str, Any]:
        """
        Summarize the retained events.

        Returns:
            Totals, success rate and counts per event type, provider and error kind
        """
        with self.storage_lock:
            events = list(self.events)

        total = len(events)
        succeeded = sum(1 for event in events if event.success)
        return {
            'total_events': total,
            'success_rate_percent': round(succeeded / total * 100, 2) if total else 0,
            'event_types': dict(Counter(event.event_type.value for event in events)),
            'providers': dict(Counter(event.provider for event in events if event.provider)),
            'error_kinds': dict(Counter(event.error_kind for event in events if event.error_kind))
        }

    def clear(self) -> None:
        with self.storage_lock:
            self.events.clear()


audit_logger = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Process-wide audit logger shared by the engine components."""
    return audit_logger
