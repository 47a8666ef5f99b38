"""
Pause ledger and elapsed-time calculation for design sessions.

Elapsed time is always derived from absolute instants:

    elapsed = max(0, floor(now - start) - sum(closed pause durations))

It is never accumulated from ticks, so it stays correct across tab suspension,
system sleep and multi-day gaps. Open pauses subtract nothing; while a session
is paused the display clock is simply off.
"""

import math
import logging
from datetime import datetime
from typing import List, Optional, Union, Iterable, Iterator, Literal, Annotated

from pydantic import BaseModel, Field

from .exceptions import LedgerStateError, NoOpenPause, ValidationError
from .utils.datetime_utils import to_iso, parse_iso

logger = logging.getLogger(__name__)

# Reserved durationSeconds value for a pause still in effect
OPEN_PAUSE_SENTINEL = -1


class OpenPause(BaseModel):
    kind: Literal["open"] = "open"
    reason: str
    started_at: datetime

    class Config:
        frozen = True


class ClosedPause(BaseModel):
    kind: Literal["closed"] = "closed"
    reason: str
    started_at: datetime
    duration_seconds: int = Field(ge=0)

    class Config:
        frozen = True


PauseInterval = Annotated[Union[OpenPause, ClosedPause], Field(discriminator="kind")]


def whole_seconds(start: datetime, end: datetime) -> int:
    """floor(end - start) in seconds; negative when the clock went backwards."""
    return math.floor((end - start).total_seconds())


def closed_duration(pauses: Iterable) -> int:
    return sum(p.duration_seconds for p in pauses if isinstance(p, ClosedPause))


def elapsed_seconds(start_time: datetime, now: datetime, pauses: Iterable) -> int:
    """Active seconds worked between start_time and now."""
    return max(0, whole_seconds(start_time, now) - closed_duration(pauses))


def final_active_seconds(start_time: datetime, end_time: datetime, pauses: Iterable) -> int:
    """Snapshot stored on completion; same formula evaluated at the end instant."""
    return elapsed_seconds(start_time, end_time, pauses)


def format_clock(seconds: int) -> str:
    """HH:MM:SS for the live timer."""
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_duration(seconds: int) -> str:
    """Short 'Xh Ym' form used in history and dashboards."""
    h = seconds // 3600
    m = (seconds % 3600) // 60
    return f"{h}h {m}m"


def check_ledger(pauses: List, session_id: Optional[str] = None):
    """Reject ledgers with an open pause anywhere but the tail."""
    for index, pause in enumerate(pauses):
        if isinstance(pause, OpenPause) and index != len(pauses) - 1:
            raise LedgerStateError(
                f"Open pause at position {index} is not the last record",
                session_id=session_id
            )


class PauseLedger:
    """
    Ordered history of work interruptions for one session.

    Wraps the session's pause list in place. Records are append-only; the only
    mutation allowed is replacing an open tail with its closed form.
    """

    def __init__(self, pauses: Optional[List] = None, session_id: Optional[str] = None):
        self.pauses = pauses if pauses is not None else []
        self.session_id = session_id
        check_ledger(self.pauses, session_id)

    def __len__(self):
        return len(self.pauses)

    def __iter__(self) -> Iterator:
        return iter(self.pauses)

    @property
    def tail(self):
        return self.pauses[-1] if self.pauses else None

    def last_pause_is_open(self) -> bool:
        return isinstance(self.tail, OpenPause)

    def total_closed_duration(self) -> int:
        return closed_duration(self.pauses)

    def open_pause(self, reason: str, at: datetime) -> OpenPause:
        if not reason or not reason.strip():
            raise ValidationError("Pause reason is required", field="reason")
        if self.last_pause_is_open():
            raise LedgerStateError("A pause is already open", session_id=self.session_id)

        pause = OpenPause(reason=reason.strip(), started_at=at)
        self.pauses.append(pause)
        return pause

    def close_pause(self, at: datetime) -> ClosedPause:
        if not self.last_pause_is_open():
            raise NoOpenPause(session_id=self.session_id)

        tail = self.pauses[-1]
        duration = whole_seconds(tail.started_at, at)
        if duration < 0:
            logger.warning(
                f"Clock skew closing pause on session {self.session_id}: "
                f"resume at {to_iso(at)} precedes pause at {to_iso(tail.started_at)}"
            )
        closed = ClosedPause(
            reason=tail.reason,
            started_at=tail.started_at,
            duration_seconds=max(0, duration)
        )
        self.pauses[-1] = closed
        return closed


def pause_to_record(pause) -> dict:
    """Store encoding: durationSeconds == -1 marks an open pause."""
    return {
        "reason": pause.reason,
        "timestamp": to_iso(pause.started_at),
        "durationSeconds": (
            OPEN_PAUSE_SENTINEL if isinstance(pause, OpenPause) else pause.duration_seconds
        ),
    }


def pause_from_record(record: dict):
    started_at = parse_iso(record["timestamp"])
    duration = int(record.get("durationSeconds", OPEN_PAUSE_SENTINEL))
    reason = record.get("reason") or "Pause"
    if duration == OPEN_PAUSE_SENTINEL:
        return OpenPause(reason=reason, started_at=started_at)
    # Legacy rows may carry other negative values; they never counted as pause time
    return ClosedPause(reason=reason, started_at=started_at, duration_seconds=max(0, duration))
