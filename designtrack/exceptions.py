"""
Domain exceptions for the design tracker.

The web layer maps each family to an HTTP status in main.py:
    ValidationError   -> 422 (transition blocked, nothing persisted)
    LedgerStateError  -> 409 (state machine driven out of order)
    NotFoundError     -> 404
    PersistenceError  -> 503 (remote write/read failed, action may be retried)
"""

from typing import Optional, Any, Dict


class TrackerError(Exception):
    """Base exception for all tracker errors"""

    def __init__(
        self,
        message: str,
        code: str = "TRACKER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class ValidationError(TrackerError):
    """Required input missing or malformed"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class LedgerStateError(TrackerError):
    """Transition not allowed from the current session state"""

    def __init__(self, message: str, session_id: Optional[str] = None):
        details = {"session_id": session_id} if session_id else {}
        super().__init__(message, code="LEDGER_STATE_ERROR", details=details)


class NoOpenPause(LedgerStateError):
    """close_pause called with no open pause at the tail of the ledger"""

    def __init__(self, session_id: Optional[str] = None):
        super().__init__("No open pause to close", session_id=session_id)
        self.code = "NO_OPEN_PAUSE"


class NotFoundError(TrackerError):
    """Record does not exist"""

    def __init__(self, kind: str, record_id: str):
        super().__init__(
            f"{kind} not found: {record_id}",
            code="NOT_FOUND",
            details={"kind": kind, "id": record_id}
        )


class PersistenceError(TrackerError):
    """Store read or write failed"""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Could not {operation}: {reason}",
            code="PERSISTENCE_ERROR",
            details={"operation": operation}
        )
        self.operation = operation
