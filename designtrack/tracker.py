"""
Session state machine for the design release tracker.

    NoSession --start--> Attached --pause_and_detach--> Detached
        ^                  |  ^                            |
        |                  |  +-----------resume-----------+
        +-----finish-------+
                 (Completed, terminal)

"Attached" is a property of a TrackerContext (the session a user currently has
in the foreground), not of the stored record. "Detached" is inferred from an
open pause at the tail of the stored ledger; no paused status is persisted.

Each transition builds the updated record on a copy, writes it through the
gateway and only then moves the context pointer. When the write fails the
copy is parked in ctx.pending so the user can retry without losing it.
"""

import enum
import logging
from typing import Callable, List, Optional, Union

from .exceptions import LedgerStateError, NotFoundError, PersistenceError, ValidationError
from .gateway import SessionGateway
from .schemas import ProjectStart, VariationCreate
from .sessions import FLOORED_IMPLEMENTS, ProjectSession, SessionStatus, VariationRecord
from .timing import final_active_seconds
from .utils.datetime_utils import get_current_time

logger = logging.getLogger(__name__)


class TrackerState(str, enum.Enum):
    NO_SESSION = "no_session"
    ATTACHED = "attached"


class PendingWrite:
    """Local effect of an action whose write has not reached the store yet."""

    def __init__(self, action: str, operation: str, session: ProjectSession,
                 attach: Optional[ProjectSession] = None):
        self.action = action
        self.operation = operation  # create | update
        self.session = session
        self.attach = attach

    def to_dict(self):
        return {
            "action": self.action,
            "operation": self.operation,
            "session_id": self.session.id,
        }


class TrackerContext:
    """The foreground state of one logical user session."""

    def __init__(self, user_id: Optional[int] = None):
        self.user_id = user_id
        self.attached: Optional[ProjectSession] = None
        self.pending: Optional[PendingWrite] = None

    @property
    def state(self) -> TrackerState:
        return TrackerState.ATTACHED if self.attached else TrackerState.NO_SESSION


class ProjectTracker:
    def __init__(
        self,
        gateway: SessionGateway,
        clock: Callable = get_current_time,
        notifier: Optional[Callable[[ProjectSession], None]] = None
    ):
        self.gateway = gateway
        self.clock = clock
        self.notifier = notifier

    # --- guards ---

    def _ensure_no_pending(self, ctx: TrackerContext):
        if ctx.pending:
            raise LedgerStateError(
                f"Unsaved '{ctx.pending.action}' must be retried or discarded first",
                session_id=ctx.pending.session.id
            )

    def _require_attached(self, ctx: TrackerContext, action: str) -> ProjectSession:
        if not ctx.attached:
            raise LedgerStateError(f"Cannot {action}: no session is attached")
        return ctx.attached

    # --- write path ---

    def _write(self, ctx: TrackerContext, pending: PendingWrite):
        try:
            if pending.operation == "create":
                self.gateway.create_session(pending.session)
            else:
                self.gateway.update_session(pending.session)
        except PersistenceError:
            ctx.pending = pending
            logger.error(f"'{pending.action}' on session {pending.session.id} not saved; kept for retry")
            raise
        except NotFoundError:
            # Record deleted elsewhere (manager history delete); nothing left to attach to
            if ctx.attached and ctx.attached.id == pending.session.id:
                ctx.attached = None
            ctx.pending = None
            logger.warning(f"Session {pending.session.id} no longer exists; '{pending.action}' dropped and detached")
            raise

        ctx.pending = None
        ctx.attached = pending.attach
        if pending.action == "finish":
            self._notify(pending.session)

    def _notify(self, session: ProjectSession):
        if not self.notifier:
            return
        try:
            self.notifier(session)
        except Exception as e:
            # Completion is already stored; a failed notification never rolls it back
            logger.warning(f"Completion notification failed for session {session.id}: {e}")

    # --- transitions ---

    def start(self, ctx: TrackerContext, fields: ProjectStart) -> ProjectSession:
        self._ensure_no_pending(ctx)
        if ctx.attached:
            raise LedgerStateError("A session is already attached", session_id=ctx.attached.id)

        ns = (fields.ns or "").strip()
        if not ns:
            raise ValidationError("Enter the product NS before starting", field="ns")

        floored = fields.implement_type in FLOORED_IMPLEMENTS
        session = ProjectSession(
            ns=ns,
            client_name=fields.client_name,
            project_code=fields.project_code,
            type=fields.type,
            implement_type=fields.implement_type,
            flooring_type=fields.flooring_type if floored else None,
            notes=fields.notes,
            user_id=ctx.user_id,
            start_time=self.clock(),
        )
        self._write(ctx, PendingWrite("start", "create", session, attach=session))
        logger.info(f"Started session {session.id} for NS {ns}")
        return session

    def pause_and_detach(self, ctx: TrackerContext, reason: str) -> ProjectSession:
        self._ensure_no_pending(ctx)
        current = self._require_attached(ctx, "pause")

        now = self.clock()
        updated = current.snapshot()
        updated.ledger.open_pause(reason, now)
        updated.total_active_seconds = updated.elapsed_seconds(now)

        self._write(ctx, PendingWrite("pause", "update", updated, attach=None))
        logger.info(f"Paused session {updated.id} ({reason.strip()}), detached")
        return updated

    def resume(self, ctx: TrackerContext, session: Union[ProjectSession, str]) -> ProjectSession:
        self._ensure_no_pending(ctx)
        if isinstance(session, str):
            session = self.gateway.get_session(session)
        if ctx.attached:
            raise LedgerStateError(
                "Pause or finish the attached session before resuming another",
                session_id=ctx.attached.id
            )
        if session.is_completed:
            raise LedgerStateError("Completed sessions cannot be resumed", session_id=session.id)

        updated = session.snapshot()
        if not updated.ledger.last_pause_is_open():
            # Client went away without pausing; time kept accruing
            ctx.attached = updated
            logger.info(f"Reattached session {updated.id} with no open pause")
            return updated

        now = self.clock()
        closed = updated.ledger.close_pause(now)
        updated.total_active_seconds = updated.elapsed_seconds(now)

        self._write(ctx, PendingWrite("resume", "update", updated, attach=updated))
        logger.info(f"Resumed session {updated.id} after {closed.duration_seconds}s pause")
        return updated

    def finish(self, ctx: TrackerContext) -> ProjectSession:
        self._ensure_no_pending(ctx)
        current = self._require_attached(ctx, "finish")
        if current.ledger.last_pause_is_open():
            raise LedgerStateError("Resume the session before finishing it", session_id=current.id)

        now = self.clock()
        finished = current.snapshot()
        finished.end_time = now
        finished.total_active_seconds = final_active_seconds(finished.start_time, now, finished.pauses)
        finished.status = SessionStatus.COMPLETED

        self._write(ctx, PendingWrite("finish", "update", finished, attach=None))
        logger.info(f"Finished session {finished.id}: {finished.total_active_seconds}s active")
        return finished

    # --- variations on the attached session ---

    def _update_attached(self, ctx: TrackerContext, action: str, mutate) -> ProjectSession:
        self._ensure_no_pending(ctx)
        current = self._require_attached(ctx, action)
        updated = current.snapshot()
        mutate(updated)
        self._write(ctx, PendingWrite(action, "update", updated, attach=updated))
        return updated

    def add_variation(self, ctx: TrackerContext, fields: VariationCreate) -> VariationRecord:
        added = []

        def mutate(session):
            added.append(session.variation_ledger.add(
                old_code=fields.old_code,
                new_code=fields.new_code,
                description=fields.description,
                kind=fields.kind,
                files_generated=fields.files_generated
            ))

        self._update_attached(ctx, "add variation", mutate)
        return added[0]

    def toggle_variation_files(self, ctx: TrackerContext, variation_id: str) -> ProjectSession:
        return self._update_attached(
            ctx, "toggle variation", lambda s: s.variation_ledger.toggle_files(variation_id)
        )

    def remove_variation(self, ctx: TrackerContext, variation_id: str) -> ProjectSession:
        return self._update_attached(
            ctx, "remove variation", lambda s: s.variation_ledger.remove(variation_id)
        )

    # --- recovery ---

    def retry(self, ctx: TrackerContext) -> ProjectSession:
        if not ctx.pending:
            raise LedgerStateError("Nothing to retry")
        pending = ctx.pending
        logger.info(f"Retrying '{pending.action}' on session {pending.session.id}")
        self._write(ctx, pending)
        return pending.session

    def discard_pending(self, ctx: TrackerContext):
        if ctx.pending:
            logger.warning(f"Discarded unsaved '{ctx.pending.action}' on session {ctx.pending.session.id}")
        ctx.pending = None

    # --- queries ---

    def pending_sessions(self, user_id: Optional[int] = None) -> List[ProjectSession]:
        """IN_PROGRESS sessions offered for resume, newest first."""
        return self.gateway.list_sessions(status=SessionStatus.IN_PROGRESS, user_id=user_id)

    def live_elapsed(self, ctx: TrackerContext) -> Optional[int]:
        if not ctx.attached:
            return None
        return ctx.attached.elapsed_seconds(self.clock())
