"""
Persistence gateway for project sessions.

The tracker treats storage as a write sink that may be slow or fail: every
SQLAlchemy failure is rolled back and surfaced as PersistenceError, and
nothing here mutates the caller's in-memory session.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .exceptions import NotFoundError, PersistenceError
from .models import Project
from .sessions import ProjectSession, SessionStatus, VariationRecord
from .timing import pause_to_record, pause_from_record
from .utils.datetime_utils import ensure_aware

logger = logging.getLogger(__name__)


def session_to_row(session: ProjectSession) -> dict:
    return {
        "id": session.id,
        "ns": session.ns,
        "client_name": session.client_name,
        "project_code": session.project_code,
        "type": session.type.value,
        "implement_type": session.implement_type.value if session.implement_type else None,
        "flooring_type": session.flooring_type,
        "notes": session.notes,
        "user_id": session.user_id,
        "start_time": session.start_time,
        "end_time": session.end_time,
        "total_active_seconds": session.total_active_seconds,
        "pauses": [pause_to_record(p) for p in session.pauses],
        "variations": [v.model_dump(mode="json") for v in session.variations],
        "status": session.status.value,
    }


def row_to_session(row: Project) -> ProjectSession:
    return ProjectSession(
        id=row.id,
        ns=row.ns,
        client_name=row.client_name,
        project_code=row.project_code,
        type=row.type,
        implement_type=row.implement_type or None,
        flooring_type=row.flooring_type,
        notes=row.notes,
        user_id=row.user_id,
        start_time=ensure_aware(row.start_time),
        end_time=ensure_aware(row.end_time) if row.end_time else None,
        total_active_seconds=row.total_active_seconds or 0,
        pauses=[pause_from_record(p) for p in (row.pauses or [])],
        status=row.status,
        variations=[VariationRecord(**v) for v in (row.variations or [])],
    )


class SessionGateway:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, operation: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {operation}: {e}")
            raise PersistenceError(operation, str(e)) from e

    def _get_row(self, session_id: str) -> Project:
        try:
            row = self.db.query(Project).filter(Project.id == session_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load session {session_id}: {e}")
            raise PersistenceError("load session", str(e)) from e
        if not row:
            raise NotFoundError("Session", session_id)
        return row

    def create_session(self, session: ProjectSession) -> ProjectSession:
        self.db.add(Project(**session_to_row(session)))
        self._commit("create session")
        logger.info(f"Created session {session.id} (NS {session.ns})")
        return session

    def update_session(self, session: ProjectSession) -> ProjectSession:
        row = self._get_row(session.id)
        values = session_to_row(session)
        # start_time and id are fixed at creation
        values.pop("id")
        values.pop("start_time")
        for key, value in values.items():
            setattr(row, key, value)
        self._commit("update session")
        logger.debug(f"Updated session {session.id}")
        return session

    def get_session(self, session_id: str) -> ProjectSession:
        return row_to_session(self._get_row(session_id))

    def list_sessions(
        self,
        status: Optional[SessionStatus] = None,
        user_id: Optional[int] = None
    ) -> List[ProjectSession]:
        query = self.db.query(Project)
        if status is not None:
            query = query.filter(Project.status == status.value)
        if user_id is not None:
            query = query.filter(Project.user_id == user_id)
        try:
            rows = query.order_by(Project.start_time.desc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to list sessions: {e}")
            raise PersistenceError("list sessions", str(e)) from e
        return [row_to_session(row) for row in rows]

    def delete_session(self, session_id: str):
        row = self._get_row(session_id)
        self.db.delete(row)
        self._commit("delete session")
        logger.info(f"Deleted session {session_id}")
