"""
portal/store.py -- SQLAlchemy-backed persistence for program applications.

Uses SQLAlchemy Core (not ORM) so the dataclasses in portal/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. ApplicationStore is the repository;
_row_to_application is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ApplicationStore("sqlite:///internhub.db")
    app_id = store.create_application(Application(user_id=1, program="web-development"))
    mine = store.list_for_user(1)
    store.update_status(app_id, "approved", notes="Welcome aboard")
    store.delete_for_user(1)     # cascade when an admin deletes the account
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from portal.models import ACTIVE_STATUSES, Application

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_applications = Table(
    "applications",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("program", String(40), nullable=False),
    Column("experience", String(40), nullable=False, server_default="beginner"),
    Column("education", Text),
    Column("motivation", Text),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("notes", Text, nullable=False, server_default=""),
    Column("submitted_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApplicationStore:
    """Repository for Application entities."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_application(self, application: Application) -> int:
        """Insert an application and return its ID."""
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _applications.insert().values(
                    user_id=application.user_id,
                    program=application.program,
                    experience=application.experience or "beginner",
                    education=application.education,
                    motivation=application.motivation,
                    status=application.status,
                    notes=application.notes or "",
                    submitted_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_application(self, application_id: int) -> Optional[Application]:
        with self.engine.connect() as conn:
            row = conn.execute(_applications.select().where(_applications.c.id == application_id)).fetchone()
        return _row_to_application(row) if row is not None else None

    def has_active_application(self, user_id: int, program: str) -> bool:
        """True if the user already holds a pending/approved/in-progress application for program."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _applications.select()
                .where(
                    (_applications.c.user_id == user_id)
                    & (_applications.c.program == program)
                    & (_applications.c.status.in_(ACTIVE_STATUSES))
                )
                .limit(1)
            ).fetchone()
        return row is not None

    def list_for_user(self, user_id: int) -> list[Application]:
        """Return a user's applications, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _applications.select()
                .where(_applications.c.user_id == user_id)
                .order_by(_applications.c.submitted_at.desc(), _applications.c.id.desc())
            ).fetchall()
        return [_row_to_application(r) for r in rows]

    def list_all(self) -> list[Application]:
        """Return every application, newest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _applications.select().order_by(_applications.c.submitted_at.desc(), _applications.c.id.desc())
            ).fetchall()
        return [_row_to_application(r) for r in rows]

    def update_status(self, application_id: int, status: str, notes: str = "") -> bool:
        """Set status and notes (notes are replaced, not appended). False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _applications.update()
                .where(_applications.c.id == application_id)
                .values(status=status, notes=notes or "", updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def count_by(self, column: str) -> dict[str, int]:
        """Return {value: count} grouped by "status" or "program"."""
        col = {"status": _applications.c.status, "program": _applications.c.program}[column]
        with self.engine.connect() as conn:
            rows = conn.execute(select(col, func.count()).group_by(col)).fetchall()
        return {value: count for value, count in rows}

    def delete_for_user(self, user_id: int) -> int:
        """Delete every application owned by user_id. Returns rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_applications.delete().where(_applications.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_application(row) -> Application:
    return Application(
        id=row.id,
        user_id=row.user_id,
        program=row.program,
        experience=row.experience,
        education=row.education,
        motivation=row.motivation,
        status=row.status,
        notes=row.notes or "",
        submitted_at=row.submitted_at,
        updated_at=row.updated_at,
    )
