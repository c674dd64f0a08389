"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as portal/store.py).
UserStore is the repository; _row_to_user / _row_to_code are the mappers.
Flow, dependency and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  E-mail addresses are normalized (trimmed, lower-cased) on every write and
  lookup, so the UNIQUE constraint on users.email is case-insensitive in
  effect.

  One-time codes are matched and consumed with a single DELETE ... WHERE
  statement. Two concurrent submissions of the same code cannot both win:
  only one of them sees rowcount == 1.

DB URL: Settings.database_url (default: internhub.db at the repo root).

Layer rule: no imports from api/, notify/ or portal/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine

from auth.models import OneTimeCode, User
from core.models import normalize_email

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("phone", String(40)),
    Column("program", String(40), nullable=False, server_default=""),
    Column("role", String(20), nullable=False, server_default="student"),
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_codes = Table(
    "one_time_codes",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, index=True),  # not unique: one row per purpose
    Column("purpose", String(20), nullable=False),
    Column("code_hash", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("created_at", Float, nullable=False),  # epoch seconds
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and OneTimeCode entities.

    Usage:
        store = UserStore("sqlite:///internhub.db")
        uid = store.create_user(User(email="a@x.com", name="A", hashed_password=hash_password("secret1")))
        user = store.get_by_email("A@X.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the e-mail already exists.
        Registration pre-checks with get_by_email(); the constraint catches
        the race where two requests pass the pre-check together.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=normalize_email(user.email),
                    name=user.name,
                    hashed_password=user.hashed_password,
                    phone=user.phone,
                    program=user.program or "",
                    role=user.role,
                    is_verified=user.is_verified,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by e-mail (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, newest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at.desc(), _users.c.id.desc())).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self, verified: bool | None = None) -> int:
        """Count all users, or only verified / unverified ones."""
        query = select(func.count()).select_from(_users)
        if verified is not None:
            query = query.where(_users.c.is_verified == verified)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: name, phone, program, role, is_verified, hashed_password.
        Returns True if a row was updated, False if user_id was not found.
        """
        if not fields:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def mark_verified(self, email: str) -> bool:
        """Set is_verified on the account with this e-mail. False if there is none."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.email == normalize_email(email)).values(is_verified=True)
            )
            conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Outstanding one-time codes for the address go with it. Applications
        live in portal/ and are removed by the caller (admin route).
        """
        with self.engine.begin() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
            if row is None:
                return False
            conn.execute(_codes.delete().where(_codes.c.email == row.email))
            conn.execute(_users.delete().where(_users.c.id == user_id))
        return True

    # ------------------------------------------------------------------
    # One-time code queries
    # ------------------------------------------------------------------

    def replace_code(self, code: OneTimeCode) -> int:
        """Delete every code for (email, purpose) and insert this one. Returns its ID.

        Both statements run in one transaction, so a reader never sees two
        codes for the same pair from this call.
        """
        email = normalize_email(code.email)
        with self.engine.begin() as conn:
            conn.execute(_codes.delete().where((_codes.c.email == email) & (_codes.c.purpose == code.purpose)))
            result = conn.execute(
                _codes.insert().values(
                    email=email,
                    purpose=code.purpose,
                    code_hash=code.code_hash,
                    created_at=code.created_at,
                )
            )
            return result.inserted_primary_key[0]

    def consume_code(self, email: str, purpose: str, code_hash: str, issued_after: float) -> bool:
        """Delete the matching code if it was issued after issued_after.

        Returns True when exactly this call consumed the code. A wrong hash,
        a different purpose, or an expired row all return False and leave
        the stored code untouched.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _codes.delete().where(
                    (_codes.c.email == normalize_email(email))
                    & (_codes.c.purpose == purpose)
                    & (_codes.c.code_hash == code_hash)
                    & (_codes.c.created_at > issued_after)
                )
            )
            conn.commit()
        return result.rowcount > 0

    def list_codes(self, email: str, purpose: str | None = None) -> list[OneTimeCode]:
        """Return stored codes for an address, oldest first."""
        query = _codes.select().where(_codes.c.email == normalize_email(email))
        if purpose is not None:
            query = query.where(_codes.c.purpose == purpose)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_codes.c.created_at)).fetchall()
        return [_row_to_code(r) for r in rows]

    def purge_expired_codes(self, issued_before: float) -> int:
        """Delete all codes issued at or before the cutoff. Returns rows removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_codes.delete().where(_codes.c.created_at <= issued_before))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        phone=row.phone,
        program=row.program or "",
        role=row.role,
        is_verified=bool(row.is_verified),
        created_at=row.created_at,
    )


def _row_to_code(row) -> OneTimeCode:
    return OneTimeCode(
        id=row.id,
        email=row.email,
        purpose=row.purpose,
        code_hash=row.code_hash,
        created_at=row.created_at,
    )
