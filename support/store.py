"""
support/store.py -- SQLAlchemy Core persistence for support chat threads.

Pattern: Repository + Data Mapper (same as portal/store.py). ChatStore is the
repository; _row_to_chat / _row_to_message are the mappers.

chats.user_id is UNIQUE: get_or_create_for_user() inserts on first use and,
if a concurrent request won the insert, re-reads the winner's row.

Appending a message and bumping chats.last_message_at happen in one
transaction, so the admin inbox order always matches the newest message.

Usage:
    store = ChatStore("sqlite:///internhub.db")
    chat = store.get_or_create_for_user(7)
    store.add_message(ChatMessage(chat_id=chat.id, sender_id=7, sender_name="Ann", body="Hi"))
    store.set_status(chat.id, "closed")
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from support.models import Chat, ChatMessage, ChatStatus

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_chats = Table(
    "chats",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, unique=True),
    Column("status", String(10), nullable=False, server_default=ChatStatus.open.value),
    Column("created_at", String(32), nullable=False),
    Column("last_message_at", String(32), nullable=False),
)

_messages = Table(
    "chat_messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("chat_id", Integer, nullable=False, index=True),
    Column("sender_id", Integer, nullable=False),
    Column("sender_name", String(255), nullable=False),
    Column("body", Text, nullable=False),
    Column("is_admin", Boolean, nullable=False, server_default="0"),
    Column("sent_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChatStore:
    """Repository for Chat and ChatMessage entities."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def get_or_create_for_user(self, user_id: int) -> Chat:
        """Return the user's thread (with messages), creating an empty open one if needed."""
        chat = self.get_for_user(user_id)
        if chat is not None:
            return chat
        now = _now_iso()
        try:
            with self.engine.begin() as conn:
                conn.execute(_chats.insert().values(user_id=user_id, created_at=now, last_message_at=now))
        except IntegrityError:
            # Another request created it between the read and the insert.
            pass
        return self.get_for_user(user_id)

    def get_for_user(self, user_id: int) -> Optional[Chat]:
        with self.engine.connect() as conn:
            row = conn.execute(_chats.select().where(_chats.c.user_id == user_id)).fetchone()
            return _load_chat(conn, row) if row is not None else None

    def get_chat(self, chat_id: int) -> Optional[Chat]:
        with self.engine.connect() as conn:
            row = conn.execute(_chats.select().where(_chats.c.id == chat_id)).fetchone()
            return _load_chat(conn, row) if row is not None else None

    def list_chats(self) -> list[Chat]:
        """Return every thread with its messages, most recently active first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _chats.select().order_by(_chats.c.last_message_at.desc(), _chats.c.id.desc())
            ).fetchall()
            return [_load_chat(conn, r) for r in rows]

    def add_message(self, message: ChatMessage) -> Optional[ChatMessage]:
        """Append a message and bump the thread's activity time. None if the chat does not exist."""
        sent_at = _now_iso()
        with self.engine.begin() as conn:
            bumped = conn.execute(
                _chats.update().where(_chats.c.id == message.chat_id).values(last_message_at=sent_at)
            )
            if bumped.rowcount == 0:
                return None
            result = conn.execute(
                _messages.insert().values(
                    chat_id=message.chat_id,
                    sender_id=message.sender_id,
                    sender_name=message.sender_name,
                    body=message.body,
                    is_admin=message.is_admin,
                    sent_at=sent_at,
                )
            )
            new_id = result.inserted_primary_key[0]
        return ChatMessage(
            id=new_id,
            chat_id=message.chat_id,
            sender_id=message.sender_id,
            sender_name=message.sender_name,
            body=message.body,
            is_admin=message.is_admin,
            sent_at=sent_at,
        )

    def set_status(self, chat_id: int, status: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_chats.update().where(_chats.c.id == chat_id).values(status=status))
            conn.commit()
        return result.rowcount > 0

    def delete_for_user(self, user_id: int) -> int:
        """Delete the user's thread and all its messages. Returns threads removed (0 or 1)."""
        with self.engine.begin() as conn:
            chat_ids = [r.id for r in conn.execute(select(_chats.c.id).where(_chats.c.user_id == user_id))]
            if not chat_ids:
                return 0
            conn.execute(_messages.delete().where(_messages.c.chat_id.in_(chat_ids)))
            conn.execute(_chats.delete().where(_chats.c.id.in_(chat_ids)))
        return len(chat_ids)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _load_chat(conn, row) -> Chat:
    message_rows = conn.execute(
        _messages.select().where(_messages.c.chat_id == row.id).order_by(_messages.c.sent_at, _messages.c.id)
    ).fetchall()
    return _row_to_chat(row, [_row_to_message(m) for m in message_rows])


def _row_to_chat(row, messages: list[ChatMessage]) -> Chat:
    return Chat(
        id=row.id,
        user_id=row.user_id,
        status=row.status,
        created_at=row.created_at,
        last_message_at=row.last_message_at,
        messages=messages,
    )


def _row_to_message(row) -> ChatMessage:
    return ChatMessage(
        id=row.id,
        chat_id=row.chat_id,
        sender_id=row.sender_id,
        sender_name=row.sender_name,
        body=row.body,
        is_admin=bool(row.is_admin),
        sent_at=row.sent_at,
    )
