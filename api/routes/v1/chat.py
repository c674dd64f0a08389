"""
api/routes/v1/chat.py -- Support chat between students and administrators.

Routes:
  GET  /api/v1/chat/my-chat           -- the caller's thread, created on first use (requires auth)
  POST /api/v1/chat/send              -- append to the caller's thread (requires auth)
  GET  /api/v1/chat/all               -- every thread, most recently active first (admin only)
  GET  /api/v1/chat/{id}              -- one thread with its owner (admin only)
  POST /api/v1/chat/{id}/reply        -- answer a thread and reopen it (admin only)
  PUT  /api/v1/chat/{id}/close        -- mark a thread closed (admin only)

Access: a student reaches only their own thread, located by the Auth Gate's
user id, never by a path parameter. Routes taking a chat id sit behind the
Role Gate. The is_admin flag on a message comes from the sender's stored role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.errors import http_error
from api.models import ApplicantSummary, ChatListResponse, ChatOut, ChatResponse, SendMessageRequest
from auth.dependencies import get_current_user, require_admin
from auth.models import Role, User
from auth.outcomes import ErrorKind
from support.models import Chat, ChatMessage, ChatStatus
from support.store import ChatStore

logger = logging.getLogger("internhub.api")

router = APIRouter()


def _get_chat_or_404(chats: ChatStore, chat_id: int) -> Chat:
    chat = chats.get_chat(chat_id)
    if chat is None:
        raise http_error(ErrorKind.not_found, "Chat not found")
    return chat


def _with_owner(request: Request, chat: Chat) -> ChatOut:
    owner = request.app.state.user_store.get_by_id(chat.user_id)
    return ChatOut.from_chat(chat, ApplicantSummary.from_user(chat.user_id, owner))


@router.get("/chat/my-chat", response_model=ChatResponse)
def my_chat(request: Request, current_user: User = Depends(get_current_user)) -> ChatResponse:
    chat = request.app.state.chats.get_or_create_for_user(current_user.id)
    return ChatResponse(message="Chat loaded", chat=ChatOut.from_chat(chat))


@router.post("/chat/send", response_model=ChatResponse, status_code=201)
def send_message(
    request: Request,
    body: SendMessageRequest,
    current_user: User = Depends(get_current_user),
) -> ChatResponse:
    """Append to the caller's own thread. A closed thread is reopened."""
    chats: ChatStore = request.app.state.chats
    chat = chats.get_or_create_for_user(current_user.id)
    chats.add_message(
        ChatMessage(
            chat_id=chat.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            body=body.message,
            is_admin=current_user.role == Role.admin.value,
        )
    )
    if chat.status != ChatStatus.open.value:
        chats.set_status(chat.id, ChatStatus.open.value)
    return ChatResponse(message="Message sent", chat=ChatOut.from_chat(chats.get_chat(chat.id)))


@router.get("/chat/all", response_model=ChatListResponse)
def all_chats(request: Request, current_user: User = Depends(require_admin)) -> ChatListResponse:
    chats = request.app.state.chats.list_chats()
    return ChatListResponse(message="Chats loaded", count=len(chats), chats=[_with_owner(request, c) for c in chats])


@router.get("/chat/{chat_id}", response_model=ChatResponse)
def get_chat(request: Request, chat_id: int, current_user: User = Depends(require_admin)) -> ChatResponse:
    chat = _get_chat_or_404(request.app.state.chats, chat_id)
    return ChatResponse(message="Chat loaded", chat=_with_owner(request, chat))


@router.post("/chat/{chat_id}/reply", response_model=ChatResponse, status_code=201)
def reply(
    request: Request,
    chat_id: int,
    body: SendMessageRequest,
    current_user: User = Depends(require_admin),
) -> ChatResponse:
    chats: ChatStore = request.app.state.chats
    chat = _get_chat_or_404(chats, chat_id)
    chats.add_message(
        ChatMessage(
            chat_id=chat.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            body=body.message,
            is_admin=True,
        )
    )
    if chat.status != ChatStatus.open.value:
        chats.set_status(chat.id, ChatStatus.open.value)
    logger.info("Admin id=%s replied in chat id=%s", current_user.id, chat.id)
    return ChatResponse(message="Reply sent", chat=_with_owner(request, chats.get_chat(chat.id)))


@router.put("/chat/{chat_id}/close", response_model=ChatResponse)
def close_chat(request: Request, chat_id: int, current_user: User = Depends(require_admin)) -> ChatResponse:
    chats: ChatStore = request.app.state.chats
    if not chats.set_status(chat_id, ChatStatus.closed.value):
        raise http_error(ErrorKind.not_found, "Chat not found")
    logger.info("Admin id=%s closed chat id=%s", current_user.id, chat_id)
    return ChatResponse(message="Chat closed", chat=_with_owner(request, chats.get_chat(chat_id)))
