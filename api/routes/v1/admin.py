"""
api/routes/v1/admin.py -- User management and application review endpoints (admin only).

Routes:
  GET    /api/v1/admin/users                        -- list all users, newest first
  PUT    /api/v1/admin/users/{id}/verify            -- mark a user's e-mail verified
  PUT    /api/v1/admin/users/{id}/make-admin        -- promote a user to admin
  DELETE /api/v1/admin/users/{id}                   -- delete a user, their applications and chat
  GET    /api/v1/admin/applications                 -- every application with its applicant
  PUT    /api/v1/admin/applications/{id}/status     -- set status and notes, e-mail the applicant
  GET    /api/v1/admin/stats                        -- user and application counts

Every route depends on require_admin, which runs the Auth Gate first and
then checks the role held in the store.

Guards:
  An admin cannot delete their own account (no recovery path without DB access).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.errors import http_error
from api.models import (
    AdminApplicationListResponse,
    AdminApplicationOut,
    AdminApplicationResponse,
    ApplicantSummary,
    ApplicationOut,
    ApplicationStatusUpdate,
    MessageResponse,
    Profile,
    ProfileResponse,
    StatsResponse,
    UserListResponse,
)
from auth.dependencies import require_admin
from auth.models import Role, User
from auth.outcomes import ErrorKind
from auth.store import UserStore
from notify import templates
from notify.mailer import send_best_effort
from portal.models import Application
from portal.store import ApplicationStore
from support.store import ChatStore

logger = logging.getLogger("internhub.api")

router = APIRouter()


def _get_user_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise http_error(ErrorKind.not_found, "User not found")
    return user


def _admin_view(application: Application, applicant: User | None) -> AdminApplicationOut:
    return AdminApplicationOut(
        **ApplicationOut.from_application(application).model_dump(),
        applicant=ApplicantSummary.from_user(application.user_id, applicant),
    )


def application_views(request: Request) -> list[AdminApplicationOut]:
    """Every application joined with its applicant, newest first."""
    users = {u.id: u for u in request.app.state.user_store.list_users()}
    return [_admin_view(a, users.get(a.user_id)) for a in request.app.state.applications.list_all()]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/admin/users", response_model=UserListResponse)
def list_users(request: Request, current_user: User = Depends(require_admin)) -> UserListResponse:
    """List every account (password hashes are never included)."""
    users = request.app.state.user_store.list_users()
    return UserListResponse(
        message="Users loaded",
        count=len(users),
        users=[Profile.from_user(u) for u in users],
    )


@router.put("/admin/users/{user_id}/verify", response_model=ProfileResponse)
def verify_user(request: Request, user_id: int, current_user: User = Depends(require_admin)) -> ProfileResponse:
    """Mark a user verified without a code."""
    user_store: UserStore = request.app.state.user_store
    _get_user_or_404(user_store, user_id)
    user_store.update_user(user_id, is_verified=True)
    logger.info("Admin id=%s verified user id=%s", current_user.id, user_id)
    return ProfileResponse(message="User verified successfully", user=Profile.from_user(user_store.get_by_id(user_id)))


@router.put("/admin/users/{user_id}/make-admin", response_model=ProfileResponse)
def make_admin(request: Request, user_id: int, current_user: User = Depends(require_admin)) -> ProfileResponse:
    """Promote a user to admin. The only HTTP path that changes a role."""
    user_store: UserStore = request.app.state.user_store
    _get_user_or_404(user_store, user_id)
    user_store.update_user(user_id, role=Role.admin.value)
    logger.info("Admin id=%s promoted user id=%s", current_user.id, user_id)
    return ProfileResponse(message="User is now admin", user=Profile.from_user(user_store.get_by_id(user_id)))


@router.delete("/admin/users/{user_id}", response_model=MessageResponse)
def delete_user(request: Request, user_id: int, current_user: User = Depends(require_admin)) -> MessageResponse:
    """Delete a user's chat and applications, then the user.

    Owned rows go first, so a failure part-way leaves the account in place
    and no application or thread is left without its owner.
    """
    if user_id == current_user.id:
        raise http_error(ErrorKind.validation_error, "Cannot delete your own account")

    user_store: UserStore = request.app.state.user_store
    applications: ApplicationStore = request.app.state.applications
    chats: ChatStore = request.app.state.chats
    _get_user_or_404(user_store, user_id)

    chats.delete_for_user(user_id)
    removed = applications.delete_for_user(user_id)
    if not user_store.delete_user(user_id):
        raise http_error(ErrorKind.not_found, "User not found")
    logger.info("Admin id=%s deleted user id=%s (%d applications)", current_user.id, user_id, removed)
    return MessageResponse(message="User deleted successfully")


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


@router.get("/admin/applications", response_model=AdminApplicationListResponse)
def list_applications(request: Request, current_user: User = Depends(require_admin)) -> AdminApplicationListResponse:
    views = application_views(request)
    return AdminApplicationListResponse(message="Applications loaded", count=len(views), applications=views)


@router.put("/admin/applications/{application_id}/status", response_model=AdminApplicationResponse)
def update_application_status(
    request: Request,
    application_id: int,
    body: ApplicationStatusUpdate,
    current_user: User = Depends(require_admin),
) -> AdminApplicationResponse:
    """Set an application's status and notes, then notify the applicant.

    The notification is best-effort: the status change stands even if the
    e-mail cannot be delivered.
    """
    store: ApplicationStore = request.app.state.applications
    if not store.update_status(application_id, body.status.value, body.notes):
        raise http_error(ErrorKind.not_found, "Application not found")

    application = store.get_application(application_id)
    applicant = request.app.state.user_store.get_by_id(application.user_id)
    logger.info(
        "Admin id=%s set application id=%s to %s", current_user.id, application_id, application.status
    )
    if applicant is not None:
        send_best_effort(
            request.app.state.mailer,
            applicant.email,
            templates.application_status(
                applicant.name,
                application.program,
                application.status,
                application.notes,
                request.app.state.settings.client_url,
            ),
        )
    return AdminApplicationResponse(
        message="Application status updated",
        application=_admin_view(application, applicant),
    )


@router.get("/admin/stats", response_model=StatsResponse)
def stats(request: Request, current_user: User = Depends(require_admin)) -> StatsResponse:
    user_store: UserStore = request.app.state.user_store
    store: ApplicationStore = request.app.state.applications
    by_status = store.count_by("status")
    return StatsResponse(
        message="Statistics loaded",
        total_users=user_store.count_users(),
        verified_users=user_store.count_users(verified=True),
        total_applications=sum(by_status.values()),
        applications_by_status=by_status,
        applications_by_program=store.count_by("program"),
    )
