"""
api/routes/v1/applications.py -- Program application endpoints for students.

Routes:
  POST /api/v1/applications/submit           -- apply to a program (requires auth)
  GET  /api/v1/applications/my-applications  -- the caller's applications (requires auth)
  GET  /api/v1/applications/all              -- every application with its applicant (admin only)

Ownership: user_id always comes from the Auth Gate, never from the body,
so a caller can only create and list their own applications.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.errors import http_error
from api.models import (
    AdminApplicationListResponse,
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationOut,
    ApplicationResponse,
)
from api.routes.v1.admin import application_views
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from auth.outcomes import ErrorKind
from portal.models import Application
from portal.store import ApplicationStore

logger = logging.getLogger("internhub.api")

router = APIRouter()


@router.post("/applications/submit", response_model=ApplicationResponse, status_code=201)
def submit_application(
    request: Request,
    body: ApplicationCreate,
    current_user: User = Depends(get_current_user),
) -> ApplicationResponse:
    """Create a pending application.

    409 when the caller already has a pending, approved or in-progress
    application for the same program.
    """
    store: ApplicationStore = request.app.state.applications
    program = body.program.value
    if store.has_active_application(current_user.id, program):
        raise http_error(ErrorKind.conflict, "You already have an active application for this program")

    app_id = store.create_application(
        Application(
            user_id=current_user.id,
            program=program,
            experience=body.experience,
            education=body.education,
            motivation=body.motivation,
        )
    )
    logger.info("User id=%s applied to %s", current_user.id, program)
    return ApplicationResponse(
        message="Application submitted successfully",
        application=ApplicationOut.from_application(store.get_application(app_id)),
    )


@router.get("/applications/my-applications", response_model=ApplicationListResponse)
def my_applications(request: Request, current_user: User = Depends(get_current_user)) -> ApplicationListResponse:
    store: ApplicationStore = request.app.state.applications
    applications = store.list_for_user(current_user.id)
    return ApplicationListResponse(
        message="Applications loaded",
        count=len(applications),
        applications=[ApplicationOut.from_application(a) for a in applications],
    )


@router.get("/applications/all", response_model=AdminApplicationListResponse)
def all_applications(request: Request, current_user: User = Depends(require_admin)) -> AdminApplicationListResponse:
    """Same view as GET /admin/applications, kept at the path the web client uses."""
    views = application_views(request)
    return AdminApplicationListResponse(message="Applications loaded", count=len(views), applications=views)
