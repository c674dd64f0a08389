"""
API request and response models for InternHub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
portal/models.py, which own the internal domain representation. Route
handlers map between the two.

Every response body carries `success` and `message`. Error bodies add an
`error` object with a stable machine-readable code.

Request bodies accept the camelCase names used by the web client
(newPassword, currentPassword) as well as snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from core.models import EMAIL_PATTERN, Program
from portal.models import Application, ApplicationStatus
from support.models import Chat, ChatMessage

# Character cap only. The 72-byte bcrypt limit on the encoded password is
# checked by auth/flows.py so multi-byte input gets a 400, not a 500.
_PASSWORD_MAX = 72

_REQUEST_CONFIG = ConfigDict(str_strip_whitespace=True, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    error: ErrorDetail


class MessageResponse(BaseModel):
    """Envelope for successful responses with no payload."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "ok"
    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    model_config = _REQUEST_CONFIG

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)
    phone: Optional[str] = Field(default=None, max_length=40)
    program: Optional[Program] = None

    @field_validator("program", mode="before")
    @classmethod
    def blank_program_is_none(cls, value):
        return None if value == "" else value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = _REQUEST_CONFIG

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_PASSWORD_MAX)


class EmailRequest(BaseModel):
    """Request body for POST /auth/send-otp and POST /auth/forgot-password."""

    model_config = _REQUEST_CONFIG

    email: str = Field(min_length=1, max_length=255)


class VerifyOtpRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify-otp."""

    model_config = _REQUEST_CONFIG

    email: str = Field(min_length=1, max_length=255)
    otp: str = Field(min_length=1, max_length=12)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password.

    Length of new_password is checked by the flow so the error message
    names the configured minimum.
    """

    model_config = _REQUEST_CONFIG

    email: str = Field(min_length=1, max_length=255)
    otp: str = Field(min_length=1, max_length=12)
    new_password: str = Field(alias="newPassword", min_length=1, max_length=_PASSWORD_MAX)


class UpdateProfileRequest(BaseModel):
    """Request body for PUT /api/v1/auth/update-profile.

    Only these three fields are editable. email and role are not fields here,
    and extra keys are ignored, so they can never be changed through this route.
    """

    model_config = _REQUEST_CONFIG

    name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=40)
    program: Optional[str] = None

    @field_validator("program")
    @classmethod
    def program_known_or_blank(cls, value: Optional[str]) -> Optional[str]:
        """Accept a known program or "" (clears the choice)."""
        if value is None or value == "":
            return value
        return Program(value).value


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /api/v1/auth/change-password."""

    model_config = _REQUEST_CONFIG

    current_password: str = Field(alias="currentPassword", min_length=1, max_length=_PASSWORD_MAX)
    new_password: str = Field(alias="newPassword", min_length=1, max_length=_PASSWORD_MAX)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str


class Profile(BaseModel):
    """Redacted view of a User. There is no password field to leak."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    phone: Optional[str]
    program: str
    is_verified: bool
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "Profile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            phone=user.phone,
            program=user.program,
            is_verified=user.is_verified,
            created_at=user.created_at or "",
        )


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    user: UserSummary


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: Profile


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    user: Profile


class OtpSentResponse(BaseModel):
    """dev_otp is populated only when DEBUG=true."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    dev_otp: Optional[str] = None


class UserListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    count: int
    users: list[Profile]


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


class ApplicationCreate(BaseModel):
    """Request body for POST /api/v1/applications/submit."""

    model_config = _REQUEST_CONFIG

    program: Program
    experience: str = Field(default="beginner", max_length=40)
    education: Optional[str] = Field(default=None, max_length=1000)
    motivation: Optional[str] = Field(default=None, max_length=4000)


class ApplicationOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    program: str
    experience: str
    education: Optional[str]
    motivation: Optional[str]
    status: str
    notes: str
    submitted_at: str
    updated_at: str

    @classmethod
    def from_application(cls, application: Application) -> "ApplicationOut":
        return cls(
            id=application.id,
            user_id=application.user_id,
            program=application.program,
            experience=application.experience,
            education=application.education,
            motivation=application.motivation,
            status=application.status,
            notes=application.notes,
            submitted_at=application.submitted_at,
            updated_at=application.updated_at,
        )


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    application: ApplicationOut


class ApplicationListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    count: int
    applications: list[ApplicationOut]


# ---------------------------------------------------------------------------
# Admin -- application review
# ---------------------------------------------------------------------------


class ApplicantSummary(BaseModel):
    """Who submitted an application. Only id is set when the account is gone."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user_id: int, user: Optional[User]) -> "ApplicantSummary":
        if user is None:
            return cls(id=user_id)
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone)


class AdminApplicationOut(ApplicationOut):
    model_config = ConfigDict(frozen=True)

    applicant: ApplicantSummary


class AdminApplicationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    application: AdminApplicationOut


class AdminApplicationListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    count: int
    applications: list[AdminApplicationOut]


class ApplicationStatusUpdate(BaseModel):
    """Request body for PUT /api/v1/admin/applications/{id}/status. notes replace any earlier notes."""

    model_config = _REQUEST_CONFIG

    status: ApplicationStatus
    notes: str = Field(default="", max_length=2000)


class StatsResponse(BaseModel):
    """Response for GET /api/v1/admin/stats."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    total_users: int
    verified_users: int
    total_applications: int
    applications_by_status: dict[str, int]
    applications_by_program: dict[str, int]


# ---------------------------------------------------------------------------
# Support chat
# ---------------------------------------------------------------------------


class SendMessageRequest(BaseModel):
    """Request body for POST /chat/send and POST /chat/{id}/reply."""

    model_config = _REQUEST_CONFIG

    message: str = Field(min_length=1, max_length=2000)


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    sender_id: int
    sender_name: str
    message: str
    is_admin: bool
    sent_at: str

    @classmethod
    def from_message(cls, message: ChatMessage) -> "ChatMessageOut":
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            sender_name=message.sender_name,
            message=message.body,
            is_admin=message.is_admin,
            sent_at=message.sent_at,
        )


class ChatOut(BaseModel):
    """A thread with its messages. user is filled in on admin views only."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    status: str
    created_at: str
    last_message_at: str
    messages: list[ChatMessageOut]
    user: Optional[ApplicantSummary] = None

    @classmethod
    def from_chat(cls, chat: Chat, user: Optional[ApplicantSummary] = None) -> "ChatOut":
        return cls(
            id=chat.id,
            user_id=chat.user_id,
            status=chat.status,
            created_at=chat.created_at,
            last_message_at=chat.last_message_at,
            messages=[ChatMessageOut.from_message(m) for m in chat.messages],
            user=user,
        )


class ChatResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    chat: ChatOut


class ChatListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    count: int
    chats: list[ChatOut]
