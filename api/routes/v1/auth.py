"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/register          -- create an unverified student account
  POST /api/v1/auth/login             -- e-mail/password login; returns a bearer token
  POST /api/v1/auth/send-otp          -- e-mail a verification code
  POST /api/v1/auth/verify-otp        -- consume a verification code; marks the account verified
  POST /api/v1/auth/forgot-password   -- e-mail a password-reset code (account must exist)
  POST /api/v1/auth/reset-password    -- consume a reset code and set a new password
  GET  /api/v1/auth/profile           -- current user's profile (requires auth)
  PUT  /api/v1/auth/update-profile    -- edit name/phone/program (requires auth)
  PUT  /api/v1/auth/change-password   -- change password with the current one (requires auth)

Security:
  POST /login, /send-otp, /forgot-password and /reset-password are rate-limited
  per client IP (LOGIN_RATE_LIMIT / OTP_RATE_LIMIT).
  Login and token responses carry Cache-Control: no-store.
  authenticate_user() (via flows.login) provides timing equalization.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.errors import raise_for
from api.limiter import limiter, login_limit, otp_limit
from api.models import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtpSentResponse,
    Profile,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    UpdateProfileRequest,
    UserSummary,
    VerifyOtpRequest,
)
from auth import flows
from auth.dependencies import get_current_user
from auth.models import User

# Auth policy:
# - POST /auth/register, /login, /send-otp, /verify-otp,
#        /forgot-password, /reset-password:  public
# - GET  /auth/profile:                      requires auth (get_current_user)
# - PUT  /auth/update-profile:               requires auth (get_current_user)
# - PUT  /auth/change-password:              requires auth (get_current_user)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a student account. Verification is not required before login."""
    state = request.app.state
    outcome = flows.register(
        state.user_store,
        state.mailer,
        state.settings,
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        program=body.program.value if body.program else "",
    )
    user = raise_for(outcome)
    return RegisterResponse(
        message=outcome.message,
        user=UserSummary(id=user.id, name=user.name, email=user.email),
    )


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_limit)  # below @router so the registered endpoint is the limited one
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with e-mail and password; return a bearer token and profile.

    Unknown e-mail and wrong password share one error ("invalid_credentials").
    """
    settings = request.app.state.settings
    outcome = flows.login(request.app.state.user_store, settings, email=body.email, password=body.password)
    result = raise_for(outcome)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            message=outcome.message,
            token=result.token,
            expires_in=settings.token_expire_seconds,
            user=Profile.from_user(result.user),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/send-otp", response_model=OtpSentResponse)
@limiter.limit(otp_limit)
def send_otp(request: Request, body: EmailRequest) -> OtpSentResponse:
    """Issue an e-mail verification code. Any earlier verification code stops working."""
    state = request.app.state
    outcome = flows.send_verification_code(state.user_store, state.mailer, state.settings, email=body.email)
    code = raise_for(outcome)
    return OtpSentResponse(message=outcome.message, dev_otp=code if state.settings.debug else None)


@router.post("/auth/verify-otp", response_model=MessageResponse)
def verify_otp(request: Request, body: VerifyOtpRequest) -> MessageResponse:
    state = request.app.state
    outcome = flows.verify_code(state.user_store, state.settings, email=body.email, code=body.otp)
    raise_for(outcome)
    return MessageResponse(message=outcome.message)


@router.post("/auth/forgot-password", response_model=OtpSentResponse)
@limiter.limit(otp_limit)
def forgot_password(request: Request, body: EmailRequest) -> OtpSentResponse:
    """Issue a password-reset code. 404 when no account uses the address."""
    state = request.app.state
    outcome = flows.request_password_reset(state.user_store, state.mailer, state.settings, email=body.email)
    code = raise_for(outcome)
    return OtpSentResponse(message=outcome.message, dev_otp=code if state.settings.debug else None)


@router.post("/auth/reset-password", response_model=MessageResponse)
@limiter.limit(otp_limit)
def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    """Set a new password using a reset code. No session is needed."""
    state = request.app.state
    outcome = flows.reset_password(
        state.user_store,
        state.settings,
        email=body.email,
        code=body.otp,
        new_password=body.new_password,
    )
    raise_for(outcome)
    return MessageResponse(message=outcome.message)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile", response_model=ProfileResponse)
def profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    """Return the profile of the currently authenticated user."""
    return ProfileResponse(message="Profile loaded", user=Profile.from_user(current_user))


@router.put("/auth/update-profile", response_model=ProfileResponse)
def update_profile(
    request: Request,
    body: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Update name, phone and program. email and role in the body are ignored."""
    outcome = flows.update_profile(
        request.app.state.user_store,
        current_user,
        name=body.name,
        phone=body.phone,
        program=body.program,
    )
    user = raise_for(outcome)
    return ProfileResponse(message=outcome.message, user=Profile.from_user(user))


@router.put("/auth/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    state = request.app.state
    outcome = flows.change_password(
        state.user_store,
        state.settings,
        current_user,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    raise_for(outcome)
    return MessageResponse(message=outcome.message)
