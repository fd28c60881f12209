"""
api/routes/v1/auth.py -- Account and credential REST endpoints.

Routes:
  POST /api/v1/auth/register         -- create account; 201 with account + token
  POST /api/v1/auth/login            -- email/password login; returns a bearer token
  POST /api/v1/auth/logout           -- revoke the presented token (requires auth)
  POST /api/v1/auth/forgot-password  -- email a 6-digit reset code
  POST /api/v1/auth/reset-password   -- set a new password with a reset code
  GET  /api/v1/auth/me               -- current account (requires auth)

Handlers are plain `def`, not `async def`: FastAPI runs them in its
threadpool, so bcrypt work never blocks the event loop.

Domain errors (auth/errors.py) are not caught here. They propagate to the
AuthError handler in api/main.py, which renders the 422 envelope.

Security:
  Login and reset failures carry one fixed message each, whatever the cause.
  Forgot-password answers the same message for registered and unknown emails.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AccountEnvelope,
    AccountResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterData,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenData,
)
from auth.dependencies import get_auth_context, get_current_account
from auth.flows import AuthFlows
from auth.models import Account, AuthContext
from auth.validation import ForgotPasswordInput, LoginInput, RegisterInput, ResetPasswordInput

# Auth policy:
# - POST /api/v1/auth/register:         public
# - POST /api/v1/auth/login:            public
# - POST /api/v1/auth/forgot-password:  public
# - POST /api/v1/auth/reset-password:   public -- the reset code is the credential
# - POST /api/v1/auth/logout:           requires auth (get_auth_context)
# - GET  /api/v1/auth/me:               requires auth (get_current_account)
router = APIRouter()

RESET_SENT_MESSAGE = "If an account exists for that email, a password reset OTP has been sent."


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and sign it in.

    A taken email is reported as a 422 on the email field, like any other
    validation failure. The welcome mail is queued, never awaited.
    """
    flows: AuthFlows = request.app.state.flows
    account, token = flows.register(
        RegisterInput(
            name=body.name,
            email=body.email,
            password=body.password,
            password_confirmation=body.password_confirmation,
        )
    )
    payload = RegisterResponse(
        message="User registered successfully. A welcome email has been sent to your email.",
        data=RegisterData(
            user=AccountResponse.from_account(account),
            access_token=token.plain_text or "",
        ),
        status=201,
    )
    return _no_store(JSONResponse(status_code=201, content=payload.model_dump()))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email and password for a bearer token.

    Unknown email and wrong password both yield the same 422 with the same
    body; AuthFlows.login() also equalizes the bcrypt work between them.
    """
    flows: AuthFlows = request.app.state.flows
    token = flows.login(LoginInput(email=body.email, password=body.password))
    payload = LoginResponse(message="Login successful", data=TokenData.from_token(token), status=200)
    return _no_store(JSONResponse(status_code=200, content=payload.model_dump()))


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, context: AuthContext = Depends(get_auth_context)) -> MessageResponse:
    """Revoke only the token used for this request."""
    flows: AuthFlows = request.app.state.flows
    flows.logout(context)
    return MessageResponse(message="Logged out successfully", status=200)


@router.post("/auth/forgot-password", response_model=MessageResponse)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Queue a reset code for the email if it is registered.

    The response is identical for registered and unknown emails.
    """
    flows: AuthFlows = request.app.state.flows
    flows.forgot_password(ForgotPasswordInput(email=body.email))
    return MessageResponse(message=RESET_SENT_MESSAGE, status=200)


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    """Set a new password with a reset code. Every existing token of the account is revoked."""
    flows: AuthFlows = request.app.state.flows
    flows.reset_password(
        ResetPasswordInput(
            email=body.email,
            otp=body.otp,
            password=body.password,
            password_confirmation=body.password_confirmation,
        )
    )
    return MessageResponse(message="Your password has been reset.", status=200)


@router.get("/auth/me", response_model=AccountEnvelope)
def me(account: Account = Depends(get_current_account)) -> AccountEnvelope:
    """Return the account that owns the presented token."""
    return AccountEnvelope(
        message="Authenticated account",
        data=AccountResponse.from_account(account),
        status=200,
    )
