"""
auth/dependencies.py -- FastAPI Depends() helpers for bearer authentication.

Only one auth method exists: the Authorization: Bearer <token> header
carrying an opaque token issued by TokenIssuer. Cookies and sessions are not
consulted.

try_get_auth_context() is the soft variant (returns None on failure).
get_auth_context() wraps it and raises HTTP 401 if unauthenticated.
get_current_account() narrows the context to the Account for routes that
do not need the token itself.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account, AuthContext
from auth.tokens import TokenIssuer


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return value.strip()


def try_get_auth_context(request: Request) -> AuthContext | None:
    """Resolve the request's bearer token to an AuthContext, or None.

    Never raises -- callers that need a hard 401 should use get_auth_context().
    """
    raw_token = _bearer_token(request)
    if not raw_token:
        return None
    tokens: TokenIssuer = request.app.state.flows.tokens
    return tokens.authenticate(raw_token)


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.post("/protected")
        def route(context: AuthContext = Depends(get_auth_context)): ...
    """
    context = try_get_auth_context(request)
    if context is None:
        raise HTTPException(status_code=401, detail="Unauthenticated.")
    return context


def get_current_account(request: Request) -> Account:
    """Require authentication and return only the Account."""
    return get_auth_context(request).account
