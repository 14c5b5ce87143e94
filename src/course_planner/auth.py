from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .identity import Identity, IdentityPolicy
from .settings import get_settings

_security = HTTPBasic(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Basic"},
    )


# PUBLIC_INTERFACE
def get_identity(
    creds: Optional[HTTPBasicCredentials] = Depends(_security),
    x_caller_sub: Optional[str] = Header(default=None),
    x_caller_issuer: Optional[str] = Header(default=None),
) -> Optional[Identity]:
    """
    Resolve the caller identity for the current request.

    Behavior:
    - If settings.enable_basic_auth is True: credentials are required and checked
      against BASIC_AUTH_USERNAME/BASIC_AUTH_PASSWORD; the username becomes the
      subject with issuer 'basic'. Missing or invalid credentials raise 401 with
      WWW-Authenticate: Basic.
    - Otherwise the identity is taken from the gateway headers X-Caller-Sub and
      X-Caller-Issuer. With neither header present the caller has no identity
      (None) and the operation's policy decides whether that is acceptable.
    """
    settings = get_settings()

    if settings.enable_basic_auth:
        if creds is None or not creds.username or creds.password is None:
            raise _unauthorized("Not authenticated")

        expected_user = settings.basic_auth_username
        expected_pass = settings.basic_auth_password
        if expected_user is None or expected_pass is None:
            # Misconfiguration: auth enabled but username/password not provided
            raise _unauthorized("Server authentication not configured")

        user_ok = secrets.compare_digest(creds.username.encode(), expected_user.encode())
        pass_ok = secrets.compare_digest(creds.password.encode(), expected_pass.encode())
        if not (user_ok and pass_ok):
            raise _unauthorized("Invalid authentication credentials")
        return Identity(subject=creds.username, issuer="basic")

    sub = (x_caller_sub or "").strip() or None
    issuer = (x_caller_issuer or "").strip() or None
    if sub is None and issuer is None:
        return None
    return Identity(subject=sub, issuer=issuer)


# PUBLIC_INTERFACE
def get_identity_policy() -> IdentityPolicy:
    """Return the identity policy configured through settings."""
    return IdentityPolicy.from_settings(get_settings())
