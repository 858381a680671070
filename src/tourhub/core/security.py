"""Security utilities and middleware."""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from tourhub.core.exceptions import AuthenticationRequiredException, ForbiddenException
from tourhub.core.models import Identity

# Headers populated by the upstream authentication layer.
USER_ID_HEADER = "X-User-Id"
USER_ROLES_HEADER = "X-User-Roles"


async def security_headers_middleware(request: Request, call_next: Any) -> JSONResponse:
    """Add security headers to responses.

    Args:
        request: The incoming request.
        call_next: The next middleware or route handler.

    Returns:
        Response: Response with security headers added.
    """
    response = await call_next(request)

    # Add security headers
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"

    return response


def identity_from_request(request: Request) -> Identity | None:
    """Read the caller identity forwarded by the authentication layer.

    Returns ``None`` for anonymous callers. Roles are a comma separated list.
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        return None
    raw_roles = request.headers.get(USER_ROLES_HEADER) or ""
    roles = frozenset(r.strip().lower() for r in raw_roles.split(",") if r.strip())
    return Identity(user_id=user_id, roles=roles)


def ensure_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise AuthenticationRequiredException()
    return identity


def ensure_roles(identity: Identity, *roles: str) -> Identity:
    if not identity.has_any_role(*roles):
        raise ForbiddenException(f"Requires one of the roles: {', '.join(roles)}")
    return identity
