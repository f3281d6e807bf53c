"""FastAPI dependencies for bearer token authentication.

Provides dependency functions for FastAPI endpoints to resolve the calling
principal from the Authorization header and to enforce roles.
"""

from typing import Annotated

from fastapi import Header, HTTPException

from cafe_pos_service.auth.token_validator import BearerTokenValidator, Principal

BEARER_PREFIX = "Bearer "


def get_principal_from_header(
    authorization: Annotated[str | None, Header()] = None,
    validator: BearerTokenValidator | None = None,
) -> Principal:
    """Extract and validate the bearer token from the Authorization header.

    Args:
        authorization: Authorization header value (injected by FastAPI)
        validator: BearerTokenValidator instance

    Returns:
        Principal: The authenticated principal

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization[len(BEARER_PREFIX) :].strip()
    principal = validator.validate(token) if validator else None
    if principal is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    return principal


def require_role(principal: Principal, *roles: str) -> Principal:
    """Ensure the principal holds one of the given roles.

    Raises:
        HTTPException: 403 if the principal's role is not allowed
    """
    if principal.role not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")
    return principal
