"""Acting user dependency.

Authentication happens upstream; the gateway forwards the authenticated
actor in the X-Actor-ID header. Roles are always resolved from the
identity provider, never from the request.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Header, HTTPException, status


def get_actor_id(
    x_actor_id: Annotated[
        str | None,
        Header(description="Authenticated actor performing the operation."),
    ] = None,
) -> UUID:
    """Extract and validate the actor ID from the X-Actor-ID header.

    Raises:
        HTTPException: 401 if the header is missing, 400 if it is not a UUID.
    """
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-ID header is required",
        )

    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-ID must be a valid UUID",
        ) from None


def get_optional_actor_id(
    x_actor_id: Annotated[
        str | None,
        Header(description="Actor, for read endpoints that accept one."),
    ] = None,
) -> UUID | None:
    """Like get_actor_id, but a missing header yields None."""
    if not x_actor_id:
        return None
    return get_actor_id(x_actor_id)
