"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ephemera.core.security import decode_principal
from ephemera.db.session import get_db
from ephemera.services.messaging import MessagingService
from ephemera.services.notifier import ChangeNotifier, get_notifier
from ephemera.services.retention import RetentionSweeper, get_retention_sweeper

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the principal id carried by the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired
    """
    try:
        return decode_principal(credentials.credentials)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


def get_notifier_dep() -> ChangeNotifier:
    """Return the process-wide change notifier."""
    return get_notifier()


def get_messaging_service_dep(
    notifier: Annotated[ChangeNotifier, Depends(get_notifier_dep)],
) -> MessagingService:
    """Return a messaging service bound to the notifier."""
    return MessagingService(notifier=notifier)


def get_retention_sweeper_dep() -> RetentionSweeper:
    """Return the retention sweeper."""
    return get_retention_sweeper()


# Type alias for current user dependency
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]
NotifierDep = Annotated[ChangeNotifier, Depends(get_notifier_dep)]
MessagingServiceDep = Annotated[MessagingService, Depends(get_messaging_service_dep)]
RetentionSweeperDep = Annotated[RetentionSweeper, Depends(get_retention_sweeper_dep)]
