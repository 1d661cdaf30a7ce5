"""
Dependencies for authentication, database sessions, and common validations.
"""
from typing import Generator, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from driver_finance.database import SessionLocal
from driver_finance.models.db import Owner
from driver_finance.services.api_keys import authenticate_api_key
from driver_finance.utils import get_logger

logger = get_logger(__name__)
security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


def _key_prefix(api_key: str) -> str:
    return api_key[:10] + "..." if len(api_key) > 10 else api_key


def verified_owner_id(request: Request, api_key: str) -> Optional[int]:
    """Resolve a bearer key outside the dependency graph (middleware).

    Uses the same session provider as the endpoints, so test overrides apply.
    """
    provider = request.app.dependency_overrides.get(get_db, get_db)
    sessions = provider()
    db = next(sessions)
    try:
        owner = authenticate_api_key(db, api_key)
        return owner.id if owner is not None else None
    finally:
        sessions.close()


def get_current_owner(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Owner:
    """
    Extract and validate the owner from the bearer API key.

    Raises:
        HTTPException: If API key is invalid, revoked or the owner is inactive
    """
    api_key = credentials.credentials

    logger.debug("Owner authentication attempt", api_key_prefix=_key_prefix(api_key))

    owner = authenticate_api_key(db, api_key, touch=True)

    if not owner:
        logger.warning(
            "Authentication failed: invalid or inactive API key",
            api_key_prefix=_key_prefix(api_key)
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug("Owner authenticated successfully", owner_id=owner.id)
    return owner


def get_pagination_params(
    limit: int = 50,
    offset: int = 0
) -> dict:
    """
    Validate and return pagination parameters.

    Args:
        limit: Maximum number of items to return (1-500)
        offset: Number of items to skip (>= 0)
    """
    if limit < 1 or limit > 500:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Limit must be between 1 and 500"
        )

    if offset < 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Offset must be >= 0"
        )

    return {"limit": limit, "offset": offset}
