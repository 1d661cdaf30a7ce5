"""
Owner registration, profile and preference endpoints.
"""
from typing import Dict, Any, List
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from driver_finance.api.deps import get_db, get_current_owner
from driver_finance.exceptions import Conflict, DomainError
from driver_finance.models.db import Owner
from driver_finance.models.schemas.owners import (
    ApiKeyCreate, ApiKeyIssued, ApiKeyRead, OwnerCreate, OwnerRead, PreferencesUpdate,
)
from driver_finance.models.schemas.base import ResponseBase
from driver_finance.services.api_keys import generate_api_key, issue_api_key, list_live_keys, revoke_api_key
from driver_finance.services.preferences import default_preferences, effective_preferences, merge_preferences
from driver_finance.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/",
    response_model=OwnerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register owner",
    description="Register a driver and issue the API key used as bearer credential"
)
async def create_owner(
    owner_data: OwnerCreate,
    request: Request,
    db: Session = Depends(get_db)
) -> OwnerRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Owner registration started",
        owner_email=owner_data.email,
        city=owner_data.city,
        state=owner_data.state,
        request_id=request_id
    )

    try:
        existing = db.query(Owner).filter(Owner.email == owner_data.email).first()
        if existing:
            logger.warning(
                "Owner registration failed: duplicate email",
                email=owner_data.email,
                existing_owner_id=existing.id,
                request_id=request_id
            )
            raise Conflict(f"Owner with email '{owner_data.email}' already exists", field="email")

        owner = Owner(
            name=owner_data.name,
            email=owner_data.email,
            api_key=generate_api_key(),
            is_active=True,
            city=owner_data.city,
            state=owner_data.state,
            vehicle_type=owner_data.vehicle_type,
            preferences=merge_preferences(default_preferences(), owner_data.preferences),
        )
        db.add(owner)
        db.commit()
        db.refresh(owner)

        log_business_event(
            event_type="owner_registered",
            details={
                "owner_email": owner.email,
                "participates_in_benchmarking": owner.participates_in_benchmarking,
            },
            owner_id=owner.id,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(
            operation="create_owner",
            duration_ms=duration_ms,
            additional_data={"owner_id": owner.id}
        )

        logger.info(
            "Owner registered successfully",
            owner_id=owner.id,
            duration_ms=duration_ms,
            request_id=request_id
        )

        return OwnerRead.model_validate(owner)

    except (HTTPException, DomainError):
        raise
    except IntegrityError as e:
        db.rollback()
        logger.error(
            "Owner registration failed: database constraint violation",
            error=str(e),
            request_id=request_id
        )
        raise Conflict("Owner with this email already exists", field="email")
    except Exception as e:
        db.rollback()
        logger.error(
            "Owner registration failed",
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during owner registration"
        )


@router.get(
    "/me",
    response_model=OwnerRead,
    summary="Current owner profile"
)
async def read_current_owner(
    current_owner: Owner = Depends(get_current_owner)
) -> OwnerRead:
    return OwnerRead.model_validate(current_owner)


@router.get(
    "/me/preferences",
    response_model=Dict[str, Any],
    summary="Current owner preferences"
)
async def read_preferences(
    current_owner: Owner = Depends(get_current_owner)
) -> Dict[str, Any]:
    return effective_preferences(current_owner.preferences)


@router.put(
    "/me/preferences",
    response_model=ResponseBase,
    summary="Update preferences",
    description="Deep-merge the given sections into the stored preferences"
)
async def update_preferences(
    update: PreferencesUpdate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    changes = update.model_dump(exclude_none=True)
    logger.info(
        "Preferences update started",
        owner_id=current_owner.id,
        sections=sorted(changes),
        request_id=request_id
    )

    try:
        current_owner.preferences = merge_preferences(current_owner.preferences, changes)
        db.commit()
        db.refresh(current_owner)

        log_business_event(
            event_type="preferences_updated",
            details={"sections": sorted(changes)},
            owner_id=current_owner.id,
            request_id=request_id
        )

        duration_ms = (time.time() - start_time) * 1000
        log_performance(operation="update_preferences", duration_ms=duration_ms)

        return ResponseBase(
            success=True,
            message="Preferences updated successfully",
            data={"preferences": current_owner.preferences}
        )

    except Exception as e:
        db.rollback()
        logger.error(
            "Preferences update failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during preferences update"
        )


@router.post(
    "/me/api-keys",
    response_model=ApiKeyIssued,
    status_code=status.HTTP_201_CREATED,
    summary="Issue API key",
    description="Create a named key with an optional expiry; the raw key is returned only here"
)
async def create_api_key(
    key_data: ApiKeyCreate,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ApiKeyIssued:
    request_id = request.headers.get("X-Request-ID", "unknown")
    try:
        api_key, raw_key = issue_api_key(db, current_owner, key_data.name, key_data.expires_in_days)
    except Exception as e:
        db.rollback()
        logger.error(
            "API key creation failed",
            owner_id=current_owner.id,
            error=str(e),
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during API key creation"
        )

    log_business_event(
        event_type="api_key_issued",
        details={"api_key_id": api_key.id, "key_prefix": api_key.key_prefix},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ApiKeyIssued(**ApiKeyRead.model_validate(api_key).model_dump(), key=raw_key)


@router.get(
    "/me/api-keys",
    response_model=List[ApiKeyRead],
    summary="List API keys",
    description="Live (not revoked, not expired) additional keys, newest first"
)
async def list_api_keys(
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> List[ApiKeyRead]:
    return [ApiKeyRead.model_validate(k) for k in list_live_keys(db, current_owner.id)]


@router.delete(
    "/me/api-keys/{api_key_id}",
    response_model=ResponseBase,
    summary="Revoke API key"
)
async def delete_api_key(
    api_key_id: int,
    request: Request,
    current_owner: Owner = Depends(get_current_owner),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    revoke_api_key(db, current_owner.id, api_key_id)

    log_business_event(
        event_type="api_key_revoked",
        details={"api_key_id": api_key_id},
        owner_id=current_owner.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message="API key revoked", data={"api_key_id": api_key_id})
