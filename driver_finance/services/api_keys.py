"""API key issuing, revocation and authentication.

Every owner keeps the primary key returned at registration. Additional named keys
can be issued with an optional expiry and revoked individually; only their sha256
is stored, so the raw value is shown once.
"""
from __future__ import annotations

import hashlib
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from driver_finance.exceptions import NotFound
from driver_finance.models.db import ApiKey, Owner
from driver_finance.utils import get_logger
from driver_finance.utils.time import utc_now

logger = get_logger(__name__)

SECONDARY_KEY_PREFIX = "sk_"
DISPLAY_PREFIX_LENGTH = 12


def generate_api_key() -> str:
    """Primary key handed out at registration."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(32))


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def is_live(api_key: ApiKey, now: datetime) -> bool:
    if api_key.revoked_at is not None:
        return False
    return api_key.expires_at is None or _as_utc(api_key.expires_at) > now


def issue_api_key(
    session: Session,
    owner: Owner,
    name: str,
    expires_in_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Tuple[ApiKey, str]:
    """Create a named key; returns the row and the raw key (not recoverable later)."""
    now = now or utc_now()
    raw_key = f"{SECONDARY_KEY_PREFIX}{secrets.token_hex(32)}"
    api_key = ApiKey(
        owner_id=owner.id,
        name=name,
        key_hash=hash_api_key(raw_key),
        key_prefix=raw_key[:DISPLAY_PREFIX_LENGTH],
        expires_at=now + timedelta(days=expires_in_days) if expires_in_days else None,
    )
    session.add(api_key)
    session.commit()
    session.refresh(api_key)
    logger.info("API key issued", owner_id=owner.id, api_key_id=api_key.id, expires_at=api_key.expires_at)
    return api_key, raw_key


def list_live_keys(session: Session, owner_id: int, now: Optional[datetime] = None) -> list[ApiKey]:
    now = now or utc_now()
    keys = (
        session.query(ApiKey)
        .filter(ApiKey.owner_id == owner_id, ApiKey.revoked_at.is_(None))
        .order_by(ApiKey.created_at.desc(), ApiKey.id.desc())
        .all()
    )
    return [k for k in keys if is_live(k, now)]


def revoke_api_key(session: Session, owner_id: int, api_key_id: int, now: Optional[datetime] = None) -> ApiKey:
    """Soft revoke; revoking an already revoked key is a no-op."""
    api_key = (
        session.query(ApiKey)
        .filter(ApiKey.id == api_key_id, ApiKey.owner_id == owner_id)
        .first()
    )
    if api_key is None:
        raise NotFound(f"API key with id {api_key_id} not found")
    if api_key.revoked_at is None:
        api_key.revoked_at = now or utc_now()
        session.commit()
        logger.info("API key revoked", owner_id=owner_id, api_key_id=api_key_id)
    return api_key


def authenticate_api_key(
    session: Session,
    raw_key: str,
    *,
    touch: bool = False,
    now: Optional[datetime] = None,
) -> Optional[Owner]:
    """Active owner for ``raw_key`` (primary or live secondary key), else None.

    With ``touch`` the secondary key's ``last_used_at`` is stamped.
    """
    if not raw_key:
        return None

    owner = session.query(Owner).filter(
        Owner.api_key == raw_key,
        Owner.is_active == True  # noqa: E712
    ).first()
    if owner is not None:
        return owner

    api_key = session.query(ApiKey).filter(ApiKey.key_hash == hash_api_key(raw_key)).first()
    now = now or utc_now()
    if api_key is None or not is_live(api_key, now) or not api_key.owner.is_active:
        return None

    if touch:
        api_key.last_used_at = now
        session.commit()
    return api_key.owner


__all__ = [
    "generate_api_key",
    "hash_api_key",
    "is_live",
    "issue_api_key",
    "list_live_keys",
    "revoke_api_key",
    "authenticate_api_key",
]
