# farmfence/ownership.py
"""
Works out who owns a farm or fence being written, whatever role the acting
account has. Every caller gets the same (owner_token, developer_token) pair.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from farmfence import models, schemas
from farmfence.errors import IntegrityViolation, InvalidInput, NotFound

logger = logging.getLogger(__name__)


class Owner(NamedTuple):
    owner_token: str
    developer_token: Optional[str]


def _insert_statement(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        return None
    return insert(models.Farmer.__table__)


def ensure_developer_mirror(db: Session, developer_token: str, *, now: datetime) -> models.Farmer:
    """
    Make sure a developer has an owning-account row so farms and fences can
    reference it. Safe to call repeatedly and from concurrent requests.
    """
    mirror = db.get(models.Farmer, developer_token)
    if mirror:
        return mirror

    developer = db.get(models.Developer, developer_token)
    developer_name = developer.developer_name if developer and developer.developer_name else "Unknown Developer"
    values = dict(
        user_token=developer_token,
        farmer_name=f"{developer_name} (Developer Account)",
        user_id=f"dev_{developer_token}",
        role=models.ROLE_DEVELOPER,
        developer_token=developer_token,
        total_farms=0,
        created_at=now,
    )

    stmt = _insert_statement(db)
    if stmt is not None:
        # a concurrent insert of the same mirror is a no-op, not a failure
        db.execute(stmt.values(**values).on_conflict_do_nothing(index_elements=["user_token"]))
    else:
        db.add(models.Farmer(**values))
    db.flush()

    mirror = db.get(models.Farmer, developer_token)
    if mirror is None:
        raise IntegrityViolation(f"Could not create owner record for developer {developer_token}")
    logger.info("Created owner record for developer %s", developer_token)
    return mirror


def _farmer_owner(db: Session, token: str) -> Owner:
    farmer = db.get(models.Farmer, token)
    if farmer is None:
        raise IntegrityViolation(f"No owner record for account {token}")
    return Owner(farmer.user_token, farmer.developer_token)


def resolve_farm_owner(db: Session, identity: schemas.Identity, *, now: datetime) -> Owner:
    if identity.role == models.ROLE_DEVELOPER:
        ensure_developer_mirror(db, identity.token, now=now)
        return Owner(identity.token, identity.token)
    return _farmer_owner(db, identity.token)


def resolve_fence_owner(
    db: Session,
    identity: schemas.Identity,
    farm_token: Optional[str],
    *,
    now: datetime,
) -> tuple[Owner, Optional[models.Farm]]:
    """
    A fence drawn on a farm belongs to the farm's owner, not to whoever drew it.
    Returns the owner pair and the farm (None for an unassigned fence).
    """
    if farm_token:
        farm = db.get(models.Farm, farm_token)
        # only the owner or the managing developer may draw on a farm
        if farm is None or identity.token not in (farm.owner_token, farm.developer_token):
            raise NotFound("Farm not found")
        logger.debug("Fence owner %s, developer %s", farm.owner_token, farm.developer_token)
        return Owner(farm.owner_token, farm.developer_token), farm

    if identity.role == models.ROLE_DEVELOPER:
        raise InvalidInput("Developers must assign fences to a farm")
    return _farmer_owner(db, identity.token), None
