# farmfence/activation.py
"""
Keeps at most one fence active per farm.

All functions only stage changes on the given session; the caller's unit of
work decides when they commit.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from farmfence import models
from farmfence.errors import NotFound

logger = logging.getLogger(__name__)


def deactivate_farm_fences(db: Session, farm_token: str) -> int:
    changed = (
        db.query(models.Fence)
        .filter(models.Fence.farm_token == farm_token, models.Fence.is_used.is_(True))
        .update({models.Fence.is_used: False}, synchronize_session="fetch")
    )
    logger.info("Deactivated %d fence(s) for farm %s", changed, farm_token)
    return changed


def activation_for_new_fence(db: Session, farm_token: Optional[str]) -> bool:
    """Prepare a farm for a new fence; returns the new fence's active flag."""
    if not farm_token:
        return False
    deactivate_farm_fences(db, farm_token)
    return True


def _adjust_fence_count(db: Session, farm_token: Optional[str], delta: int) -> None:
    if not farm_token:
        return
    db.query(models.Farm).filter(models.Farm.farm_token == farm_token).update(
        {models.Farm.fence_count: models.Farm.fence_count + delta},
        synchronize_session="fetch",
    )


def select_fence(
    db: Session,
    owner_token: str,
    fence_token: str,
    farm_token: Optional[str] = None,
) -> models.Fence:
    """
    Activate a fence owned by `owner_token`.

    With `farm_token`, every fence of that farm is switched off first and the
    fence is moved onto the farm. Without it the fence is switched on where
    it is; siblings on its current farm keep their flags.
    """
    fence = (
        db.query(models.Fence)
        .filter(models.Fence.fence_token == fence_token, models.Fence.owner_token == owner_token)
        .one_or_none()
    )
    if fence is None:
        logger.warning("Fence %s not found for owner %s", fence_token, owner_token)
        raise NotFound("Fence not found or you do not have permission")

    if farm_token:
        farm = (
            db.query(models.Farm)
            .filter(models.Farm.farm_token == farm_token, models.Farm.owner_token == owner_token)
            .one_or_none()
        )
        if farm is None:
            raise NotFound("Farm not found")

        deactivate_farm_fences(db, farm_token)
        if fence.farm_token != farm_token:
            _adjust_fence_count(db, fence.farm_token, -1)
            _adjust_fence_count(db, farm_token, +1)
            fence.farm_token = farm_token
        fence.is_used = True
        logger.info("Activated fence %s for farm %s", fence_token, farm_token)
    else:
        fence.is_used = True
        logger.info("Activated fence %s (no farm assignment)", fence_token)

    db.flush()
    return fence


def repair_single_fence_farms(db: Session) -> int:
    """
    Switch on the sole fence of every farm that has exactly one fence and
    has it switched off. Farms with zero or several fences are left alone.
    Idempotent. Returns the number of fences changed.
    """
    sibling = aliased(models.Fence)
    lone_farms = (
        select(sibling.farm_token)
        .where(sibling.farm_token.isnot(None))
        .group_by(sibling.farm_token)
        .having(func.count(sibling.fence_token) == 1)
    )
    fences = (
        db.query(models.Fence)
        .filter(
            models.Fence.farm_token.in_(lone_farms),
            models.Fence.is_used.is_(False),
        )
        .all()
    )
    for fence in fences:
        fence.is_used = True
    if fences:
        db.flush()
        logger.info("Repair pass activated %d lone fence(s)", len(fences))
    return len(fences)


def backfill_developer_links(db: Session) -> int:
    """Copy the farm's developer link onto assigned fences that lack one."""
    fences = (
        db.query(models.Fence, models.Farm.developer_token)
        .join(models.Farm, models.Farm.farm_token == models.Fence.farm_token)
        .filter(models.Fence.developer_token.is_(None), models.Farm.developer_token.isnot(None))
        .all()
    )
    for fence, developer_token in fences:
        fence.developer_token = developer_token
    if fences:
        db.flush()
        logger.info("Backfilled developer link on %d fence(s)", len(fences))
    return len(fences)
