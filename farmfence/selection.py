# farmfence/selection.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from farmfence import models

logger = logging.getLogger(__name__)


def _owned(db: Session, owner_token: str):
    return db.query(models.Farm).filter(models.Farm.owner_token == owner_token)


def select_farms(
    db: Session,
    owner_token: str,
    farm_token: Optional[str] = None,
    *,
    select_all: bool = False,
) -> list[str]:
    """
    Replace the owner's farm selection. `select_all` marks every owned farm;
    otherwise only `farm_token` (when owned) ends up selected.
    Returns the selected farm tokens.
    """
    _owned(db, owner_token).update({models.Farm.is_used: False}, synchronize_session="fetch")

    if select_all:
        _owned(db, owner_token).update({models.Farm.is_used: True}, synchronize_session="fetch")
        logger.info("Selected all farms for %s", owner_token)
    elif farm_token:
        _owned(db, owner_token).filter(models.Farm.farm_token == farm_token).update(
            {models.Farm.is_used: True}, synchronize_session="fetch"
        )
        logger.info("Selected farm %s for %s", farm_token, owner_token)

    db.flush()
    return [
        t for (t,) in _owned(db, owner_token)
        .filter(models.Farm.is_used.is_(True))
        .with_entities(models.Farm.farm_token)
        .order_by(models.Farm.farm_token)
    ]
