from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from farmfence import models, schemas
from farmfence.activation import activation_for_new_fence, repair_single_fence_farms
from farmfence.errors import IntegrityViolation, InvalidInput, NotFound
from farmfence.naming import allocate_name
from farmfence.ownership import resolve_farm_owner, resolve_fence_owner
from farmfence.utils import normalize_points, polygon_area
import logging

logger = logging.getLogger(__name__)

MIN_FENCE_NODES = 3

# ---------- tiny, single-purpose helpers ----------

def farm_name_exists(db: Session, owner_token: str):
    def exists(name: str) -> bool:
        return db.query(models.Farm.farm_token).filter(
            models.Farm.owner_token == owner_token, models.Farm.farm_name == name
        ).first() is not None
    return exists

def fence_name_exists(db: Session, owner_token: str):
    def exists(name: str) -> bool:
        return db.query(models.Fence.fence_token).filter(
            models.Fence.owner_token == owner_token, models.Fence.fence_name == name
        ).first() is not None
    return exists

def _count_farms(db: Session, owner_token: str) -> int:
    return db.query(models.Farm).filter(models.Farm.owner_token == owner_token).count()

def _count_fences(db: Session, owner_token: str) -> int:
    return db.query(models.Fence).filter(models.Fence.owner_token == owner_token).count()

def _required_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise InvalidInput("Name is required")
    return name.strip()

def _owned_farm(db: Session, owner_token: str, farm_token: str) -> Optional[models.Farm]:
    return db.query(models.Farm).filter(
        models.Farm.farm_token == farm_token, models.Farm.owner_token == owner_token
    ).one_or_none()

def _owned_fence(db: Session, owner_token: str, fence_token: str) -> Optional[models.Fence]:
    return db.query(models.Fence).filter(
        models.Fence.fence_token == fence_token, models.Fence.owner_token == owner_token
    ).one_or_none()

def _bump_total_farms(db: Session, identity: schemas.Identity, delta: int) -> None:
    # developers keep their farm tally on the developer row, farmers on their own
    model = models.Developer if identity.role == models.ROLE_DEVELOPER else models.Farmer
    db.query(model).filter(model.user_token == identity.token).update(
        {model.total_farms: model.total_farms + delta}, synchronize_session="fetch"
    )

def _bump_fence_count(db: Session, farm_token: Optional[str], delta: int) -> None:
    if not farm_token:
        return
    db.query(models.Farm).filter(models.Farm.farm_token == farm_token).update(
        {models.Farm.fence_count: models.Farm.fence_count + delta}, synchronize_session="fetch"
    )

# ---------- farms ----------

def list_farms(db: Session, owner_token: str) -> list[models.Farm]:
    return (
        db.query(models.Farm)
        .filter(models.Farm.owner_token == owner_token, models.Farm.farm_name != "")
        .order_by(models.Farm.created_at, models.Farm.farm_name)
        .all()
    )

def create_farm(
    db: Session,
    identity: schemas.Identity,
    payload: schemas.FarmCreate,
    *,
    now: datetime,
    farm_token: str,
) -> models.Farm:
    owner = resolve_farm_owner(db, identity, now=now)
    name = allocate_name(
        payload.farm_name,
        farm_name_exists(db, owner.owner_token),
        default_prefix="farm",
        sequence_count=_count_farms(db, owner.owner_token),
        allow_rename=payload.allow_rename,
    )

    obj = models.Farm(
        farm_token=farm_token,
        farm_name=name,
        owner_token=owner.owner_token,
        developer_token=owner.developer_token,
        gps=payload.gps,
        is_used=False,
        fence_count=0,
        cow_count=0,
        created_at=now,
    )
    db.add(obj)
    db.flush()
    _bump_total_farms(db, identity, +1)
    logger.info("Created farm %s (%s) for %s", name, farm_token, owner.owner_token)
    return obj

def rename_farm(db: Session, owner_token: str, farm_token: str, name: Optional[str]) -> models.Farm:
    new_name = _required_name(name)
    obj = _owned_farm(db, owner_token, farm_token)
    if not obj:
        raise NotFound("Farm not found")
    obj.farm_name = new_name
    db.flush()
    return obj

def update_farm_gps(db: Session, owner_token: str, farm_token: str, gps: Optional[str]) -> models.Farm:
    obj = _owned_farm(db, owner_token, farm_token)
    if not obj:
        raise NotFound("Farm not found")
    obj.gps = gps
    db.flush()
    return obj

def delete_farm(
    db: Session,
    identity: schemas.Identity,
    farm_token: str,
    transfer_to_farm_token: Optional[str] = None,
) -> schemas.FarmDeleteResult:
    """
    Removes an owned farm. Its cows move to `transfer_to_farm_token` when given,
    otherwise they lose their farm reference. Fences pointing at the farm stay.
    """
    obj = _owned_farm(db, identity.token, farm_token)
    if not obj:
        raise NotFound("Farm not found")

    if transfer_to_farm_token:
        target = _owned_farm(db, identity.token, transfer_to_farm_token)
        if target is None or target.farm_token == farm_token:
            raise IntegrityViolation("Transfer target farm does not belong to this account")

    # every cow on the farm, whoever owns it, so none is left pointing at it
    cows = db.query(models.Cow).filter(models.Cow.farm_token == farm_token).all()
    for cow in cows:
        cow.farm_token = transfer_to_farm_token or None
    moved = len(cows)
    if transfer_to_farm_token:
        logger.info("Transferred %d cow(s) from farm %s to %s", moved, farm_token, transfer_to_farm_token)
    else:
        logger.info("Cleared farm on %d cow(s) of farm %s", moved, farm_token)

    db.delete(obj)
    db.flush()
    _bump_total_farms(db, identity, -1)
    return schemas.FarmDeleteResult(
        farm_token=farm_token,
        cows_transferred=bool(transfer_to_farm_token),
        cows_moved=moved,
    )

# ---------- fences ----------

def list_fences(db: Session, owner_token: str) -> list[models.Fence]:
    return (
        db.query(models.Fence)
        .filter(models.Fence.owner_token == owner_token)
        .order_by(models.Fence.created_at, models.Fence.fence_name)
        .all()
    )

def create_fence(
    db: Session,
    identity: schemas.Identity,
    payload: schemas.FenceCreate,
    *,
    now: datetime,
    fence_token: str,
) -> models.Fence:
    nodes = payload.nodes or []
    if len(nodes) < MIN_FENCE_NODES:
        raise InvalidInput(f"Invalid fence data. Need at least {MIN_FENCE_NODES} nodes.")
    try:
        area = polygon_area(normalize_points(nodes))
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    owner, farm = resolve_fence_owner(db, identity, payload.farm_token, now=now)
    name = allocate_name(
        payload.fence_name,
        fence_name_exists(db, owner.owner_token),
        default_prefix="fence",
        sequence_count=_count_fences(db, owner.owner_token),
        allow_rename=payload.allow_rename,
    )
    farm_token = farm.farm_token if farm else None

    obj = models.Fence(
        fence_token=fence_token,
        fence_name=name,
        owner_token=owner.owner_token,
        developer_token=owner.developer_token,
        farm_token=farm_token,
        nodes=list(nodes),
        area_size=area,
        is_used=activation_for_new_fence(db, farm_token),
        created_at=now,
    )
    db.add(obj)
    db.flush()
    _bump_fence_count(db, farm_token, +1)
    logger.info("Created fence %s (%s) area=%s farm=%s", name, fence_token, area, farm_token)

    repair_single_fence_farms(db)
    return obj

def rename_fence(db: Session, owner_token: str, fence_token: str, name: Optional[str]) -> models.Fence:
    new_name = _required_name(name)
    obj = _owned_fence(db, owner_token, fence_token)
    if not obj:
        raise NotFound("Fence not found")
    obj.fence_name = new_name
    db.flush()
    return obj

def delete_fence(db: Session, owner_token: str, fence_token: str) -> Optional[str]:
    """Returns the farm the fence was assigned to, if any."""
    obj = _owned_fence(db, owner_token, fence_token)
    if not obj:
        raise NotFound("Fence not found")
    farm_token = obj.farm_token
    db.delete(obj)
    db.flush()
    _bump_fence_count(db, farm_token, -1)
    return farm_token
