# farmfence/deps.py
from functools import lru_cache

from fastapi import Header, HTTPException

from farmfence import schemas
from farmfence.service import FarmFenceService


@lru_cache
def get_service() -> FarmFenceService:
    return FarmFenceService()


def get_identity(
    x_user_token: str | None = Header(default=None),
    x_user_role: str = Header(default="farmer"),
) -> schemas.Identity:
    # credentials are checked upstream; this only reads who is acting
    if not x_user_token:
        raise HTTPException(status_code=401, detail="Missing user token")
    if x_user_role not in ("farmer", "developer"):
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return schemas.Identity(token=x_user_token, role=x_user_role)
