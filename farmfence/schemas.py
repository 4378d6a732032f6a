# farmfence/schemas.py
from pydantic import BaseModel, Field
from typing import Optional, Any, List, Literal
from datetime import datetime


class Identity(BaseModel):
    token: str = Field(..., min_length=1)
    role: Literal["farmer", "developer"] = "farmer"


class FarmCreate(BaseModel):
    farm_name: Optional[str] = None
    gps: Optional[str] = None
    allow_rename: bool = False


class FarmOut(BaseModel):
    farm_token: str
    farm_name: str
    owner_token: str
    developer_token: Optional[str] = None
    gps: Optional[str] = None
    is_used: bool
    fence_count: int
    cow_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class FarmDeleteResult(BaseModel):
    farm_token: str
    cows_transferred: bool
    cows_moved: int


class FenceCreate(BaseModel):
    fence_name: Optional[str] = None
    nodes: List[Any] = Field(default_factory=list)
    farm_token: Optional[str] = None
    allow_rename: bool = False


class FenceOut(BaseModel):
    fence_token: str
    fence_name: str
    owner_token: str
    developer_token: Optional[str] = None
    farm_token: Optional[str] = None
    nodes: List[Any]
    area_size: float
    is_used: bool
    created_at: datetime

    class Config:
        from_attributes = True


class FarmSelect(BaseModel):
    farm_token: Optional[str] = None
    select_all: bool = False


class FenceSelect(BaseModel):
    fence_token: Optional[str] = None
    farm_token: Optional[str] = None


class NameUpdate(BaseModel):
    name: Optional[str] = None


class GpsUpdate(BaseModel):
    gps: Optional[str] = None
