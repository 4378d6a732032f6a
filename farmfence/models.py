# farmfence/models.py
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import validates
from datetime import timezone
from .db import Base

ROLE_FARMER = "farmer"
ROLE_DEVELOPER = "developer"


class Farmer(Base):
    """Owning-account record. Developers acting as owners get a mirror row here."""

    __tablename__ = "farmers"

    user_token = Column(String, primary_key=True, index=True)
    farmer_name = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    role = Column(String, nullable=False, default=ROLE_FARMER)
    developer_token = Column(String, nullable=True, index=True)  # managing developer, if any
    total_farms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=True)


class Developer(Base):
    __tablename__ = "developers"

    user_token = Column(String, primary_key=True, index=True)
    developer_name = Column(String, nullable=True)
    total_farms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=True)


class Farm(Base):
    __tablename__ = "farms"
    __table_args__ = (UniqueConstraint("owner_token", "farm_name", name="uq_farms_owner_name"),)

    farm_token = Column(String, primary_key=True, index=True)
    farm_name = Column(String, nullable=False)
    owner_token = Column(String, ForeignKey("farmers.user_token"), nullable=False, index=True)
    developer_token = Column(String, nullable=True)
    gps = Column(String, nullable=True)  # opaque location descriptor

    is_used = Column(Boolean, nullable=False, default=False)  # selected
    fence_count = Column(Integer, nullable=False, default=0)
    cow_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False)

    @validates("created_at")
    def _tz(self, _, v):
        # ensure aware timestamps
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class Fence(Base):
    __tablename__ = "fences"
    __table_args__ = (UniqueConstraint("owner_token", "fence_name", name="uq_fences_owner_name"),)

    fence_token = Column(String, primary_key=True, index=True)
    fence_name = Column(String, nullable=False)
    owner_token = Column(String, ForeignKey("farmers.user_token"), nullable=False, index=True)
    developer_token = Column(String, nullable=True)

    # no FK: fences of a deleted farm stay behind until deleted explicitly
    farm_token = Column(String, nullable=True, index=True)

    # ordered boundary points, stored as given
    nodes = Column(JSON, nullable=False)
    area_size = Column(Float, nullable=False, default=0.0)

    is_used = Column(Boolean, nullable=False, default=False)  # active
    created_at = Column(DateTime(timezone=True), nullable=False)

    @validates("created_at")
    def _tz(self, _, v):
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class Cow(Base):
    __tablename__ = "cows"

    cow_token = Column(String, primary_key=True, index=True)
    cow_name = Column(String, nullable=True)
    owner_token = Column(String, nullable=False, index=True)
    farm_token = Column(String, nullable=True, index=True)
