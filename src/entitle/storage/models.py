"""SQLAlchemy ORM models for the PostGIS-backed entitlement stores."""

import uuid

from geoalchemy2 import Geometry
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class ZoningDistrictRecord(Base):
    """A zoning polygon. Several polygons may share one (city, zone_code)."""

    __tablename__ = "zoning_districts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    city = Column(String(50), nullable=False, index=True)
    zone_code = Column(String(100), nullable=False)
    zone_name = Column(String(500))
    properties = Column(JSONB)
    geometry = Column(Geometry("MULTIPOLYGON", srid=4326, spatial_index=False))
    source_url = Column(Text)
    last_updated = Column(Date, server_default=func.current_date())

    __table_args__ = (
        Index("idx_zoning_districts_city_code", "city", "zone_code"),
        Index("idx_zoning_districts_geom", "geometry", postgresql_using="gist"),
    )


class ZoningRuleRecord(Base):
    """Curated dimensional and use rules for one zone code."""

    __tablename__ = "zoning_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    city = Column(String(50), nullable=False)
    zone_code = Column(String(100), nullable=False)
    max_height_ft = Column(Float)
    max_height_stories = Column(Integer)
    far = Column(Float)
    lot_coverage_pct = Column(Float)
    setback_front_ft = Column(Float)
    setback_side_ft = Column(Float)
    setback_rear_ft = Column(Float)
    parking_rules = Column(JSONB, default=dict)
    permitted_uses = Column(ARRAY(String), default=list)
    conditional_uses = Column(ARRAY(String), default=list)
    prohibited_uses = Column(ARRAY(String), default=list)
    overlays = Column(ARRAY(String), default=list)
    red_flags = Column(ARRAY(Text), default=list)
    source_url = Column(Text)

    __table_args__ = (UniqueConstraint("city", "zone_code", name="uq_zoning_rules_city_code"),)


class PermitStatRecord(Base):
    """Pre-aggregated permit durations per (city, project_type, permit_type)."""

    __tablename__ = "permit_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    city = Column(String(50), nullable=False, index=True)
    project_type = Column(String(100), nullable=False)
    permit_type = Column(String(100), nullable=False)
    p50_days = Column(Float, nullable=False)
    p90_days = Column(Float, nullable=False)
    sample_size = Column(Integer, nullable=False, default=0)
    common_delays = Column(ARRAY(Text), default=list)
    last_calculated = Column(Date, server_default=func.current_date())

    __table_args__ = (
        UniqueConstraint("city", "project_type", "permit_type", name="uq_permit_stats_key"),
    )


class CodeTripwireRecord(Base):
    """Code-check data; city NULL rows apply to every city."""

    __tablename__ = "code_tripwires"

    id = Column(Integer, primary_key=True, autoincrement=True)
    check_name = Column(String(100), nullable=False)
    occupancy_type = Column(String(100), nullable=False, index=True)
    city = Column(String(50))
    requirement = Column(Text, default="")
    code_reference = Column(String(200), default="")
    common_issue = Column(Text, default="")
    check_logic = Column(JSONB, default=dict)


class AddressRecord(Base):
    """Geocoded input address attached to address-first artifacts."""

    __tablename__ = "addresses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    input_address = Column(Text, nullable=False)
    normalized_address = Column(Text)
    lat = Column(Float)
    lng = Column(Float)
    city = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ArtifactRecord(Base):
    """Immutable artifact: inputs and outputs frozen at creation time."""

    __tablename__ = "artifacts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(String(50), nullable=False)
    address_id = Column(UUID(as_uuid=True), ForeignKey("addresses.id"), nullable=True)
    city = Column(String(50), nullable=False)
    input_params = Column(JSONB, nullable=False, default=dict)
    output_data = Column(JSONB, nullable=False, default=dict)
    pdf_url = Column(Text)
    web_slug = Column(String(300), nullable=False, index=True)
    user_email = Column(String(320))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RiskItemRecord(Base):
    """Risk register rows, denormalized from a risk_register artifact."""

    __tablename__ = "risk_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    artifact_id = Column(UUID(as_uuid=True), ForeignKey("artifacts.id"), nullable=False)
    risk_id = Column(String(20), nullable=False)
    description = Column(Text, nullable=False)
    source = Column(String(100))
    status = Column(String(20), default="Open")
    consequence = Column(Text)

    __table_args__ = (UniqueConstraint("artifact_id", "risk_id", name="uq_risk_items_artifact_risk"),)
