from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column, ForeignKey, Index
from sqlalchemy.types import JSON, Boolean, DateTime, Integer, String, Uuid
from uuid import uuid4
from uuid6 import uuid7

from syndicate.clock import utcnow


class Base(DeclarativeBase):
    pass


class Player(Base):
    __tablename__ = "players"
    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String, nullable=False, unique=True)
    title = Column(String, nullable=False, default="Associate")
    money = Column(Integer, nullable=False, default=0)
    crew = Column(Integer, nullable=False, default=0)
    max_crew = Column(Integer, nullable=False, default=25)
    weapons = Column(Integer, nullable=False, default=0)
    max_weapons = Column(Integer, nullable=False, default=30)
    vehicles = Column(Integer, nullable=False, default=0)
    max_vehicles = Column(Integer, nullable=False, default=12)
    respect = Column(Integer, nullable=False, default=0)
    influence = Column(Integer, nullable=False, default=0)
    heat = Column(Integer, nullable=False, default=0)
    current_region_id = Column(Uuid, ForeignKey("regions.id"), nullable=True)
    last_travel_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_active = Column(DateTime, nullable=False, default=utcnow)

    hotspots = relationship("Hotspot", back_populates="controller")


class Region(Base):
    __tablename__ = "regions"
    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String, nullable=False, unique=True)

    districts = relationship("District", back_populates="region", cascade="all, delete")


class District(Base):
    __tablename__ = "districts"
    id = Column(Uuid, primary_key=True, default=uuid4)
    region_id = Column(Uuid, ForeignKey("regions.id"), nullable=False)
    name = Column(String, nullable=False)

    region = relationship("Region", back_populates="districts")
    cities = relationship("City", back_populates="district", cascade="all, delete")


class City(Base):
    __tablename__ = "cities"
    id = Column(Uuid, primary_key=True, default=uuid4)
    district_id = Column(Uuid, ForeignKey("districts.id"), nullable=False)
    name = Column(String, nullable=False)

    district = relationship("District", back_populates="cities")
    hotspots = relationship("Hotspot", back_populates="city", cascade="all, delete")


class Hotspot(Base):
    __tablename__ = "hotspots"
    id = Column(Uuid, primary_key=True, default=uuid4)
    city_id = Column(Uuid, ForeignKey("cities.id"), nullable=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)
    business_type = Column(String, nullable=False, default="")
    is_legal = Column(Boolean, nullable=False, default=True)
    controller_id = Column(Uuid, ForeignKey("players.id"), nullable=True)
    income = Column(Integer, nullable=False, default=0)
    pending_collection = Column(Integer, nullable=False, default=0)
    last_collection_time = Column(DateTime, nullable=True)
    last_income_time = Column(DateTime, nullable=True)
    crew = Column(Integer, nullable=False, default=0)
    weapons = Column(Integer, nullable=False, default=0)
    vehicles = Column(Integer, nullable=False, default=0)
    defense_strength = Column(Integer, nullable=False, default=0)

    city = relationship("City", back_populates="hotspots")
    controller = relationship("Player", back_populates="hotspots")

    __table_args__ = (Index("ix_hotspots_controller", "controller_id"),)


class TerritoryAction(Base):
    __tablename__ = "territory_actions"
    id = Column(Uuid, primary_key=True, default=uuid7)
    type = Column(String, nullable=False)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False)
    hotspot_id = Column(Uuid, ForeignKey("hotspots.id"), nullable=False)
    resources = Column(JSON, nullable=False)
    result = Column(JSON, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class Operation(Base):
    __tablename__ = "operations"
    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    type = Column(String, nullable=False)
    is_special = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    requirements = Column(JSON, nullable=False)
    resources = Column(JSON, nullable=False)
    rewards = Column(JSON, nullable=False)
    risks = Column(JSON, nullable=False)
    duration = Column(Integer, nullable=False)  # seconds
    success_rate = Column(Integer, nullable=False)
    available_until = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class OperationAttempt(Base):
    __tablename__ = "operation_attempts"
    id = Column(Uuid, primary_key=True, default=uuid7)
    operation_id = Column(Uuid, ForeignKey("operations.id"), nullable=False)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    resources = Column(JSON, nullable=False)
    status = Column(String, nullable=False, default="in_progress")
    result = Column(JSON, nullable=True)
    completion_time = Column(DateTime, nullable=True)
    notified = Column(Boolean, nullable=False, default=False)

    operation = relationship("Operation")

    __table_args__ = (Index("ix_attempts_player_status", "player_id", "status"),)


class MarketListing(Base):
    __tablename__ = "market_listings"
    id = Column(Uuid, primary_key=True, default=uuid4)
    resource_type = Column(String, nullable=False, unique=True)
    price = Column(Integer, nullable=False)
    trend = Column(String, nullable=False, default="stable")
    trend_percentage = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class MarketPriceHistory(Base):
    __tablename__ = "market_price_history"
    id = Column(Uuid, primary_key=True, default=uuid7)
    resource_type = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class MarketTransaction(Base):
    __tablename__ = "market_transactions"
    id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False)
    resource_type = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    total_cost = Column(Integer, nullable=False)
    transaction_type = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class TravelAttempt(Base):
    __tablename__ = "travel_attempts"
    id = Column(Uuid, primary_key=True, default=uuid7)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False)
    from_region_id = Column(Uuid, nullable=True)
    to_region_id = Column(Uuid, nullable=False)
    success = Column(Boolean, nullable=False)
    caught_by_police = Column(Boolean, nullable=False, default=False)
    fine_amount = Column(Integer, nullable=False, default=0)
    heat_change = Column(Integer, nullable=False, default=0)
    travel_cost = Column(Integer, nullable=False, default=0)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class PlayerToken(Base):
    __tablename__ = "player_tokens"
    token_hash = Column(String, primary_key=True)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
