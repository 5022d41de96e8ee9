from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        # NULLs never collide, so vehicles without VIN/plate coexist
        UniqueConstraint("user_id", "vin", name="uq_vehicles_user_vin"),
        UniqueConstraint("user_id", "license_plate", name="uq_vehicles_user_license_plate"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100))
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    vin = Column(String(17))
    license_plate = Column(String(20))

    # High-water mark over service events, see services.derived_state
    current_mileage = Column(Integer, nullable=False, default=0, server_default="0")
    last_mileage_update = Column(DateTime(timezone=True))

    service_interval_months = Column(Integer)
    service_interval_kilometers = Column(Integer)
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    owner = relationship("User", back_populates="vehicles")
    service_events = relationship(
        "ServiceEvent", back_populates="vehicle", cascade="all, delete-orphan"
    )
    reminders = relationship(
        "Reminder", back_populates="vehicle", cascade="all, delete-orphan"
    )
