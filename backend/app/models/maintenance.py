from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class ServiceEvent(Base):
    __tablename__ = "service_events"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    mileage = Column(Integer, nullable=False)

    # Sum of item costs in the smallest currency unit, maintained by
    # services.derived_state, never written by callers
    total_cost = Column(Integer, nullable=False, default=0, server_default="0")

    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    vehicle = relationship("Vehicle", back_populates="service_events")
    items = relationship(
        "ServiceItem",
        back_populates="service_event",
        cascade="all, delete-orphan",
        order_by="ServiceItem.id",
    )


class ServiceItem(Base):
    __tablename__ = "service_items"

    id = Column(Integer, primary_key=True, index=True)
    service_event_id = Column(
        Integer, ForeignKey("service_events.id", ondelete="CASCADE"), nullable=False, index=True
    )

    type = Column(String(100), nullable=False)  # Motorolja, Oljefilter, Bromsbelägg, ...
    description = Column(Text)
    cost = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    service_event = relationship("ServiceEvent", back_populates="items")
