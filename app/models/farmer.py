from sqlalchemy import (
    Column, String, Text, Integer, Numeric, Boolean, ForeignKey, JSON, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from app.models.base import TimestampedModel

class FarmerProfile(TimestampedModel):
    __tablename__ = "farmer_profiles"
    __table_args__ = (
        CheckConstraint('delivery_radius_km >= 0', name='ck_farmer_delivery_radius_nonneg'),
        Index('idx_farmer_profiles_location', 'latitude', 'longitude'),
    )

    user_id = Column(
        Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True
    )
    farm_name = Column(String(150), nullable=False)
    description = Column(Text)
    farm_size = Column(String(50))
    farming_practices = Column(JSON, default=list)
    address = Column(String(255))
    latitude = Column(Numeric(9, 6))
    longitude = Column(Numeric(9, 6))
    delivery_radius_km = Column(Integer, default=0)
    pickup_available = Column(Boolean, default=True)
    delivery_available = Column(Boolean, default=False)
    business_hours = Column(JSON, default=dict)
    certifications = Column(JSON, default=list)

    user = relationship("User", back_populates="farmer_profile")
    products = relationship("Product", back_populates="farmer", passive_deletes=True)
