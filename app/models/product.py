from sqlalchemy import (
    Column, String, Text, Integer, Numeric, Boolean, ForeignKey, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.models.base import TimestampedModel

class Product(TimestampedModel):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint('price_per_unit >= 0', name='ck_product_price_nonneg'),
        CheckConstraint('available_quantity >= 0', name='ck_product_available_qty_nonneg'),
        CheckConstraint('min_order_quantity >= 0', name='ck_product_min_order_qty_nonneg'),
    )
    
    farmer_id = Column(
        Integer, ForeignKey('farmer_profiles.id', ondelete='CASCADE'), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    description = Column(Text)
    category = Column(String(50), nullable=False, index=True)
    price_per_unit = Column(Numeric(10, 2), nullable=False)
    unit = Column(String(20), nullable=False)
    available_quantity = Column(Numeric(10, 2), default=0)
    min_order_quantity = Column(Numeric(10, 2), default=1)
    image_url = Column(String(255))
    is_available = Column(Boolean, default=True, index=True)
    seasonal_availability = Column(JSON, default=list)
    
    farmer = relationship("FarmerProfile", back_populates="products")
