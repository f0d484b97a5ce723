from sqlalchemy import Column, Integer, Text, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

class Review(BaseModel):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint('rating >= 1 AND rating <= 5', name='ck_review_rating_range'),
        UniqueConstraint('buyer_id', 'order_id', name='uq_review_buyer_order'),
    )

    farmer_id = Column(
        Integer, ForeignKey('farmer_profiles.id', ondelete='CASCADE'), nullable=False, index=True
    )
    buyer_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='SET NULL'))
    rating = Column(Integer, nullable=False)
    comment = Column(Text)

    farmer = relationship("FarmerProfile")
    buyer = relationship("User")
    order = relationship("Order")
