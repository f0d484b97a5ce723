from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel

class Favorite(BaseModel):
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint('buyer_id', 'farmer_id', name='uq_favorite_buyer_farmer'),
    )

    buyer_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    farmer_id = Column(Integer, ForeignKey('farmer_profiles.id', ondelete='CASCADE'), nullable=False)

    buyer = relationship("User")
    farmer = relationship("FarmerProfile")
