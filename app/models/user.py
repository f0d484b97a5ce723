from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship
from app.models.base import TimestampedModel

USER_TYPES = ('farmer', 'buyer')

class User(TimestampedModel):
    __tablename__ = "users"
    
    user_type = Column(Enum(*USER_TYPES, name='user_types', create_constraint=True), nullable=False)
    full_name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(20))
    avatar_url = Column(String(255))
    is_active = Column(Boolean, default=True)

    farmer_profile = relationship(
        "FarmerProfile", back_populates="user", uselist=False, passive_deletes=True
    )

    @property
    def is_farmer(self):
        return self.user_type == 'farmer'

    def __repr__(self):
        return f"<User {self.email} ({self.user_type})>"
