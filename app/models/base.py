from sqlalchemy import Column, Integer, TIMESTAMP
from sqlalchemy.sql import func
from app.db.session import Base

class BaseModel(Base):
    __abstract__ = True
    
    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(TIMESTAMP, server_default=func.now())


class TimestampedModel(BaseModel):
    __abstract__ = True

    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
