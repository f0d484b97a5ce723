from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field
from app.schemas.base import TimestampSchema

class FarmerProfileBase(BaseModel):
    farm_name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    farm_size: Optional[str] = None
    farming_practices: List[str] = []
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    delivery_radius_km: int = Field(0, ge=0)
    pickup_available: bool = True
    delivery_available: bool = False
    business_hours: Dict[str, Any] = {}
    certifications: List[str] = []

class FarmerProfileCreate(FarmerProfileBase):
    pass

class FarmerProfileUpdate(BaseModel):
    farm_name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    farm_size: Optional[str] = None
    farming_practices: Optional[List[str]] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    delivery_radius_km: Optional[int] = Field(None, ge=0)
    pickup_available: Optional[bool] = None
    delivery_available: Optional[bool] = None
    business_hours: Optional[Dict[str, Any]] = None
    certifications: Optional[List[str]] = None

class FarmerProfile(TimestampSchema, FarmerProfileBase):
    id: int
    user_id: int

class FarmerListing(FarmerProfile):
    """Discovery view: profile plus rating and, when known, distance."""
    avg_rating: float = 0
    review_count: int = 0
    distance_km: Optional[float] = None

class FarmerStats(BaseModel):
    farmer_id: int
    total_products: int
    active_orders: int
    total_revenue: float
    avg_rating: float
