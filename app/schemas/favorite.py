from pydantic import BaseModel
from app.schemas.base import CreatedSchema

class FavoriteCreate(BaseModel):
    farmer_id: int

class Favorite(CreatedSchema):
    id: int
    buyer_id: int
    farmer_id: int
