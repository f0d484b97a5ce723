import logging

from fastapi import APIRouter, Depends, status
from typing import List

from app.auth.security import get_guard
from app.core.exceptions import NotFound
from app.db.access import AccessGuard
from app.models.farmer import FarmerProfile
from app.models.favorite import Favorite
from app.schemas.favorite import Favorite as FavoriteSchema, FavoriteCreate
from app.services.orders import notify, publish_notifications

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[FavoriteSchema])
def read_favorites(guard: AccessGuard = Depends(get_guard)):
    return guard.query(Favorite).order_by(Favorite.id).all()


@router.post("/", response_model=FavoriteSchema, status_code=status.HTTP_201_CREATED)
def add_favorite(
    favorite: FavoriteCreate,
    guard: AccessGuard = Depends(get_guard)
):
    """Favorite a farm; the farmer is notified. Favoriting twice is a conflict."""
    db_favorite = guard.add(Favorite(buyer_id=guard.user.id, farmer_id=favorite.farmer_id))

    farm = guard.db.get(FarmerProfile, favorite.farmer_id)
    notification = notify(
        guard,
        farm.user_id,
        "favorited",
        "New Favorite",
        f"Your farm {farm.farm_name} was added to favorites",
        {"buyer_id": guard.user.id, "farmer_id": farm.id},
    )
    guard.commit()
    guard.db.refresh(db_favorite)
    logger.info("favorite_added buyer_id=%s farmer_id=%s", guard.user.id, farm.id)
    publish_notifications([notification])
    return db_favorite


@router.delete("/{farmer_id}")
def remove_favorite(
    farmer_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    db_favorite = guard.query(Favorite).filter(Favorite.farmer_id == farmer_id).first()
    if db_favorite is None:
        raise NotFound("Favorite not found")
    guard.delete(db_favorite)
    guard.commit()
    logger.info("favorite_removed buyer_id=%s farmer_id=%s", guard.user.id, farmer_id)
    return {"ok": True}
