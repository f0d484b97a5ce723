from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from typing import List, Optional

from app.auth.security import get_guard
from app.core.exceptions import AuthorizationDenied, NotFound
from app.db.access import AccessGuard
from app.models.farmer import FarmerProfile
from app.models.order import Order, TERMINAL_STATUSES
from app.models.product import Product
from app.models.review import Review
from app.schemas.farmer import (
    FarmerProfile as FarmerProfileSchema,
    FarmerProfileCreate,
    FarmerProfileUpdate,
    FarmerListing,
    FarmerStats,
)
from app.services.geo import delivers_to, farm_distance_km

router = APIRouter()


def _rating_summary(guard: AccessGuard, farmer_ids):
    """Map farmer id -> (average rating, review count)."""
    if not farmer_ids:
        return {}
    rows = guard.query(Review).with_entities(
        Review.farmer_id, func.avg(Review.rating), func.count(Review.id)
    ).filter(Review.farmer_id.in_(farmer_ids)).group_by(Review.farmer_id).all()
    return {farmer_id: (float(avg or 0), count) for farmer_id, avg, count in rows}


def _listing(farmer, ratings, lat=None, lng=None):
    avg, count = ratings.get(farmer.id, (0.0, 0))
    listing = FarmerListing.model_validate(farmer)
    listing.avg_rating = round(avg, 1)
    listing.review_count = count
    if lat is not None and lng is not None:
        distance = farm_distance_km(farmer, lat, lng)
        listing.distance_km = round(distance, 2) if distance is not None else None
    return listing


@router.post(
    "/",
    response_model=FarmerProfileSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create the caller's farm profile",
)
def create_farmer_profile(
    profile: FarmerProfileCreate,
    guard: AccessGuard = Depends(get_guard)
):
    """
    Create the business profile of the calling farmer. Only farmer accounts
    may do this and each account has at most one profile.
    """
    db_profile = FarmerProfile(**profile.model_dump(), user_id=guard.user.id)
    guard.add(db_profile)
    guard.commit()
    guard.db.refresh(db_profile)
    return db_profile


@router.get(
    "/",
    response_model=List[FarmerListing],
    summary="Discover farms",
)
def read_farmers(
    search: Optional[str] = Query(None, description="Search in farm name and description"),
    category: Optional[str] = Query(None, description="Only farms with an available product in this category"),
    pickup_only: bool = Query(False, description="Only farms offering pickup"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Buyer latitude"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="Buyer longitude"),
    delivers_to_me: bool = Query(False, description="Only farms whose delivery radius covers lat/lng"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    guard: AccessGuard = Depends(get_guard)
):
    """
    List farm profiles with their average rating.

    - **search**: case-insensitive match on farm name or description
    - **category**: farm sells an available product in this category
    - **pickup_only**: farm offers pickup
    - **delivers_to_me**: needs **lat**/**lng**; farm delivers and the point is inside its radius
    """
    if delivers_to_me and (lat is None or lng is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="delivers_to_me requires lat and lng"
        )

    query = guard.query(FarmerProfile)

    if search:
        query = query.filter(or_(
            FarmerProfile.farm_name.ilike(f"%{search}%"),
            FarmerProfile.description.ilike(f"%{search}%")
        ))
    if category:
        with_category = guard.query(Product).with_entities(Product.farmer_id).filter(
            func.lower(Product.category) == category.lower(),
            Product.is_available.is_(True)
        )
        query = query.filter(FarmerProfile.id.in_(with_category))
    if pickup_only:
        query = query.filter(FarmerProfile.pickup_available.is_(True))

    farmers = query.order_by(FarmerProfile.id).all()

    if delivers_to_me:
        farmers = [farmer for farmer in farmers if delivers_to(farmer, lat, lng)]

    farmers = farmers[skip:skip + limit]
    ratings = _rating_summary(guard, [farmer.id for farmer in farmers])
    return [_listing(farmer, ratings, lat, lng) for farmer in farmers]


@router.get("/me", response_model=FarmerProfileSchema)
def read_my_farmer_profile(guard: AccessGuard = Depends(get_guard)):
    profile = guard.query(FarmerProfile).filter(FarmerProfile.user_id == guard.user.id).first()
    if profile is None:
        raise NotFound("Farmer profile not found")
    return profile


@router.get("/{farmer_id}", response_model=FarmerListing)
def read_farmer(
    farmer_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    farmer = guard.get(FarmerProfile, farmer_id)
    return _listing(farmer, _rating_summary(guard, [farmer.id]))


@router.put("/{farmer_id}", response_model=FarmerProfileSchema)
def update_farmer_profile(
    farmer_id: int,
    profile: FarmerProfileUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    db_profile = guard.get(FarmerProfile, farmer_id)
    guard.update(db_profile, profile.model_dump(exclude_unset=True))
    guard.commit()
    guard.db.refresh(db_profile)
    return db_profile


@router.get("/{farmer_id}/stats", response_model=FarmerStats)
def read_farmer_stats(
    farmer_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    """Dashboard figures for the profile owner."""
    farmer = guard.get(FarmerProfile, farmer_id)
    if farmer.user_id != guard.user.id:
        raise AuthorizationDenied("Only the farm owner can view its dashboard")

    total_products = guard.query(Product).filter(Product.farmer_id == farmer.id).count()
    orders = guard.query(Order).filter(Order.farmer_id == farmer.id)
    active_orders = orders.filter(Order.status.notin_(sorted(TERMINAL_STATUSES))).count()
    revenue = orders.filter(Order.status != "cancelled").with_entities(func.sum(Order.total_amount)).scalar()
    avg, _ = _rating_summary(guard, [farmer.id]).get(farmer.id, (0.0, 0))

    return FarmerStats(
        farmer_id=farmer.id,
        total_products=total_products,
        active_orders=active_orders,
        total_revenue=float(revenue or 0),
        avg_rating=round(avg, 1),
    )
