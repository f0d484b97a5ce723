import logging

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from app.auth.policies import INSERT
from app.auth.security import get_guard
from app.core.exceptions import AuthorizationDenied, ConstraintViolation
from app.db.access import AccessGuard
from app.models.order import Order
from app.models.review import Review
from app.schemas.review import Review as ReviewSchema, ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=ReviewSchema, status_code=status.HTTP_201_CREATED)
def create_review(
    review: ReviewCreate,
    guard: AccessGuard = Depends(get_guard)
):
    """Review a farm for one of the caller's completed orders (once per order)."""
    db_review = Review(**review.model_dump(), buyer_id=guard.user.id)
    if not guard.can(INSERT, db_review):
        raise AuthorizationDenied("Only the buyer of a completed order can review it")

    order = guard.db.get(Order, review.order_id)
    if order.farmer_id != review.farmer_id:
        raise ConstraintViolation("Order was not placed with this farm")

    guard.add(db_review)
    guard.commit()
    guard.db.refresh(db_review)
    logger.info(
        "review_created review_id=%s farmer_id=%s rating=%s",
        db_review.id, db_review.farmer_id, db_review.rating,
    )
    return db_review


@router.get("/", response_model=List[ReviewSchema])
def read_reviews(
    farmer_id: Optional[int] = Query(None),
    buyer_id: Optional[int] = Query(None),
    skip: int = 0,
    limit: int = 100,
    guard: AccessGuard = Depends(get_guard)
):
    query = guard.query(Review)
    if farmer_id is not None:
        query = query.filter(Review.farmer_id == farmer_id)
    if buyer_id is not None:
        query = query.filter(Review.buyer_id == buyer_id)
    return query.order_by(Review.created_at.desc(), Review.id.desc()).offset(skip).limit(limit).all()


@router.put("/{review_id}", response_model=ReviewSchema)
def update_review(
    review_id: int,
    review: ReviewUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    db_review = guard.get(Review, review_id)
    guard.update(db_review, review.model_dump(exclude_unset=True))
    guard.commit()
    guard.db.refresh(db_review)
    return db_review
