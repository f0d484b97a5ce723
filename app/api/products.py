from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy import or_
from typing import Optional

from app.auth.security import get_guard
from app.core.exceptions import AuthorizationDenied
from app.db.access import AccessGuard
from app.models.farmer import FarmerProfile
from app.models.product import Product
from app.schemas.pagination import PaginatedResponse, paginate
from app.schemas.product import Product as ProductSchema, ProductCreate, ProductUpdate

router = APIRouter()

VALID_SORT_FIELDS = ["name", "price_per_unit", "created_at", "updated_at"]


@router.post(
    "/",
    response_model=ProductSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Add a product to the caller's farm catalog."
)
def create_product(
    product: ProductCreate,
    guard: AccessGuard = Depends(get_guard)
):
    """
    Create a new product in the caller's catalog.

    - **name**: Product name (required)
    - **category**: Free-form category, e.g. vegetables, dairy (required)
    - **price_per_unit**: Price per unit, not negative (required)
    - **unit**: Measurement unit (kg, bunch, dozen, etc.)
    - **available_quantity**: Stock on hand, not negative
    - **min_order_quantity**: Smallest quantity a buyer may order
    """
    farm = guard.query(FarmerProfile).filter(FarmerProfile.user_id == guard.user.id).first()
    if farm is None:
        raise AuthorizationDenied("Create a farm profile before adding products")

    db_product = Product(**product.model_dump(), farmer_id=farm.id)
    guard.add(db_product)
    guard.commit()
    guard.db.refresh(db_product)
    return db_product

@router.get(
    "/",
    response_model=PaginatedResponse[ProductSchema],
    summary="Get all products with filtering",
    description="Retrieve a paginated list of products."
)
def read_products(
    page: int = Query(1, ge=1, description="Page number starting from 1"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page (1-100)"),
    farmer_id: Optional[int] = Query(None, description="Only products of this farm"),
    category: Optional[str] = Query(None, description="Filter by category"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price filter"),
    max_price: Optional[float] = Query(None, ge=0, description="Maximum price filter"),
    available: Optional[bool] = Query(None, description="Filter on the availability flag"),
    search: Optional[str] = Query(None, description="Search in product name and description"),
    sort_by: str = Query("name", description="Sort by field: name, price_per_unit, created_at, updated_at"),
    sort_order: str = Query("asc", description="Sort order: asc or desc"),
    guard: AccessGuard = Depends(get_guard)
):
    query = guard.query(Product)

    if farmer_id is not None:
        query = query.filter(Product.farmer_id == farmer_id)

    if category:
        query = query.filter(Product.category.ilike(category))

    if min_price is not None:
        query = query.filter(Product.price_per_unit >= min_price)

    if max_price is not None:
        query = query.filter(Product.price_per_unit <= max_price)

    if available is not None:
        query = query.filter(Product.is_available.is_(available))

    if search:
        query = query.filter(or_(
            Product.name.ilike(f"%{search}%"),
            Product.description.ilike(f"%{search}%")
        ))

    if sort_by not in VALID_SORT_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid sort field. Must be one of: {', '.join(VALID_SORT_FIELDS)}"
        )

    if sort_order not in ["asc", "desc"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Sort order must be 'asc' or 'desc'"
        )

    sort_column = getattr(Product, sort_by)
    if sort_order == "desc":
        sort_column = sort_column.desc()
    query = query.order_by(sort_column, Product.id)

    return paginate(query, page, per_page)

@router.get(
    "/{product_id}",
    response_model=ProductSchema,
    summary="Get product by ID"
)
def read_product(
    product_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    return guard.get(Product, product_id)

@router.put(
    "/{product_id}",
    response_model=ProductSchema,
    summary="Update a product",
    description="Update a product of the caller's own farm."
)
def update_product(
    product_id: int,
    product: ProductUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    db_product = guard.get(Product, product_id)
    guard.update(db_product, product.model_dump(exclude_unset=True))
    guard.commit()
    guard.db.refresh(db_product)
    return db_product

@router.delete(
    "/{product_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete a product",
    description="Delete a product of the caller's own farm."
)
def delete_product(
    product_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    db_product = guard.get(Product, product_id)
    guard.delete(db_product)
    guard.commit()
    return {"ok": True, "message": "Product deleted successfully"}
