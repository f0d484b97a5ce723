from fastapi import APIRouter, Depends, Query
from typing import List, Literal, Optional

from app.auth.security import get_current_active_user, get_guard, get_password_hash
from app.db.access import AccessGuard
from app.models.user import User as UserModel
from app.schemas.user import User as UserSchema, UserUpdate

router = APIRouter()

# --------------------------------------------------------------------
# List identities (any logged in user) -> GET /users
# --------------------------------------------------------------------
@router.get("/", response_model=List[UserSchema])
def read_users(
    skip: int = 0,
    limit: int = 100,
    user_type: Optional[Literal["farmer", "buyer"]] = Query(None),
    guard: AccessGuard = Depends(get_guard)
):
    query = guard.query(UserModel)
    if user_type:
        query = query.filter(UserModel.user_type == user_type)
    users = query.order_by(UserModel.id).offset(skip).limit(limit).all()
    return [UserSchema.model_validate(u) for u in users]

# --------------------------------------------------------------------
# Get current user -> GET /users/me
# --------------------------------------------------------------------
@router.get("/me", response_model=UserSchema)
def read_user_me(current_user: UserModel = Depends(get_current_active_user)):
    return UserSchema.model_validate(current_user)

# --------------------------------------------------------------------
# Get user by ID -> GET /users/{user_id}
# --------------------------------------------------------------------
@router.get("/{user_id}", response_model=UserSchema)
def read_user(
    user_id: int,
    guard: AccessGuard = Depends(get_guard)
):
    return UserSchema.model_validate(guard.get(UserModel, user_id))

# --------------------------------------------------------------------
# Update own identity -> PUT /users/{user_id}
# --------------------------------------------------------------------
@router.put("/{user_id}", response_model=UserSchema)
def update_user(
    user_id: int,
    user: UserUpdate,
    guard: AccessGuard = Depends(get_guard)
):
    db_user = guard.get(UserModel, user_id)

    update_data = user.model_dump(exclude_unset=True)
    if "password" in update_data:
        update_data["hashed_password"] = get_password_hash(update_data.pop("password"))
    if "email" in update_data and update_data["email"]:
        update_data["email"] = update_data["email"].lower()

    guard.update(db_user, update_data)
    guard.commit()
    guard.db.refresh(db_user)
    return UserSchema.model_validate(db_user)
