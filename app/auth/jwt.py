import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.models.user import User
from app.schemas.user import Token, UserWithToken, UserCreate, User as UserSchema
from app.auth.security import (
    get_password_hash,
    verify_password,
    create_user_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# LOGIN: returns user + token (frontend-friendly); the form's username is the email
@router.post("/login", response_model=UserWithToken)
async def login_with_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    user = _authenticate(db, form_data.username, form_data.password)
    return UserWithToken(
        user=UserSchema.model_validate(user),
        access_token=create_user_token(user),
        token_type="bearer"
    )

# TOKEN-ONLY: OAuth2 compatibility (for Swagger/OAuth2PasswordBearer)
@router.post("/token", response_model=Token)
async def login_token_only(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    user = _authenticate(db, form_data.username, form_data.password)
    return {"access_token": create_user_token(user), "token_type": "bearer"}

# REGISTER: create the identity record + return user + token.
# The account type is chosen here and never changes afterwards.
@router.post("/register", response_model=UserWithToken, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        email=email,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name,
        phone=user_data.phone,
        avatar_url=user_data.avatar_url,
        user_type=user_data.user_type,
    )

    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    db.refresh(db_user)
    logger.info("user_registered user_id=%s user_type=%s", db_user.id, db_user.user_type)

    return UserWithToken(
        user=UserSchema.model_validate(db_user),
        access_token=create_user_token(db_user),
        token_type="bearer"
    )
