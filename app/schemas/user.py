from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from app.schemas.base import TimestampSchema

class UserBase(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    user_type: Literal["farmer", "buyer"]

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

class User(TimestampSchema, UserBase):
    id: int
    user_type: str
    is_active: bool
    
    model_config = ConfigDict(from_attributes=True)

class UserWithToken(BaseModel):
    user: User
    access_token: str
    token_type: str
    
    model_config = ConfigDict(from_attributes=True)

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    user_id: Optional[int] = None
