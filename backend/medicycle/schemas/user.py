from typing import Optional
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from medicycle.models.enums import UserRole


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str
    role: UserRole = UserRole.INDIVIDUAL
    location: Optional[str] = None

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Username is required")
        return v.strip()


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserSummary(BaseModel):
    id: int
    username: str
    role: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    location: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserSummary


class Message(BaseModel):
    msg: str
