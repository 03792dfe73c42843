"""User and credential model definitions."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    """Base user fields."""

    email: EmailStr
    name: str


class UserCreate(UserBase):
    """Registration request with a plain text password."""

    password: str = Field(min_length=8)


class UserLogin(BaseModel):
    """Login request. The email is not validated so unknown addresses fail as 401."""

    email: str
    password: str


class AccessToken(BaseModel):
    """Bearer token issued on login."""

    access_token: str
    token_type: str = "bearer"


class User(UserBase):
    """
    Owner of goals, logs and status flags.

    The hashed password stays in the ``users`` collection and is never part
    of this model.
    """

    id: str = Field(alias="_id", serialization_alias="id")
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}
