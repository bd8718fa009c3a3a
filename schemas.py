"""
Database Schemas for the Food Ordering API

Each document model below corresponds to a MongoDB collection
(User -> "users", Food -> "foods", Order -> "orders"). Models only check
that the required fields are present; any extra display fields a client
sends are kept and stored as-is.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["user", "admin", "super admin"]
ADMIN_ROLES = ("admin", "super admin")


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=1, description="Unique email address")
    role: Role = Field("user", description="Changed out-of-band only")


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=1)


class Food(BaseModel):
    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Dish name")
    price: float = Field(..., description="Unit price")
    image: str = Field(..., min_length=1, description="Image URL")
    category: Optional[str] = Field(None, description="Stored lower-case")

    @field_validator("category")
    @classmethod
    def lower_category(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


class Order(BaseModel):
    model_config = ConfigDict(extra="allow")

    buyerEmail: Optional[str] = Field(None, description="Defaults to the caller's email")
    items: List[Any] = Field(default_factory=list, description="Ordered foods as submitted")
    createdAt: Optional[datetime] = Field(None, description="Assigned by the server")


class TokenRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    token: str


class DeleteResult(BaseModel):
    deletedCount: int
