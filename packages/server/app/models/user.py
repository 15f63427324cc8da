"""User model."""

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    first_name: str = Field(nullable=False)
    last_name: str = Field(nullable=False)
    email: str = Field(nullable=False, unique=True, index=True)
    role: str = Field(nullable=False, default="user")  # user | admin
    is_active: bool = Field(nullable=False, default=True)
