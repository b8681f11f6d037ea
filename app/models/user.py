"""
User Model - owner of submitted properties.

Authentication lives outside this service; only the contact fields that the
notification collaborator reads from a hydrated property are stored here.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin


class UserRole(str, Enum):
    ADMIN = "admin"
    AGENT = "agent"
    OWNER = "owner"
    USER = "user"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value, index=True)

    # Contact fields surfaced on the hydrated property
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    line_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    properties = relationship("Property", back_populates="user")

    def contact_card(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "line_id": self.line_id,
        }

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
