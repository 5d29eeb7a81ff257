"""SQLAlchemy ORM models backing the catalog and per-user favorite sets.

Favorites are stored as one row per ``(user_id, product_id)`` pair rather than
as a list column on the user.  The composite primary key is what guarantees a
product appears at most once per user, and it lets the store express add and
remove as single idempotent statements.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def new_identifier() -> str:
    """Return a fresh opaque identifier (32 lowercase hex characters)."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class Product(Base):
    """A catalog item; read-mostly from the perspective of this service."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        Index("ix_products_created_at_id", "created_at", "id"),
    )

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_identifier
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc=(
            "Creation timestamp.  Together with ``id`` it forms the stable sort"
            " key used when slicing listing pages."
        ),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class User(Base):
    """Identity anchor for favorite sets.

    Credentials and sessions belong to the authentication collaborator; this
    table only records which identifiers the store recognizes.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_identifier
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class FavoriteProduct(Base):
    """Membership row: ``product_id`` belongs to ``user_id``'s favorite set."""

    __tablename__ = "favorite_products"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


__all__ = [
    "Base",
    "FavoriteProduct",
    "Product",
    "User",
    "new_identifier",
    "utcnow",
]
