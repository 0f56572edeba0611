# SQLAlchemy ORM models for the on-device cache (properties, users, requests, favorites).
# Rows mirror server payloads; the server owns the truth and ids are never generated locally.
from decimal import Decimal

from sqlalchemy import Column, Integer, String, DateTime, Index, UniqueConstraint, func, Boolean, Text
from sqlalchemy.orm import declarative_mixin
from sqlalchemy.types import TypeDecorator

from .db import Base


class DecimalString(TypeDecorator):
    """Exact decimal stored as text. SQLite has no decimal type and would round-trip through float."""

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(Decimal(value))

    def process_result_value(self, value, dialect):
        return None if value is None else Decimal(value)


@declarative_mixin
class CacheStampMixin:
    """When the row was last written into the cache (set on insert, refreshed on update)."""
    cached_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class SchemaMeta(Base):
    """Single-row table recording the cache schema version."""
    __tablename__ = "schema_meta"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, nullable=False)


class Property(Base, CacheStampMixin):
    """Cached rental listing. landlord_id points at a LANDLORD user; not enforced locally."""
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=False)
    landlord_id = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    price = Column(DecimalString, nullable=False)
    bedroom_count = Column(Integer, nullable=False, default=0)
    bathroom_count = Column(Integer, nullable=False, default=0)
    furniture_type = Column(String(20), nullable=False, default="unfurnished")
    image_url = Column(String(512), nullable=True)
    # Denormalized by the server from the owning user row
    landlord_name = Column(String(255), nullable=True)
    landlord_contact = Column(String(255), nullable=True)
    created_at = Column(String(32), nullable=True)
    updated_at = Column(String(32), nullable=True)


class User(Base, CacheStampMixin):
    """Cached account. Landlords are users with user_type == "LANDLORD"."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=False)
    username = Column(String(100), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    full_name = Column(String(255), nullable=True)
    user_type = Column(String(20), nullable=False, index=True)  # GUEST, LANDLORD or ADMIN
    created_at = Column(String(32), nullable=True)


class ContactRequest(Base, CacheStampMixin):
    """Cached inquiry sent to a landlord about one of their properties.

    is_read only ever moves from False to True.
    """
    __tablename__ = "requests"

    id = Column(Integer, primary_key=True, autoincrement=False)
    property_id = Column(Integer, nullable=False, index=True)
    landlord_id = Column(Integer, nullable=False, index=True)
    requester_name = Column(String(255), nullable=False)
    requester_email = Column(String(255), nullable=False)
    requester_phone = Column(String(50), nullable=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(32), nullable=True)
    property_title = Column(String(255), nullable=True)
    property_address = Column(String(255), nullable=True)

    # Unread badge counts filter on both columns
    __table_args__ = (
        Index("ix_requests_landlord_is_read", "landlord_id", "is_read"),
    )


class Favorite(Base):
    """Local-only bookmark of a property by a user."""
    __tablename__ = "favorites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    property_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
    )
