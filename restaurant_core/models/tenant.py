"""Tenant-related models"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from restaurant_core.database import Base, utcnow


class Tenant(Base):
    """Restaurant tenant"""
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True)
    timezone = Column(String(50), default="America/New_York")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    operating_hours = relationship("OperatingHours", back_populates="tenant")
    contacts = relationship("Contact", back_populates="tenant")
    images = relationship("Image", back_populates="tenant")
    menu_sections = relationship("MenuSection", back_populates="tenant")


class OperatingHours(Base):
    """Opening hours for one day of the week"""
    __tablename__ = "operating_hours"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday
    open_time = Column(String(5))  # "11:00"
    close_time = Column(String(5))  # "22:00"
    is_closed = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="operating_hours")


class Contact(Base):
    """Public contact details (phone, email, address, social)"""
    __tablename__ = "contacts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # phone, email, address, instagram
    value = Column(Text, nullable=False)
    label = Column(String(100))
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="contacts")


class Image(Base):
    """Gallery and hero images"""
    __tablename__ = "images"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    url = Column(String(500), nullable=False)
    alt = Column(String(255))
    category = Column(String(100))  # gallery, hero, menu
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="images")
