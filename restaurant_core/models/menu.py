"""Menu-related models"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import relationship

from restaurant_core.database import Base, utcnow


class MenuSection(Base):
    """Menu sections (Appetizers, Entrees, Wines by the glass, ...)"""
    __tablename__ = "menu_sections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="menu_sections")
    items = relationship("MenuItem", back_populates="section", cascade="all, delete-orphan")


class MenuItem(Base):
    """Menu items"""
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    section_id = Column(Uuid, ForeignKey("menu_sections.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price_cents = Column(Integer)  # Price in cents to avoid float issues
    image_url = Column(String(500))
    is_available = Column(Boolean, default=True)  # Temporary availability (86'd)
    dietary_info = Column(JSON, default=list)  # ["vegetarian", "gluten-free", etc.]
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    section = relationship("MenuSection", back_populates="items")
