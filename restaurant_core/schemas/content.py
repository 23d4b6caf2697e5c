"""Restaurant content schemas"""

from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class MenuSectionCreate(BaseModel):
    """Create menu section request"""
    name: str
    description: Optional[str] = None


class MenuSectionUpdate(BaseModel):
    """Update menu section request"""
    name: Optional[str] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None


class MenuItemCreate(BaseModel):
    """Create menu item request"""
    section_id: UUID
    name: str
    description: Optional[str] = None
    price_cents: Optional[int] = None
    image_url: Optional[str] = None
    is_available: bool = True
    dietary_info: List[str] = []


class MenuItemUpdate(BaseModel):
    """Update menu item request"""
    name: Optional[str] = None
    description: Optional[str] = None
    price_cents: Optional[int] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None
    dietary_info: Optional[List[str]] = None
    sort_order: Optional[int] = None


class MenuItemBulkUpdate(BaseModel):
    """Patch applied to many menu items at once"""
    is_available: Optional[bool] = None
    price_cents: Optional[int] = None


class ContactUpdate(BaseModel):
    type: Optional[str] = None
    value: Optional[str] = None
    label: Optional[str] = None


class OperatingHoursUpdate(BaseModel):
    open_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    close_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    is_closed: Optional[bool] = None


class ImageCreate(BaseModel):
    url: str
    alt: Optional[str] = None
    category: Optional[str] = None
    sort_order: Optional[int] = None


class ImageUpdate(BaseModel):
    alt: Optional[str] = None
    category: Optional[str] = None


class ReorderItem(BaseModel):
    id: UUID
    sort_order: int
