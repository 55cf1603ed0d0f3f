"""
Pydantic models for event registration forms.

An event form describes what the public registration page looks like:
titles and imagery, which of the built-in fields are shown or required
(``base_fields``) and any additional ``custom_fields`` organizers want
to collect.  At most one form is published at a time.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, HttpUrl


BASE_FIELD_NAMES = ("name", "email", "phone", "organization", "groupSize")


class CustomFieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    URL = "url"
    PHOTO = "photo"


class CustomField(BaseModel):
    id: str = Field(..., min_length=1, examples=["field_1718012345678"])
    type: CustomFieldType = CustomFieldType.TEXT
    label: str = Field(..., min_length=1, examples=["Company Website"])
    placeholder: Optional[str] = None
    required: bool = False


class BaseFieldConfig(BaseModel):
    label: str = Field(..., min_length=1)
    placeholder: Optional[str] = None
    required: bool = True
    enabled: bool = True


class CustomLink(BaseModel):
    label: str = Field(..., min_length=1, examples=["Learn More"])
    url: HttpUrl


def default_base_fields() -> Dict[str, BaseFieldConfig]:
    """Built-in field configuration used when a form does not override it."""
    return {
        "name": BaseFieldConfig(label="Full Name", placeholder="John Doe"),
        "email": BaseFieldConfig(label="Email Address", placeholder="john.doe@example.com"),
        "phone": BaseFieldConfig(label="Phone Number", placeholder="+1 (555) 123-4567"),
        "organization": BaseFieldConfig(label="Organization", placeholder="Acme Corporation"),
        "groupSize": BaseFieldConfig(label="Group Size (Maximum 4 people)", placeholder=""),
    }


class EventFormBase(BaseModel):
    title: str = Field(..., min_length=1, examples=["Annual Tech Summit"])
    subtitle: Optional[str] = None
    description: Optional[str] = None
    hero_image_url: Optional[str] = None
    background_image_url: Optional[str] = None
    watermark_url: Optional[str] = None
    logo_url: Optional[str] = None
    custom_links: List[CustomLink] = Field(default_factory=list)
    custom_fields: List[CustomField] = Field(default_factory=list)
    base_fields: Dict[str, BaseFieldConfig] = Field(default_factory=dict)
    success_title: Optional[str] = None
    success_message: Optional[str] = None


class EventFormCreate(EventFormBase):
    """Schema for creating a form.  New forms always start unpublished."""
    pass


class EventFormUpdate(BaseModel):
    """Partial update of a form.  Publication state has its own endpoints."""

    title: Optional[str] = Field(None, min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = None
    hero_image_url: Optional[str] = None
    background_image_url: Optional[str] = None
    watermark_url: Optional[str] = None
    logo_url: Optional[str] = None
    custom_links: Optional[List[CustomLink]] = None
    custom_fields: Optional[List[CustomField]] = None
    base_fields: Optional[Dict[str, BaseFieldConfig]] = None
    success_title: Optional[str] = None
    success_message: Optional[str] = None


class EventFormRead(EventFormBase):
    id: int
    is_published: bool = False
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }
