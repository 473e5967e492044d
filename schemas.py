"""
House Rental Schemas (MongoDB via Pydantic)
Each model = one collection (lowercased name)
- Property -> property
- User -> user
- ContactMessage -> contactmessage
"""

from pydantic import BaseModel, Field, EmailStr, TypeAdapter, field_validator
from typing import Optional, Literal
from datetime import datetime

from config import settings

InquiryStatus = Literal["pending", "approved"]

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """The form ``EmailStr`` stores, so lookups match what was saved."""
    return _email_adapter.validate_python(value.strip())


def id_to_string(v):
    # ids travel as strings end to end, whatever the form sent; 7.0 is "7"
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v.strip() if isinstance(v, str) else v


class Property(BaseModel):
    id: str = Field(..., min_length=1, max_length=40)
    title: str = Field(..., min_length=1, max_length=200)
    state: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)
    price: float = Field(..., gt=0)
    beds: int = Field(..., ge=0)
    baths: int = Field(..., ge=0)
    image_desc: str = Field("", max_length=500)
    image_url: str = settings.DEFAULT_IMAGE_URL
    approved: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return id_to_string(v)


class User(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password_hash: str


class ContactMessage(BaseModel):
    property_id: str = Field(..., min_length=1)
    property_title: str = Field(..., min_length=1, max_length=200)
    user_name: str = Field(..., min_length=1, max_length=100)
    user_email: EmailStr
    user_phone: Optional[str] = Field(None, max_length=40)
    message: str = Field(..., min_length=1, max_length=2000)
    status: InquiryStatus = "pending"
    created_at: Optional[datetime] = None

    @field_validator("property_id", mode="before")
    @classmethod
    def property_id_as_string(cls, v):
        return id_to_string(v)
