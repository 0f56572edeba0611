# Pydantic models for entities exchanged with the backend and mirrored in the cache.
# Wire keys are snake_case, exactly as the backend emits them. Read models are lenient
# (the server owns the data); draft models stay loose so validation can report form errors.
from decimal import Decimal
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FurnitureType = Literal["furnished", "semi-furnished", "unfurnished"]
FURNITURE_TYPES = ("furnished", "semi-furnished", "unfurnished")

# Account kinds. A landlord is a user row with user_type == "LANDLORD".
UserType = Literal["GUEST", "LANDLORD", "ADMIN"]


# Properties
class Property(BaseModel):
    id: int
    landlord_id: int
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    price: Decimal
    bedroom_count: int = 0
    bathroom_count: int = 0
    furniture_type: FurnitureType = "unfurnished"
    image_url: Optional[str] = None
    landlord_name: Optional[str] = None
    landlord_contact: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    # Older rows carry NULL or capitalized furniture types; fall back to the server default
    @field_validator("furniture_type", mode="before")
    @classmethod
    def normalize_furniture_type(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "unfurnished"
        if isinstance(v, str):
            return v.strip().lower().replace("_", "-")
        return v

    @field_validator("bedroom_count", "bathroom_count", mode="before")
    @classmethod
    def default_counts(cls, v: Any) -> Any:
        return 0 if v is None else v


class Pagination(BaseModel):
    total: int = 0
    page: int = 1
    limit: int = 20


# GET /properties payload under "data"
class PropertyPage(BaseModel):
    properties: List[Property] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class PropertyDraft(BaseModel):
    """Property form input for create/update.

    Fields hold raw user input; see validation.validate_property_draft for the rules.
    """
    id: Optional[int] = None
    landlord_id: Optional[int] = None
    title: str = ""
    description: str = ""
    address: str = ""
    price: Optional[str] = None
    bedroom_count: Optional[str] = None
    bathroom_count: Optional[str] = None
    furniture_type: str = "unfurnished"
    image_url: Optional[str] = None

    # Accept numbers as well as form strings
    @field_validator("price", "bedroom_count", "bathroom_count", mode="before")
    @classmethod
    def stringify_numbers(cls, v: Any) -> Any:
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("title", "description", "address", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        # Trim surrounding whitespace before validation
        if v is None:
            return ""
        if isinstance(v, str):
            v = v.strip()
        return v

    def to_payload(self) -> dict:
        """JSON body for POST/PUT /properties. Call only after validation passed."""
        payload = {
            "title": self.title,
            "description": self.description,
            "address": self.address,
            "price": str(Decimal(self.price.strip())),
            "bedroom_count": int(self.bedroom_count) if self.bedroom_count not in (None, "") else 0,
            "bathroom_count": int(self.bathroom_count) if self.bathroom_count not in (None, "") else 0,
            "furniture_type": self.furniture_type.strip().lower(),
        }
        if self.landlord_id is not None:
            payload["landlord_id"] = self.landlord_id
        if self.image_url:
            payload["image_url"] = self.image_url
        return payload


# Users
class User(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    user_type: UserType = "GUEST"
    created_at: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    @field_validator("user_type", mode="before")
    @classmethod
    def normalize_user_type(cls, v: Any) -> Any:
        if v is None:
            return "GUEST"
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def is_landlord(self) -> bool:
        return self.user_type == "LANDLORD"

    @property
    def is_admin(self) -> bool:
        return self.user_type == "ADMIN"


# Payload for PUT /users/{id}; only set fields are sent
class UserUpdate(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    user_type: Optional[UserType] = None


# Contact requests
class ContactRequest(BaseModel):
    id: int
    property_id: int
    landlord_id: int
    requester_name: str
    requester_email: str
    requester_phone: Optional[str] = None
    message: str
    is_read: bool = False
    created_at: Optional[str] = None
    property_title: Optional[str] = None
    property_address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class ContactRequestCreate(BaseModel):
    """Inquiry form input. Validated by validation.validate_contact_request before any I/O."""
    property_id: int
    landlord_id: int
    requester_name: str = ""
    requester_email: str = ""
    requester_phone: Optional[str] = None
    message: str = ""

    @field_validator("requester_name", "requester_email", "message", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("requester_phone", mode="before")
    @classmethod
    def blank_phone_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


# Authentication
class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""
    user_type: Optional[UserType] = None


class RegisterRequest(BaseModel):
    username: str = ""
    password: str = ""
    email: str = ""
    full_name: str = ""
    phone: str = ""
    user_type: UserType = "LANDLORD"

    # Normalize email input to lowercase without surrounding whitespace
    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
        return v


class ChangePasswordRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""


# Token plus profile returned by /auth/login and /auth/register
class AuthResponse(BaseModel):
    token: str
    user: User
    message: Optional[str] = None


# Local-only favorites
class Favorite(BaseModel):
    user_id: int
    property_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Anything a repository may be asked to upload alongside a property
class Attachment(BaseModel):
    filename: str
    content: bytes
    content_type: str = "image/jpeg"


