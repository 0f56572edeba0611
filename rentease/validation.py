# Form validation that runs before any network or storage work.
# Each validator returns a user-facing error message, or None when the input is acceptable.
from decimal import Decimal, InvalidOperation
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from . import schemas

ALL_FIELDS_REQUIRED = "All fields are required"
INVALID_EMAIL = "Invalid email address"
MIN_PASSWORD_LENGTH = 6


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def is_valid_email(value: str) -> bool:
    # Syntax only; no DNS lookups from a client
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _non_negative_int(value: Optional[str]) -> bool:
    if _blank(value):
        return True
    try:
        return int(str(value).strip()) >= 0
    except ValueError:
        return False


def validate_property_draft(draft: schemas.PropertyDraft) -> Optional[str]:
    if any(_blank(v) for v in (draft.title, draft.description, draft.address, draft.price)):
        return ALL_FIELDS_REQUIRED

    try:
        price = Decimal(draft.price.strip())
    except InvalidOperation:
        return "Invalid price"
    if not price.is_finite() or price < 0:
        return "Invalid price"

    if not (_non_negative_int(draft.bedroom_count) and _non_negative_int(draft.bathroom_count)):
        return "Invalid room count"

    if draft.furniture_type.strip().lower() not in schemas.FURNITURE_TYPES:
        return "Invalid furniture type"
    return None


def validate_contact_request(request: schemas.ContactRequestCreate) -> Optional[str]:
    if any(_blank(v) for v in (request.requester_name, request.requester_email, request.message)):
        return ALL_FIELDS_REQUIRED
    if not is_valid_email(request.requester_email):
        return INVALID_EMAIL
    return None


def validate_login(request: schemas.LoginRequest) -> Optional[str]:
    if _blank(request.username) or _blank(request.password):
        return "Username and password cannot be empty"
    return None


def validate_registration(request: schemas.RegisterRequest) -> Optional[str]:
    fields = (request.username, request.full_name, request.email, request.phone, request.password)
    if any(_blank(v) for v in fields):
        return ALL_FIELDS_REQUIRED
    if len(request.password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not is_valid_email(request.email):
        return INVALID_EMAIL
    return None


def validate_password_change(request: schemas.ChangePasswordRequest) -> Optional[str]:
    if _blank(request.current_password) or _blank(request.new_password):
        return ALL_FIELDS_REQUIRED
    if len(request.new_password) < MIN_PASSWORD_LENGTH:
        return f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if request.current_password == request.new_password:
        return "New password must be different from current password"
    return None
