"""Shared validation utilities"""

import re
from typing import Optional

MAX_CLIENT_NAME_LENGTH = 100
MAX_PHONE_LENGTH = 20


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an international phone number loosely.

    Digits with optional leading +, spaces, dashes, dots and parentheses;
    at most 20 characters once trimmed.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    phone = phone.strip()
    if len(phone) > MAX_PHONE_LENGTH:
        raise ValueError(f"Phone number must be at most {MAX_PHONE_LENGTH} characters")
    if not re.match(r"^\+?[0-9 ().-]+$", phone) or not re.search(r"\d", phone):
        raise ValueError("Invalid phone number")

    return phone


def validate_client_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Name is required")
    if len(name) > MAX_CLIENT_NAME_LENGTH:
        raise ValueError(f"Name must be at most {MAX_CLIENT_NAME_LENGTH} characters")
    return name
