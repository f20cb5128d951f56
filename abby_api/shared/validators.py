"""Shared validation utilities"""

import re
from datetime import datetime
from typing import Optional


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


def validate_password(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    return password


def validate_rating(rating: Optional[int]) -> Optional[int]:
    """Ratings are optional whole stars from 1 to 5"""
    if rating is None:
        return rating
    if not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")
    return rating


def parse_preferred_datetime(preferred_date: str, preferred_time: str) -> datetime:
    """
    Combine a booking's date (YYYY-MM-DD) and time (HH:MM) fields.

    Raises:
        ValueError: If either part is malformed
    """
    try:
        return datetime.fromisoformat(f"{preferred_date.strip()}T{preferred_time.strip()}")
    except ValueError as e:
        raise ValueError("Preferred date and time must be YYYY-MM-DD and HH:MM") from e


def parse_date(value: str) -> datetime:
    """Parse a YYYY-MM-DD (or full ISO) query parameter"""
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"Invalid date: {value}") from e
