"""
Local validation for the auth flow.

Everything here runs before the identity provider is contacted; failures
become InvalidInputError / InvalidDomainError and never reach the provider.

Institutional addresses look like ``1si23is117@sit.ac.in``: the local part
is the student's USN, from which branch and admission year are derived.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from .exceptions import InvalidInputError
from .models import ProfileSeed

BRANCH_NAMES = {
    "cs": "Computer Science",
    "is": "Information Science",
    "ec": "Electronics & Communication",
    "me": "Mechanical Engineering",
    "cv": "Civil Engineering",
    "ee": "Electrical Engineering",
    "ae": "Aeronautical Engineering",
    "bt": "Biotechnology",
    "ch": "Chemical Engineering",
    "im": "Industrial Engineering & Management",
    "tc": "Telecommunication Engineering",
    "ai": "Artificial Intelligence & Machine Learning",
    "ds": "Data Science",
    "cy": "Cyber Security",
}

COURSE_LENGTH_YEARS = 4

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USN_PATTERN = re.compile(r"^(\d)([a-z]{2})(\d{2})([a-z]{2})(\d{3})$")
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def normalize_email(email: Optional[str]) -> str:
    """
    Trim and lower-case an e-mail address.

    Raises:
        InvalidInputError: If the address is blank or malformed
    """
    if not email or not email.strip():
        raise InvalidInputError("email", "Email is required")

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInputError("email", "Please enter a valid email address")
    return email


def is_institutional_email(email: str, domain: str) -> bool:
    """Whether the address belongs to the institutional domain."""
    if not email:
        return False
    return email.strip().lower().endswith(f"@{domain.lower()}")


def parse_institutional_email(email: str, today: Optional[datetime] = None) -> Optional[dict]:
    """
    Derive student details from a USN-style institutional address.

    Returns:
        Dict with usn, branch, branch_code, admission_year, graduation_year,
        or None when the local part is not a USN with a known branch.
    """
    local_part = email.split("@")[0].strip().lower()
    match = USN_PATTERN.match(local_part)
    if not match:
        return None

    _, _, year_digits, branch_code, _ = match.groups()
    branch = BRANCH_NAMES.get(branch_code)
    if branch is None:
        return None

    current_year = (today or datetime.now(timezone.utc)).year
    admission_year = (current_year // 100) * 100 + int(year_digits)
    if admission_year > current_year + 10:
        admission_year -= 100

    return {
        "usn": local_part.upper(),
        "branch": branch,
        "branch_code": branch_code.upper(),
        "admission_year": admission_year,
        "graduation_year": admission_year + COURSE_LENGTH_YEARS,
    }


def validate_name(value: Optional[str], field: str, label: str) -> str:
    """Require a 2-50 character name."""
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(field, f"{label} is required")
    if len(value) < 2 or len(value) > 50:
        raise InvalidInputError(field, f"{label} must be 2-50 characters")
    return value


def validate_password(password: Optional[str]) -> list[str]:
    """
    Check password strength.

    Returns:
        The list of unmet requirements (empty when the password is valid).
    """
    if not password:
        return ["Password is required"]

    problems = []
    if len(password) < 8:
        problems.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    if not SPECIAL_CHARACTERS.search(password):
        problems.append("Password must contain at least one special character")
    return problems


def build_profile_seed(email: str, first_name: str, last_name: str) -> ProfileSeed:
    """Validate sign-up names and combine them with the parsed e-mail details."""
    first_name = validate_name(first_name, "first_name", "First name")
    last_name = validate_name(last_name, "last_name", "Last name")
    parsed = parse_institutional_email(email) or {}
    return ProfileSeed(
        email=email,
        first_name=first_name,
        last_name=last_name,
        **parsed,
    )
