import re
from typing import List

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def sanitize_email(email: str) -> str:
    """Normalize an email for storage and lookup."""
    return email.strip().lower()


def validate_password(password: str) -> List[str]:
    """
    Check a password against the signup/reset policy.

    Returns a list of human readable problems, empty when the password is acceptable.
    """
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be at most {PASSWORD_MAX_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not re.search(r"[^a-zA-Z0-9]", password):
        errors.append("Password must contain at least one special character")
    return errors


def validate_username(username: str) -> List[str]:
    errors = []
    if len(username.strip()) < 3:
        errors.append("Username must be at least 3 characters")
    elif len(username) > 50:
        errors.append("Username must be 50 characters or less")
    if not USERNAME_PATTERN.match(username.strip()):
        errors.append("Username can only contain letters, numbers, underscores, and hyphens")
    return errors
