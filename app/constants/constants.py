"""Constants for user roles, OTP policy, the course catalog and client-facing messages."""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of roles a profile can hold."""

    USER = "USER"
    CREATOR = "CREATOR"
    ADMIN = "ADMIN"


# Role given to every new signup
DEFAULT_SIGNUP_ROLE = UserRole.CREATOR

# ------------------------------
# OTP policy
# ------------------------------
OTP_LENGTH = 6
OTP_PATTERN = r"^\d{6}$"

# ------------------------------
# Cookies
# ------------------------------
REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_COOKIE_PATH = "/api/v1/auth"

# ------------------------------
# Messages
# ------------------------------
# These strings are returned verbatim for distinct failure causes so that a
# caller cannot tell which one happened. Keep them shared, never inline.
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
RESEND_OTP_MESSAGE = "If an account exists with this email, a new code has been sent"
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset code has been sent"
INVALID_OTP_EMAIL_MESSAGE = "Invalid email or OTP"
INVALID_RESET_EMAIL_MESSAGE = "Invalid email or code"

ACCOUNT_EXISTS_MESSAGE = "An account with this email already exists"
ALREADY_VERIFIED_MESSAGE = "Email is already verified"
OTP_LOCKED_MESSAGE = "Too many failed attempts. Please request a new verification code"
OTP_EXPIRED_MESSAGE = "Verification code has expired. Please request a new one"
RESET_LOCKED_MESSAGE = "Too many failed attempts. Please request a new reset code"
RESET_EXPIRED_MESSAGE = "Reset code has expired. Please request a new one"
VERIFICATION_REQUIRED_MESSAGE = "Email not verified. A new verification code has been sent"

NO_REFRESH_TOKEN_MESSAGE = "No refresh token provided"
INVALID_REFRESH_TOKEN_MESSAGE = "Invalid or expired refresh token"
UNKNOWN_REFRESH_TOKEN_MESSAGE = "Invalid refresh token"
REVOKED_REFRESH_TOKEN_MESSAGE = "Refresh token has been revoked. Please log in again"

TOKEN_EXPIRED_CODE = "TOKEN_EXPIRED"


# ------------------------------
# Course catalog
# ------------------------------
class CourseStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class CourseLevel(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    ALL_LEVELS = "ALL_LEVELS"


class LessonType(str, Enum):
    VIDEO = "VIDEO"
    TEXT = "TEXT"
    QUIZ = "QUIZ"


COURSE_TITLE_MIN_LENGTH = 3
COURSE_TITLE_MAX_LENGTH = 150
DEFAULT_COURSE_LANGUAGE = "English"

CATEGORY_NAME_MIN_LENGTH = 2
CATEGORY_NAME_MAX_LENGTH = 50
DEFAULT_CATEGORY_COLOR = "#10b981"
HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"

COURSE_NOT_FOUND_MESSAGE = "Course not found"
SECTION_NOT_FOUND_MESSAGE = "Section not found"
LESSON_NOT_FOUND_MESSAGE = "Lesson not found"
CATEGORY_NOT_FOUND_MESSAGE = "Category not found"
COURSE_TITLE_REQUIRED_MESSAGE = "Course title is required"
COURSE_TITLE_LENGTH_MESSAGE = "Course title must be between 3 and 150 characters"
SECTION_TITLE_REQUIRED_MESSAGE = "Section title is required"
LESSON_TITLE_REQUIRED_MESSAGE = "Lesson title is required"
INVALID_CATEGORY_MESSAGE = "Invalid category"
PUBLISH_REQUIRES_CONTENT_MESSAGE = "Course must have at least one section with one lesson before publishing"
CATEGORY_NAME_REQUIRED_MESSAGE = "Category name is required"
CATEGORY_NAME_LENGTH_MESSAGE = "Category name must be between 2 and 50 characters"
CATEGORY_EXISTS_MESSAGE = "A category with this name already exists"
INVALID_COLOR_MESSAGE = "Invalid color format. Use hex format like #10b981"
