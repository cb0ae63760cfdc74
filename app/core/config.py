from dotenv import load_dotenv
from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv(".env")


class Settings(BaseSettings):
    """Class to store all the settings of the GrowthTubes API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------
    # Database - Required
    # ------------------------------
    DATABASE_URL: str
    DB_ECHO: bool = False

    # ------------------------------
    # Auth - Required
    # ------------------------------
    JWT_ACCESS_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "growthtubes-api"
    JWT_AUDIENCE: str = "growthtubes-web"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # ------------------------------
    # OTP policy
    # ------------------------------
    OTP_EXPIRE_MINUTES: int = 30
    OTP_RESEND_COOLDOWN_SECONDS: int = 60
    MAX_OTP_ATTEMPTS: int = 5
    SIGNUP_RETRY_OVERWRITES_PASSWORD: bool = True

    # ------------------------------
    # Email - Optional
    # ------------------------------
    RESEND_API_KEY: str = ""
    FROM_EMAIL: str = "GrowthTubes <onboarding@resend.dev>"

    # ------------------------------
    # URLs & HTTP
    # ------------------------------
    FRONTEND_URL: str = "http://localhost:3000"
    RATE_LIMIT_ENABLED: bool = True

    # ------------------------------
    # Environment
    # ------------------------------
    ENVIRONMENT: str = "development"

    @model_validator(mode="after")
    def check_distinct_secrets(self):
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return self

    # ------------------------------
    # Computed Fields
    # ------------------------------
    @computed_field
    @property
    def IS_PRODUCTION(self) -> bool:
        """Whether the app runs with production cookie and error policies."""
        return self.ENVIRONMENT == "production"


# Instantiate the settings
settings = Settings()
