"""
Application settings loaded from environment variables.
Uses pydantic-settings for validation and .env file support.
"""
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./mcs_booking.db",
        description="SQLAlchemy connection string (PostgreSQL in production)"
    )
    sqlite_busy_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How long a SQLite writer waits for the lock before failing"
    )

    # Pricing
    travel_cost_per_km: float = Field(
        default=0.50,
        ge=0,
        description="Travel surcharge per kilometre (EUR)"
    )
    max_service_distance_km: Optional[float] = Field(
        default=100.0,
        ge=0,
        description="Bookings beyond this distance are rejected; None disables the check"
    )

    # Distance estimation
    fallback_distance_km: float = Field(
        default=35.0,
        ge=0,
        description="Distance used when the address cannot be resolved"
    )
    distance_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for distance API calls"
    )
    google_maps_api_key: str = Field(
        default="",
        description="Google Distance Matrix API key; empty uses the postal code heuristic"
    )
    company_address: str = Field(
        default="Industriestraße 15, 48431 Rheine",
        description="Start address for travel distance"
    )
    company_postal_code: str = Field(default="48431", description="Company postal code")

    # Booking
    booking_number_prefix: str = Field(default="MCS", description="Prefix for confirmation numbers")
    business_hours_start: int = Field(default=8, ge=0, le=23, description="First bookable hour")
    business_hours_end: int = Field(default=17, ge=0, le=23, description="Last bookable hour (inclusive)")
    working_days: List[int] = Field(
        default=[1, 2, 3, 4, 5, 6],  # Monday to Saturday
        description="ISO weekdays with appointment slots"
    )
    booking_days_advance: int = Field(
        default=21,
        ge=1,
        description="How many days ahead slots are generated"
    )

    # Notifications
    notification_provider: str = Field(
        default="console",
        description="Confirmation delivery provider: console or email"
    )
    notification_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single confirmation send"
    )
    smtp_host: str = Field(default="localhost", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_username: str = Field(default="", description="SMTP username/email")
    smtp_password: str = Field(default="", description="SMTP password/app password")
    smtp_from_email: str = Field(default="noreply@mcs-mobile.de", description="From email address")
    smtp_from_name: str = Field(default="MCS Mobile Car Solutions", description="From name")
    admin_email: str = Field(
        default="",
        description="Receives a notice for every new booking; empty disables it"
    )

    # Application
    app_name: str = Field(default="MCS Booking Backend", description="Application name")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="Origins allowed to call the booking API"
    )
    debug: bool = Field(default=False, description="Debug mode")


# Global settings instance
settings = Settings()
