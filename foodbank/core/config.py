from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
import json

DEFAULT_SLOT_CATALOG = [
    "09:00", "09:15", "09:30", "09:45",
    "10:00", "10:15", "10:30", "10:45",
    "11:00", "11:15",
    "12:00", "12:15", "12:30", "12:45",
    "13:00", "13:15", "13:30", "13:45",
    "14:00", "14:15", "14:30", "14:45",
]


class Settings(BaseSettings):
    # Application Settings
    app_name: str = Field(default="Food Bank Check-In API", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    ENVIRONMENT: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=True, alias="DEBUG")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=True, alias="RELOAD")

    # CORS Configuration
    API_CORS_ORIGINS: Optional[str] = Field(default=None, alias="API_CORS_ORIGINS")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", alias="LOG_FORMAT")

    # Service Calendar
    service_timezone: str = Field(default="America/Vancouver", alias="SERVICE_TIMEZONE")
    slot_catalog: List[str] = Field(default_factory=lambda: list(DEFAULT_SLOT_CATALOG), alias="SLOT_CATALOG")
    default_slot_time: str = Field(default="10:00", alias="DEFAULT_SLOT_TIME")

    # Follow-up Scheduling Policy
    next_appointment_min_days: int = Field(default=21, alias="NEXT_APPOINTMENT_MIN_DAYS")
    next_appointment_max_advances: int = Field(default=10, alias="NEXT_APPOINTMENT_MAX_ADVANCES")

    # Check-in Policy
    checkin_tolerance_minutes: int = Field(default=30, alias="CHECKIN_TOLERANCE_MINUTES")
    match_window_minutes: int = Field(default=30, alias="MATCH_WINDOW_MINUTES")
    match_fallback_policy: str = Field(default="earliest", alias="MATCH_FALLBACK_POLICY")

    # Record Store
    record_retention_hours: int = Field(default=24, alias="RECORD_RETENTION_HOURS")

    # CSV Upload Configuration
    max_upload_size: int = Field(default=10485760, alias="MAX_UPLOAD_SIZE")  # 10MB

    # Site Information
    default_location: str = Field(default="Food Bank Main Site", alias="DEFAULT_LOCATION")
    default_program: str = Field(default="Food Hamper", alias="DEFAULT_PROGRAM")
    help_phone: str = Field(default="(250) 763-7161", alias="HELP_PHONE")

    @field_validator('slot_catalog', mode='before')
    @classmethod
    def parse_slot_catalog(cls, v):
        if isinstance(v, str):
            v = json.loads(v)
        return sorted(slot.strip() for slot in v)

    @field_validator('match_fallback_policy')
    @classmethod
    def validate_fallback_policy(cls, v):
        v = v.strip().lower()
        if v not in ("earliest", "strict"):
            raise ValueError("MATCH_FALLBACK_POLICY must be 'earliest' or 'strict'")
        return v

    @property
    def cors_origins(self) -> List[str]:
        if not self.API_CORS_ORIGINS:
            return ["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:3000"]
        if self.API_CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.API_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True


# Global settings instance
settings = Settings()
