"""
Application configuration management.

Loads settings from environment variables with validation.
VICIdial credentials must be provided via environment variables, never hardcoded.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses pydantic-settings for validation and type coercion.
    Constructed once per process and injected into the VICIdial client.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    environment: str = Field(default="development",
                             description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    app_name: str = Field(default="Retention Portal",
                          description="Application name")
    app_version: str = Field(
        default="1.0.0", description="Application version")

    # ==========================================================================
    # Server Settings
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(default="INFO", description="Logging level")
    slow_request_threshold_ms: int = Field(
        default=500, description="Requests slower than this are logged as warnings")

    # ==========================================================================
    # VICIdial Connection
    # Agent API: {base}/agc/api.php, non-agent API: {base}/non_agent_api.php
    # ==========================================================================
    vicidial_base_url: str = Field(
        default="",
        description="VICIdial server base URL (e.g., https://dialer.example.com)"
    )
    vicidial_api_user: str = Field(
        default="",
        description="VICIdial API user"
    )
    vicidial_api_pass: str = Field(
        default="",
        description="VICIdial API password"
    )
    vicidial_api_source: str = Field(
        default="retention_portal",
        description="Source label sent with every VICIdial API call"
    )
    vicidial_agent_api_url: str = Field(
        default="",
        description="Explicit agent API URL (empty = {base}/agc/api.php)"
    )
    vicidial_agent_api_user: str = Field(
        default="",
        description="Agent API user (empty = VICIDIAL_API_USER)"
    )
    vicidial_agent_api_pass: str = Field(
        default="",
        description="Agent API password (empty = VICIDIAL_API_PASS)"
    )
    vicidial_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for every outbound VICIdial request in seconds"
    )

    # ==========================================================================
    # VICIdial Assignment Server (lead add/update)
    # Each value falls back to the non-agent API value when empty.
    # ==========================================================================
    vicidial_assign_base_url: str = Field(
        default="", description="Assignment server base URL")
    vicidial_assign_api_user: str = Field(
        default="", description="Assignment API user")
    vicidial_assign_api_pass: str = Field(
        default="", description="Assignment API password")
    vicidial_assign_api_source: str = Field(
        default="", description="Assignment API source label")

    # ==========================================================================
    # VICIdial Function Names & Defaults
    # ==========================================================================
    vicidial_function_hangup: str = Field(
        default="external_hangup",
        description="Agent API function used by the hangup route"
    )
    vicidial_function_dial: str = Field(
        default="external_dial",
        description="Agent API function used by the dial route"
    )
    vicidial_function_agent_status: Optional[str] = Field(
        default=None,
        description="Agent API function used by the agent-status route (empty = automatic)"
    )
    vicidial_function_add_lead: str = Field(
        default="add_lead",
        description="Non-agent API function used by the add-lead route"
    )
    vicidial_assign_function_add_lead: Optional[str] = Field(
        default=None,
        description="Assignment-server override for the add-lead function"
    )
    vicidial_default_phone_code: str = Field(
        default="1", description="Default dialing phone code")
    vicidial_assign_default_phone_code: Optional[str] = Field(
        default=None, description="Assignment-server default phone code")
    vicidial_default_campaign_id: Optional[str] = Field(
        default=None, description="Fallback campaign for new leads")
    vicidial_default_list_id: Optional[str] = Field(
        default=None, description="Fallback list for new leads")
    vicidial_assign_default_campaign_id: Optional[str] = Field(
        default=None, description="Assignment-server fallback campaign")
    vicidial_assign_default_list_id: Optional[str] = Field(
        default=None, description="Assignment-server fallback list")
    vicidial_unassign_status: str = Field(
        default="ERI",
        description="Lead status set when a lead is unassigned"
    )

    # ==========================================================================
    # VICIdial Database (read-only lead lookups)
    # Lookups are skipped unless host, user and name are all set.
    # ==========================================================================
    vicidial_db_host: str = Field(default="", description="VICIdial MySQL host")
    vicidial_db_port: int = Field(default=3306, description="VICIdial MySQL port")
    vicidial_db_user: str = Field(default="", description="VICIdial MySQL user")
    vicidial_db_pass: str = Field(default="", description="VICIdial MySQL password")
    vicidial_db_name: str = Field(default="", description="VICIdial MySQL database name")
    vicidial_db_pool_recycle: int = Field(
        default=1800, description="Seconds before a pooled connection is recycled")

    # ==========================================================================
    # Agent Mapping & Portal URLs
    # ==========================================================================
    vicidial_agent_mapping_path: str = Field(
        default="config/vicidial-agent-mapping.json",
        description="JSON table mapping portal profile ids to VICIdial campaign/list/user"
    )
    retention_portal_base_url: Optional[str] = Field(
        default=None,
        description="Public portal URL used in lead-details links"
    )
    next_public_app_base_url: Optional[str] = Field(
        default=None,
        description="Fallback public portal URL"
    )

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def vicidial_configured(self) -> bool:
        """Check if the minimum VICIdial connection values are present."""
        return all([self.vicidial_base_url, self.vicidial_api_user, self.vicidial_api_pass])

    @property
    def vicidial_db_configured(self) -> bool:
        """Check if the VICIdial database can be reached (password may be empty)."""
        return all([self.vicidial_db_host, self.vicidial_db_user, self.vicidial_db_name])

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("vicidial_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("vicidial_timeout_seconds must be positive")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once. Also used as a
    FastAPI dependency so tests can override it.

    Returns:
        Settings instance with values from environment
    """
    return Settings()


# Global settings instance
settings = get_settings()
