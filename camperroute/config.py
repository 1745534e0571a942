"""Configuration management."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


class Settings(BaseModel):
    """Application settings."""

    # Routing providers (ORS is primary, OSRM is the keyless fallback)
    openrouteservice_api_key: str | None = Field(
        default_factory=lambda: os.getenv("OPENROUTESERVICE_API_KEY")
    )
    ors_base_url: str = Field(
        default_factory=lambda: os.getenv("ORS_BASE_URL", "https://api.openrouteservice.org/v2")
    )
    osrm_base_url: str = Field(
        default_factory=lambda: os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
    )
    routing_timeout: float = Field(
        default_factory=lambda: float(os.getenv("ROUTING_TIMEOUT", "15"))
    )
    fallback_timeout: float = Field(
        default_factory=lambda: float(os.getenv("FALLBACK_TIMEOUT", "10"))
    )
    user_agent: str = Field(
        default_factory=lambda: os.getenv("USER_AGENT", "CamperRoutePlanner/1.0")
    )

    # Campsite catalog
    overpass_url: str = Field(
        default_factory=lambda: os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
    )
    route_buffer_km: float = 10.0

    # Export settings
    export_creator: str = Field(
        default_factory=lambda: os.getenv("EXPORT_CREATOR", "Camper Route Planner")
    )
    output_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("OUTPUT_DIR", str(Path(__file__).parent.parent / "output")))
    )

    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    def validate_required(self) -> list[str]:
        """Check for missing required configuration."""
        missing = []

        # OSRM needs no key, so routing still works without this one
        if not self.openrouteservice_api_key:
            missing.append("OPENROUTESERVICE_API_KEY")

        return missing


# Global settings instance
settings = Settings()
