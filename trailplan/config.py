# trailplan/config.py
"""Environment-driven settings for the trip planner service."""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def get_llm_config():
    """Settings for the OpenAI-compatible chat model."""
    return {
        "api_key": os.getenv("OPENAI_API_KEY", ""),
        "base_url": os.getenv("TRAILPLAN_LLM_BASE_URL") or None,
        "model": os.getenv("TRAILPLAN_LLM_MODEL", "gpt-4o-mini"),
        "temperature": float(os.getenv("TRAILPLAN_LLM_TEMPERATURE", "0.7")),
        "timeout": float(os.getenv("TRAILPLAN_LLM_TIMEOUT", "60")),
    }


def get_ors_config():
    """Settings for the OpenRouteService directions API."""
    return {
        "api_key": os.getenv("ORS_API_KEY", ""),
        "base_url": os.getenv("ORS_BASE_URL", "https://api.openrouteservice.org").rstrip("/"),
    }


def get_nominatim_url() -> str:
    return os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org").rstrip("/")


def get_http_timeout() -> float:
    """Per-call timeout (seconds) for routing and geocoding requests."""
    return float(os.getenv("TRAILPLAN_HTTP_TIMEOUT", "10"))


def get_max_retries() -> int:
    return max(1, int(os.getenv("TRAILPLAN_MAX_RETRIES", "5")))


def get_allowed_origins() -> List[str]:
    raw_origins = os.getenv("TRAILPLAN_ALLOWED_ORIGINS") or "*"
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    return origins or ["*"]
