"""
Configuration settings for the Route Network Planner
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple
import os

from dotenv import load_dotenv
from loguru import logger


@dataclass
class APIConfig:
    """Trace API endpoints and request settings"""
    # Routing, persistence and bulk-ingestion all live behind the same host
    trace_api_url: str = "https://traceapi.keeshondcoin.com"

    # Routing service
    show_route_path: str = "show-route"
    compute_route_path: str = "compute-route"

    # Persistence service
    save_path: str = "save-kml"
    verify_save_path: str = "save-to-db"
    download_path: str = "download"

    # Bulk ingestion / preview / search
    upload_path: str = "upload"
    network_path: str = "get-networks"
    search_path: str = "search-location"

    # Request settings
    request_timeout: int = 60

    # User agent for API requests
    user_agent: str = "RouteNetworkPlanner/1.0"


@dataclass
class NetworkConfig:
    """Network construction and display settings"""
    existing_color: str = "#00AA00"
    proposed_color: str = "#FF0000"
    selected_route_color: str = "#00FFFF"

    # Colors for the up-to-three routing candidates, by rank
    candidate_colors: List[str] = field(default_factory=lambda: ["blue", "green", "gray"])
    max_candidates: int = 3

    # Drag handles sit at these path fractions (start, interior, end)
    handle_fractions: Tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)
    candidate_label_fraction: float = 0.25

    # Values a source uses to mean "no value"
    null_sentinels: Tuple[str, ...] = ("NULL", "null", "None", "none", "N/A", "n/a", "")

    default_asset_type_existing: str = "Incremental Cable"
    default_asset_type_proposed: str = "Proposed Cable"
    default_fiber_count: str = "24"

    # Defaults merged into every parsed property bag
    property_defaults: Dict[str, str] = field(default_factory=lambda: {
        "status": "Proposed",
        "phase": "3",
    })


@dataclass
class PersistenceConfig:
    """Persistence gateway settings"""
    max_download_mb: float = 50.0
    download_formats: Tuple[str, ...] = ("kml", "csv")

    # Notification auto-dismiss (seconds)
    success_notification_s: float = 5.0
    error_notification_s: float = 10.0

    # Acting user when no session identity is known
    default_user_id: int = 1
    default_user_name: str = " "


@dataclass
class PlannerConfig:
    """Top-level configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)


def load_env_overrides(config: PlannerConfig) -> PlannerConfig:
    """Apply .env / environment overrides to a config instance"""
    env_paths = [
        Path(__file__).parent.parent / ".env",  # Project root
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)  # Don't override existing env vars
            logger.debug(f"Loaded .env file from {env_path}")
            break

    if os.getenv("TRACE_API_URL"):
        config.api.trace_api_url = os.environ["TRACE_API_URL"]
    if os.getenv("TRACE_API_TIMEOUT"):
        try:
            config.api.request_timeout = int(os.environ["TRACE_API_TIMEOUT"])
        except ValueError:
            logger.warning(f"Ignoring non-integer TRACE_API_TIMEOUT: {os.environ['TRACE_API_TIMEOUT']!r}")
    if os.getenv("ROUTE_PLANNER_USER_ID"):
        try:
            config.persistence.default_user_id = int(os.environ["ROUTE_PLANNER_USER_ID"])
        except ValueError:
            logger.warning(f"Ignoring non-integer ROUTE_PLANNER_USER_ID: {os.environ['ROUTE_PLANNER_USER_ID']!r}")
    if os.getenv("ROUTE_PLANNER_USER_NAME"):
        config.persistence.default_user_name = os.environ["ROUTE_PLANNER_USER_NAME"]

    return config


# Global config instance
config = load_env_overrides(PlannerConfig())


def get_config() -> PlannerConfig:
    """Get global configuration"""
    return config


def validate_config(config: PlannerConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if not hasattr(config, 'api') or config.api is None:
        errors.append("api configuration is required but not set")
    else:
        if not config.api.trace_api_url:
            errors.append("api.trace_api_url is required but not set")
        elif not config.api.trace_api_url.startswith(("http://", "https://")):
            errors.append(f"api.trace_api_url must be an http(s) URL, got {config.api.trace_api_url!r}")
        if config.api.request_timeout is not None and config.api.request_timeout <= 0:
            errors.append(f"api.request_timeout must be positive, got {config.api.request_timeout}")

    if not hasattr(config, 'network') or config.network is None:
        errors.append("network configuration is required but not set")
    else:
        if config.network.max_candidates < 1:
            errors.append(f"network.max_candidates must be at least 1, got {config.network.max_candidates}")
        if len(config.network.candidate_colors) < config.network.max_candidates:
            errors.append("network.candidate_colors needs one color per candidate rank")
        if any(f < 0 or f > 1 for f in config.network.handle_fractions):
            errors.append("network.handle_fractions must lie in [0, 1]")

    if not hasattr(config, 'persistence') or config.persistence is None:
        errors.append("persistence configuration is required but not set")
    elif config.persistence.max_download_mb <= 0:
        errors.append(f"persistence.max_download_mb must be positive, got {config.persistence.max_download_mb}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
