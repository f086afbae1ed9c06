"""Configuration data models."""

from dataclasses import dataclass
from pathlib import Path

PRIMARY_CDN_TEMPLATE = "https://steamcdn-a.akamaihd.net/steam/apps/{game_id}/header.jpg"
SECONDARY_CDN_TEMPLATE = "http://cdn.steampowered.com/v/gfx/apps/{game_id}/header.jpg"
SEARCH_URL_TEMPLATE = "https://ajax.googleapis.com/ajax/services/search/images?v=1.0&rsz=8&q={query}"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    overlays_directory: Path
    steam_directory: Path | None = None  # None = auto-detect
    request_timeout: float = 10.0
    jpeg_quality: int = 90
    request_delay: float = 0.0
    log_level: str = "INFO"
    primary_cdn_template: str = PRIMARY_CDN_TEMPLATE
    secondary_cdn_template: str = SECONDARY_CDN_TEMPLATE
    search_url_template: str = SEARCH_URL_TEMPLATE
