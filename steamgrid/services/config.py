"""Configuration service: reads the JSON settings file, falling back to defaults."""

import json
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig
from ..models.config import PRIMARY_CDN_TEMPLATE, SEARCH_URL_TEMPLATE, SECONDARY_CDN_TEMPLATE

log = structlog.stdlib.get_logger()

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "steamgrid"
OVERLAYS_DIR_NAME = "overlays by category"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Loads and validates the JSON configuration file.

    The file is edited by hand; the application never writes it.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_path: Path = config_path or DEFAULT_CONFIG_DIR / "config.json"
        log.debug("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file or return default configuration."""
        if not self.config_path.exists():
            log.info("Configuration file not found, using defaults", config_path=str(self.config_path))
            return self.get_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            config = self._dict_to_config(data)
        except OSError as e:
            log.error(
                "Could not read configuration file, using defaults",
                config_path=str(self.config_path),
                error=str(e),
            )
            return self.get_default_config()
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("Failed to load configuration, using defaults", error=str(e))
            return self.get_default_config()

        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            log.warning("Invalid configuration loaded, using defaults", errors=validation_result.errors)
            return self.get_default_config()

        log.info("Configuration loaded", config_path=str(self.config_path))
        return config

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not isinstance(config.overlays_directory, Path):
            errors.append("overlays_directory must be a Path object")

        if config.steam_directory is not None and not isinstance(config.steam_directory, Path):
            errors.append("steam_directory must be a Path object or None")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 300:
            errors.append("request_timeout should not exceed 300 seconds")

        if not isinstance(config.request_delay, (int, float)) or config.request_delay < 0:
            errors.append("request_delay must be a non-negative number")

        # Pillow recommends staying at or below 95 for JPEG.
        if not isinstance(config.jpeg_quality, int) or not 1 <= config.jpeg_quality <= 95:
            errors.append("jpeg_quality must be an integer between 1 and 95")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        for setting, placeholder in (
            ("primary_cdn_template", "{game_id}"),
            ("secondary_cdn_template", "{game_id}"),
            ("search_url_template", "{query}"),
        ):
            template = getattr(config, setting)
            if not isinstance(template, str) or placeholder not in template:
                errors.append(f"{setting} must contain {placeholder}")

        return ValidationResult(len(errors) == 0, errors)

    def get_default_config(self) -> AppConfig:
        """Get default configuration."""
        return AppConfig(overlays_directory=self.config_path.parent / OVERLAYS_DIR_NAME)

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary to AppConfig, filling missing keys with defaults."""
        defaults = self.get_default_config()

        steam_directory_raw = data.get("steam_directory")
        steam_directory = Path(str(steam_directory_raw)) if steam_directory_raw else None

        overlays_raw = data.get("overlays_directory")
        overlays_directory = Path(str(overlays_raw)) if overlays_raw else defaults.overlays_directory

        return AppConfig(
            overlays_directory=overlays_directory,
            steam_directory=steam_directory,
            request_timeout=float(data.get("request_timeout", defaults.request_timeout)),
            jpeg_quality=int(data.get("jpeg_quality", defaults.jpeg_quality)),
            request_delay=float(data.get("request_delay", defaults.request_delay)),
            log_level=str(data.get("log_level", defaults.log_level)).upper(),
            primary_cdn_template=str(data.get("primary_cdn_template", PRIMARY_CDN_TEMPLATE)),
            secondary_cdn_template=str(data.get("secondary_cdn_template", SECONDARY_CDN_TEMPLATE)),
            search_url_template=str(data.get("search_url_template", SEARCH_URL_TEMPLATE)),
        )
