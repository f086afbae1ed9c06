"""Service layer for the grid image pipeline and its integrations."""

from .artwork_sources import ArtworkSourceResolver, extract_search_candidate
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    ImageDecodeError,
    LibraryError,
    OverlayLoadError,
    SourceError,
    StorageError,
    UserFriendlyError,
    get_error_service,
)
from .filesystem import FileSystemService
from .http_client import HttpClientService
from .image_cache import ImageCache, backup_path, working_path
from .overlays import OverlayCompositor, OverlaySet, normalize_name
from .pipeline import PipelineDriver
from .steam_library import SteamLibraryService

__all__ = [
    "AppError",
    "ArtworkSourceResolver",
    "ConfigurationError",
    "ConfigurationService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "FileSystemService",
    "HttpClientService",
    "ImageCache",
    "ImageDecodeError",
    "LibraryError",
    "OverlayCompositor",
    "OverlayLoadError",
    "OverlaySet",
    "PipelineDriver",
    "SourceError",
    "SteamLibraryService",
    "StorageError",
    "UserFriendlyError",
    "ValidationResult",
    "backup_path",
    "extract_search_candidate",
    "get_error_service",
    "normalize_name",
    "working_path",
]
