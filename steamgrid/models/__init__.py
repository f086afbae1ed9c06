"""Data models for the steamgrid application."""

from .config import AppConfig
from .game import (
    ArtworkResult,
    ArtworkSource,
    CacheOutcome,
    Game,
    LibraryUser,
    SteamUser,
)
from .progress import PipelineProgress, PipelineReport

__all__ = [
    "AppConfig",
    "ArtworkResult",
    "ArtworkSource",
    "CacheOutcome",
    "Game",
    "LibraryUser",
    "PipelineProgress",
    "PipelineReport",
    "SteamUser",
]
