"""Game and artwork data models."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class Game:
    """A title in a user's library.

    Pipeline stages never mutate a game; they hand back an updated copy
    created with ``dataclasses.replace``.
    """
    game_id: str
    name: str = ""
    tags: tuple[str, ...] = ()
    image_path: Path | None = None
    image_bytes: bytes | None = field(default=None, repr=False)

    @property
    def display_name(self) -> str:
        """Name for reports, synthesized when the library has none."""
        if self.name:
            return self.name
        return f"unknown game with id {self.game_id}"


class ArtworkSource(Enum):
    """Where a piece of artwork came from."""
    PRIMARY_CDN = "primary_cdn"
    SECONDARY_CDN = "secondary_cdn"
    SEARCH = "search"


@dataclass(frozen=True)
class ArtworkResult:
    """Raw artwork bytes plus provenance."""
    data: bytes = field(repr=False)
    source: ArtworkSource
    url: str

    @property
    def low_confidence(self) -> bool:
        """True when the image came from a text search instead of a per-title endpoint."""
        return self.source is ArtworkSource.SEARCH


@dataclass(frozen=True)
class CacheOutcome:
    """Result of checking the grid cache for a game."""
    game: Game
    found: bool
    low_confidence: bool = False


# Used to convert between SteamId32 and SteamId64.
STEAM_ID64_OFFSET = 76561197960265728


@dataclass(frozen=True)
class SteamUser:
    """A user of the local Steam installation."""
    name: str
    steam_id32: str
    directory: Path

    @property
    def steam_id64(self) -> str:
        return str(int(self.steam_id32) + STEAM_ID64_OFFSET)

    @property
    def grid_dir(self) -> Path:
        return self.directory / "config" / "grid"


@dataclass(frozen=True)
class LibraryUser:
    """A user together with the games to process for them."""
    user: SteamUser
    games: Sequence[Game]
