"""Local grid image cache with a pristine backup per game."""

from dataclasses import replace
from pathlib import Path

import structlog

from ..models.game import CacheOutcome, Game
from .artwork_sources import ArtworkSourceResolver
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()

BACKUP_SUFFIX = " (original)"


def working_path(grid_dir: Path, game_id: str) -> Path:
    """Path of the image Steam displays, which overlays are drawn onto."""
    return grid_dir / f"{game_id}.jpg"


def backup_path(grid_dir: Path, game_id: str) -> Path:
    """Path of the untouched original artwork."""
    return grid_dir / f"{game_id}{BACKUP_SUFFIX}.jpg"


class ImageCache:
    """Keeps a working copy and a never-overwritten backup of each grid image.

    The backup is what makes overlay compositing repeatable: every run starts
    from the original artwork, not from a previously overlaid working copy.
    """

    def __init__(self, resolver: ArtworkSourceResolver, filesystem: FileSystemService) -> None:
        self.resolver = resolver
        self.filesystem = filesystem

    async def resolve_or_fetch(self, game: Game, grid_dir: Path) -> CacheOutcome:
        """Load a game's artwork from the cache, fetching it if needed.

        Args:
            game: The game to resolve
            grid_dir: The user's grid directory

        Returns:
            Outcome carrying an updated copy of the game with its image path and bytes

        Raises:
            SourceError: If an artwork source fails with an unexpected status
            StorageError: If a cache file cannot be read or written
        """
        working = working_path(grid_dir, game.game_id)
        backup = backup_path(grid_dir, game.game_id)
        game = replace(game, image_path=working)

        if self.filesystem.exists(backup):
            data = await self.filesystem.read_bytes(backup)
            log.debug("Using cached backup", game_id=game.game_id, path=str(backup))
            return CacheOutcome(game=replace(game, image_bytes=data), found=True)

        if self.filesystem.exists(working):
            # There's an image, but not a backup. Treat it as the original.
            data = await self.filesystem.read_bytes(working)
            await self.filesystem.write_bytes(data, backup)
            log.info("Backed up existing grid image", game_id=game.game_id, path=str(backup))
            return CacheOutcome(game=replace(game, image_bytes=data), found=True)

        result = await self.resolver.resolve(game.game_id, game.name)
        if result is None:
            return CacheOutcome(game=game, found=False)

        # Backup first: once it exists the working copy is never refetched.
        await self.filesystem.write_bytes(result.data, backup)
        await self.filesystem.write_bytes(result.data, working)
        log.info(
            "Grid image stored",
            game_id=game.game_id,
            source=result.source.value,
            size=len(result.data),
        )
        return CacheOutcome(
            game=replace(game, image_bytes=result.data),
            found=True,
            low_confidence=result.low_confidence,
        )
