"""Category overlays: loading and compositing onto grid images."""

from collections.abc import Iterator, Mapping
from dataclasses import replace
from io import BytesIO
from pathlib import Path
from types import MappingProxyType

import structlog
from PIL import Image, UnidentifiedImageError

from ..models.game import Game
from .errors import ImageDecodeError, OverlayLoadError
from .filesystem import FileSystemService

log = structlog.stdlib.get_logger()

DEFAULT_JPEG_QUALITY = 90


def normalize_name(text: str) -> str:
    """Lower-case and drop a single trailing "s", so "Demos" matches "demo"."""
    name = text.lower()
    if name.endswith("s"):
        name = name[:-1]
    return name


class OverlaySet(Mapping[str, Image.Image]):
    """Read-only mapping of normalized category name to RGBA overlay image.

    Built once at the start of a run and shared by every compositing call.
    """

    def __init__(self, images: Mapping[str, Image.Image] | None = None) -> None:
        self._images = MappingProxyType(dict(images or {}))

    def __getitem__(self, name: str) -> Image.Image:
        return self._images[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._images)

    def __len__(self) -> int:
        return len(self._images)

    def for_tag(self, tag: str) -> Image.Image | None:
        return self._images.get(normalize_name(tag))


class OverlayCompositor:
    """Draws category overlays on top of a game's grid image."""

    def __init__(
        self,
        filesystem: FileSystemService,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    ) -> None:
        self.filesystem = filesystem
        self.jpeg_quality = jpeg_quality

    def load_overlays(self, directory: Path) -> OverlaySet:
        """Load every overlay image in a directory.

        Files are loaded in name order; when two files normalize to the same
        category name the later one wins.

        Args:
            directory: Directory of overlay images named after categories

        Returns:
            The loaded overlays, empty if the directory does not exist

        Raises:
            OverlayLoadError: If an image file cannot be decoded
        """
        if not directory.is_dir():
            log.warning("Overlay directory not found, continuing without overlays", directory=str(directory))
            return OverlaySet()

        known_extensions = Image.registered_extensions()
        images: dict[str, Image.Image] = {}
        for path in self.filesystem.list_files(directory):
            if path.suffix.lower() not in known_extensions:
                log.debug("Skipping non-image file in overlay directory", path=str(path))
                continue

            try:
                with Image.open(path) as img:
                    overlay = img.convert("RGBA")
            except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
                raise OverlayLoadError(
                    f"Could not load overlay {path.name}",
                    path=str(path),
                    original_error=e,
                ) from e

            name = normalize_name(path.stem)
            if name in images:
                log.warning("Overlay name collision, replacing earlier file", name=name, path=str(path))
            images[name] = overlay

        log.info("Overlays loaded", directory=str(directory), names=sorted(images))
        return OverlaySet(images)

    async def apply_overlay(self, game: Game, overlays: OverlaySet) -> Game:
        """Composite every overlay matching the game's tags, then save the working copy.

        Tags are applied in order and each match draws on top of the previous
        result. The backup file is never touched.

        Args:
            game: Game with resolved artwork
            overlays: Overlays loaded for this run

        Returns:
            Updated copy of the game with the composited image bytes

        Raises:
            ImageDecodeError: If the artwork cannot be decoded
            StorageError: If the working copy cannot be written
        """
        if game.image_path is None or game.image_bytes is None:
            return game

        image_bytes = game.image_bytes
        for tag in game.tags:
            overlay = overlays.for_tag(tag)
            if overlay is None:
                continue

            log.debug("Applying overlay", game_id=game.game_id, tag=tag)
            image_bytes = self._composite(image_bytes, overlay, game)

        await self.filesystem.write_bytes(image_bytes, game.image_path)
        return replace(game, image_bytes=image_bytes)

    def _composite(self, image_bytes: bytes, overlay: Image.Image, game: Game) -> bytes:
        try:
            with Image.open(BytesIO(image_bytes)) as img:
                base = img.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise ImageDecodeError(
                f"Could not decode the grid image of {game.display_name}",
                game_id=game.game_id,
                path=str(game.image_path) if game.image_path else None,
                original_error=e,
            ) from e

        # Both images are anchored at the origin, so the union of their
        # bounds is just the larger extent on each axis.
        width = max(base.width, overlay.width)
        height = max(base.height, overlay.height)
        result = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        result.paste(base, (0, 0))
        result.alpha_composite(overlay, dest=(0, 0))

        buffer = BytesIO()
        result.convert("RGB").save(buffer, format="JPEG", quality=self.jpeg_quality)
        return buffer.getvalue()
