"""Tests for overlay loading, tag matching and compositing."""

import string
import tempfile
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from hypothesis import given, strategies as st
from PIL import Image

from steamgrid.models.game import Game
from steamgrid.services.errors import ImageDecodeError, OverlayLoadError
from steamgrid.services.filesystem import FileSystemService
from steamgrid.services.overlays import OverlayCompositor, OverlaySet, normalize_name


words = st.text(alphabet=string.ascii_letters)


def encode(img: Image.Image, fmt: str = "JPEG") -> bytes:
    buffer = BytesIO()
    if fmt == "JPEG":
        img.convert("RGB").save(buffer, format="JPEG", quality=90)
    else:
        img.save(buffer, format=fmt)
    return buffer.getvalue()


def base_artwork() -> bytes:
    return encode(Image.new("RGB", (46, 22), (30, 160, 40)))


def half_red_overlay() -> Image.Image:
    """Opaque red on the left half, transparent on the right."""
    overlay = Image.new("RGBA", (46, 22), (0, 0, 0, 0))
    overlay.paste((255, 0, 0, 255), (0, 0, 23, 22))
    return overlay


def translucent_blue_overlay() -> Image.Image:
    return Image.new("RGBA", (46, 22), (0, 0, 255, 128))


def reference_composite(image_bytes: bytes, overlay: Image.Image) -> bytes:
    """Composite the way the pipeline is expected to: base, overlay over it, JPEG q90."""
    base = Image.open(BytesIO(image_bytes)).convert("RGBA")
    size = (max(base.width, overlay.width), max(base.height, overlay.height))
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(base, (0, 0))
    canvas.alpha_composite(overlay, dest=(0, 0))
    return encode(canvas)


def create_compositor() -> OverlayCompositor:
    return OverlayCompositor(FileSystemService())


class TestNormalization:
    """Tag and overlay names match case-insensitively, singular or plural."""

    @pytest.mark.parametrize("tag", ["Demos", "demo", "DEMO", "demos", "DEMOS"])
    def test_demo_variants(self, tag: str) -> None:
        assert normalize_name(tag) == "demo"

    def test_strips_only_one_trailing_s(self) -> None:
        assert normalize_name("Bosss") == "boss"
        assert normalize_name("Class") == "clas"
        assert normalize_name("s") == ""

    @given(words)
    def test_plural_and_singular_match(self, word: str) -> None:
        singular = normalize_name(word)
        assert normalize_name(singular.upper() + "S") == singular

    @given(words)
    def test_result_is_lower_case(self, word: str) -> None:
        assert normalize_name(word) == normalize_name(word.lower())


class TestLoadOverlays:

    def test_missing_directory_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            overlays = create_compositor().load_overlays(Path(temp_dir) / "missing")

        assert len(overlays) == 0

    def test_names_are_normalized(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            (directory / "Favorites.png").write_bytes(encode(half_red_overlay(), "PNG"))
            (directory / "Action.png").write_bytes(encode(translucent_blue_overlay(), "PNG"))

            overlays = create_compositor().load_overlays(directory)

        assert sorted(overlays) == ["action", "favorite"]
        assert overlays["favorite"].mode == "RGBA"

    def test_collision_later_file_wins(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            (directory / "Demos.png").write_bytes(encode(Image.new("RGBA", (4, 4), (255, 0, 0, 255)), "PNG"))
            (directory / "demo.png").write_bytes(encode(Image.new("RGBA", (4, 4), (0, 255, 0, 255)), "PNG"))

            overlays = create_compositor().load_overlays(directory)

        # "Demos.png" sorts before "demo.png".
        assert len(overlays) == 1
        assert overlays["demo"].getpixel((0, 0)) == (0, 255, 0, 255)

    def test_non_image_files_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            (directory / "README.txt").write_text("put overlays here")
            (directory / ".DS_Store").write_bytes(b"\x00\x01")
            (directory / "nested").mkdir()
            (directory / "action.png").write_bytes(encode(half_red_overlay(), "PNG"))

            overlays = create_compositor().load_overlays(directory)

        assert list(overlays) == ["action"]

    def test_broken_image_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            (directory / "action.png").write_bytes(b"not a png")

            with pytest.raises(OverlayLoadError):
                create_compositor().load_overlays(directory)

    def test_oversized_image_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            directory = Path(temp_dir)
            (directory / "action.png").write_bytes(encode(half_red_overlay(), "PNG"))

            with patch.object(Image, "MAX_IMAGE_PIXELS", 100):
                with pytest.raises(OverlayLoadError):
                    create_compositor().load_overlays(directory)

    def test_overlay_set_is_read_only(self) -> None:
        source = {"action": half_red_overlay()}
        overlays = OverlaySet(source)
        source["favorite"] = translucent_blue_overlay()

        assert list(overlays) == ["action"]
        with pytest.raises(TypeError):
            overlays["favorite"] = translucent_blue_overlay()  # type: ignore[index]


class TestApplyOverlay:

    @pytest.mark.asyncio
    async def test_no_artwork_is_a_no_op(self) -> None:
        game = Game(game_id="1", tags=("Action",))

        result = await create_compositor().apply_overlay(game, OverlaySet({"action": half_red_overlay()}))

        assert result is game

    @pytest.mark.asyncio
    async def test_single_overlay_matches_reference(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"
            backup = Path(temp_dir) / "1 (original).jpg"
            original = base_artwork()
            backup.write_bytes(original)
            game = Game(game_id="1", tags=("Actions",), image_path=path, image_bytes=original)

            result = await create_compositor().apply_overlay(game, OverlaySet({"action": half_red_overlay()}))

            expected = reference_composite(original, half_red_overlay())
            assert result.image_bytes == expected
            assert path.read_bytes() == expected
            assert backup.read_bytes() == original
            assert game.image_bytes == original

    @pytest.mark.asyncio
    async def test_overlays_compose_in_tag_order(self) -> None:
        """["Action", "Favorite"] gives F over (A over base)."""
        overlays = OverlaySet({"action": half_red_overlay(), "favorite": translucent_blue_overlay()})
        original = base_artwork()

        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"
            compositor = create_compositor()

            forward = await compositor.apply_overlay(
                Game(game_id="1", tags=("Action", "Favorite"), image_path=path, image_bytes=original),
                overlays,
            )
            backward = await compositor.apply_overlay(
                Game(game_id="1", tags=("Favorite", "Action"), image_path=path, image_bytes=original),
                overlays,
            )

        expected = reference_composite(
            reference_composite(original, half_red_overlay()),
            translucent_blue_overlay(),
        )
        assert forward.image_bytes == expected
        assert forward.image_bytes != backward.image_bytes

        # Left half: blue over red stays visibly blue-ish; reversed order leaves it red.
        assert forward.image_bytes is not None and backward.image_bytes is not None
        forward_pixel = Image.open(BytesIO(forward.image_bytes)).convert("RGB").getpixel((5, 10))
        backward_pixel = Image.open(BytesIO(backward.image_bytes)).convert("RGB").getpixel((5, 10))
        assert forward_pixel[2] > 100
        assert backward_pixel[0] > 200 and backward_pixel[2] < 60

    @pytest.mark.asyncio
    async def test_duplicate_tags_apply_twice(self) -> None:
        overlays = OverlaySet({"favorite": translucent_blue_overlay()})
        original = base_artwork()

        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"
            result = await create_compositor().apply_overlay(
                Game(game_id="1", tags=("Favorite", "favorites"), image_path=path, image_bytes=original),
                overlays,
            )

        once = reference_composite(original, translucent_blue_overlay())
        twice = reference_composite(once, translucent_blue_overlay())
        assert result.image_bytes == twice

    @pytest.mark.asyncio
    async def test_canvas_grows_to_union_of_bounds(self) -> None:
        tall_overlay = Image.new("RGBA", (10, 40), (255, 255, 255, 255))
        original = base_artwork()

        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"
            result = await create_compositor().apply_overlay(
                Game(game_id="1", tags=("tall",), image_path=path, image_bytes=original),
                OverlaySet({"tall": tall_overlay}),
            )

        assert result.image_bytes is not None
        assert Image.open(BytesIO(result.image_bytes)).size == (46, 40)

    @pytest.mark.asyncio
    async def test_unmatched_tags_rewrite_working_copy_unchanged(self) -> None:
        original = base_artwork()

        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"
            path.write_bytes(b"stale overlaid image")

            result = await create_compositor().apply_overlay(
                Game(game_id="1", tags=("Strategy",), image_path=path, image_bytes=original),
                OverlaySet({"action": half_red_overlay()}),
            )

            assert result.image_bytes == original
            assert path.read_bytes() == original

    @pytest.mark.asyncio
    async def test_zero_tags_rewrites_working_copy(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"

            await create_compositor().apply_overlay(
                Game(game_id="1", image_path=path, image_bytes=b"raw bytes"),
                OverlaySet({"action": half_red_overlay()}),
            )

            assert path.read_bytes() == b"raw bytes"

    @pytest.mark.asyncio
    async def test_undecodable_artwork_raises(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"

            with pytest.raises(ImageDecodeError) as exc_info:
                await create_compositor().apply_overlay(
                    Game(game_id="1", name="Broken", tags=("Action",), image_path=path, image_bytes=b"<html>"),
                    OverlaySet({"action": half_red_overlay()}),
                )

            assert exc_info.value.game_id == "1"
            assert not path.exists()

    @pytest.mark.asyncio
    async def test_oversized_artwork_raises_decode_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "1.jpg"

            with patch.object(Image, "MAX_IMAGE_PIXELS", 100):
                with pytest.raises(ImageDecodeError):
                    await create_compositor().apply_overlay(
                        Game(game_id="1", tags=("Action",), image_path=path, image_bytes=base_artwork()),
                        OverlaySet({"action": half_red_overlay()}),
                    )

            assert not path.exists()
