"""Sequential driver for the grid image pipeline."""

from collections.abc import Callable, Sequence

import structlog

from ..models.game import LibraryUser
from ..models.progress import PipelineProgress, PipelineReport
from .image_cache import ImageCache
from .overlays import OverlayCompositor, OverlaySet

log = structlog.stdlib.get_logger()

ProgressCallback = Callable[[PipelineProgress], None]


class PipelineDriver:
    """Runs cache lookup, artwork resolution and overlays for every game.

    Games are processed one at a time, user by user. Any ``AppError`` raised
    while processing a game aborts the whole run.
    """

    def __init__(
        self,
        cache: ImageCache,
        compositor: OverlayCompositor,
        overlays: OverlaySet,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Initialize the pipeline driver.

        Args:
            cache: Grid image cache used to find or fetch artwork
            compositor: Overlay compositor
            overlays: Overlays loaded once for the whole run
            on_progress: Called after every game with the current progress
        """
        self.cache = cache
        self.compositor = compositor
        self.overlays = overlays
        self.on_progress = on_progress

    async def run(self, users: Sequence[LibraryUser]) -> PipelineReport:
        """Process every game of every user.

        Args:
            users: Users with the games to process

        Returns:
            Report of games without artwork and games found only by search

        Raises:
            AppError: On the first source, storage or decode failure
        """
        report = PipelineReport()

        for library_user in users:
            user = library_user.user
            total = len(library_user.games)
            log.info("Processing games for user", user=user.name, total=total)

            for index, game in enumerate(library_user.games, start=1):
                outcome = await self.cache.resolve_or_fetch(game, user.grid_dir)
                report.processed += 1

                if not outcome.found:
                    report.not_found.append(game)
                else:
                    if outcome.low_confidence:
                        report.search_found.append(game)
                    await self.compositor.apply_overlay(outcome.game, self.overlays)

                self._emit(PipelineProgress(
                    user_name=user.name,
                    current=index,
                    total=total,
                    status=f"Processing {game.display_name} ({index}/{total})",
                ))

        log.info(
            "Pipeline finished",
            processed=report.processed,
            not_found=len(report.not_found),
            search_found=len(report.search_found),
        )
        return report

    def _emit(self, progress: PipelineProgress) -> None:
        log.debug("Progress", user=progress.user_name, percent=progress.percent, status=progress.status)
        if self.on_progress is not None:
            self.on_progress(progress)
