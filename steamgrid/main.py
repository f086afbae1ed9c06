"""Main entry point for the steamgrid command.

This module provides:
- Command-line argument parsing
- Service construction and dependency injection
- Running the pipeline and printing the final report
"""

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import structlog

from steamgrid import __version__
from steamgrid.models import AppConfig, LibraryUser, PipelineProgress, PipelineReport
from steamgrid.services.artwork_sources import ArtworkSourceResolver
from steamgrid.services.config import VALID_LOG_LEVELS, ConfigurationService
from steamgrid.services.errors import AppError, LibraryError, get_error_service
from steamgrid.services.filesystem import FileSystemService
from steamgrid.services.http_client import HttpClientService
from steamgrid.services.image_cache import ImageCache
from steamgrid.services.logging import setup_logging
from steamgrid.services.overlays import OverlayCompositor
from steamgrid.services.pipeline import PipelineDriver
from steamgrid.services.steam_library import SteamLibraryService

log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services.

    Services are created lazily so that a bad configuration fails on first
    use, inside the error handling of ``main``.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._http_client: HttpClientService | None = None
        self._filesystem: FileSystemService | None = None

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(
                timeout=self.config.request_timeout,
                rate_limit_delay=self.config.request_delay,
            )
        return self._http_client

    @property
    def filesystem(self) -> FileSystemService:
        if self._filesystem is None:
            self._filesystem = FileSystemService()
        return self._filesystem

    def library(self) -> SteamLibraryService:
        return SteamLibraryService(http_client=self.http_client, filesystem=self.filesystem)

    def compositor(self) -> OverlayCompositor:
        return OverlayCompositor(filesystem=self.filesystem, jpeg_quality=self.config.jpeg_quality)

    def image_cache(self) -> ImageCache:
        resolver = ArtworkSourceResolver(
            http_client=self.http_client,
            primary_template=self.config.primary_cdn_template,
            secondary_template=self.config.secondary_cdn_template,
            search_template=self.config.search_url_template,
        )
        return ImageCache(resolver=resolver, filesystem=self.filesystem)

    async def cleanup(self) -> None:
        """Close network connections."""
        if self._http_client is not None:
            await self._http_client.close()


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        steam_dir: Path | None,
        overlays: Path | None,
        config: Path | None,
        log_level: str | None,
        log_dir: Path | None,
        quiet: bool = False,
    ) -> None:
        self.steam_dir: Path | None = steam_dir
        self.overlays: Path | None = overlays
        self.config: Path | None = config
        self.log_level: str | None = log_level
        self.log_dir: Path | None = log_dir
        self.quiet: bool = quiet


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="steamgrid",
        description="Download Steam grid images for every game and apply category overlays",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  steamgrid                              Auto-detect Steam and process all users
  steamgrid ~/.steam/steam               Use a specific Steam directory
  steamgrid --overlays ./overlays        Use overlays from another folder
        """,
    )

    _ = parser.add_argument(
        "steam_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Steam installation directory (default: auto-detect)",
    )
    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    _ = parser.add_argument(
        "--overlays",
        type=Path,
        default=None,
        help="Directory of overlay images named after categories",
    )
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/steamgrid/config.json)",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=VALID_LOG_LEVELS,
        default=None,
        help="Set the logging level (default: from config, INFO)",
    )
    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: console only)",
    )
    _ = parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not log to the terminal; progress and the report are still printed",
    )

    ns = parser.parse_args(argv)
    return ParsedArgs(
        steam_dir=ns.steam_dir,
        overlays=ns.overlays,
        config=ns.config,
        log_level=ns.log_level,
        log_dir=ns.log_dir,
        quiet=ns.quiet,
    )


def apply_overrides(config: AppConfig, args: ParsedArgs) -> AppConfig:
    """Command-line values take precedence over the configuration file."""
    if args.steam_dir is not None:
        config = replace(config, steam_directory=args.steam_dir)
    if args.overlays is not None:
        config = replace(config, overlays_directory=args.overlays)
    if args.log_level is not None:
        config = replace(config, log_level=args.log_level)
    return config


def print_progress(progress: PipelineProgress) -> None:
    print(f"[{progress.percent:3d}%] {progress.status}", flush=True)


async def run(context: ApplicationContext) -> PipelineReport:
    """Load overlays and the library, then run the pipeline.

    Raises:
        AppError: On the first fatal error
    """
    compositor = context.compositor()
    print("Loading overlays...")
    overlays = compositor.load_overlays(context.config.overlays_directory)
    if len(overlays) == 0:
        print(
            "No category overlays found. You can put overlay images in the folder "
            f"'{context.config.overlays_directory}', where the filename is the game category.\n"
            "Continuing without overlays..."
        )

    library = context.library()
    print("Looking for Steam directory...")
    installation = library.find_installation(context.config.steam_directory)

    print("Loading users...")
    users = library.get_users(installation)
    if not users:
        raise LibraryError("No users found at Steam/userdata. Have you used Steam before in this computer?")

    library_users: list[LibraryUser] = []
    for user in users:
        print(f"Loading games for {user.name}")
        library_users.append(LibraryUser(user=user, games=await library.get_games(user)))

    driver = PipelineDriver(
        cache=context.image_cache(),
        compositor=compositor,
        overlays=overlays,
        on_progress=print_progress,
    )
    return await driver.run(library_users)


async def run_with_cleanup(context: ApplicationContext) -> PipelineReport:
    try:
        return await run(context)
    finally:
        await context.cleanup()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    config_service = ConfigurationService(config_path=args.config)
    config = apply_overrides(config_service.load_config(), args)

    _ = setup_logging(log_level=config.log_level, log_dir=args.log_dir, console=not args.quiet)
    log.info("Starting steamgrid", version=__version__, config_path=str(config_service.config_path))

    context = ApplicationContext(config)

    try:
        report = asyncio.run(run_with_cleanup(context))
        print()
        print(report.format_message())
        exit_code = 0

    except KeyboardInterrupt:
        log.info("Interrupted by user")
        exit_code = 130

    except Exception as e:
        error_service = get_error_service()
        friendly = error_service.handle_error(e, operation="run", component="main")
        print("An unexpected error occurred:", file=sys.stderr)
        print(error_service.create_user_message(friendly), file=sys.stderr)
        if not isinstance(e, AppError):
            log.error("Unhandled exception", error=str(e), exc_info=True)
        exit_code = 1

    log.info("Exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
