"""Discovery of the local Steam installation, its users and their games."""

import json
import os
import re
from pathlib import Path

import httpx
import structlog

from ..models.game import Game, SteamUser
from .errors import ConfigurationError, LibraryError
from .filesystem import FileSystemService
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()

PROFILE_GAMES_URL = "http://steamcommunity.com/profiles/{steam_id64}/games?tab=all"

# Steam answers 200 OK for missing profiles and says so in the page.
PROFILE_ERROR_MESSAGE = "The specified profile could not be found."

PERSONA_NAME_PATTERN = re.compile(r'"PersonaName"\s*"(.+?)"')
PROFILE_GAME_PATTERN = re.compile(r'\{"appid":\s*(\d+),\s*"name":\s*"(.+?)"')
# sharedconfig.vdf: "appid" { ... "tags" { "0" "category" ... } }
SHARED_CONFIG_GAME_PATTERN = re.compile(r'"([0-9]+)"\s*{[^}]+?"tags"\s*{([^}]+?)}')
SHARED_CONFIG_TAG_PATTERN = re.compile(r'"[0-9]+"\s*"(.+?)"')


def candidate_installations() -> list[Path]:
    """Places where Steam is usually installed, most likely first."""
    home = Path.home()
    candidates = [
        home / ".local" / "share" / "Steam",
        home / ".steam" / "steam",
    ]
    for variable in ("ProgramFiles(x86)", "ProgramFiles"):
        program_files = os.environ.get(variable)
        if program_files:
            candidates.append(Path(program_files) / "Steam")
    return candidates


def _decode_json_string(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


class SteamLibraryService:
    """Reads users from the Steam installation and their games from Steam."""

    def __init__(self, http_client: HttpClientService, filesystem: FileSystemService) -> None:
        self.http_client = http_client
        self.filesystem = filesystem

    def find_installation(self, override: Path | None = None) -> Path:
        """Locate the Steam installation directory (not a library folder).

        Args:
            override: Directory given by the user, used as-is when it exists

        Returns:
            The Steam installation directory

        Raises:
            ConfigurationError: If no installation can be found
        """
        if override is not None:
            if override.is_dir():
                return override
            raise ConfigurationError(
                f"Steam directory does not exist: {override}",
                setting="steam_directory",
                current_value=str(override),
                expected="a valid Steam directory, or empty for auto detection",
            )

        for candidate in candidate_installations():
            if candidate.is_dir():
                log.info("Steam installation found", path=str(candidate))
                return candidate

        raise ConfigurationError(
            "Could not find Steam installation folder.",
            setting="steam_directory",
            expected="pass the Steam folder as an argument",
        )

    def get_users(self, installation: Path) -> list[SteamUser]:
        """Return every user that has logged in to this installation.

        User directories without a ``localconfig.vdf`` are skipped. The grid
        directory of each user is created if it is missing.

        Raises:
            LibraryError: If the installation has no userdata directory
        """
        userdata = installation / "userdata"
        if not userdata.is_dir():
            raise LibraryError(f"No userdata directory in {installation}")

        users: list[SteamUser] = []
        for user_dir in sorted(userdata.iterdir(), key=lambda entry: entry.name):
            if not user_dir.is_dir() or not user_dir.name.isdigit():
                continue

            config_file = user_dir / "config" / "localconfig.vdf"
            if not config_file.is_file():
                log.debug("Skipping user without localconfig", user_dir=str(user_dir))
                continue

            config_text = config_file.read_text(encoding="utf-8", errors="replace")
            match = PERSONA_NAME_PATTERN.search(config_text)
            name = match.group(1) if match else user_dir.name

            user = SteamUser(name=name, steam_id32=user_dir.name, directory=user_dir)
            self.filesystem.ensure_directory(user.grid_dir)
            # Some Linux builds of Steam ship the grid dir without the executable bit.
            try:
                user.grid_dir.chmod(0o777)
            except OSError as e:
                log.warning("Could not change grid directory permissions", path=str(user.grid_dir), error=str(e))
            users.append(user)

        log.info("Steam users found", count=len(users), names=[user.name for user in users])
        return users

    async def get_games(self, user: SteamUser) -> list[Game]:
        """Return the user's games from the public profile, tagged with local categories.

        Raises:
            LibraryError: If the profile cannot be fetched or is not public
        """
        names = await self._fetch_profile_games(user)
        tags = self._read_local_tags(user)

        games: list[Game] = []
        for game_id, name in names.items():
            games.append(Game(game_id=game_id, name=name, tags=tuple(tags.pop(game_id, []))))
        # Categorized locally but missing from the profile: no name available.
        for game_id, game_tags in tags.items():
            games.append(Game(game_id=game_id, tags=tuple(game_tags)))

        log.info("Games loaded", user=user.name, count=len(games))
        return games

    async def _fetch_profile_games(self, user: SteamUser) -> dict[str, str]:
        url = PROFILE_GAMES_URL.format(steam_id64=user.steam_id64)
        try:
            response = await self.http_client.get(url)
        except httpx.TransportError as e:
            raise LibraryError(
                "Could not load the Steam profile.",
                user=user.name,
                url=url,
                original_error=e,
            ) from e

        if response.status_code >= 400:
            raise LibraryError(
                "Profile not found. Make sure you have a public Steam profile.",
                user=user.name,
                url=url,
            )
        profile = response.text
        if PROFILE_ERROR_MESSAGE in profile:
            raise LibraryError("Profile not found.", user=user.name, url=url)

        names: dict[str, str] = {}
        for game_id, raw_name in PROFILE_GAME_PATTERN.findall(profile):
            names.setdefault(game_id, _decode_json_string(raw_name))
        return names

    def _read_local_tags(self, user: SteamUser) -> dict[str, list[str]]:
        shared_config = user.directory / "7" / "remote" / "sharedconfig.vdf"
        if not shared_config.is_file():
            log.debug("No sharedconfig.vdf, games have no categories", user=user.name)
            return {}

        text = shared_config.read_text(encoding="utf-8", errors="replace")
        tags: dict[str, list[str]] = {}
        for game_id, tags_text in SHARED_CONFIG_GAME_PATTERN.findall(text):
            tags.setdefault(game_id, []).extend(SHARED_CONFIG_TAG_PATTERN.findall(tags_text))
        return tags
