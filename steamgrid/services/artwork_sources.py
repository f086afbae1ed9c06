"""Multi-source artwork lookup with fallback ordering."""

import json
import re
from urllib.parse import quote_plus

import httpx
import structlog
from bs4 import BeautifulSoup

from ..models.config import PRIMARY_CDN_TEMPLATE, SEARCH_URL_TEMPLATE, SECONDARY_CDN_TEMPLATE
from ..models.game import ArtworkResult, ArtworkSource
from .errors import SourceError
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()

SEARCH_QUERY_PREFIX = "steam grid OR header "

HEADER_ASPECT_RATIO = 460 / 215
HEADER_ASPECT_TOLERANCE = 0.1
HEADER_MIN_WIDTH = 230

# Search results are JSON, but matched loosely as text: a 460x215 result is
# the size of a Steam header image.
SEARCH_RESULT_PATTERN = re.compile(
    r'"width":\s*"460",\s*"height":\s*"215",[^}]+"unescapedUrl":\s*"(.+?)"'
)


def extract_search_candidate(text: str) -> str | None:
    """Find the first plausible grid image URL in a search result page.

    Args:
        text: Raw body of the search response

    Returns:
        Candidate image URL, or None when nothing usable was found
    """
    match = SEARCH_RESULT_PATTERN.search(text)
    if match:
        raw_url = match.group(1)
        try:
            return json.loads(f'"{raw_url}"')
        except ValueError:
            return raw_url

    # HTML result pages: the first absolute image declared with a header shape.
    soup = BeautifulSoup(text, "html.parser")
    for img in soup.find_all("img"):
        src = img.get("src")
        if not isinstance(src, str) or not src.startswith(("http://", "https://")):
            continue
        if _has_header_shape(img.get("width"), img.get("height")):
            return src

    return None


def _has_header_shape(width: object, height: object) -> bool:
    """True for declared sizes close to the 460x215 Steam header."""
    try:
        w = int(str(width))
        h = int(str(height))
    except ValueError:
        return False
    if w < HEADER_MIN_WIDTH or h <= 0:
        return False
    return abs(w / h - HEADER_ASPECT_RATIO) <= HEADER_ASPECT_TOLERANCE


class ArtworkSourceResolver:
    """Tries each artwork source in priority order until one has an image.

    Order: primary CDN, secondary CDN, then a best-effort search by name.
    A transport failure or a 404 moves on to the next source; any other
    status >= 400 raises ``SourceError`` and no later source is tried.
    """

    def __init__(
        self,
        http_client: HttpClientService,
        primary_template: str = PRIMARY_CDN_TEMPLATE,
        secondary_template: str = SECONDARY_CDN_TEMPLATE,
        search_template: str = SEARCH_URL_TEMPLATE,
    ) -> None:
        self.http_client = http_client
        self.primary_template = primary_template
        self.secondary_template = secondary_template
        self.search_template = search_template

    async def resolve(self, game_id: str, name: str = "") -> ArtworkResult | None:
        """Resolve artwork for a game.

        Args:
            game_id: Steam app id
            name: Display name, possibly empty; only used for the search step

        Returns:
            The first artwork found, or None if no source has one

        Raises:
            SourceError: If a source answers with an unexpected error status
        """
        cdn_sources = (
            (ArtworkSource.PRIMARY_CDN, self.primary_template),
            (ArtworkSource.SECONDARY_CDN, self.secondary_template),
        )
        for source, template in cdn_sources:
            url = template.format(game_id=game_id)
            data = await self._try_download(url)
            if data is not None:
                log.info("Artwork found", game_id=game_id, source=source.value, url=url)
                return ArtworkResult(data=data, source=source, url=url)

        if not name:
            log.info("Artwork not found and no name to search for", game_id=game_id)
            return None

        candidate_url = await self._search_candidate(name)
        if candidate_url:
            data = await self._try_download(candidate_url)
            if data is not None:
                log.info(
                    "Artwork found by search",
                    game_id=game_id,
                    name=name,
                    url=candidate_url,
                )
                return ArtworkResult(data=data, source=ArtworkSource.SEARCH, url=candidate_url)

        log.info("Artwork not found", game_id=game_id, name=name)
        return None

    async def _search_candidate(self, name: str) -> str | None:
        url = self.search_template.format(query=quote_plus(SEARCH_QUERY_PREFIX + name))
        response = await self._fetch(url)
        if response is None:
            return None

        candidate = extract_search_candidate(response.text)
        log.debug("Search finished", name=name, candidate=candidate)
        return candidate

    async def _try_download(self, url: str) -> bytes | None:
        response = await self._fetch(url)
        if response is None:
            return None
        return response.content

    async def _fetch(self, url: str) -> httpx.Response | None:
        """Fetch a URL once, mapping "nothing here" answers to None."""
        try:
            response = await self.http_client.get(url)
        except httpx.TransportError as e:
            log.info("Artwork source unreachable", url=url, error=str(e))
            return None
        except httpx.InvalidURL as e:
            # Search results can point at anything, including malformed URLs.
            log.info("Skipping malformed artwork URL", url=url, error=str(e))
            return None

        if response.status_code == 404:
            # Some apps don't have an image and there's nothing we can do.
            log.debug("Artwork source has no image", url=url)
            return None
        if response.status_code >= 400:
            raise SourceError(
                f"Failed to download image {url}: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response
