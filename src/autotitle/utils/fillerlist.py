"""
AnimeFillerList client: marks filler episodes from a show's episode table.

A map file target may carry a ``filler_url`` pointing at
``https://www.animefillerlist.com/shows/<slug>``. The show page lists every
episode in a table whose rows are classed ``filler``, ``mostly_filler``,
``mixed_canon/filler`` or ``canon``; every row that mentions filler and does
not start as canon counts as filler.
"""
import dataclasses
import re
from typing import Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

from autotitle.errors import ProviderError
from autotitle.models import Media
from autotitle.utils import constants
from autotitle.utils.logger import LogLevel, log

PROVIDER_NAME = "animefillerlist"
SERVICE_NAME = "AnimeFillerList"
SLUG_REGEX = re.compile(r"animefillerlist\.com/shows/([a-z0-9-]+)")
_LEADING_INT = re.compile(r"\s*(\d+)")


def matches_url(url: str) -> bool:
    return "animefillerlist.com/" in (url or "")


def extract_slug(url: str) -> str:
    m = SLUG_REGEX.search(url or "")
    if not m:
        raise ValueError(f"could not extract show slug from URL: {url}")
    return m.group(1)


def _is_filler_row(classes: List[str]) -> bool:
    joined = " ".join(classes)
    return "filler" in joined and not joined.strip().startswith("canon")


def parse_filler_html(text: str) -> List[int]:
    """Episode numbers of every filler row, in page order and without repeats."""
    soup = BeautifulSoup(text, "html.parser")
    fillers = []
    seen = set()
    for row in soup.find_all("tr"):
        if not _is_filler_row(row.get("class") or []):
            continue
        for cell in row.find_all("td", recursive=False):
            if "Number" not in " ".join(cell.get("class") or []):
                continue
            m = _LEADING_INT.match(cell.get_text())
            if m:
                number = int(m.group(1))
                if number not in seen:
                    seen.add(number)
                    fillers.append(number)
            break
    return fillers


def apply_fillers(media: Media, numbers: Iterable[int]) -> Media:
    """Copy of ``media`` whose listed episodes are flagged as filler."""
    wanted = set(numbers)
    if not wanted:
        return media
    episodes = [
        dataclasses.replace(ep, is_filler=True) if ep.number in wanted and not ep.is_filler else ep
        for ep in media.episodes
    ]
    return dataclasses.replace(media, episodes=episodes)


class FillerListClient:
    """Fetches filler episode numbers from animefillerlist.com show pages."""

    def __init__(
            self,
            base_url: str = constants.FILLER_LIST_BASE_URL,
            timeout: int = constants.DEFAULT_TIMEOUT,
            session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_fillers(self, url_or_slug: str) -> List[int]:
        """
        Return the filler episode numbers of a show.

        A show the site does not know (HTTP 404) has no fillers.

        Raises:
            ValueError: when no slug can be extracted from a URL.
            ProviderError: on any other HTTP failure.
        """
        slug = extract_slug(url_or_slug) if "/" in url_or_slug else url_or_slug.strip()
        url = f"{self.base_url}/{slug}"
        log("filler.fetch", LogLevel.DEBUG, provider=PROVIDER_NAME, slug=slug)
        try:
            response = self.session.get(url, headers={"User-Agent": constants.USER_AGENT}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProviderError(SERVICE_NAME, 0, f"request failed: {e}")

        if response.status_code == 404:
            log("filler.not_found", LogLevel.WARN, provider=PROVIDER_NAME, slug=slug)
            return []
        if response.status_code != 200:
            raise ProviderError(SERVICE_NAME, response.status_code, f"failed to fetch filler list for {slug}")

        fillers = parse_filler_html(response.text)
        log("filler.fetched", LogLevel.INFO, provider=PROVIDER_NAME, slug=slug, fillers=len(fillers))
        return fillers
