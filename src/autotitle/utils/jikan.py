"""
Jikan (MyAnimeList) API client for series and episode metadata.

Builds a Media object from a MyAnimeList URL or id: the series titles and the
full, paginated episode list including Jikan's filler flag. Requests are paced
by a fixed delay derived from the configured rate limit; failed requests are
reported as ProviderError and never retried.
"""
import re
import threading
import time
from typing import Any, Dict, List, Optional

import requests

from autotitle.errors import ProviderError
from autotitle.models import Episode, Media
from autotitle.utils import constants
from autotitle.utils.logger import LogLevel, log

PROVIDER_NAME = "mal"
MAL_URL_REGEX = re.compile(r"myanimelist\.(?:net|com)/anime/(\d+)")


def matches_url(url: str) -> bool:
    return bool(MAL_URL_REGEX.search(url or ""))


def extract_mal_id(url: str) -> str:
    """Return the numeric MAL id from an anime URL (a bare id is passed through)."""
    if url and url.strip().isdigit():
        return url.strip()
    m = MAL_URL_REGEX.search(url or "")
    if not m:
        raise ValueError(f"could not extract MAL ID from URL: {url}")
    return m.group(1)


class JikanClient:
    """Client for the Jikan v4 REST API."""

    def __init__(
            self,
            base_url: str = constants.JIKAN_BASE_URL,
            rate_limit: float = constants.DEFAULT_RATE_LIMIT,
            timeout: int = constants.DEFAULT_TIMEOUT,
            session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.delay = 1.0 / rate_limit if rate_limit > 0 else 0.0
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache: Dict[str, Media] = {}
        self._cache_lock = threading.Lock()

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET an endpoint and return the decoded JSON body."""
        if self.delay:
            time.sleep(self.delay)

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise ProviderError("Jikan", 0, f"request failed: {e}")

        if response.status_code != 200:
            raise ProviderError("Jikan", response.status_code, f"GET {endpoint} failed")
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Jikan", response.status_code, f"invalid JSON response: {e}")

    def fetch_episodes(self, mal_id: str) -> List[Episode]:
        episodes = []
        page = 1
        while True:
            data = self._make_request(f"anime/{mal_id}/episodes", {"page": page})
            for item in data.get("data") or []:
                episodes.append(Episode(
                    number=int(item["mal_id"]),
                    title=item.get("title") or "",
                    is_filler=bool(item.get("filler")),
                    air_date=item.get("aired"),
                ))
            if not (data.get("pagination") or {}).get("has_next_page"):
                break
            page += 1
        return episodes

    def fetch_media(self, url_or_id: str) -> Media:
        """
        Fetch series info and every episode for a MAL anime.

        Results are cached per id for the lifetime of the client.

        Raises:
            ValueError: when no MAL id can be extracted.
            ProviderError: on any HTTP or decoding failure.
        """
        mal_id = extract_mal_id(url_or_id)
        with self._cache_lock:
            if mal_id in self._cache:
                return self._cache[mal_id]

        log("provider.fetch", LogLevel.DEBUG, provider=PROVIDER_NAME, id=mal_id)
        info = self._make_request(f"anime/{mal_id}").get("data") or {}
        episodes = self.fetch_episodes(mal_id)

        media = Media(
            id=mal_id,
            provider=PROVIDER_NAME,
            title=info.get("title") or "",
            title_en=info.get("title_english") or "",
            title_jp=info.get("title_japanese") or "",
            episode_count=int(info.get("episodes") or 0),
            episodes=episodes,
        )
        log(
            "provider.fetched",
            LogLevel.INFO,
            provider=PROVIDER_NAME,
            id=mal_id,
            title=media.title,
            episodes=len(episodes),
            fillers=sum(1 for ep in episodes if ep.is_filler),
        )

        with self._cache_lock:
            self._cache[mal_id] = media
        return media
