"""Catalog Client for pluginsync.

Talks to the two faces of the plugin directory:
- the SVN repository (HTML directory listing over HTTP, ``svn log`` for changes)
- the JSON metadata API (one document per plugin slug)
"""

from __future__ import annotations

import logging
import random
import re
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import requests

from ..config import DEFAULT_API_URL, DEFAULT_SVN_URL
from ..errors import RemoteQueryFailure

LISTING_RE = re.compile(r'<li><a href="([^/]+)/">([^/]+)/</a></li>')


def parse_listing(html: str) -> List[str]:
    """Extract plugin slugs from the SVN root directory listing."""
    return [match.group(1) for match in LISTING_RE.finditer(html)]


@dataclass
class MetadataResponse:
    """Raw metadata response. A 404 still carries a usable JSON body."""
    slug: str
    status_code: int
    body: str

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class CatalogClient:
    """Client for the plugin directory.

    All remote failures surface as RemoteQueryFailure. There is no retry here.
    """

    def __init__(
        self,
        svn_url: str = DEFAULT_SVN_URL,
        api_url: str = DEFAULT_API_URL,
        user_agents: Optional[Sequence[str]] = None,
        timeout_s: float = 30,
        svn_binary: str = "svn",
    ):
        self.svn_url = svn_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout_s = timeout_s
        self.svn_binary = svn_binary
        self.logger = logging.getLogger("CatalogClient")

        agents = list(user_agents or [])
        random.shuffle(agents)
        self.user_agent = agents[0] if agents else "pluginsync"

        self._session = requests.Session()
        self._session.headers["User-Agent"] = self.user_agent

    @classmethod
    def from_settings(cls, settings) -> "CatalogClient":
        return cls(
            svn_url=settings.svn_url,
            api_url=settings.api_url,
            user_agents=settings.user_agents,
            timeout_s=settings.timeout_s,
        )

    def _get(self, url: str) -> requests.Response:
        try:
            return self._session.get(url, timeout=self.timeout_s)
        except requests.exceptions.ConnectionError:
            raise RemoteQueryFailure(f"Cannot connect to {url}")
        except requests.exceptions.Timeout:
            raise RemoteQueryFailure(f"Request to {url} timed out")
        except requests.exceptions.RequestException as e:
            raise RemoteQueryFailure(f"Request failed: {e}")

    # --- Listing ---

    def fetch_listing_page(self) -> str:
        """Fetch the raw HTML listing of every plugin directory."""
        url = self.svn_url + "/"
        response = self._get(url)
        if not response.ok:
            raise RemoteQueryFailure(
                f"Unable to download plugin list: HTTP {response.status_code}"
            )
        return response.text

    def fetch_full_listing(self) -> List[str]:
        return parse_listing(self.fetch_listing_page())

    # --- Metadata ---

    def fetch_entry_metadata(self, slug: str) -> MetadataResponse:
        url = f"{self.api_url}/{slug}.json"
        response = self._get(url)
        if response.ok or response.status_code == 404:
            return MetadataResponse(slug=slug, status_code=response.status_code, body=response.text)
        raise RemoteQueryFailure(
            f"Metadata request for '{slug}' failed: HTTP {response.status_code}"
        )

    # --- Change log ---

    def fetch_change_log(self, from_revision: Union[int, str], to_revision: Union[int, str] = "HEAD") -> str:
        """Run ``svn log -v -q`` over ``from_revision:to_revision``."""
        return self._svn_log(f"{from_revision}:{to_revision}")

    def fetch_head_log(self) -> str:
        return self._svn_log("HEAD")

    def _svn_log(self, revision_range: str) -> str:
        cmd = [self.svn_binary, "log", "-v", "-q", self.svn_url, "-r", revision_range]
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise RemoteQueryFailure(f"'{self.svn_binary}' executable not found")
        except OSError as e:
            raise RemoteQueryFailure(f"Unable to run svn log: {e}")

        if completed.returncode != 0:
            raise RemoteQueryFailure(
                f"Unable to get list of plugins to update: {completed.stderr.strip()}"
            )
        return completed.stdout
