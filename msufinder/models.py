"""Dataclasses for bulletins, pinned hosts, fetches, and download links."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit

from requests.structures import CaseInsensitiveDict

from .errors import InvalidIdentifier, MalformedResponse

_BULLETIN_RE = re.compile(r"ms\d\d-\d\d\d", re.ASCII)

# e.g. http://download.microsoft.com/download/9/A/4/.../Windows6.1-KB3087985-x86.msu
_DOWNLOAD_LINK_RE = re.compile(r"^https?://download\.microsoft\.com/download/")


@dataclass(frozen=True)
class BulletinId:
    """A Microsoft security bulletin number, e.g. "ms15-100"."""

    value: str

    def __post_init__(self):
        if not _BULLETIN_RE.fullmatch(self.value):
            raise InvalidIdentifier(self.value)

    @classmethod
    def parse(cls, raw: str) -> BulletinId:
        """Validate *raw* (any case) and return the lowercase bulletin number."""
        if not isinstance(raw, str) or not _BULLETIN_RE.fullmatch(raw.lower()):
            raise InvalidIdentifier(str(raw))
        return cls(raw.lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class HostTarget:
    """An IP address pinned to the virtual host it serves."""

    address: str
    vhost: str
    port: int = 443

    @property
    def base_url(self) -> str:
        if self.port == 443:
            return f"https://{self.address}"
        return f"https://{self.address}:{self.port}"


@dataclass(frozen=True)
class FetchRequest:
    """One logical HTTP request against a pinned host."""

    target: HostTarget
    path: str
    method: str = "GET"
    params: tuple[tuple[str, str], ...] = ()

    @property
    def url(self) -> str:
        return self.target.base_url + self.path


@dataclass
class FetchResult:
    """Status, headers, and raw body of a completed request."""

    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def location(self) -> str | None:
        return self.headers.get("Location") or None


@dataclass(frozen=True)
class ProductCatalogEntry:
    """One option of the bulletin search page's product dropdown."""

    value: str  # e.g. "10401"
    label: str  # e.g. "Internet Explorer 11"


@dataclass(frozen=True)
class DownloadLink:
    """An absolute URL to a patch binary on download.microsoft.com."""

    url: str

    @staticmethod
    def matches(href: str) -> bool:
        return bool(_DOWNLOAD_LINK_RE.match(href))

    @classmethod
    def parse(cls, href: str) -> DownloadLink:
        href = href.strip()
        if not cls.matches(href):
            raise MalformedResponse(f"Not a download link: {href}")
        try:
            parts = urlsplit(href)
        except ValueError as e:
            raise MalformedResponse(f"Unable to parse URI: {href}") from e
        if not parts.path.startswith("/download/"):
            raise MalformedResponse(f"Not a download link: {href}")
        return cls(href)

    def __str__(self) -> str:
        return self.url


class SearchEngine(str, Enum):
    CATALOG = "catalog"
    WEBSEARCH = "websearch"


@dataclass
class RunOptions:
    """Everything a single run needs, as gathered from the command line."""

    keyword: str
    search_engine: SearchEngine = SearchEngine.CATALOG
    link_filter: re.Pattern | None = None
    dry_run: bool = False
    api_key: str | None = None
    search_engine_id: str | None = None


@dataclass
class RunReport:
    """Bulletins found by the search and the links resolved from them."""

    keyword: str
    bulletins: list[BulletinId] = field(default_factory=list)
    links: list[DownloadLink] = field(default_factory=list)
    failed: list[BulletinId] = field(default_factory=list)
