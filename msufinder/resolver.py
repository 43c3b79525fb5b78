"""Bulletin → download link resolution.

An advisory links to one download details page per affected product
(a "family" link).  Each of those pages links to a confirmation page, and
the confirmation page finally carries the download.microsoft.com links.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import SplitResult, urljoin, urlsplit

from .config import (
    ADVISORY_NOT_FOUND,
    ADVISORY_PATH,
    CONFIRMATION_BASE_URL,
    CONFIRMATION_MARKER,
    MICROSOFT,
    TECHNET,
)
from .errors import (
    AdvisoryNotFound,
    InvalidIdentifier,
    MalformedResponse,
    NetworkFatal,
    NoConfirmationLink,
    NoLinksFound,
)
from .fetcher import fetch
from .models import BulletinId, DownloadLink, FetchResult
from .patterns import apply_rule, parse_html, select_rule

logger = logging.getLogger(__name__)

_FAMILY_LINK_RE = re.compile(
    r"https://www\.microsoft\.com/downloads/details\.aspx\?familyid=",
    re.IGNORECASE,
)


def request_uri(url: str | SplitResult) -> str:
    """Path plus query string of *url*, as sent on the request line."""
    parts = urlsplit(url) if isinstance(url, str) else url
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def has_advisory(res: FetchResult) -> bool:
    return ADVISORY_NOT_FOUND not in res.text


def extract_family_links(html: str) -> list[SplitResult]:
    """Return the product download details links found on an advisory page."""
    soup = parse_html(html)
    rule = select_rule(soup)
    if rule is None:
        return []
    logger.debug("Advisory layout: %s", rule.name)

    links: dict[str, SplitResult] = {}
    for anchor in apply_rule(soup, rule):
        href = anchor.get("href")
        if not href or not _FAMILY_LINK_RE.search(href):
            continue
        try:
            parts = urlsplit(href.strip())
        except ValueError:
            logger.error("Unable to parse URI: %s", href)
            continue
        links.setdefault(parts.geturl(), parts)
    return list(links.values())


def find_confirmation_url(html: str) -> str | None:
    soup = parse_html(html)
    for anchor in soup.find_all("a", href=True):
        if CONFIRMATION_MARKER in anchor["href"]:
            return urljoin(CONFIRMATION_BASE_URL, anchor["href"])
    return None


def extract_download_links(
    html: str, pattern: re.Pattern | None = None
) -> list[DownloadLink]:
    """Return unique download.microsoft.com links, optionally filtered."""
    soup = parse_html(html)
    links: list[DownloadLink] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if not DownloadLink.matches(href):
            continue
        try:
            links.append(DownloadLink.parse(href))
        except MalformedResponse as e:
            logger.error("%s", e)

    links = list(dict.fromkeys(links))
    if pattern is not None:
        links = [link for link in links if pattern.search(link.url)]
    return links


class LinkResolver:
    """Collects patch download links for one bulletin at a time."""

    def download_advisory(self, bulletin: BulletinId) -> FetchResult:
        res = fetch(TECHNET, ADVISORY_PATH.format(bulletin=bulletin))
        if not has_advisory(res):
            raise AdvisoryNotFound(f"The advisory cannot be found: {bulletin}")
        return res

    def download_page(self, link: SplitResult) -> FetchResult:
        """Fetch a family download page, following one redirect if present."""
        res = fetch(MICROSOFT, request_uri(link))
        if res.location:
            return fetch(MICROSOFT, request_uri(res.location))
        return res

    def confirmation_links(
        self, page: FetchResult, pattern: re.Pattern | None = None
    ) -> list[DownloadLink]:
        url = find_confirmation_url(page.text)
        if url is None:
            raise NoConfirmationLink("Unable to find a confirmation link")
        res = fetch(MICROSOFT, request_uri(url))
        return extract_download_links(res.text, pattern)

    def resolve(
        self, identifier: BulletinId | str, pattern: re.Pattern | None = None
    ) -> list[DownloadLink]:
        """Return the download links for *identifier*.

        Expected dead ends (bad number, missing advisory, no links) are
        logged and give an empty list. NetworkFatal while fetching the
        advisory propagates; while following a family link it only skips
        that link.
        """
        try:
            if isinstance(identifier, BulletinId):
                bulletin = identifier
            else:
                bulletin = BulletinId.parse(identifier)
            advisory = self.download_advisory(bulletin)
            family_links = extract_family_links(advisory.text)
            if not family_links:
                raise NoLinksFound(
                    "Unable to find download.microsoft.com links. "
                    "Please manually navigate to the page."
                )
        except (InvalidIdentifier, AdvisoryNotFound, NoLinksFound) as e:
            logger.error("%s", e)
            return []

        logger.debug("Found %d affected products for this advisory.", len(family_links))

        collected: list[DownloadLink] = []
        for link in family_links:
            try:
                page = self.download_page(link)
                collected.extend(self.confirmation_links(page, pattern))
            except NoConfirmationLink as e:
                logger.error("%s on %s", e, link.geturl())
            except NetworkFatal as e:
                logger.error("Skipping %s: %s", link.geturl(), e)

        return list(dict.fromkeys(collected))
