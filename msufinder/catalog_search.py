"""Bulletin search through Technet's product catalog and GetBulletins API.

The Technet bulletin search page carries a dropdown of product names.  A
keyword is first matched against that list; each matching product is then
looked up by its id.  When nothing in the list matches, the keyword is sent
as free text instead, which also covers searching by MSB, KB or CVE number.
"""

from __future__ import annotations

import json
import logging
import re

from .config import (
    BULLETIN_SEARCH_API,
    BULLETIN_SEARCH_PAGE,
    BULLETINS_PER_PAGE,
    CATALOG_ALL_PRODUCTS,
    TECHNET,
)
from .errors import InvalidIdentifier
from .fetcher import fetch
from .models import BulletinId, ProductCatalogEntry
from .patterns import parse_html

logger = logging.getLogger(__name__)

_PRODUCT_OPTIONS = 'div[class="sb-search"] select#productDropdown option'


class CatalogSession:
    """Holds the bulletin search page and its product list for one search."""

    def __init__(self):
        self._landing_page: str | None = None
        self._catalog: list[ProductCatalogEntry] | None = None

    @property
    def landing_page(self) -> str:
        if self._landing_page is None:
            res = fetch(TECHNET, BULLETIN_SEARCH_PAGE)
            self._landing_page = res.text
        return self._landing_page

    def product_catalog(self) -> list[ProductCatalogEntry]:
        """Return the products Technet supports searching by, in page order."""
        if self._catalog is None:
            self._catalog = parse_product_catalog(self.landing_page)
        return self._catalog


def parse_product_catalog(html: str) -> list[ProductCatalogEntry]:
    soup = parse_html(html)
    entries: list[ProductCatalogEntry] = []
    for option in soup.select(_PRODUCT_OPTIONS):
        value = option.get("value")
        if value is None or value == CATALOG_ALL_PRODUCTS:
            continue
        label = option.get_text(strip=True)
        entries.append(ProductCatalogEntry(value=value, label=label))
    return entries


def _keyword_pattern(keyword: str) -> re.Pattern:
    try:
        return re.compile(keyword)
    except re.error:
        logger.debug("%r is not a valid regex, matching it literally", keyword)
        return re.compile(re.escape(keyword))


def _bulletin_ids(data: dict) -> list[BulletinId]:
    found: list[BulletinId] = []
    for entry in data.get("b") or []:
        raw = entry.get("Id") if isinstance(entry, dict) else None
        if not raw:
            continue
        try:
            found.append(BulletinId.parse(raw))
        except InvalidIdentifier:
            logger.error("Skipping unrecognized bulletin id from search: %s", raw)
    return found


class CatalogSearch:
    """Finds bulletin numbers by product name or free-text keyword."""

    def __init__(self, session: CatalogSession | None = None):
        self.session = session if session is not None else CatalogSession()

    def find_identifiers(self, keyword: str) -> list[BulletinId]:
        pattern = _keyword_pattern(keyword)
        matches = [
            entry
            for entry in self.session.product_catalog()
            if pattern.search(entry.label)
        ]

        if not matches:
            logger.debug(
                "Did not find a match from the product list, "
                "attempting a generic search"
            )
            return self.search_by_keyword(keyword)

        logger.debug(
            "Matches from the product list (%d): %s",
            len(matches),
            ", ".join(e.label for e in matches),
        )
        return self.search_by_product_ids([e.value for e in matches])

    def search(self, text: str) -> dict:
        """Query GetBulletins. Returns {} when the body is not JSON."""
        res = fetch(
            TECHNET,
            BULLETIN_SEARCH_API,
            params={
                "searchText": text,
                "sortField": "0",
                "sortOrder": "1",
                "currentPage": "1",
                "bulletinsPerPage": str(BULLETINS_PER_PAGE),
                "locale": "en-us",
            },
        )
        try:
            data = json.loads(res.text)
        except ValueError:
            logger.error("Bulletin search returned a malformed response for %r", text)
            return {}
        return data if isinstance(data, dict) else {}

    def search_by_product_ids(self, ids: list[str]) -> list[BulletinId]:
        # Bulletins shared by several products appear once per product.
        bulletins: list[BulletinId] = []
        for product_id in ids:
            bulletins.extend(_bulletin_ids(self.search(product_id)))
        return bulletins

    def search_by_keyword(self, keyword: str) -> list[BulletinId]:
        return _bulletin_ids(self.search(keyword))
