"""Bulletin search through the Google Custom Search JSON API.

API doc: https://developers.google.com/custom-search/v1/using_rest

The search engine (``cx``) should be set up to search technet.microsoft.com.
Searching this way is the same as running the following query by hand::

    <keyword> site:technet.microsoft.com intitle:"Microsoft Security Bulletin"
        -"Microsoft Security Bulletin Summary"
"""

from __future__ import annotations

import json
import logging
import re

from .config import (
    CUSTOM_SEARCH_MAX_RESULTS,
    CUSTOM_SEARCH_PAGE_SIZE,
    CUSTOM_SEARCH_PATH,
    GOOGLEAPIS,
)
from .errors import MalformedResponse, UpstreamApiError
from .fetcher import fetch
from .models import BulletinId, FetchResult

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"Microsoft Security Bulletin (MS\d\d-\d\d\d)", re.ASCII)


def build_query(keyword: str) -> str:
    return " ".join([
        keyword,
        'intitle:"Microsoft Security Bulletin"',
        '-"Microsoft Security Bulletin Summary"',
    ])


def parse_results(res: FetchResult) -> dict:
    """Decode a search page. Raises UpstreamApiError for an API error object."""
    try:
        data = json.loads(res.text)
    except ValueError as e:
        raise MalformedResponse("Google Search returned a malformed response") from e
    if not isinstance(data, dict):
        raise MalformedResponse("Google Search returned a malformed response")

    error = data.get("error")
    if error:
        if not isinstance(error, dict):
            raise MalformedResponse(f"Google Search returned an unexpected error: {error!r}")
        errors = error.get("errors")
        first = errors[0] if isinstance(errors, list) and errors else {}
        if not isinstance(first, dict):
            first = {}
        raise UpstreamApiError(
            first.get("message", error.get("message", "")),
            first.get("reason", error.get("status", "")),
        )
    return data


def _first_query(data: dict, name: str) -> dict:
    """Return queries[name][0], or {} when the page has no such query."""
    queries = data.get("queries") or {}
    if not isinstance(queries, dict):
        raise MalformedResponse("Google Search returned malformed queries")
    entries = queries.get(name) or [{}]
    if not isinstance(entries, list) or not isinstance(entries[0], dict):
        raise MalformedResponse(f"Google Search returned a malformed {name} query")
    return entries[0]


def total_results(data: dict) -> int:
    try:
        return int(_first_query(data, "request").get("totalResults", 0))
    except (TypeError, ValueError):
        return 0


def next_index(data: dict) -> int:
    """Offset of the next page, or 0 on the last page."""
    start = _first_query(data, "nextPage").get("startIndex")
    if start is None:
        return 0
    try:
        return int(start)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Google Search returned a bad startIndex: {start!r}") from e


def bulletins_in(data: dict) -> list[BulletinId]:
    items = data.get("items") or []
    if not isinstance(items, list):
        raise MalformedResponse("Google Search returned malformed items")

    found: list[BulletinId] = []
    for item in items:
        title = item.get("title") if isinstance(item, dict) else None
        if not isinstance(title, str):
            continue
        match = _TITLE_RE.search(title)
        if match:
            found.append(BulletinId.parse(match.group(1)))
    return found


class WebSearch:
    """Finds bulletin numbers by searching bulletin titles with Google."""

    def __init__(self, api_key: str, search_engine_id: str):
        self.api_key = api_key
        self.search_engine_id = search_engine_id

    def search(self, keyword: str, starting_index: int = 1) -> dict:
        res = fetch(
            GOOGLEAPIS,
            CUSTOM_SEARCH_PATH,
            params={
                "key": self.api_key,
                "cx": self.search_engine_id,
                "q": build_query(keyword),
                "start": str(starting_index),
                "num": str(CUSTOM_SEARCH_PAGE_SIZE),
                "c2coff": "1",  # 1 = Chinese search disabled
            },
        )
        data = parse_results(res)
        if starting_index == 1:
            logger.debug("Number of search results: %d", total_results(data))
        return data

    def find_identifiers(self, keyword: str) -> list[BulletinId]:
        """Return unique bulletin numbers in the order they were first seen.

        The API serves at most CUSTOM_SEARCH_MAX_RESULTS results, so paging
        stops there even when it still reports a next page.
        """
        bulletins: list[BulletinId] = []
        starting_index = 1

        try:
            while True:
                data = self.search(keyword, starting_index)
                bulletins.extend(bulletins_in(data))

                starting_index = next_index(data)
                if not starting_index or starting_index > CUSTOM_SEARCH_MAX_RESULTS:
                    break
        except (UpstreamApiError, MalformedResponse) as e:
            # Keep whatever the earlier pages turned up.
            logger.error("%s", e)

        return list(dict.fromkeys(bulletins))
