"""Search → resolve → filter, end to end."""

from __future__ import annotations

import logging

from .catalog_search import CatalogSearch, CatalogSession
from .errors import NetworkFatal
from .models import BulletinId, RunOptions, RunReport, SearchEngine
from .resolver import LinkResolver
from .web_search import WebSearch

logger = logging.getLogger(__name__)


def find_bulletins(options: RunOptions) -> list[BulletinId]:
    """Run the configured search backend. NetworkFatal propagates."""
    if options.search_engine is SearchEngine.WEBSEARCH:
        logger.debug("Searching advisories that include %s via Google", options.keyword)
        search = WebSearch(options.api_key, options.search_engine_id)
        return search.find_identifiers(options.keyword)

    logger.debug("Searching advisories that include %s via Technet", options.keyword)
    search = CatalogSearch(CatalogSession())
    return search.find_identifiers(options.keyword)


def run(options: RunOptions, resolver: LinkResolver | None = None) -> RunReport:
    report = RunReport(keyword=options.keyword)
    report.bulletins = find_bulletins(options)

    if report.bulletins:
        logger.debug(
            "Advisories found (%d): %s",
            len(report.bulletins),
            ", ".join(str(b) for b in report.bulletins),
        )

    if options.dry_run:
        return report

    resolver = resolver or LinkResolver()
    for bulletin in report.bulletins:
        logger.debug("Finding download links for %s", bulletin)
        try:
            report.links.extend(resolver.resolve(bulletin, options.link_filter))
        except NetworkFatal as e:
            logger.error("Giving up on %s: %s", bulletin, e)
            report.failed.append(bulletin)

    return report
