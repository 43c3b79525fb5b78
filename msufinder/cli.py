"""Click CLI with Rich output."""

from __future__ import annotations

import json as json_lib
import logging
import re
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ADVISORY_URL, ENV_API_KEY, ENV_SEARCH_ENGINE_ID
from .errors import NetworkFatal
from .models import RunOptions, RunReport, SearchEngine
from .pipeline import run

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("msufinder")

# technet/google are the names older releases used
_ENGINES = {
    "catalog": SearchEngine.CATALOG,
    "technet": SearchEngine.CATALOG,
    "websearch": SearchEngine.WEBSEARCH,
    "google": SearchEngine.WEBSEARCH,
}

EPILOG = """
\b
Examples:
  msufinder -q "Internet Explorer"
  msufinder -q ms15-100 -r x86 > /tmp/list.txt && wget -i /tmp/list.txt

The catalog engine first looks the keyword up in Technet's product list and
returns every bulletin for the matching products. Without a match it falls
back to a generic search, so MSB, KB and CVE numbers work too.

The websearch engine needs a Google API key (--apikey) and a Custom Search
engine id (--cx) whose sites to search is technet.microsoft.com. Google's
default quota is 1000 queries per day.

Use -d to check the search results for false positives before collecting
download links.
"""


def _setup_logging() -> None:
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return
    handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False


def _require_keyword(ctx, param, value):
    if value is None or not value.strip():
        raise click.BadParameter("a non-empty keyword is required")
    return value


def _compile_regex(ctx, param, value):
    if value is None:
        return None
    try:
        return re.compile(value)
    except re.error as e:
        raise click.BadParameter(f"invalid regular expression: {e}")


def _report_json(report: RunReport) -> str:
    return json_lib.dumps(
        {
            "query": report.keyword,
            "bulletins": [str(b) for b in report.bulletins],
            "links": [str(link) for link in report.links],
            "failed": [str(b) for b in report.failed],
        },
        indent=2,
    )


def _print_bulletins(report: RunReport) -> None:
    if not report.bulletins:
        console.print(
            f"[yellow]No advisories found[/yellow] for [bold]{escape(report.keyword)}[/bold]."
        )
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Bulletin")
    table.add_column("Advisory URL")
    for bulletin in report.bulletins:
        table.add_row(str(bulletin), ADVISORY_URL.format(bulletin=bulletin))
    console.print(table)


def _print_links(report: RunReport) -> None:
    if not report.links:
        logger.info("No download links found.")
        return

    logger.info("Found these links:")
    for link in report.links:
        click.echo(link.url)
    logger.info("Total downloadable updates found: %d", len(report.links))


@click.command(
    epilog=EPILOG,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__)
@click.option(
    "-q",
    "--query",
    "keyword",
    required=True,
    metavar="<keyword>",
    callback=_require_keyword,
    help="Find advisories that include this keyword.",
)
@click.option(
    "-s",
    "--search-engine",
    type=click.Choice(list(_ENGINES), case_sensitive=False),
    default="catalog",
    show_default=True,
    help="Search engine to find advisories with.",
)
@click.option(
    "-r",
    "--regex",
    "link_filter",
    metavar="<pattern>",
    callback=_compile_regex,
    help="Only keep download links matching this regular expression.",
)
@click.option(
    "--apikey",
    envvar=ENV_API_KEY,
    metavar="<key>",
    help=f"Google API key. Required for websearch (or set {ENV_API_KEY}).",
)
@click.option(
    "--cx",
    envvar=ENV_SEARCH_ENGINE_ID,
    metavar="<id>",
    help=f"Google search engine id. Required for websearch (or set {ENV_SEARCH_ENGINE_ID}).",
)
@click.option(
    "-d",
    "--dryrun",
    is_flag=True,
    help="Perform a search, but do not fetch download links.",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cli(keyword, search_engine, link_filter, apikey, cx, dryrun, as_json):
    """Enumerate download links for Microsoft patches."""
    engine = _ENGINES[search_engine.lower()]
    if engine is SearchEngine.WEBSEARCH:
        if not apikey:
            raise click.UsageError(
                "Search engine is websearch, but no API key specified (--apikey)"
            )
        if not cx:
            raise click.UsageError(
                "Search engine is websearch, but no search engine ID specified (--cx)"
            )

    options = RunOptions(
        keyword=keyword,
        search_engine=engine,
        link_filter=link_filter,
        dry_run=dryrun,
        api_key=apikey,
        search_engine_id=cx,
    )

    _setup_logging()
    try:
        report = run(options)
        if as_json:
            click.echo(_report_json(report))
        elif dryrun:
            _print_bulletins(report)
        else:
            _print_links(report)
    except NetworkFatal as e:
        logger.error("Search failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print()
        console.print("Good bye")
