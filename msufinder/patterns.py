"""Advisory page layouts and the selectors used to pull links out of them.

Technet changed the advisory markup several times.  Each layout is described
by a rule: a *check* selector that identifies the layout and a *pattern*
selector that finds the anchors to follow.  Rules are tried in order and the
first check that matches anything wins.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True)
class ExtractionRule:
    name: str
    check: str
    pattern: str


# These need to stay in this order. Insert new layouts where they belong.
RULES: tuple[ExtractionRule, ...] = (
    # MS14-001 until the most recent
    ExtractionRule(
        name="ms14-001+",
        check='div#mainBody div h2 div span:-soup-contains("Affected Software")',
        pattern='div#mainBody div div[class="sectionblock"] table a',
    ),
    # MS03-040 until MS07-029
    ExtractionRule(
        name="ms03-040..ms07-029",
        check='div#mainBody ul li a:-soup-contains("Download the update")',
        pattern='div#mainBody ul li a:-soup-contains("Download the update")',
    ),
    # Up to MS03-039
    ExtractionRule(
        name="..ms03-039",
        check=(
            'div#mainBody div div[class="sectionblock"] p '
            'strong:-soup-contains("Download locations")'
        ),
        pattern='div#mainBody div div[class="sectionblock"] ul li a',
    ),
    # MS07-030 until MS13-106 (the last update in 2013). The check is short
    # enough to produce false positives on other layouts, so it goes last.
    ExtractionRule(
        name="ms07-030..ms13-106",
        check='div#mainBody p strong:-soup-contains("Affected Software")',
        pattern="div#mainBody table a",
    ),
)


def parse_html(html: str | bytes) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def select_rule(
    document: BeautifulSoup,
    rules: tuple[ExtractionRule, ...] = RULES,
) -> ExtractionRule | None:
    """Return the first rule whose check matches *document*, or None."""
    for rule in rules:
        if document.select_one(rule.check) is not None:
            return rule
    return None


def apply_rule(document: BeautifulSoup, rule: ExtractionRule) -> list[Tag]:
    """Return the elements matched by *rule*'s pattern."""
    return document.select(rule.pattern)
