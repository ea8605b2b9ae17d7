"""Status extraction from operator page markup.

Everything here is a pure function over the fetched HTML. Status badges are
located with an ordered list of strategies; the first strategy that finds an
element decides, and its first element is mapped onto the canonical status
set. Support for another page layout is added by appending a strategy.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Comment, Tag

from .config import OPERATOR_NAME, PAYMENT_MARKER
from .status import CLASS_TOKENS, STATUS_KEYWORDS, ChargerStatus, status_label

Markup = Union[str, BeautifulSoup]

_KEYWORD_PATTERNS = [
    (status, re.compile(r"\b(?:%s)\b" % "|".join(map(re.escape, words)), re.IGNORECASE))
    for status, words in STATUS_KEYWORDS
]
_TEXT_TAGS = ["span", "div", "p", "strong", "td", "li", "label"]

_CURRENCY_SYMBOLS = ("€", "$", "£")
_PRICE_RE = re.compile(
    r"(?:[€$£]\s*\d+(?:[.,]\d+)?|\d+(?:[.,]\d+)?\s*[€$£])(?:\s*/\s*kWh)?",
    re.IGNORECASE,
)
_POWER_RE = re.compile(r"\d+(?:[.,]\d+)?\s*kW\b")
_PLUG_RE = re.compile(r"Typ(?:e)?\s*2(?:\s*\(Mennekes\))?|CCS(?:\s*\d)?|CHAdeMO|Schuko", re.IGNORECASE)


@dataclass
class PageExtraction:
    status: str
    status_text: str
    price: Optional[str] = None
    power: Optional[str] = None
    plug_type: Optional[str] = None
    page_error: Optional[str] = None


def _soup(markup: Markup) -> BeautifulSoup:
    if isinstance(markup, BeautifulSoup):
        return markup
    return BeautifulSoup(markup or "", "html.parser")


def _own_text(el: Tag) -> str:
    parts = [s for s in el.find_all(string=True, recursive=False) if not isinstance(s, Comment)]
    return " ".join(" ".join(parts).split())


def status_from_text(text: str) -> str:
    for status, pattern in _KEYWORD_PATTERNS:
        if pattern.search(text or ""):
            return status
    return ChargerStatus.UNKNOWN


def status_from_classes(classes) -> str:
    for token in classes or ():
        suffix = token.lower().rsplit("-", 1)[-1]
        if suffix in CLASS_TOKENS:
            return CLASS_TOKENS[suffix]
    return ChargerStatus.UNKNOWN


def _map_badge(el: Tag) -> str:
    status = status_from_classes(el.get("class"))
    if status == ChargerStatus.UNKNOWN:
        status = status_from_text(el.get_text(" ", strip=True))
    return status


def _map_text(el: Tag) -> str:
    return status_from_text(_own_text(el))


def _site_badges(soup: BeautifulSoup) -> List[Tag]:
    return soup.select("span.badge.rounded-pill[class*='bg-']")


def _generic_badges(soup: BeautifulSoup) -> List[Tag]:
    return soup.select(".badge, .status-badge, [class*='badge-']")


def _text_badges(soup: BeautifulSoup) -> List[Tag]:
    return [
        el for el in soup.find_all(_TEXT_TAGS)
        if status_from_text(_own_text(el)) != ChargerStatus.UNKNOWN
    ]


Strategy = Tuple[str, Callable[[BeautifulSoup], List[Tag]], Callable[[Tag], str]]

# most specific first
STRATEGIES: List[Strategy] = [
    ("site-badge", _site_badges, _map_badge),
    ("generic-badge", _generic_badges, _map_badge),
    ("text-scan", _text_badges, _map_text),
]


def extract_status(markup: Markup, locale: Optional[str] = None) -> Tuple[str, str]:
    """Return ``(status, statusText)`` for a charger page."""
    soup = _soup(markup)
    status = ChargerStatus.UNKNOWN
    for _name, matcher, mapper in STRATEGIES:
        found = matcher(soup)
        if found:
            status = mapper(found[0])
            break
    return status, status_label(status, locale)


def is_interstitial(html: str, payment_marker: str = PAYMENT_MARKER, operator_name: str = OPERATOR_NAME) -> bool:
    """True when the operator served its payment landing page instead of charger content."""
    html = html or ""
    return payment_marker in html and operator_name not in html


def find_page_error(markup: Markup) -> Optional[str]:
    soup = _soup(markup)
    for el in soup.select(".alert-danger"):
        text = el.get_text(" ", strip=True)
        if status_from_text(text) == ChargerStatus.ERROR:
            return text
    return None


def _first_own_text(soup: BeautifulSoup, accept: Callable[[str], bool]) -> Optional[str]:
    for el in soup.find_all(True):
        if el.name in ("script", "style", "head", "title"):
            continue
        text = _own_text(el)
        if text and accept(text):
            return text
    return None


def extract_price(markup: Markup) -> Optional[str]:
    text = _first_own_text(_soup(markup), lambda t: any(sym in t for sym in _CURRENCY_SYMBOLS))
    if text is None:
        return None
    match = _PRICE_RE.search(text)
    return match.group(0) if match else text


def extract_power(markup: Markup) -> Optional[str]:
    text = _first_own_text(_soup(markup), lambda t: _POWER_RE.search(t) is not None)
    if text is None:
        return None
    return _POWER_RE.search(text).group(0)


def extract_plug_type(markup: Markup) -> Optional[str]:
    text = _first_own_text(_soup(markup), lambda t: _PLUG_RE.search(t) is not None)
    if text is None:
        return None
    return _PLUG_RE.search(text).group(0)


def extract(markup: Markup, locale: Optional[str] = None) -> PageExtraction:
    """Parse the page once and pull out everything the record needs."""
    soup = _soup(markup)
    status, status_text = extract_status(soup, locale)
    return PageExtraction(
        status=status,
        status_text=status_text,
        price=extract_price(soup),
        power=extract_power(soup),
        plug_type=extract_plug_type(soup),
        page_error=find_page_error(soup),
    )
