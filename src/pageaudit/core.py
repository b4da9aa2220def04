"""
Page analysis: fetching, structural extraction, link classification and report assembly.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import requests
from bs4 import BeautifulSoup

from pageaudit.config import LOGIN_KEYWORDS, AnalyzerConfig
from pageaudit.health import HealthReport, Probe, check_links

logger = logging.getLogger(__name__)

HEADING_TAGS: Tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6")

# Scanned in order, first match wins. Public identifiers come before the
# bare HTML 5 doctype.
DOCTYPES: Tuple[Tuple[str, str], ...] = (
    ("XHTML 1.1", '"-//W3C//DTD XHTML 1.1//EN"'),
    ("XHTML 1.0 Strict", '"-//W3C//DTD XHTML 1.0 Strict//EN"'),
    ("XHTML 1.0 Transitional", '"-//W3C//DTD XHTML 1.0 Transitional//EN"'),
    ("XHTML 1.0 Frameset", '"-//W3C//DTD XHTML 1.0 Frameset//EN"'),
    ("HTML 4.01 Strict", '"-//W3C//DTD HTML 4.01//EN"'),
    ("HTML 4.01 Transitional", '"-//W3C//DTD HTML 4.01 Transitional//EN"'),
    ("HTML 4.01 Frameset", '"-//W3C//DTD HTML 4.01 Frameset//EN"'),
    ("HTML 5", "<!DOCTYPE html>"),
)

NO_VERSION = "none detected"


class AnalysisError(Exception):
    """Base class for failures that abort an analysis."""


class FetchFailure(AnalysisError):
    """The page could not be retrieved or answered with a non-success status."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code


class ParseFailure(AnalysisError):
    """The fetched body could not be turned into a document tree."""


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Structural facts extracted from one document."""
    version: Optional[str]
    title: str
    headings: Dict[str, int]
    links: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class LinkClassification:
    """Partition of a page's links; every tuple keeps the page order."""
    internal: Tuple[str, ...] = ()
    external: Tuple[str, ...] = ()
    login_candidates: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Report:
    """Everything known about the analysed page, ready for presentation."""
    url: str
    version: Optional[str]
    title: str
    headings: Dict[str, int]
    links: Tuple[str, ...]
    internal: Tuple[str, ...]
    external: Tuple[str, ...]
    login_candidates: Tuple[str, ...]
    reachable: FrozenSet[str] = field(default_factory=frozenset)
    unreachable: FrozenSet[str] = field(default_factory=frozenset)
    not_probed: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def complete(self) -> bool:
        """False when the health check was cut short."""
        return not self.not_probed

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "version": self.version,
            "title": self.title,
            "headings": dict(self.headings),
            "links": list(self.links),
            "internal": list(self.internal),
            "external": list(self.external),
            "login_candidates": list(self.login_candidates),
            "reachable": sorted(self.reachable),
            "unreachable": sorted(self.unreachable),
            "not_probed": sorted(self.not_probed),
            "complete": self.complete,
        }


# -- document boundary -------------------------------------------------------

def fetch_document(url: str, config: Optional[AnalyzerConfig] = None) -> str:
    """GET ``url`` and return the body text; anything but a 2xx answer is fatal."""
    config = config or AnalyzerConfig()
    session = requests.Session()
    session.headers["User-Agent"] = config.user_agent

    logger.info("Fetching %s", url)
    try:
        resp = session.get(url, timeout=config.timeout_s, allow_redirects=True)
    except requests.RequestException as e:
        raise FetchFailure(url, f"request failed: {e}") from e
    finally:
        session.close()

    if not 200 <= resp.status_code < 300:
        raise FetchFailure(url, f"response status code was {resp.status_code}", resp.status_code)

    logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
    return resp.text


def parse_document(html: str, parser: str = "lxml") -> BeautifulSoup:
    """Build the document tree with the named BeautifulSoup tree builder."""
    try:
        return BeautifulSoup(html, parser)
    except Exception as e:
        raise ParseFailure(f"could not parse document with {parser!r}: {e}") from e


def serialize_markup(soup: BeautifulSoup) -> Optional[str]:
    """Re-serialize the tree, or None when the tree cannot be rendered."""
    try:
        return soup.decode()
    except Exception as e:
        logger.warning("Could not serialize document for version detection: %s", e)
        return None


# -- version detector --------------------------------------------------------

def detect_version(markup: Optional[str]) -> Optional[str]:
    """Return the name of the first doctype whose signature occurs in ``markup``."""
    if not markup:
        return None
    for name, signature in DOCTYPES:
        if signature in markup:
            return name
    return None


# -- structural extractor ----------------------------------------------------

def extract_title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    return title.get_text() if title is not None else ""


def count_headings(soup: BeautifulSoup) -> Dict[str, int]:
    """Count h1..h6 elements; all six levels are always present."""
    return {tag: len(soup.find_all(tag)) for tag in HEADING_TAGS}


def extract_links(soup: BeautifulSoup, keep_empty: bool = True) -> List[str]:
    """
    Collect anchor targets in document order, keeping the first occurrence of each.

    An anchor without ``href`` contributes an empty string, which is dropped
    when ``keep_empty`` is False.
    """
    seen: Dict[str, None] = {}
    for anchor in soup.find_all("a"):
        href = anchor.get("href") or ""
        if not href and not keep_empty:
            continue
        seen.setdefault(href, None)
    return list(seen)


def inspect_document(soup: BeautifulSoup, config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
    """Extract version, title, heading counts and links from a parsed page."""
    config = config or AnalyzerConfig()
    return AnalysisResult(
        version=detect_version(serialize_markup(soup)),
        title=extract_title(soup),
        headings=count_headings(soup),
        links=tuple(extract_links(soup, keep_empty=config.keep_empty_links)),
    )


# -- link classifier ---------------------------------------------------------

def is_internal(link: str, base_url: str) -> bool:
    """Links under the base URL, root-relative links and fragments are internal."""
    return link.startswith((base_url, "/", "#"))


def is_login_link(link: str, keywords: Sequence[str] = LOGIN_KEYWORDS) -> bool:
    upper = link.upper()
    return any(keyword.upper() in upper for keyword in keywords)


def classify_links(
    base_url: str,
    links: Iterable[str],
    keywords: Sequence[str] = LOGIN_KEYWORDS,
) -> LinkClassification:
    internal: List[str] = []
    external: List[str] = []
    for link in links:
        (internal if is_internal(link, base_url) else external).append(link)

    return LinkClassification(
        internal=tuple(internal),
        external=tuple(external),
        login_candidates=tuple(link for link in internal if is_login_link(link, keywords)),
    )


# -- report assembler --------------------------------------------------------

def assemble_report(
    url: str,
    analysis: AnalysisResult,
    classification: LinkClassification,
    health: HealthReport,
) -> Report:
    return Report(
        url=url,
        version=analysis.version,
        title=analysis.title,
        headings=dict(analysis.headings),
        links=analysis.links,
        internal=classification.internal,
        external=classification.external,
        login_candidates=classification.login_candidates,
        reachable=health.reachable,
        unreachable=health.unreachable,
        not_probed=health.not_probed,
    )


# -- orchestration -----------------------------------------------------------

def _prepare(url: str, config: AnalyzerConfig) -> Tuple[AnalysisResult, LinkClassification]:
    soup = parse_document(fetch_document(url, config), config.parser)
    analysis = inspect_document(soup, config)
    classification = classify_links(url, analysis.links, config.login_keywords)

    logger.info(
        "Found %d links: %d internal, %d external, %d login",
        len(analysis.links),
        len(classification.internal),
        len(classification.external),
        len(classification.login_candidates),
    )
    return analysis, classification


async def analyze_async(
    url: str,
    config: Optional[AnalyzerConfig] = None,
    *,
    probe: Optional[Probe] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> Report:
    """
    Analyse ``url`` from within a running event loop.

    The document fetch is blocking and runs in a worker thread; the link
    check honours ``cancel_event`` and ``config.deadline_s``.

    Raises:
        FetchFailure: The page could not be retrieved.
        ParseFailure: The page could not be parsed.
    """
    config = config or AnalyzerConfig()
    analysis, classification = await asyncio.to_thread(_prepare, url, config)
    health = await check_links(
        analysis.links, config, base_url=url, probe=probe, cancel_event=cancel_event,
    )
    return assemble_report(url, analysis, classification, health)


def analyze(
    url: str,
    config: Optional[AnalyzerConfig] = None,
    *,
    probe: Optional[Probe] = None,
) -> Report:
    """
    Fetch ``url``, extract its structure, classify its links and probe them.

    Args:
        url: Page to analyse; also the base for link classification.
        config: Run settings, defaults when omitted.
        probe: Alternate link probe, see :func:`pageaudit.health.check_links`.

    Raises:
        FetchFailure: The page could not be retrieved.
        ParseFailure: The page could not be parsed.
    """
    config = config or AnalyzerConfig()
    analysis, classification = _prepare(url, config)
    health = asyncio.run(check_links(analysis.links, config, base_url=url, probe=probe))
    return assemble_report(url, analysis, classification, health)
