"""
Concurrent liveness probing of the links found on a page.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, FrozenSet, Iterable, List, Optional, Set
from urllib.parse import urljoin

import httpx

from pageaudit.config import AnalyzerConfig

logger = logging.getLogger(__name__)

Probe = Callable[[str], Awaitable[bool]]


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    """Result of probing a single link."""
    link: str
    reachable: bool


@dataclass(frozen=True, slots=True)
class HealthReport:
    """Links split by probe result; ``not_probed`` is non-empty only when the run was cut short."""
    reachable: FrozenSet[str] = frozenset()
    unreachable: FrozenSet[str] = frozenset()
    not_probed: FrozenSet[str] = frozenset()

    @property
    def complete(self) -> bool:
        return not self.not_probed

    @property
    def probed(self) -> int:
        return len(self.reachable) + len(self.unreachable)


async def probe_link(
    client: httpx.AsyncClient,
    url: str,
    timeout_s: float,
    method: str = "HEAD",
) -> bool:
    """
    Return True if ``url`` answered with any HTTP response.

    The status code is irrelevant; only transport failures (DNS, refused
    connection, TLS, timeout, malformed URL) make a link unreachable.
    The response body is never read.
    """
    async def _request() -> int:
        async with client.stream(method, url) as response:
            return response.status_code

    try:
        status = await asyncio.wait_for(_request(), timeout=timeout_s)
    except Exception as e:
        logger.debug("Probe failed for %s: %s: %s", url, type(e).__name__, e)
        return False

    logger.debug("Probe %s %s -> %s", method, url, status)
    return True


@asynccontextmanager
async def _transport(config: AnalyzerConfig, probe: Optional[Probe]) -> AsyncIterator[Probe]:
    """Yield the probe callable for one run, owning the HTTP client if one is needed."""
    if probe is not None:
        yield probe
        return

    async with httpx.AsyncClient(
        headers={"User-Agent": config.user_agent},
        timeout=config.probe_timeout_s,
        follow_redirects=True,
        limits=httpx.Limits(max_connections=config.max_concurrency),
    ) as client:
        async def run(url: str) -> bool:
            return await probe_link(client, url, config.probe_timeout_s, config.probe_method)

        yield run


async def check_links(
    links: Iterable[str],
    config: Optional[AnalyzerConfig] = None,
    *,
    base_url: Optional[str] = None,
    probe: Optional[Probe] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> HealthReport:
    """
    Probe every distinct link concurrently and report which ones failed.

    One task is started per link; at most ``config.max_concurrency`` of them
    hold a probe in flight, the rest wait on a semaphore. A probe that does
    not answer within ``config.probe_timeout_s`` counts as unreachable. Each task reports
    exactly one outcome on a queue read by a single collector, and the
    result is final once the collector has seen one outcome per link.

    The run stops early when ``cancel_event`` is set or ``config.deadline_s``
    elapses. All outstanding tasks are then cancelled and awaited, and the
    links that never reported are returned in ``not_probed``.

    Args:
        links: Link strings as found on the page. Duplicates are probed once.
        config: Timeouts, concurrency ceiling and deadline.
        base_url: Relative links are resolved against it before probing.
        probe: Alternate ``async (url) -> bool`` transport; an
            ``httpx.AsyncClient`` is used when omitted.
        cancel_event: Setting it stops the run with a partial report.
    """
    config = config or AnalyzerConfig()
    targets: List[str] = list(dict.fromkeys(links))
    expected = len(targets)
    if not expected:
        return HealthReport()

    # Only the collector touches these two sets while the run is live
    reachable: Set[str] = set()
    unreachable: Set[str] = set()

    def record(outcome: ProbeOutcome) -> None:
        (reachable if outcome.reachable else unreachable).add(outcome.link)

    outcomes: asyncio.Queue[ProbeOutcome] = asyncio.Queue(maxsize=expected)
    semaphore = asyncio.Semaphore(config.max_concurrency)

    logger.info(
        "Checking %d links (concurrency=%d, probe timeout=%.1fs)",
        expected, config.max_concurrency, config.probe_timeout_s,
    )

    async with _transport(config, probe) as run_probe:

        async def worker(link: str) -> None:
            target = urljoin(base_url, link) if base_url else link
            async with semaphore:
                try:
                    ok = await asyncio.wait_for(run_probe(target), timeout=config.probe_timeout_s)
                except Exception as e:
                    logger.debug("Probe raised for %s: %s", target, e)
                    ok = False
            outcomes.put_nowait(ProbeOutcome(link, bool(ok)))

        async def collect() -> None:
            for _ in range(expected):
                record(await outcomes.get())

        workers = [asyncio.create_task(worker(link)) for link in targets]
        collector = asyncio.create_task(collect())
        stopper = asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
        waiters = {collector} if stopper is None else {collector, stopper}

        try:
            await asyncio.wait(waiters, timeout=config.deadline_s, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [t for t in (*workers, collector, stopper) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    # Outcomes posted after the collector was stopped still count
    while not outcomes.empty():
        record(outcomes.get_nowait())

    not_probed = frozenset(targets) - reachable - unreachable
    report = HealthReport(frozenset(reachable), frozenset(unreachable), not_probed)

    if report.complete:
        logger.info("Link check finished: %d of %d unreachable", len(unreachable), expected)
    else:
        logger.warning(
            "Link check stopped early: %d of %d probed, %d not probed",
            report.probed, expected, len(not_probed),
        )
    return report
