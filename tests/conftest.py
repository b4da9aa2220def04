"""Shared fixtures: sample documents and scripted link probes."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

SAMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Example Site</title></head>
<body>
  <h1>Welcome</h1>
  <h2>News</h2>
  <h2>Events</h2>
  <h3>Today</h3>
  <a href="http://x.test/login">Log in</a>
  <a href="/about">About</a>
  <a href="http://other.test/">Partner</a>
  <a href="/about">About again</a>
  <a href="#top">Top</a>
</body>
</html>
"""


class ScriptedProbe:
    """
    Async probe with a fixed answer per URL.

    URLs listed in ``hang`` never answer; ``delays`` holds per-URL sleeps.
    Every call is recorded, and the peak number of concurrent calls is kept.
    """

    def __init__(
        self,
        failing: Optional[set] = None,
        hang: Optional[set] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.failing = failing or set()
        self.hang = hang or set()
        self.delays = delays or {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.peak = 0

    async def __call__(self, url: str) -> bool:
        self.calls.append(url)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            if url in self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delays.get(url, 0))
            return url not in self.failing
        finally:
            self.in_flight -= 1


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_HTML


@pytest.fixture
def make_probe():
    return ScriptedProbe
