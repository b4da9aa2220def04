"""
Runtime settings shared by the fetcher, the extractor and the health checker.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_USER_AGENT = "PageAudit/1.0"

# Case-insensitive markers of a login/sign-in link
LOGIN_KEYWORDS: Tuple[str, ...] = ("LOGIN", "SIGNIN")


@dataclass(slots=True)
class AnalyzerConfig:
    """Tunables for one analysis run."""
    timeout_s: float = 15.0
    user_agent: str = DEFAULT_USER_AGENT
    parser: str = "lxml"
    keep_empty_links: bool = True
    probe_timeout_s: float = 10.0
    probe_method: str = "HEAD"
    max_concurrency: int = 20
    deadline_s: Optional[float] = None
    login_keywords: Tuple[str, ...] = LOGIN_KEYWORDS

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.timeout_s <= 0 or self.probe_timeout_s <= 0:
            raise ValueError("timeouts must be positive")
        if self.deadline_s is not None and self.deadline_s < 0:
            raise ValueError(f"deadline_s must be >= 0, got {self.deadline_s}")
        self.probe_method = self.probe_method.upper()
