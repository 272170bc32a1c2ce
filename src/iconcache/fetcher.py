from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import requests

from .logging import get_logger

LOGGER = get_logger(__name__)

NOT_FOUND = "not found"


@dataclass
class FetchResult:
    ok: bool
    url: Optional[str]
    content: Optional[bytes]
    status_code: Optional[int]
    attempts: int
    error: Optional[str]


# Signature shared by fetch_first and the test doubles the orchestrator accepts.
Fetcher = Callable[[Iterable[str]], FetchResult]


def _read_body(resp: requests.Response) -> bytes:
    chunks = []
    for chunk in resp.iter_content(chunk_size=8192):
        if chunk:
            chunks.append(chunk)
    return b"".join(chunks)


def fetch_first(urls: Iterable[str], *, timeout_s: Optional[float] = None) -> FetchResult:
    """Return the body of the first candidate answering HTTP 200.

    Candidates are tried once each, in order. Transport errors, non-200
    responses and unreadable bodies all move on to the next candidate.
    """
    attempts = 0
    last_status: Optional[int] = None
    last_error: Optional[str] = None

    for url in urls:
        attempts += 1
        try:
            with requests.get(url, stream=True, timeout=timeout_s) as resp:
                last_status = resp.status_code
                if resp.status_code != 200:
                    last_error = f"HTTP {resp.status_code}"
                    LOGGER.debug("Candidate %s answered %s", url, resp.status_code)
                    continue
                content = _read_body(resp)
        except (requests.RequestException, OSError) as exc:
            last_error = str(exc) or type(exc).__name__
            LOGGER.debug("Candidate %s failed: %s", url, last_error)
            continue

        return FetchResult(
            ok=True,
            url=url,
            content=content,
            status_code=200,
            attempts=attempts,
            error=None,
        )

    return FetchResult(
        ok=False,
        url=None,
        content=None,
        status_code=last_status,
        attempts=attempts,
        error=last_error or NOT_FOUND,
    )
