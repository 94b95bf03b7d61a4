"""HTTP helpers shared by the API clients."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Any

import requests

log = logging.getLogger(__name__)

_TIMEOUT = 60


def download(session: requests.Session, url: str) -> bytes:
    """Fetch ``url`` and return the whole body; non-2xx statuses raise."""
    response = session.get(url, timeout=_TIMEOUT)
    response.raise_for_status()
    return response.content


def _fetch_json(session: requests.Session, url: str) -> Any:
    response = session.get(url, timeout=_TIMEOUT)
    response.raise_for_status()
    return response.json()


def get_json(session: requests.Session, urls: Iterable[str]) -> Any:
    """Request JSON from all ``urls`` at once and return the first good answer.

    Failures are skipped, except that of the last URL in the list, which is
    raised as soon as it arrives.
    """
    url_list = list(urls)
    if not url_list:
        raise ValueError("no URLs to request")
    last = len(url_list) - 1

    pool = ThreadPoolExecutor(max_workers=len(url_list))
    try:
        futures: dict[Future[Any], tuple[int, str]] = {
            pool.submit(_fetch_json, session, url): (idx, url)
            for idx, url in enumerate(url_list)
        }
        for future in as_completed(futures):
            idx, url = futures[future]
            try:
                value = future.result()
            except (requests.RequestException, ValueError) as exc:
                if idx == last:
                    raise
                log.error("%s", exc)
                continue
            log.info("request JSON from %s", url)
            return value
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    raise RuntimeError("no response received")