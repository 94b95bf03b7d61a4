"""Clients for the localization team's API, downloads and GitHub releases."""

from __future__ import annotations

import functools
import hashlib
import logging
import platform
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import urljoin

import requests

from .http import download, get_json
from .llc_config import LLCConfig

log = logging.getLogger(__name__)

_PACKAGE = "llclauncher"
_VERSION = "0.1.15"
_TIMEOUT = 60


class ZeroAssoApiError(Exception):
    """A request to the API or a download failed."""


class HashMismatchError(ZeroAssoApiError):
    """A downloaded file does not have the expected SHA-256 digest."""

    def __init__(self, file_name: str, expected_hash: bytes, actual_hash: bytes) -> None:
        super().__init__(f"downloaded file {file_name} hash mismatch")
        self.file_name = file_name
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash


def _hash_field(data: Any, key: str) -> bytes:
    try:
        value = bytes.fromhex(data[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise ZeroAssoApiError(f"invalid hash field {key!r}") from exc
    if len(value) != 32:
        raise ZeroAssoApiError(f"hash field {key!r} must be 32 bytes")
    return value


@dataclass(frozen=True)
class LLCHash:
    """SHA-256 digests of the font and main packages."""

    font_hash: bytes
    main_hash: bytes

    @classmethod
    def from_dict(cls, data: Any) -> LLCHash:
        return cls(_hash_field(data, "font_hash"), _hash_field(data, "main_hash"))


@functools.cache
def user_agent() -> str:
    """The User-Agent sent with every request."""
    system = platform.system()
    os_name = "Windows NT" if system == "Windows" else system or "Unknown"
    python = f"Python {sys.version_info.major}.{sys.version_info.minor}"
    return f"{_PACKAGE}/{_VERSION} ({os_name} {platform.release()}; {python}; {platform.machine()})"


def _new_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent()
    session.headers["Cache-Control"] = "no-cache"
    return session


@functools.cache
def get_client() -> requests.Session:
    """The shared session for API and download requests."""
    return _new_session()


@functools.cache
def _github_session() -> requests.Session:
    return _new_session()


def get_github_client(llc_config: LLCConfig) -> tuple[requests.Session, str]:
    """The shared GitHub session and the API base URL it is used with."""
    return _github_session(), llc_config.github.api


def _wrap(call: Callable[[], Any]) -> Any:
    try:
        return call()
    except (requests.RequestException, ValueError) as exc:
        raise ZeroAssoApiError(str(exc)) from exc


def request_zeroasso_api(llc_config: LLCConfig, path: str) -> Any:
    """GET JSON from ``path`` on every API node and return the first good answer."""
    urls = [urljoin(base, path) for base in llc_config.api_nodes()]
    return _wrap(lambda: get_json(get_client(), urls))


def download_file(
    llc_config: LLCConfig, file_name: str, expected_hash: bytes | None = None
) -> bytes:
    """Download ``file_name`` from the selected node, checking its digest if given."""
    url = llc_config.download_url_for(file_name)
    log.info("Downloading file '%s' from '%s'", file_name, url)
    data = _wrap(lambda: download(get_client(), url))
    if expected_hash is not None:
        actual = hashlib.sha256(data).digest()
        if actual != bytes(expected_hash):
            log.error(
                "Hash mismatch for '%s': expected %s, got %s",
                file_name,
                bytes(expected_hash).hex(),
                actual.hex(),
            )
            raise HashMismatchError(file_name, bytes(expected_hash), actual)
    return data


def get_hash(llc_config: LLCConfig) -> LLCHash:
    """Digests of the latest packages."""
    return LLCHash.from_dict(request_zeroasso_api(llc_config, "v2/hash/get_hash"))


def get_version_github(llc_config: LLCConfig) -> int:
    """Latest version, from the tag of the latest GitHub release."""
    session, base = get_github_client(llc_config)
    github = llc_config.github
    url = urljoin(base, f"repos/{github.owner}/{github.repo}/releases/latest")

    def fetch() -> Any:
        response = session.get(url, timeout=_TIMEOUT)
        response.raise_for_status()
        return response.json()

    release = _wrap(fetch)
    try:
        version = int(release["tag_name"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ZeroAssoApiError("invalid release tag") from exc
    log.info("get version from GitHub API")
    return version


def get_version_zeroasso(llc_config: LLCConfig) -> int:
    """Latest version, from the API."""
    data = request_zeroasso_api(llc_config, "v2/resource/get_version")
    try:
        return int(data["version"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ZeroAssoApiError("invalid version response") from exc


def get_version(llc_config: LLCConfig) -> int:
    """Latest version from whichever source answers first.

    A GitHub failure is ignored; the API's answer, good or bad, is final.
    """
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = {
            pool.submit(get_version_github, llc_config): False,
            pool.submit(get_version_zeroasso, llc_config): True,
        }
        for future in as_completed(futures):
            is_last = futures[future]
            if is_last:
                return future.result()
            try:
                return future.result()
            except ZeroAssoApiError as exc:
                log.error("%s", exc)
    raise ZeroAssoApiError("no version source answered")