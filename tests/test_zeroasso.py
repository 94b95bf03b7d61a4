import hashlib

import pytest
import responses
from responses import matchers

from llclauncher import zeroasso
from llclauncher.llc_config import default_llc_config

API = "https://api.zeroasso.top/"
CDN_API = "https://cdn-api.zeroasso.top/"
GITHUB = "https://api.github.com/repos/LocalizeLimbusCompany/LocalizeLimbusCompany/releases/latest"
FONT = "ab" * 32
MAIN = "cd" * 32


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _download_mock(mocked, name, body):
    mocked.add(
        responses.GET,
        "https://api.zeroasso.top/v2/download/files",
        body=body,
        match=[matchers.query_param_matcher({"file_name": name})],
    )


def test_user_agent_names_package():
    assert zeroasso.user_agent().startswith("llclauncher/")


def test_get_hash(mocked):
    payload = {"font_hash": FONT, "main_hash": MAIN}
    mocked.add(responses.GET, API + "v2/hash/get_hash", json=payload)
    mocked.add(responses.GET, CDN_API + "v2/hash/get_hash", json=payload)
    result = zeroasso.get_hash(default_llc_config())
    assert result.font_hash == bytes.fromhex(FONT)
    assert result.main_hash == bytes.fromhex(MAIN)


def test_get_hash_rejects_short_digest(mocked):
    payload = {"font_hash": "abcd", "main_hash": MAIN}
    mocked.add(responses.GET, API + "v2/hash/get_hash", json=payload)
    mocked.add(responses.GET, CDN_API + "v2/hash/get_hash", json=payload)
    with pytest.raises(zeroasso.ZeroAssoApiError):
        zeroasso.get_hash(default_llc_config())


def test_download_file_checks_hash(mocked):
    body = b"archive body"
    _download_mock(mocked, "LimbusLocalize_2025070503.7z", body)
    data = zeroasso.download_file(
        default_llc_config(), "LimbusLocalize_2025070503.7z", hashlib.sha256(body).digest()
    )
    assert data == body


def test_download_file_hash_mismatch(mocked):
    body = b"archive body"
    _download_mock(mocked, "LLCCN-Font.7z", body)
    expected = bytes(32)
    with pytest.raises(zeroasso.HashMismatchError) as info:
        zeroasso.download_file(default_llc_config(), "LLCCN-Font.7z", expected)
    assert info.value.file_name == "LLCCN-Font.7z"
    assert info.value.expected_hash == expected
    assert info.value.actual_hash == hashlib.sha256(body).digest()


def test_download_file_http_error(mocked):
    mocked.add(responses.GET, "https://api.zeroasso.top/v2/download/files", status=404)
    with pytest.raises(zeroasso.ZeroAssoApiError):
        zeroasso.download_file(default_llc_config(), "missing.7z")


def test_get_version_github(mocked):
    mocked.add(responses.GET, GITHUB, json={"tag_name": "2025070503"})
    assert zeroasso.get_version_github(default_llc_config()) == 2025070503


def test_get_version_zeroasso(mocked):
    for base in (API, CDN_API):
        mocked.add(
            responses.GET, base + "v2/resource/get_version", json={"version": 2025070503}
        )
    assert zeroasso.get_version_zeroasso(default_llc_config()) == 2025070503


def test_get_version_falls_back_when_github_fails(mocked):
    mocked.add(responses.GET, GITHUB, status=500)
    for base in (API, CDN_API):
        mocked.add(
            responses.GET, base + "v2/resource/get_version", json={"version": 2025070503}
        )
    assert zeroasso.get_version(default_llc_config()) == 2025070503


def test_get_version_all_fail(mocked):
    mocked.add(responses.GET, GITHUB, status=500)
    for base in (API, CDN_API):
        mocked.add(responses.GET, base + "v2/resource/get_version", status=503)
    with pytest.raises(zeroasso.ZeroAssoApiError):
        zeroasso.get_version(default_llc_config())