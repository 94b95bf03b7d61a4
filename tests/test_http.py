import pytest
import requests
import responses

from llclauncher.http import download, get_json


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def session():
    with requests.Session() as s:
        yield s


def test_download_returns_body(mocked, session):
    mocked.add(responses.GET, "https://files.example.com/a.bin", body=b"\x00\x01payload")
    assert download(session, "https://files.example.com/a.bin") == b"\x00\x01payload"


def test_download_raises_on_error_status(mocked, session):
    mocked.add(responses.GET, "https://files.example.com/missing", status=404)
    with pytest.raises(requests.HTTPError):
        download(session, "https://files.example.com/missing")


def test_get_json_single_url(mocked, session):
    mocked.add(responses.GET, "https://api.example.com/v", json={"version": 7})
    assert get_json(session, ["https://api.example.com/v"]) == {"version": 7}


def test_get_json_skips_failing_node(mocked, session):
    mocked.add(responses.GET, "https://a.example.com/v", status=500)
    mocked.add(responses.GET, "https://b.example.com/v", json={"version": 3})
    result = get_json(session, iter(["https://a.example.com/v", "https://b.example.com/v"]))
    assert result == {"version": 3}


def test_get_json_all_failing_raises(mocked, session):
    mocked.add(responses.GET, "https://a.example.com/v", status=500)
    mocked.add(responses.GET, "https://b.example.com/v", status=503)
    with pytest.raises(requests.HTTPError):
        get_json(session, ["https://a.example.com/v", "https://b.example.com/v"])


def test_get_json_invalid_body_raises(mocked, session):
    mocked.add(responses.GET, "https://a.example.com/v", body="not json")
    with pytest.raises(ValueError):
        get_json(session, ["https://a.example.com/v"])


def test_get_json_requires_urls(session):
    with pytest.raises(ValueError):
        get_json(session, [])