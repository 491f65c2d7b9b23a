from __future__ import annotations

import httpx
import pytest

from ks_libvirt.adapters.http.client import USER_AGENT, HttpxFetcher
from ks_libvirt.domain.errors import FetchError
from tests.support import mock_client


def test_fetch_returns_body() -> None:
    fetcher = HttpxFetcher(client=mock_client({"http://ks.example/main.ks": (200, "text\n")}))
    assert fetcher.fetch("http://ks.example/main.ks") == "text\n"


@pytest.mark.parametrize("status", [404, 500])
def test_error_status_raises_fetch_error(status: int) -> None:
    fetcher = HttpxFetcher(client=mock_client({"http://ks.example/x": (status, "nope")}))
    with pytest.raises(FetchError):
        fetcher.fetch("http://ks.example/x")


def test_empty_body_raises_fetch_error() -> None:
    fetcher = HttpxFetcher(client=mock_client({"http://ks.example/x": (200, " \n")}))
    with pytest.raises(FetchError, match="Empty"):
        fetcher.fetch("http://ks.example/x")


def test_transport_error_raises_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    fetcher = HttpxFetcher(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(FetchError, match="refused"):
        fetcher.fetch("http://down.example/")


def test_injected_client_is_not_closed() -> None:
    client = mock_client({})
    with HttpxFetcher(client=client):
        pass
    assert not client.is_closed


def test_owned_client_is_closed_on_exit() -> None:
    with HttpxFetcher(timeout=1.0) as fetcher:
        client = fetcher._client
        assert client.headers["User-Agent"] == USER_AGENT
    assert client.is_closed
