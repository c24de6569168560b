"""Tests for HttpGeocoder against a mocked search API."""

import asyncio

import httpx
import pytest

from fleet_eta.core.errors import GeocodeError
from fleet_eta.core.geocoder import HttpGeocoder


def make_geocoder(handler, max_retries=2) -> HttpGeocoder:
    client = httpx.AsyncClient(
        base_url="http://geo.test", transport=httpx.MockTransport(handler),
    )
    return HttpGeocoder(client=client, max_retries=max_retries, retry_backoff=[0])


def test_geocode_parses_first_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[
            {"lat": "37.7793", "lon": "-122.4193", "display_name": "City Hall"},
            {"lat": "0", "lon": "0"},
        ])

    coord = asyncio.run(make_geocoder(handler).geocode("1 Dr Carlton B Goodlett Pl"))
    assert coord.lat == pytest.approx(37.7793)
    assert coord.lon == pytest.approx(-122.4193)
    assert seen[0].url.path == "/search"
    assert seen[0].url.params["q"] == "1 Dr Carlton B Goodlett Pl"
    assert seen[0].url.params["format"] == "jsonv2"


def test_geocode_caches_by_normalized_address():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[{"lat": "1.5", "lon": "2.5"}])

    geocoder = make_geocoder(handler)

    async def scenario():
        a = await geocoder.geocode("Market St")
        b = await geocoder.geocode("  market   st ")
        return a, b

    a, b = asyncio.run(scenario())
    assert a == b
    assert len(calls) == 1


def test_address_not_found():
    geocoder = make_geocoder(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(GeocodeError, match="address not found"):
        asyncio.run(geocoder.geocode("Atlantis"))


def test_empty_address_rejected_without_request():
    def handler(request):
        raise AssertionError("no request expected")

    with pytest.raises(GeocodeError):
        asyncio.run(make_geocoder(handler).geocode("   "))


def test_client_error_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(403)

    with pytest.raises(GeocodeError, match="HTTP 403"):
        asyncio.run(make_geocoder(handler).geocode("Market St"))
    assert len(calls) == 1


def test_server_error_retried_then_succeeds():
    responses = [httpx.Response(503), httpx.Response(200, json=[{"lat": "3", "lon": "4"}])]

    def handler(request):
        return responses.pop(0)

    coord = asyncio.run(make_geocoder(handler).geocode("Market St"))
    assert (coord.lat, coord.lon) == (3.0, 4.0)


def test_connect_errors_exhaust_retries():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GeocodeError, match="ConnectError"):
        asyncio.run(make_geocoder(handler, max_retries=2).geocode("Market St"))
    assert len(calls) == 3


def test_malformed_payload():
    geocoder = make_geocoder(lambda request: httpx.Response(200, json=[{"name": "x"}]))
    with pytest.raises(GeocodeError, match="malformed"):
        asyncio.run(geocoder.geocode("Market St"))
