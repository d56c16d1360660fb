from __future__ import annotations

import unittest
from unittest.mock import patch

import httpx

from shipquote.exceptions import ProviderError, ProviderResponseError, ProviderTimeoutError
from shipquote.providers.base import BaseProvider
from shipquote.providers.geocoding import NominatimGeocoder
from shipquote.providers.postal import PostalPlace, ZippopotamPostalLookup
from shipquote.tests.utils import MALFORMED, MockAsyncClient, MockAsyncResponse, run


class _EchoProvider(BaseProvider):
    @property
    def provider_name(self) -> str:
        return "Echo"


class BaseProviderRetryTests(unittest.TestCase):
    def test_retries_rate_limit_then_succeeds(self) -> None:
        provider = _EchoProvider(timeout=1)
        client = MockAsyncClient([
            MockAsyncResponse({}, status_code=429, headers={"Retry-After": "2"}),
            MockAsyncResponse({"ok": True}),
        ])

        with self.assertLogs("shipquote.providers.base", level="WARNING") as captured:
            response = run(provider._get_with_retry(client, "https://echo.test/x"))

        self.assertEqual(response.json(), {"ok": True})
        self.assertEqual(len(client.calls), 2)
        self.assertIn("Retry-After: 2", captured.output[0])

    def test_client_error_is_not_retried(self) -> None:
        provider = _EchoProvider(timeout=1)
        client = MockAsyncClient([MockAsyncResponse({}, status_code=400)])

        with self.assertRaises(ProviderResponseError) as ctx:
            run(provider._post_with_retry(client, "https://echo.test/x", json={}))
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(len(client.calls), 1)

    def test_timeouts_become_provider_timeout(self) -> None:
        provider = _EchoProvider(timeout=1)
        client = MockAsyncClient([httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow")])

        with self.assertRaises(ProviderTimeoutError):
            run(provider._get_with_retry(client, "https://echo.test/x"))

    def test_connection_errors_become_provider_error(self) -> None:
        provider = _EchoProvider(timeout=1)
        client = MockAsyncClient([httpx.ConnectError("refused"), httpx.ConnectError("refused")])

        with self.assertRaises(ProviderError):
            run(provider._get_with_retry(client, "https://echo.test/x"))

    def test_malformed_json(self) -> None:
        with self.assertRaises(ProviderResponseError):
            _EchoProvider()._parse_json_safe(MockAsyncResponse(MALFORMED))

    def test_per_request_timeout_is_passed(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({})])
        run(_EchoProvider(timeout=3)._get_with_retry(client, "https://echo.test/x"))
        self.assertEqual(client.calls[0]["timeout"], 3)


class GeocoderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.geocoder = NominatimGeocoder(base_url="https://geo.test", user_agent="shipquote-tests")

    def test_geocode_parses_first_place(self) -> None:
        body = [{
            "lat": "25.79",
            "lon": "-80.13",
            "address": {"town": "Miami Beach", "state": "Florida", "postcode": "33139", "country_code": "us"},
        }]
        client = MockAsyncClient([MockAsyncResponse(body)])
        with patch("shipquote.providers.geocoding.get_http_client", return_value=client):
            result = run(self.geocoder.geocode("Miami Beach", "US"))

        self.assertEqual(result.city, "Miami Beach")
        self.assertEqual(result.state, "Florida")
        self.assertEqual(result.postal_code, "33139")
        self.assertEqual(result.country_code, "US")
        self.assertEqual((result.lat, result.lon), (25.79, -80.13))

        call = client.calls[0]
        self.assertEqual(call["url"], "https://geo.test/search")
        self.assertEqual(call["params"]["countrycodes"], "us")
        self.assertEqual(call["params"]["limit"], 1)
        self.assertEqual(call["headers"]["User-Agent"], "shipquote-tests")

    def test_geocode_no_match(self) -> None:
        with patch("shipquote.providers.geocoding.get_http_client", return_value=MockAsyncClient([MockAsyncResponse([])])):
            self.assertIsNone(run(self.geocoder.geocode("Atlantis")))

    def test_geocode_failure_is_none(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({}, status_code=503)])
        with patch("shipquote.providers.geocoding.get_http_client", return_value=client):
            self.assertIsNone(run(self.geocoder.geocode("Miami", "US")))
        self.assertEqual(len(client.calls), 1)

    def test_reverse(self) -> None:
        body = {"address": {"city": "Miami", "state": "Florida", "postcode": "33128"}}
        with patch("shipquote.providers.geocoding.get_http_client", return_value=MockAsyncClient([MockAsyncResponse(body)])):
            result = run(self.geocoder.reverse(25.77, -80.19))
        self.assertEqual(result.postal_code, "33128")
        self.assertFalse(result.has_coordinates)

    def test_reverse_error_body(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({"error": "Unable to geocode"})])
        with patch("shipquote.providers.geocoding.get_http_client", return_value=client):
            self.assertIsNone(run(self.geocoder.reverse(0.0, 0.0)))


class PostalLookupTests(unittest.TestCase):
    def setUp(self) -> None:
        self.postal = ZippopotamPostalLookup(base_url="https://zip.test")

    def test_lookup_zip(self) -> None:
        body = {
            "post code": "90210",
            "country": "United States",
            "places": [{"place name": "Beverly Hills", "state": "California", "state abbreviation": "CA"}],
        }
        client = MockAsyncClient([MockAsyncResponse(body)])
        with patch("shipquote.providers.postal.get_http_client", return_value=client):
            place = run(self.postal.lookup_zip("90210"))

        self.assertEqual(place, PostalPlace(zip="90210", city="Beverly Hills", state="CA"))
        self.assertEqual(client.calls[0]["url"], "https://zip.test/us/90210")

    def test_unknown_zip_is_none(self) -> None:
        client = MockAsyncClient([MockAsyncResponse({}, status_code=404)])
        with patch("shipquote.providers.postal.get_http_client", return_value=client):
            self.assertIsNone(run(self.postal.lookup_zip("00000")))

    def test_lookup_city(self) -> None:
        body = {"places": [{"place name": "Los Angeles", "post code": "90001"}, {"post code": "90002"}]}
        client = MockAsyncClient([MockAsyncResponse(body)])
        with patch("shipquote.providers.postal.get_http_client", return_value=client):
            zip_code = run(self.postal.lookup_city("CA", "Los Angeles"))

        self.assertEqual(zip_code, "90001")
        self.assertEqual(client.calls[0]["url"], "https://zip.test/us/ca/los%20angeles")

    def test_malformed_body_is_none(self) -> None:
        client = MockAsyncClient([MockAsyncResponse(MALFORMED)])
        with patch("shipquote.providers.postal.get_http_client", return_value=client):
            self.assertIsNone(run(self.postal.lookup_city("FL", "Miami")))


if __name__ == "__main__":
    unittest.main()
