import json

import pytest
import requests

from avawatcher.errors import FetchError
from avawatcher.scraper import extract_global_content, fetch_units, parse_units

from factories import make_payload


class DummyResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class DummySession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def build_page(units) -> str:
    content = {"units": units, "promotions": [], "pricingOverview": []}
    return f"""
    <html>
      <head>
        <script id="fusion-metadata" type="application/javascript">
          window.Fusion=window.Fusion||{{}};Fusion.arcSite="avalon";
          Fusion.globalContent={json.dumps(content)};
          Fusion.globalContentConfig={{"source":"community"}};
        </script>
      </head>
      <body></body>
    </html>
    """


def test_fetch_units_parses_embedded_payload():
    session = DummySession(DummyResponse(build_page([
        make_payload("AVB-1", number="101"),
        make_payload("AVB-2", number="102", bedroom=1),
    ])))

    units = fetch_units("https://example.com/ava", session=session, timeout=5)

    assert [unit.unit_id for unit in units] == ["AVB-1", "AVB-2"]
    assert units[1].bedroom == 1
    assert session.calls == [("https://example.com/ava", 5)]


def test_extract_global_content_ignores_trailing_script():
    content = extract_global_content(build_page([]))
    assert content == {"units": [], "promotions": [], "pricingOverview": []}


def test_missing_metadata_script_is_a_fetch_error():
    with pytest.raises(FetchError, match="fusion-metadata"):
        extract_global_content("<html><script>var x = 1;</script></html>")


def test_missing_global_content_is_a_fetch_error():
    page = '<script id="fusion-metadata">Fusion.arcSite="avalon";</script>'
    with pytest.raises(FetchError):
        extract_global_content(page)


def test_invalid_json_is_a_fetch_error():
    page = '<script id="fusion-metadata">Fusion.globalContent={units: [};</script>'
    with pytest.raises(FetchError):
        extract_global_content(page)


def test_http_error_is_a_fetch_error():
    session = DummySession(DummyResponse("oops", status_code=503))
    with pytest.raises(FetchError, match="503"):
        fetch_units("https://example.com/ava", session=session)


def test_timeout_is_a_fetch_error():
    session = DummySession(requests.Timeout("read timed out"))
    with pytest.raises(FetchError, match="timed out"):
        fetch_units("https://example.com/ava", session=session)


def test_malformed_unit_is_a_fetch_error():
    payload = make_payload("AVB-9")
    del payload["bedroom"]
    with pytest.raises(FetchError, match="AVB-9"):
        parse_units({"units": [payload]})


def test_missing_units_array_is_a_fetch_error():
    with pytest.raises(FetchError):
        parse_units({"promotions": []})
