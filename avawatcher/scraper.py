"""Scraper for the unit inventory embedded in an Avalon community page."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List

import requests
from bs4 import BeautifulSoup

from .errors import FetchError
from .models import UnitSnapshot

logger = logging.getLogger(__name__)

AVA_URL = (
    "https://new.avaloncommunities.com/washington/seattle-apartments/ava-capitol-hill/"
)
METADATA_SCRIPT_ID = "fusion-metadata"
USER_AGENT = "AvaWatcher/1.0"

_GLOBAL_CONTENT = re.compile(r"Fusion\.globalContent\s*=\s*")


def fetch_units(
    target_url: str = AVA_URL,
    session: requests.Session | None = None,
    timeout: int = 20,
) -> List[UnitSnapshot]:
    """Fetch the listing page and return every advertised unit, in page order."""
    http = session or requests
    logger.debug("Fetching listing page %s", target_url)
    try:
        response = http.get(
            target_url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch {target_url}: {exc}") from exc

    logger.debug("Got %d bytes of HTML from %s", len(response.text), target_url)
    content = extract_global_content(response.text)
    units = parse_units(content)
    logger.info("Scraped %d units from %s", len(units), target_url)
    return units


def extract_global_content(html_text: str) -> Dict[str, Any]:
    """Decode the ``Fusion.globalContent`` object from the metadata script."""
    soup = BeautifulSoup(html_text, "html.parser")
    script = soup.find("script", id=METADATA_SCRIPT_ID)
    if script is None:
        raise FetchError(f'Could not find `<script id="{METADATA_SCRIPT_ID}">` tag')

    script_text = script.string or script.get_text()
    match = _GLOBAL_CONTENT.search(script_text)
    if not match:
        raise FetchError("Metadata script does not assign Fusion.globalContent")

    try:
        content, _ = json.JSONDecoder().raw_decode(script_text, match.end())
    except json.JSONDecodeError as exc:
        raise FetchError(f"Fusion.globalContent is not valid JSON: {exc}") from exc
    if not isinstance(content, dict):
        raise FetchError(f"Unexpected globalContent payload: {type(content).__name__}")
    return content


def parse_units(content: Dict[str, Any]) -> List[UnitSnapshot]:
    rows = content.get("units")
    if not isinstance(rows, list):
        raise FetchError("Listing payload has no `units` array")

    units: List[UnitSnapshot] = []
    for row in rows:
        try:
            units.append(UnitSnapshot.from_api(row))
        except (KeyError, TypeError, ValueError) as exc:
            unit_id = row.get("unitId") if isinstance(row, dict) else None
            raise FetchError(f"Malformed unit {unit_id or '<unknown>'}: {exc!r}") from exc
    return units
