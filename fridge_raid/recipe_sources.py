"""
Remote recipe sources used to build the catalog.

- Korean food safety recipe API (COOKRCP01); requires FOODSAFETY_API_KEY
  ("sample" works for a small dry run).
- The dhchoi-lazy/korean-cuisine dataset on GitHub.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import requests

logger = logging.getLogger(__name__)

FOODSAFETY_API_KEY = os.environ.get("FOODSAFETY_API_KEY", "sample")
FOODSAFETY_BASE_URL = "http://openapi.foodsafetykorea.go.kr/api"
FOODSAFETY_SERVICE = "COOKRCP01"

GITHUB_CONTENTS_URL = "https://api.github.com/repos/dhchoi-lazy/korean-cuisine/contents/data"

REQUEST_TIMEOUT = 10
USER_AGENT = "fridge-raid-catalog/1.0"
GITHUB_BATCH_SIZE = 20


def _get_json(url: str, params: Optional[dict] = None):
    response = requests.get(
        url,
        params=params,
        headers={"User-Agent": USER_AGENT},
        timeout=REQUEST_TIMEOUT
    )
    response.raise_for_status()
    return response.json()


def fetch_foodsafety_recipes(
    start: int = 1,
    end: int = 100,
    api_key: Optional[str] = None
) -> list[dict]:
    """
    Fetch raw COOKRCP01 rows.

    Args:
        start: First row index (1-based)
        end: Last row index, inclusive
        api_key: Overrides FOODSAFETY_API_KEY

    Returns:
        List of raw rows, empty on failure
    """
    key = api_key or FOODSAFETY_API_KEY
    url = f"{FOODSAFETY_BASE_URL}/{key}/{FOODSAFETY_SERVICE}/json/{start}/{end}"
    logger.info("Fetching recipes %d-%d from %s", start, end, FOODSAFETY_SERVICE)

    try:
        data = _get_json(url)
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch recipes: %s", e)
        return []

    rows = (data.get(FOODSAFETY_SERVICE) or {}).get("row") if isinstance(data, dict) else None
    if not rows:
        logger.error("Invalid API response format: %s", str(data)[:200])
        return []
    return rows


def _fetch_github_file(entry: dict) -> Optional[tuple[str, dict]]:
    try:
        return entry["name"], _get_json(entry["download_url"])
    except (requests.RequestException, ValueError, KeyError) as e:
        logger.warning("Skipping %s: %s", entry.get("name"), e)
        return None


def fetch_github_recipes(contents_url: str = GITHUB_CONTENTS_URL) -> list[tuple[str, dict]]:
    """
    Fetch every recipe JSON file of the korean-cuisine dataset.

    Returns:
        (filename, data) pairs, empty if the file list is unavailable
    """
    logger.info("Fetching file list from %s", contents_url)
    try:
        listing = _get_json(contents_url)
    except (requests.RequestException, ValueError) as e:
        logger.error("Failed to fetch file list: %s", e)
        return []

    if not isinstance(listing, list):
        logger.error("Unexpected file list (rate limited?): %s", str(listing)[:200])
        return []

    entries = [f for f in listing if f.get("name", "").endswith(".json")]
    logger.info("Found %d JSON files", len(entries))

    results = []
    with ThreadPoolExecutor(max_workers=GITHUB_BATCH_SIZE) as pool:
        for fetched in pool.map(_fetch_github_file, entries):
            if fetched is not None:
                results.append(fetched)
    return results
