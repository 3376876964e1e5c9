"""
feed_engine/aggregator.py — Listings Aggregation Pipeline
==========================================================
Fetch every configured search in order, record a per-source report,
then merge: dedupe by link-derived id (first occurrence wins) and sort
newest first.

Feeds are fetched one after another. A failing feed never stops the run;
its error lands in that source's report and the rest continue.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from opentelemetry import trace

from .rss import FeedFetchError, fetch_feed, parse_rss, utc_iso

log = logging.getLogger("listings")
tracer = trace.get_tracer("feedboard.listings")

Fetcher = Callable[[str], Tuple[int, str]]


def fetch_search(search: Dict[str, str], fetcher: Optional[Fetcher] = None) -> Dict[str, Any]:
    """Fetch and parse one search. Always returns a result, never raises on fetch errors."""
    fetcher = fetcher or fetch_feed
    result: Dict[str, Any] = {
        "search": search["name"],
        "source": search["source"],
        "status": "error",
        "count": 0,
        "listings": [],
    }

    with tracer.start_as_current_span("listings.fetch_search") as span:
        span.set_attribute("feed.name", search["name"])
        span.set_attribute("feed.source", search["source"])
        log.info(f"Fetching: {search['name']}")
        try:
            status, body = fetcher(search["url"])
        except FeedFetchError as e:
            result["error"] = str(e)
            log.warning(f"  x {search['name']}: {e}")
            return result

        span.set_attribute("http.status_code", status)
        if status != 200:
            result["error"] = f"HTTP {status}"
            log.warning(f"  x {search['name']}: HTTP {status}")
            return result

        listings = parse_rss(body, search["source"], search["name"])
        result.update(status="success", count=len(listings), listings=listings)
        log.info(f"  ok Found {len(listings)} listings")
        return result


def fetch_all_listings(searches: List[Dict[str, str]],
                       fetcher: Optional[Fetcher] = None) -> List[Dict[str, Any]]:
    return [fetch_search(s, fetcher) for s in searches]


def _date_key(listing: Dict[str, Any]) -> datetime:
    try:
        return datetime.fromisoformat(listing["date"].replace("Z", "+00:00"))
    except (KeyError, AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)


def merge_listings(results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten results, drop repeated ids, sort by date descending (stable)."""
    seen = set()
    merged = []
    for result in results:
        for listing in result.get("listings", []):
            if listing["id"] in seen:
                continue
            seen.add(listing["id"])
            merged.append(listing)
    merged.sort(key=_date_key, reverse=True)
    return merged


def source_report(result: Dict[str, Any]) -> Dict[str, Any]:
    report = {
        "name": result["search"],
        "source": result["source"],
        "status": result["status"],
        "count": result.get("count") or 0,
    }
    if result.get("error"):
        report["error"] = result["error"]
    return report


def build_listings_response(results: List[Dict[str, Any]],
                            fetched_at: Optional[datetime] = None) -> Dict[str, Any]:
    listings = merge_listings(results)
    return {
        "success": True,
        "fetchedAt": utc_iso(fetched_at or datetime.now(timezone.utc)),
        "sources": [source_report(r) for r in results],
        "totalListings": len(listings),
        "listings": listings,
    }
