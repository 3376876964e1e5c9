"""
Search configuration for the listings proxy.

Built-in searches cover eBay and Craigslist (Pacific Northwest) for YES
snowboards. Point LISTINGS_SEARCHES_FILE at a JSON list of
{"name", "source", "url"} objects to replace them.
"""

import json
import os
from typing import Dict, List, Optional

SEARCHES: List[Dict[str, str]] = [
    # eBay RSS feeds
    {
        "name": "eBay - YES Hel YES",
        "source": "ebay",
        "url": "https://www.ebay.com/sch/i.html?_nkw=YES+Hel+YES+snowboard&_sacat=0&LH_ItemCondition=3000&_sop=10&_rss=1",
    },
    {
        "name": "eBay - YES Hel YES 149",
        "source": "ebay",
        "url": "https://www.ebay.com/sch/i.html?_nkw=YES+Hel+YES+149+snowboard&_sacat=0&_sop=10&_rss=1",
    },
    {
        "name": "eBay - YES Women Snowboard",
        "source": "ebay",
        "url": "https://www.ebay.com/sch/i.html?_nkw=YES+women+snowboard&_sacat=0&LH_ItemCondition=3000&_sop=10&_rss=1",
    },
    # Craigslist RSS feeds
    {
        "name": "Craigslist Seattle - YES",
        "source": "craigslist",
        "url": "https://seattle.craigslist.org/search/sga?query=YES+snowboard&format=rss",
    },
    {
        "name": "Craigslist Seattle - Hel Yes",
        "source": "craigslist",
        "url": "https://seattle.craigslist.org/search/sga?query=Hel+Yes&format=rss",
    },
    {
        "name": "Craigslist Seattle - Snowboard 149",
        "source": "craigslist",
        "url": "https://seattle.craigslist.org/search/sga?query=snowboard+149&format=rss",
    },
    {
        "name": "Craigslist Portland - YES",
        "source": "craigslist",
        "url": "https://portland.craigslist.org/search/sga?query=YES+snowboard&format=rss",
    },
    {
        "name": "Craigslist Spokane - YES",
        "source": "craigslist",
        "url": "https://spokane.craigslist.org/search/sga?query=YES+snowboard&format=rss",
    },
]

REQUIRED_KEYS = ("name", "source", "url")


def validate_searches(raw) -> List[Dict[str, str]]:
    if not isinstance(raw, list):
        raise ValueError("Search config must be a JSON list")
    searches = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"Search #{i} is not an object")
        missing = [k for k in REQUIRED_KEYS if not str(entry.get(k) or "").strip()]
        if missing:
            raise ValueError(f"Search #{i} missing {', '.join(missing)}")
        if not str(entry["url"]).startswith("http"):
            raise ValueError(f"Search #{i} has an invalid url")
        searches.append({k: str(entry[k]).strip() for k in REQUIRED_KEYS})
    return searches


def load_searches(path: Optional[str] = None) -> List[Dict[str, str]]:
    """Configured searches. Reads LISTINGS_SEARCHES_FILE when set."""
    path = path or os.getenv("LISTINGS_SEARCHES_FILE")
    if not path:
        return [dict(s) for s in SEARCHES]
    with open(path, "r", encoding="utf-8") as f:
        return validate_searches(json.load(f))


def filter_by_source(searches: List[Dict[str, str]], source: Optional[str]) -> List[Dict[str, str]]:
    if not source:
        return searches
    source = source.strip().lower()
    return [s for s in searches if s["source"].lower() == source]
