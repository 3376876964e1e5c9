"""
feed_engine/rss.py — Classifieds RSS Fetch + Parse
===================================================
Fetches one RSS feed and turns its <item> blocks into listing records.

Feeds from eBay and Craigslist are loosely formed (unescaped ampersands,
HTML inside descriptions, CDATA in some fields and not others), so items
are pulled out with regexes instead of a strict XML parser.
"""

import hashlib
import os
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional, Tuple

import requests
from bs4 import BeautifulSoup

LISTINGS_TIMEOUT = float(os.getenv("LISTINGS_TIMEOUT", "15"))

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Accept": "application/rss+xml, application/xml, text/xml, */*",
}

ITEM_RE = re.compile(r"<item(?:\s[^>]*)?>([\s\S]*?)</item>", re.IGNORECASE)
ENTRY_RE = re.compile(r"<entry(?:\s[^>]*)?>([\s\S]*?)</entry>", re.IGNORECASE)
CDATA_RE = re.compile(r"<!\[CDATA\[([\s\S]*?)\]\]>", re.IGNORECASE)
IMG_RE = re.compile(r"<img[^>]+src=[\"']([^\"']+)[\"']", re.IGNORECASE)
PRICE_RE = re.compile(r"\$[\d,]+(?:\.\d{2})?")
ATOM_LINK_RE = re.compile(r"<link[^>]*href=[\"']([^\"']+)[\"']", re.IGNORECASE)

ID_LENGTH = 24
SUMMARY_LIMIT = 500


class FeedFetchError(Exception):
    """Transport-level failure while fetching a feed."""


def fetch_feed(url: str, timeout: float = LISTINGS_TIMEOUT) -> Tuple[int, str]:
    """GET a feed. Returns (status_code, body); non-200 is not an error here."""
    try:
        resp = requests.get(url, headers=HEADERS, timeout=timeout, allow_redirects=True)
    except requests.Timeout as e:
        raise FeedFetchError("Request timeout") from e
    except requests.RequestException as e:
        raise FeedFetchError(str(e)) from e
    # requests assumes ISO-8859-1 for text/xml without a charset
    return resp.status_code, resp.content.decode("utf-8", errors="replace")


# ── FIELD HELPERS ──

def decode_entities(text: str) -> str:
    if not text:
        return ""
    text = text.replace("&amp;", "&").replace("&lt;", "<").replace("&gt;", ">")
    text = text.replace("&quot;", '"').replace("&#39;", "'").replace("&apos;", "'")
    return text.replace("&nbsp;", " ")


def get_tag(block: str, tag: str) -> str:
    """Text of the first <tag> in block, CDATA unwrapped. Missing tag gives ''."""
    match = re.search(rf"<{tag}(?:\s[^>]*)?>([\s\S]*?)</{tag}>", block, re.IGNORECASE)
    if not match:
        return ""
    return CDATA_RE.sub(r"\1", match.group(1)).strip()


def listing_id(link: str) -> str:
    return hashlib.md5(link.strip().encode("utf-8")).hexdigest()[:ID_LENGTH]


def extract_image(description: str) -> Optional[str]:
    if not description:
        return None
    html = decode_entities(description) if "&lt;" in description else description
    match = IMG_RE.search(html)
    if match:
        return match.group(1)
    img = BeautifulSoup(html, "html.parser").find("img", src=True)
    return img["src"] if img else None


def extract_price(title: str, description: str) -> Optional[str]:
    match = PRICE_RE.search(f"{title} {description}")
    return match.group(0) if match else None


def summarize(description: str) -> str:
    if not description:
        return ""
    text = BeautifulSoup(decode_entities(description), "html.parser").get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()[:SUMMARY_LIMIT]


def utc_iso(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_date(raw: str, fallback: datetime) -> str:
    """RFC-822 (RSS) or ISO-8601 (Atom) date to UTC ISO. Unparseable -> fallback."""
    raw = (raw or "").strip()
    if not raw:
        return utc_iso(fallback)
    try:
        return utc_iso(parsedate_to_datetime(raw))
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return utc_iso(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return utc_iso(fallback)


# ── PARSER ──

def _build_listing(title: str, link: str, description: str, raw_date: str,
                   source: str, search_name: str, now: datetime) -> Dict[str, Any]:
    return {
        "id": listing_id(link),
        "title": title,
        "link": link,
        "image": extract_image(description),
        "price": extract_price(title, description),
        "summary": summarize(description),
        "source": source,
        "searchName": search_name,
        "date": parse_date(raw_date, now),
    }


def parse_rss(xml_text: str, source: str, search_name: str,
              now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Parse RSS <item> blocks (or Atom <entry> blocks) into listing records."""
    now = now or datetime.now(timezone.utc)
    listings: List[Dict[str, Any]] = []
    xml_text = xml_text or ""

    for match in ITEM_RE.finditer(xml_text):
        item = match.group(1)
        link = get_tag(item, "link")
        if not link:
            continue
        listings.append(_build_listing(
            decode_entities(get_tag(item, "title")),
            link,
            get_tag(item, "description"),
            get_tag(item, "pubDate") or get_tag(item, "dc:date"),
            source, search_name, now,
        ))

    if listings:
        return listings

    # Atom fallback
    for match in ENTRY_RE.finditer(xml_text):
        entry = match.group(1)
        href = ATOM_LINK_RE.search(entry)
        link = href.group(1).strip() if href else get_tag(entry, "link")
        if not link:
            continue
        listings.append(_build_listing(
            decode_entities(get_tag(entry, "title")),
            link,
            get_tag(entry, "summary") or get_tag(entry, "content"),
            get_tag(entry, "updated") or get_tag(entry, "published"),
            source, search_name, now,
        ))

    return listings
