"""
Listings Proxy — Classifieds RSS Aggregator
Fetches the configured eBay/Craigslist RSS searches and returns one merged,
deduplicated, newest-first listing set.
Registered as a Flask blueprint on the main app.

Usage in app.py:
    from listings_proxy import listings_bp
    app.register_blueprint(listings_bp)
"""

import logging

from flask import Blueprint, request, jsonify

from feed_engine import aggregator
from feed_engine.searches import load_searches, filter_by_source

log = logging.getLogger("listings")

listings_bp = Blueprint('listings_proxy', __name__)


# ── FLASK ROUTES ──

@listings_bp.route('/api/listings', methods=['GET'])
def listings():
    """Fetch every search, merge and return listings with per-source status."""
    source = request.args.get('source', '').strip()
    try:
        searches = filter_by_source(load_searches(), source)
        log.info("--- Fetching all listings ---")
        results = aggregator.fetch_all_listings(searches)
        payload = aggregator.build_listings_response(results)
    except Exception as e:
        log.exception("Listings run failed")
        return jsonify({"success": False, "error": str(e)}), 500

    log.info(f"--- Done: {payload['totalListings']} total listings ---")
    return jsonify(payload)


@listings_bp.route('/api/listings/searches', methods=['GET'])
def listing_searches():
    """Return the configured searches."""
    try:
        searches = load_searches()
    except (OSError, ValueError) as e:
        return jsonify({"error": f"Search config invalid: {e}", "searches": []}), 500
    return jsonify({"searches": searches, "count": len(searches)})
