from .rss import FeedFetchError, fetch_feed, parse_rss, listing_id
from .aggregator import fetch_all_listings, merge_listings, build_listings_response
from .searches import load_searches, filter_by_source

# Sports view models
from .scores import (
    SPORTS,
    UnknownSport,
    fetch_scoreboard,
    fetch_standings,
    fetch_game_summary,
    next_event,
)
from .poller import LivePoller
