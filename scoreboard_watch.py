"""
Live Scoreboard Watcher
Polls ESPN every 30 seconds and prints one line per event.

Run:
  python scoreboard_watch.py --sport nfl
  python scoreboard_watch.py --sport nba --event 401585601 --event 401585602
  python scoreboard_watch.py --sport nascar --once
"""
import logging
import sys
from typing import Any, Dict, List, Optional

from feed_engine import scores
from feed_engine.poller import LivePoller, POLL_INTERVAL
from observability import init_logging, init_tracing

log = logging.getLogger("watch")


def format_event(event: Dict[str, Any]) -> str:
    """One terminal line for a mapped event, whatever its kind."""
    status = "LIVE " + event["statusDetail"] if event["isLive"] else (event["statusDetail"] or event["status"])
    if "homeTeam" in event:
        away, home = event["awayTeam"] or {}, event["homeTeam"] or {}
        line = (f"{away.get('shortName') or '?'} {away.get('score') or 0} @ "
                f"{home.get('shortName') or '?'} {home.get('score') or 0}")
    elif "fighter1" in event:
        line = f"{event['fighter1']['name']} vs {event['fighter2']['name']} ({event['weightClass']})"
    else:
        leaders = ", ".join(f"{c['position']}. {c['name']}" for c in event["competitors"][:3])
        line = f"{event['name']} @ {event['track']}" + (f" | {leaders}" if leaders else "")
    return f"[{status}] {line}"


def select_events(events: List[Dict[str, Any]], event_ids: Optional[List[str]]) -> List[Dict[str, Any]]:
    if not event_ids:
        return events
    wanted = {str(e) for e in event_ids}
    return [e for e in events if str(e["id"]) in wanted]


def make_fetch(sport: str, event_ids: Optional[List[str]] = None):
    def _fetch():
        return select_events(scores.fetch_scoreboard(sport), event_ids)
    return _fetch


def print_events(events: List[Dict[str, Any]], out=sys.stdout) -> None:
    if not events:
        print("No games right now.", file=out)
    for event in events:
        print(format_event(event), file=out)
    out.flush()


def main(argv=None) -> int:
    import argparse
    p = argparse.ArgumentParser(description="Feedboard live scoreboard watcher")
    p.add_argument("--sport", choices=sorted(scores.SPORTS), default="nfl")
    p.add_argument("--event", action="append", dest="events", help="Only show this event id (repeatable)")
    p.add_argument("--interval", type=float, default=POLL_INTERVAL)
    p.add_argument("--once", action="store_true", help="Poll a single time and exit")
    a = p.parse_args(argv)

    init_logging()
    init_tracing()

    poller = LivePoller(
        make_fetch(a.sport, a.events),
        on_update=print_events,
        on_error=lambda e: log.error(f"Error updating {a.sport}: {e}"),
        interval=a.interval,
    )
    if a.once:
        return 0 if poller.poll_once() is not None else 1

    poller.start()
    try:
        poller.wait()
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
