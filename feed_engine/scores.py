"""
feed_engine/scores.py — ESPN Scoreboard / Standings View Models
================================================================
Fetches ESPN's public site API and maps the payloads into flat view
models per sport. Three event shapes exist:

  team   — home/away matchups (NFL, college football, NBA, NHL)
  fight  — two-athlete bouts (UFC)
  race   — multi-driver fields (NASCAR Cup)

ESPN's contract is undocumented and fields come and go between sports
and seasons, so every lookup is null-coalesced.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from opentelemetry import trace

from .rss import utc_iso

log = logging.getLogger("scores")
tracer = trace.get_tracer("feedboard.scores")

SITE_API = "https://site.api.espn.com/apis/site/v2/sports"
STANDINGS_API = "https://site.api.espn.com/apis/v2/sports"
ESPN_TIMEOUT = float(os.getenv("ESPN_TIMEOUT", "10"))

SPORTS: Dict[str, Dict[str, Any]] = {
    "nfl": {"label": "NFL", "path": "football/nfl", "kind": "team"},
    "college-football": {"label": "College Football", "path": "football/college-football", "kind": "team"},
    "nba": {"label": "NBA", "path": "basketball/nba", "kind": "team"},
    "nhl": {"label": "NHL", "path": "hockey/nhl", "kind": "team"},
    "mma": {"label": "UFC", "path": "mma/ufc", "kind": "fight"},
    "nascar": {"label": "NASCAR Cup", "path": "racing/nascar/cup", "kind": "race"},
}

RACE_COMPETITORS = 10
RECENT_RACES = 3


class UnknownSport(KeyError):
    pass


def get_sport(sport: str) -> Dict[str, Any]:
    try:
        return SPORTS[sport]
    except KeyError:
        raise UnknownSport(sport) from None


def _get_json(url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    with tracer.start_as_current_span("espn.get") as span:
        span.set_attribute("http.url", url)
        resp = requests.get(url, params=params, timeout=ESPN_TIMEOUT,
                            headers={"Accept": "application/json"})
        span.set_attribute("http.status_code", resp.status_code)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected ESPN payload: {type(data).__name__}")
        return data


# ── SMALL HELPERS ──

def _first(seq, default=None):
    return seq[0] if seq else default


def _broadcast(competition: Dict[str, Any], default: str = "N/A") -> str:
    names = (_first(competition.get("broadcasts") or [], {}) or {}).get("names") or []
    return _first(names, default)


def _venue(competition: Dict[str, Any]) -> str:
    return (competition.get("venue") or {}).get("fullName") or "TBD"


def _location(competition: Dict[str, Any]) -> str:
    address = (competition.get("venue") or {}).get("address") or {}
    parts = [p for p in (address.get("city"), address.get("state")) if p]
    return ", ".join(parts) if parts else "TBD"


def _iso(raw: Optional[str]) -> Optional[str]:
    dt = parse_espn_date(raw)
    return utc_iso(dt) if dt else None


def parse_espn_date(raw: Optional[str]) -> Optional[datetime]:
    """ESPN dates look like 2025-01-12T18:00Z (no seconds)."""
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def stats_by_name(stats: List[Dict[str, Any]], display: bool = False) -> Dict[str, Any]:
    out = {}
    for stat in stats or []:
        name = stat.get("name")
        if not name:
            continue
        if display:
            out[name] = stat.get("displayValue") or stat.get("value") or "0"
        else:
            out[name] = stat.get("value")
    return out


def _stat(stats: Dict[str, Any], *names, default=0):
    for name in names:
        if stats.get(name):
            return stats[name]
    return default


# ── EVENT MAPPING ──

def _status(competition: Dict[str, Any]) -> Dict[str, Any]:
    status = competition.get("status") or {}
    stype = status.get("type") or {}
    state = stype.get("state")
    return {
        "status": stype.get("description") or "",
        "statusDetail": stype.get("detail") or "",
        "isLive": state == "in",
        "isCompleted": bool(stype.get("completed")),
        "isPregame": state == "pre",
        "period": status.get("period") or 0,
        "clock": status.get("displayClock") or "",
    }


def map_team(competitor: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not competitor:
        return None
    team = competitor.get("team") or {}
    return {
        "id": team.get("id"),
        "name": team.get("displayName"),
        "shortName": team.get("abbreviation"),
        "score": competitor.get("score"),
        "logo": team.get("logo"),
        "record": (_first(competitor.get("records") or [], {}) or {}).get("summary") or "N/A",
        "rank": (competitor.get("curatedRank") or {}).get("current"),
        "linescores": [ls.get("value") for ls in competitor.get("linescores") or []],
        "possession": bool(competitor.get("possession")),
    }


def map_team_event(event: Dict[str, Any], competition: Dict[str, Any]) -> Dict[str, Any]:
    competitors = competition.get("competitors") or []
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)
    mapped = {
        "homeTeam": map_team(home),
        "awayTeam": map_team(away),
    }

    situation = competition.get("situation")
    if situation:
        mapped["situation"] = {
            "down": situation.get("down"),
            "distance": situation.get("distance"),
            "yardLine": situation.get("yardLine"),
            "possessionText": situation.get("possessionText") or "",
            "downDistanceText": situation.get("downDistanceText") or "",
        }

    odds = _first(competition.get("odds") or [])
    if odds:
        mapped["odds"] = {"details": odds.get("details"), "overUnder": odds.get("overUnder")}
    return mapped


def map_fighter(competitor: Optional[Dict[str, Any]], fallback_name: str) -> Dict[str, Any]:
    competitor = competitor or {}
    athlete = competitor.get("athlete") or {}
    flag = (athlete.get("flag") or {}).get("alt") or ""
    return {
        "id": athlete.get("id"),
        "name": athlete.get("displayName") or fallback_name,
        "record": competitor.get("record") or "N/A",
        "rank": competitor.get("rank"),
        "isChampion": "Champion" in flag,
    }


def map_fight_event(event: Dict[str, Any], competition: Dict[str, Any]) -> Dict[str, Any]:
    competitors = competition.get("competitors") or []
    name = (event.get("name") or "").lower()
    note = _first(competition.get("notes") or [], {}) or {}
    return {
        "weightClass": note.get("headline") or "MMA",
        "isTitleFight": "championship" in name or "title" in name,
        "fighter1": map_fighter(competitors[0] if len(competitors) > 0 else None, "Fighter 1"),
        "fighter2": map_fighter(competitors[1] if len(competitors) > 1 else None, "Fighter 2"),
        "location": _location(competition),
    }


def map_race_event(event: Dict[str, Any], competition: Dict[str, Any],
                   limit: int = RACE_COMPETITORS) -> Dict[str, Any]:
    drivers = []
    for comp in (competition.get("competitors") or [])[:limit]:
        athlete = comp.get("athlete") or {}
        drivers.append({
            "id": athlete.get("id"),
            "name": athlete.get("displayName") or "Unknown",
            "position": comp.get("order") or "N/A",
            "status": comp.get("status") or "N/A",
        })
    return {
        "track": _venue(competition),
        "location": _location(competition),
        "laps": competition.get("laps") or "N/A",
        "competitors": drivers,
    }


KIND_MAPPERS = {
    "team": map_team_event,
    "fight": map_fight_event,
    "race": map_race_event,
}


def map_event(event: Dict[str, Any], kind: str) -> Dict[str, Any]:
    competition = _first(event.get("competitions") or [], {}) or {}
    base = {
        "id": event.get("id"),
        "name": event.get("name"),
        "shortName": event.get("shortName"),
        "date": _iso(event.get("date")),
        "venue": _venue(competition),
        "broadcast": _broadcast(competition, "PPV" if kind == "fight" else "N/A"),
    }
    base.update(_status(competition))
    base.update(KIND_MAPPERS[kind](event, competition))
    return base


# ── SCOREBOARD ──

def scoreboard_url(sport: str) -> str:
    return f"{SITE_API}/{get_sport(sport)['path']}/scoreboard"


def fetch_scoreboard_events(sport: str, dates: Optional[str] = None) -> List[Dict[str, Any]]:
    params = {"dates": dates} if dates else None
    data = _get_json(scoreboard_url(sport), params)
    return data.get("events") or []


def fetch_scoreboard(sport: str, dates: Optional[str] = None) -> List[Dict[str, Any]]:
    """Mapped events for a sport. Races fall back to recent results when idle."""
    kind = get_sport(sport)["kind"]
    events = fetch_scoreboard_events(sport, dates)
    if not events and kind == "race" and not dates:
        return fetch_recent_races(sport)
    return [map_event(e, kind) for e in events]


def fetch_recent_races(sport: str, year: Optional[int] = None,
                       limit: int = RECENT_RACES) -> List[Dict[str, Any]]:
    year = year or datetime.now(timezone.utc).year
    events = fetch_scoreboard_events(sport, str(year))
    completed = [
        e for e in events
        if (((_first(e.get("competitions") or [], {}) or {}).get("status") or {}).get("type") or {}).get("completed")
    ]
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    completed.sort(key=lambda e: parse_espn_date(e.get("date")) or epoch, reverse=True)
    return [map_event(e, "race") for e in completed[:limit]]


def next_event(sport: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Earliest upcoming event, looking past today's slate when needed."""
    now = now or datetime.now(timezone.utc)
    kind = get_sport(sport)["kind"]

    def _upcoming(events):
        future = []
        for e in events:
            start = parse_espn_date(e.get("date"))
            if start and start > now:
                future.append((start, e))
        future.sort(key=lambda pair: pair[0])
        return future

    upcoming = _upcoming(fetch_scoreboard_events(sport))
    if not upcoming:
        if kind == "race":
            later = str(now.year)
        else:
            later = (now + timedelta(days=1)).strftime("%Y%m%d")
        upcoming = _upcoming(fetch_scoreboard_events(sport, later))

    if not upcoming:
        return {"sport": sport, "event": None}

    start, event = upcoming[0]
    return {
        "sport": sport,
        "event": map_event(event, kind),
        "startsInSeconds": int((start - now).total_seconds()),
    }


def fetch_game_summary(sport: str, event_id: str) -> Dict[str, Any]:
    url = f"{SITE_API}/{get_sport(sport)['path']}/summary"
    data = _get_json(url, {"event": str(event_id)})
    teams: Dict[str, Dict[str, Any]] = {}
    for team_data in (data.get("boxscore") or {}).get("teams") or []:
        side = team_data.get("homeAway") or (team_data.get("team") or {}).get("abbreviation")
        if side:
            teams[side] = stats_by_name(team_data.get("statistics"), display=True)
    return {"sport": sport, "eventId": str(event_id), "teams": teams}


# ── STANDINGS ──

def map_standing(entry: Dict[str, Any], sport: str) -> Dict[str, Any]:
    team = entry.get("team") or {}
    stats = stats_by_name(entry.get("stats"))
    row = {
        "id": team.get("id"),
        "name": team.get("displayName"),
        "abbreviation": team.get("abbreviation"),
        "logo": ((_first(team.get("logos") or [], {}) or {}).get("href")),
        "wins": _stat(stats, "wins"),
        "losses": _stat(stats, "losses"),
        "ties": _stat(stats, "ties"),
        "winPercent": _stat(stats, "winPercent"),
        "gamesPlayed": _stat(stats, "gamesPlayed"),
        "pointsFor": _stat(stats, "pointsFor"),
        "pointsAgainst": _stat(stats, "pointsAgainst"),
        "rank": _stat(stats, "rank", default=entry.get("position") or 99),
        "stats": stats,
    }
    if sport == "nhl":
        row.update(
            otLosses=_stat(stats, "otLosses", "OTL"),
            points=_stat(stats, "points"),
            goalDiff=_stat(stats, "pointDifferential", "differential"),
        )
    return row


def map_driver_standing(entry: Dict[str, Any], index: int) -> Dict[str, Any]:
    driver = entry.get("athlete") or entry.get("team") or {}
    stats = stats_by_name(entry.get("stats"))
    return {
        "position": entry.get("position") or index + 1,
        "name": driver.get("displayName") or driver.get("name") or "Unknown Driver",
        "points": _stat(stats, "points", "totalPoints"),
        "wins": _stat(stats, "wins", "victories"),
        "top5": _stat(stats, "top5", "top5Finishes"),
        "top10": _stat(stats, "top10", "top10Finishes"),
        "poles": _stat(stats, "poles", "poleWins"),
        "avgFinish": _stat(stats, "avgFinish", "averageFinish"),
    }


def _entries(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    return (node.get("standings") or {}).get("entries") or []


def _collect_groups(node: Dict[str, Any], groups: Dict[str, List[Dict[str, Any]]]) -> None:
    """Walk the children tree; every node holding entries becomes a group."""
    entries = _entries(node)
    if entries:
        name = node.get("name") or node.get("abbreviation") or "Other"
        groups.setdefault(name, []).extend(entries)
    for child in node.get("children") or []:
        _collect_groups(child, groups)


def _collect_descendant_entries(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    entries = list(_entries(node))
    for child in node.get("children") or []:
        entries.extend(_collect_descendant_entries(child))
    return entries


SORT_KEYS = {
    "nhl": ("points", "wins"),
    "nba": ("winPercent", "wins"),
    "college-football": ("winPercent", "wins"),
}


def group_standings(data: Dict[str, Any], sport: str) -> Dict[str, List[Dict[str, Any]]]:
    raw: Dict[str, List[Dict[str, Any]]] = {}
    if sport == "nhl":
        # conferences, with any division children folded in
        for conference in data.get("children") or []:
            name = conference.get("name") or conference.get("abbreviation") or "Other"
            raw[name] = _collect_descendant_entries(conference)
    else:
        for child in data.get("children") or []:
            _collect_groups(child, raw)

    groups = {}
    sort_keys = SORT_KEYS.get(sport)
    for name, entries in raw.items():
        rows = [map_standing(e, sport) for e in entries]
        if not rows:
            continue
        if sort_keys:
            rows.sort(key=lambda r: tuple(r[k] or 0 for k in sort_keys), reverse=True)
        groups[name] = rows
    return groups


def driver_entries(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    standings = data.get("standings")
    if isinstance(standings, list) and standings and standings[0].get("entries"):
        return standings[0]["entries"]
    if data.get("entries"):
        return data["entries"]
    children = data.get("children") or []
    if children and children[0].get("standings"):
        return _entries(children[0])
    return []


def fetch_standings(sport: str) -> Dict[str, Any]:
    info = get_sport(sport)
    data = _get_json(f"{STANDINGS_API}/{info['path']}/standings")
    if info["kind"] == "race":
        entries = driver_entries(data)
        if not entries:
            log.warning(f"No standings entries in {sport} response")
        groups = {"Drivers": [map_driver_standing(e, i) for i, e in enumerate(entries)]} if entries else {}
    else:
        groups = group_standings(data, sport)
    return {"sport": sport, "groups": groups}
