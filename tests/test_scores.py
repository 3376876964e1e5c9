"""
tests/test_scores.py — ESPN View Model Mapping
===============================================
Team, fight and race event mapping; standings grouping and ordering;
next-event lookup; box score summaries. ESPN is faked at _get_json.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from feed_engine import scores


class FakeESPN:
    """Routes (url suffix, dates param) to canned payloads and records calls."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, url, params=None):
        self.calls.append((url, params))
        dates = (params or {}).get("dates")
        for (suffix, want_dates), payload in self.routes.items():
            if url.endswith(suffix) and want_dates in (dates, "*"):
                return payload
        return {}


@pytest.fixture
def espn(monkeypatch):
    def install(routes):
        fake = FakeESPN(routes)
        monkeypatch.setattr(scores, "_get_json", fake)
        return fake
    return install


def _status(state, completed=False, description="Scheduled", detail=""):
    return {"period": 2, "displayClock": "5:12",
            "type": {"state": state, "completed": completed, "description": description, "detail": detail}}


NFL_EVENT = {
    "id": "401671001",
    "name": "Buffalo Bills at Kansas City Chiefs",
    "shortName": "BUF @ KC",
    "date": "2025-01-12T18:00Z",
    "competitions": [{
        "status": _status("in", description="In Progress", detail="5:12 - 2nd Quarter"),
        "competitors": [
            {"homeAway": "home", "score": "14", "possession": True,
             "team": {"id": "12", "displayName": "Kansas City Chiefs", "abbreviation": "KC", "logo": "kc.png"},
             "records": [{"summary": "15-2"}],
             "linescores": [{"value": 7}, {"value": 7}]},
            {"homeAway": "away", "score": "10",
             "team": {"id": "2", "displayName": "Buffalo Bills", "abbreviation": "BUF", "logo": "buf.png"},
             "curatedRank": {"current": 3}},
        ],
        "venue": {"fullName": "GEHA Field at Arrowhead Stadium", "address": {"city": "Kansas City", "state": "MO"}},
        "broadcasts": [{"names": ["CBS"]}],
        "situation": {"down": 2, "distance": 5, "yardLine": 40, "downDistanceText": "2nd & 5 at BUF 40"},
        "odds": [{"details": "KC -2.5", "overUnder": 47.5}],
    }],
}

UFC_EVENT = {
    "id": "600041",
    "name": "UFC 300: Pereira vs. Hill Title Fight",
    "shortName": "UFC 300",
    "date": "2024-04-14T02:00Z",
    "competitions": [{
        "status": _status("pre"),
        "notes": [{"headline": "Light Heavyweight - Main Event"}],
        "competitors": [
            {"athlete": {"id": "1", "displayName": "Alex Pereira", "flag": {"alt": "Champion"}}, "record": "9-2-0"},
            {"athlete": {"id": "2", "displayName": "Jamahal Hill"}},
        ],
    }],
}


def _race(event_id, date, completed):
    return {
        "id": event_id, "name": f"Race {event_id}", "shortName": event_id, "date": date,
        "competitions": [{
            "status": _status("post" if completed else "pre", completed=completed),
            "venue": {"fullName": "Daytona International Speedway", "address": {"city": "Daytona Beach", "state": "FL"}},
            "competitors": [{"order": i + 1, "athlete": {"id": str(i), "displayName": f"Driver {i}"}} for i in range(12)],
        }],
    }


# ═══════════════════════════════════════════
# EVENT MAPPING
# ═══════════════════════════════════════════

def test_team_event_mapping(espn):
    espn({("/football/nfl/scoreboard", None): {"events": [NFL_EVENT]}})
    (game,) = scores.fetch_scoreboard("nfl")

    assert game["id"] == "401671001"
    assert game["date"] == "2025-01-12T18:00:00.000Z"
    assert game["isLive"] is True
    assert game["isPregame"] is False
    assert game["statusDetail"] == "5:12 - 2nd Quarter"
    assert game["period"] == 2
    assert game["venue"] == "GEHA Field at Arrowhead Stadium"
    assert game["broadcast"] == "CBS"

    assert game["homeTeam"]["shortName"] == "KC"
    assert game["homeTeam"]["record"] == "15-2"
    assert game["homeTeam"]["linescores"] == [7, 7]
    assert game["homeTeam"]["possession"] is True
    assert game["awayTeam"]["record"] == "N/A"
    assert game["awayTeam"]["rank"] == 3

    assert game["situation"]["downDistanceText"] == "2nd & 5 at BUF 40"
    assert game["odds"] == {"details": "KC -2.5", "overUnder": 47.5}


def test_team_event_without_optional_blocks(espn):
    bare = {"id": "1", "name": "A at B", "competitions": [{"competitors": []}]}
    espn({("/basketball/nba/scoreboard", None): {"events": [bare]}})
    (game,) = scores.fetch_scoreboard("nba")
    assert game["homeTeam"] is None
    assert game["venue"] == "TBD"
    assert game["broadcast"] == "N/A"
    assert game["date"] is None
    assert "situation" not in game
    assert "odds" not in game


def test_fight_event_mapping(espn):
    espn({("/mma/ufc/scoreboard", None): {"events": [UFC_EVENT]}})
    (fight,) = scores.fetch_scoreboard("mma")
    assert fight["isPregame"] is True
    assert fight["isTitleFight"] is True
    assert fight["weightClass"] == "Light Heavyweight - Main Event"
    assert fight["fighter1"]["isChampion"] is True
    assert fight["fighter1"]["record"] == "9-2-0"
    assert fight["fighter2"]["isChampion"] is False
    assert fight["fighter2"]["record"] == "N/A"
    assert fight["venue"] == "TBD"
    assert fight["location"] == "TBD"
    assert fight["broadcast"] == "PPV"


def test_race_event_caps_competitors(espn):
    espn({("/racing/nascar/cup/scoreboard", None): {"events": [_race("r1", "2024-02-18T19:30Z", False)]}})
    (race,) = scores.fetch_scoreboard("nascar")
    assert race["track"] == "Daytona International Speedway"
    assert race["location"] == "Daytona Beach, FL"
    assert race["laps"] == "N/A"
    assert len(race["competitors"]) == 10
    assert race["competitors"][0] == {"id": "0", "name": "Driver 0", "position": 1, "status": "N/A"}


def test_idle_race_scoreboard_falls_back_to_recent_results(espn):
    season = {"events": [
        _race("r1", "2024-02-18T19:30Z", True),
        _race("r2", "2024-02-25T20:00Z", True),
        _race("r3", "2024-03-03T20:30Z", True),
        _race("r4", "2024-03-10T19:30Z", True),
        _race("r5", "2024-03-17T19:30Z", False),
    ]}
    fake = espn({
        ("/racing/nascar/cup/scoreboard", None): {"events": []},
        ("/racing/nascar/cup/scoreboard", "*"): season,
    })
    races = scores.fetch_scoreboard("nascar")
    assert [r["id"] for r in races] == ["r4", "r3", "r2"]
    assert all(r["isCompleted"] for r in races)
    assert fake.calls[1][1]["dates"].isdigit()


def test_empty_team_scoreboard(espn):
    espn({("/hockey/nhl/scoreboard", None): {}})
    assert scores.fetch_scoreboard("nhl") == []


def test_unknown_sport():
    with pytest.raises(scores.UnknownSport):
        scores.fetch_scoreboard("curling")


# ═══════════════════════════════════════════
# NEXT EVENT + SUMMARY
# ═══════════════════════════════════════════

NOW = datetime(2025, 1, 12, 12, 0, tzinfo=timezone.utc)


def test_next_event_from_todays_slate(espn):
    early = dict(NFL_EVENT, id="past", date="2025-01-12T10:00Z")
    late = dict(NFL_EVENT, id="late", date="2025-01-12T21:30Z")
    espn({("/football/nfl/scoreboard", None): {"events": [late, early, NFL_EVENT]}})
    result = scores.next_event("nfl", now=NOW)
    assert result["event"]["id"] == "401671001"
    assert result["startsInSeconds"] == 6 * 3600


def test_next_event_looks_at_tomorrow(espn):
    tomorrow = dict(NFL_EVENT, id="tmrw", date="2025-01-13T01:00Z")
    fake = espn({
        ("/basketball/nba/scoreboard", None): {"events": []},
        ("/basketball/nba/scoreboard", "20250113"): {"events": [tomorrow]},
    })
    result = scores.next_event("nba", now=NOW)
    assert result["event"]["id"] == "tmrw"
    assert fake.calls[-1][1] == {"dates": "20250113"}


def test_next_event_race_uses_season(espn):
    fake = espn({("/racing/nascar/cup/scoreboard", "2025"): {"events": [_race("r9", "2025-02-16T19:30Z", False)]}})
    result = scores.next_event("nascar", now=NOW)
    assert result["event"]["id"] == "r9"
    assert fake.calls[-1][1] == {"dates": "2025"}


def test_next_event_none(espn):
    espn({})
    assert scores.next_event("mma", now=NOW) == {"sport": "mma", "event": None}


def test_game_summary_stats(espn):
    fake = espn({("/football/college-football/summary", "*"): {"boxscore": {"teams": [
        {"homeAway": "home", "statistics": [{"name": "totalYards", "displayValue": "412"},
                                            {"name": "turnovers", "value": 1}]},
        {"homeAway": "away", "statistics": [{"name": "totalYards", "displayValue": "288"}]},
    ]}}})
    summary = scores.fetch_game_summary("college-football", 401520281)
    assert summary["eventId"] == "401520281"
    assert summary["teams"]["home"] == {"totalYards": "412", "turnovers": 1}
    assert summary["teams"]["away"] == {"totalYards": "288"}
    assert fake.calls[0][1] == {"event": "401520281"}


# ═══════════════════════════════════════════
# STANDINGS
# ═══════════════════════════════════════════

def _entry(team_id, **stats):
    return {
        "team": {"id": team_id, "displayName": f"Team {team_id}", "abbreviation": team_id.upper(),
                 "logos": [{"href": f"{team_id}.png"}]},
        "stats": [{"name": k, "value": v} for k, v in stats.items()],
    }


def test_nfl_standings_grouped_by_division(espn):
    espn({("/football/nfl/standings", None): {"children": [
        {"abbreviation": "AFC", "children": [
            {"name": "AFC East", "standings": {"entries": [_entry("buf", wins=13, losses=4), _entry("mia", wins=8, losses=9)]}},
            {"name": "AFC West", "standings": {"entries": [_entry("kc", wins=15, losses=2)]}},
        ]},
        {"abbreviation": "NFC", "children": [
            {"name": "NFC North", "standings": {"entries": [_entry("det", wins=15, losses=2)]}},
        ]},
    ]}})
    result = scores.fetch_standings("nfl")
    groups = result["groups"]
    assert list(groups) == ["AFC East", "AFC West", "NFC North"]
    assert [t["id"] for t in groups["AFC East"]] == ["buf", "mia"]
    buf = groups["AFC East"][0]
    assert buf["wins"] == 13
    assert buf["ties"] == 0
    assert buf["logo"] == "buf.png"
    assert buf["stats"]["losses"] == 4


def test_nhl_standings_merge_divisions_and_sort_by_points(espn):
    espn({("/hockey/nhl/standings", None): {"children": [
        {"name": "Eastern Conference", "children": [
            {"name": "Atlantic", "standings": {"entries": [
                _entry("bos", points=50, wins=20), _entry("fla", points=60, wins=25, OTL=4)]}},
            {"name": "Metropolitan", "standings": {"entries": [_entry("nyr", points=60, wins=27)]}},
        ]},
        {"name": "Western Conference", "standings": {"entries": [_entry("dal", points=55, wins=24)]}},
    ]}})
    groups = scores.fetch_standings("nhl")["groups"]
    assert [t["id"] for t in groups["Eastern Conference"]] == ["nyr", "fla", "bos"]
    assert groups["Eastern Conference"][1]["otLosses"] == 4
    assert [t["id"] for t in groups["Western Conference"]] == ["dal"]


def test_nba_standings_sorted_by_win_percent(espn):
    espn({("/basketball/nba/standings", None): {"children": [
        {"name": "Eastern Conference", "abbreviation": "East", "standings": {"entries": [
            _entry("nyk", winPercent=0.5, wins=10),
            _entry("bos", winPercent=0.7, wins=14),
            _entry("cle", winPercent=0.7, wins=16),
        ]}},
    ]}})
    groups = scores.fetch_standings("nba")["groups"]
    assert [t["id"] for t in groups["Eastern Conference"]] == ["cle", "bos", "nyk"]


def test_nascar_driver_standings_alternate_stat_names(espn):
    espn({("/racing/nascar/cup/standings", None): {"standings": [{"entries": [
        {"athlete": {"displayName": "Kyle Larson"}, "stats": [
            {"name": "totalPoints", "value": 2100}, {"name": "victories", "value": 6}, {"name": "top5", "value": 15}]},
        {"athlete": {"displayName": "William Byron"}, "position": 2, "stats": [{"name": "points", "value": 2080}]},
    ]}]}})
    drivers = scores.fetch_standings("nascar")["groups"]["Drivers"]
    assert drivers[0] == {"position": 1, "name": "Kyle Larson", "points": 2100, "wins": 6,
                          "top5": 15, "top10": 0, "poles": 0, "avgFinish": 0}
    assert drivers[1]["position"] == 2
    assert drivers[1]["points"] == 2080


class _JsonResp:
    status_code = 200

    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


@pytest.mark.parametrize("payload", [None, [], ["event"]])
def test_non_object_payload_is_value_error(monkeypatch, payload):
    monkeypatch.setattr(scores.requests, "get", lambda *a, **kw: _JsonResp(payload))
    with pytest.raises(ValueError, match="Unexpected ESPN payload"):
        scores.fetch_standings("nfl")


def test_nascar_standings_empty(espn):
    espn({("/racing/nascar/cup/standings", None): {}})
    assert scores.fetch_standings("nascar") == {"sport": "nascar", "groups": {}}
