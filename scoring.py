"""
Tie-aware place scoring and team score aggregation.

Rows that share a place form a tie group. A group of k swimmers at place p
occupies places p..p+k-1, splits the points of those places evenly, and the
next group starts at p+k:

    table {1: 9, 2: 4, 3: 3}, places [1, 1, 2]  ->  6.5, 6.5, 3.0 (placed 3rd)
"""

import json
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

import pandas as pd

from config import (
    DEFAULT_RELAY_MULTIPLIER, DEFAULT_SCORING_PLACES, DEFAULT_START_POINTS, RELAY_SCORING_PLACES,
)


@dataclass
class ScoredPlacement:
    place: Optional[int]  # None for a disqualified row
    points: float


# ---------------------------------------------------------------------------
# Scoring tables
# ---------------------------------------------------------------------------

# points below the winner for each place, A/B/C finals and A/B finals
_OFFSETS_24 = [0, 4, 5, 6, 7, 8, 9, 10, 12, 15, 16, 17, 18, 19, 20, 21, 23, 25, 26, 27, 28, 29, 30, 31]
_OFFSETS_16 = [0, 3, 4, 5, 6, 7, 8, 9, 11, 13, 14, 15, 16, 17, 18, 19]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_scoring_table(places: int = DEFAULT_SCORING_PLACES, start_points: int = DEFAULT_START_POINTS,
                           relay_multiplier: float = DEFAULT_RELAY_MULTIPLIER) -> dict:
    """Individual and relay tables for a championship format.

    24 places: 32, 28, 27, 26, ... 2, 1 (with start_points=32)
    16 places: 20, 17, 16, 15, ... 2, 1 (with start_points=20)
    Anything else decreases by one point per place, never below 1. Relays
    score the first eight places at relay_multiplier times the individual value.
    """
    if places == 24:
        individual = {i + 1: start_points - off for i, off in enumerate(_OFFSETS_24)}
    elif places == 16:
        individual = {i + 1: start_points - off for i, off in enumerate(_OFFSETS_16)}
    else:
        individual = {i: max(1, start_points - (i - 1)) for i in range(1, places + 1)}

    relay = {i: _round_half_up(individual[i] * relay_multiplier)
             for i in range(1, min(places, RELAY_SCORING_PLACES) + 1)}
    return {'individual': individual, 'relay': relay}


def load_scoring_table(raw) -> Dict[int, float]:
    """Scoring table from a JSON string or dict with string keys -> {place: points}"""
    if not raw:
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)
    return {int(place): float(points) for place, points in raw.items()}


def points_for_place(place: Optional[int], table: Dict[int, float],
                     scoring_places: int = DEFAULT_SCORING_PLACES) -> float:
    if place is None or place < 1 or place > scoring_places:
        return 0.0
    return float(table.get(place, 0))


# ---------------------------------------------------------------------------
# Tie groups
# ---------------------------------------------------------------------------

def score_places(places: Sequence[Optional[int]], table: Dict[int, float],
                 scoring_places: int = DEFAULT_SCORING_PLACES,
                 disqualified: Optional[Sequence[bool]] = None) -> List[ScoredPlacement]:
    """Assign places and points to rows in source order.

    Consecutive rows with the same place form a tie group. A group whose
    place falls inside the previous group's span is moved to the first free
    place after it, so a dense listing "1, 1, 2" is scored as "1, 1, 3". A
    place below the previous group starts a new section (e.g. prelims then
    finals). Rows without a place take the next running place. Disqualified
    rows are their own group with no place and no points.
    """
    n = len(places)
    disqualified = list(disqualified) if disqualified is not None else [False] * n
    scored: List[Optional[ScoredPlacement]] = [None] * n

    next_place = 1
    prev_start = None
    prev_size = 0
    i = 0
    while i < n:
        if disqualified[i]:
            scored[i] = ScoredPlacement(None, 0.0)
            i += 1
            continue

        place = places[i]
        j = i + 1
        if place is not None:
            while j < n and not disqualified[j] and places[j] == place:
                j += 1
        size = j - i

        if place is None:
            place = next_place
        elif prev_start is not None and prev_start <= place < prev_start + prev_size:
            place = prev_start + prev_size

        total = sum(points_for_place(p, table, scoring_places) for p in range(place, place + size))
        share = total / size
        for idx in range(i, j):
            scored[idx] = ScoredPlacement(place, share)

        prev_start, prev_size = place, size
        next_place = place + size
        i = j

    return scored


# ---------------------------------------------------------------------------
# Team scores
# ---------------------------------------------------------------------------

def scoring_athlete_ids(selected: Iterable[int], test_spot_ids: Iterable[int] = (),
                        test_spot_scoring_id: Optional[int] = None) -> Set[int]:
    """Athletes whose points count for their team.

    Without test spots every selected athlete scores. With test spots only one
    of the test-spot athletes scores: the chosen one, or the first if the
    choice is missing or not a test-spot athlete.
    """
    selected = list(selected or [])
    test_spot_ids = list(test_spot_ids or [])
    if not test_spot_ids:
        return set(selected)
    if test_spot_scoring_id not in test_spot_ids:
        test_spot_scoring_id = test_spot_ids[0]
    test_set = set(test_spot_ids)
    return {a for a in selected if a not in test_set or a == test_spot_scoring_id}


def compute_team_scores(meet_teams: pd.DataFrame, lineups: pd.DataFrame,
                        relays: pd.DataFrame) -> pd.DataFrame:
    """Aggregate persisted points into per-team scores.

    meet_teams: team_id, selected_athletes, test_spot_athlete_ids,
                test_spot_scoring_athlete_id
    lineups:    athlete_id, team_id, event_type, points
    relays:     team_id, points

    Returns team_id, individual_score, diving_score, relay_score, total_score.
    """
    lineups = lineups.assign(points=pd.to_numeric(lineups['points'], errors='coerce').fillna(0.0))
    relays = relays.assign(points=pd.to_numeric(relays['points'], errors='coerce').fillna(0.0))

    records = []
    for mt in meet_teams.itertuples(index=False):
        scoring = scoring_athlete_ids(mt.selected_athletes, mt.test_spot_athlete_ids,
                                      mt.test_spot_scoring_athlete_id)
        team_lineups = lineups[(lineups['team_id'] == mt.team_id)
                               & lineups['athlete_id'].isin(list(scoring))]
        by_type = team_lineups.groupby('event_type')['points'].sum()
        individual = float(by_type.get('individual', 0.0))
        diving = float(by_type.get('diving', 0.0))
        relay = float(relays.loc[relays['team_id'] == mt.team_id, 'points'].sum())
        records.append({
            'team_id': mt.team_id,
            'individual_score': individual,
            'diving_score': diving,
            'relay_score': relay,
            'total_score': individual + diving + relay,
        })

    return pd.DataFrame(records, columns=['team_id', 'individual_score', 'diving_score',
                                          'relay_score', 'total_score'])
