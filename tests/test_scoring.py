"""
Tests for tie-aware scoring and team score aggregation.
"""

import pandas as pd
import pytest

from scoring import (
    ScoredPlacement, compute_team_scores, generate_scoring_table, load_scoring_table,
    points_for_place, score_places, scoring_athlete_ids,
)

SMALL_TABLE = {1: 9, 2: 4, 3: 3}


class TestScoringTables:

    def test_24_place_table(self):
        tables = generate_scoring_table(24, 32)
        individual = tables['individual']
        assert len(individual) == 24
        assert [individual[p] for p in (1, 2, 3, 8, 9, 16, 17, 24)] == [32, 28, 27, 22, 20, 11, 9, 1]

    def test_championship_defaults(self):
        assert generate_scoring_table() == generate_scoring_table(24, 32, 2.0)

    def test_16_place_table(self):
        individual = generate_scoring_table(16, 20)['individual']
        assert [individual[p] for p in (1, 2, 9, 16)] == [20, 17, 9, 1]

    def test_generic_table(self):
        individual = generate_scoring_table(10, 5)['individual']
        assert [individual[p] for p in (1, 5, 6, 10)] == [5, 1, 1, 1]

    def test_relay_table(self):
        relay = generate_scoring_table(24, 32, 2.0)['relay']
        assert len(relay) == 8
        assert relay[1] == 64
        assert relay[8] == 44

    def test_relay_rounds_half_up(self):
        relay = generate_scoring_table(24, 32, 1.5)['relay']
        assert relay[3] == 41  # 27 * 1.5 = 40.5

    def test_load_from_json(self):
        assert load_scoring_table('{"1": 32, "2": 28}') == {1: 32.0, 2: 28.0}
        assert load_scoring_table(None) == {}


class TestPointsForPlace:

    def test_in_table(self):
        assert points_for_place(2, SMALL_TABLE, 3) == 4

    def test_beyond_cutoff(self):
        assert points_for_place(3, SMALL_TABLE, 2) == 0

    def test_missing_entry(self):
        assert points_for_place(5, SMALL_TABLE, 24) == 0

    def test_no_place(self):
        assert points_for_place(None, SMALL_TABLE, 24) == 0


class TestScorePlaces:

    def test_no_ties(self):
        assert score_places([1, 2, 3], SMALL_TABLE, 3) == [
            ScoredPlacement(1, 9.0), ScoredPlacement(2, 4.0), ScoredPlacement(3, 3.0)]

    def test_two_way_tie_for_first(self):
        scored = score_places([1, 1, 3], SMALL_TABLE, 3)
        assert [s.points for s in scored] == [6.5, 6.5, 3.0]
        assert [s.place for s in scored] == [1, 1, 3]

    def test_dense_listing_skips_places(self):
        scored = score_places([1, 1, 2], SMALL_TABLE, 3)
        assert [s.place for s in scored] == [1, 1, 3]
        assert scored[2].points == 3.0

    def test_tie_points_are_conserved(self):
        table = generate_scoring_table(24, 32)['individual']
        scored = score_places([1, 2, 2, 2, 5], table, 24)
        tied = [s.points for s in scored[1:4]]
        assert tied == [27.0, 27.0, 27.0]
        assert sum(tied) == table[2] + table[3] + table[4]
        assert scored[4] == ScoredPlacement(5, table[5])

    def test_fractional_points_kept(self):
        scored = score_places([1, 1, 1], SMALL_TABLE, 3)
        assert scored[0].points == pytest.approx(16 / 3)

    def test_tie_across_cutoff(self):
        scored = score_places([3, 3], SMALL_TABLE, 3)
        assert [s.points for s in scored] == [1.5, 1.5]

    def test_disqualified_rows(self):
        scored = score_places([1, None, 2], SMALL_TABLE, 3, disqualified=[False, True, False])
        assert scored == [ScoredPlacement(1, 9.0), ScoredPlacement(None, 0.0), ScoredPlacement(2, 4.0)]

    def test_missing_places_follow_running_position(self):
        scored = score_places([None, None, None], SMALL_TABLE, 3)
        assert [s.place for s in scored] == [1, 2, 3]

    def test_new_section_restarts(self):
        scored = score_places([1, 2, 1, 2], SMALL_TABLE, 3)
        assert [s.place for s in scored] == [1, 2, 1, 2]

    def test_empty(self):
        assert score_places([], SMALL_TABLE, 3) == []


class TestScoringAthletes:

    def test_without_test_spots(self):
        assert scoring_athlete_ids([1, 2, 3]) == {1, 2, 3}

    def test_chosen_test_spot_scores(self):
        assert scoring_athlete_ids([1, 2, 3], [2, 3], 3) == {1, 3}

    def test_invalid_choice_falls_back_to_first(self):
        assert scoring_athlete_ids([1, 2, 3], [2, 3], 99) == {1, 2}


class TestTeamScores:

    def test_aggregation(self):
        meet_teams = pd.DataFrame([
            {'team_id': 1, 'selected_athletes': [10, 11, 12], 'test_spot_athlete_ids': [11, 12],
             'test_spot_scoring_athlete_id': 12},
            {'team_id': 2, 'selected_athletes': [20], 'test_spot_athlete_ids': [],
             'test_spot_scoring_athlete_id': None},
        ])
        lineups = pd.DataFrame([
            {'athlete_id': 10, 'team_id': 1, 'event_type': 'individual', 'points': 32.0},
            {'athlete_id': 11, 'team_id': 1, 'event_type': 'individual', 'points': 28.0},
            {'athlete_id': 12, 'team_id': 1, 'event_type': 'diving', 'points': 20.0},
            {'athlete_id': 20, 'team_id': 2, 'event_type': 'individual', 'points': 27.0},
            {'athlete_id': 99, 'team_id': 2, 'event_type': 'individual', 'points': 5.0},
        ])
        relays = pd.DataFrame([
            {'team_id': 1, 'points': 64.0},
            {'team_id': 2, 'points': None},
        ])

        scores = compute_team_scores(meet_teams, lineups, relays).set_index('team_id')

        assert scores.loc[1, 'individual_score'] == 32.0
        assert scores.loc[1, 'diving_score'] == 20.0
        assert scores.loc[1, 'relay_score'] == 64.0
        assert scores.loc[1, 'total_score'] == 116.0
        assert scores.loc[2, 'total_score'] == 27.0

    def test_no_results_yet(self):
        meet_teams = pd.DataFrame([{'team_id': 1, 'selected_athletes': [10],
                                    'test_spot_athlete_ids': [],
                                    'test_spot_scoring_athlete_id': None}])
        lineups = pd.DataFrame(columns=['athlete_id', 'team_id', 'event_type', 'points'])
        relays = pd.DataFrame(columns=['team_id', 'points'])

        scores = compute_team_scores(meet_teams, lineups, relays)
        assert scores.loc[0, 'total_score'] == 0.0
