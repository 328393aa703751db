"""
Tests for school and athlete resolution.
"""

import pytest

from roster_matching import (
    AthleteForMatch, MeetTeamForMatch, _initial_match, build_school_to_team_id_map,
    edit_distance, first_name_variants, match_athlete_by_name, normalize_class_year,
    normalize_parsed_name, resolve_school_to_team_id, years_compatible,
)


@pytest.fixture
def school_map():
    return build_school_to_team_id_map([
        MeetTeamForMatch(1, 'Harvard', 'Harvard University', 'HARV-NE'),
        MeetTeamForMatch(2, 'Princeton', 'Princeton University', 'PRIN'),
        MeetTeamForMatch(3, 'Penn', 'University of Pennsylvania', 'PENN'),
        MeetTeamForMatch(4, 'Yale', 'Yale University'),
    ])


class TestSchoolResolution:

    def test_exact_short_code(self, school_map):
        assert resolve_school_to_team_id('PRIN', school_map) == 2

    def test_case_and_spacing(self, school_map):
        assert resolve_school_to_team_id('  Yale   University ', school_map) == 4

    def test_short_code_without_suffix(self, school_map):
        assert resolve_school_to_team_id('HARV', school_map) == 1

    def test_abbreviation_table(self, school_map):
        assert resolve_school_to_team_id('Penn', school_map) == 3

    def test_trailing_qualifier_stripped(self, school_map):
        assert resolve_school_to_team_id('Harvard-NE', school_map) == 1

    def test_first_token(self, school_map):
        assert resolve_school_to_team_id('Yale Univ', school_map) == 4

    def test_substring(self, school_map):
        assert resolve_school_to_team_id('Prince', school_map) == 2

    def test_no_match(self, school_map):
        assert resolve_school_to_team_id('Stanford', school_map) is None

    def test_empty_label(self, school_map):
        assert resolve_school_to_team_id('', school_map) is None

    def test_generic_first_word_not_a_key(self, school_map):
        assert 'university' not in school_map


class TestNames:

    def test_comma_form(self):
        assert normalize_parsed_name('Schott, Mitchell') == ('Mitchell', 'Schott')

    def test_comma_form_middle_initial(self):
        assert normalize_parsed_name('Schott, Mitchell J.') == ('Mitchell', 'Schott')

    def test_space_form(self):
        assert normalize_parsed_name('Mitchell Schott') == ('Mitchell', 'Schott')

    def test_space_form_middle_initial(self):
        assert normalize_parsed_name('Mitchell J Schott') == ('Mitchell', 'Schott')

    def test_single_token(self):
        assert normalize_parsed_name('Schott') == ('Schott', '')

    def test_initial_only_first_name_kept(self):
        assert normalize_parsed_name('Lee, B.') == ('B.', 'Lee')

    def test_nickname_variants(self):
        assert 'michael' in first_name_variants('Mike')
        assert 'mike' in first_name_variants('Michael')
        assert 'mitchell' in first_name_variants('mitch')

    def test_class_years(self):
        assert normalize_class_year('Sophomore') == 'SO'
        assert normalize_class_year('gr') == 'GR'
        assert normalize_class_year('5Y') == 'GR'
        assert normalize_class_year('XX') is None

    def test_years_compatible_is_permissive(self):
        assert years_compatible(None, 'SR')
        assert years_compatible('Senior', 'SR')
        assert not years_compatible('FR', 'SR')

    def test_edit_distance(self):
        assert edit_distance('schott', 'schot') == 1
        assert edit_distance('lee', 'lee') == 0
        assert edit_distance('smith', 'smyth') == 1
        assert edit_distance('abc', 'xyz') == 3

    def test_prefix_names_are_not_initial_matches(self):
        assert not _initial_match('min', 'minga')
        assert _initial_match('m', 'minga')
        assert _initial_match('mark', 'minga')


class TestAthleteMatching:

    @pytest.fixture
    def roster(self):
        return [
            AthleteForMatch(1, 'Mitchell', 'Schott', 'SR'),
            AthleteForMatch(2, 'Anna', 'Schott', 'FR'),
            AthleteForMatch(3, 'Brian', 'Lee', 'SO'),
            AthleteForMatch(4, 'Brian', 'Lee', 'JR'),
            AthleteForMatch(5, 'Kate', 'Nguyen', None),
        ]

    def test_empty_roster(self):
        assert match_athlete_by_name('Schott, Mitchell', []).kind == 'none'

    def test_exact(self, roster):
        result = match_athlete_by_name('Schott, Mitchell', roster)
        assert result.kind == 'match'
        assert result.athlete.id == 1

    def test_nickname(self, roster):
        result = match_athlete_by_name('Schott, Mitch', roster)
        assert result.kind == 'match'
        assert result.athlete.id == 1

    def test_space_form_nickname(self, roster):
        assert match_athlete_by_name('Katherine Nguyen', roster).athlete.id == 5

    def test_same_name_is_ambiguous(self, roster):
        result = match_athlete_by_name('Lee, Brian', roster)
        assert result.kind == 'candidates'
        assert sorted(result.candidate_ids) == [3, 4]

    def test_year_disambiguates(self, roster):
        result = match_athlete_by_name('Lee, Brian', roster, 'JR')
        assert result.kind == 'match'
        assert result.athlete.id == 4

    def test_year_that_fits_nobody_stays_ambiguous(self, roster):
        assert match_athlete_by_name('Lee, Brian', roster, 'FR').kind == 'candidates'

    def test_initial(self, roster):
        assert match_athlete_by_name('Schott, M.', roster).athlete.id == 1

    def test_single_initial_match_needs_compatible_year(self, roster):
        assert match_athlete_by_name('Schott, M.', roster, 'FR').kind == 'none'

    def test_last_name_only(self, roster):
        result = match_athlete_by_name('Nguyen, Lily', roster)
        assert result.kind == 'match'
        assert result.athlete.id == 5

    def test_last_name_only_ignores_conflicting_year(self):
        roster = [AthleteForMatch(1, 'Mitchell', 'Schott', 'SR')]
        result = match_athlete_by_name('Schott, Zed', roster, 'FR')
        assert result.kind == 'match'
        assert result.athlete.id == 1

    def test_last_name_only_year_breaks_tie(self, roster):
        result = match_athlete_by_name('Lee, Zed', roster, 'SO')
        assert result.kind == 'match'
        assert result.athlete.id == 3

    def test_fuzzy_last_name(self):
        roster = [AthleteForMatch(1, 'Robert', 'Smith')]
        result = match_athlete_by_name('Smyth, Jon', roster)
        assert result.kind == 'match'
        assert result.athlete.id == 1

    def test_fuzzy_hits_are_not_guessed(self, roster):
        result = match_athlete_by_name('Schot, Zed', roster)
        assert result.kind == 'candidates'
        assert sorted(result.candidate_ids) == [1, 2]

    def test_fuzzy_year_breaks_tie(self, roster):
        result = match_athlete_by_name('Schot, Mitchell', roster, 'SR')
        assert result.kind == 'match'
        assert result.athlete.id == 1

    def test_short_last_names_are_not_fuzzy(self, roster):
        assert match_athlete_by_name('Le, Brian', roster).kind == 'none'

    def test_unknown(self, roster):
        assert match_athlete_by_name('Nobody, Zed', roster).kind == 'none'

    def test_deterministic(self, roster):
        first = match_athlete_by_name('Lee, Brian', roster)
        second = match_athlete_by_name('Lee, Brian', roster)
        assert first.candidate_ids == second.candidate_ids
