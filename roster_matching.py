"""
Match parsed result rows to the meet's teams and rosters.

  - school label -> team id (build_school_to_team_id_map / resolve_school_to_team_id)
  - raw swimmer name (+ class year) -> athlete (match_athlete_by_name)

Matching never guesses: anything still ambiguous after year disambiguation is
returned as candidates, and a lone initial-only match that contradicts the class year
is dropped.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass
class AthleteForMatch:
    id: int
    first_name: str
    last_name: str
    year: Optional[str] = None


@dataclass
class MeetTeamForMatch:
    team_id: int
    name: str
    school_name: Optional[str] = None
    short_name: Optional[str] = None


@dataclass
class MatchResult:
    kind: str  # 'match', 'candidates' or 'none'
    athlete: Optional[AthleteForMatch] = None
    candidates: List[AthleteForMatch] = field(default_factory=list)

    @property
    def candidate_ids(self) -> List[int]:
        return [a.id for a in self.candidates]


NO_MATCH = 'none'


def _norm(s: Optional[str]) -> str:
    return re.sub(r'\s+', ' ', (s or '').lower()).strip()


# ---------------------------------------------------------------------------
# School resolution
# ---------------------------------------------------------------------------

# Result-file school codes -> a word of the school's name
SCHOOL_ABBREVIATIONS = {
    'harv': 'harvard',
    'prin': 'princeton',
    'penn': 'penn',
    'yale': 'yale',
    'brown': 'brown',
    'brow': 'brown',
    'dart': 'dartmouth',
    'columbia': 'columbia',
    'cubc': 'columbia',
    'cornell': 'cornell',
    'coru': 'cornell',
}

# First words too generic to identify a school on their own
_GENERIC_FIRST_WORDS = {'university', 'college', 'the'}


def build_school_to_team_id_map(meet_teams: Iterable[MeetTeamForMatch]) -> Dict[str, int]:
    """Map every lowercase label a result file may use for a team to its id.

    Seeds: full school name, team name, first word of the school name, short
    code, short code without its "-X" suffix, and the abbreviation table
    entries whose full word appears in the school name.
    """
    meet_teams = list(meet_teams)
    school_map: Dict[str, int] = {}

    for mt in meet_teams:
        school = _norm(mt.school_name or mt.name)
        short = _norm(mt.short_name)
        if school:
            school_map[school] = mt.team_id
            first_word = school.split(' ')[0]
            if first_word and first_word not in _GENERIC_FIRST_WORDS:
                school_map[first_word] = mt.team_id
        name = _norm(mt.name)
        if name and name not in school_map:
            school_map[name] = mt.team_id
        if short:
            school_map[short] = mt.team_id
            base = short.split('-')[0].strip()
            if base:
                school_map[base] = mt.team_id

    for mt in meet_teams:
        school = _norm(mt.school_name or mt.name)
        first_word = school.split(' ')[0] if school else ''
        for abbr, full in SCHOOL_ABBREVIATIONS.items():
            if full == first_word or (school and full in school):
                school_map[abbr] = mt.team_id

    return school_map


def resolve_school_to_team_id(label: str, school_map: Dict[str, int]) -> Optional[int]:
    """Resolve a school label from result text to a team id.

    Tried in order, first hit wins:
      1. exact label                       'penn'
      2. trailing qualifier stripped       'harv-ne' -> 'harv'
      3. first word / hyphen token         'yale univ' -> 'yale'
      4. substring either way, keys >= 3   'prince' -> 'princeton'
    """
    key = _norm(label)
    if not key:
        return None
    if key in school_map:
        return school_map[key]

    stripped = re.sub(r'-[a-z0-9]{2,4}$', '', key)
    if stripped != key and stripped in school_map:
        return school_map[stripped]

    first = re.split(r'[\s\-]+', key)[0]
    if first in school_map:
        return school_map[first]

    # longest keys first so the result does not depend on insertion order
    for candidate in sorted(school_map, key=lambda k: (-len(k), k)):
        if len(candidate) < 3:
            continue
        if candidate in key or (len(key) >= 3 and key in candidate):
            return school_map[candidate]
    return None


# ---------------------------------------------------------------------------
# Names and class years
# ---------------------------------------------------------------------------

_INITIAL_RE = re.compile(r'^[A-Za-z]\.?$')


def normalize_parsed_name(raw_name: str) -> Tuple[str, str]:
    """Split a result-file name into (first, last).

      'Schott, Mitchell'     -> ('Mitchell', 'Schott')
      'Schott, Mitchell J.'  -> ('Mitchell', 'Schott')
      'Mitchell J Schott'    -> ('Mitchell', 'Schott')
      'Schott'               -> ('Schott', '')
    """
    s = re.sub(r'\s+', ' ', raw_name or '').strip()
    if ',' in s:
        last, _, rest = s.partition(',')
        tokens = rest.split()
        while len(tokens) > 1 and _INITIAL_RE.match(tokens[-1]):
            tokens.pop()
        return ' '.join(tokens), last.strip()

    tokens = s.split()
    if not tokens:
        return '', ''
    if len(tokens) == 1:
        return tokens[0], ''
    rest = [t for t in tokens[1:] if not _INITIAL_RE.match(t)] or tokens[1:]
    return tokens[0], ' '.join(rest)


_CLASS_YEAR_ALIASES = {
    'FR': 'FR', 'FRESHMAN': 'FR', 'FY': 'FR',
    'SO': 'SO', 'SOPHOMORE': 'SO',
    'JR': 'JR', 'JUNIOR': 'JR',
    'SR': 'SR', 'SENIOR': 'SR',
    'GR': 'GR', 'GS': 'GR', 'GRAD': 'GR', 'GRADUATE': 'GR', '5Y': 'GR',
}


def normalize_class_year(value: Optional[str]) -> Optional[str]:
    """'Sophomore', 'so', 'SO' -> 'SO'; unknown values -> None"""
    if not value:
        return None
    return _CLASS_YEAR_ALIASES.get(value.strip().rstrip('.').upper())


def years_compatible(a: Optional[str], b: Optional[str]) -> bool:
    """Permissive: a missing year on either side never rules a match out."""
    a, b = normalize_class_year(a), normalize_class_year(b)
    if a is None or b is None:
        return True
    return a == b


NICKNAMES = {
    'mike': ['michael'],
    'mitch': ['mitchell'],
    'alex': ['alexander', 'alexandra'],
    'matt': ['matthew'],
    'nick': ['nicholas'],
    'sam': ['samuel', 'samantha'],
    'dan': ['daniel', 'danielle'],
    'chris': ['christopher', 'christine'],
    'jake': ['jacob'],
    'ben': ['benjamin'],
    'joe': ['joseph'],
    'tom': ['thomas'],
    'steve': ['steven', 'stephen'],
    'beth': ['elizabeth'],
    'liz': ['elizabeth'],
    'kate': ['katherine', 'katelyn'],
    'will': ['william'],
    'bill': ['william'],
    'jim': ['james'],
    'rob': ['robert'],
    'bob': ['robert'],
    'andy': ['andrew'],
    'drew': ['andrew'],
    'tony': ['anthony'],
    'zach': ['zachary'],
    'nate': ['nathan', 'nathaniel'],
    'jen': ['jennifer'],
    'abby': ['abigail'],
    'maddie': ['madison', 'madeline'],
}


def first_name_variants(first_name: str) -> List[str]:
    """The name itself plus its nicknames or formal forms, lowercase."""
    n = _norm(first_name).rstrip('.')
    variants = [n]
    for formal in NICKNAMES.get(n, []):
        if formal not in variants:
            variants.append(formal)
    for nick, formals in NICKNAMES.items():
        if n in formals and nick not in variants:
            variants.append(nick)
    return variants


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance"""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


# ---------------------------------------------------------------------------
# Athlete matching
# ---------------------------------------------------------------------------

def _initial_match(parsed_first: str, athlete_first: str) -> bool:
    """Same first letter, unless one full name is a strict prefix of the other
    ('Min' must not match 'Minga')."""
    if not parsed_first or not athlete_first or parsed_first[0] != athlete_first[0]:
        return False
    if len(parsed_first) >= 2 and len(athlete_first) >= 2 and parsed_first != athlete_first:
        if athlete_first.startswith(parsed_first) or parsed_first.startswith(athlete_first):
            return False
    return True


def _narrow(matches: List[AthleteForMatch], year: Optional[str]) -> MatchResult:
    if len(matches) == 1:
        return MatchResult('match', athlete=matches[0])
    if year:
        same_year = [a for a in matches if normalize_class_year(a.year) == year]
        if len(same_year) == 1:
            return MatchResult('match', athlete=same_year[0])
    return MatchResult('candidates', candidates=list(matches))


def _single_with_year_guard(matches: List[AthleteForMatch], year: Optional[str]) -> MatchResult:
    """A lone initial-only match is only trusted if the class year does not contradict it."""
    if len(matches) == 1 and not years_compatible(matches[0].year, year):
        return MatchResult(NO_MATCH)
    return _narrow(matches, year)


def match_athlete_by_name(raw_name: str, athletes: List[AthleteForMatch],
                          year: Optional[str] = None) -> MatchResult:
    """Match "Schott, Mitchell" / "Mitch Schott" to one athlete, candidates or none.

    Tiers, each only consulted when the previous one found nobody:
      1. last name + first name (nickname-aware)
      2. last name + first initial
      3. last name only
      4. last name within one edit (last names of three letters or more)
    """
    if not athletes:
        return MatchResult(NO_MATCH)

    first, last = normalize_parsed_name(raw_name)
    last_n = _norm(last)
    first_n = _norm(first).rstrip('.')
    year_n = normalize_class_year(year)
    variants = first_name_variants(first) if first_n else []

    same_last = [a for a in athletes if _norm(a.last_name) == last_n]

    if first_n:
        exact = [a for a in same_last if _norm(a.first_name) in variants]
    else:
        exact = same_last
    if exact:
        return _narrow(exact, year_n)

    initial = [a for a in same_last if _initial_match(first_n, _norm(a.first_name))]
    if initial:
        return _single_with_year_guard(initial, year_n)

    if same_last:
        return _narrow(same_last, year_n)

    if len(last_n) >= 3:
        fuzzy = [a for a in athletes
                 if abs(len(_norm(a.last_name)) - len(last_n)) <= 1
                 and edit_distance(_norm(a.last_name), last_n) <= 1]
        if fuzzy:
            return _narrow(fuzzy, year_n)

    return MatchResult(NO_MATCH)
