"""
Apply parsed HY-TEK results to a meet.

For one event: parse the text, resolve every row to a team (and athlete for
individual/diving), score the rows with tie handling, upsert the result rows,
then recompute the meet's team scores from everything stored. Rows that
cannot be resolved are skipped and reported back with enough detail to fix
them by hand (resolve_unresolved_row).

Usage:
    hytek-apply results.db 1 results.txt                 # every event in the file
    hytek-apply results.db 1 200free.txt --event-id 4    # one known event
    hytek-apply results.db 1 --event-id 4 --clear
"""

import argparse
import logging
import re
import sys
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from config import DEFAULT_SCORING_PLACES, EVENT_TYPES, setup_logging
from hytek_parser import (
    DivingRow, ParseResult, RelayRow, parse_result_text, read_result_text, time_to_seconds,
)
from results_store import ResultsStore, StoreError
from roster_matching import (
    AthleteForMatch, MeetTeamForMatch, build_school_to_team_id_map, match_athlete_by_name,
    normalize_class_year, normalize_parsed_name, resolve_school_to_team_id,
)
from scoring import compute_team_scores, load_scoring_table, points_for_place, score_places

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ResultsApplyError(Exception):
    """Base class for results apply failures."""


class ValidationError(ResultsApplyError):
    """Input that cannot be applied at all."""


class MeetNotFoundError(ResultsApplyError):
    pass


class EventNotFoundError(ResultsApplyError):
    pass


class ResolveError(ResultsApplyError):
    """A manual resolution request that cannot be carried out."""


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

NO_TEAM = 'no_team'
NO_ATHLETE_MATCH = 'no_athlete_match'
MULTIPLE_CANDIDATES = 'multiple_candidates'


@dataclass
class ResolvedEntry:
    row: object
    team_id: int
    athlete_id: Optional[int]
    place: Optional[int]
    points: float


@dataclass
class UnresolvedRow:
    place: Optional[int]
    reason: str
    name: Optional[str] = None
    school: Optional[str] = None
    school_code: Optional[str] = None
    time_str: Optional[str] = None
    score: Optional[str] = None
    points: Optional[float] = None
    candidate_athlete_ids: List[int] = field(default_factory=list)


@dataclass
class ApplyResult:
    success: bool = True
    applied_lineups: int = 0
    applied_relays: int = 0
    added_athletes: int = 0
    unresolved: List[UnresolvedRow] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)
    row_errors: List[str] = field(default_factory=list)
    entries: List[ResolvedEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'applied_lineups': self.applied_lineups,
            'applied_relays': self.applied_relays,
            'added_athletes': self.added_athletes,
            'unresolved': [asdict(u) for u in self.unresolved],
            'parse_errors': list(self.parse_errors),
            'row_errors': list(self.row_errors),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_meet(store: ResultsStore, meet_id: int) -> dict:
    meet = store.get_meet(meet_id)
    if meet is None:
        raise MeetNotFoundError(f"Meet {meet_id} not found")
    return meet


def _require_event(store: ResultsStore, event_id: int) -> dict:
    event = store.get_event(event_id)
    if event is None:
        raise EventNotFoundError(f"Event {event_id} not found")
    return event


def scoring_table_for(meet: dict, event_type: str) -> dict:
    """The meet's table for an event kind. Diving falls back to the individual table."""
    individual = load_scoring_table(meet.get('individual_scoring'))
    if event_type == 'relay':
        return load_scoring_table(meet.get('relay_scoring'))
    if event_type == 'diving':
        return load_scoring_table(meet.get('diving_scoring')) or individual
    return individual


def _school_map(store: ResultsStore, meet_id: int) -> dict:
    teams = [MeetTeamForMatch(team_id=t['team_id'], name=t['name'],
                              school_name=t['school_name'], short_name=t['short_name'])
             for t in store.list_meet_teams(meet_id)]
    return build_school_to_team_id_map(teams)


def _team_roster(store: ResultsStore, team_id: int) -> List[AthleteForMatch]:
    return [AthleteForMatch(id=a['id'], first_name=a['first_name'], last_name=a['last_name'],
                            year=normalize_class_year(a['year']))
            for a in store.list_team_athletes(team_id)]


def _splits_detail(row) -> Optional[dict]:
    if isinstance(row, RelayRow):
        if not row.legs and not row.cumulative_at_50:
            return None
        return {
            'cumulative_at_50': row.cumulative_at_50 or [],
            'legs': [asdict(leg) for leg in row.legs or []],
        }
    if isinstance(row, DivingRow):
        return None
    if row.reaction_time is None and not row.cumulative_splits:
        return None
    return {
        'reaction_time': row.reaction_time,
        'cumulative_splits': row.cumulative_splits or [],
        'sub_splits': row.sub_splits or [],
    }


def _unresolved(row, reason: str, place: Optional[int], points: Optional[float],
                candidate_ids: Optional[List[int]] = None) -> UnresolvedRow:
    return UnresolvedRow(
        place=place,
        reason=reason,
        name=getattr(row, 'name', None),
        school=getattr(row, 'school', None),
        school_code=getattr(row, 'school_code', None),
        time_str=getattr(row, 'time_str', None),
        score=getattr(row, 'score', None),
        points=points,
        candidate_athlete_ids=list(candidate_ids or []),
    )


def _row_label(row) -> str:
    return getattr(row, 'name', None) or getattr(row, 'school', '') or '?'


# ---------------------------------------------------------------------------
# Apply / clear / recompute
# ---------------------------------------------------------------------------

def recompute_team_scores(store: ResultsStore, meet_id: int):
    """Recompute every team's cached scores from the stored results of the meet."""
    meet_teams, lineups, relays = store.read_meet_entries(meet_id)
    scores = compute_team_scores(meet_teams, lineups, relays)
    store.update_team_scores(meet_id, scores)
    return scores


def apply_event_results(store: ResultsStore, meet_id: int, event_id: int, result_text: str,
                        event_type_hint: Optional[str] = None,
                        add_unknown_athletes: bool = True) -> ApplyResult:
    """Parse, resolve, score and store the results of one event.

    Raises ValidationError, MeetNotFoundError or EventNotFoundError before
    anything is written. Per-row problems never abort the run: unresolvable
    rows are returned in `unresolved`, rows that fail to store in `row_errors`.
    """
    if not result_text or not result_text.strip():
        raise ValidationError("Result text is empty")
    meet = _require_meet(store, meet_id)
    event = _require_event(store, event_id)
    event_type = event['event_type']
    if event_type_hint is not None and event_type_hint not in EVENT_TYPES:
        raise ValidationError(f"Unknown event type: {event_type_hint}")

    parsed = parse_result_text(result_text, event_type_hint or event_type)
    if parsed.kind != event_type:
        raise ValidationError(f"Results parsed as {parsed.kind} but event "
                              f"'{event['name']}' is {event_type}")

    result = ApplyResult(parse_errors=list(parsed.errors))
    table = scoring_table_for(meet, event_type)
    scoring_places = meet.get('scoring_places') or DEFAULT_SCORING_PLACES
    scored = score_places(
        [row.place for row in parsed.rows], table, scoring_places,
        disqualified=[getattr(row, 'disqualified', False) for row in parsed.rows])
    school_map = _school_map(store, meet_id)

    for row, placement in zip(parsed.rows, scored):
        points = placement.points
        if not table:
            points = float(getattr(row, 'points', None) or 0)
        try:
            if event_type == 'relay':
                _apply_relay_row(store, meet_id, event_id, row, placement.place, points,
                                 school_map, result)
            else:
                _apply_swimmer_row(store, meet_id, event_id, event_type, row, placement.place,
                                   points, school_map, add_unknown_athletes, result)
        except StoreError as e:
            logger.warning(f"Skipping row {placement.place} {_row_label(row)}: {e}")
            result.row_errors.append(f"{placement.place} {_row_label(row)}: {e}")

    recompute_team_scores(store, meet_id)
    store.mark_event_applied(meet_id, event_id)

    logger.info(f"Applied {event['name']}: {result.applied_lineups} lineups, "
                f"{result.applied_relays} relays, {result.added_athletes} new athletes, "
                f"{len(result.unresolved)} unresolved")
    return result


def _apply_relay_row(store, meet_id, event_id, row: RelayRow, place, points, school_map,
                     result: ApplyResult):
    team_id = resolve_school_to_team_id(row.school, school_map)
    if team_id is None:
        result.unresolved.append(_unresolved(row, NO_TEAM, place, points))
        return
    store.upsert_relay_result(meet_id, event_id, team_id, row.time_str,
                              time_to_seconds(row.time_str), place, points,
                              _splits_detail(row))
    result.applied_relays += 1
    result.entries.append(ResolvedEntry(row, team_id, None, place, points))


def _apply_swimmer_row(store, meet_id, event_id, event_type, row, place, points, school_map,
                       add_unknown_athletes: bool, result: ApplyResult):
    is_diving = event_type == 'diving'
    label = row.school_code if is_diving else row.school
    team_id = resolve_school_to_team_id(label or '', school_map)
    if team_id is None:
        result.unresolved.append(_unresolved(row, NO_TEAM, place, points))
        return

    # re-read per row: athletes created for earlier rows must be matchable
    match = match_athlete_by_name(row.name, _team_roster(store, team_id), row.year)

    created = False
    if match.kind == 'match':
        athlete_id = match.athlete.id
    elif match.kind == 'candidates':
        result.unresolved.append(_unresolved(row, MULTIPLE_CANDIDATES, place, points,
                                             match.candidate_ids))
        return
    elif add_unknown_athletes:
        first, last = normalize_parsed_name(row.name)
        athlete_id = store.create_athlete(team_id, first, last,
                                          normalize_class_year(row.year), is_diving)
        store.add_selected_athlete(meet_id, team_id, athlete_id)
        created = True
    else:
        result.unresolved.append(_unresolved(row, NO_ATHLETE_MATCH, place, points))
        return

    final = row.score if is_diving else row.time_str
    store.upsert_lineup_result(meet_id, athlete_id, event_id, final, time_to_seconds(final),
                               place, points, _splits_detail(row))
    result.applied_lineups += 1
    if created:
        result.added_athletes += 1
    result.entries.append(ResolvedEntry(row, team_id, athlete_id, place, points))


def clear_event_results(store: ResultsStore, meet_id: int, event_id: int) -> int:
    """Undo an apply: reset result fields for the event and recompute team scores."""
    _require_meet(store, meet_id)
    _require_event(store, event_id)
    count = store.clear_event_results(meet_id, event_id)
    store.unmark_event_applied(meet_id, event_id)
    recompute_team_scores(store, meet_id)
    logger.info(f"Cleared results for event {event_id} ({count} rows)")
    return count


def resolve_unresolved_row(store: ResultsStore, meet_id: int, event_id: int,
                           row: UnresolvedRow, athlete_id: Optional[int] = None,
                           new_athlete: Optional[dict] = None) -> dict:
    """Store one unresolved individual/diving row against a chosen athlete.

    Pass athlete_id for an existing athlete on the row's team, or
    new_athlete={'first_name': ..., 'last_name': ...} to add one.
    """
    if athlete_id is None and not new_athlete:
        raise ResolveError("Provide athlete_id or new_athlete")
    meet = _require_meet(store, meet_id)
    event = _require_event(store, event_id)
    event_type = event['event_type']
    if event_type not in ('individual', 'diving'):
        raise ResolveError(f"Event '{event['name']}' is not an individual or diving event")

    team_id = resolve_school_to_team_id(row.school_code or row.school or '',
                                        _school_map(store, meet_id))
    if team_id is None:
        raise ResolveError(f"Could not resolve team for {row.school_code or row.school!r}")

    if athlete_id is not None:
        athlete = store.get_athlete(athlete_id)
        if athlete is None or athlete['team_id'] != team_id:
            raise ResolveError(f"Athlete {athlete_id} not found on team {team_id}")
    else:
        athlete_id = store.create_athlete(
            team_id,
            (new_athlete.get('first_name') or '').strip(),
            (new_athlete.get('last_name') or '').strip(),
            normalize_class_year(new_athlete.get('year')),
            event_type == 'diving')
        store.add_selected_athlete(meet_id, team_id, athlete_id)

    final = (row.score if event_type == 'diving' else row.time_str) or ''
    points = row.points
    if points is None:
        points = points_for_place(row.place, scoring_table_for(meet, event_type),
                                  meet.get('scoring_places') or DEFAULT_SCORING_PLACES)
    lineup_id = store.upsert_lineup_result(meet_id, athlete_id, event_id, final,
                                           time_to_seconds(final), row.place, points)
    recompute_team_scores(store, meet_id)
    return {'lineup_id': lineup_id, 'athlete_id': athlete_id}


# ---------------------------------------------------------------------------
# Multi-event files
# ---------------------------------------------------------------------------

_EVENT_START_RE = re.compile(r'^\s*Event\s+\d+', re.IGNORECASE)


def split_event_blocks(text: str) -> List[str]:
    """Split a full results file into one block per "Event N ..." heading."""
    blocks = []
    current: List[str] = []
    for line in text.splitlines():
        if _EVENT_START_RE.match(line) and current:
            blocks.append('\n'.join(current))
            current = []
        current.append(line)
    if current:
        blocks.append('\n'.join(current))
    return [b for b in blocks if b.strip()]


def detect_block_event_type(parsed: ParseResult) -> str:
    """Event kind of a parsed block, the title taking precedence over the rows."""
    title = (parsed.event_title or '').lower()
    if 'relay' in title:
        return 'relay'
    if re.search(r'diving|1m|3m|\bdiver', title):
        return 'diving'
    if parsed.rows:
        first = parsed.rows[0]
        if isinstance(first, DivingRow):
            return 'diving'
        if isinstance(first, RelayRow):
            return 'relay'
    return parsed.kind


def _gender_of(text: str) -> Optional[str]:
    if re.search(r'\b(women|womens|girls)\b', text):
        return 'women'
    if re.search(r'\b(men|mens|boys)\b', text):
        return 'men'
    return None


_STROKE_RE = re.compile(r'free|back|breast|fly|medley|\bim\b')


def _same_stroke(stroke: str, label: str) -> bool:
    if stroke in ('medley', 'im'):
        return 'medley' in label or re.search(r'\bim\b', label) is not None
    return stroke in label


def match_event_to_block(event_title: Optional[str], event_type: str,
                         events: List[dict]) -> Optional[dict]:
    """Pick the meet event a block of results belongs to.

    Events of the block's type whose gender does not contradict the title are
    compared by name, then relays by medley/free, diving by board, and
    individual events by distance and stroke. Falls back to the first
    candidate.
    """
    if not event_title:
        return None
    lower = event_title.lower()
    gender = _gender_of(lower)
    candidates = []
    for e in events:
        if e['event_type'] != event_type:
            continue
        e_gender = _gender_of(f"{e.get('name') or ''} {e.get('full_name') or ''}".lower())
        if gender and e_gender and gender != e_gender:
            continue
        candidates.append(e)

    for e in candidates:
        for name in ((e.get('name') or '').lower(), (e.get('full_name') or '').lower()):
            if name and (name in lower or lower in name):
                return e

    def label(e):
        return (e.get('full_name') or e.get('name') or '').lower()

    title = re.sub(r'^event\s+\d+\s*', '', lower)
    dist = re.search(r'\d+', title)
    by_distance = [c for c in candidates
                   if dist and re.search(r'\b' + dist.group(0) + r'\b', label(c))]

    if event_type == 'relay':
        pool = by_distance or candidates
        if 'medley' in title:
            found = next((c for c in pool if 'medley' in label(c)), None)
            if found:
                return found
        if re.search(r'free\s*relay|freestyle\s*relay', title):
            found = next((c for c in pool if 'free' in label(c)), None)
            if found:
                return found
    elif event_type == 'diving':
        board = re.search(r'\b([13])\s*(?:m\b|mtr|meter|metre)', title)
        if board:
            found = next((c for c in candidates
                          if re.search(board.group(1) + r'\s*(?:m\b|mtr|meter|metre)', label(c))),
                         None)
            if found:
                return found
    else:
        stroke = _STROKE_RE.search(title)
        for e in by_distance:
            if not stroke or _same_stroke(stroke.group(0), label(e)):
                return e

    return candidates[0] if candidates else None


def apply_results_file(store: ResultsStore, meet_id: int, text: str,
                       add_unknown_athletes: bool = True,
                       create_missing_events: bool = False) -> List[dict]:
    """Apply every event block in a results file. Returns one summary per block."""
    _require_meet(store, meet_id)
    events = store.list_meet_events(meet_id)
    outcomes = []

    for block in split_event_blocks(text):
        parsed = parse_result_text(block)
        if not parsed.rows and not parsed.event_title:
            continue
        event_type = detect_block_event_type(parsed)
        outcome = {
            'event_id': None,
            'event_title': parsed.event_title,
            'applied_lineups': 0,
            'applied_relays': 0,
            'added_athletes': 0,
            'unresolved': [],
            'parse_errors': list(parsed.errors),
            'error': None,
        }
        outcomes.append(outcome)

        matched = match_event_to_block(parsed.event_title, event_type, events)
        if matched is None and create_missing_events and parsed.event_title:
            try:
                matched = store.get_or_create_event(meet_id, parsed.event_title, event_type)
                events.append(matched)
            except StoreError as e:
                logger.warning(f"Could not create event '{parsed.event_title}': {e}")
                outcome['error'] = f"Could not create event: {e}"
                continue
        if matched is None:
            logger.warning(f"No meet event for block '{parsed.event_title}'")
            outcome['error'] = "Could not match block to a meet event"
            continue

        outcome['event_id'] = matched['id']
        try:
            applied = apply_event_results(store, meet_id, matched['id'], block, event_type,
                                          add_unknown_athletes)
        except ResultsApplyError as e:
            logger.warning(f"Block '{parsed.event_title}' not applied: {e}")
            outcome['error'] = str(e)
            continue
        outcome.update({
            'applied_lineups': applied.applied_lineups,
            'applied_relays': applied.applied_relays,
            'added_athletes': applied.added_athletes,
            'unresolved': applied.unresolved,
            'parse_errors': applied.parse_errors,
        })

    return outcomes


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Apply HY-TEK results to a meet")
    parser.add_argument("db", help="Path to the results database")
    parser.add_argument("meet_id", type=int, help="Meet id")
    parser.add_argument("results_file", nargs="?", help="Results export (.txt or .pdf)")
    parser.add_argument("--event-id", type=int, help="Apply the whole file to this event")
    parser.add_argument("--event-type", choices=EVENT_TYPES, help="Report kind hint")
    parser.add_argument("--no-add-unknown", action="store_true",
                        help="Report unknown swimmers instead of adding them")
    parser.add_argument("--create-events", action="store_true",
                        help="Create events that are not on the meet yet")
    parser.add_argument("--clear", action="store_true",
                        help="Clear the results of --event-id instead of applying")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    store = ResultsStore(args.db)

    try:
        if args.clear:
            if args.event_id is None:
                parser.error("--clear requires --event-id")
            clear_event_results(store, args.meet_id, args.event_id)
            return 0

        if not args.results_file:
            parser.error("results_file is required unless --clear is given")
        text = read_result_text(args.results_file)

        if args.event_id is not None:
            applied = apply_event_results(store, args.meet_id, args.event_id, text,
                                          args.event_type, not args.no_add_unknown)
            outcomes = [{'event_id': args.event_id, 'event_title': None,
                         **applied.to_dict(), 'error': None}]
        else:
            outcomes = apply_results_file(store, args.meet_id, text,
                                          not args.no_add_unknown, args.create_events)
    except (ResultsApplyError, StoreError) as e:
        logger.error(str(e))
        return 1

    for o in outcomes:
        title = o['event_title'] or f"event {o['event_id']}"
        if o['error']:
            print(f"  ! {title}: {o['error']}")
            continue
        print(f"  {title}: {o['applied_lineups']} lineups, {o['applied_relays']} relays, "
              f"{o['added_athletes']} added, {len(o['unresolved'])} unresolved")
        for u in o['unresolved']:
            u = u if isinstance(u, dict) else asdict(u)
            print(f"      {u['place']}  {u['name'] or ''}  {u['school'] or u['school_code'] or ''}"
                  f"  -> {u['reason']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
