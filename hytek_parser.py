"""
HY-TEK Meet Manager Results Text Parser

Parses the text of one event's results (pasted, or exported from Meet Manager
as .txt/.pdf) into typed rows: individual swims, relays with their legs and
splits, and diving.

Every line classifier in this module is a pure function of one line. The scan
loop is an explicit two-state machine over the lines:

  EXPECTING_DATA          looking for a title, skipping headers, matching rows
  CONSUMING_CONTINUATION  collecting split/swimmer lines for the last row
"""

import re
import sys
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional, Tuple

import pandas as pd
import pdfplumber

from config import (
    CLASS_YEARS, EVENT_TYPES, MAX_POINTS, MIN_SWIM_TIME, RELAY_NUM_LEGS, SPLIT_DISTANCE,
)


@dataclass
class IndividualRow:
    """Individual swim result"""
    place: Optional[int]
    name: str  # raw, e.g. "Doe, Jane"
    school: str
    time_str: str
    year: Optional[str] = None
    points: Optional[float] = None
    reaction_time: Optional[float] = None
    cumulative_splits: Optional[List[str]] = None
    sub_splits: Optional[List[str]] = None


@dataclass
class RelayLeg:
    """Relay leg swimmer info"""
    name: str = ''
    year: Optional[str] = None
    reaction_time: Optional[float] = None
    cumulative_leg: List[str] = field(default_factory=list)
    sub_splits: List[str] = field(default_factory=list)


@dataclass
class RelayRow:
    """Relay result. place is None when the relay was disqualified."""
    place: Optional[int]
    school: str
    time_str: str  # finals time, or "DQ"
    points: Optional[float] = None
    disqualified: bool = False
    legs: Optional[List[RelayLeg]] = None
    cumulative_at_50: Optional[List[str]] = None


@dataclass
class DivingRow:
    """Diving result"""
    place: int
    name: str
    school_code: str  # e.g. HARV, PRIN
    score: str
    year: Optional[str] = None


@dataclass
class ParseResult:
    kind: str  # 'individual', 'relay' or 'diving'
    event_title: Optional[str] = None
    rows: list = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def time_to_seconds(time_str: Optional[str]) -> Optional[float]:
    """Convert time string (M:SS.ss or SS.ss) or a diving score to a number"""
    if not time_str or time_str in ('SCR', 'DQ', 'XDQ', 'NS', 'DFS', 'NT'):
        return None
    time_str = time_str.strip().lstrip('xX').rstrip('!')
    try:
        if ':' in time_str:
            minutes, seconds = time_str.split(':', 1)
            return round(int(minutes) * 60 + float(seconds), 2)
        return round(float(time_str), 2)
    except ValueError:
        return None


def seconds_to_split(seconds: float) -> str:
    """Format seconds as a split string: 27.87, 1:05.20"""
    seconds = round(seconds, 2)
    if seconds < 60:
        return f"{seconds:.2f}"
    minutes = int(seconds // 60)
    return f"{minutes}:{seconds - minutes * 60:05.2f}"


_TWO_DECIMAL_RE = re.compile(r'^\d+\.\d{2}$')


def is_swim_time(token: str) -> bool:
    """A swim time has a minute separator, or is SS.hh and at least 10 seconds.

    Keeps '55.32' as a time while '13.5' and '32' stay candidates for points.
    """
    if ':' in token:
        return any(c.isdigit() for c in token)
    return bool(_TWO_DECIMAL_RE.match(token)) and float(token) >= MIN_SWIM_TIME


def _collapse(s: str) -> str:
    return re.sub(r'\s+', ' ', s).strip()


# ---------------------------------------------------------------------------
# Relay configuration
# ---------------------------------------------------------------------------

MEDLEY_STROKES = ('Back', 'Breast', 'Fly', 'Free')


def get_relay_config(event_title: Optional[str]) -> dict:
    """Derive legs and distance per leg from the event title.

    200 -> 50 per leg, 400 -> 100 per leg, 800 -> 200 per leg. Medley relays
    carry the stroke order.
    """
    lower = (event_title or '').lower()
    total_distance = 200
    if re.search(r'\b400\b', lower):
        total_distance = 400
    elif re.search(r'\b800\b', lower):
        total_distance = 800
    return {
        'num_legs': RELAY_NUM_LEGS,
        'distance_per_leg': total_distance // RELAY_NUM_LEGS,
        'strokes': MEDLEY_STROKES if 'medley' in lower else None,
    }


def get_segments_per_leg(distance_per_leg: int) -> int:
    """Number of split markers recorded within one leg (50 -> 1, 100 -> 2, 200 -> 4)."""
    return max(1, round(distance_per_leg / SPLIT_DISTANCE))


def get_relay_distance_labels(distance_per_leg: int) -> List[int]:
    """Split distances within one leg, e.g. [50, 100] for a 4x100."""
    return [(i + 1) * SPLIT_DISTANCE for i in range(get_segments_per_leg(distance_per_leg))]


# ---------------------------------------------------------------------------
# Header / title detection
# ---------------------------------------------------------------------------

_SKIP_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in [
        r'^===',
        r'HY-TEK',
        r'MEET MANAGER',
        r'Site License',
        r'Page\s+\d',
        r'Name\s+Year\s+School',
        r'School\s+Seed\s+Finals',
        r'^Place\s+Score\s+Diver',
        r'Event\s*$',
        r'Preliminaries|Prelims|Finals',
    ]
]

_STARTS_WITH_PLACE_RE = re.compile(r'^\d+\s')

_INDIVIDUAL_TITLE_WORDS = (
    'freestyle', 'backstroke', 'breaststroke', 'butterfly',
    'individual medley', 'event ', 'relay',
)

_DIVING_TITLE_RE = re.compile(r'diving|1\s*m|3\s*m|mtr\s+diving|championship', re.IGNORECASE)


def is_header_line(line: str) -> bool:
    """Check if line is a column header, section banner or page metadata."""
    line = line.strip()
    return any(pat.search(line) for pat in _SKIP_PATTERNS)


def is_individual_title(line: str) -> bool:
    if _STARTS_WITH_PLACE_RE.match(line) or line.startswith('==='):
        return False
    lower = line.lower()
    return any(word in lower for word in _INDIVIDUAL_TITLE_WORDS)


def is_relay_title(line: str) -> bool:
    return 'relay' in line.lower() and not _STARTS_WITH_PLACE_RE.match(line)


def is_diving_title(line: str) -> bool:
    if _STARTS_WITH_PLACE_RE.match(line) or re.match(r'^Place\s+Score', line, re.IGNORECASE):
        return False
    return bool(_DIVING_TITLE_RE.search(line))


# ---------------------------------------------------------------------------
# Split / reaction parsing
# ---------------------------------------------------------------------------

_REACTION_RE = re.compile(r'r:\s*([+\-]?\d+\.?\d*)', re.IGNORECASE)

# A split is MM.hh or M:SS.hh so that "4" is not read as a cumulative and
# "27.91" as its sub-split.
_TIME_PART = r'\d{1,2}(?::\d{1,2})?(?:\.\d{2})?'
_CUM_SUB_RE = re.compile(r'({0})\s*\(({0})\)|({0})'.format(_TIME_PART))


def parse_reaction_time(line: str) -> Optional[float]:
    """Reaction time from "r:+0.72", "r:0.15" or "r:-0.10", in seconds."""
    m = _REACTION_RE.search(line)
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def strip_reaction(line: str) -> str:
    return _REACTION_RE.sub(' ', line)


def cumulative_sub_pairs(text: str) -> List[Tuple[str, Optional[str]]]:
    """Extract (cumulative, sub) pairs; sub is None for a lone cumulative.

      '25.88  53.75 (27.87)'      -> [('25.88', None), ('53.75', '27.87')]
      '1:21.95 (28.20)  1:50.63'  -> [('1:21.95', '28.20'), ('1:50.63', None)]
    """
    pairs = []
    for m in _CUM_SUB_RE.finditer(text):
        if m.group(1) is not None:
            pairs.append((m.group(1), m.group(2)))
        else:
            pairs.append((m.group(3), None))
    return pairs


def derive_sub_split(prev_cumulative: Optional[str], cumulative: str) -> str:
    """Sub-split for a lone cumulative: the difference to the previous one."""
    if prev_cumulative is None:
        return cumulative
    prev = time_to_seconds(prev_cumulative)
    curr = time_to_seconds(cumulative)
    if prev is not None and curr is not None and curr >= prev:
        return seconds_to_split(curr - prev)
    return cumulative


def parse_splits(lines: List[str]) -> Tuple[Optional[float], List[str], List[str]]:
    """Parse continuation lines into (reaction_time, cumulative_splits, sub_splits).

    Handles:
      r:+0.72  25.88  53.75 (27.87)
      1:21.95 (28.20)  1:50.63 (28.68)
    """
    reaction_time = None
    cumulative = []
    subs = []
    for line in lines:
        reaction = parse_reaction_time(line)
        if reaction is not None:
            reaction_time = reaction
        for cum, sub in cumulative_sub_pairs(strip_reaction(line)):
            prev = cumulative[-1] if cumulative else None
            cumulative.append(cum)
            subs.append(sub if sub is not None else derive_sub_split(prev, cum))
    return reaction_time, cumulative, subs


# ---------------------------------------------------------------------------
# Individual result parsing
# ---------------------------------------------------------------------------

_YEAR = r'(' + '|'.join(CLASS_YEARS) + r')'

# place, name, year, school, then the numeric columns
_LEADING_RE = re.compile(r'^\s*(\d+)\s+(.+?)\s+' + _YEAR + r'\s+([A-Za-z]+)\s+', re.IGNORECASE)
_FINALS_ONLY_RE = re.compile(
    r'^\s*(\d+)\s+(.+?)\s+' + _YEAR + r'\s+([A-Za-z]+)\s+([\d:.]+)!?\s*$', re.IGNORECASE)
_NUMERIC_TOKEN_RE = re.compile(r'[\d:.]+!?')
_TRAILING_INT_RE = re.compile(r'\s+(\d{1,2})\s*$')


def classify_numeric_tokens(rest: str) -> Tuple[str, Optional[float]]:
    """Pick the result time and points out of the columns after the school.

    The rightmost time-shaped token is the result time. A trailing 1-2 digit
    integer is the points value; failing that, a whole or half number after
    the time and within the points range is.

      '55.32    53.10  32'    -> ('53.10', 32.0)
      '2:01.43  1:59.80'      -> ('1:59.80', None)
      '58.10    57.44  13.5'  -> ('57.44', 13.5)
    """
    tokens = [t.replace('!', '') for t in _NUMERIC_TOKEN_RE.findall(rest)]
    time_idx = None
    for idx, token in enumerate(tokens):
        if is_swim_time(token):
            time_idx = idx
    if time_idx is None:
        return '', None

    points = None
    trailing = _TRAILING_INT_RE.search(rest)
    if trailing:
        points = float(trailing.group(1))
    elif time_idx < len(tokens) - 1:
        try:
            value = float(tokens[-1])
        except ValueError:
            value = None
        if value is not None and 0 <= value <= MAX_POINTS and (value * 2).is_integer():
            points = value
    return tokens[time_idx], points


def is_individual_data_line(line: str) -> bool:
    """True if line starts a new swimmer (place + name + year + school)."""
    return bool(_LEADING_RE.match(line.strip()))


def is_individual_continuation_line(line: str) -> bool:
    """True if line holds splits/reaction for the previous swimmer."""
    t = line.strip()
    if not t or is_individual_data_line(line):
        return False
    if re.match(r'^\s*r:', line):
        return True
    return bool(re.match(r'\d+\.\d+', t) or re.match(r'\d+:\d+', t))


def parse_individual_line(line: str) -> Optional[IndividualRow]:
    """Parse an individual result line (prelims or finals).

      1 Doe, Jane         SR Penn     55.32    53.10  32
      3 Lee, Kim          SO Yale   1:02.11  1:01.40
      7 Park, Ann         FR Brown     9.87
    """
    m = _LEADING_RE.match(line)
    if m:
        time_str, points = classify_numeric_tokens(line[m.end(4):].strip())
        if time_str:
            return IndividualRow(
                place=int(m.group(1)), name=_collapse(m.group(2)), school=m.group(4),
                time_str=time_str, year=m.group(3).upper(), points=points,
            )

    m = _FINALS_ONLY_RE.match(line)
    if m:
        return IndividualRow(
            place=int(m.group(1)), name=_collapse(m.group(2)), school=m.group(4),
            time_str=m.group(5).replace('!', ''), year=m.group(3).upper(),
        )
    return None


def _attach_individual_splits(row: IndividualRow, block: List[str], result: ParseResult):
    if not block:
        return
    reaction, cumulative, subs = parse_splits(block)
    if reaction is None and not cumulative:
        return
    row.reaction_time = reaction
    row.cumulative_splits = cumulative or None
    row.sub_splits = subs or None


# ---------------------------------------------------------------------------
# Relay result parsing
# ---------------------------------------------------------------------------

_RELAY_LINE_RE = re.compile(r'^\s*(\d+)\s+(.+?)\s+([\d:.]+)\s+([\d:.@!]+)\s*(\d+)?\s*$')
_RELAY_DQ_RE = re.compile(r'^\s*--\s+(.+?)\s+([\d:.]+)\s+(XDQ|DQ)', re.IGNORECASE)
_RELAY_LETTER_RE = re.compile(r"\s*'[A-Z]'\s*$", re.IGNORECASE)
_SWIMMER_LINE_RE = re.compile(r'^\s*\d+\)\s+')
_SWIMMER_SEGMENT_RE = re.compile(
    r'\d+\)\s*(?:r:([+\-]?\d+\.?\d*)\s+)?(.+?)\s+' + _YEAR + r'(?=\s*\d+\)|\s*$)', re.IGNORECASE)
_SPLIT_LINE_RE = re.compile(r'r:\s*[+\-]?\d+\.?\d*|\d+\.\d+|\d+:\d+\.?\d*')


def _relay_school(label: str) -> str:
    return _RELAY_LETTER_RE.sub('', _collapse(label)).strip()


def parse_relay_line(line: str) -> Optional[RelayRow]:
    """Parse relay team result line.

      1 Harvard  'A'   2:55.00   2:54.10  64
      -- Yale  'A'  3:20.80  XDQ
    """
    dq = _RELAY_DQ_RE.match(line.strip())
    if dq:
        return RelayRow(place=None, school=_relay_school(dq.group(1)), time_str='DQ',
                        points=0, disqualified=True)

    m = _RELAY_LINE_RE.match(line)
    if m:
        return RelayRow(
            place=int(m.group(1)),
            school=_relay_school(m.group(2)),
            time_str=re.sub(r'[@!]', '', m.group(4)),
            points=float(m.group(5)) if m.group(5) else None,
        )
    return None


def is_relay_continuation_line(line: str) -> Optional[bool]:
    """True to keep the line, None to skip a blank or page header, False when the block ends."""
    t = line.strip()
    if _RELAY_LINE_RE.match(t) or _RELAY_DQ_RE.match(t) or t.startswith('---'):
        return False
    if not t or is_header_line(t):
        return None
    return True


def parse_relay_swimmers(line: str) -> List[RelayLeg]:
    """Parse every "N) [r:x] Name YR" segment of a swimmer line.

      1) Mostek, Anya SR          2) r:0.15 Marakovic, Aliana FR
    """
    legs = []
    for m in _SWIMMER_SEGMENT_RE.finditer(line):
        legs.append(RelayLeg(
            name=_collapse(m.group(2)),
            year=m.group(3).upper(),
            reaction_time=float(m.group(1)) if m.group(1) else None,
        ))
    return legs


def parse_relay_legs(lines: List[str], event_title: Optional[str] = None,
                     errors: Optional[List[str]] = None) -> Tuple[List[RelayLeg], List[str]]:
    """Build the four legs of a relay from its swimmer and split lines.

    Splits are the relay's cumulative times at every 50; segment i goes to leg
    i // segments_per_leg (clamped to the last leg), and each leg's cumulative
    series is the running sum of its sub-splits. Returns (legs, cumulative_at_50)
    with exactly four legs.
    """
    legs: List[RelayLeg] = []
    split_lines = []
    lead_off_reaction = None

    for line in lines:
        if _SWIMMER_LINE_RE.match(line):
            legs.extend(parse_relay_swimmers(line))
            continue
        if _SPLIT_LINE_RE.search(line):
            split_lines.append(line)
            if lead_off_reaction is None:
                lead_off_reaction = parse_reaction_time(line)

    if len(legs) > RELAY_NUM_LEGS and errors is not None:
        errors.append(f"{len(legs)} relay swimmers listed, only the first {RELAY_NUM_LEGS} kept")
    if legs and lead_off_reaction is not None:
        legs[0].reaction_time = lead_off_reaction

    config = get_relay_config(event_title)
    segments_per_leg = get_segments_per_leg(config['distance_per_leg'])

    cumulative_at_50: List[str] = []
    combined = ' '.join(strip_reaction(line) for line in split_lines)
    for cum, sub in cumulative_sub_pairs(combined):
        prev = cumulative_at_50[-1] if cumulative_at_50 else None
        cumulative_at_50.append(cum)
        if sub is None:
            sub = derive_sub_split(prev, cum)
        leg_idx = min((len(cumulative_at_50) - 1) // segments_per_leg, RELAY_NUM_LEGS - 1)
        while len(legs) <= leg_idx:
            legs.append(RelayLeg())
        legs[leg_idx].sub_splits.append(sub)

    for leg in legs:
        running = 0.0
        leg.cumulative_leg = []
        for sub in leg.sub_splits:
            secs = time_to_seconds(sub)
            if secs is not None:
                running += secs
                leg.cumulative_leg.append(seconds_to_split(running))

    legs = legs[:RELAY_NUM_LEGS]
    while len(legs) < RELAY_NUM_LEGS:
        legs.append(RelayLeg())
    return legs, cumulative_at_50


def _attach_relay_legs(row: RelayRow, block: List[str], result: ParseResult):
    if not block:
        return
    legs, cumulative_at_50 = parse_relay_legs(block, result.event_title, result.errors)
    row.legs = legs
    row.cumulative_at_50 = cumulative_at_50 or None


# ---------------------------------------------------------------------------
# Diving result parsing
# ---------------------------------------------------------------------------

_DIVING_SPACE_RE = re.compile(r'^(\d+)\s+([\d.]+)\s+(.+)$')
_SCHOOL_CODE_RE = re.compile(r'\s*\(([A-Za-z]+)\)\s*$')
_DIVING_SCORE_RE = re.compile(r'X?[\d.]+!?')


def _split_school_code(name_part: str) -> Tuple[str, str]:
    """'Nina Janmyr (HARV)' -> ('Nina Janmyr', 'HARV')"""
    m = _SCHOOL_CODE_RE.search(name_part)
    if not m:
        return name_part.strip(), ''
    return name_part[:m.start()].strip(), m.group(1).upper()


def parse_diving_line(line: str) -> Optional[DivingRow]:
    """Parse diving result line. Tried in order:

      1<TAB>293.65<TAB>Nina Janmyr (HARV)
      1 293.65 Nina Janmyr (HARV)
      1 Martinkus, Charlotte   SR Princeton   277.05   318.45!  32
    """
    t = line.strip()
    if re.match(r'^\s*r:', line) or re.search(r'\s+\(\d+\.\d+\)', line) or re.match(r'--\s+', t):
        return None

    parts = re.split(r'\t+', t)
    if len(parts) >= 3:
        place = re.match(r'\d+', parts[0].strip())
        if not place:
            return None
        name, code = _split_school_code(parts[2])
        return DivingRow(place=int(place.group(0)), name=name, school_code=code,
                         score=parts[1].strip())

    m = _DIVING_SPACE_RE.match(t)
    if m:
        name, code = _split_school_code(m.group(3))
        return DivingRow(place=int(m.group(1)), name=name, school_code=code, score=m.group(2))

    m = _LEADING_RE.match(line)
    if m:
        rest = line[m.end(4):].strip()
        scores = [s.lstrip('Xx').replace('!', '') for s in _DIVING_SCORE_RE.findall(rest)]
        if not scores:
            return None
        has_points = _TRAILING_INT_RE.search(rest) is not None
        score = scores[-2] if has_points and len(scores) >= 2 else scores[-1]
        if score:
            return DivingRow(place=int(m.group(1)), name=_collapse(m.group(2)),
                             school_code=m.group(4).upper(), score=score,
                             year=m.group(3).upper())
    return None


# ---------------------------------------------------------------------------
# Main parsing loop
# ---------------------------------------------------------------------------

EXPECTING_DATA = 'expecting_data'
CONSUMING_CONTINUATION = 'consuming_continuation'


def _scan(text: str, kind: str,
          is_title: Callable[[str], bool],
          parse_line: Callable[[str], Optional[object]],
          continues: Optional[Callable[[str], Optional[bool]]] = None,
          attach: Optional[Callable[[object, List[str], ParseResult], None]] = None) -> ParseResult:
    """Single forward pass over the lines of one event.

    continues(line) decides whether a line belongs to the current row's
    continuation block (True), is skipped (None) or ends it (False). A line
    that ends a block is then handled as an ordinary line.
    """
    result = ParseResult(kind=kind)
    state = EXPECTING_DATA
    current = None
    block: List[str] = []

    for lineno, line in enumerate(text.splitlines(), start=1):
        if state == CONSUMING_CONTINUATION:
            verdict = continues(line)
            if verdict:
                block.append(line)
                continue
            if verdict is None:
                continue
            attach(current, block, result)
            result.rows.append(current)
            current, block, state = None, [], EXPECTING_DATA

        trimmed = line.strip()
        if not trimmed:
            continue
        if result.event_title is None and is_title(trimmed):
            result.event_title = trimmed
            continue
        if is_header_line(trimmed):
            continue

        row = parse_line(line)
        if row is None:
            continue
        if row.place is not None and row.place < 1:
            result.errors.append(f"line {lineno}: place must be a positive integer: {trimmed!r}")
            continue

        if continues is None:
            result.rows.append(row)
        else:
            current, block, state = row, [], CONSUMING_CONTINUATION

    if current is not None:
        attach(current, block, result)
        result.rows.append(current)
    return result


def parse_individual_swimming(text: str) -> ParseResult:
    """Parse individual swimming results, attaching split lines to their rows."""
    return _scan(text, 'individual', is_individual_title, parse_individual_line,
                 is_individual_continuation_line, _attach_individual_splits)


def parse_relay(text: str) -> ParseResult:
    """Parse relay results, attaching swimmer and split lines to their rows."""
    return _scan(text, 'relay', is_relay_title, parse_relay_line,
                 is_relay_continuation_line, _attach_relay_legs)


def parse_diving(text: str) -> ParseResult:
    """Parse diving results (tab, space or swim-meet style lines)."""
    return _scan(text, 'diving', is_diving_title, parse_diving_line)


_DIVING_HINT_RE = re.compile(
    r'diving|\bdiver\b|1m|3m|1\s*m\s|3\s*m\s|mtr\s+diving|place\s+score\s+diver')


def detect_event_type(text: str) -> str:
    """Best-effort guess of the report kind. Callers should pass a hint when known."""
    lower = text.lower()
    if re.search(r'\brelay\b', lower):
        return 'relay'
    if _DIVING_HINT_RE.search(lower):
        return 'diving'
    return 'individual'


def parse_result_text(text: str, event_type: Optional[str] = None) -> ParseResult:
    """Parse result text for one event; event_type is 'individual', 'relay' or 'diving'."""
    kind = event_type if event_type in EVENT_TYPES else detect_event_type(text)
    if kind == 'relay':
        return parse_relay(text)
    if kind == 'diving':
        return parse_diving(text)
    return parse_individual_swimming(text)


# ---------------------------------------------------------------------------
# Input / tabular helpers
# ---------------------------------------------------------------------------

def read_result_text(path: str) -> str:
    """Read a results export: plain text, or the text layer of a HY-TEK PDF."""
    if str(path).lower().endswith('.pdf'):
        with pdfplumber.open(path) as pdf:
            return '\n'.join(page.extract_text() or '' for page in pdf.pages)
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def results_to_dataframe(result: ParseResult) -> pd.DataFrame:
    """One row per parsed result. Relay legs become (name, year, reaction) tuples."""
    if not result.rows:
        return pd.DataFrame()

    records = []
    for row in result.rows:
        record = asdict(row)
        if isinstance(row, RelayRow):
            record['legs'] = [(leg.name, leg.year, leg.reaction_time) for leg in row.legs or []]
        records.append(record)

    df = pd.DataFrame(records)
    df.insert(0, 'event_title', result.event_title)
    return df


def summarize_result(result: ParseResult) -> dict:
    return {
        'kind': result.kind,
        'event_title': result.event_title,
        'rows': len(result.rows),
        'placed': sum(1 for r in result.rows if r.place is not None),
        'errors': len(result.errors),
    }


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python hytek_parser.py RESULTS_FILE [individual|relay|diving]")
        sys.exit(1)

    path = sys.argv[1]
    hint = sys.argv[2] if len(sys.argv) > 2 else None
    print(f"Parsing: {path}")
    parsed = parse_result_text(read_result_text(path), hint)

    print("\n=== Summary ===")
    for k, v in summarize_result(parsed).items():
        print(f"  {k}: {v}")

    df = results_to_dataframe(parsed)
    if df.empty:
        print("No results found!")
    else:
        print("\n=== Results ===")
        print(df.drop(columns=['event_title']).head(25).to_string(index=False))
    for err in parsed.errors:
        print(f"  ! {err}")
