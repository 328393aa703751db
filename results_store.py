"""
SQLite persistence for teams, rosters, meets and applied results.

Result rows are keyed by (meet, athlete, event) for individual/diving lineups
and (meet, event, team) for relays. Applying results only ever writes the
result-derived columns; seed and projected columns are left untouched.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from config import DB_PATH, DEFAULT_SCORING_PLACES

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ('final_time', 'final_time_seconds', 'place', 'points',
                  'real_result_applied', 'splits_detail')


class StoreError(Exception):
    """A database operation failed."""


def _loads(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


class ResultsStore:
    def __init__(self, db_path=None):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self.init_db()

    def get_db(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    def _execute(self, sql: str, params=()) -> sqlite3.Cursor:
        conn = self.get_db()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"{e} (while running: {sql.split()[0]})") from e
        finally:
            conn.close()

    def _query(self, sql: str, params=()) -> List[dict]:
        conn = self.get_db()
        try:
            return [dict(row) for row in conn.execute(sql, params).fetchall()]
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def _query_one(self, sql: str, params=()) -> Optional[dict]:
        rows = self._query(sql, params)
        return rows[0] if rows else None

    def init_db(self):
        conn = self.get_db()
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS teams (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                school_name TEXT,
                short_name TEXT
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS athletes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                team_id INTEGER NOT NULL,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                year TEXT,
                is_diver INTEGER DEFAULT 0,
                FOREIGN KEY (team_id) REFERENCES teams(id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                full_name TEXT,
                event_type TEXT NOT NULL DEFAULT 'individual'
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS meets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                scoring_mode TEXT DEFAULT 'simulated',
                scoring_places INTEGER,
                individual_scoring TEXT,
                relay_scoring TEXT,
                diving_scoring TEXT,
                selected_events TEXT,
                real_results_event_ids TEXT
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS meet_teams (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                meet_id INTEGER NOT NULL,
                team_id INTEGER NOT NULL,
                selected_athletes TEXT,
                test_spot_athlete_ids TEXT,
                test_spot_scoring_athlete_id INTEGER,
                individual_score REAL DEFAULT 0,
                diving_score REAL DEFAULT 0,
                relay_score REAL DEFAULT 0,
                total_score REAL DEFAULT 0,
                UNIQUE (meet_id, team_id),
                FOREIGN KEY (meet_id) REFERENCES meets(id),
                FOREIGN KEY (team_id) REFERENCES teams(id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS meet_lineups (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                meet_id INTEGER NOT NULL,
                athlete_id INTEGER NOT NULL,
                event_id INTEGER NOT NULL,
                seed_time TEXT,
                projected_place INTEGER,
                projected_points REAL,
                final_time TEXT,
                final_time_seconds REAL,
                place INTEGER,
                points REAL,
                real_result_applied INTEGER DEFAULT 0,
                splits_detail TEXT,
                UNIQUE (meet_id, athlete_id, event_id),
                FOREIGN KEY (meet_id) REFERENCES meets(id),
                FOREIGN KEY (athlete_id) REFERENCES athletes(id),
                FOREIGN KEY (event_id) REFERENCES events(id)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS relay_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                meet_id INTEGER NOT NULL,
                event_id INTEGER NOT NULL,
                team_id INTEGER NOT NULL,
                seed_time TEXT,
                projected_place INTEGER,
                projected_points REAL,
                final_time TEXT,
                final_time_seconds REAL,
                place INTEGER,
                points REAL,
                real_result_applied INTEGER DEFAULT 0,
                splits_detail TEXT,
                UNIQUE (meet_id, event_id, team_id),
                FOREIGN KEY (meet_id) REFERENCES meets(id),
                FOREIGN KEY (event_id) REFERENCES events(id),
                FOREIGN KEY (team_id) REFERENCES teams(id)
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_athlete_team ON athletes(team_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_lineup_event ON meet_lineups(meet_id, event_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_relay_event ON relay_entries(meet_id, event_id)')

        conn.commit()
        conn.close()

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_team(self, name: str, school_name: Optional[str] = None,
                 short_name: Optional[str] = None) -> int:
        cursor = self._execute(
            'INSERT INTO teams (name, school_name, short_name) VALUES (?, ?, ?)',
            (name, school_name, short_name))
        return cursor.lastrowid

    def add_athlete(self, team_id: int, first_name: str, last_name: str,
                    year: Optional[str] = None, is_diver: bool = False) -> int:
        cursor = self._execute(
            'INSERT INTO athletes (team_id, first_name, last_name, year, is_diver) VALUES (?, ?, ?, ?, ?)',
            (team_id, first_name, last_name, year, int(is_diver)))
        return cursor.lastrowid

    def add_event(self, name: str, event_type: str = 'individual',
                  full_name: Optional[str] = None) -> int:
        cursor = self._execute(
            'INSERT INTO events (name, full_name, event_type) VALUES (?, ?, ?)',
            (name, full_name, event_type))
        return cursor.lastrowid

    def add_meet(self, name: str, individual_scoring: Optional[Dict[int, float]] = None,
                 relay_scoring: Optional[Dict[int, float]] = None,
                 diving_scoring: Optional[Dict[int, float]] = None,
                 scoring_places: int = DEFAULT_SCORING_PLACES,
                 scoring_mode: str = 'simulated',
                 event_ids: Optional[List[int]] = None) -> int:
        def dump(table):
            return json.dumps({str(k): v for k, v in table.items()}) if table else None

        cursor = self._execute(
            '''INSERT INTO meets (name, scoring_mode, scoring_places, individual_scoring,
                                  relay_scoring, diving_scoring, selected_events)
               VALUES (?, ?, ?, ?, ?, ?, ?)''',
            (name, scoring_mode, scoring_places, dump(individual_scoring), dump(relay_scoring),
             dump(diving_scoring), json.dumps(list(event_ids or []))))
        return cursor.lastrowid

    def add_meet_team(self, meet_id: int, team_id: int,
                      selected_athletes: Optional[List[int]] = None,
                      test_spot_athlete_ids: Optional[List[int]] = None,
                      test_spot_scoring_athlete_id: Optional[int] = None) -> int:
        cursor = self._execute(
            '''INSERT INTO meet_teams (meet_id, team_id, selected_athletes,
                                       test_spot_athlete_ids, test_spot_scoring_athlete_id)
               VALUES (?, ?, ?, ?, ?)''',
            (meet_id, team_id, json.dumps(list(selected_athletes or [])),
             json.dumps(list(test_spot_athlete_ids or [])), test_spot_scoring_athlete_id))
        return cursor.lastrowid

    def add_lineup(self, meet_id: int, athlete_id: int, event_id: int,
                   seed_time: Optional[str] = None, projected_place: Optional[int] = None,
                   projected_points: Optional[float] = None) -> int:
        """Entry built before results exist (seed and projection only)."""
        cursor = self._execute(
            '''INSERT INTO meet_lineups (meet_id, athlete_id, event_id, seed_time,
                                         projected_place, projected_points)
               VALUES (?, ?, ?, ?, ?, ?)''',
            (meet_id, athlete_id, event_id, seed_time, projected_place, projected_points))
        return cursor.lastrowid

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_meet(self, meet_id: int) -> Optional[dict]:
        meet = self._query_one('SELECT * FROM meets WHERE id = ?', (meet_id,))
        if meet:
            meet['selected_events'] = _loads(meet['selected_events'], [])
            meet['real_results_event_ids'] = _loads(meet['real_results_event_ids'], [])
        return meet

    def get_event(self, event_id: int) -> Optional[dict]:
        return self._query_one('SELECT * FROM events WHERE id = ?', (event_id,))

    def find_event_by_name(self, name: str) -> Optional[dict]:
        return self._query_one(
            'SELECT * FROM events WHERE lower(name) = lower(?) OR lower(full_name) = lower(?) '
            'ORDER BY id LIMIT 1', (name, name))

    def get_or_create_event(self, meet_id: int, name: str, event_type: str) -> dict:
        """Find an event by name, creating it if needed, and add it to the meet's events."""
        event = self.find_event_by_name(name)
        if event is None:
            event = self.get_event(self.add_event(name, event_type, full_name=name))
            logger.info(f"Created event {event['id']}: {name} ({event_type})")

        meet = self.get_meet(meet_id)
        if meet and event['id'] not in meet['selected_events']:
            selected = meet['selected_events'] + [event['id']]
            self._execute('UPDATE meets SET selected_events = ? WHERE id = ?',
                          (json.dumps(selected), meet_id))
        return event

    def list_meet_events(self, meet_id: int) -> List[dict]:
        meet = self.get_meet(meet_id)
        if not meet or not meet['selected_events']:
            return []
        ids = meet['selected_events']
        placeholders = ','.join('?' * len(ids))
        events = self._query(f'SELECT * FROM events WHERE id IN ({placeholders})', tuple(ids))
        order = {event_id: i for i, event_id in enumerate(ids)}
        return sorted(events, key=lambda e: order[e['id']])

    def list_meet_teams(self, meet_id: int) -> List[dict]:
        teams = self._query('''
            SELECT mt.*, t.name, t.school_name, t.short_name
            FROM meet_teams mt JOIN teams t ON t.id = mt.team_id
            WHERE mt.meet_id = ?
            ORDER BY mt.id
        ''', (meet_id,))
        for team in teams:
            team['selected_athletes'] = _loads(team['selected_athletes'], [])
            team['test_spot_athlete_ids'] = _loads(team['test_spot_athlete_ids'], [])
        return teams

    def list_team_athletes(self, team_id: int) -> List[dict]:
        return self._query('SELECT * FROM athletes WHERE team_id = ? ORDER BY id', (team_id,))

    def get_athlete(self, athlete_id: int) -> Optional[dict]:
        return self._query_one('SELECT * FROM athletes WHERE id = ?', (athlete_id,))

    # ------------------------------------------------------------------
    # Roster changes
    # ------------------------------------------------------------------

    def create_athlete(self, team_id: int, first_name: str, last_name: str,
                       year: Optional[str] = None, is_diver: bool = False) -> int:
        athlete_id = self.add_athlete(team_id, first_name or 'Unknown', last_name or 'Unknown',
                                      year, is_diver)
        logger.info(f"Created athlete {athlete_id}: {first_name} {last_name} (team {team_id})")
        return athlete_id

    def add_selected_athlete(self, meet_id: int, team_id: int, athlete_id: int):
        row = self._query_one('SELECT id, selected_athletes FROM meet_teams WHERE meet_id = ? AND team_id = ?',
                              (meet_id, team_id))
        if row is None:
            return
        selected = _loads(row['selected_athletes'], [])
        if athlete_id not in selected:
            selected.append(athlete_id)
            self._execute('UPDATE meet_teams SET selected_athletes = ? WHERE id = ?',
                          (json.dumps(selected), row['id']))

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def upsert_lineup_result(self, meet_id: int, athlete_id: int, event_id: int,
                             final_time: str, final_time_seconds: Optional[float],
                             place: Optional[int], points: float,
                             splits_detail: Optional[dict] = None) -> int:
        self._execute('''
            INSERT INTO meet_lineups (meet_id, athlete_id, event_id, final_time, final_time_seconds,
                                      place, points, real_result_applied, splits_detail)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
            ON CONFLICT (meet_id, athlete_id, event_id) DO UPDATE SET
                final_time = excluded.final_time,
                final_time_seconds = excluded.final_time_seconds,
                place = excluded.place,
                points = excluded.points,
                real_result_applied = 1,
                splits_detail = excluded.splits_detail
        ''', (meet_id, athlete_id, event_id, final_time, final_time_seconds, place, points,
              json.dumps(splits_detail) if splits_detail else None))
        row = self._query_one('SELECT id FROM meet_lineups WHERE meet_id = ? AND athlete_id = ? AND event_id = ?',
                              (meet_id, athlete_id, event_id))
        return row['id']

    def upsert_relay_result(self, meet_id: int, event_id: int, team_id: int,
                            final_time: str, final_time_seconds: Optional[float],
                            place: Optional[int], points: float,
                            splits_detail: Optional[dict] = None) -> int:
        self._execute('''
            INSERT INTO relay_entries (meet_id, event_id, team_id, final_time, final_time_seconds,
                                       place, points, real_result_applied, splits_detail)
            VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
            ON CONFLICT (meet_id, event_id, team_id) DO UPDATE SET
                final_time = excluded.final_time,
                final_time_seconds = excluded.final_time_seconds,
                place = excluded.place,
                points = excluded.points,
                real_result_applied = 1,
                splits_detail = excluded.splits_detail
        ''', (meet_id, event_id, team_id, final_time, final_time_seconds, place, points,
              json.dumps(splits_detail) if splits_detail else None))
        row = self._query_one('SELECT id FROM relay_entries WHERE meet_id = ? AND event_id = ? AND team_id = ?',
                              (meet_id, event_id, team_id))
        return row['id']

    def clear_event_results(self, meet_id: int, event_id: int) -> int:
        """Null out result columns for one event. Returns the number of rows reset."""
        reset = ', '.join(f'{col} = NULL' for col in RESULT_COLUMNS if col != 'real_result_applied')
        reset += ', real_result_applied = 0'
        count = 0
        for table in ('meet_lineups', 'relay_entries'):
            cursor = self._execute(f'UPDATE {table} SET {reset} WHERE meet_id = ? AND event_id = ?',
                                   (meet_id, event_id))
            count += cursor.rowcount
        return count

    def get_lineup(self, meet_id: int, athlete_id: int, event_id: int) -> Optional[dict]:
        return self._query_one('SELECT * FROM meet_lineups WHERE meet_id = ? AND athlete_id = ? AND event_id = ?',
                               (meet_id, athlete_id, event_id))

    def list_event_lineups(self, meet_id: int, event_id: int) -> List[dict]:
        return self._query('SELECT * FROM meet_lineups WHERE meet_id = ? AND event_id = ? ORDER BY id',
                           (meet_id, event_id))

    def list_event_relays(self, meet_id: int, event_id: int) -> List[dict]:
        return self._query('SELECT * FROM relay_entries WHERE meet_id = ? AND event_id = ? ORDER BY id',
                           (meet_id, event_id))

    def read_meet_entries(self, meet_id: int):
        """Everything the team score recompute needs, as DataFrames:
        (meet_teams, lineups, relays)."""
        meet_teams = pd.DataFrame(
            self.list_meet_teams(meet_id),
            columns=['id', 'meet_id', 'team_id', 'selected_athletes', 'test_spot_athlete_ids',
                     'test_spot_scoring_athlete_id'])

        conn = self.get_db()
        try:
            lineups = pd.read_sql_query('''
                SELECT ml.athlete_id, a.team_id, e.event_type, ml.points
                FROM meet_lineups ml
                JOIN athletes a ON a.id = ml.athlete_id
                JOIN events e ON e.id = ml.event_id
                WHERE ml.meet_id = ?
            ''', conn, params=(meet_id,))
            relays = pd.read_sql_query(
                'SELECT team_id, points FROM relay_entries WHERE meet_id = ?',
                conn, params=(meet_id,))
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()
        return meet_teams, lineups, relays

    def update_team_scores(self, meet_id: int, scores: pd.DataFrame):
        conn = self.get_db()
        try:
            for row in scores.itertuples(index=False):
                conn.execute('''
                    UPDATE meet_teams
                    SET individual_score = ?, diving_score = ?, relay_score = ?, total_score = ?
                    WHERE meet_id = ? AND team_id = ?
                ''', (row.individual_score, row.diving_score, row.relay_score, row.total_score,
                      meet_id, int(row.team_id)))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def mark_event_applied(self, meet_id: int, event_id: int):
        """Record that an event has real results; a simulated meet becomes hybrid."""
        meet = self.get_meet(meet_id)
        applied = meet['real_results_event_ids']
        if event_id not in applied:
            applied.append(event_id)
        mode = 'hybrid' if meet['scoring_mode'] == 'simulated' else meet['scoring_mode']
        self._execute('UPDATE meets SET real_results_event_ids = ?, scoring_mode = ? WHERE id = ?',
                      (json.dumps(applied), mode, meet_id))

    def unmark_event_applied(self, meet_id: int, event_id: int):
        meet = self.get_meet(meet_id)
        applied = [e for e in meet['real_results_event_ids'] if e != event_id]
        self._execute('UPDATE meets SET real_results_event_ids = ? WHERE id = ?',
                      (json.dumps(applied), meet_id))
