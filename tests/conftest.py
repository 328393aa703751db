"""
Shared fixtures: a temporary results database seeded with a three-team meet.
"""

from types import SimpleNamespace

import pytest

from results_store import ResultsStore
from scoring import generate_scoring_table


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / 'results.db'


@pytest.fixture
def store(db_path):
    return ResultsStore(db_path)


@pytest.fixture
def meet(store):
    """Harvard, Penn and Yale at a 24-place championship meet.

    Harvard has two swimmers named Kim Lee (SO and JR) and a diver.
    """
    harvard = store.add_team('Harvard', 'Harvard University', 'HARV')
    penn = store.add_team('Penn', 'University of Pennsylvania', 'PENN')
    yale = store.add_team('Yale', 'Yale University', 'YALE')

    athletes = {
        'doe': store.add_athlete(penn, 'Jane', 'Doe', 'SR'),
        'smith': store.add_athlete(yale, 'Ann', 'Smith', 'SO'),
        'lee_so': store.add_athlete(harvard, 'Kim', 'Lee', 'SO'),
        'lee_jr': store.add_athlete(harvard, 'Kim', 'Lee', 'JR'),
        'janmyr': store.add_athlete(harvard, 'Nina', 'Janmyr', 'JR', is_diver=True),
    }

    events = {
        'free100': store.add_event('Women 100 Free', 'individual', 'Women 100 Yard Freestyle'),
        'relay400': store.add_event('Women 400 Free Relay', 'relay', 'Women 400 Yard Freestyle Relay'),
        'dive1m': store.add_event('Women 1m Diving', 'diving', 'Women 1 mtr Diving'),
    }

    tables = generate_scoring_table(24, 32)
    meet_id = store.add_meet('Ivy Championships', tables['individual'], tables['relay'],
                             event_ids=list(events.values()))

    store.add_meet_team(meet_id, harvard,
                        [athletes['lee_so'], athletes['lee_jr'], athletes['janmyr']])
    store.add_meet_team(meet_id, penn, [athletes['doe']])
    store.add_meet_team(meet_id, yale, [athletes['smith']])

    return SimpleNamespace(
        id=meet_id,
        teams={'harvard': harvard, 'penn': penn, 'yale': yale},
        athletes=athletes,
        events=events,
        tables=tables,
    )
