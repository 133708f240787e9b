"""
Shared fixtures for the ringside test suite.
"""

import os
import tempfile
from datetime import datetime, timedelta

# Keep test log files out of the working tree; must run before ringside.config loads
os.environ.setdefault('LOG_DIR', os.path.join(tempfile.gettempdir(), 'ringside-test-logs'))

import pytest
import pytest_asyncio

from ringside.data_models.records import (
    CompanySnapshot, MatchParticipantEntry, MatchRecord, SegmentRecord,
    ShowRecord, VenueSnapshot, WrestlerAttributes, WrestlerSnapshot
)
from ringside.database.database import Database


class MidpointRandom:
    """Returns the middle of every range: perturbations become 0, crowd variance 1.0"""

    def __init__(self):
        self.calls = []

    def uniform(self, a, b):
        self.calls.append((a, b))
        return (a + b) / 2


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_wrestler(wrestler_id, level=50, popularity=None, style='All-Rounder',
                  salary=1000, company_id=1, **attributes):
    """Snapshot with every attribute at `level` unless overridden"""
    values = dict(strength=level, agility=level, charisma=level, technical=level)
    values.update(attributes)
    return WrestlerSnapshot(
        wrestler_id=wrestler_id,
        name=f"Wrestler {wrestler_id}",
        style=style,
        attributes=WrestlerAttributes(**values),
        popularity=level if popularity is None else popularity,
        salary=salary,
        company_id=company_id
    )


def make_match(wrestler_ids, position=1, winners=(), **kwargs):
    participants = [MatchParticipantEntry(w, is_winner=w in winners) for w in wrestler_ids]
    return MatchRecord(participants=participants, position=position, **kwargs)


def make_segment(wrestler_ids, position=1, **kwargs):
    return SegmentRecord(segment_type='Promo', wrestler_ids=list(wrestler_ids), position=position, **kwargs)


def make_show(matches=(), segments=(), status='In Progress', show_type='Weekly TV', ticket_price=20):
    return ShowRecord(
        show_id=1,
        name="Monday Night Test",
        show_type=show_type,
        status=status,
        ticket_price=ticket_price,
        company_id=1,
        venue_id=1,
        matches=list(matches),
        segments=list(segments)
    )


@pytest.fixture
def midpoint_random():
    return MidpointRandom()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def venue():
    return VenueSnapshot(venue_id=1, name="Test Arena", capacity=10000, rental_cost=5000, prestige=50,
                         location="Springfield")


@pytest.fixture
def company():
    return CompanySnapshot(company_id=1, name="Test Wrestling", popularity=50, money=100000)


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'ringside_test.db'}")
    await database.initialize()
    yield database
    await database.close()
