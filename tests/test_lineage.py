"""
Tests for championship lineage tracking and per-entity locks.
"""

import asyncio

import pytest

from ringside.data_models.records import ChampionshipRecord, TitleReign
from ringside.services.lineage import TitleLineageTracker
from ringside.services.locks import EntityLockRegistry
from ringside.utils.exceptions import PreconditionViolationError

from conftest import FrozenClock


def open_reigns(title):
    return [reign for reign in title.title_history if reign.is_open]


class TestCrownChampion:
    """Test title changes."""

    def setup_method(self):
        self.clock = FrozenClock()
        self.tracker = TitleLineageTracker(clock=self.clock)
        self.title = ChampionshipRecord(championship_id=1, name="World Heavyweight Championship")

    def test_first_champion(self):
        result = self.tracker.crown_champion(self.title, 10)

        assert result.closed_reign is None
        assert self.title.current_holder == 10
        assert len(self.title.title_history) == 1
        assert open_reigns(self.title) == [result.new_reign]
        assert result.new_reign.start_date == self.clock.now
        assert result.new_reign.defense_count == 0

    def test_title_change_closes_previous_reign(self):
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=30)
        result = self.tracker.crown_champion(self.title, 20, won_from=10, won_at_show=5)

        first, second = self.title.title_history
        assert result.closed_reign is first
        assert first.end_date == self.clock.now
        assert second.holder == 20
        assert second.won_from == 10
        assert second.won_at == 5
        assert self.title.current_holder == 20
        assert open_reigns(self.title) == [second]
        assert self.title.open_reign is second

    def test_history_is_append_only(self):
        for holder in (10, 20, 10, 30):
            self.tracker.crown_champion(self.title, holder)
            self.clock.advance(days=1)

        assert [r.holder for r in self.title.title_history] == [10, 20, 10, 30]
        assert len(open_reigns(self.title)) == 1

    def test_rejects_two_open_reigns(self):
        now = self.clock()
        with pytest.raises(PreconditionViolationError):
            ChampionshipRecord(
                championship_id=1, name="Broken", current_holder=2,
                title_history=[TitleReign(holder=1, start_date=now), TitleReign(holder=2, start_date=now)]
            )

    def test_rejects_open_reign_for_someone_else(self):
        with pytest.raises(PreconditionViolationError):
            ChampionshipRecord(
                championship_id=1, name="Broken", current_holder=2,
                title_history=[TitleReign(holder=1, start_date=self.clock())]
            )


class TestRecordDefense:
    """Test successful defenses."""

    def setup_method(self):
        self.clock = FrozenClock()
        self.tracker = TitleLineageTracker(clock=self.clock)
        self.title = ChampionshipRecord(championship_id=1, name="Tag Team Championship", prestige=50)

    def test_defense_without_champion_fails(self):
        with pytest.raises(PreconditionViolationError):
            self.tracker.record_defense(self.title, 20, show=1)

    def test_holder_without_open_reign_is_rejected(self):
        with pytest.raises(PreconditionViolationError):
            ChampionshipRecord(championship_id=1, name="Orphaned", current_holder=10)

        closed = TitleReign(holder=10, start_date=self.clock(), end_date=self.clock())
        with pytest.raises(PreconditionViolationError):
            ChampionshipRecord(championship_id=1, name="Orphaned", current_holder=10, title_history=[closed])

    def test_defense_is_recorded(self):
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=7)
        result = self.tracker.record_defense(self.title, 20, show=3, quality=4)

        reign = self.title.open_reign
        assert result.reign is reign
        assert reign.defense_count == 1
        assert reign.defenses[0].against == 20
        assert reign.defenses[0].show_id == 3
        assert reign.defenses[0].quality == 4
        assert self.title.last_defended == self.clock.now
        assert self.title.defended_at == [3]
        assert self.title.prestige == 52
        assert result.prestige_change == 2

    def test_default_quality_leaves_prestige(self):
        self.tracker.crown_champion(self.title, 10)
        result = self.tracker.record_defense(self.title, 20, show=3)

        assert result.defense.quality == 3
        assert self.title.prestige == 50
        assert result.prestige_change == 0

    def test_defended_at_has_no_duplicates(self):
        self.tracker.crown_champion(self.title, 10)
        self.tracker.record_defense(self.title, 20, show=3)
        self.tracker.record_defense(self.title, 30, show=3)
        self.tracker.record_defense(self.title, 40, show=4)

        assert self.title.defended_at == [3, 4]
        assert self.title.open_reign.defense_count == 3

    def test_prestige_is_clamped(self):
        title = ChampionshipRecord(championship_id=1, name="Legacy", prestige=99)
        self.tracker.crown_champion(title, 10)
        self.tracker.record_defense(title, 20, quality=5)
        assert title.prestige == 100


class TestReignDurations:
    """Test derived reign lengths."""

    def setup_method(self):
        self.clock = FrozenClock()
        self.tracker = TitleLineageTracker(clock=self.clock)
        self.title = ChampionshipRecord(championship_id=1, name="Intercontinental Championship")

    def test_no_open_reign_is_zero(self):
        assert self.tracker.current_reign_duration_days(self.title) == 0

    def test_partial_days_round_up(self):
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=5, hours=1)
        assert self.tracker.current_reign_duration_days(self.title) == 6

    def test_total_days_held_over_multiple_reigns(self):
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=10)
        self.tracker.crown_champion(self.title, 20)
        self.clock.advance(days=4)
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=2, hours=12)

        # 10 closed + 3 open (2.5 rounded up)
        assert self.tracker.total_days_held(self.title, 10) == 13
        assert self.tracker.total_days_held(self.title, 20) == 4
        assert self.tracker.total_days_held(self.title, 99) == 0
        assert self.tracker.days_by_holder(self.title) == {10: 13, 20: 4}

    def test_current_reign_duration_is_stable_then_grows(self):
        self.tracker.crown_champion(self.title, 10)
        self.clock.advance(days=3, hours=2)

        first = self.tracker.current_reign_duration_days(self.title)
        assert self.tracker.current_reign_duration_days(self.title) == first

        previous = first
        for hours in (1, 20, 24, 72):
            self.clock.advance(hours=hours)
            duration = self.tracker.current_reign_duration_days(self.title)
            assert duration >= previous
            previous = duration

    def test_days_by_holder_sum_to_title_lifetime(self):
        start = self.clock.now
        for holder, days in ((10, 10), (20, 4), (10, 7), (30, 1)):
            self.tracker.crown_champion(self.title, holder)
            self.clock.advance(days=days)

        now = self.clock.now
        holders = {reign.holder for reign in self.title.title_history}
        total = sum(self.tracker.total_days_held(self.title, holder) for holder in holders)

        assert total == sum(reign.duration_days(now) for reign in self.title.title_history)
        assert total == (now - start).days == 22
        assert sum(self.tracker.days_by_holder(self.title).values()) == total


@pytest.mark.asyncio
class TestEntityLockRegistry:
    """Test per-entity locks."""

    async def test_same_entity_shares_a_lock(self):
        locks = EntityLockRegistry()
        assert await locks.get_lock('championship', 1) is await locks.get_lock('championship', 1)
        assert await locks.get_lock('championship', 1) is not await locks.get_lock('championship', 2)
        assert await locks.get_lock('championship', 1) is not await locks.get_lock('show', 1)

    async def test_hold_serializes_writers(self):
        locks = EntityLockRegistry()
        events = []

        async def writer(name):
            async with locks.hold('championship', 1):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(writer('a'), writer('b'))
        assert events in (['a-start', 'a-end', 'b-start', 'b-end'],
                          ['b-start', 'b-end', 'a-start', 'a-end'])

    async def test_different_entities_do_not_block(self):
        locks = EntityLockRegistry()
        async with locks.hold('championship', 1):
            assert locks.is_locked('championship', 1)
            assert not locks.is_locked('championship', 2)
            async with locks.hold('championship', 2):
                assert locks.is_locked('championship', 2)
        assert not locks.is_locked('championship', 1)
