"""
Tests for the database-backed show lifecycle.
"""

import asyncio
from datetime import datetime

import pytest
import pytest_asyncio

from ringside.config import Config
from ringside.constants import ShowConstants
from ringside.data_models.records import MatchParticipantEntry, ShowOutcome
from ringside.database.database import Database
from ringside.database.models import MatchType, SegmentType, ShowStatus, ShowType
from ringside.operations.show_operations import ShowOperations
from ringside.operations.show_rating_service import ShowRatingService
from ringside.utils.exceptions import (
    CardValidationError, EntityNotFoundError, InvalidTransitionError
)

from conftest import FrozenClock, MidpointRandom


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def notify_show_completed(self, event):
        self.events.append(event)
        return True


@pytest_asyncio.fixture
async def promotion(db):
    """A company, venue and four contracted wrestlers"""
    company = await db.create_company("Test Wrestling", popularity=50)
    venue = await db.create_venue("Test Arena", "Springfield", capacity=10000, rental_cost=5000, prestige=50)
    wrestlers = []
    for i, level in enumerate((60, 60, 80, 80), start=1):
        wrestlers.append(await db.create_wrestler(
            f"Wrestler {i}", company_id=company.id, salary=1000,
            strength=level, agility=level, charisma=level, technical=level, popularity=level
        ))
    show = await db.create_show(company.id, venue.id, "Monday Night Test", datetime(2024, 1, 1))
    return {'company': company, 'venue': venue, 'wrestlers': wrestlers, 'show': show}


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def show_ops(db, notifier):
    return ShowOperations(db, rating_service=ShowRatingService(MidpointRandom()),
                          notifier=notifier, clock=FrozenClock())


async def book_card(show_ops, promotion):
    w = [wrestler.id for wrestler in promotion['wrestlers']]
    show_id = promotion['show'].id
    await show_ops.add_match(show_id, [MatchParticipantEntry(w[0], is_winner=True), MatchParticipantEntry(w[1])])
    await show_ops.add_match(show_id, [MatchParticipantEntry(w[2], is_winner=True), MatchParticipantEntry(w[3])])
    return show_id


@pytest.mark.asyncio
class TestCardEditing:
    """Test match and segment booking rules."""

    async def test_default_positions_append(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)

        assert [m.position for m in show.matches] == [1, 2]
        assert show.matches[0].winner_ids == [promotion['wrestlers'][0].id]

    async def test_taken_position_is_rejected(self, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        with pytest.raises(CardValidationError):
            await show_ops.add_match(show_id, [promotion['wrestlers'][0].id], position=2)

    async def test_non_positive_position_is_rejected(self, show_ops, promotion):
        with pytest.raises(CardValidationError):
            await show_ops.add_match(promotion['show'].id, [promotion['wrestlers'][0].id], position=0)

    async def test_duplicate_participants_are_rejected(self, show_ops, promotion):
        w1 = promotion['wrestlers'][0].id
        with pytest.raises(CardValidationError):
            await show_ops.add_match(promotion['show'].id, [w1, w1])

    async def test_unknown_wrestler_is_rejected(self, show_ops, promotion):
        with pytest.raises(EntityNotFoundError):
            await show_ops.add_match(promotion['show'].id, [promotion['wrestlers'][0].id, 9999])

    async def test_unknown_show_is_rejected(self, show_ops, promotion):
        with pytest.raises(EntityNotFoundError):
            await show_ops.add_match(9999, [promotion['wrestlers'][0].id])

    async def test_segments_share_the_running_order(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        segment = await show_ops.add_segment(
            show_id, SegmentType.PROMO, [promotion['wrestlers'][0].id], description="Closing promo"
        )
        assert segment.position == 3

        show = await db.get_show(show_id)
        assert [item.position for item in show.running_order] == [1, 2, 3]
        assert show.segments[0].wrestler_ids == [promotion['wrestlers'][0].id]

    async def test_segment_cannot_take_a_match_slot(self, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        with pytest.raises(CardValidationError):
            await show_ops.add_segment(show_id, SegmentType.PROMO, [], position=1)

    async def test_match_cannot_take_a_segment_slot(self, show_ops, promotion):
        show_id = promotion['show'].id
        await show_ops.add_segment(show_id, SegmentType.VIDEO_PACKAGE, [])
        with pytest.raises(CardValidationError):
            await show_ops.add_match(show_id, [promotion['wrestlers'][0].id], position=1)

    async def test_update_segment(self, db, show_ops, promotion):
        show_id = promotion['show'].id
        w = [wrestler.id for wrestler in promotion['wrestlers']]
        segment = await show_ops.add_segment(show_id, SegmentType.PROMO, [w[0]])

        await show_ops.update_segment(
            show_id, segment.id, wrestler_ids=[w[1], w[2]],
            segment_type=SegmentType.INTERVIEW, planned_quality=4, description="Sit-down interview"
        )

        show = await db.get_show(show_id)
        updated = show.segments[0]
        assert updated.wrestler_ids == [w[1], w[2]]
        assert updated.segment_type == SegmentType.INTERVIEW
        assert updated.planned_quality == 4
        assert updated.description == "Sit-down interview"

    async def test_update_segment_position_checks_matches(self, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        segment = await show_ops.add_segment(show_id, SegmentType.PROMO, [])
        with pytest.raises(CardValidationError):
            await show_ops.update_segment(show_id, segment.id, position=2)

    async def test_update_segment_rejects_unknown_fields(self, show_ops, promotion):
        segment = await show_ops.add_segment(promotion['show'].id, SegmentType.PROMO, [])
        with pytest.raises(CardValidationError):
            await show_ops.update_segment(promotion['show'].id, segment.id, actual_quality=5)

    async def test_update_unknown_segment(self, show_ops, promotion):
        with pytest.raises(EntityNotFoundError):
            await show_ops.update_segment(promotion['show'].id, 9999, description="Nothing")

    async def test_remove_then_add_uses_free_slot(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)
        await show_ops.remove_match(show_id, show.matches[0].id)

        match = await show_ops.add_match(show_id, [promotion['wrestlers'][0].id], match_type=MatchType.OTHER)
        assert match.position == 3

    async def test_update_match(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)
        first = show.matches[0]
        loser_id = promotion['wrestlers'][1].id

        await show_ops.update_match(show_id, first.id, winner_ids=[loser_id], stipulation="No DQ")

        show = await db.get_show(show_id)
        assert show.matches[0].winner_ids == [loser_id]
        assert show.matches[0].stipulation == "No DQ"

    async def test_update_match_rejects_unknown_fields(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)
        with pytest.raises(CardValidationError):
            await show_ops.update_match(show_id, show.matches[0].id, actual_quality=5)

    async def test_reorder_swaps_positions(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)
        first, second = show.matches

        reordered = await show_ops.reorder_card(show_id, match_positions={first.id: 2, second.id: 1})

        assert [m.id for m in reordered.matches] == [second.id, first.id]

    async def test_reorder_rejects_collisions(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        show = await db.get_show(show_id)
        with pytest.raises(CardValidationError):
            await show_ops.reorder_card(show_id, match_positions={show.matches[0].id: 2})

    async def test_reorder_moves_segments_between_matches(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        segment = await show_ops.add_segment(show_id, SegmentType.PROMO, [])
        show = await db.get_show(show_id)
        first, second = show.matches

        reordered = await show_ops.reorder_card(
            show_id, match_positions={second.id: 3}, segment_positions={segment.id: 2}
        )

        assert [(type(item).__name__, item.id) for item in reordered.running_order] == [
            ('ShowMatch', first.id), ('Segment', segment.id), ('ShowMatch', second.id)
        ]

    async def test_reorder_rejects_match_segment_collisions(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        segment = await show_ops.add_segment(show_id, SegmentType.PROMO, [])
        with pytest.raises(CardValidationError):
            await show_ops.reorder_card(show_id, segment_positions={segment.id: 1})

    async def test_card_is_frozen_once_started(self, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)

        with pytest.raises(InvalidTransitionError):
            await show_ops.add_match(show_id, [promotion['wrestlers'][0].id])
        with pytest.raises(InvalidTransitionError):
            await show_ops.add_segment(show_id, SegmentType.PROMO, [])


@pytest.mark.asyncio
class TestLifecycle:
    """Test show status transitions."""

    async def test_schedule_then_start(self, show_ops, promotion):
        show_id = promotion['show'].id
        scheduled = await show_ops.schedule_show(show_id)
        assert scheduled.status == ShowStatus.SCHEDULED

        started = await show_ops.start_show(show_id)
        assert started.status == ShowStatus.IN_PROGRESS
        assert started.started_at is not None

    async def test_draft_can_start_directly(self, show_ops, promotion):
        started = await show_ops.start_show(promotion['show'].id)
        assert started.status == ShowStatus.IN_PROGRESS

    async def test_cannot_schedule_twice(self, show_ops, promotion):
        await show_ops.schedule_show(promotion['show'].id)
        with pytest.raises(InvalidTransitionError):
            await show_ops.schedule_show(promotion['show'].id)

    async def test_cancel(self, show_ops, promotion):
        cancelled = await show_ops.cancel_show(promotion['show'].id)
        assert cancelled.status == ShowStatus.CANCELLED

        with pytest.raises(InvalidTransitionError):
            await show_ops.start_show(promotion['show'].id)
        with pytest.raises(InvalidTransitionError):
            await show_ops.cancel_show(promotion['show'].id)

    async def test_cannot_complete_a_draft(self, show_ops, promotion):
        with pytest.raises(InvalidTransitionError):
            await show_ops.complete_show(promotion['show'].id)


@pytest.mark.asyncio
class TestCompletion:
    """Test persisted show completion."""

    async def test_complete_show_persists_results(self, db, show_ops, promotion, notifier):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)

        outcome = await show_ops.complete_show(show_id)
        assert isinstance(outcome, ShowOutcome)

        show = await db.get_show(show_id)
        assert show.status == ShowStatus.COMPLETED
        assert show.completed_at is not None
        assert [m.actual_quality for m in show.matches] == [3.1, 4.2]
        assert show.overall_rating == 3.8
        assert show.audience_satisfaction == 76
        assert show.attendance == 5000
        assert show.profit == 100000 + 50000 - 5000 - 15000 - 4000

        company = await db.get_company(promotion['company'].id)
        assert company.popularity == 52
        assert company.money == 100000 + show.profit

        # Wrestler popularity is untouched by show completion
        wrestler = await db.get_wrestler(promotion['wrestlers'][0].id)
        assert wrestler.popularity == 60

        assert len(notifier.events) == 1
        event = notifier.events[0]
        assert event.show_name == "Monday Night Test"
        assert event.venue_name == "Test Arena"
        assert event.capacity == 10000
        assert event.main_event == "Wrestler 3 vs. Wrestler 4 → Winner: Wrestler 3"

    async def test_notify_can_be_skipped(self, show_ops, promotion, notifier):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)
        await show_ops.complete_show(show_id, notify=False)
        assert notifier.events == []

    async def test_completion_happens_once(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)
        await show_ops.complete_show(show_id)

        with pytest.raises(InvalidTransitionError):
            await show_ops.complete_show(show_id)

        company = await db.get_company(promotion['company'].id)
        assert company.popularity == 52

    async def test_concurrent_completions(self, db, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)

        results = await asyncio.gather(
            show_ops.complete_show(show_id), show_ops.complete_show(show_id),
            return_exceptions=True
        )

        assert sum(isinstance(r, ShowOutcome) for r in results) == 1
        assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1

        company = await db.get_company(promotion['company'].id)
        assert company.popularity == 52

    async def test_completed_show_cannot_be_edited(self, show_ops, promotion):
        show_id = await book_card(show_ops, promotion)
        await show_ops.start_show(show_id)
        await show_ops.complete_show(show_id)

        with pytest.raises(InvalidTransitionError):
            await show_ops.add_match(show_id, [promotion['wrestlers'][0].id])
        with pytest.raises(InvalidTransitionError):
            await show_ops.cancel_show(show_id)

    async def test_empty_card_completes(self, show_ops, promotion, notifier):
        show_id = promotion['show'].id
        await show_ops.start_show(show_id)
        outcome = await show_ops.complete_show(show_id)

        assert outcome.overall_rating == 3.0
        assert notifier.events[-1].main_event is None


@pytest.mark.asyncio
class TestDatabase:
    """Test database defaults and guards."""

    async def test_default_venues_seeded(self, db):
        venues = await db.get_all_venues()
        names = {v.name for v in venues}
        assert "Madison Square Garden" in names
        assert "Tokyo Dome" in names

        garden = await db.get_venue_by_name("madison square garden")
        assert garden.capacity == 20000
        assert garden.prestige == 95

    async def test_wrestler_attributes_are_clamped(self, db):
        wrestler = await db.create_wrestler("Giant", strength=150, popularity=-5)
        assert wrestler.strength == 100
        assert wrestler.popularity == 1

    async def test_venue_needs_capacity(self, db):
        with pytest.raises(ValueError):
            await db.create_venue("Parking Lot", "Nowhere", capacity=0)

    async def test_malformed_webhook_url_blocks_startup(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "DISCORD_WEBHOOK_URL", "not-a-url")
        database = Database(f"sqlite:///{tmp_path / 'startup.db'}")
        with pytest.raises(ValueError):
            await database.initialize()
        assert database.engine is None

    async def test_webhook_url_is_optional(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "DISCORD_WEBHOOK_URL", "")
        database = Database(f"sqlite:///{tmp_path / 'startup.db'}")
        await database.initialize(seed_defaults=False)
        assert await database.get_all_venues() == []
        await database.close()

    async def test_status_values_match_the_engine(self):
        assert [status.value for status in ShowStatus] == [
            ShowConstants.DRAFT, ShowConstants.SCHEDULED, ShowConstants.IN_PROGRESS,
            ShowConstants.COMPLETED, ShowConstants.CANCELLED
        ]

    async def test_new_show_is_draft(self, db, promotion):
        show = promotion['show']
        assert show.status == ShowStatus.DRAFT
        assert show.show_type == ShowType.WEEKLY_TV
        assert show.ticket_price == 20
