"""
Show Operations Module

Operational layer for the show lifecycle:

    Draft -> Scheduled -> In Progress -> Completed
    (any non-terminal status) -> Cancelled

Card edits (matches, segments, running order) are only accepted while a show
is Draft or Scheduled. Completion runs the rating pipeline over plain records
and persists every derived field, the match/segment results and the company
deltas in a single transaction.

Completion is an exactly-once transition: a per-show lock serializes callers
in this process, and the status flip is a conditional UPDATE that only
matches a show still In Progress, so a second completer is rejected even
across processes.
"""

from contextlib import asynccontextmanager
from typing import Callable, Dict, List, Optional, Sequence, Union
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ringside.constants import QualityConstants
from ringside.data_models.records import MatchParticipantEntry, ShowOutcome, ShowRecord
from ringside.database.models import (
    BookedOutcome, Championship, MatchParticipant, MatchType, Segment,
    SegmentParticipant, SegmentType, Show, ShowMatch, ShowStatus, Wrestler
)
from ringside.operations.mappers import (
    company_snapshot, roster_snapshot, show_completed_event, show_record, venue_snapshot
)
from ringside.operations.show_rating_service import ShowRatingService
from ringside.services.locks import EntityLockRegistry
from ringside.utils.clock import utc_now
from ringside.utils.exceptions import (
    CardValidationError, EntityNotFoundError, InvalidTransitionError
)
from ringside.utils.logger import setup_logger

logger = setup_logger(__name__)

ParticipantInput = Union[MatchParticipantEntry, int]


class ShowOperations:
    """
    Show card editing, lifecycle transitions and completion.

    Args:
        database: Database instance
        rating_service: Completion pipeline; a default one is created if omitted
        notifier: Optional ShowNotifier for completed-show announcements
        championship_operations: Optional ChampionshipOperations; when given,
            title matches are applied to lineages after each completion
        locks: Shared EntityLockRegistry
        clock: Naive-UTC clock
    """

    def __init__(self, database, rating_service: Optional[ShowRatingService] = None,
                 notifier=None, championship_operations=None,
                 locks: Optional[EntityLockRegistry] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.db = database
        self.rating_service = rating_service or ShowRatingService()
        self.notifier = notifier
        self.championship_operations = championship_operations
        self.locks = locks or EntityLockRegistry()
        self.clock = clock
        self.logger = logger

    @asynccontextmanager
    async def _editable_show(self, show_id: int, action: str):
        """Yield (session, show) inside a transaction, rejecting non-editable shows"""
        async with self.db.transaction() as session:
            show = await self._load_show(session, show_id)
            if not show.is_editable:
                raise InvalidTransitionError('show', show.status.value, action)
            yield session, show

    async def _load_show(self, session: AsyncSession, show_id: int) -> Show:
        show = await session.get(Show, show_id)
        if show is None:
            raise EntityNotFoundError('Show', show_id)
        return show

    async def _require_wrestlers(self, session: AsyncSession, wrestler_ids: Sequence[int]):
        if len(set(wrestler_ids)) != len(wrestler_ids):
            raise CardValidationError("Duplicate participants not allowed")
        result = await session.execute(select(Wrestler.id).where(Wrestler.id.in_(wrestler_ids)))
        found = set(result.scalars().all())
        missing = [w for w in wrestler_ids if w not in found]
        if missing:
            raise EntityNotFoundError('Wrestler', missing[0])

    @staticmethod
    def _validate_quality(planned_quality: float):
        if not QualityConstants.MIN_QUALITY <= planned_quality <= QualityConstants.MAX_QUALITY:
            raise CardValidationError(
                f"Planned quality must be between {QualityConstants.MIN_QUALITY} and "
                f"{QualityConstants.MAX_QUALITY}"
            )

    @staticmethod
    def _next_position(show: Show) -> int:
        """Slot after the last match or segment on the card"""
        return max((item.position for item in show.running_order), default=0) + 1

    @staticmethod
    def _check_position(show: Show, position: int, exclude=None):
        """Matches and segments share one running order"""
        if position <= 0:
            raise CardValidationError("Card positions must be positive")
        for item in show.running_order:
            if item is not exclude and item.position == position:
                raise CardValidationError(f"Position {position} is already taken")

    @staticmethod
    def _normalize_participants(participants: Sequence[ParticipantInput]) -> List[MatchParticipantEntry]:
        entries = []
        for p in participants:
            if isinstance(p, MatchParticipantEntry):
                entries.append(p)
            else:
                entries.append(MatchParticipantEntry(wrestler_id=int(p)))
        return entries

    # ============================================================================
    # Card editing
    # ============================================================================

    async def add_match(self, show_id: int, participants: Sequence[ParticipantInput],
                        match_type: MatchType = MatchType.SINGLES,
                        position: Optional[int] = None,
                        championship_id: Optional[int] = None,
                        stipulation: Optional[str] = None,
                        duration: int = 15,
                        booked_outcome: BookedOutcome = BookedOutcome.CLEAN,
                        planned_quality: float = QualityConstants.DEFAULT_PLANNED_QUALITY,
                        description: Optional[str] = None) -> ShowMatch:
        """
        Book a match on a Draft or Scheduled show.

        Args:
            participants: MatchParticipantEntry values (or bare wrestler ids)
            position: Card slot; defaults to the end of the card

        Returns:
            The created ShowMatch with its participants

        Raises:
            InvalidTransitionError: If the show is no longer editable
            CardValidationError: On an empty or duplicate participant list or a taken slot
            EntityNotFoundError: If the show, a wrestler or the championship doesn't exist
        """
        entries = self._normalize_participants(participants)
        if not entries:
            raise CardValidationError("A match needs at least one participant")
        self._validate_quality(planned_quality)

        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            await self._require_wrestlers(session, [e.wrestler_id for e in entries])

            if championship_id is not None and await session.get(Championship, championship_id) is None:
                raise EntityNotFoundError('Championship', championship_id)

            if position is None:
                position = self._next_position(show)
            self._check_position(show, position)

            match = ShowMatch(
                match_type=match_type,
                championship_id=championship_id,
                is_championship_match=championship_id is not None,
                stipulation=stipulation,
                duration=duration,
                booked_outcome=booked_outcome,
                planned_quality=planned_quality,
                description=description,
                position=position,
                participants=[
                    MatchParticipant(wrestler_id=e.wrestler_id, is_winner=e.is_winner, team=e.team)
                    for e in entries
                ]
            )
            show.matches.append(match)
            await session.flush()

            self.logger.info(f"Added {match_type.value} match at position {position} to show {show_id}")
            return match

    async def update_match(self, show_id: int, match_id: int,
                           participants: Optional[Sequence[ParticipantInput]] = None,
                           winner_ids: Optional[Sequence[int]] = None,
                           **changes) -> ShowMatch:
        """
        Update a booked match.

        Accepts match_type, position, stipulation, duration, booked_outcome,
        planned_quality and description as keyword changes. participants
        replaces the whole list; winner_ids re-flags winners among the
        current participants.
        """
        allowed = {'match_type', 'position', 'stipulation', 'duration',
                   'booked_outcome', 'planned_quality', 'description'}
        unknown = set(changes) - allowed
        if unknown:
            raise CardValidationError(f"Cannot update match field(s): {', '.join(sorted(unknown))}")
        if 'planned_quality' in changes:
            self._validate_quality(changes['planned_quality'])

        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            match = show.get_match(match_id)
            if match is None:
                raise EntityNotFoundError('Match', match_id)

            if 'position' in changes:
                self._check_position(show, changes['position'], exclude=match)
            for key, value in changes.items():
                setattr(match, key, value)

            if participants is not None:
                entries = self._normalize_participants(participants)
                if not entries:
                    raise CardValidationError("A match needs at least one participant")
                await self._require_wrestlers(session, [e.wrestler_id for e in entries])
                # Old rows must be gone before the unique (match, wrestler) rows come back
                match.participants.clear()
                await session.flush()
                for e in entries:
                    match.participants.append(
                        MatchParticipant(wrestler_id=e.wrestler_id, is_winner=e.is_winner, team=e.team)
                    )

            if winner_ids is not None:
                current = {p.wrestler_id for p in match.participants}
                strangers = [w for w in winner_ids if w not in current]
                if strangers:
                    raise CardValidationError(f"Wrestler {strangers[0]} is not in this match")
                for p in match.participants:
                    p.is_winner = p.wrestler_id in winner_ids

            await session.flush()
            self.logger.info(f"Updated match {match_id} on show {show_id}")
            return match

    async def remove_match(self, show_id: int, match_id: int):
        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            match = show.get_match(match_id)
            if match is None:
                raise EntityNotFoundError('Match', match_id)
            show.matches.remove(match)
            self.logger.info(f"Removed match {match_id} from show {show_id}")

    async def add_segment(self, show_id: int, segment_type: SegmentType,
                          wrestler_ids: Sequence[int],
                          description: str = '',
                          position: Optional[int] = None,
                          duration: int = 5,
                          planned_quality: float = QualityConstants.DEFAULT_PLANNED_QUALITY) -> Segment:
        """Book a segment; segments may have no wrestlers (video packages)"""
        self._validate_quality(planned_quality)

        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            if wrestler_ids:
                await self._require_wrestlers(session, list(wrestler_ids))

            if position is None:
                position = self._next_position(show)
            self._check_position(show, position)

            segment = Segment(
                segment_type=segment_type,
                description=description,
                duration=duration,
                planned_quality=planned_quality,
                position=position,
                participants=[SegmentParticipant(wrestler_id=w) for w in wrestler_ids]
            )
            show.segments.append(segment)
            await session.flush()

            self.logger.info(f"Added {segment_type.value} segment at position {position} to show {show_id}")
            return segment

    async def update_segment(self, show_id: int, segment_id: int,
                             wrestler_ids: Optional[Sequence[int]] = None,
                             **changes) -> Segment:
        """
        Update a booked segment.

        Accepts segment_type, position, description, duration and
        planned_quality as keyword changes; wrestler_ids replaces the
        whole participant list.
        """
        allowed = {'segment_type', 'position', 'description', 'duration', 'planned_quality'}
        unknown = set(changes) - allowed
        if unknown:
            raise CardValidationError(f"Cannot update segment field(s): {', '.join(sorted(unknown))}")
        if 'planned_quality' in changes:
            self._validate_quality(changes['planned_quality'])

        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            segment = show.get_segment(segment_id)
            if segment is None:
                raise EntityNotFoundError('Segment', segment_id)

            if 'position' in changes:
                self._check_position(show, changes['position'], exclude=segment)
            for key, value in changes.items():
                setattr(segment, key, value)

            if wrestler_ids is not None:
                wrestler_ids = list(wrestler_ids)
                if wrestler_ids:
                    await self._require_wrestlers(session, wrestler_ids)
                segment.participants.clear()
                await session.flush()
                for wrestler_id in wrestler_ids:
                    segment.participants.append(SegmentParticipant(wrestler_id=wrestler_id))

            await session.flush()
            self.logger.info(f"Updated segment {segment_id} on show {show_id}")
            return segment

    async def remove_segment(self, show_id: int, segment_id: int):
        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            segment = show.get_segment(segment_id)
            if segment is None:
                raise EntityNotFoundError('Segment', segment_id)
            show.segments.remove(segment)
            self.logger.info(f"Removed segment {segment_id} from show {show_id}")

    async def reorder_card(self, show_id: int,
                           match_positions: Optional[Dict[int, int]] = None,
                           segment_positions: Optional[Dict[int, int]] = None) -> Show:
        """
        Move matches and/or segments to new slots in the running order.

        Args:
            match_positions: {match_id: new_position}
            segment_positions: {segment_id: new_position}

        Raises:
            CardValidationError: If an id is not on this show's card or the
                resulting positions would collide, matches and segments alike
        """
        async with self._editable_show(show_id, 'edit the card of') as (session, show):
            moved = []
            for moves, lookup, kind in ((match_positions, show.get_match, 'Match'),
                                        (segment_positions, show.get_segment, 'Segment')):
                for item_id, position in (moves or {}).items():
                    item = lookup(item_id)
                    if item is None:
                        raise CardValidationError(f"{kind} {item_id} is not on this card")
                    moved.append((item, position))

            targets = {id(item): position for item, position in moved}
            final = [targets.get(id(item), item.position) for item in show.running_order]
            if any(p <= 0 for p in final):
                raise CardValidationError("Card positions must be positive")
            if len(set(final)) != len(final):
                raise CardValidationError("Card positions must be unique across matches and segments")

            if moved:
                # Park moved items above the card first so swaps never collide mid-flush
                parking = max([item.position for item in show.running_order] + final) + 1
                for offset, (item, _) in enumerate(moved):
                    item.position = parking + offset
                await session.flush()
                for item, position in moved:
                    item.position = position
                await session.flush()

            self.logger.info(f"Reordered card for show {show_id}")

        return await self.db.get_show(show_id)

    # ============================================================================
    # Lifecycle transitions
    # ============================================================================

    async def _transition(self, show_id: int, allowed_from, target: ShowStatus, action: str) -> Show:
        async with self.db.transaction() as session:
            show = await self._load_show(session, show_id)
            if show.status not in allowed_from:
                raise InvalidTransitionError('show', show.status.value, action)
            previous = show.status
            show.status = target
            if target == ShowStatus.IN_PROGRESS:
                show.started_at = self.clock()
            self.logger.info(f"Show {show_id}: {previous.value} -> {target.value}")
            return show

    async def schedule_show(self, show_id: int) -> Show:
        return await self._transition(show_id, (ShowStatus.DRAFT,), ShowStatus.SCHEDULED, 'schedule')

    async def start_show(self, show_id: int) -> Show:
        """Draft/Scheduled -> In Progress; empty cards may start"""
        return await self._transition(
            show_id, (ShowStatus.DRAFT, ShowStatus.SCHEDULED), ShowStatus.IN_PROGRESS, 'start'
        )

    async def cancel_show(self, show_id: int) -> Show:
        return await self._transition(
            show_id, (ShowStatus.DRAFT, ShowStatus.SCHEDULED, ShowStatus.IN_PROGRESS),
            ShowStatus.CANCELLED, 'cancel'
        )

    # ============================================================================
    # Completion
    # ============================================================================

    async def complete_show(self, show_id: int, notify: bool = True) -> ShowOutcome:
        """
        Complete an In Progress show and persist every result.

        Returns:
            ShowOutcome computed by the rating service

        Raises:
            EntityNotFoundError: If the show doesn't exist
            InvalidTransitionError: If the show is not In Progress, including
                when a concurrent completion got there first
        """
        async with self.locks.hold('show', show_id):
            async with self.db.transaction() as session:
                show = await self._load_show(session, show_id)
                if show.status != ShowStatus.IN_PROGRESS:
                    raise InvalidTransitionError('show', show.status.value, 'complete')

                record = show_record(show)
                result = await session.execute(
                    select(Wrestler).where(Wrestler.id.in_(record.participant_ids))
                )
                wrestlers = result.scalars().all()
                roster = roster_snapshot(wrestlers)

                venue = venue_snapshot(show.venue) if show.venue is not None else None
                company = company_snapshot(show.company) if show.company is not None else None

                # Pure computation; nothing is written until it succeeds
                outcome = self.rating_service.complete_show(record, venue, company, roster)

                claimed = await session.execute(
                    update(Show)
                    .where(Show.id == show_id, Show.status == ShowStatus.IN_PROGRESS)
                    .values(status=ShowStatus.COMPLETED)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount != 1:
                    raise InvalidTransitionError('show', ShowStatus.COMPLETED.value, 'complete')

                self._write_outcome(show, record)
                if show.company is not None:
                    show.company.popularity = round(outcome.company_popularity)
                    show.company.money = outcome.company_money

                names = {w.id: w.name for w in wrestlers}

        self.logger.info(f"Show {show_id} persisted as Completed")

        # The show is committed; title updates must not swallow its announcement
        try:
            if self.championship_operations is not None:
                await self.championship_operations.apply_show_results(show_id)
        finally:
            if notify and self.notifier is not None:
                await self.notifier.notify_show_completed(show_completed_event(show, names))

        return outcome

    def _write_outcome(self, show: Show, record: ShowRecord):
        """Copy the completed record onto the ORM rows"""
        matches = {m.id: m for m in show.matches}
        for match in record.matches:
            row = matches[match.match_id]
            row.actual_quality = match.actual_quality
            row.popularity_impact = match.popularity_impact

        segments = {s.id: s for s in show.segments}
        for segment in record.segments:
            row = segments[segment.segment_id]
            row.actual_quality = segment.actual_quality
            row.popularity_impact = segment.popularity_impact

        show.status = ShowStatus.COMPLETED
        show.completed_at = self.clock()
        show.attendance = record.attendance
        show.ticket_revenue = record.ticket_revenue
        show.merchandise_revenue = record.merchandise_revenue
        show.venue_rental_cost = record.venue_rental_cost
        show.production_cost = record.production_cost
        show.talent_cost = record.talent_cost
        show.profit = record.profit
        show.overall_rating = record.overall_rating
        show.critic_rating = record.critic_rating
        show.audience_satisfaction = record.audience_satisfaction
