"""
Championship Operations Module

Database-backed wrapper around TitleLineageTracker. Each call loads the
title's full history, runs the pure tracker on an in-memory record under a
per-title lock, and persists the result append-only: a closed reign only
ever gains an end date, and new reigns and defenses are inserted rows.

Popularity boosts for the champion (+5 on a title win, +2 on a successful
defense) are applied here, after the lineage write, not by the tracker.
"""

from typing import Callable, Dict, List, Optional
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ringside.config import Config
from ringside.database.models import (
    Championship, ChampionshipDefendedShow, Show, ShowMatch, ShowStatus,
    TitleDefense as TitleDefenseRow, TitleReign as TitleReignRow, Wrestler
)
from ringside.operations.mappers import championship_record
from ringside.services.lineage import CrownResult, DefenseResult, TitleLineageTracker
from ringside.services.locks import EntityLockRegistry
from ringside.utils.clock import utc_now
from ringside.utils.exceptions import (
    EligibilityError, EntityNotFoundError, InvalidTransitionError, PreconditionViolationError
)
from ringside.utils.logger import setup_logger

logger = setup_logger(__name__)


class ChampionshipOperations:
    """Crowning, defenses and show-driven title updates"""

    def __init__(self, database, notifier=None, locks: Optional[EntityLockRegistry] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.db = database
        self.notifier = notifier
        self.locks = locks or EntityLockRegistry()
        self.tracker = TitleLineageTracker(clock=clock)
        self.logger = logger

    async def _load_championship(self, session: AsyncSession, championship_id: int) -> Championship:
        championship = await session.get(Championship, championship_id)
        if championship is None:
            raise EntityNotFoundError('Championship', championship_id)
        return championship

    async def _load_wrestler(self, session: AsyncSession, wrestler_id: int) -> Wrestler:
        wrestler = await session.get(Wrestler, wrestler_id)
        if wrestler is None:
            raise EntityNotFoundError('Wrestler', wrestler_id)
        return wrestler

    @staticmethod
    def _boost_popularity(wrestler: Wrestler, amount: int):
        wrestler.popularity = wrestler.popularity + amount  # clamped by the model

    async def crown_champion(self, championship_id: int, wrestler_id: int,
                             won_from_id: Optional[int] = None,
                             show_id: Optional[int] = None) -> CrownResult:
        """
        Crown a new champion.

        Args:
            championship_id: Title to change hands
            wrestler_id: New champion; must be under contract with the title's company
            won_from_id: Defeated champion, defaults to the current holder
            show_id: Show the title changed hands at

        Returns:
            CrownResult from the lineage tracker, with reign ids filled in

        Raises:
            EntityNotFoundError: If the title or wrestler doesn't exist
            EligibilityError: If the wrestler works for another company
        """
        async with self.locks.hold('championship', championship_id):
            async with self.db.transaction() as session:
                championship = await self._load_championship(session, championship_id)
                wrestler = await self._load_wrestler(session, wrestler_id)

                if wrestler.company_id != championship.company_id:
                    raise EligibilityError(wrestler_id, championship_id)

                title = championship_record(championship)
                if won_from_id is None:
                    won_from_id = title.current_holder

                result = self.tracker.crown_champion(
                    title, wrestler_id, won_from=won_from_id, won_at_show=show_id
                )

                if result.closed_reign is not None:
                    for row in championship.reigns:
                        if row.id == result.closed_reign.reign_id:
                            row.end_date = result.closed_reign.end_date
                    # The open-reign index only allows the new row once the old one is closed
                    await session.flush()

                new_row = TitleReignRow(
                    holder_id=result.new_reign.holder,
                    won_from_id=result.new_reign.won_from,
                    won_at_show_id=result.new_reign.won_at,
                    start_date=result.new_reign.start_date,
                    defense_count=0
                )
                championship.reigns.append(new_row)
                championship.current_holder_id = wrestler_id
                await session.flush()
                result.new_reign.reign_id = new_row.id

                self._boost_popularity(wrestler, Config.TITLE_WIN_POPULARITY_BOOST)

                previous_name = None
                if won_from_id is not None:
                    previous = await session.get(Wrestler, won_from_id)
                    previous_name = previous.name if previous else None
                show_name = None
                if show_id is not None:
                    show = await session.get(Show, show_id)
                    show_name = show.name if show else None
                company_name = championship.company.name if championship.company else ''
                championship_name = championship.name
                prestige = championship.prestige
                champion_name = wrestler.name

        self.logger.info(f"{champion_name} crowned {championship_name} champion")

        if self.notifier is not None:
            await self.notifier.notify_championship_update(
                championship_name, champion_name, company_name, prestige,
                previous_champion=previous_name, show_name=show_name
            )

        return result

    async def record_defense(self, championship_id: int, challenger_id: int,
                             show_id: Optional[int] = None,
                             quality: Optional[float] = None) -> DefenseResult:
        """
        Record a successful defense by the current champion.

        Raises:
            EntityNotFoundError: If the title or challenger doesn't exist
            PreconditionViolationError: If the title has no holder or open reign
        """
        async with self.locks.hold('championship', championship_id):
            async with self.db.transaction() as session:
                championship = await self._load_championship(session, championship_id)
                await self._load_wrestler(session, challenger_id)

                title = championship_record(championship)
                result = self.tracker.record_defense(title, challenger_id, show=show_id, quality=quality)

                reign_row = next(r for r in championship.reigns if r.id == result.reign.reign_id)
                defense_row = TitleDefenseRow(
                    against_id=result.defense.against,
                    show_id=result.defense.show_id,
                    date=result.defense.date,
                    quality=result.defense.quality
                )
                reign_row.defenses.append(defense_row)
                reign_row.defense_count = result.reign.defense_count

                championship.last_defended = title.last_defended
                championship.prestige = title.prestige
                linked = {link.show_id for link in championship.defended_at}
                for defended_show_id in title.defended_at:
                    if defended_show_id not in linked:
                        championship.defended_at.append(ChampionshipDefendedShow(show_id=defended_show_id))

                await session.flush()
                result.defense.defense_id = defense_row.id

                champion = await self._load_wrestler(session, reign_row.holder_id)
                self._boost_popularity(champion, Config.TITLE_DEFENSE_POPULARITY_BOOST)

        self.logger.info(
            f"Championship {championship_id} defended against {challenger_id} "
            f"(prestige {result.prestige_change:+.1f})"
        )
        return result

    def _already_applied(self, championship: Championship, show_id: int) -> bool:
        """True if this show already produced a reign or defense on the title"""
        for reign in championship.reigns:
            if reign.won_at_show_id == show_id:
                return True
            if any(d.show_id == show_id for d in reign.defenses):
                return True
        return False

    async def apply_show_results(self, show_id: int) -> List[Dict]:
        """
        Apply every championship match on a completed show to its title.

        The first winner is crowned when they aren't the holder (and the
        match is flagged title_changed); otherwise the holder is credited
        with a defense against the first non-winner at the match's quality.
        Titles already updated from this show are skipped, so re-running is
        harmless. A winner from another company is reported as
        'ineligible' and a title whose stored lineage is inconsistent as
        'lineage_error'; neither undoes the completed show.

        Returns:
            One summary dict per championship match processed
        """
        show = await self.db.get_show(show_id)
        if show is None:
            raise EntityNotFoundError('Show', show_id)
        if show.status != ShowStatus.COMPLETED:
            raise InvalidTransitionError('show', show.status.value, 'apply title results for')

        summaries = []
        for match in show.matches:
            if not match.is_championship_match or match.championship_id is None:
                continue

            winners = match.winner_ids
            if not winners:
                self.logger.info(f"Title match {match.id} on show {show_id} has no winner, title unchanged")
                continue

            championship = await self.db.get_championship(match.championship_id)
            if championship is None:
                self.logger.warning(f"Title match {match.id} references missing championship {match.championship_id}")
                continue
            if self._already_applied(championship, show_id):
                self.logger.info(f"Championship {championship.id} already updated from show {show_id}")
                continue

            winner = winners[0]
            if championship.current_holder_id != winner:
                try:
                    await self.crown_champion(
                        championship.id, winner,
                        won_from_id=championship.current_holder_id, show_id=show_id
                    )
                except EligibilityError as e:
                    self.logger.warning(f"Title change on show {show_id} skipped: {e}")
                    summaries.append({'match_id': match.id, 'championship_id': championship.id,
                                      'result': 'ineligible', 'wrestler_id': winner})
                    continue
                except PreconditionViolationError as e:
                    self.logger.error(f"Championship {championship.id} lineage is inconsistent: {e}")
                    summaries.append({'match_id': match.id, 'championship_id': championship.id,
                                      'result': 'lineage_error', 'wrestler_id': winner})
                    continue

                async with self.db.transaction() as session:
                    await session.execute(
                        update(ShowMatch).where(ShowMatch.id == match.id).values(title_changed=True)
                    )
                summaries.append({'match_id': match.id, 'championship_id': championship.id,
                                  'result': 'title_change', 'wrestler_id': winner})
            else:
                challengers = match.loser_ids
                if not challengers:
                    self.logger.info(f"Title match {match.id} has no challenger, no defense recorded")
                    continue
                try:
                    await self.record_defense(
                        championship.id, challengers[0], show_id=show_id, quality=match.actual_quality
                    )
                except PreconditionViolationError as e:
                    self.logger.error(f"Championship {championship.id} lineage is inconsistent: {e}")
                    summaries.append({'match_id': match.id, 'championship_id': championship.id,
                                      'result': 'lineage_error', 'wrestler_id': winner})
                    continue
                summaries.append({'match_id': match.id, 'championship_id': championship.id,
                                  'result': 'defense', 'wrestler_id': winner})

        return summaries

    async def get_reign_summary(self, championship_id: int) -> Dict:
        """
        Derived lineage figures for a title.

        Returns:
            Dict with current holder, current reign days, total days per
            holder and the per-reign history with defense counts
        """
        championship = await self.db.get_championship(championship_id)
        if championship is None:
            raise EntityNotFoundError('Championship', championship_id)

        title = championship_record(championship)
        now = self.tracker.clock()
        return {
            'championship_id': title.championship_id,
            'name': title.name,
            'prestige': title.prestige,
            'current_holder': title.current_holder,
            'current_reign_days': self.tracker.current_reign_duration_days(title),
            'days_by_holder': self.tracker.days_by_holder(title),
            'reigns': [
                {
                    'holder': reign.holder,
                    'won_from': reign.won_from,
                    'start_date': reign.start_date,
                    'end_date': reign.end_date,
                    'days': reign.duration_days(now),
                    'defense_count': reign.defense_count,
                }
                for reign in title.title_history
            ],
        }

    async def get_days_held(self, championship_id: int, wrestler_id: int) -> int:
        championship = await self.db.get_championship(championship_id)
        if championship is None:
            raise EntityNotFoundError('Championship', championship_id)
        return self.tracker.total_days_held(championship_record(championship), wrestler_id)

    async def get_wrestler_titles(self, wrestler_id: int) -> Dict[str, List[Dict]]:
        """
        Titles a wrestler holds now and has held before.

        Returns:
            {'current': [...], 'former': [...]}, each entry carrying the
            championship id, name, company, prestige, reign count and days held
        """
        current, former = [], []
        for championship in await self.db.get_championships_held_by(wrestler_id):
            title = championship_record(championship)
            entry = {
                'championship_id': title.championship_id,
                'name': title.name,
                'company': championship.company.name if championship.company else None,
                'prestige': title.prestige,
                'reigns': sum(1 for reign in title.title_history if reign.holder == wrestler_id),
                'days_held': self.tracker.total_days_held(title, wrestler_id),
            }
            if title.current_holder == wrestler_id:
                current.append(entry)
            else:
                former.append(entry)
        return {'current': current, 'former': former}
