"""
Championship lineage tracking.

Title history is an append-only log of reigns. Crowning closes the open
reign and appends a new one; defenses append to the open reign. Durations
are derived on read and never stored.

The tracker mutates ChampionshipRecord objects in memory and does no
locking or persistence of its own: callers serialize access per title and
persist the returned CrownResult/DefenseResult.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from ringside.constants import QualityConstants, RatingConstants
from ringside.data_models.records import ChampionshipRecord, TitleDefense, TitleReign
from ringside.utils.clock import utc_now
from ringside.utils.exceptions import PreconditionViolationError
from ringside.utils.rating import clamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrownResult:
    closed_reign: Optional[TitleReign]
    new_reign: TitleReign


@dataclass(frozen=True)
class DefenseResult:
    reign: TitleReign
    defense: TitleDefense
    prestige_change: float


class TitleLineageTracker:
    """Reign and defense ledger operations over a ChampionshipRecord"""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def crown_champion(self, title: ChampionshipRecord, new_holder: int,
                       won_from: Optional[int] = None, won_at_show: Optional[int] = None) -> CrownResult:
        """
        Crown a new champion.

        Closes the current holder's open reign (if any) and appends an open
        reign for the new holder. Eligibility is the caller's responsibility.

        Returns:
            CrownResult with the closed reign (or None) and the new reign
        """
        now = self.clock()
        closed_reign = None

        open_reign = title.open_reign
        if open_reign is not None and open_reign.holder == title.current_holder:
            open_reign.end_date = now
            closed_reign = open_reign
        elif open_reign is not None:
            raise PreconditionViolationError(
                "the open reign must belong to the current holder",
                f"championship {title.championship_id}"
            )

        new_reign = TitleReign(
            holder=new_holder,
            start_date=now,
            won_from=won_from,
            won_at=won_at_show,
            defense_count=0
        )
        title.title_history.append(new_reign)
        title.open_reign_index = len(title.title_history) - 1
        title.current_holder = new_holder

        logger.info(
            f"Championship {title.championship_id}: {new_holder} crowned"
            + (f", ending reign of {closed_reign.holder}" if closed_reign else "")
        )
        return CrownResult(closed_reign=closed_reign, new_reign=new_reign)

    def record_defense(self, title: ChampionshipRecord, challenger: int,
                       show: Optional[int] = None, quality: Optional[float] = None) -> DefenseResult:
        """
        Record a successful defense by the current holder.

        Raises:
            PreconditionViolationError: If the title has no holder or no open reign
        """
        if title.current_holder is None:
            raise PreconditionViolationError(
                "championship does not have a current holder",
                f"championship {title.championship_id}"
            )

        reign = title.open_reign
        if reign is None or reign.holder != title.current_holder:
            raise PreconditionViolationError(
                "no active reign to defend",
                f"championship {title.championship_id}, holder {title.current_holder}"
            )

        now = self.clock()
        defense = TitleDefense(
            against=challenger,
            show_id=show,
            date=now,
            quality=quality if quality is not None else QualityConstants.DEFAULT_PLANNED_QUALITY
        )
        reign.defenses.append(defense)
        reign.defense_count += 1

        title.last_defended = now
        if show is not None and show not in title.defended_at:
            title.defended_at.append(show)

        prestige_change = 0.0
        if quality is not None:
            old_prestige = title.prestige
            title.prestige = clamp(
                title.prestige + (quality - QualityConstants.NEUTRAL_QUALITY) * QualityConstants.DEFENSE_PRESTIGE_MULTIPLIER,
                RatingConstants.MIN_RATING, RatingConstants.MAX_RATING
            )
            prestige_change = title.prestige - old_prestige

        logger.info(
            f"Championship {title.championship_id}: defense #{reign.defense_count} by "
            f"{reign.holder} against {challenger}"
        )
        return DefenseResult(reign=reign, defense=defense, prestige_change=prestige_change)

    def current_reign_duration_days(self, title: ChampionshipRecord) -> int:
        """Days in the open reign, rounded up; 0 with no open reign"""
        reign = title.open_reign
        if reign is None:
            return 0
        return reign.duration_days(self.clock())

    def total_days_held(self, title: ChampionshipRecord, wrestler_id: int) -> int:
        """Sum of every reign's days for one wrestler, open reigns counted to now"""
        now = self.clock()
        total_days = 0
        for reign in title.title_history:
            if reign.holder == wrestler_id:
                total_days += reign.duration_days(now)
        return total_days

    def days_by_holder(self, title: ChampionshipRecord) -> Dict[int, int]:
        """Total days held for every wrestler who appears in the history"""
        now = self.clock()
        totals: Dict[int, int] = {}
        for reign in title.title_history:
            totals[reign.holder] = totals.get(reign.holder, 0) + reign.duration_days(now)
        return totals
