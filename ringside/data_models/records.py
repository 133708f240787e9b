"""
Plain records exchanged with the show simulation engine.

Snapshots are read-only views of wrestlers, venues and companies. Show,
match, segment and championship records are the mutable working copies the
engine fills in; the operations layer maps them to and from ORM rows.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ringside.constants import QualityConstants, RatingConstants
from ringside.utils.clock import SECONDS_PER_DAY
from ringside.utils.exceptions import PreconditionViolationError
from ringside.utils.rating import clamp


def clamp_rating(value: float) -> float:
    return clamp(value, RatingConstants.MIN_RATING, RatingConstants.MAX_RATING)


@dataclass(frozen=True)
class WrestlerAttributes:
    """The four core attributes, each in [1, 100]."""
    strength: float = 50
    agility: float = 50
    charisma: float = 50
    technical: float = 50

    def __post_init__(self):
        for name in ('strength', 'agility', 'charisma', 'technical'):
            object.__setattr__(self, name, clamp_rating(getattr(self, name)))


@dataclass(frozen=True)
class WrestlerSnapshot:
    wrestler_id: int
    name: str
    style: str
    attributes: WrestlerAttributes = field(default_factory=WrestlerAttributes)
    popularity: float = 50
    salary: float = 50000
    company_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'popularity', clamp_rating(self.popularity))


@dataclass(frozen=True)
class VenueSnapshot:
    venue_id: int
    name: str
    capacity: int
    rental_cost: float
    prestige: float = 50
    location: str = ''
    is_available: bool = True

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError(f"Venue capacity must be positive, got {self.capacity}")
        object.__setattr__(self, 'prestige', clamp_rating(self.prestige))


@dataclass(frozen=True)
class CompanySnapshot:
    company_id: int
    name: str
    popularity: float
    money: float = 0


@dataclass(frozen=True)
class MatchParticipantEntry:
    wrestler_id: int
    is_winner: bool = False
    team: int = 1


@dataclass
class MatchRecord:
    """A booked match; quality fields are filled at show completion."""
    participants: List[MatchParticipantEntry]
    position: int
    match_type: str = 'Singles'
    match_id: Optional[int] = None
    championship_id: Optional[int] = None
    is_championship_match: bool = False
    stipulation: Optional[str] = None
    duration: int = 15
    booked_outcome: str = 'Clean'
    planned_quality: float = QualityConstants.DEFAULT_PLANNED_QUALITY
    actual_quality: Optional[float] = None
    popularity_impact: float = 0.0

    @property
    def wrestler_ids(self) -> List[int]:
        return [p.wrestler_id for p in self.participants]

    @property
    def winner_ids(self) -> List[int]:
        return [p.wrestler_id for p in self.participants if p.is_winner]


@dataclass
class SegmentRecord:
    """A non-wrestling segment (promo, interview, angle...)."""
    segment_type: str
    wrestler_ids: List[int]
    position: int
    segment_id: Optional[int] = None
    description: str = ''
    duration: int = 5
    planned_quality: Optional[float] = QualityConstants.DEFAULT_PLANNED_QUALITY
    actual_quality: Optional[float] = None
    popularity_impact: float = 0.0


@dataclass
class ShowRecord:
    show_id: Optional[int]
    name: str
    show_type: str
    status: str
    ticket_price: float = 20
    company_id: Optional[int] = None
    venue_id: Optional[int] = None
    matches: List[MatchRecord] = field(default_factory=list)
    segments: List[SegmentRecord] = field(default_factory=list)

    # Unset until the show is completed
    attendance: Optional[int] = None
    ticket_revenue: Optional[float] = None
    merchandise_revenue: Optional[float] = None
    venue_rental_cost: Optional[float] = None
    production_cost: Optional[float] = None
    talent_cost: Optional[float] = None
    profit: Optional[float] = None
    overall_rating: Optional[float] = None
    critic_rating: Optional[float] = None
    audience_satisfaction: Optional[int] = None

    @property
    def participant_ids(self) -> List[int]:
        """Unique wrestler ids across matches and segments, in card order"""
        seen = []
        for match in self.matches:
            for wrestler_id in match.wrestler_ids:
                if wrestler_id not in seen:
                    seen.append(wrestler_id)
        for segment in self.segments:
            for wrestler_id in segment.wrestler_ids:
                if wrestler_id not in seen:
                    seen.append(wrestler_id)
        return seen


@dataclass(frozen=True)
class FinancialResult:
    attendance: int
    ticket_revenue: float
    merchandise_revenue: float
    venue_rental_cost: float
    production_cost: float
    talent_cost: float
    profit: float

    @property
    def total_revenue(self) -> float:
        return self.ticket_revenue + self.merchandise_revenue

    @property
    def total_costs(self) -> float:
        return self.venue_rental_cost + self.production_cost + self.talent_cost

    @classmethod
    def empty(cls, attendance: int = 0) -> 'FinancialResult':
        return cls(attendance, 0, 0, 0, 0, 0, 0)


@dataclass(frozen=True)
class QualityResult:
    """Resolved quality for one match or segment."""
    position: int
    actual_quality: float
    popularity_impact: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class ShowOutcome:
    """Everything derived when a show completes, computed before any write."""
    match_results: List[QualityResult]
    segment_results: List[QualityResult]
    overall_rating: float
    critic_rating: float
    audience_satisfaction: int
    attendance: int
    financials: FinancialResult
    company_popularity: Optional[float]  # None without a promoting company
    company_money: Optional[float]
    popularity_change: int
    degraded_reasons: List[str] = field(default_factory=list)


@dataclass
class TitleDefense:
    against: int
    date: datetime
    quality: float = QualityConstants.DEFAULT_PLANNED_QUALITY
    show_id: Optional[int] = None
    defense_id: Optional[int] = None


@dataclass
class TitleReign:
    holder: int
    start_date: datetime
    won_from: Optional[int] = None
    won_at: Optional[int] = None
    end_date: Optional[datetime] = None
    defense_count: int = 0
    defenses: List[TitleDefense] = field(default_factory=list)
    reign_id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    def duration_days(self, now: datetime) -> int:
        """Whole days held, rounding any partial day up"""
        end = self.end_date or now
        seconds = abs((end - self.start_date).total_seconds())
        return math.ceil(seconds / SECONDS_PER_DAY)


@dataclass
class ChampionshipRecord:
    """
    A championship with its append-only reign history.

    open_reign_index points at the single reign with no end date; it is
    rebuilt from title_history on construction and maintained by the
    lineage tracker afterwards.
    """
    championship_id: Optional[int]
    name: str
    prestige: float = 50
    company_id: Optional[int] = None
    current_holder: Optional[int] = None
    title_history: List[TitleReign] = field(default_factory=list)
    defended_at: List[int] = field(default_factory=list)
    last_defended: Optional[datetime] = None
    open_reign_index: Optional[int] = None

    def __post_init__(self):
        self.prestige = clamp_rating(self.prestige)
        open_indexes = [i for i, reign in enumerate(self.title_history) if reign.is_open]
        if len(open_indexes) > 1:
            raise PreconditionViolationError(
                "a championship can have at most one open reign",
                f"found {len(open_indexes)} open reigns"
            )
        if open_indexes and self.title_history[open_indexes[0]].holder != self.current_holder:
            raise PreconditionViolationError(
                "the open reign must belong to the current holder",
                f"open reign holder {self.title_history[open_indexes[0]].holder}, "
                f"current holder {self.current_holder}"
            )
        if not open_indexes and self.current_holder is not None:
            raise PreconditionViolationError(
                "a championship with a holder needs an open reign",
                f"current holder {self.current_holder} has no open reign"
            )
        self.open_reign_index = open_indexes[0] if open_indexes else None

    @property
    def open_reign(self) -> Optional[TitleReign]:
        if self.open_reign_index is None:
            return None
        return self.title_history[self.open_reign_index]


@dataclass(frozen=True)
class ShowCompletedEvent:
    """Fields made available to the external notifier."""
    show_name: str
    company_name: str
    venue_name: str
    venue_location: str
    attendance: int
    capacity: int
    overall_rating: float
    critic_rating: float
    total_revenue: float
    profit: float
    main_event: Optional[str] = None
    total_costs: float = 0.0

    @property
    def attendance_percentage(self) -> float:
        if not self.capacity:
            return 0.0
        return (self.attendance / self.capacity) * 100
