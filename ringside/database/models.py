from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text,
    ForeignKey, Float, Enum as SQLEnum, UniqueConstraint, CheckConstraint, Index, text
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func
from enum import Enum
from typing import Optional, List

from ringside.constants import RatingConstants, ShowConstants
from ringside.utils.rating import clamp

Base = declarative_base()

def clamp_rating(value):
    """Clamp an attribute/popularity/prestige value into [1, 100] on assignment"""
    if value is None:
        return value
    return clamp(value, RatingConstants.MIN_RATING, RatingConstants.MAX_RATING)

class ShowStatus(Enum):
    DRAFT = ShowConstants.DRAFT
    SCHEDULED = ShowConstants.SCHEDULED
    IN_PROGRESS = ShowConstants.IN_PROGRESS
    COMPLETED = ShowConstants.COMPLETED
    CANCELLED = ShowConstants.CANCELLED

class ShowType(Enum):
    WEEKLY_TV = "Weekly TV"
    SPECIAL_EVENT = "Special Event"
    PAY_PER_VIEW = "Pay-Per-View"
    HOUSE_SHOW = "House Show"
    OTHER = "Other"

class MatchType(Enum):
    SINGLES = "Singles"
    TAG_TEAM = "Tag Team"
    TRIPLE_THREAT = "Triple Threat"
    FATAL_FOUR_WAY = "Fatal 4-Way"
    BATTLE_ROYAL = "Battle Royal"
    OTHER = "Other"

class BookedOutcome(Enum):
    CLEAN = "Clean"
    DIRTY = "Dirty"
    DQ = "DQ"
    COUNT_OUT = "Count-Out"
    NO_CONTEST = "No Contest"
    TIME_LIMIT_DRAW = "Time Limit Draw"
    DOUBLE_DQ = "Double DQ"

class SegmentType(Enum):
    PROMO = "Promo"
    INTERVIEW = "Interview"
    ANGLE = "Angle"
    VIDEO_PACKAGE = "Video Package"
    SPECIAL_APPEARANCE = "Special Appearance"
    OTHER = "Other"

class WrestlingStyle(Enum):
    TECHNICAL = "Technical"
    HIGH_FLYER = "High-Flyer"
    POWERHOUSE = "Powerhouse"
    BRAWLER = "Brawler"
    SHOWMAN = "Showman"
    ALL_ROUNDER = "All-Rounder"

class Gender(Enum):
    MALE = "Male"
    FEMALE = "Female"

class ChampionshipWeight(Enum):
    HEAVYWEIGHT = "Heavyweight"
    MIDDLEWEIGHT = "Middleweight"
    CRUISERWEIGHT = "Cruiserweight"
    TAG_TEAM = "Tag Team"
    WOMENS = "Women's"
    OTHER = "Other"

# Shows that accept structural edits to their card
EDITABLE_SHOW_STATUSES = (ShowStatus.DRAFT, ShowStatus.SCHEDULED)

class Company(Base):
    __tablename__ = 'companies'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    location = Column(String(200), nullable=False, default='')
    description = Column(Text)

    # Promotion standing
    popularity = Column(Integer, default=1)
    money = Column(Float, default=100000)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    @validates('popularity')
    def _clamp_popularity(self, key, value):
        return clamp_rating(value)

    def __repr__(self):
        return f"<Company(name='{self.name}', popularity={self.popularity}, money={self.money})>"

class Wrestler(Base):
    __tablename__ = 'wrestlers'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False, default=Gender.MALE)
    style = Column(SQLEnum(WrestlingStyle), nullable=False, default=WrestlingStyle.ALL_ROUNDER)

    # Core attributes (1-100)
    strength = Column(Integer, default=50)
    agility = Column(Integer, default=50)
    charisma = Column(Integer, default=50)
    technical = Column(Integer, default=50)

    popularity = Column(Integer, default=50)
    salary = Column(Float, default=50000)

    # Contract
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=True, index=True)
    contract_length = Column(Integer, default=12)  # months

    # Status
    is_active = Column(Boolean, default=True)
    is_injured = Column(Boolean, default=False)
    hometown = Column(String(100))

    # Metadata
    created_at = Column(DateTime, default=func.now())

    @validates('strength', 'agility', 'charisma', 'technical', 'popularity')
    def _clamp_rating(self, key, value):
        return clamp_rating(value)

    @property
    def overall_rating(self) -> int:
        return round((self.strength + self.agility + self.charisma + self.technical) / 4)

    def __repr__(self):
        return f"<Wrestler(name='{self.name}', style={self.style.value if self.style else None}, popularity={self.popularity})>"

class Venue(Base):
    __tablename__ = 'venues'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    location = Column(String(200), nullable=False)
    capacity = Column(Integer, nullable=False)
    rental_cost = Column(Float, nullable=False, default=0)
    prestige = Column(Integer, nullable=False, default=50)
    description = Column(Text)

    # Booking is left to the scheduling layer; this flag only gates new bookings
    is_available = Column(Boolean, default=True)
    owner_id = Column(Integer, ForeignKey('companies.id'), nullable=True)

    __table_args__ = (
        CheckConstraint('capacity > 0', name='positive_capacity_check'),
    )

    @validates('prestige')
    def _clamp_prestige(self, key, value):
        return clamp_rating(value)

    def __repr__(self):
        return f"<Venue(name='{self.name}', capacity={self.capacity}, prestige={self.prestige})>"

class Show(Base):
    """
    A booked show and, once completed, its ratings and financial results.

    The show exclusively owns its matches and segments; they are deleted
    with it. Result fields stay NULL until the show is completed.
    """
    __tablename__ = 'shows'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    venue_id = Column(Integer, ForeignKey('venues.id'), nullable=False)
    name = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False)

    show_type = Column(SQLEnum(ShowType), nullable=False, default=ShowType.WEEKLY_TV)
    status = Column(SQLEnum(ShowStatus), nullable=False, default=ShowStatus.DRAFT)
    ticket_price = Column(Float, nullable=False, default=20)
    is_recurring = Column(Boolean, default=False)

    # Financial results
    attendance = Column(Integer, nullable=True)
    ticket_revenue = Column(Float, nullable=True)
    merchandise_revenue = Column(Float, nullable=True)
    venue_rental_cost = Column(Float, nullable=True)
    production_cost = Column(Float, nullable=True)
    talent_cost = Column(Float, nullable=True)
    profit = Column(Float, nullable=True)

    # Ratings
    overall_rating = Column(Float, nullable=True)
    critic_rating = Column(Float, nullable=True)
    audience_satisfaction = Column(Integer, nullable=True)

    notes = Column(Text)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    company = relationship("Company", lazy="selectin")
    venue = relationship("Venue", lazy="selectin")
    matches = relationship(
        "ShowMatch", back_populates="show", cascade="all, delete-orphan",
        order_by="ShowMatch.position", lazy="selectin"
    )
    segments = relationship(
        "Segment", back_populates="show", cascade="all, delete-orphan",
        order_by="Segment.position", lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint('ticket_price >= 0', name='non_negative_ticket_price_check'),
    )

    @property
    def is_editable(self) -> bool:
        """Only Draft and Scheduled shows accept card edits"""
        return self.status in EDITABLE_SHOW_STATUSES

    @property
    def running_order(self) -> list:
        """Matches and segments together, sorted by their shared card position"""
        return sorted(list(self.matches) + list(self.segments), key=lambda item: item.position)

    def get_main_event(self) -> Optional['ShowMatch']:
        """Get the match in the highest card position"""
        if not self.matches:
            return None
        return max(self.matches, key=lambda m: m.position)

    def get_match(self, match_id: int) -> Optional['ShowMatch']:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    def get_segment(self, segment_id: int) -> Optional['Segment']:
        for segment in self.segments:
            if segment.id == segment_id:
                return segment
        return None

    def __repr__(self):
        return f"<Show(id={self.id}, name='{self.name}', status={self.status.value if self.status else None})>"

class ShowMatch(Base):
    """
    A match on a show's card.

    Winners are booked by the caller; only quality and popularity impact are
    computed when the show completes.
    """
    __tablename__ = 'show_matches'

    id = Column(Integer, primary_key=True)
    show_id = Column(Integer, ForeignKey('shows.id'), nullable=False, index=True)

    match_type = Column(SQLEnum(MatchType), nullable=False, default=MatchType.SINGLES)
    championship_id = Column(Integer, ForeignKey('championships.id'), nullable=True)
    is_championship_match = Column(Boolean, default=False)
    title_changed = Column(Boolean, default=False)
    stipulation = Column(String(200), nullable=True)
    duration = Column(Integer, default=15)  # minutes
    description = Column(Text)
    booked_outcome = Column(SQLEnum(BookedOutcome), default=BookedOutcome.CLEAN)

    # Quality (1-5 stars)
    planned_quality = Column(Float, default=3)
    actual_quality = Column(Float, nullable=True)
    popularity_impact = Column(Float, default=0)

    # Card position (1 = opener, higher = main event)
    position = Column(Integer, nullable=False)

    # Relationships
    show = relationship("Show", back_populates="matches")
    participants = relationship(
        "MatchParticipant", back_populates="match", cascade="all, delete-orphan",
        order_by="MatchParticipant.id", lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint('position > 0', name='positive_match_position_check'),
        CheckConstraint('planned_quality BETWEEN 1 AND 5', name='match_planned_quality_check'),
        UniqueConstraint('show_id', 'position', name='unique_match_position_per_show'),
    )

    @property
    def winner_ids(self) -> List[int]:
        return [p.wrestler_id for p in self.participants if p.is_winner]

    @property
    def loser_ids(self) -> List[int]:
        return [p.wrestler_id for p in self.participants if not p.is_winner]

    def __repr__(self):
        return f"<ShowMatch(id={self.id}, type={self.match_type.value if self.match_type else None}, position={self.position})>"

class MatchParticipant(Base):
    __tablename__ = 'match_participants'

    id = Column(Integer, primary_key=True)
    match_id = Column(Integer, ForeignKey('show_matches.id'), nullable=False, index=True)
    wrestler_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=False, index=True)

    is_winner = Column(Boolean, default=False)
    team = Column(Integer, default=1)  # 1 or 2 for team matches

    # Relationships
    match = relationship("ShowMatch", back_populates="participants")

    __table_args__ = (
        UniqueConstraint('match_id', 'wrestler_id', name='unique_wrestler_per_match'),
    )

    def __repr__(self):
        return f"<MatchParticipant(match_id={self.match_id}, wrestler_id={self.wrestler_id}, winner={self.is_winner})>"

class Segment(Base):
    __tablename__ = 'segments'

    id = Column(Integer, primary_key=True)
    show_id = Column(Integer, ForeignKey('shows.id'), nullable=False, index=True)

    segment_type = Column(SQLEnum(SegmentType), nullable=False)
    description = Column(Text, nullable=False)
    duration = Column(Integer, default=5)  # minutes

    planned_quality = Column(Float, default=3)
    actual_quality = Column(Float, nullable=True)
    popularity_impact = Column(Float, default=0)

    position = Column(Integer, nullable=False)

    # Relationships
    show = relationship("Show", back_populates="segments")
    participants = relationship(
        "SegmentParticipant", back_populates="segment", cascade="all, delete-orphan",
        order_by="SegmentParticipant.id", lazy="selectin"
    )

    __table_args__ = (
        CheckConstraint('position > 0', name='positive_segment_position_check'),
        CheckConstraint('planned_quality BETWEEN 1 AND 5', name='segment_planned_quality_check'),
        UniqueConstraint('show_id', 'position', name='unique_segment_position_per_show'),
    )

    @property
    def wrestler_ids(self) -> List[int]:
        return [p.wrestler_id for p in self.participants]

    def __repr__(self):
        return f"<Segment(id={self.id}, type={self.segment_type.value if self.segment_type else None}, position={self.position})>"

class SegmentParticipant(Base):
    __tablename__ = 'segment_participants'

    id = Column(Integer, primary_key=True)
    segment_id = Column(Integer, ForeignKey('segments.id'), nullable=False, index=True)
    wrestler_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=False, index=True)

    segment = relationship("Segment", back_populates="participants")

    __table_args__ = (
        UniqueConstraint('segment_id', 'wrestler_id', name='unique_wrestler_per_segment'),
    )

# ============================================================================
# Championship Lineage Models
# ============================================================================

class Championship(Base):
    """
    A championship title and its reign history.

    title_reigns is append-only: rows are inserted on every title change and
    the only update ever made to a reign is closing it (setting end_date) or
    bumping its defense count.
    """
    __tablename__ = 'championships'

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)

    prestige = Column(Float, default=50)
    weight = Column(SQLEnum(ChampionshipWeight), default=ChampionshipWeight.HEAVYWEIGHT)
    is_active = Column(Boolean, default=True)

    current_holder_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=True)
    last_defended = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, default=func.now())

    # Relationships
    company = relationship("Company", lazy="selectin")
    reigns = relationship(
        "TitleReign", back_populates="championship", cascade="all, delete-orphan",
        order_by="TitleReign.id", lazy="selectin"
    )
    defended_at = relationship(
        "ChampionshipDefendedShow", cascade="all, delete-orphan",
        order_by="ChampionshipDefendedShow.show_id", lazy="selectin"
    )

    @validates('prestige')
    def _clamp_prestige(self, key, value):
        return clamp_rating(value)

    def get_open_reign(self) -> Optional['TitleReign']:
        for reign in self.reigns:
            if reign.end_date is None:
                return reign
        return None

    def __repr__(self):
        return f"<Championship(name='{self.name}', holder={self.current_holder_id}, prestige={self.prestige})>"

class TitleReign(Base):
    __tablename__ = 'title_reigns'

    id = Column(Integer, primary_key=True)
    championship_id = Column(Integer, ForeignKey('championships.id'), nullable=False, index=True)
    holder_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=False, index=True)
    won_from_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=True)
    won_at_show_id = Column(Integer, ForeignKey('shows.id'), nullable=True)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)  # NULL = active reign
    defense_count = Column(Integer, default=0)

    # Relationships
    championship = relationship("Championship", back_populates="reigns")
    defenses = relationship(
        "TitleDefense", back_populates="reign", cascade="all, delete-orphan",
        order_by="TitleDefense.id", lazy="selectin"
    )

    __table_args__ = (
        # At most one open reign per championship
        Index(
            'uq_open_reign_per_championship', 'championship_id', unique=True,
            sqlite_where=text('end_date IS NULL'),
            postgresql_where=text('end_date IS NULL')
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    def __repr__(self):
        return f"<TitleReign(championship_id={self.championship_id}, holder={self.holder_id}, active={self.is_active})>"

class TitleDefense(Base):
    __tablename__ = 'title_defenses'

    id = Column(Integer, primary_key=True)
    reign_id = Column(Integer, ForeignKey('title_reigns.id'), nullable=False, index=True)
    against_id = Column(Integer, ForeignKey('wrestlers.id'), nullable=False)
    show_id = Column(Integer, ForeignKey('shows.id'), nullable=True)
    date = Column(DateTime, nullable=False)
    quality = Column(Float, default=3)

    reign = relationship("TitleReign", back_populates="defenses")

    def __repr__(self):
        return f"<TitleDefense(reign_id={self.reign_id}, against={self.against_id}, quality={self.quality})>"

class ChampionshipDefendedShow(Base):
    """Set of shows a championship has been defended at"""
    __tablename__ = 'championship_defended_shows'

    championship_id = Column(Integer, ForeignKey('championships.id'), primary_key=True)
    show_id = Column(Integer, ForeignKey('shows.id'), primary_key=True)
