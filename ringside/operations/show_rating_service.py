"""
Show Rating Service

Centralized show completion logic: scores every match and segment, weights
them by card position into an overall rating, projects attendance and
resolves financials, then derives the promoting company's updates.

Key functionality:
- calculate_overall_rating(): position-weighted average of card qualities
- complete_show(): the In Progress -> Completed step over plain records

All derived values are computed in memory first and applied to the show
record in a single final step, so a failure part-way through never leaves
the record half-updated.
"""

import copy
from typing import Mapping, Optional, Sequence, Tuple

from ringside.constants import QualityConstants, RatingConstants, ShowConstants
from ringside.data_models.records import (
    CompanySnapshot, QualityResult, ShowOutcome, ShowRecord, VenueSnapshot, WrestlerSnapshot
)
from ringside.utils.attendance import AttendanceModel
from ringside.utils.exceptions import InvalidTransitionError
from ringside.utils.financials import FinancialResolver
from ringside.utils.quality import MatchQualityEstimator, SegmentQualityEstimator
from ringside.utils.random_source import RandomSource, SystemRandomSource
from ringside.utils.rating import clamp
from ringside.utils.logger import setup_logger

logger = setup_logger(__name__)


class ShowRatingService:
    """
    Runs the show completion pipeline over plain records.

    One random source is shared by every model so a single stub pins the
    whole pipeline in tests.
    """

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or SystemRandomSource()
        self.match_estimator = MatchQualityEstimator(self.random_source)
        self.segment_estimator = SegmentQualityEstimator(self.random_source)
        self.attendance_model = AttendanceModel(self.random_source)
        self.financial_resolver = FinancialResolver(self.random_source)

    @staticmethod
    def calculate_overall_rating(match_items: Sequence[Tuple[int, float]],
                                 segment_items: Sequence[Tuple[int, float]]) -> float:
        """
        Calculate the position-weighted show rating.

        Args:
            match_items: (position, quality) per match; weight = position
            segment_items: (position, quality) per segment; weight = position * 0.5

        Returns:
            Weighted average rounded to one decimal, 3.0 when nothing carries weight
        """
        total_quality = 0.0
        total_weight = 0.0

        for position, quality in match_items:
            total_quality += quality * position
            total_weight += position

        for position, quality in segment_items:
            weight = position * QualityConstants.SEGMENT_WEIGHT_FACTOR
            total_quality += quality * weight
            total_weight += weight

        if total_weight <= 0:
            return QualityConstants.DEFAULT_SHOW_RATING
        return round(total_quality / total_weight, 1)

    def critic_rating(self, overall_rating: float) -> float:
        nudge = self.random_source.uniform(
            -QualityConstants.CRITIC_PERTURBATION, QualityConstants.CRITIC_PERTURBATION
        )
        return round(clamp(overall_rating + nudge, QualityConstants.MIN_QUALITY, QualityConstants.MAX_QUALITY), 1)

    @staticmethod
    def audience_satisfaction(overall_rating: float) -> int:
        return round(overall_rating * QualityConstants.SATISFACTION_MULTIPLIER)

    @staticmethod
    def company_popularity_change(overall_rating: float) -> int:
        return round((overall_rating - QualityConstants.NEUTRAL_QUALITY) * QualityConstants.COMPANY_POPULARITY_MULTIPLIER)

    def complete_show(self, show: ShowRecord, venue: Optional[VenueSnapshot],
                      company: Optional[CompanySnapshot],
                      roster: Mapping[int, WrestlerSnapshot]) -> ShowOutcome:
        """
        Complete an In Progress show.

        Args:
            show: Show record; mutated only after every value is computed
            venue: Venue snapshot (None degrades attendance and financials)
            company: Promoting company snapshot (None degrades attendance)
            roster: Wrestler snapshots keyed by id for every booked wrestler

        Returns:
            ShowOutcome with all derived fields

        Raises:
            InvalidTransitionError: If the show is not In Progress
        """
        if show.status != ShowConstants.IN_PROGRESS:
            logger.warning(f"Rejected completion of show {show.show_id} with status {show.status}")
            raise InvalidTransitionError('show', show.status, 'complete')

        degraded_reasons = []

        match_results = []
        for match in show.matches:
            estimate = self.match_estimator.estimate(match, roster)
            if estimate.is_degraded:
                degraded_reasons.append(f"match@{match.position}:{estimate.reason}")
            match_results.append(QualityResult(
                position=match.position,
                actual_quality=estimate.value,
                popularity_impact=self.match_estimator.popularity_impact(estimate.value),
                reason=estimate.reason
            ))

        segment_results = []
        for segment in show.segments:
            estimate = self.segment_estimator.estimate(segment, roster)
            if estimate.is_degraded:
                degraded_reasons.append(f"segment@{segment.position}:{estimate.reason}")
            segment_results.append(QualityResult(
                position=segment.position,
                actual_quality=estimate.value,
                popularity_impact=self.segment_estimator.popularity_impact(estimate.value),
                reason=estimate.reason
            ))

        overall_rating = self.calculate_overall_rating(
            [(r.position, r.actual_quality) for r in match_results],
            [(r.position, r.actual_quality) for r in segment_results]
        )
        critic_rating = self.critic_rating(overall_rating)
        audience_satisfaction = self.audience_satisfaction(overall_rating)

        attendance = self.attendance_model.project(show, venue, company)
        if attendance.is_degraded:
            degraded_reasons.append(f"attendance:{attendance.reason}")

        financials = self.financial_resolver.resolve(show, venue, attendance.value, roster)
        if financials.is_degraded:
            degraded_reasons.append(f"financials:{financials.reason}")

        popularity_change = self.company_popularity_change(overall_rating)
        if company is not None:
            company_popularity = clamp(
                company.popularity + popularity_change,
                RatingConstants.MIN_RATING, RatingConstants.MAX_RATING
            )
            company_money = company.money + financials.value.profit
        else:
            company_popularity = None
            company_money = None

        outcome = ShowOutcome(
            match_results=match_results,
            segment_results=segment_results,
            overall_rating=overall_rating,
            critic_rating=critic_rating,
            audience_satisfaction=audience_satisfaction,
            attendance=attendance.value,
            financials=financials.value,
            company_popularity=company_popularity,
            company_money=company_money,
            popularity_change=popularity_change,
            degraded_reasons=degraded_reasons
        )

        self.apply_outcome(show, outcome)

        if degraded_reasons:
            logger.warning(f"Show {show.show_id} completed with degraded inputs: {', '.join(degraded_reasons)}")
        logger.info(
            f"Show {show.show_id} completed: rating {overall_rating}, attendance {outcome.attendance}, "
            f"profit {outcome.financials.profit:.2f}"
        )
        return outcome

    @staticmethod
    def apply_outcome(show: ShowRecord, outcome: ShowOutcome):
        """Write a computed outcome onto the show record in one step"""
        matches = copy.deepcopy(show.matches)
        segments = copy.deepcopy(show.segments)

        for match, result in zip(matches, outcome.match_results):
            match.actual_quality = result.actual_quality
            match.popularity_impact = result.popularity_impact
        for segment, result in zip(segments, outcome.segment_results):
            segment.actual_quality = result.actual_quality
            segment.popularity_impact = result.popularity_impact

        financials = outcome.financials
        show.matches = matches
        show.segments = segments
        show.attendance = outcome.attendance
        show.ticket_revenue = financials.ticket_revenue
        show.merchandise_revenue = financials.merchandise_revenue
        show.venue_rental_cost = financials.venue_rental_cost
        show.production_cost = financials.production_cost
        show.talent_cost = financials.talent_cost
        show.profit = financials.profit
        show.overall_rating = outcome.overall_rating
        show.critic_rating = outcome.critic_rating
        show.audience_satisfaction = outcome.audience_satisfaction
        show.status = ShowConstants.COMPLETED
