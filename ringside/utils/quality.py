"""
Quality Estimators for Matches and Segments

This module turns booked matches and segments into 1-5 star ratings using
participant snapshots, card metadata and a bounded random perturbation.

Both estimators are fail-soft: when participant data cannot be resolved they
return an Estimate carrying the documented default and a reason code instead
of raising, so quality scoring never blocks show completion.
"""

from abc import ABC, abstractmethod
from typing import List, Mapping, Optional
import logging

from ringside.constants import QualityConstants
from ringside.data_models.records import MatchRecord, SegmentRecord, WrestlerSnapshot
from ringside.utils.random_source import RandomSource, SystemRandomSource
from ringside.utils.rating import WrestlerRating, clamp
from ringside.utils.results import (
    Estimate, NO_PARTICIPANTS, PARTICIPANT_LOOKUP_FAILED, COMPUTATION_FAILED
)

logger = logging.getLogger(__name__)


def resolve_participants(wrestler_ids: List[int],
                         roster: Mapping[int, WrestlerSnapshot]) -> List[WrestlerSnapshot]:
    """Look up every id in the roster, skipping ids that are not present"""
    resolved = []
    for wrestler_id in wrestler_ids:
        wrestler = roster.get(wrestler_id)
        if wrestler is not None:
            resolved.append(wrestler)
    return resolved


def finalize_quality(value: float) -> float:
    """Clamp to the star scale and round to one decimal"""
    return round(clamp(value, QualityConstants.MIN_QUALITY, QualityConstants.MAX_QUALITY), 1)


class QualityEstimator(ABC):
    """
    Abstract base class for card item quality estimators.

    Each estimator scores one kind of card item against the roster of
    wrestler snapshots available for the show.
    """

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or SystemRandomSource()

    def perturbation(self) -> float:
        """Uniform random nudge of up to half a star either way"""
        return self.random_source.uniform(-QualityConstants.PERTURBATION, QualityConstants.PERTURBATION)

    @abstractmethod
    def estimate(self, item, roster: Mapping[int, WrestlerSnapshot]) -> Estimate[float]:
        """
        Estimate the quality of a card item.

        Args:
            item: The match or segment record
            roster: Wrestler snapshots keyed by wrestler id

        Returns:
            Estimate with the star rating, degraded if participants were unusable
        """
        pass

    @abstractmethod
    def popularity_impact(self, quality: float) -> float:
        """Popularity delta produced by a resolved quality"""
        pass


class MatchQualityEstimator(QualityEstimator):
    """
    Star ratings for matches.

    Averages participant popularity and skill onto a 1-5 scale, then adds
    bonuses for title matches, stipulations and card position.
    """

    def estimate(self, match: MatchRecord, roster: Mapping[int, WrestlerSnapshot]) -> Estimate[float]:
        try:
            wrestlers = resolve_participants(match.wrestler_ids, roster)
        except Exception as e:
            logger.warning(f"Participant lookup failed for match at position {match.position}: {e}")
            return Estimate.degraded(QualityConstants.DEFAULT_MATCH_QUALITY, PARTICIPANT_LOOKUP_FAILED)

        if not wrestlers:
            return Estimate.degraded(QualityConstants.DEFAULT_MATCH_QUALITY, NO_PARTICIPANTS)

        try:
            avg_popularity = sum(w.popularity for w in wrestlers) / len(wrestlers)
            avg_skill = sum(
                WrestlerRating.skill_factor(w, match.match_type) for w in wrestlers
            ) / len(wrestlers)

            base_quality = ((avg_popularity / 20) + (avg_skill / 20)) / 2

            if match.is_championship_match:
                base_quality += QualityConstants.CHAMPIONSHIP_BONUS

            if match.stipulation:
                base_quality += QualityConstants.STIPULATION_BONUS

            # Main events should be better
            base_quality += match.position / QualityConstants.POSITION_BONUS_DIVISOR

            quality = finalize_quality(base_quality + self.perturbation())
        except Exception as e:
            logger.warning(f"Error calculating match quality at position {match.position}: {e}")
            return Estimate.degraded(QualityConstants.DEFAULT_MATCH_QUALITY, COMPUTATION_FAILED)

        logger.debug(
            f"Match at position {match.position}: {len(wrestlers)} wrestlers, "
            f"avg popularity {avg_popularity:.1f}, avg skill {avg_skill:.1f}, quality {quality}"
        )
        return Estimate.computed(quality)

    def popularity_impact(self, quality: float) -> float:
        return (quality - QualityConstants.NEUTRAL_QUALITY) * QualityConstants.MATCH_IMPACT_MULTIPLIER


class SegmentQualityEstimator(QualityEstimator):
    """
    Star ratings for promos, interviews and other segments.

    Starts from the planned quality and shifts it by the participants'
    average charisma.
    """

    @staticmethod
    def planned_or_default(segment: SegmentRecord) -> float:
        return segment.planned_quality or QualityConstants.DEFAULT_PLANNED_QUALITY

    def estimate(self, segment: SegmentRecord, roster: Mapping[int, WrestlerSnapshot]) -> Estimate[float]:
        planned = self.planned_or_default(segment)

        if not segment.wrestler_ids:
            return Estimate.degraded(planned, NO_PARTICIPANTS)

        try:
            wrestlers = resolve_participants(segment.wrestler_ids, roster)
        except Exception as e:
            logger.warning(f"Participant lookup failed for segment at position {segment.position}: {e}")
            return Estimate.degraded(planned, PARTICIPANT_LOOKUP_FAILED)

        if not wrestlers:
            return Estimate.degraded(planned, NO_PARTICIPANTS)

        try:
            avg_charisma = sum(w.attributes.charisma for w in wrestlers) / len(wrestlers)
            charisma_adjustment = (
                (avg_charisma - QualityConstants.CHARISMA_BASELINE) / QualityConstants.CHARISMA_DIVISOR
            )
            quality = finalize_quality(planned + charisma_adjustment + self.perturbation())
        except Exception as e:
            logger.warning(f"Error calculating segment quality at position {segment.position}: {e}")
            return Estimate.degraded(planned, COMPUTATION_FAILED)

        return Estimate.computed(quality)

    def popularity_impact(self, quality: float) -> float:
        return (quality - QualityConstants.NEUTRAL_QUALITY) * QualityConstants.SEGMENT_IMPACT_MULTIPLIER
