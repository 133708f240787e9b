import math
import logging
from typing import Optional

from ringside.constants import AttendanceConstants
from ringside.data_models.records import CompanySnapshot, ShowRecord, VenueSnapshot
from ringside.utils.random_source import RandomSource, SystemRandomSource
from ringside.utils.rating import clamp
from ringside.utils.results import Estimate, MISSING_COMPANY, MISSING_VENUE, COMPUTATION_FAILED

logger = logging.getLogger(__name__)


class AttendanceModel:
    """Projects show attendance from venue, company draw, show type and price"""

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or SystemRandomSource()

    @staticmethod
    def show_type_multiplier(show_type: str) -> float:
        return AttendanceConstants.SHOW_TYPE_MULTIPLIERS.get(show_type, 1.0)

    @staticmethod
    def price_factor(ticket_price: float) -> float:
        """
        Higher prices reduce attendance, cheaper tickets draw more

        Args:
            ticket_price: Ticket price in currency units

        Returns:
            1 - (price - 20) / 100, clamped to [0.7, 1.3]
        """
        factor = 1 - (ticket_price - AttendanceConstants.PRICE_BASELINE) / AttendanceConstants.PRICE_DIVISOR
        return clamp(factor, AttendanceConstants.MIN_PRICE_FACTOR, AttendanceConstants.MAX_PRICE_FACTOR)

    @staticmethod
    def base_attendance(show: ShowRecord, venue: VenueSnapshot, company: CompanySnapshot) -> float:
        """Deterministic projection before crowd variance and capacity bounds"""
        attendance = venue.capacity * (company.popularity / 100)
        attendance *= AttendanceModel.show_type_multiplier(show.show_type)
        attendance *= venue.prestige / AttendanceConstants.PRESTIGE_BASELINE
        attendance *= AttendanceModel.price_factor(show.ticket_price)
        return attendance

    @staticmethod
    def fallback(venue: Optional[VenueSnapshot]) -> int:
        if venue is None:
            return AttendanceConstants.FALLBACK_ATTENDANCE
        return math.floor(venue.capacity * AttendanceConstants.FALLBACK_CAPACITY_SHARE)

    def project(self, show: ShowRecord, venue: Optional[VenueSnapshot],
                company: Optional[CompanySnapshot]) -> Estimate[int]:
        """
        Project attendance for a show

        Args:
            show: Show with show_type and ticket_price
            venue: Venue snapshot, None if it could not be resolved
            company: Promoting company snapshot, None if it could not be resolved

        Returns:
            Estimate of attendance within [floor(capacity * 0.1), capacity]
        """
        if venue is None:
            logger.warning(f"No venue for show {show.show_id}, using fallback attendance")
            return Estimate.degraded(self.fallback(None), MISSING_VENUE)
        if company is None:
            logger.warning(f"No company for show {show.show_id}, using half capacity")
            return Estimate.degraded(self.fallback(venue), MISSING_COMPANY)

        try:
            attendance = self.base_attendance(show, venue, company)
            attendance *= self.random_source.uniform(
                AttendanceConstants.MIN_RANDOM_FACTOR, AttendanceConstants.MAX_RANDOM_FACTOR
            )
            attendance = max(venue.capacity * AttendanceConstants.MIN_CAPACITY_SHARE, attendance)
            projected = min(venue.capacity, math.floor(attendance))
        except Exception as e:
            logger.warning(f"Error calculating attendance for show {show.show_id}: {e}")
            return Estimate.degraded(self.fallback(venue), COMPUTATION_FAILED)

        return Estimate.computed(projected)
