import logging
from typing import Mapping, Optional

from ringside.constants import FinanceConstants
from ringside.data_models.records import FinancialResult, ShowRecord, VenueSnapshot, WrestlerSnapshot
from ringside.utils.random_source import RandomSource, SystemRandomSource
from ringside.utils.results import Estimate, MISSING_VENUE, COMPUTATION_FAILED

logger = logging.getLogger(__name__)


class FinancialResolver:
    """Turns attendance, venue and card talent into a profit/loss statement"""

    def __init__(self, random_source: Optional[RandomSource] = None):
        self.random_source = random_source or SystemRandomSource()

    @staticmethod
    def production_cost(show_type: str) -> float:
        return FinanceConstants.PRODUCTION_COSTS.get(show_type, FinanceConstants.DEFAULT_PRODUCTION_COST)

    @staticmethod
    def talent_cost(show: ShowRecord, roster: Mapping[int, WrestlerSnapshot]) -> float:
        """Sum salaries over the unique wrestlers booked in matches and segments"""
        total = 0
        for wrestler_id in show.participant_ids:
            wrestler = roster.get(wrestler_id)
            if wrestler is not None:
                total += wrestler.salary
        return total

    def resolve(self, show: ShowRecord, venue: Optional[VenueSnapshot], attendance: int,
                roster: Mapping[int, WrestlerSnapshot]) -> Estimate[FinancialResult]:
        """
        Resolve show financials

        Args:
            show: Show with show_type, ticket_price and its card
            venue: Venue snapshot for the rental cost
            attendance: Resolved attendance
            roster: Wrestler snapshots keyed by id, for salaries

        Returns:
            Estimate of FinancialResult, an all-zero statement when degraded
        """
        if venue is None:
            logger.warning(f"No venue for show {show.show_id}, financials zeroed")
            return Estimate.degraded(FinancialResult.empty(attendance), MISSING_VENUE)

        try:
            ticket_revenue = attendance * show.ticket_price

            merch_per_attendee = self.random_source.uniform(
                FinanceConstants.MIN_MERCH_SPEND, FinanceConstants.MAX_MERCH_SPEND
            )
            merchandise_revenue = attendance * merch_per_attendee

            venue_rental_cost = venue.rental_cost
            production_cost = self.production_cost(show.show_type)
            talent_cost = self.talent_cost(show, roster)

            total_revenue = ticket_revenue + merchandise_revenue
            total_costs = venue_rental_cost + production_cost + talent_cost

            result = FinancialResult(
                attendance=attendance,
                ticket_revenue=ticket_revenue,
                merchandise_revenue=merchandise_revenue,
                venue_rental_cost=venue_rental_cost,
                production_cost=production_cost,
                talent_cost=talent_cost,
                profit=total_revenue - total_costs
            )
        except Exception as e:
            logger.warning(f"Error calculating financials for show {show.show_id}: {e}")
            return Estimate.degraded(FinancialResult.empty(attendance), COMPUTATION_FAILED)

        logger.debug(
            f"Show {show.show_id} financials: revenue {total_revenue:.2f}, "
            f"costs {total_costs:.2f}, profit {result.profit:.2f}"
        )
        return Estimate.computed(result)
