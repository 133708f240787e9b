"""
Engine-wide constants for the Ringside show simulation.

This module contains all magic numbers used by the scoring, attendance and
financial models so that tuning happens in one place.
"""

class RatingConstants:
    """Constants for wrestler attributes and skill weighting."""

    # Bounds shared by attributes, popularity and prestige
    MIN_RATING = 1
    MAX_RATING = 100

    # Style context -> (strength, agility, charisma, technical)
    STYLE_WEIGHTS = {
        'Technical': (0.1, 0.2, 0.2, 0.5),
        'High-Flyer': (0.1, 0.5, 0.2, 0.2),
        'Powerhouse': (0.5, 0.1, 0.2, 0.2),
    }
    DEFAULT_WEIGHTS = (0.2, 0.2, 0.3, 0.3)

class QualityConstants:
    """Constants for match and segment star ratings."""

    MIN_QUALITY = 1.0
    MAX_QUALITY = 5.0

    # Used when no participant could be resolved for a match
    DEFAULT_MATCH_QUALITY = 2.5
    DEFAULT_PLANNED_QUALITY = 3

    # Match modifiers
    CHAMPIONSHIP_BONUS = 0.5
    STIPULATION_BONUS = 0.3
    POSITION_BONUS_DIVISOR = 10

    # Segment charisma adjustment: (charisma - 50) / 25
    CHARISMA_BASELINE = 50
    CHARISMA_DIVISOR = 25

    # Random perturbation applied to every star rating
    PERTURBATION = 0.5

    # Popularity impact per star above/below 3
    NEUTRAL_QUALITY = 3
    MATCH_IMPACT_MULTIPLIER = 2
    SEGMENT_IMPACT_MULTIPLIER = 1.5

    # Show aggregation
    SEGMENT_WEIGHT_FACTOR = 0.5
    DEFAULT_SHOW_RATING = 3.0
    CRITIC_PERTURBATION = 0.3
    SATISFACTION_MULTIPLIER = 20
    COMPANY_POPULARITY_MULTIPLIER = 2

    # Title prestige per star above/below 3 on a defense
    DEFENSE_PRESTIGE_MULTIPLIER = 2

class AttendanceConstants:
    """Constants for projected attendance."""

    SHOW_TYPE_MULTIPLIERS = {
        'Pay-Per-View': 1.2,
        'Special Event': 1.1,
        'House Show': 0.8,
    }

    PRESTIGE_BASELINE = 50

    # Ticket price factor: 1 - (price - 20) / 100, clamped
    PRICE_BASELINE = 20
    PRICE_DIVISOR = 100
    MIN_PRICE_FACTOR = 0.7
    MAX_PRICE_FACTOR = 1.3

    # +/-10% crowd variance
    MIN_RANDOM_FACTOR = 0.9
    MAX_RANDOM_FACTOR = 1.1

    MIN_CAPACITY_SHARE = 0.1
    FALLBACK_CAPACITY_SHARE = 0.5
    FALLBACK_ATTENDANCE = 1000  # No venue at all

class FinanceConstants:
    """Constants for show financial resolution."""

    # Per-attendee merchandise spend range
    MIN_MERCH_SPEND = 5
    MAX_MERCH_SPEND = 15

    PRODUCTION_COSTS = {
        'Pay-Per-View': 50000,
        'Special Event': 25000,
        'Weekly TV': 15000,
        'House Show': 5000,
    }
    DEFAULT_PRODUCTION_COST = 5000

class ShowConstants:
    """Show status names shared by the engine records and the ORM enum."""

    DRAFT = "Draft"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

class UIConstants:
    """Constants for Discord result embeds."""

    # Embed colors by show rating tier
    SPECTACULAR_COLOR = 0xe74c3c  # Red (hot)
    GREAT_COLOR = 0xe67e22        # Orange
    GOOD_COLOR = 0x3498db         # Blue
    AVERAGE_COLOR = 0xf1c40f      # Yellow
    POOR_COLOR = 0x95a5a6         # Gray
    CHAMPIONSHIP_COLOR = 0xffd700 # Gold

    TROPHY_EMOJI = "🏆"
