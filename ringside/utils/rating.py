from typing import Optional, TYPE_CHECKING

from ringside.constants import RatingConstants

if TYPE_CHECKING:
    from ringside.data_models.records import WrestlerSnapshot


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]; every popularity/prestige/quality bound goes through here"""
    return max(lo, min(hi, value))


class WrestlerRating:
    """Derives in-ring ratings from a wrestler's core attributes"""

    @staticmethod
    def get_weights(context_style: Optional[str]) -> tuple:
        """
        Get attribute weights for a style context

        Args:
            context_style: Technical, High-Flyer or Powerhouse emphasise their
                matching attribute; anything else uses the balanced default

        Returns:
            Tuple of (strength, agility, charisma, technical) weights summing to 1.0
        """
        return RatingConstants.STYLE_WEIGHTS.get(context_style, RatingConstants.DEFAULT_WEIGHTS)

    @staticmethod
    def skill_factor(wrestler: 'WrestlerSnapshot', context_style: Optional[str] = None) -> float:
        """
        Calculate a wrestler's skill factor

        Args:
            wrestler: Snapshot with clamped attributes
            context_style: Weighting context; defaults to the wrestler's own style

        Returns:
            Weighted attribute sum in [0, 100]
        """
        if context_style is None:
            context_style = wrestler.style

        strength_w, agility_w, charisma_w, technical_w = WrestlerRating.get_weights(context_style)
        attributes = wrestler.attributes

        skill = (
            attributes.strength * strength_w
            + attributes.agility * agility_w
            + attributes.charisma * charisma_w
            + attributes.technical * technical_w
        )
        return clamp(skill, 0, 100)

    @staticmethod
    def overall_rating(wrestler: 'WrestlerSnapshot') -> int:
        """Unweighted average of the four attributes, rounded"""
        attributes = wrestler.attributes
        return round((attributes.strength + attributes.agility + attributes.charisma + attributes.technical) / 4)
