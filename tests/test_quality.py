"""
Tests for wrestler skill ratings and match/segment quality estimation.
"""

import pytest

from ringside.data_models.records import WrestlerAttributes
from ringside.utils.quality import MatchQualityEstimator, SegmentQualityEstimator
from ringside.utils.rating import WrestlerRating, clamp
from ringside.utils.results import NO_PARTICIPANTS, PARTICIPANT_LOOKUP_FAILED

from conftest import MidpointRandom, make_match, make_segment, make_wrestler


class FixedRandom:
    """Always returns the same value regardless of range"""

    def __init__(self, value):
        self.value = value

    def uniform(self, a, b):
        return self.value


class BrokenRoster(dict):
    def get(self, key, default=None):
        raise RuntimeError("roster unavailable")


class TestClamp:
    """Test the shared clamp helper."""

    def test_within_bounds(self):
        assert clamp(50, 1, 100) == 50

    def test_bounds(self):
        assert clamp(-5, 1, 100) == 1
        assert clamp(250, 1, 100) == 100


class TestWrestlerRating:
    """Test style-weighted skill factors."""

    def test_attributes_are_clamped(self):
        attributes = WrestlerAttributes(strength=150, agility=-10, charisma=50, technical=100)
        assert attributes.strength == 100
        assert attributes.agility == 1

    def test_own_style_weights(self):
        wrestler = make_wrestler(1, style='Technical', strength=20, agility=40, charisma=60, technical=100)
        # 20*0.1 + 40*0.2 + 60*0.2 + 100*0.5
        assert WrestlerRating.skill_factor(wrestler) == pytest.approx(72)

    def test_unknown_context_uses_default_weights(self):
        wrestler = make_wrestler(1, style='Technical', strength=20, agility=40, charisma=60, technical=100)
        # 20*0.2 + 40*0.2 + 60*0.3 + 100*0.3
        assert WrestlerRating.skill_factor(wrestler, 'Singles') == pytest.approx(60)

    def test_weights_sum_to_one(self):
        for style in ('Technical', 'High-Flyer', 'Powerhouse', 'Brawler', None):
            assert sum(WrestlerRating.get_weights(style)) == pytest.approx(1.0)

    def test_overall_rating(self):
        wrestler = make_wrestler(1, strength=40, agility=60, charisma=70, technical=90)
        assert WrestlerRating.overall_rating(wrestler) == 65


class TestMatchQuality:
    """Test match star ratings."""

    def setup_method(self):
        self.estimator = MatchQualityEstimator(MidpointRandom())
        self.roster = {
            1: make_wrestler(1, level=80),
            2: make_wrestler(2, level=80),
            3: make_wrestler(3, level=100),
            4: make_wrestler(4, level=100),
        }

    def test_basic_match(self):
        # (80/20 + 80/20) / 2 = 4.0, plus position 1/10
        estimate = self.estimator.estimate(make_match([1, 2], position=1), self.roster)
        assert not estimate.is_degraded
        assert estimate.value == 4.1

    def test_championship_and_stipulation_bonuses(self):
        match = make_match([1, 2], position=1, is_championship_match=True, stipulation="Ladder")
        estimate = self.estimator.estimate(match, self.roster)
        assert estimate.value == 4.9

    def test_quality_is_clamped_to_five(self):
        match = make_match([3, 4], position=8, is_championship_match=True, stipulation="Cage")
        assert self.estimator.estimate(match, self.roster).value == 5.0

    def test_quality_is_clamped_to_one(self):
        roster = {1: make_wrestler(1, level=1), 2: make_wrestler(2, level=1)}
        estimator = MatchQualityEstimator(FixedRandom(-0.5))
        assert estimator.estimate(make_match([1, 2], position=1), roster).value == 1.0

    def test_perturbation_stays_within_half_star(self):
        low = MatchQualityEstimator(FixedRandom(-0.5)).estimate(make_match([1, 2]), self.roster)
        high = MatchQualityEstimator(FixedRandom(0.5)).estimate(make_match([1, 2]), self.roster)
        assert low.value == 3.6
        assert high.value == 4.6

    def test_no_resolvable_participants_defaults(self):
        estimate = self.estimator.estimate(make_match([98, 99]), self.roster)
        assert estimate.is_degraded
        assert estimate.reason == NO_PARTICIPANTS
        assert estimate.value == 2.5

    def test_missing_participants_are_skipped(self):
        estimate = self.estimator.estimate(make_match([1, 99], position=1), self.roster)
        assert not estimate.is_degraded
        assert estimate.value == 4.1

    def test_lookup_failure_defaults(self):
        estimate = self.estimator.estimate(make_match([1, 2]), BrokenRoster())
        assert estimate.reason == PARTICIPANT_LOOKUP_FAILED
        assert estimate.value == 2.5

    def test_popularity_impact(self):
        assert self.estimator.popularity_impact(4.0) == pytest.approx(2.0)
        assert self.estimator.popularity_impact(2.0) == pytest.approx(-2.0)


class TestSegmentQuality:
    """Test segment star ratings."""

    def setup_method(self):
        self.estimator = SegmentQualityEstimator(MidpointRandom())

    def test_charisma_raises_quality(self):
        roster = {1: make_wrestler(1, charisma=75)}
        # 3 + (75 - 50) / 25
        assert self.estimator.estimate(make_segment([1]), roster).value == 4.0

    def test_charisma_lowers_quality(self):
        roster = {1: make_wrestler(1, charisma=25)}
        assert self.estimator.estimate(make_segment([1]), roster).value == 2.0

    def test_planned_quality_is_the_base(self):
        roster = {1: make_wrestler(1, charisma=50)}
        assert self.estimator.estimate(make_segment([1], planned_quality=4.5), roster).value == 4.5

    def test_no_participants_keeps_planned_quality(self):
        estimate = self.estimator.estimate(make_segment([], planned_quality=4), {})
        assert estimate.is_degraded
        assert estimate.reason == NO_PARTICIPANTS
        assert estimate.value == 4

    def test_missing_planned_quality_defaults_to_three(self):
        estimate = self.estimator.estimate(make_segment([], planned_quality=None), {})
        assert estimate.value == 3

    def test_lookup_failure_keeps_planned_quality(self):
        estimate = self.estimator.estimate(make_segment([1], planned_quality=2), BrokenRoster())
        assert estimate.reason == PARTICIPANT_LOOKUP_FAILED
        assert estimate.value == 2

    def test_popularity_impact(self):
        assert self.estimator.popularity_impact(5.0) == pytest.approx(3.0)
