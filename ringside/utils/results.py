"""
Two-tier result type for fail-soft estimates.

An Estimate either carries a computed value (reason is None) or the
documented default substituted for it together with a reason code. Hard
failures are exceptions from ringside.utils.exceptions instead.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar('T')

# Reason codes for degraded estimates
NO_PARTICIPANTS = 'no_participants'
PARTICIPANT_LOOKUP_FAILED = 'participant_lookup_failed'
MISSING_VENUE = 'missing_venue'
MISSING_COMPANY = 'missing_company'
COMPUTATION_FAILED = 'computation_failed'

@dataclass(frozen=True)
class Estimate(Generic[T]):
    value: T
    reason: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.reason is not None

    @classmethod
    def computed(cls, value: T) -> 'Estimate[T]':
        return cls(value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> 'Estimate[T]':
        return cls(value, reason)
