"""Failure taxonomy shared by collaborators, the pricing core and the API"""
from enum import Enum
from typing import Optional


class PricingErrorKind(str, Enum):
    INPUT_INCOMPLETE = "input_incomplete"
    LOOKUP_UNAVAILABLE = "lookup_unavailable"
    NO_MATCHING_RATE = "no_matching_rate"

    def __str__(self):
        return self.value


class PricingError(Exception):
    kind: PricingErrorKind = PricingErrorKind.INPUT_INCOMPLETE
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LookupUnavailable(PricingError):
    """An external rate, extras, commission, geo or routing source failed."""

    kind = PricingErrorKind.LOOKUP_UNAVAILABLE
    retryable = True

    def __init__(self, resource: str, message: Optional[str] = None):
        super().__init__(message or f"{resource} lookup is unavailable, please retry")
        self.resource = resource


class NoMatchingRate(PricingError):
    kind = PricingErrorKind.NO_MATCHING_RATE
    retryable = False

    def __init__(self, city_name: Optional[str], state_name: Optional[str], message: Optional[str] = None):
        region = ", ".join(part for part in (city_name, state_name) if part) or "this region"
        super().__init__(message or f"No price is defined for {region}. Define a rate for this region.")
        self.city_name = city_name
        self.state_name = state_name


class RoundingInvariantViolation(AssertionError):
    """Commission and carrier payout no longer add up to the grand total."""
