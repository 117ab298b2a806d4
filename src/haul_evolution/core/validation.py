"""
Input Validation Module

Provides validation functions and custom exceptions for the haul_evolution package.
All validation functions provide clear, actionable error messages.
"""

from __future__ import annotations

import math
import warnings
from typing import Sized


class ValidationError(ValueError):
    """Base exception for validation errors with user-friendly messages."""
    pass


class BinSizeError(ValidationError):
    """Invalid bin size value."""
    pass


class EmptyInputError(ValidationError):
    """An input required for a meaningful simulation is empty."""
    pass


class TripOrderError(ValidationError):
    """Trip applied out of strictly increasing index order."""
    pass


def _require_number(value: float, context: str, error=ValidationError) -> float:
    if value is None:
        raise error(f"{context} cannot be None")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise error(
            f"{context} must be a number, got {type(value).__name__}"
        )

    if math.isnan(value) or math.isinf(value):
        raise error(f"{context} must be finite, got {value}")

    return float(value)


def validate_bin_size(bin_size: float, context: str = "bin size") -> float:
    """
    Validate bin size is a positive number.

    Args:
        bin_size: The bin edge length in meters
        context: Description of what this size is for (used in error messages)

    Returns:
        The validated bin size as a float

    Raises:
        BinSizeError: If bin_size is None, not a number, or <= 0
    """
    bin_size = _require_number(bin_size, context, BinSizeError)

    if bin_size <= 0:
        raise BinSizeError(
            f"{context} must be positive, got {bin_size}. "
            "Typical values are 0.3-2.0 meters (0.6096 m = 2 ft)."
        )

    if bin_size > 10.0:
        warnings.warn(
            f"{context} of {bin_size} m is much coarser than a blade pass. "
            "Verify this is intentional.",
            UserWarning,
            stacklevel=2
        )

    return bin_size


def validate_positive(value: float, name: str) -> float:
    """
    Validate an equipment parameter is a positive number.

    Raises:
        ValidationError: If value is None, not a number, or <= 0
    """
    value = _require_number(value, name)

    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")

    return value


def validate_soil_factor(factor: float, name: str) -> float:
    """
    Validate soil swell/shrink factor is reasonable.

    Args:
        factor: The soil factor to validate
        name: Name of the factor (e.g., "swell", "shrink")

    Returns:
        The validated factor as a float

    Raises:
        ValidationError: If factor is None, not a number, or <= 0
    """
    factor = _require_number(factor, name)

    if factor <= 0:
        raise ValidationError(
            f"{name} must be positive, got {factor}. "
            "Typical swell factors are 1.1-1.5, shrink factors are 0.6-0.95."
        )

    if factor > 3.0 or factor < 0.3:
        warnings.warn(
            f"{name} of {factor} is outside typical range (0.3-3.0). "
            "Verify this is intentional.",
            UserWarning,
            stacklevel=2
        )

    return factor


def validate_non_empty(items: Sized, what: str) -> None:
    """
    Validate that a simulation input is not empty.

    Raises:
        EmptyInputError: If items is None or has no elements
    """
    if items is None or len(items) == 0:
        raise EmptyInputError(
            f"No {what} available. A simulation run needs at least one; "
            "check the input file and its column headers."
        )
