"""Validation module for ACR provisioning requests.

Public API:
    - validate: Check a registry configuration, raising on the first violated rule
    - check: Same rules, returning the first violation instead of raising
    - validate_teams: Check team names and environment tags
    - validate_network: Check private endpoint wiring
    - validate_request: Validate a whole request and derive its scope resources
    - find_name_conflicts: Report every derived name claimed more than once
    - NameConflict: Dataclass for name conflict information
    - NameValidationResult: Dataclass for name validation results
    - check_promotion: Run every image promotion rule and collect all violations
    - validate_promotion: Raise on the first promotion violation, return warnings
"""

from .name_conflict_validator import (
    NameConflict,
    NameValidationResult,
    find_name_conflicts,
)
from .promotion_validator import PromotionCheck, check_promotion, validate_promotion
from .registry_validator import check, validate
from .request_validator import validate_network, validate_request, validate_teams

__all__ = [
    "NameConflict",
    "NameValidationResult",
    "PromotionCheck",
    "check",
    "check_promotion",
    "find_name_conflicts",
    "validate",
    "validate_network",
    "validate_promotion",
    "validate_request",
    "validate_teams",
]
