"""Guard rules for container registry configuration.

Rules run in priority order and the first violation wins. The messages are
part of the public contract: callers and pipelines match on them.
"""

import logging
from typing import Callable, Optional, Sequence

from ..exceptions import ValidationError
from ..models import DEFAULT_ALLOWED_ENVIRONMENTS, NetworkRuleBypass, RegistryConfig, Sku

logger = logging.getLogger(__name__)

REGISTRY_NAME_MIN_LENGTH = 5
REGISTRY_NAME_MAX_LENGTH = 50
RETENTION_DAYS_MIN = 1
RETENTION_DAYS_MAX = 365

VALID_SKUS = tuple(sku.value for sku in Sku)
VALID_BYPASS_OPTIONS = tuple(option.value for option in NetworkRuleBypass)

Rule = Callable[[RegistryConfig, Sequence[str]], Optional[ValidationError]]


def check_name_length(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if REGISTRY_NAME_MIN_LENGTH <= len(config.name) <= REGISTRY_NAME_MAX_LENGTH:
        return None
    return ValidationError(
        f"Registry name must be {REGISTRY_NAME_MIN_LENGTH}-{REGISTRY_NAME_MAX_LENGTH} "
        f"characters, got {len(config.name)}",
        field="name",
        rule="INVALID_NAME_LENGTH",
    )


def check_environment(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if config.environment in allowed_environments:
        return None
    return ValidationError(
        f"Environment must be one of: {', '.join(allowed_environments)}",
        field="environment",
        rule="INVALID_ENVIRONMENT",
    )


def check_sku(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if config.sku in VALID_SKUS:
        return None
    return ValidationError(
        f"SKU must be one of: {', '.join(VALID_SKUS)}",
        field="sku",
        rule="INVALID_SKU",
    )


def check_retention_days(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if not config.retention_policy_enabled:
        return None
    if RETENTION_DAYS_MIN <= config.retention_policy_days <= RETENTION_DAYS_MAX:
        return None
    return ValidationError(
        f"Retention policy days must be between {RETENTION_DAYS_MIN} and "
        f"{RETENTION_DAYS_MAX}",
        field="retention_policy_days",
        rule="INVALID_RETENTION_DAYS",
    )


def check_name_characters(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if config.name.isascii() and config.name.isalnum():
        return None
    return ValidationError(
        "Registry name must contain only alphanumeric characters",
        field="name",
        rule="INVALID_NAME_CHARACTERS",
    )


def check_network_rule_bypass(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if config.network_rule_bypass_option in VALID_BYPASS_OPTIONS:
        return None
    return ValidationError(
        f"Network rule bypass option must be one of: {', '.join(VALID_BYPASS_OPTIONS)}",
        field="network_rule_bypass_option",
        rule="INVALID_NETWORK_RULE_BYPASS",
    )


def premium_features(config: RegistryConfig) -> list[str]:
    """List the enabled settings that only the Premium tier supports."""
    features = []
    if config.quarantine_policy_enabled:
        features.append("quarantine_policy_enabled")
    if config.trust_policy_enabled:
        features.append("trust_policy_enabled")
    if config.retention_policy_enabled:
        features.append("retention_policy_enabled")
    if config.zone_redundancy_enabled:
        features.append("zone_redundancy_enabled")
    if config.data_endpoint_enabled:
        features.append("data_endpoint_enabled")
    if not config.export_policy_enabled:
        features.append("export_policy_enabled=false")
    if not config.public_network_access:
        features.append("public_network_access=false")
    return features


def check_premium_features(
    config: RegistryConfig, allowed_environments: Sequence[str]
) -> Optional[ValidationError]:
    if config.sku == Sku.PREMIUM.value:
        return None
    features = premium_features(config)
    if not features:
        return None
    return ValidationError(
        f"Premium SKU is required for: {', '.join(features)}",
        field="sku",
        rule="PREMIUM_SKU_REQUIRED",
    )


REGISTRY_RULES: tuple[Rule, ...] = (
    check_name_length,
    check_environment,
    check_sku,
    check_retention_days,
    check_name_characters,
    check_network_rule_bypass,
    check_premium_features,
)


def check(
    config: RegistryConfig,
    allowed_environments: Sequence[str] = DEFAULT_ALLOWED_ENVIRONMENTS,
) -> Optional[ValidationError]:
    """Return the first violated rule for ``config``, or None if it is valid."""
    for rule in REGISTRY_RULES:
        error = rule(config, allowed_environments)
        if error is not None:
            return error
    return None


def validate(
    config: RegistryConfig,
    allowed_environments: Sequence[str] = DEFAULT_ALLOWED_ENVIRONMENTS,
) -> None:
    """
    Validate a registry configuration.

    Args:
        config: Registry configuration to check
        allowed_environments: Environment tags accepted for ``config.environment``

    Raises:
        ValidationError: For the first rule the configuration violates
    """
    error = check(config, allowed_environments)
    if error is not None:
        logger.debug(f"Registry {config.name!r} failed {error.rule}")
        raise error
