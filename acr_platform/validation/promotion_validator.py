"""Guard rules for promoting an image between environments.

Unlike registry rules, every promotion rule runs and all violations are
reported together, so a pipeline can show the whole list in one failure.
Rules only look at the request; whether the team really holds a token in the
target registry is checked against the derived scope resources, not Azure.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from ..exceptions import ValidationError
from ..models import PromotionRequest, ScopeResource
from .request_validator import TEAM_NAME_MAX_LENGTH, TEAM_NAME_PATTERN

logger = logging.getLogger(__name__)

PROMOTION_ENVIRONMENTS = ("pr", "dev", "perf", "preproduction", "production", "prod")

# "production" and "prod" are both in use; neither promotes further.
PROMOTION_MATRIX = {
    "pr": ("dev",),
    "dev": ("perf", "preproduction", "prod"),
    "perf": ("preproduction", "prod"),
    "preproduction": ("production", "prod"),
    "production": (),
    "prod": (),
}

NONPROD_ENVIRONMENTS = ("pr", "dev", "perf")
PROD_ENVIRONMENTS = ("preproduction", "production", "prod")

REGISTRY_PATTERNS = {
    "sandbox": re.compile(r"^brightcloudsandbox-[a-f0-9]{8}\.azurecr\.io$"),
    "nonprod": re.compile(r"^brightcloudnonprod-[a-f0-9]{8}\.azurecr\.io$"),
    "prod": re.compile(r"^brightcloudprod-[a-f0-9]{8}\.azurecr\.io$"),
}

IMAGE_NAME_PATTERN = TEAM_NAME_PATTERN
IMAGE_NAME_MAX_LENGTH = 128
TAG_PATTERN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]{0,127}$")
TAG_MAX_LENGTH = 128

LATEST_TAG_WARNING = (
    'Using "latest" tag is discouraged. Consider using specific version tags '
    "or git commit SHAs."
)

Rule = Callable[[PromotionRequest], List[ValidationError]]


@dataclass
class PromotionCheck:
    """Outcome of checking a promotion request.

    Attributes:
        errors: Every violated rule, in rule order
        warnings: Advisory messages that do not block the promotion
    """

    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def registry_type(login_server: str) -> Optional[str]:
    """Classify a login server as sandbox, nonprod or prod; None if unknown."""
    for kind, pattern in REGISTRY_PATTERNS.items():
        if pattern.match(login_server):
            return kind
    return None


def check_team_name(request: PromotionRequest) -> List[ValidationError]:
    name = request.team_name
    if not name:
        return [
            ValidationError(
                "Team name cannot be empty.", field="team_name", rule="INVALID_TEAM_NAME"
            )
        ]

    errors = []
    if not TEAM_NAME_PATTERN.match(name):
        errors.append(
            ValidationError(
                "Team name must contain only lowercase letters, numbers, periods, "
                "hyphens, and underscores.",
                field="team_name",
                rule="INVALID_TEAM_NAME",
            )
        )
    if len(name) > TEAM_NAME_MAX_LENGTH:
        errors.append(
            ValidationError(
                f"Team name must be {TEAM_NAME_MAX_LENGTH} characters or less.",
                field="team_name",
                rule="INVALID_TEAM_NAME",
            )
        )
    return errors


def check_image_name(request: PromotionRequest) -> List[ValidationError]:
    name = request.image_name
    if not name:
        return [
            ValidationError(
                "Image name cannot be empty.", field="image_name", rule="INVALID_IMAGE_NAME"
            )
        ]

    errors = []
    if request.target_image is not None and request.target_image != name:
        errors.append(
            ValidationError(
                "Image renaming is not allowed during promotion. Source and target "
                "image names must be identical.",
                field="target_image",
                rule="IMAGE_RENAME_NOT_ALLOWED",
                context={"image": name, "target_image": request.target_image},
            )
        )
    if not IMAGE_NAME_PATTERN.match(name):
        errors.append(
            ValidationError(
                "Image name must contain only lowercase letters, numbers, periods, "
                "hyphens, and underscores.",
                field="image_name",
                rule="INVALID_IMAGE_NAME",
            )
        )
    if len(name) > IMAGE_NAME_MAX_LENGTH:
        errors.append(
            ValidationError(
                f"Image name must be {IMAGE_NAME_MAX_LENGTH} characters or less.",
                field="image_name",
                rule="INVALID_IMAGE_NAME",
            )
        )
    return errors


def check_environments(request: PromotionRequest) -> List[ValidationError]:
    errors = []
    allowed = ", ".join(PROMOTION_ENVIRONMENTS)
    for side in ("source", "target"):
        environment = getattr(request, f"{side}_environment")
        if environment not in PROMOTION_ENVIRONMENTS:
            errors.append(
                ValidationError(
                    f"Invalid {side} environment: {environment}. Must be one of: {allowed}",
                    field=f"{side}_environment",
                    rule="INVALID_ENVIRONMENT",
                )
            )
    if request.source_environment == request.target_environment:
        errors.append(
            ValidationError(
                "Source and target environments cannot be the same.",
                field="target_environment",
                rule="SAME_ENVIRONMENT",
            )
        )
    return errors


def check_promotion_path(request: PromotionRequest) -> List[ValidationError]:
    source, target = request.source_environment, request.target_environment
    allowed_targets = PROMOTION_MATRIX.get(source)
    if allowed_targets is None:
        return [
            ValidationError(
                f"Promotion from {source} is not allowed.",
                field="source_environment",
                rule="INVALID_PROMOTION_PATH",
            )
        ]
    if target in allowed_targets:
        return []
    return [
        ValidationError(
            f"Invalid promotion path: {source} -> {target}. "
            f"Allowed targets from {source}: {', '.join(allowed_targets) or 'none'}",
            field="target_environment",
            rule="INVALID_PROMOTION_PATH",
        )
    ]


def check_registries(request: PromotionRequest) -> List[ValidationError]:
    errors = []
    source_type = registry_type(request.source_registry)
    target_type = registry_type(request.target_registry)

    for side, login_server, kind in (
        ("source", request.source_registry, source_type),
        ("target", request.target_registry, target_type),
    ):
        if kind is None:
            errors.append(
                ValidationError(
                    f"Invalid {side} registry format: {login_server}",
                    field=f"{side}_registry",
                    rule="INVALID_REGISTRY",
                )
            )
    if source_type is None or target_type is None:
        return errors

    if request.source_environment in NONPROD_ENVIRONMENTS and source_type != "nonprod":
        errors.append(
            ValidationError(
                f"Environment {request.source_environment} must use nonprod registry, "
                f"not {source_type}",
                field="source_registry",
                rule="REGISTRY_ENVIRONMENT_MISMATCH",
            )
        )
    if request.target_environment in PROD_ENVIRONMENTS and target_type != "prod":
        errors.append(
            ValidationError(
                f"Environment {request.target_environment} must use prod registry, "
                f"not {target_type}",
                field="target_registry",
                rule="REGISTRY_ENVIRONMENT_MISMATCH",
            )
        )
    return errors


def check_tags(request: PromotionRequest) -> List[ValidationError]:
    errors = []
    for side, tag in (("source", request.source_tag), ("target", request.resolved_target_tag)):
        if not TAG_PATTERN.match(tag):
            errors.append(
                ValidationError(
                    f"Invalid {side} tag format: {tag}",
                    field=f"{side}_tag",
                    rule="INVALID_TAG",
                )
            )
        if len(tag) > TAG_MAX_LENGTH:
            errors.append(
                ValidationError(
                    f"{side.capitalize()} tag must be {TAG_MAX_LENGTH} characters or less.",
                    field=f"{side}_tag",
                    rule="INVALID_TAG",
                )
            )
    return errors


def check_registry_boundary(request: PromotionRequest) -> List[ValidationError]:
    source_type = registry_type(request.source_registry)
    target_type = registry_type(request.target_registry)
    # unknown registries are already reported by check_registries
    if source_type is None or target_type is None:
        return []
    if (source_type, target_type) == ("nonprod", "prod"):
        return []

    messages = []
    if source_type == "sandbox":
        messages.append(
            "Promotion from sandbox registry is not allowed. Sandbox is for experimentation only."
        )
    if target_type == "sandbox":
        messages.append(
            "Promotion to sandbox registry is not allowed. Sandbox is for experimentation only."
        )
    if (source_type, target_type) == ("prod", "nonprod"):
        messages.append("Backward promotion from production to non-production is not allowed.")
    if source_type == target_type and source_type != "nonprod":
        messages.append(
            "Same-registry promotion is only allowed within non-production environments."
        )
    return [
        ValidationError(message, field="target_registry", rule="CROSS_BOUNDARY_PROMOTION")
        for message in messages
    ]


PROMOTION_RULES: tuple[Rule, ...] = (
    check_team_name,
    check_image_name,
    check_environments,
    check_promotion_path,
    check_registries,
    check_tags,
    check_registry_boundary,
)


def check_team_access(
    request: PromotionRequest, scope_resources: Iterable[ScopeResource]
) -> Optional[ValidationError]:
    """Require a scope map for the team in the target environment."""
    for resource in scope_resources:
        if (resource.team, resource.environment) == (
            request.team_name,
            request.target_environment,
        ):
            return None
    return ValidationError(
        f"Team {request.team_name} has no scope map for environment "
        f"{request.target_environment} in the target registry",
        field="team_name",
        rule="TEAM_ACCESS_DENIED",
        context={"team": request.team_name, "environment": request.target_environment},
    )


def promotion_warnings(request: PromotionRequest) -> List[str]:
    if "latest" in (request.source_tag, request.resolved_target_tag):
        return [LATEST_TAG_WARNING]
    return []


def check_promotion(
    request: PromotionRequest,
    scope_resources: Optional[Sequence[ScopeResource]] = None,
) -> PromotionCheck:
    """Run every promotion rule and collect the violations and warnings.

    Args:
        request: The promotion to check
        scope_resources: Derived scope resources of the target registry; when
            given, the team must own one for the target environment
    """
    result = PromotionCheck(warnings=promotion_warnings(request))
    for rule in PROMOTION_RULES:
        result.errors.extend(rule(request))
    if scope_resources is not None:
        error = check_team_access(request, scope_resources)
        if error is not None:
            result.errors.append(error)
    return result


def validate_promotion(
    request: PromotionRequest,
    scope_resources: Optional[Sequence[ScopeResource]] = None,
) -> List[str]:
    """
    Validate a promotion request.

    Returns:
        Warnings for a promotion that may go ahead

    Raises:
        ValidationError: The first violation, with the number of others in its context
    """
    result = check_promotion(request, scope_resources)
    for warning in result.warnings:
        logger.warning(warning)
    if not result.is_valid:
        first = result.errors[0]
        logger.debug(
            f"Promotion of {request.image_name}:{request.source_tag} failed "
            f"{len(result.errors)} rule(s)"
        )
        if len(result.errors) > 1:
            first.context["other_violations"] = len(result.errors) - 1
        raise first
    return result.warnings
