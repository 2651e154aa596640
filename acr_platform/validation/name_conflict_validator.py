"""Name conflict reporting for derived scope resources.

``resolve_scope_resources`` stops at the first collision; this module walks
the whole derivation and reports every name claimed more than once, so a
caller can fix a request in one pass.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from ..models import ScopeResource

logger = logging.getLogger(__name__)


@dataclass
class NameConflict:
    """A derived name claimed by more than one team/environment pair.

    Attributes:
        name: The colliding scope map name
        owners: ``team/environment`` labels claiming the name, in derivation order
    """

    name: str
    owners: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Human-readable conflict description."""
        return f"{self.name} (claimed by {', '.join(self.owners)})"


@dataclass
class NameValidationResult:
    """Result of name conflict detection.

    Attributes:
        conflicts: Detected name conflicts, in first-seen order
        resources_checked: Number of derived resources inspected
    """

    conflicts: List[NameConflict] = field(default_factory=list)
    resources_checked: int = 0

    @property
    def has_conflicts(self) -> bool:
        """Check if any conflicts were detected."""
        return len(self.conflicts) > 0


def find_name_conflicts(resources: Iterable[ScopeResource]) -> NameValidationResult:
    """Collect every scope map name claimed by more than one derived resource."""
    result = NameValidationResult()
    owners: dict[str, List[str]] = {}

    for resource in resources:
        result.resources_checked += 1
        owners.setdefault(resource.scope_map_name, []).append(
            f"{resource.team}/{resource.environment}"
        )

    for name, claimed_by in owners.items():
        if len(claimed_by) > 1:
            result.conflicts.append(NameConflict(name=name, owners=claimed_by))

    if result.has_conflicts:
        logger.info(
            f"Found {len(result.conflicts)} name conflicts in "
            f"{result.resources_checked} derived resources"
        )
    return result
