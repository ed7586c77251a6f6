"""Entry point that runs every component's rules over a definition."""

from __future__ import annotations

from collections.abc import Callable

from .definition import Context
from .elemental_rules import ELEMENTAL_COMPONENT, validate_elemental
from .failures import FailedValidation
from .image_rules import IMAGE_COMPONENT, validate_image
from .kubernetes_rules import K8S_COMPONENT, validate_kubernetes
from .os_rules import OS_COMPONENT, validate_operating_system
from .registry_rules import REGISTRY_COMPONENT, validate_embedded_artifact_registry
from .version_rules import VERSION_COMPONENT, validate_version

Rule = Callable[[Context], list[FailedValidation]]

_COMPONENT_RULES: dict[str, Rule] = {
    VERSION_COMPONENT: validate_version,
    IMAGE_COMPONENT: validate_image,
    OS_COMPONENT: validate_operating_system,
    REGISTRY_COMPONENT: validate_embedded_artifact_registry,
    K8S_COMPONENT: validate_kubernetes,
    ELEMENTAL_COMPONENT: validate_elemental,
}


def validate_definition(ctx: Context) -> dict[str, list[FailedValidation]]:
    """Validate a definition; map each failing component to its failures."""
    results = {name: rule(ctx) for name, rule in _COMPONENT_RULES.items()}
    return {name: failures for name, failures in results.items() if failures}