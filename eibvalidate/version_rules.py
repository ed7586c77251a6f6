"""Rules tying definition features to the definition's API version."""

from __future__ import annotations

from .definition import Context
from .failures import FailedValidation

VERSION_COMPONENT = "Version"


def validate_version(ctx: Context) -> list[FailedValidation]:
    """Reject features that the declared API version does not support."""
    definition = ctx.image_definition
    failures: list[FailedValidation] = []

    api_versions_defined = any(chart.api_versions for chart in definition.kubernetes.helm.charts)

    if definition.api_version == "1.0" and api_versions_defined:
        failures.append(
            FailedValidation(
                "Helm chart APIVersions field is not supported in EIB version 1.0, "
                "must use EIB version 1.1"
            )
        )

    if definition.api_version == "1.0" and definition.operating_system.enable_fips:
        failures.append(
            FailedValidation(
                "Automated FIPS configuration is not supported in EIB version 1.0, "
                "please use EIB version >= 1.1"
            )
        )

    if definition.api_version != "1.2" and definition.kubernetes.network.api_vip6:
        failures.append(
            FailedValidation(
                "IPv6 support for the Kubernetes API VIP is only available in EIB version >= 1.2"
            )
        )

    return failures