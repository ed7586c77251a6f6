"""Rules for the Elemental configuration directory and its packages."""

from __future__ import annotations

import os
from collections.abc import Iterable

from .definition import ELEMENTAL_PACKAGES, Context, rpms_path
from .failures import FailedValidation

ELEMENTAL_COMPONENT = "Elemental"
ELEMENTAL_CONFIG_FILENAME = "elemental_config.yaml"


def _bracketed(items: Iterable[str]) -> str:
    return "[" + " ".join(items) + "]"


def validate_elemental(ctx: Context) -> list[FailedValidation]:
    """Validate the Elemental setup; nothing to check if its directory is absent."""
    directory = os.path.join(ctx.image_config_dir, "elemental")
    try:
        os.stat(directory)
    except FileNotFoundError:
        return []
    except OSError as err:
        return [FailedValidation("Elemental config directory could not be read", err)]

    return validate_elemental_configuration(ctx) + validate_elemental_dir(directory)


def validate_elemental_dir(directory: str) -> list[FailedValidation]:
    """Check the directory holds exactly the one expected config file."""
    try:
        with os.scandir(directory) as entries:
            names = [entry.name for entry in entries]
    except OSError as err:
        return [FailedValidation("Elemental config directory could not be read", err)]

    if not names:
        return [FailedValidation("Elemental config directory should not be present if it is empty")]
    if len(names) == 1:
        if names[0] != ELEMENTAL_CONFIG_FILENAME:
            return [
                FailedValidation(
                    f"Elemental config file should only be named `{ELEMENTAL_CONFIG_FILENAME}`"
                )
            ]
        return []
    return [
        FailedValidation(
            "Elemental config directory should only contain a singular "
            f"'{ELEMENTAL_CONFIG_FILENAME}' file"
        )
    ]


def validate_elemental_configuration(ctx: Context) -> list[FailedValidation]:
    """Check the Elemental RPMs are either all side-loaded or fetchable."""
    failures: list[FailedValidation] = []

    names: list[str] = []
    try:
        with os.scandir(rpms_path(ctx)) as entries:
            names = [entry.name for entry in entries]
    except FileNotFoundError:
        pass
    except OSError as err:
        failures.append(FailedValidation("RPM directory could not be read", err))

    found = [pkg for pkg in ELEMENTAL_PACKAGES if any(pkg in name for name in names)]
    missing = [pkg for pkg in ELEMENTAL_PACKAGES if pkg not in found]

    if not found:
        if not ctx.image_definition.operating_system.packages.reg_code:
            failures.append(
                FailedValidation(
                    "Operating system package registration code field must be defined when "
                    f"using Elemental or the {_bracketed(ELEMENTAL_PACKAGES)} RPMs must be "
                    "manually side-loaded"
                )
            )
    elif missing:
        failures.append(
            FailedValidation(
                "Not all of the necessary Elemental packages are provided, packages found: "
                f"{_bracketed(found)}, packages missing: {_bracketed(missing)}"
            )
        )

    return failures