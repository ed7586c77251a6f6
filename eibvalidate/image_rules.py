"""Rules for the 'image' section of a definition."""

from __future__ import annotations

import logging
import os
import platform

from .definition import TYPE_ISO, TYPE_RAW, Arch, Context, Definition, arch_short
from .failures import FailedValidation

IMAGE_COMPONENT = "Image"

logger = logging.getLogger(__name__)

_HOST_ARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def _host_arch() -> str:
    machine = platform.machine().lower()
    return _HOST_ARCH.get(machine, machine)


def validate_image(ctx: Context) -> list[FailedValidation]:
    """Check image type, output name and base image of the definition."""
    image = ctx.image_definition.image
    valid_types = [TYPE_ISO, TYPE_RAW]

    failures = validate_arch(ctx.image_definition)

    if not image.image_type:
        failures.append(
            FailedValidation("The 'imageType' field is required in the 'image' section.")
        )
    elif image.image_type not in valid_types:
        failures.append(
            FailedValidation(f"The 'imageType' field must be one of: {', '.join(valid_types)}")
        )

    if not image.output_image_name:
        failures.append(
            FailedValidation("The 'outputImageName' field is required in the 'image' section.")
        )

    if not image.base_image:
        failures.append(
            FailedValidation("The 'baseImage' field is required in the 'image' section.")
        )
    else:
        path = os.path.join(ctx.image_config_dir, "base-images", image.base_image)
        try:
            os.stat(path)
        except FileNotFoundError:
            failures.append(
                FailedValidation(
                    f"The specified base image '{image.base_image}' cannot be found."
                )
            )
        except OSError as err:
            failures.append(
                FailedValidation(
                    f"The specified base image '{image.base_image}' cannot be read. "
                    "See the logs for more information.",
                    err,
                )
            )

    return failures


def validate_arch(definition: Definition) -> list[FailedValidation]:
    """Check that the architecture is set and known; warn on host mismatch."""
    arch = getattr(definition.image.arch, "value", definition.image.arch)
    valid_arches = [Arch.ARM.value, Arch.X86.value]

    if not arch:
        return [FailedValidation("The 'arch' field is required in the 'image' section.")]
    if arch not in valid_arches:
        return [FailedValidation(f"The 'arch' field must be one of: {', '.join(valid_arches)}")]

    host = _host_arch()
    defined = arch_short(arch)
    if host != defined:
        logger.warning(
            "Image build may fail as host architecture does not match the defined "
            "architecture of the output image.\nDetected: %s, Defined: %s",
            host,
            defined,
        )

    return []