"""Rules for the embedded artifact registry section of a definition."""

from __future__ import annotations

import re

from .definition import Context, EmbeddedArtifactRegistry
from .failures import FailedValidation

REGISTRY_COMPONENT = "Artifact Registry"

_NAME_TOTAL_LENGTH_MAX = 255

_ALPHA_NUMERIC = r"[a-z0-9]+"
_SEPARATOR = r"(?:[._]|__|[-]+)"
_NAME_COMPONENT = rf"{_ALPHA_NUMERIC}(?:{_SEPARATOR}{_ALPHA_NUMERIC})*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = rf"{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?"
_NAME = rf"(?:{_DOMAIN}/)?{_NAME_COMPONENT}(?:/{_NAME_COMPONENT})*"
_TAG = r"[\w][\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

_REFERENCE = re.compile(rf"({_NAME})(?::({_TAG}))?(?:@({_DIGEST}))?", re.ASCII)

_DIGEST_LENGTHS = {"sha256": 64, "sha384": 96, "sha512": 128}


def _check_digest(digest: str) -> None:
    algorithm, _, encoded = digest.partition(":")
    length = _DIGEST_LENGTHS.get(algorithm)
    if length is None:
        raise ValueError(f"unsupported digest algorithm: {algorithm}")
    if re.fullmatch(rf"[a-f0-9]{{{length}}}", encoded) is None:
        raise ValueError("invalid checksum digest length or format")


def parse_reference(uri: str) -> tuple[str, str | None, str | None]:
    """Parse a container image reference into (name, tag, digest).

    Raises ValueError when the reference does not follow the reference grammar.
    """
    match = _REFERENCE.fullmatch(uri)
    if match is None:
        if not uri:
            raise ValueError("repository name must have at least one component")
        if _REFERENCE.fullmatch(uri.lower()) is not None:
            raise ValueError("repository name must be lowercase")
        raise ValueError("invalid reference format")

    name, tag, digest = match.groups()
    if len(name) > _NAME_TOTAL_LENGTH_MAX:
        raise ValueError(
            f"repository name must not be more than {_NAME_TOTAL_LENGTH_MAX} characters"
        )
    if digest is not None:
        _check_digest(digest)
    return name, tag, digest


def validate_embedded_artifact_registry(ctx: Context) -> list[FailedValidation]:
    registry = ctx.image_definition.embedded_artifact_registry
    return validate_registries(registry) + validate_container_images(registry)


def validate_container_images(registry: EmbeddedArtifactRegistry) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for container_image in registry.container_images:
        if not container_image.name:
            failures.append(
                FailedValidation("The 'name' field is required for each entry in 'images'.")
            )
        if container_image.name in seen:
            failures.append(
                FailedValidation(
                    f"Duplicate image name '{container_image.name}' found in the 'images' section."
                )
            )
        seen.add(container_image.name)
    return failures


def validate_registries(registry: EmbeddedArtifactRegistry) -> list[FailedValidation]:
    return validate_urls(registry) + validate_credentials(registry)


def validate_urls(registry: EmbeddedArtifactRegistry) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for entry in registry.registries:
        if not entry.uri:
            failures.append(
                FailedValidation(
                    "The 'uri' field is required for each entry in "
                    "'embeddedArtifactRegistry.registries'."
                )
            )

        try:
            parse_reference(entry.uri)
        except ValueError as err:
            failures.append(
                FailedValidation(
                    f"Embedded artifact registry URI '{entry.uri}' could not be parsed.", err
                )
            )
            continue

        if entry.uri in seen:
            failures.append(
                FailedValidation(
                    f"Duplicate registry URI '{entry.uri}' found in the "
                    "'embeddedArtifactRegistry.registries' section."
                )
            )
        seen.add(entry.uri)
    return failures


def validate_credentials(registry: EmbeddedArtifactRegistry) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    for entry in registry.registries:
        if not entry.authentication.username:
            failures.append(
                FailedValidation(
                    "The 'username' field is required for each entry in "
                    "'embeddedArtifactRegistry.registries.credentials'."
                )
            )
        if not entry.authentication.password:
            failures.append(
                FailedValidation(
                    "The 'password' field is required for each entry in "
                    "'embeddedArtifactRegistry.registries.credentials'."
                )
            )
    return failures