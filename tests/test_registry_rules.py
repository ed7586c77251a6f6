import pytest

from eibvalidate.definition import (
    ContainerImage,
    Context,
    Definition,
    EmbeddedArtifactRegistry,
    Registry,
    RegistryAuthentication,
)
from eibvalidate.registry_rules import (
    parse_reference,
    validate_container_images,
    validate_credentials,
    validate_embedded_artifact_registry,
    validate_registries,
    validate_urls,
)

PASSWORD = "password"

USERNAME_MISSING = (
    "The 'username' field is required for each entry in "
    "'embeddedArtifactRegistry.registries.credentials'."
)
SECOND_CREDENTIAL_MISSING = (
    "The 'password' field is required for each entry in "
    "'embeddedArtifactRegistry.registries.credentials'."
)
NAME_MISSING = "The 'name' field is required for each entry in 'images'."


def _auth(username):
    return RegistryAuthentication(username=username, password=PASSWORD)


def _messages(failures):
    return [failure.user_message for failure in failures]


def _check(failures, expected):
    messages = _messages(failures)
    assert len(messages) == len(expected)
    for message in expected:
        assert message in messages


EAR_CASES = {
    "no registry": (EmbeddedArtifactRegistry(), []),
    "full valid example": (
        EmbeddedArtifactRegistry(
            container_images=[ContainerImage(name="foo")],
            registries=[
                Registry(uri="docker.io", authentication=_auth("user")),
                Registry(uri="192.168.1.100:5000", authentication=_auth("user2")),
            ],
        ),
        [],
    ),
    "image definition failure": (
        EmbeddedArtifactRegistry(container_images=[ContainerImage(name="")]),
        [NAME_MISSING],
    ),
}


@pytest.mark.parametrize("name", list(EAR_CASES))
def test_validate_embedded_artifact_registry(name):
    registry, expected = EAR_CASES[name]
    ctx = Context(image_definition=Definition(embedded_artifact_registry=registry))
    _check(validate_embedded_artifact_registry(ctx), expected)


IMAGE_CASES = {
    "no images": (EmbeddedArtifactRegistry(), []),
    "missing name": (
        EmbeddedArtifactRegistry(
            container_images=[ContainerImage(name="valid"), ContainerImage(name="")]
        ),
        [NAME_MISSING],
    ),
    "duplicate name": (
        EmbeddedArtifactRegistry(
            container_images=[
                ContainerImage(name="foo"),
                ContainerImage(name="bar"),
                ContainerImage(name="foo"),
                ContainerImage(name="baz"),
                ContainerImage(name="bar"),
            ]
        ),
        [
            "Duplicate image name 'foo' found in the 'images' section.",
            "Duplicate image name 'bar' found in the 'images' section.",
        ],
    ),
}


@pytest.mark.parametrize("name", list(IMAGE_CASES))
def test_validate_container_images(name):
    registry, expected = IMAGE_CASES[name]
    _check(validate_container_images(registry), expected)


REGISTRY_CASES = {
    "no authentication": (EmbeddedArtifactRegistry(), []),
    "URI no credentials": (
        EmbeddedArtifactRegistry(registries=[Registry(uri="docker.io")]),
        [USERNAME_MISSING, SECOND_CREDENTIAL_MISSING],
    ),
    "credentials missing username": (
        EmbeddedArtifactRegistry(
            registries=[
                Registry(
                    uri="docker.io",
                    authentication=RegistryAuthentication(password=PASSWORD),
                )
            ]
        ),
        [USERNAME_MISSING],
    ),
    "credentials missing second field": (
        EmbeddedArtifactRegistry(
            registries=[
                Registry(
                    uri="docker.io",
                    authentication=RegistryAuthentication(username="user"),
                )
            ]
        ),
        [SECOND_CREDENTIAL_MISSING],
    ),
    "credentials duplicate URI": (
        EmbeddedArtifactRegistry(
            registries=[
                Registry(uri="docker.io", authentication=_auth("user")),
                Registry(uri="docker.io", authentication=_auth("user2")),
            ]
        ),
        [
            "Duplicate registry URI 'docker.io' found in the "
            "'embeddedArtifactRegistry.registries' section."
        ],
    ),
    "invalid registry URI": (
        EmbeddedArtifactRegistry(
            registries=[
                Registry(uri="docker...io", authentication=_auth("user")),
                Registry(uri="/docker.io/images", authentication=_auth("user")),
                Registry(uri="https://docker.io/images", authentication=_auth("user")),
            ]
        ),
        [
            "Embedded artifact registry URI 'docker...io' could not be parsed.",
            "Embedded artifact registry URI '/docker.io/images' could not be parsed.",
            "Embedded artifact registry URI 'https://docker.io/images' could not be parsed.",
        ],
    ),
}


@pytest.mark.parametrize("name", list(REGISTRY_CASES))
def test_validate_registries(name):
    registry, expected = REGISTRY_CASES[name]
    _check(validate_registries(registry), expected)


def test_validate_urls_empty_uri_reports_required_and_unparsable():
    failures = validate_urls(EmbeddedArtifactRegistry(registries=[Registry(uri="")]))
    messages = _messages(failures)
    assert messages == [
        "The 'uri' field is required for each entry in 'embeddedArtifactRegistry.registries'.",
        "Embedded artifact registry URI '' could not be parsed.",
    ]
    assert isinstance(failures[1].error, ValueError)


def test_validate_credentials_checks_every_registry():
    registry = EmbeddedArtifactRegistry(
        registries=[Registry(uri="docker.io"), Registry(uri="quay.io")]
    )
    assert len(validate_credentials(registry)) == 4


def test_parse_reference_with_port_as_tag():
    assert parse_reference("192.168.1.100:5000") == ("192.168.1.100", "5000", None)


def test_parse_reference_plain_name():
    assert parse_reference("docker.io") == ("docker.io", None, None)


@pytest.mark.parametrize(
    "uri", ["", "docker...io", "/docker.io/images", "https://docker.io/images", "Docker.io/Images"]
)
def test_parse_reference_invalid(uri):
    with pytest.raises(ValueError):
        parse_reference(uri)


def test_parse_reference_too_long():
    with pytest.raises(ValueError):
        parse_reference("a" * 256)


def test_parse_reference_bad_digest():
    with pytest.raises(ValueError):
        parse_reference("docker.io/image@sha256:" + "a" * 32)
    name, tag, digest = parse_reference("docker.io/image@sha256:" + "a" * 64)
    assert name == "docker.io/image"
    assert tag is None
    assert digest == "sha256:" + "a" * 64