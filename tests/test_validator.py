import pytest

from eibvalidate.definition import (
    NODE_TYPE_AGENT,
    NODE_TYPE_SERVER,
    Arch,
    ContainerImage,
    Context,
    Definition,
    EmbeddedArtifactRegistry,
    Image,
    Kubernetes,
    Manifests,
    Network,
    Node,
    OperatingSystem,
)
from eibvalidate.validator import validate_definition

BASE_IMAGE = "fake-base.iso"


@pytest.fixture
def config_dir(tmp_path):
    images = tmp_path / "base-images"
    images.mkdir()
    (images / BASE_IMAGE).write_text("")
    return str(tmp_path)


def _messages_by_component(result):
    return {
        component: sorted(failure.user_message for failure in failures)
        for component, failures in result.items()
    }


def _valid_image():
    return Image(
        image_type="iso",
        arch=Arch.X86.value,
        base_image=BASE_IMAGE,
        output_image_name="output.iso",
    )


def test_minimal_valid_definition(config_dir):
    definition = Definition(api_version="1.1", image=_valid_image())
    ctx = Context(image_config_dir=config_dir, image_definition=definition)
    assert validate_definition(ctx) == {}


def test_invalid_in_each_component(config_dir):
    definition = Definition(
        api_version="1.1",
        image=Image(arch=Arch.X86.value, base_image=BASE_IMAGE, output_image_name="output.iso"),
        operating_system=OperatingSystem(kernel_args=["foo=", "fips=1"]),
        embedded_artifact_registry=EmbeddedArtifactRegistry(
            container_images=[ContainerImage(name="")]
        ),
        kubernetes=Kubernetes(
            network=Network(),
            nodes=[
                Node(hostname="host1", type=NODE_TYPE_SERVER),
                Node(hostname="host2", type=NODE_TYPE_AGENT),
            ],
        ),
    )
    ctx = Context(image_config_dir=config_dir, image_definition=definition)

    assert _messages_by_component(validate_definition(ctx)) == {
        "Image": ["The 'imageType' field is required in the 'image' section."],
        "Operating System": sorted(
            [
                "Kernel arguments must be specified as 'key=value'.",
                "FIPS mode has been specified via kernel arguments, please use the "
                "'enableFIPS: true' option instead.",
            ]
        ),
        "Artifact Registry": ["The 'name' field is required for each entry in 'images'."],
    }


def test_kubernetes_component_reported(config_dir):
    definition = Definition(
        api_version="1.1",
        image=_valid_image(),
        kubernetes=Kubernetes(manifests=Manifests(urls=["https://example.com/a.yaml"])),
    )
    ctx = Context(image_config_dir=config_dir, image_definition=definition)
    assert _messages_by_component(validate_definition(ctx)) == {
        "Kubernetes": ["Kubernetes version must be defined when manifest URLs are specified"]
    }


def test_version_and_elemental_components_reported(config_dir, tmp_path):
    (tmp_path / "elemental").mkdir()
    definition = Definition(
        api_version="1.0",
        image=_valid_image(),
        operating_system=OperatingSystem(enable_fips=True),
    )
    definition.operating_system.packages.reg_code = "registration-code"
    ctx = Context(image_config_dir=config_dir, image_definition=definition)

    result = _messages_by_component(validate_definition(ctx))
    assert result == {
        "Version": [
            "Automated FIPS configuration is not supported in EIB version 1.0, "
            "please use EIB version >= 1.1"
        ],
        "Elemental": ["Elemental config directory should not be present if it is empty"],
    }