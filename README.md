# eibvalidate

Checks an edge image definition before a build and reports every problem
found, grouped by the part of the definition it belongs to.

The definition is described with plain dataclasses (`Definition`, `Image`,
`OperatingSystem`, `Kubernetes`, `EmbeddedArtifactRegistry` and friends,
all in `eibvalidate.definition`). A `Context` pairs a definition with the
configuration directory that holds base images, side-loaded RPMs, Helm
values files, certificates, Kubernetes server config and the Elemental
configuration.

## Installing

```
pip install .
```

## Usage

```python
from eibvalidate.definition import Arch, Context, Definition, Image
from eibvalidate.validator import validate_definition

definition = Definition(
    api_version="1.1",
    image=Image(
        image_type="iso",
        arch=Arch.X86,
        base_image="base.iso",
        output_image_name="output.iso",
    ),
)
ctx = Context(image_config_dir="/path/to/config", image_definition=definition)

for component, failures in validate_definition(ctx).items():
    print(component)
    for failure in failures:
        print("  -", failure.user_message)
```

`validate_definition` returns a dictionary that maps a component name
("Image", "Operating System", "Artifact Registry", "Kubernetes",
"Elemental", "Version") to a list of `FailedValidation` entries. Components
with no problems are left out, so an empty dictionary means the definition
passed. Each `FailedValidation` (in `eibvalidate.failures`) has a
`user_message` and, where a file, address or URL could not be read or
parsed, the underlying `error`.

When the defined architecture differs from the host's, a warning is sent
through the standard `logging` module (logger `eibvalidate.image_rules`);
it is not reported as a failure.

The rules for each component can also be run on their own:

- `eibvalidate.image_rules.validate_image`
- `eibvalidate.version_rules.validate_version`
- `eibvalidate.registry_rules.validate_embedded_artifact_registry`
- `eibvalidate.os_rules.validate_operating_system`
- `eibvalidate.elemental_rules.validate_elemental`
- `eibvalidate.kubernetes_rules.validate_kubernetes`

The Kubernetes API VIP and server config checks (`node-ip`, `cluster-cidr`,
`service-cidr`) live in `eibvalidate.kubernetes_network`, for example
`validate_network` and `validate_networking_config`. Container image
references can be checked with `eibvalidate.registry_rules.parse_reference`,
which returns `(name, tag, digest)` or raises `ValueError`.

## Configuration directory layout

```
<config>/
  base-images/<baseImage>
  rpms/
  elemental/elemental_config.yaml
  kubernetes/config/server.yaml
  kubernetes/manifests/
  kubernetes/helm/values/
  kubernetes/helm/certs/
```

## What it does not do

The package only validates. It does not read an image definition file into
the dataclasses (build the `Definition` yourself), has no command-line
tool, and does not build images.

## Running the tests

```
pip install .[test]
pytest
```