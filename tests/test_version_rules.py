import pytest

from eibvalidate.definition import (
    Context,
    Definition,
    Helm,
    HelmChart,
    Kubernetes,
    Network,
    OperatingSystem,
)
from eibvalidate.version_rules import validate_version


def _with_api_versions(api_version):
    return Definition(
        api_version=api_version,
        kubernetes=Kubernetes(helm=Helm(charts=[HelmChart(api_versions=["1.30.3+k3s1"])])),
    )


CASES = {
    "valid version with Helm APIVersions": (_with_api_versions("1.1"), []),
    "invalid version with Helm APIVersions": (
        _with_api_versions("1.0"),
        [
            "Helm chart APIVersions field is not supported in EIB version 1.0, "
            "must use EIB version 1.1"
        ],
    ),
    "invalid version with FIPS enabled": (
        Definition(api_version="1.0", operating_system=OperatingSystem(enable_fips=True)),
        [
            "Automated FIPS configuration is not supported in EIB version 1.0, "
            "please use EIB version >= 1.1"
        ],
    ),
    "IPv6 VIP before 1.2": (
        Definition(
            api_version="1.1",
            kubernetes=Kubernetes(network=Network(api_vip6="fd12:3456:789a::21")),
        ),
        ["IPv6 support for the Kubernetes API VIP is only available in EIB version >= 1.2"],
    ),
    "IPv6 VIP with 1.2": (
        Definition(
            api_version="1.2",
            kubernetes=Kubernetes(network=Network(api_vip6="fd12:3456:789a::21")),
        ),
        [],
    ),
}


@pytest.mark.parametrize("name", list(CASES))
def test_validate_version(name):
    definition, expected = CASES[name]
    failures = validate_version(Context(image_definition=definition))
    messages = [failure.user_message for failure in failures]
    assert len(messages) == len(expected)
    for message in expected:
        assert message in messages