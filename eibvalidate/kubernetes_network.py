"""Rules for the Kubernetes API addresses and the server's networking config."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable, Mapping
from typing import Any, Union

import yaml

from .definition import Kubernetes, servers_count
from .failures import FailedValidation

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
AddressParser = Callable[[str], Address]

_PREFIX_BITS = re.compile(r"0|[1-9][0-9]*")
_MAX_BITS = {4: 32, 6: 128}


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_addr(text: str) -> Address:
    """Parse a single IP address, IPv6 zones allowed."""
    return ipaddress.ip_address(text)


def _parse_prefix_addr(text: str) -> Address:
    """Parse 'address/bits' and return the address exactly as written."""
    address_text, separator, bits_text = text.rpartition("/")
    if not separator:
        raise ValueError(f"no '/' in prefix {text!r}")
    if "%" in address_text:
        raise ValueError(f"IPv6 zones cannot be present in a prefix: {text!r}")
    address = ipaddress.ip_address(address_text)
    if _PREFIX_BITS.fullmatch(bits_text) is None:
        raise ValueError(f"bad bits after slash: {bits_text!r}")
    if int(bits_text) > _MAX_BITS[address.version]:
        raise ValueError(f"prefix length out of range: {text!r}")
    return address


def _is_global_unicast(address: Address) -> bool:
    if address.version == 6 and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    number = int(address)
    if address.version == 4:
        return not (
            number in (0, 0xFFFFFFFF)
            or number >> 24 == 127  # loopback
            or number >> 28 == 0xE  # multicast
            or number >> 16 == 0xA9FE  # link-local
        )
    return not (
        number in (0, 1)  # unspecified, loopback
        or number >> 120 == 0xFF  # multicast
        or number >> 118 == 0x3FA  # link-local fe80::/10
    )


def is_dual_stack_configured(k8s: Kubernetes) -> bool:
    """Tell whether both an IPv4 and an IPv6 API VIP are set."""
    return bool(k8s.network.api_vip4) and bool(k8s.network.api_vip6)


def _check_vip(value: str, field: str, version: int) -> tuple[list[FailedValidation], bool]:
    """Check one API VIP; the flag says whether parsing failed."""
    try:
        address = _parse_addr(value)
    except ValueError as err:
        return [
            FailedValidation(f"Invalid address value {_quote(value)} for field '{field}'.", err)
        ], True

    failures: list[FailedValidation] = []
    if address.version != version:
        failures.append(
            FailedValidation(f"Only IPv{version} addresses are valid for field '{field}'.")
        )
    if not _is_global_unicast(address):
        failures.append(
            FailedValidation(
                f"Non-unicast cluster API address ({value}) for field '{field}' is invalid."
            )
        )
    return failures, False


def validate_network(k8s: Kubernetes) -> list[FailedValidation]:
    """Check the cluster API virtual IP addresses."""
    network = k8s.network
    if not network.api_vip4 and not network.api_vip6:
        if len(k8s.nodes) > 1:
            return [
                FailedValidation(
                    "At least one of the (`apiVIP`, `apiVIP6`) fields is required in the "
                    "'network' section for multi node clusters."
                )
            ]
        return []

    failures: list[FailedValidation] = []
    for value, field, version in (
        (network.api_vip4, "apiVIP", 4),
        (network.api_vip6, "apiVIP6", 6),
    ):
        if not value:
            continue
        found, unparsable = _check_vip(value, field, version)
        failures.extend(found)
        if unparsable:
            return failures
    return failures


def validate_networking_config(k8s: Kubernetes, config_path: str) -> list[FailedValidation]:
    """Check the node IP and CIDR settings of the Kubernetes server config file."""
    try:
        with open(config_path, "rb") as handle:
            content = handle.read()
    except FileNotFoundError:
        if is_dual_stack_configured(k8s):
            return [
                FailedValidation(
                    f"Kubernetes server config could not be found at '{config_path}'; "
                    "dual-stack configuration requires a valid cluster-cidr and service-cidr."
                )
            ]
        return []
    except OSError as err:
        return [FailedValidation("Kubernetes server config could not be read", err)]

    try:
        server_config = yaml.safe_load(content)
    except yaml.YAMLError as err:
        return [FailedValidation("Parsing kubernetes server config file failed", err)]

    if server_config is None:
        server_config = {}
    if not isinstance(server_config, dict):
        return [
            FailedValidation(
                "Parsing kubernetes server config file failed",
                ValueError("server config is not a mapping"),
            )
        ]

    return validate_node_ip(k8s, server_config) + validate_cidr_config(k8s, server_config)


def validate_cidr_config(
    k8s: Kubernetes, server_config: Mapping[str, Any]
) -> list[FailedValidation]:
    """Check cluster-cidr and service-cidr, and that both favour the same family."""
    failures: list[FailedValidation] = []

    cluster_priority, found = validate_cidrs(
        k8s, parse_cidrs(server_config, "cluster-cidr"), "cluster-cidr"
    )
    failures.extend(found)

    service_priority, found = validate_cidrs(
        k8s, parse_cidrs(server_config, "service-cidr"), "service-cidr"
    )
    failures.extend(found)

    if (
        cluster_priority is not None
        and service_priority is not None
        and cluster_priority != service_priority
    ):
        failures.append(
            FailedValidation(
                "Kubernetes server config cluster-cidr cannot prioritize one address family "
                "while service-cidr prioritizes another; both must have the same priority"
            )
        )
    return failures


def parse_cidrs(server_config: Mapping[str, Any], field: str) -> list[str]:
    """Split a comma separated CIDR setting; empty if absent or not a string."""
    value = server_config.get(field)
    if isinstance(value, str):
        return value.split(",")
    return []


def validate_cidrs(
    k8s: Kubernetes, cidrs: list[str], field: str
) -> tuple[bool | None, list[FailedValidation]]:
    """Check a CIDR list; return whether IPv6 comes first (None if undetermined)."""
    if is_dual_stack_configured(k8s) and len(cidrs) != 2:
        return None, [
            FailedValidation(
                f"Kubernetes server config must contain a valid {field} "
                "when configuring dual-stack"
            )
        ]
    if not cidrs:
        return None, []
    if len(cidrs) > 2:
        return None, [
            FailedValidation(
                f"Kubernetes server config {field} cannot contain more than two addresses"
            )
        ]

    failures: list[FailedValidation] = []
    first, found = validate_ip(cidrs[0], field, _parse_prefix_addr)
    if found:
        return None, found

    if len(cidrs) == 2:
        second, found = validate_ip(cidrs[1], field, _parse_prefix_addr)
        if found:
            return None, found
        if first.version == second.version:
            failures.append(
                FailedValidation(
                    f"Kubernetes server config {field} cannot contain addresses of the same "
                    "IP address family; one must be IPv4, and the other IPv6"
                )
            )

    return first.version == 6, failures


def validate_node_ip(
    k8s: Kubernetes, server_config: Mapping[str, Any]
) -> list[FailedValidation]:
    """Check the node-ip setting of the server config."""
    field = "node-ip"
    value = server_config.get(field)
    if not isinstance(value, str):
        return []
    node_ips = value.split(",")

    if servers_count(k8s.nodes) > 1:
        return [
            FailedValidation(
                f"Kubernetes server config {field} can not be specified when there is more "
                "than one Kubernetes server node"
            )
        ]

    if len(node_ips) == 1:
        _, found = validate_ip(node_ips[0], field, _parse_addr)
        return found

    if len(node_ips) == 2:
        first, found = validate_ip(node_ips[0], field, _parse_addr)
        if found:
            return found
        second, found = validate_ip(node_ips[1], field, _parse_addr)
        if found:
            return found
        if first.version == second.version:
            return [
                FailedValidation(
                    f"Kubernetes server config {field} cannot contain addresses of the same "
                    "IP address family; one must be IPv4, and the other IPv6"
                )
            ]
        return []

    return [
        FailedValidation(
            f"Kubernetes server config {field} cannot contain more than two addresses"
        )
    ]


def validate_ip(
    ip: str, field: str, parse_address: AddressParser
) -> tuple[Address | None, list[FailedValidation]]:
    """Parse an address with the given parser and require it to be global unicast."""
    try:
        address = parse_address(ip)
    except ValueError as err:
        return None, [
            FailedValidation(
                f"Kubernetes server config {field} value '{ip}' could not be parsed", err
            )
        ]

    if not _is_global_unicast(address):
        return address, [
            FailedValidation(
                f"Kubernetes server config {field} value '{ip}' must be a valid unicast address"
            )
        ]
    return address, []