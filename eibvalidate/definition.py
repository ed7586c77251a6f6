"""Image definition model and the config-directory layout it is read against."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum

TYPE_ISO = "iso"
TYPE_RAW = "raw"

NODE_TYPE_SERVER = "server"
NODE_TYPE_AGENT = "agent"

ELEMENTAL_PACKAGES = ("elemental-register", "elemental-system-agent")

_DISK_SIZE = re.compile(r"[1-9][0-9]*[MGT]")


class Arch(str, Enum):
    """Architectures an output image can be built for."""

    ARM = "aarch64"
    X86 = "x86_64"


_SHORT_ARCH = {Arch.ARM: "arm64", Arch.X86: "amd64"}


def arch_short(arch: Arch | str) -> str:
    """Return the short platform name for an architecture (e.g. amd64)."""
    try:
        return _SHORT_ARCH[Arch(arch)]
    except ValueError:
        raise ValueError(f"unknown architecture: {arch!r}") from None


def disk_size_is_valid(value: str) -> bool:
    """Tell whether a disk size is an integer followed by M, G or T."""
    return _DISK_SIZE.fullmatch(value) is not None


@dataclass
class Image:
    image_type: str = ""
    arch: str = ""
    base_image: str = ""
    output_image_name: str = ""


@dataclass
class AddRepo:
    url: str = ""
    unsigned: bool = False
    priority: int = 0


@dataclass
class Packages:
    pkg_list: list[str] = field(default_factory=list)
    additional_repos: list[AddRepo] = field(default_factory=list)
    reg_code: str = ""


@dataclass
class Suma:
    host: str = ""
    activation_key: str = ""


@dataclass
class User:
    username: str = ""
    encrypted_password: str = ""
    ssh_keys: list[str] = field(default_factory=list)
    create_home_dir: bool = False


@dataclass
class Group:
    name: str = ""


@dataclass
class Systemd:
    enable: list[str] = field(default_factory=list)
    disable: list[str] = field(default_factory=list)


@dataclass
class NtpConfiguration:
    force_wait: bool = False
    pools: list[str] = field(default_factory=list)
    servers: list[str] = field(default_factory=list)


@dataclass
class TimeConfig:
    ntp_configuration: NtpConfiguration = field(default_factory=NtpConfiguration)


@dataclass
class IsoConfiguration:
    install_device: str = ""


@dataclass
class RawConfiguration:
    disk_size: str = ""
    luks_key: str = ""
    expand_encrypted_partition: bool = False


@dataclass
class OperatingSystem:
    kernel_args: list[str] = field(default_factory=list)
    groups: list[Group] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    systemd: Systemd = field(default_factory=Systemd)
    suma: Suma = field(default_factory=Suma)
    packages: Packages = field(default_factory=Packages)
    time: TimeConfig = field(default_factory=TimeConfig)
    enable_fips: bool = False
    iso_configuration: IsoConfiguration = field(default_factory=IsoConfiguration)
    raw_configuration: RawConfiguration = field(default_factory=RawConfiguration)


@dataclass
class ContainerImage:
    name: str = ""


@dataclass
class RegistryAuthentication:
    username: str = ""
    password: str = ""


@dataclass
class Registry:
    uri: str = ""
    authentication: RegistryAuthentication = field(default_factory=RegistryAuthentication)


@dataclass
class EmbeddedArtifactRegistry:
    container_images: list[ContainerImage] = field(default_factory=list)
    registries: list[Registry] = field(default_factory=list)


@dataclass
class Network:
    api_host: str = ""
    api_vip4: str = ""
    api_vip6: str = ""


@dataclass
class Node:
    hostname: str = ""
    type: str = ""
    initialiser: bool = False


@dataclass
class Manifests:
    urls: list[str] = field(default_factory=list)


@dataclass
class HelmAuthentication:
    username: str = ""
    password: str = ""


@dataclass
class HelmRepository:
    name: str = ""
    url: str = ""
    authentication: HelmAuthentication = field(default_factory=HelmAuthentication)
    skip_tls_verify: bool = False
    plain_http: bool = False
    ca_file: str = ""


@dataclass
class HelmChart:
    name: str = ""
    repository_name: str = ""
    version: str = ""
    installation_namespace: str = ""
    create_namespace: bool = False
    target_namespace: str = ""
    values_file: str = ""
    release_name: str = ""
    api_versions: list[str] = field(default_factory=list)


@dataclass
class Helm:
    charts: list[HelmChart] = field(default_factory=list)
    repositories: list[HelmRepository] = field(default_factory=list)


@dataclass
class Kubernetes:
    version: str = ""
    network: Network = field(default_factory=Network)
    nodes: list[Node] = field(default_factory=list)
    manifests: Manifests = field(default_factory=Manifests)
    helm: Helm = field(default_factory=Helm)


@dataclass
class Definition:
    api_version: str = ""
    image: Image = field(default_factory=Image)
    operating_system: OperatingSystem = field(default_factory=OperatingSystem)
    embedded_artifact_registry: EmbeddedArtifactRegistry = field(
        default_factory=EmbeddedArtifactRegistry
    )
    kubernetes: Kubernetes = field(default_factory=Kubernetes)


@dataclass
class Context:
    """An image definition together with the directory its files live in."""

    image_config_dir: str = ""
    image_definition: Definition = field(default_factory=Definition)


def servers_count(nodes: list[Node]) -> int:
    """Count the nodes of type server."""
    return sum(1 for node in nodes if node.type == NODE_TYPE_SERVER)


def rpms_path(ctx: Context) -> str:
    return os.path.join(ctx.image_config_dir, "rpms")


def kubernetes_config_path(ctx: Context) -> str:
    return os.path.join(ctx.image_config_dir, "kubernetes", "config", "server.yaml")


def kubernetes_manifests_path(ctx: Context) -> str:
    return os.path.join(ctx.image_config_dir, "kubernetes", "manifests")


def helm_values_path(ctx: Context) -> str:
    return os.path.join(ctx.image_config_dir, "kubernetes", "helm", "values")


def helm_certs_path(ctx: Context) -> str:
    return os.path.join(ctx.image_config_dir, "kubernetes", "helm", "certs")