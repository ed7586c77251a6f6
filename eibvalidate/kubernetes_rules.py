"""Rules for the 'kubernetes' section: nodes, manifests and Helm."""

from __future__ import annotations

import os
from collections.abc import Collection, Iterable
from urllib.parse import SplitResult, urlsplit

from .definition import (
    NODE_TYPE_AGENT,
    NODE_TYPE_SERVER,
    Context,
    HelmChart,
    HelmRepository,
    Kubernetes,
    helm_certs_path,
    helm_values_path,
    kubernetes_config_path,
    kubernetes_manifests_path,
)
from .failures import FailedValidation, find_duplicates
from .kubernetes_network import validate_network, validate_networking_config

K8S_COMPONENT = "Kubernetes"

HTTP_SCHEME = "http"
HTTPS_SCHEME = "https"
OCI_SCHEME = "oci"

VALID_NODE_TYPES = (NODE_TYPE_SERVER, NODE_TYPE_AGENT)
VALID_CERT_EXTENSIONS = (".pem", ".crt", ".cer")
VALID_VALUES_EXTENSIONS = (".yaml", ".yml")


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _extension(path: str) -> str:
    """Return the extension of the last path element, leading dot included."""
    base = path.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _parse_url(raw: str) -> SplitResult:
    """Split a URL, raising ValueError where it cannot be parsed."""
    if any(ord(char) < 0x20 or ord(char) == 0x7F for char in raw):
        raise ValueError("invalid control character in URL")
    parsed = urlsplit(raw)
    parsed.port  # raises ValueError on a malformed port
    return parsed


def _check_file(path: str, not_found: str, unreadable: str) -> list[FailedValidation]:
    try:
        os.stat(path)
    except FileNotFoundError:
        return [FailedValidation(not_found)]
    except OSError as err:
        return [FailedValidation(unreadable, err)]
    return []


def validate_kubernetes(ctx: Context) -> list[FailedValidation]:
    """Run every Kubernetes rule against the definition."""
    k8s = ctx.image_definition.kubernetes

    if not is_kubernetes_defined(k8s):
        return validate_additional_artifacts(ctx)

    return [
        *validate_networking_config(k8s, kubernetes_config_path(ctx)),
        *validate_network(k8s),
        *validate_nodes(k8s),
        *validate_manifest_urls(k8s),
        *validate_helm(k8s, helm_values_path(ctx), helm_certs_path(ctx)),
    ]


def is_kubernetes_defined(k8s: Kubernetes) -> bool:
    """Kubernetes counts as configured once a version is given."""
    return bool(k8s.version)


def validate_nodes(k8s: Kubernetes) -> list[FailedValidation]:
    failures: list[FailedValidation] = []

    # A single node cluster needs no node configuration.
    if len(k8s.nodes) <= 1:
        return failures

    initialisers = 0
    for node in k8s.nodes:
        if not node.hostname:
            failures.append(
                FailedValidation(
                    "The 'hostname' field is required for entries in the 'nodes' section."
                )
            )

        if node.type not in VALID_NODE_TYPES:
            failures.append(
                FailedValidation(
                    "The 'type' field for entries in the 'nodes' section must be one of: "
                    f"{', '.join(VALID_NODE_TYPES)}"
                )
            )

        if node.initialiser:
            initialisers += 1
            if node.type == NODE_TYPE_AGENT:
                failures.append(
                    FailedValidation(
                        "The node labeled with 'initialiser' must be of type "
                        f"'{NODE_TYPE_SERVER}'."
                    )
                )

    duplicates = find_duplicates(node.hostname for node in k8s.nodes)
    if duplicates:
        failures.append(
            FailedValidation(
                f"The 'nodes' section contains duplicate entries: {', '.join(duplicates)}"
            )
        )

    if not any(node.type == NODE_TYPE_SERVER for node in k8s.nodes):
        failures.append(
            FailedValidation(
                f"There must be at least one node of type '{NODE_TYPE_SERVER}' defined."
            )
        )

    if initialisers > 1:
        failures.append(
            FailedValidation("Only one node may be specified as the cluster initializer.")
        )

    return failures


def validate_manifest_urls(k8s: Kubernetes) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for manifest in k8s.manifests.urls:
        if not manifest.startswith("http"):
            failures.append(
                FailedValidation(
                    "Entries in 'urls' must begin with either 'http://' or 'https://'."
                )
            )
        if manifest in seen:
            failures.append(
                FailedValidation(f"The 'urls' field contains duplicate entries: {manifest}")
            )
        seen.add(manifest)
    return failures


def validate_helm(k8s: Kubernetes, values_dir: str, certs_dir: str) -> list[FailedValidation]:
    """Check Helm charts and repositories and how they refer to one another."""
    helm = k8s.helm
    if not helm.charts:
        return []

    if not helm.repositories:
        return [FailedValidation("Helm charts defined with no Helm repositories defined.")]

    repository_names = [repo.name for repo in helm.repositories]

    failures = validate_helm_chart_duplicates(helm.charts)

    seen_repos: set[str] = set()
    for chart in helm.charts:
        failures.extend(validate_chart(chart, repository_names, values_dir))
        seen_repos.add(chart.repository_name)

    for repo in helm.repositories:
        failures.extend(validate_repo(repo, seen_repos, certs_dir))

    return failures


def validate_chart(
    chart: HelmChart, repository_names: Collection[str], values_dir: str
) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    name = _quote(chart.name)

    if not chart.name:
        failures.append(FailedValidation("Helm chart 'name' field must be defined."))

    if not chart.repository_name:
        failures.append(
            FailedValidation(f"Helm chart 'repositoryName' field for {name} must be defined.")
        )
    elif chart.repository_name not in repository_names:
        failures.append(
            FailedValidation(
                f"Helm chart 'repositoryName' {_quote(chart.repository_name)} for Helm chart "
                f"{name} does not match the name of any defined repository."
            )
        )

    if not chart.version:
        failures.append(
            FailedValidation(f"Helm chart 'version' field for {name} field must be defined.")
        )

    if chart.create_namespace and not chart.target_namespace:
        failures.append(
            FailedValidation(
                f"Helm chart 'createNamespace' field for {name} cannot be true without "
                "'targetNamespace' being defined."
            )
        )

    failures.extend(validate_helm_chart_values(chart.name, chart.values_file, values_dir))
    return failures


def validate_repo(
    repo: HelmRepository, seen_repos: Collection[str], certs_dir: str
) -> list[FailedValidation]:
    try:
        parsed_url = _parse_url(repo.url)
    except ValueError as err:
        return [
            FailedValidation(f"Helm repository URL '{repo.url}' could not be parsed.", err)
        ]

    return [
        *validate_helm_repo_name(repo, seen_repos),
        *validate_helm_repo_url(parsed_url, repo),
        *validate_helm_repo_auth(repo),
        *validate_helm_repo_args(parsed_url, repo),
        *validate_helm_repo_cert(repo.name, repo.ca_file, certs_dir),
    ]


def validate_helm_repo_name(
    repo: HelmRepository, seen_repos: Collection[str]
) -> list[FailedValidation]:
    if not repo.name:
        return [FailedValidation("Helm repository 'name' field must be defined.")]
    if repo.name not in seen_repos:
        return [
            FailedValidation(
                f"Helm repository 'name' field for {_quote(repo.name)} must match the "
                "'repositoryName' field in at least one defined Helm chart."
            )
        ]
    return []


def validate_helm_repo_url(parsed_url: SplitResult, repo: HelmRepository) -> list[FailedValidation]:
    name = _quote(repo.name)
    if not repo.url:
        return [FailedValidation(f"Helm repository 'url' field for {name} must be defined.")]
    if parsed_url.scheme not in (HTTP_SCHEME, HTTPS_SCHEME, OCI_SCHEME):
        return [
            FailedValidation(
                f"Helm repository 'url' field for {name} must begin with either "
                "'oci://', 'http://', or 'https://'."
            )
        ]
    return []


def validate_helm_repo_auth(repo: HelmRepository) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    auth = repo.authentication
    name = _quote(repo.name)

    if auth.username and not auth.password:
        failures.append(
            FailedValidation(f"Helm repository 'password' field not defined for {name}.")
        )
    if not auth.username and auth.password:
        failures.append(
            FailedValidation(f"Helm repository 'username' field not defined for {name}.")
        )
    return failures


def validate_helm_repo_args(parsed_url: SplitResult, repo: HelmRepository) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    name = _quote(repo.name)
    scheme = parsed_url.scheme

    if repo.skip_tls_verify and repo.plain_http:
        failures.append(
            FailedValidation(
                f"Helm repository 'plainHTTP' and 'skipTLSVerify' fields for {name} "
                "cannot both be true."
            )
        )
    if scheme == HTTP_SCHEME and not repo.plain_http:
        failures.append(
            FailedValidation(
                f"Helm repository 'url' field for {name} contains 'http://' but "
                "'plainHTTP' field is false."
            )
        )
    if scheme == HTTPS_SCHEME and repo.plain_http:
        failures.append(
            FailedValidation(
                f"Helm repository 'url' field for {name} contains 'https://' but "
                "'plainHTTP' field is true."
            )
        )
    if scheme == HTTP_SCHEME and repo.skip_tls_verify:
        failures.append(
            FailedValidation(
                f"Helm repository 'url' field for {name} contains 'http://' but "
                "'skipTLSVerify' field is true."
            )
        )
    if repo.skip_tls_verify and repo.ca_file:
        failures.append(
            FailedValidation(
                f"Helm repository 'caFile' field for {name} cannot be defined while "
                "'skipTLSVerify' is true."
            )
        )
    if repo.plain_http and repo.ca_file:
        failures.append(
            FailedValidation(
                f"Helm repository 'caFile' field for {name} cannot be defined while "
                "'plainHTTP' is true."
            )
        )
    if scheme == HTTP_SCHEME and repo.ca_file:
        failures.append(
            FailedValidation(
                f"Helm repository 'url' field for {name} contains 'http://' but "
                "'caFile' field is defined."
            )
        )
    return failures


def validate_helm_repo_cert(repo_name: str, cert_file: str, certs_dir: str) -> list[FailedValidation]:
    if not cert_file:
        return []

    if _extension(cert_file) not in VALID_CERT_EXTENSIONS:
        return [
            FailedValidation(
                f"Helm chart 'caFile' field for {_quote(repo_name)} must be the name of a valid "
                "cert file/bundle with one of the following extensions: "
                f"{', '.join(VALID_CERT_EXTENSIONS)}"
            )
        ]

    path = os.path.join(certs_dir, cert_file)
    return _check_file(
        path,
        f"Helm repo cert file/bundle '{cert_file}' could not be found at '{path}'.",
        f"Helm repo cert file/bundle '{cert_file}' could not be read",
    )


def validate_helm_chart_values(
    chart_name: str, values_file: str, values_dir: str
) -> list[FailedValidation]:
    if not values_file:
        return []

    if _extension(values_file) not in VALID_VALUES_EXTENSIONS:
        return [
            FailedValidation(
                f"Helm chart 'valuesFile' field for {_quote(chart_name)} must be the name of a "
                "valid yaml file ending in '.yaml' or '.yml'."
            )
        ]

    path = os.path.join(values_dir, values_file)
    return _check_file(
        path,
        f"Helm chart values file '{values_file}' could not be found at '{path}'.",
        f"Helm chart values file '{values_file}' could not be read.",
    )


def validate_helm_chart_duplicates(charts: Iterable[HelmChart]) -> list[FailedValidation]:
    """Each chart's release name (its name unless set) must be unique."""
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for chart in charts:
        release_name = chart.release_name or chart.name
        if release_name in seen:
            failures.append(
                FailedValidation(
                    "Helm charts with the same 'name' require a unique 'releaseName'. "
                    "Duplicate found:\n"
                    f"Name: '{chart.name}', Release name: '{chart.release_name}'"
                )
            )
        seen.add(release_name)
    return failures


def validate_additional_artifacts(ctx: Context) -> list[FailedValidation]:
    """Without a Kubernetes version, no manifests or charts may be configured."""
    failures: list[FailedValidation] = []

    names: list[str] = []
    try:
        with os.scandir(kubernetes_manifests_path(ctx)) as entries:
            names = [entry.name for entry in entries]
    except FileNotFoundError:
        pass
    except OSError as err:
        failures.append(FailedValidation("Kubernetes manifests directory could not be read", err))

    if names:
        failures.append(
            FailedValidation(
                "Kubernetes version must be defined when local manifests are configured"
            )
        )

    k8s = ctx.image_definition.kubernetes
    if k8s.helm.charts:
        failures.append(
            FailedValidation("Kubernetes version must be defined when Helm charts are specified")
        )
    if k8s.manifests.urls:
        failures.append(
            FailedValidation(
                "Kubernetes version must be defined when manifest URLs are specified"
            )
        )

    return failures