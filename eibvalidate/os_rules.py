"""Rules for the 'operatingSystem' section of a definition."""

from __future__ import annotations

from .definition import TYPE_ISO, TYPE_RAW, Context, Definition, OperatingSystem, disk_size_is_valid
from .failures import FailedValidation, find_duplicates

OS_COMPONENT = "Operating System"


def validate_operating_system(ctx: Context) -> list[FailedValidation]:
    """Run every operating system rule against the definition."""
    definition = ctx.image_definition
    os_config = definition.operating_system
    return [
        *validate_kernel_args(os_config),
        *validate_systemd(os_config),
        *validate_groups(os_config),
        *validate_users(os_config),
        *validate_suma(os_config),
        *validate_packages(os_config),
        *validate_time_sync(os_config),
        *validate_fips(os_config),
        *validate_iso_config(definition),
        *validate_raw_config(definition),
    ]


def validate_kernel_args(os_config: OperatingSystem) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for arg in os_config.kernel_args:
        key = arg
        if "=" in arg:
            key, value = arg.split("=", 1)
            if not key or not value:
                failures.append(
                    FailedValidation("Kernel arguments must be specified as 'key=value'.")
                )
            if key == "fips" and value == "1" and not os_config.enable_fips:
                failures.append(
                    FailedValidation(
                        "FIPS mode has been specified via kernel arguments, "
                        "please use the 'enableFIPS: true' option instead."
                    )
                )

        if key in seen:
            failures.append(FailedValidation(f"Duplicate kernel argument found: {key}"))
        seen.add(key)
    return failures


def validate_systemd(os_config: OperatingSystem) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    systemd = os_config.systemd

    duplicates = find_duplicates(systemd.enable)
    if duplicates:
        failures.append(
            FailedValidation(
                f"Systemd enable list contains duplicate entries: {', '.join(duplicates)}"
            )
        )

    duplicates = find_duplicates(systemd.disable)
    if duplicates:
        failures.append(
            FailedValidation(
                f"Systemd disable list contains duplicate entries: {', '.join(duplicates)}"
            )
        )

    failures.extend(
        FailedValidation(f"Systemd conflict found, '{enabled}' is both enabled and disabled.")
        for enabled in systemd.enable
        for disabled in systemd.disable
        if enabled == disabled
    )
    return failures


def validate_groups(os_config: OperatingSystem) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for group in os_config.groups:
        if not group.name:
            failures.append(
                FailedValidation("The 'name' field is required for all entries under 'groups'.")
            )
        if group.name in seen:
            failures.append(FailedValidation(f"Duplicate group name found: {group.name}"))
        seen.add(group.name)
    return failures


def validate_users(os_config: OperatingSystem) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    seen: set[str] = set()
    for user in os_config.users:
        if not user.username:
            failures.append(
                FailedValidation(
                    "The 'username' field is required for all entries under 'users'."
                )
            )
        if not user.encrypted_password and not user.ssh_keys:
            failures.append(
                FailedValidation(
                    f"User '{user.username}' must have either a password or at least one SSH key."
                )
            )
        if not user.create_home_dir and user.ssh_keys:
            failures.append(
                FailedValidation(
                    "The 'createHomeDir' attribute must be set to 'true' "
                    "if at least one SSH key is specified."
                )
            )
        if user.username in seen:
            failures.append(FailedValidation(f"Duplicate username found: {user.username}"))
        seen.add(user.username)
    return failures


def validate_suma(os_config: OperatingSystem) -> list[FailedValidation]:
    suma = os_config.suma
    if not suma.host and not suma.activation_key:
        return []

    failures: list[FailedValidation] = []
    if not suma.host:
        failures.append(FailedValidation("The 'host' field is required for the 'suma' section."))
    if suma.host.startswith("http"):
        failures.append(
            FailedValidation("The suma 'host' field may not contain 'http://' or 'https://'")
        )
    if not suma.activation_key:
        failures.append(
            FailedValidation("The 'activationKey' field is required for the 'suma' section.")
        )
    return failures


def validate_packages(os_config: OperatingSystem) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    packages = os_config.packages

    if "" in packages.pkg_list:
        failures.append(
            FailedValidation("The 'packageList' field cannot contain empty values.")
        )

    duplicates = find_duplicates(packages.pkg_list)
    if duplicates:
        failures.append(
            FailedValidation(
                f"The 'packageList' field contains duplicate packages: {', '.join(duplicates)}"
            )
        )

    # Repositories alone are allowed: RPMs may be side-loaded without a package list.
    if packages.additional_repos:
        for repo in packages.additional_repos:
            if not repo.url:
                failures.append(
                    FailedValidation(
                        "The 'url' field is required for all entries under 'additionalRepos'."
                    )
                )
        duplicates = find_duplicates(repo.url for repo in packages.additional_repos)
        if duplicates:
            failures.append(
                FailedValidation(
                    f"The 'additionalRepos' field contains duplicate repos: {', '.join(duplicates)}"
                )
            )
    return failures


def _is_iso(definition: Definition) -> bool:
    return definition.image.image_type.casefold() == TYPE_ISO.casefold()


def validate_iso_config(definition: Definition) -> list[FailedValidation]:
    if not _is_iso(definition) and definition.operating_system.iso_configuration.install_device:
        return [
            FailedValidation(
                "The 'isoConfiguration/installDevice' field can only be used when "
                f"'imageType' is '{TYPE_ISO}'."
            )
        ]
    return []


def validate_raw_config(definition: Definition) -> list[FailedValidation]:
    failures: list[FailedValidation] = []
    raw = definition.operating_system.raw_configuration

    if _is_iso(definition):
        if raw.luks_key:
            failures.append(
                FailedValidation(
                    f"The 'luksKey' field should only be defined for '{TYPE_RAW}' encrypted images."
                )
            )
        if raw.expand_encrypted_partition:
            failures.append(
                FailedValidation(
                    "The 'expandEncryptedPartition' field can only be defined for "
                    f"'{TYPE_RAW}' encrypted images."
                )
            )
        if raw.disk_size:
            failures.append(
                FailedValidation(
                    f"The 'diskSize' field can only be defined for '{TYPE_RAW}' images."
                )
            )
        return failures

    if not raw.luks_key and raw.expand_encrypted_partition:
        failures.append(
            FailedValidation(
                "The 'expandEncryptedPartition' field cannot be 'true' when 'luksKey' is not defined."
            )
        )
    if raw.disk_size and not disk_size_is_valid(raw.disk_size):
        failures.append(
            FailedValidation(
                "The 'diskSize' field must be an integer followed by a suffix of "
                "either 'M', 'G', or 'T'."
            )
        )
    return failures


def validate_time_sync(os_config: OperatingSystem) -> list[FailedValidation]:
    ntp = os_config.time.ntp_configuration
    if not ntp.force_wait:
        return []
    if not ntp.pools and not ntp.servers:
        return [
            FailedValidation(
                "If you're wanting to wait for NTP synchronization at boot, please ensure "
                "that you provide at least one NTP time source."
            )
        ]
    return []


def validate_fips(os_config: OperatingSystem) -> list[FailedValidation]:
    if not os_config.enable_fips:
        return []
    if not os_config.packages.reg_code and not os_config.packages.additional_repos:
        return [
            FailedValidation(
                "To enable FIPS you must either provide an SCC registration code or link an "
                "additional repository that contains the `patterns-base-fips` package."
            )
        ]
    return []