from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from simple_logger.logger import get_logger

from image_copy.constants import (
    ONE_DAY_SECONDS,
    SERVICE_ACCOUNT_NAMESPACE_FILE,
    CopyJob,
    EnvVars,
)
from image_copy.exceptions import InvalidConfigurationError, MissingNamespaceError

LOGGER = get_logger(name=__name__)


@dataclass(frozen=True)
class AuthConfig:
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class JobConfig:
    namespace: str = ""
    image: str = CopyJob.DEFAULT_IMAGE
    image_pull_policy: str = ""
    image_pull_secrets: tuple[str, ...] = ()


@dataclass(frozen=True)
class CopyConfig:
    ttl_seconds: int = ONE_DAY_SECONDS
    stale_after_seconds: int = ONE_DAY_SECONDS
    multi_arch: str = CopyJob.DEFAULT_MULTI_ARCH
    authfile_src: str = ""
    authfile_dst: str = ""


@dataclass(frozen=True)
class CopyMachineConfig:
    """Process-wide settings, loaded once at startup and handed to the dispatcher and the HTTP app."""

    auth: AuthConfig = field(default_factory=AuthConfig)
    job: JobConfig = field(default_factory=JobConfig)
    copy: CopyConfig = field(default_factory=CopyConfig)


def load_config(
    config_file: str,
    environ: dict[str, str] | None = None,
    service_account_namespace_file: str = SERVICE_ACCOUNT_NAMESPACE_FILE,
) -> CopyMachineConfig:
    """
    Load the config file and resolve the job namespace.

    The file is parsed with yaml.safe_load, so plain JSON works as well.
    Namespace resolution order: config file, POD_NAMESPACE, service account namespace file.

    Args:
        config_file (str): path to the config file
        environ (dict[str, str]): environment to read POD_NAMESPACE from, defaults to os.environ
        service_account_namespace_file (str): path of the in-cluster namespace file

    Returns:
        CopyMachineConfig: loaded config

    Raises:
        InvalidConfigurationError: if the file is not a mapping or a field has a wrong type
        MissingNamespaceError: if no namespace could be resolved

    """
    environ = os.environ if environ is None else environ

    try:
        data = yaml.safe_load(Path(config_file).read_text()) or {}
    except yaml.YAMLError as e:
        raise InvalidConfigurationError(config_file=config_file, field="<root>", value=str(e)) from e

    if not isinstance(data, dict):
        raise InvalidConfigurationError(config_file=config_file, field="<root>", value=data)

    auth = _section(data=data, name="auth", config_file=config_file)
    job = _section(data=data, name="job", config_file=config_file)
    copy = _section(data=data, name="copy", config_file=config_file)

    namespace = _str_field(section=job, key="namespace", config_file=config_file, default="")
    if not namespace:
        namespace = environ.get(EnvVars.POD_NAMESPACE, "")

    if not namespace:
        namespace = _read_service_account_namespace(path=service_account_namespace_file)

    if not namespace:
        raise MissingNamespaceError(config_file=config_file)

    config = CopyMachineConfig(
        auth=AuthConfig(
            username=_str_field(section=auth, key="username", config_file=config_file, default=""),
            password=_str_field(section=auth, key="password", config_file=config_file, default=""),
        ),
        job=JobConfig(
            namespace=namespace,
            image=_str_field(section=job, key="image", config_file=config_file, default=CopyJob.DEFAULT_IMAGE),
            image_pull_policy=_str_field(section=job, key="imagePullPolicy", config_file=config_file, default=""),
            image_pull_secrets=_pull_secret_names(section=job, config_file=config_file),
        ),
        copy=CopyConfig(
            ttl_seconds=_int_field(section=copy, key="ttlSeconds", config_file=config_file, default=ONE_DAY_SECONDS),
            stale_after_seconds=_int_field(
                section=copy, key="staleAfterSeconds", config_file=config_file, default=ONE_DAY_SECONDS
            ),
            multi_arch=_str_field(
                section=copy, key="multiArch", config_file=config_file, default=CopyJob.DEFAULT_MULTI_ARCH
            ),
            authfile_src=_str_field(section=copy, key="authfileSrc", config_file=config_file, default=""),
            authfile_dst=_str_field(section=copy, key="authfileDst", config_file=config_file, default=""),
        ),
    )
    LOGGER.info(f"Loaded config from {config_file}, jobs will be created in namespace {namespace}")
    return config


def _section(data: dict[str, Any], name: str, config_file: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(config_file=config_file, field=name, value=section)
    return section


def _str_field(section: dict[str, Any], key: str, config_file: str, default: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidConfigurationError(config_file=config_file, field=key, value=value)
    return value


def _int_field(section: dict[str, Any], key: str, config_file: str, default: int) -> int:
    value = section.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidConfigurationError(config_file=config_file, field=key, value=value)
    return value


def _pull_secret_names(section: dict[str, Any], config_file: str) -> tuple[str, ...]:
    secrets = section.get("imagePullSecrets") or []
    if not isinstance(secrets, list):
        raise InvalidConfigurationError(config_file=config_file, field="imagePullSecrets", value=secrets)

    names: list[str] = []
    for secret in secrets:
        # accepts both [{"name": "foo"}] and ["foo"]
        name = secret.get("name") if isinstance(secret, dict) else secret
        if not isinstance(name, str) or not name:
            raise InvalidConfigurationError(config_file=config_file, field="imagePullSecrets", value=secret)
        names.append(name)

    return tuple(names)


def _read_service_account_namespace(path: str) -> str:
    try:
        return Path(path).read_text().strip()
    except OSError as e:
        LOGGER.debug(f"Could not read service account namespace from {path}: {e}")
        return ""
