"""Subscriber configuration for apollosub."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from apollosub.exceptions import ApolloConfigError

DEFAULT_CLUSTER = "default"
DEFAULT_NAMESPACE = "application"


class ConfigFormat(StrEnum):
    JSON = "json"
    YAML = "yaml"
    PROPERTIES = "properties"


class DispatchPolicy(StrEnum):
    """How change notifications are handed to the reload worker."""

    BLOCK = "block"
    COALESCE = "coalesce"
    INLINE = "inline"


_SUFFIX_FORMATS: dict[str, ConfigFormat] = {
    ".json": ConfigFormat.JSON,
    ".yaml": ConfigFormat.YAML,
    ".yml": ConfigFormat.YAML,
    ".properties": ConfigFormat.PROPERTIES,
}


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def parse_format(value: str) -> ConfigFormat:
    """Normalize a format tag, raising :class:`ApolloConfigError` if unknown."""
    try:
        return ConfigFormat(value.strip().lower())
    except ValueError:
        supported = ", ".join(f.value for f in ConfigFormat)
        raise ApolloConfigError(f"Unsupported format {value!r} (expected one of: {supported})") from None


class ApolloClientConfig(BaseModel):
    """Settings forwarded unmodified to the upstream store collaborator.

    Parameters
    ----------
    app_id : str
        Apollo application id.
    cluster : str
        Cluster/environment label.
    namespace_name : str
        Namespace to subscribe to.
    ip : str
        Config server address. May be a full URL including scheme and port.
    secret : str
        Access key secret, empty when the namespace is public.
    is_backup_config : bool
        Whether the store keeps a local backup of fetched data.
    backup_config_path : str
        Directory for the local backup.
    must_start : bool
        Whether the store must reach the server before reporting ready.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    app_id: str
    cluster: str = DEFAULT_CLUSTER
    namespace_name: str = DEFAULT_NAMESPACE
    ip: str
    secret: str = Field(default="", repr=False)
    is_backup_config: bool = False
    backup_config_path: str = ""
    must_start: bool = False


@dataclasses.dataclass(frozen=True)
class ApolloConf:
    """Subscriber configuration.

    Parameters
    ----------
    app_id : str
        Apollo application id. Required.
    meta_addr : str
        Meta server address. Required; used as the config server address
        unless ``ip`` is set.
    cluster : str
        Cluster name.
    namespace_name : str
        Namespace name. A ``.json``/``.yaml``/``.yml``/``.properties``
        suffix selects the output format when ``format`` is empty.
    ip : str
        Explicit config server address, overriding ``meta_addr``.
    key : str
        When set, only this key is watched and its raw value is published.
    format : str
        Output format: ``json``, ``yaml`` or ``properties``.
    secret : str
        Optional access key secret.
    is_backup_config : bool
        Enable the store's local backup.
    backup_path : str
        Backup directory.
    must_start : bool
        Require the store to reach the server on startup.
    dispatch_policy : str
        ``block``, ``coalesce`` or ``inline``; see :class:`DispatchPolicy`.
    dispatch_queue_size : int
        Maximum number of pending change notifications.
    """

    app_id: str = ""
    meta_addr: str = ""
    cluster: str = DEFAULT_CLUSTER
    namespace_name: str = DEFAULT_NAMESPACE
    ip: str = ""
    key: str = ""
    format: str = ""
    secret: str = ""
    is_backup_config: bool = False
    backup_path: str = ""
    must_start: bool = False
    dispatch_policy: str = DispatchPolicy.BLOCK.value
    dispatch_queue_size: int = 16

    def validate(self) -> None:
        """Raise :class:`ApolloConfigError` when required fields are missing."""
        if not self.app_id.strip():
            raise ApolloConfigError("app_id is required")
        if not self.meta_addr.strip():
            raise ApolloConfigError("meta_addr is required")
        self.resolve_format()
        self.resolve_dispatch_policy()
        if self.dispatch_queue_size < 1:
            raise ApolloConfigError("dispatch_queue_size must be at least 1")

    @property
    def namespace(self) -> str:
        return self.namespace_name.strip() or DEFAULT_NAMESPACE

    def resolve_format(self) -> ConfigFormat:
        """Return the output format, falling back to the namespace suffix, then JSON."""
        if self.format.strip():
            return parse_format(self.format)
        _, dot, suffix = self.namespace.rpartition(".")
        if dot:
            inferred = _SUFFIX_FORMATS.get(f".{suffix.lower()}")
            if inferred is not None:
                return inferred
        return ConfigFormat.JSON

    def resolve_dispatch_policy(self) -> DispatchPolicy:
        try:
            return DispatchPolicy(self.dispatch_policy.strip().lower())
        except ValueError:
            raise ApolloConfigError(f"Unsupported dispatch_policy {self.dispatch_policy!r}") from None

    def to_client_config(self) -> ApolloClientConfig:
        """Build the settings handed to the store collaborator."""
        return ApolloClientConfig(
            app_id=self.app_id,
            cluster=self.cluster,
            namespace_name=self.namespace_name,
            ip=self.ip or self.meta_addr,
            secret=self.secret,
            is_backup_config=self.is_backup_config,
            backup_config_path=self.backup_path,
            must_start=self.must_start,
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> ApolloConf:
        """Create configuration from ``APOLLO_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "APOLLO_APP_ID": "app_id",
            "APOLLO_META_ADDR": "meta_addr",
            "APOLLO_CLUSTER": "cluster",
            "APOLLO_NAMESPACE": "namespace_name",
            "APOLLO_IP": "ip",
            "APOLLO_KEY": "key",
            "APOLLO_FORMAT": "format",
            "APOLLO_SECRET": "secret",
            "APOLLO_BACKUP_PATH": "backup_path",
            "APOLLO_DISPATCH_POLICY": "dispatch_policy",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "is_backup_config" not in overrides:
            config_kwargs["is_backup_config"] = _env_bool(env.get("APOLLO_IS_BACKUP_CONFIG"), False)
        if "must_start" not in overrides:
            config_kwargs["must_start"] = _env_bool(env.get("APOLLO_MUST_START"), False)

        queue_env = env.get("APOLLO_DISPATCH_QUEUE_SIZE")
        if queue_env is not None and "dispatch_queue_size" not in overrides:
            try:
                config_kwargs["dispatch_queue_size"] = int(queue_env)
            except ValueError:
                raise ApolloConfigError(
                    f"APOLLO_DISPATCH_QUEUE_SIZE must be an integer, got {queue_env!r}"
                ) from None

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
