"""Provisioner options and their TOML-based loading.

Loads ~/.skyfleet/defaults.toml (global) and skyfleet.toml (project),
merges them, and builds an immutable Options value from the [options]
table. Options are passed explicitly to the provisioner; nothing reads
them from ambient state.

Example skyfleet.toml:

    [options]
    cluster_name = "prod"
    region = "us-west-2"
    node_name_convention = "resource-name"
    creation_qps = 2
    creation_burst = 100
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from skyfleet.constants import (
    CREATION_BURST,
    CREATION_QPS,
    INSTANCE_LOOKUP_ATTEMPTS,
    INSTANCE_LOOKUP_DELAY,
    MAX_INSTANCE_TYPES,
    UNAVAILABLE_OFFERINGS_TTL,
    NodeNameConvention,
)
from skyfleet.core.exceptions import ConfigurationError
from skyfleet.retry import RetryPolicy

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skyfleet" / "defaults.toml"
PROJECT_CONFIG_NAME = "skyfleet.toml"


@dataclass(frozen=True, slots=True)
class Options:
    """Provisioner configuration.

    Args:
        cluster_name: Cluster that owns launched instances (used in tags).
        region: AWS region for the EC2 client.
        node_name_convention: Name nodes by private DNS name or instance id.
        max_instance_types: Most instance types offered in one fleet request.
        creation_qps: Sustained EC2 request rate.
        creation_burst: EC2 request burst ceiling.
        lookup_delay: Seconds between post-launch describe attempts.
        lookup_attempts: Post-launch describe attempts.
        unavailable_offerings_ttl: Seconds an insufficient-capacity offering stays cached.
        launch_template_prefix: Prefix of launch template names grouped by architecture.
    """

    cluster_name: str = "default"
    region: str = "us-east-1"
    node_name_convention: NodeNameConvention = NodeNameConvention.IP_NAME
    max_instance_types: int = MAX_INSTANCE_TYPES
    creation_qps: float = CREATION_QPS
    creation_burst: int = CREATION_BURST
    lookup_delay: float = INSTANCE_LOOKUP_DELAY
    lookup_attempts: int = INSTANCE_LOOKUP_ATTEMPTS
    unavailable_offerings_ttl: float = UNAVAILABLE_OFFERINGS_TTL
    launch_template_prefix: str = "skyfleet"

    def __post_init__(self) -> None:
        try:
            object.__setattr__(
                self, "node_name_convention", NodeNameConvention(self.node_name_convention)
            )
        except ValueError:
            raise ConfigurationError(
                f"Unknown node_name_convention {self.node_name_convention!r}. "
                f"Available: {', '.join(c.value for c in NodeNameConvention)}"
            ) from None
        if not self.cluster_name:
            raise ConfigurationError("cluster_name must not be empty")
        if self.max_instance_types < 1:
            raise ConfigurationError(f"max_instance_types must be positive, got {self.max_instance_types}")
        if self.creation_qps <= 0 or self.creation_burst < 1:
            raise ConfigurationError(
                f"Invalid rate limit: creation_qps={self.creation_qps}, creation_burst={self.creation_burst}"
            )
        if self.lookup_attempts < 1 or self.lookup_delay < 0:
            raise ConfigurationError(
                f"Invalid lookup retry: lookup_delay={self.lookup_delay}, lookup_attempts={self.lookup_attempts}"
            )

    @property
    def lookup_retry(self) -> RetryPolicy:
        return RetryPolicy(delay=self.lookup_delay, attempts=self.lookup_attempts)

    @classmethod
    def from_mapping(cls, raw: RawConfig) -> Options:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")
        try:
            return cls(**raw)
        except TypeError as e:
            raise ConfigurationError(f"Invalid options: {e}") from e


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("options", {})
    return merged


def load_options(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Options:
    raw = load_config(project_dir=project_dir, global_path=global_path)
    return Options.from_mapping(raw["options"])
