# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Layered configuration for the coordinator, the relay and the CLI.

Values come from YAML or TOML files, are overridden by ``TXINSIGHT_*``
environment variables, and are bound onto ``@config_properties``
dataclasses whose defaults fill whatever is left unset.
"""

from __future__ import annotations

import dataclasses
import enum
import os
import re
import tomllib
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]

T = TypeVar("T")

PREFIX_ATTR = "__txinsight_config_prefix__"
ENV_PREFIX = "TXINSIGHT_"
FILE_STEM = "txinsight"
MAX_PLACEHOLDER_DEPTH = 10

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Attach a configuration prefix to a dataclass so :meth:`Config.bind` can fill it.

    Usage:
        @config_properties(prefix="txinsight.outbox.relay")
        @dataclass
        class OutboxRelayProperties:
            interval_ms: int = 1000
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, PREFIX_ATTR, prefix)
        return cls

    return decorator


def env_var_for(key: str) -> str:
    """``txinsight.outbox.relay.batch_size`` -> ``TXINSIGHT_OUTBOX_RELAY_BATCH_SIZE``."""
    return ENV_PREFIX + key.removeprefix(f"{FILE_STEM}.").replace(".", "_").replace("-", "_").upper()


def _read(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with path.open("rb") as fh:
            return tomllib.load(fh)
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _merged(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        result[key] = _merged(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return result


def _candidates(base_dir: Path, stem: str) -> Iterator[Path]:
    for directory in (base_dir / "config", base_dir):
        for suffix in (".yaml", ".toml"):
            path = directory / f"{stem}{suffix}"
            if path.is_file():
                yield path


class Config:
    """Nested settings read with dotted keys.

    Lookup order for :meth:`get`, first hit wins:

    1. the ``TXINSIGHT_*`` environment variable derived from the key
    2. the loaded file data (or the dict passed in)
    3. the caller's default
    """

    def __init__(self, data: dict[str, Any] | None = None, sources: list[str] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._sources: list[str] = list(sources or [])

    @property
    def loaded_sources(self) -> list[str]:
        """Files that contributed to this configuration, in merge order."""
        return list(self._sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Read one YAML or TOML file. A missing file gives an empty configuration."""
        path = Path(path)
        if not path.is_file():
            return cls()
        return cls(_read(path), sources=[str(path)])

    @classmethod
    def from_sources(cls, base_dir: str | Path, active_profiles: list[str] | None = None) -> Config:
        """Merge ``txinsight.{yaml,toml}`` and profile overlays found under *base_dir*.

        ``config/`` is read before the directory itself, and each profile's
        ``txinsight-<profile>`` files are layered on top in the order given.
        """
        base_dir = Path(base_dir)
        data: dict[str, Any] = {}
        sources: list[str] = []
        for path in _candidates(base_dir, FILE_STEM):
            data = _merged(data, _read(path))
            sources.append(str(path))
        for profile in active_profiles or []:
            for path in _candidates(base_dir, f"{FILE_STEM}-{profile}"):
                data = _merged(data, _read(path))
                sources.append(f"{path} (profile: {profile})")
        return cls(data, sources=sources)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up *key*, expanding ``${NAME}`` and ``${NAME:fallback}`` in string values.

        A placeholder name is tried as an environment variable first and then
        as a dotted configuration key.
        """
        override = os.environ.get(env_var_for(key))
        if override is not None:
            return override
        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str):
            return self._expand(value)
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        section = self._lookup(prefix)
        return section if isinstance(section, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Instantiate a ``@config_properties`` dataclass from this configuration.

        Unset fields keep their dataclass defaults. Strings (typically from
        environment variables) are converted to the field's int, float, bool
        or enum type.
        """
        prefix = getattr(config_cls, PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")
        hints = get_type_hints(config_cls)
        values = {}
        for f in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            raw = self.get(f"{prefix}.{f.name}")
            if raw is not None:
                values[f.name] = _convert(raw, hints.get(f.name))
        return config_cls(**values)

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _expand(self, value: str, depth: int = 0) -> str:
        if "${" not in value:
            return value
        if depth > MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Placeholders in '{value}' nest too deeply; check for a circular reference")

        def substitute(match: re.Match[str]) -> str:
            name, sep, fallback = match.group(1).partition(":")
            from_env = os.environ.get(name)
            if from_env is not None:
                return from_env
            found = self._lookup(name)
            if found is not None:
                return self._expand(str(found), depth + 1)
            if sep:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{name}}}' from the environment or configuration")

        return _PLACEHOLDER.sub(substitute, value)


def _convert(raw: Any, target: Any) -> Any:
    if isinstance(target, type) and issubclass(target, enum.Enum):
        return target(raw.lower() if isinstance(raw, str) else raw)
    if not isinstance(raw, str):
        return raw
    if target is bool:
        return raw.strip().lower() in _TRUE_STRINGS
    if target in (int, float):
        return target(raw)
    return raw
