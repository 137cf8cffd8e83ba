"""Reading, validating and writing the qmstr YAML configuration."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable, Optional

import yaml

from qmstr.fileutil import posix_portable_filename
from qmstr.nodes import PathSubstitution

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration could not be read or is invalid."""


Converter = Callable[[Any, Any, str], Any]


def _text(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        raise ConfigError(f"cannot use {type(value).__name__} as string for {key}")
    return str(value)


def _str(_current: Any, value: Any, key: str) -> str:
    return _text(value, key)


def _int(_current: Any, value: Any, key: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"cannot use {value!r} as integer for {key}")
    return value


def _bool(_current: Any, value: Any, key: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"cannot use {value!r} as boolean for {key}")
    return value


def _str_map(current: Any, value: Any, key: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"expected a mapping for {key}")
    merged = dict(current or {})
    merged.update((_text(k, key), _text(v, key)) for k, v in value.items())
    return merged


def _items(value: Any, key: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"expected a list for {key}")
    return value


def _path_subs(_current: Any, value: Any, key: str) -> list[PathSubstitution]:
    subs = []
    for item in _items(value, key):
        if not isinstance(item, dict):
            raise ConfigError(f"expected a mapping in {key}")
        subs.append(PathSubstitution(old=_text(item.get("old"), key), new=_text(item.get("new"), key)))
    return subs


def _records(cls: type) -> Converter:
    def convert(_current: Any, value: Any, key: str) -> list:
        records = []
        for item in _items(value, key):
            record = cls()
            record._update(item, key)
            records.append(record)
        return records

    return convert


def _nested(current: Any, value: Any, key: str) -> Any:
    if value is not None:
        current._update(value, key)
    return current


def _dump(value: Any) -> Any:
    if isinstance(value, _YamlRecord):
        return value._to_yaml()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _dump(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value


class _YamlRecord:
    """Maps lower-case YAML keys onto attributes; merges into existing values."""

    _KEYS: ClassVar[dict[str, tuple[str, Converter]]] = {}

    def _update(self, data: Any, where: str) -> None:
        if not isinstance(data, dict):
            raise ConfigError(f"expected a mapping for {where}")
        for key, value in data.items():
            entry = self._KEYS.get(key)
            if entry is None:
                continue
            attr, convert = entry
            setattr(self, attr, convert(getattr(self, attr), value, key))

    def _to_yaml(self) -> dict[str, Any]:
        return {key: _dump(getattr(self, attr)) for key, (attr, _) in self._KEYS.items()}


@dataclass
class Analysis(_YamlRecord):
    name: str = ""
    posix_name: str = ""
    analyzer: str = ""
    trust_level: int = 0
    path_sub: list[PathSubstitution] = field(default_factory=list)
    config: dict[str, str] = field(default_factory=dict)

    _KEYS: ClassVar[dict[str, tuple[str, Converter]]] = {
        "name": ("name", _str),
        "posixname": ("posix_name", _str),
        "analyzer": ("analyzer", _str),
        "trustlevel": ("trust_level", _int),
        "pathsub": ("path_sub", _path_subs),
        "config": ("config", _str_map),
    }


@dataclass
class Reporting(_YamlRecord):
    name: str = ""
    posix_name: str = ""
    reporter: str = ""
    config: dict[str, str] = field(default_factory=dict)

    _KEYS: ClassVar[dict[str, tuple[str, Converter]]] = {
        "name": ("name", _str),
        "posixname": ("posix_name", _str),
        "reporter": ("reporter", _str),
        "config": ("config", _str_map),
    }


@dataclass
class ServerConfig(_YamlRecord):
    rpc_address: str = ":50051"
    db_address: str = "localhost:9080"
    db_workers: int = 2
    output_dir: str = ""
    cache_dir: str = ""
    image_name: str = ""
    debug: bool = False
    extra_env: dict[str, str] = field(default_factory=dict)
    extra_mount: dict[str, str] = field(default_factory=dict)
    build_path: str = ""
    path_sub: list[PathSubstitution] = field(default_factory=list)

    _KEYS: ClassVar[dict[str, tuple[str, Converter]]] = {
        "rpcaddress": ("rpc_address", _str),
        "dbaddress": ("db_address", _str),
        "dbworkers": ("db_workers", _int),
        "outputdir": ("output_dir", _str),
        "cachedir": ("cache_dir", _str),
        "image": ("image_name", _str),
        "debug": ("debug", _bool),
        "extraenv": ("extra_env", _str_map),
        "extramount": ("extra_mount", _str_map),
        "buildpath": ("build_path", _str),
        "pathsub": ("path_sub", _path_subs),
    }


@dataclass
class MasterConfig(_YamlRecord):
    name: str = ""
    meta_data: dict[str, str] = field(default_factory=dict)
    server: ServerConfig = field(default_factory=ServerConfig)
    analysis: list[Analysis] = field(default_factory=list)
    reporting: list[Reporting] = field(default_factory=list)

    _KEYS: ClassVar[dict[str, tuple[str, Converter]]] = {
        "name": ("name", _str),
        "metadata": ("meta_data", _str_map),
        "server": ("server", _nested),
        "analysis": ("analysis", _records(Analysis)),
        "reporting": ("reporting", _records(Reporting)),
    }

    def rpc_port(self) -> str:
        """Return the part of the RPC address after the colon."""
        validate_config(self)
        return self.server.rpc_address.split(":")[1]


def _check_fields(
    seen: dict[str, set[str]], fields: Iterable[tuple[str, str]]
) -> None:
    for name, value in fields:
        track = seen.get(name, set())
        if not value:
            raise ConfigError(f"{name} invalid")
        if value in track:
            raise ConfigError(f"duplicate value of {value} in {name}")
        track.add(value)


def validate_config(configuration: Optional[MasterConfig]) -> None:
    """Raise ConfigError if the configuration is unusable."""
    if configuration is None:
        raise ConfigError("empty configuration -- check indentation")
    if len(configuration.server.rpc_address.split(":")) != 2:
        raise ConfigError("Invalid RPC address")

    seen: dict[str, set[str]] = {"Name": set(), "PosixName": set()}
    for idx, analyzer in enumerate(configuration.analysis, 1):
        posix = analyzer.posix_name or posix_portable_filename(analyzer.name)
        try:
            _check_fields(
                seen,
                [("Name", analyzer.name), ("Analyzer", analyzer.analyzer), ("PosixName", posix)],
            )
        except ConfigError as exc:
            raise ConfigError(f"{idx}. analyzer misconfigured {exc}") from None
    for idx, reporter in enumerate(configuration.reporting, 1):
        posix = reporter.posix_name or posix_portable_filename(reporter.name)
        try:
            _check_fields(
                seen,
                [("Name", reporter.name), ("Reporter", reporter.reporter), ("PosixName", posix)],
            )
        except ConfigError as exc:
            raise ConfigError(f"{idx}. reporter misconfigured {exc}") from None


def _read_config(data: bytes | str, project: Optional[MasterConfig]) -> Optional[MasterConfig]:
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc)) from exc
    if document is not None:
        if not isinstance(document, dict):
            raise ConfigError("configuration must be a mapping")
        if "project" in document:
            value = document["project"]
            if value is None:
                project = None
            elif project is not None:
                project._update(value, "project")
    validate_config(project)
    return project


def read_config_from_files(*configfiles: str) -> MasterConfig:
    """Read and merge the given files in order; missing files are skipped."""
    missing = 0
    project: Optional[MasterConfig] = MasterConfig()
    for configfile in configfiles:
        if not os.path.exists(configfile):
            logger.info("File %s not found", configfile)
            missing += 1
            continue
        logger.info("Reading configuration from %s", configfile)
        data = consume_file(configfile)
        try:
            project = _read_config(data, project)
        except ConfigError as exc:
            raise ConfigError(f"Failed to read config from {configfile}: {exc}") from exc
    if missing == len(configfiles):
        raise ConfigError("No configuration file found")
    assert project is not None
    return project


def read_config_from_bytes(data: bytes | str) -> MasterConfig:
    """Read a configuration document over the defaults."""
    project = _read_config(data, MasterConfig())
    assert project is not None
    return project


def serialize_config(config: MasterConfig) -> bytes:
    """Write the configuration as a YAML document."""
    text = yaml.safe_dump({"project": config._to_yaml()}, sort_keys=False, allow_unicode=True)
    return text.encode("utf-8")


def consume_file(filename: str) -> bytes:
    """Return the whole contents of ``filename``."""
    with open(filename, "rb") as stream:
        return stream.read()