from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .types import ChannelConfig


# Defaults match the logger generation the tool was written against.
TRIGGER_CHANNEL = "trigger"


def _default_channels() -> dict[str, ChannelConfig]:
    return {
        "trigger": ChannelConfig(name="trigger", suffix=".ext", sampling_period_ms=2.5, header_items=4),
        "resp": ChannelConfig(name="resp", suffix=".resp", sampling_period_ms=20.0, header_items=4),
        "puls": ChannelConfig(name="puls", suffix=".puls", sampling_period_ms=20.0, header_items=4),
        # Four leads packed sample-by-sample; each lead carries its own baseline.
        "ecg": ChannelConfig(
            name="ecg",
            suffix=".ecg",
            sampling_period_ms=2.5,
            header_items=5,
            interleave=4,
            offsets=(2048.0, 2048.0, 4096.0, 4096.0),
        ),
    }


@dataclass(frozen=True)
class PhysioConfig:
    # Raw sentinel the logger writes one sample after each trigger instant.
    trigger_marker: int = 5000
    # Value written for a pulse in emitted pulse trains.
    pulse_value: int = 5000

    # Metadata blocks: <start> ... <stop>, anywhere in the sample line, never nested.
    metadata_start: int = 5002
    metadata_stop: int = 6002
    version_field: str = "LOGVERSION"
    start_time_field: str = "LogStartMPCUTime"

    # Cross-log start time difference above this is treated as a different run.
    max_clock_offset_ms: float = 3000.0
    # A channel ending up to this much before the window end is zero-padded.
    max_missing_ms: float = 3000.0
    # Allowed deviation of min/max trigger interval from the modal one.
    tr_tolerance_samples: int = 2

    # Consulted when the primary trigger log is absent.
    alt_trigger_suffix: str = ".ext2"

    channels: dict[str, ChannelConfig] = field(default_factory=_default_channels)

    def __post_init__(self) -> None:
        if self.metadata_start == self.metadata_stop:
            raise ValueError("metadata_start and metadata_stop must differ")
        if self.pulse_value == 0:
            raise ValueError("pulse_value must be non-zero")
        if TRIGGER_CHANNEL not in self.channels:
            raise ValueError(f"channels must define '{TRIGGER_CHANNEL}'")

    def channel(self, name: str) -> ChannelConfig:
        try:
            return self.channels[name]
        except KeyError:
            raise KeyError(f"unknown channel '{name}' (known: {sorted(self.channels)})") from None

    @property
    def trigger(self) -> ChannelConfig:
        return self.channels[TRIGGER_CHANNEL]

    def replace(self, **overrides: Any) -> "PhysioConfig":
        return dataclasses.replace(self, **overrides)


_SCALAR_KEYS = {f.name for f in dataclasses.fields(PhysioConfig) if f.name != "channels"}
_CHANNEL_KEYS = {f.name for f in dataclasses.fields(ChannelConfig) if f.name != "name"}


def _read_mapping(path: Path) -> dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML ({e})") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"config must be a mapping object (YAML/JSON): {path}")
    return data


def _merge_channel(base: ChannelConfig | None, name: str, override: Any) -> ChannelConfig:
    if not isinstance(override, dict):
        raise ValueError(f"channels.{name} must be a mapping")
    unknown = set(override) - _CHANNEL_KEYS
    if unknown:
        raise ValueError(f"channels.{name}: unknown keys {sorted(unknown)}")

    values: dict[str, Any] = dataclasses.asdict(base) if base is not None else {"name": name}
    values.update(override)
    if "offsets" in values:
        values["offsets"] = tuple(float(v) for v in values["offsets"])
    try:
        return ChannelConfig(**values)
    except TypeError as e:
        raise ValueError(f"channels.{name}: incomplete channel definition ({e})") from e


def config_from_mapping(data: dict[str, Any], base: PhysioConfig | None = None) -> PhysioConfig:
    """
    Overlay a (possibly partial) mapping on top of base (defaults if None).

    Channel entries merge per key, so an override file only needs to name what
    differs from the defaults.
    """
    if base is None:
        base = PhysioConfig()

    unknown = set(data) - _SCALAR_KEYS - {"channels"}
    if unknown:
        raise ValueError(f"unknown config keys: {sorted(unknown)}")

    scalars = {k: v for k, v in data.items() if k in _SCALAR_KEYS}

    channels = dict(base.channels)
    raw_channels = data.get("channels") or {}
    if not isinstance(raw_channels, dict):
        raise ValueError("'channels' must be a mapping")
    for name, override in raw_channels.items():
        channels[name] = _merge_channel(channels.get(name), name, override)

    return base.replace(channels=channels, **scalars)


def load_config(path: str | Path | None) -> PhysioConfig:
    if path is None:
        return PhysioConfig()
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    return config_from_mapping(_read_mapping(path))
