from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from domain.errors import StartupConfigError

_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class DeviceConfig:
    type: str
    id: str
    org: str = ""
    auth_token: Optional[str] = None
    base_url: str = ""  # overrides the org-derived platform URL


@dataclass(frozen=True)
class GpioConfig:
    trigger_pin: int = 23
    echo_pin: int = 24
    led_pin: int = 18
    max_distance_m: float = 4.0
    flash_ms: int = 1000


@dataclass(frozen=True)
class HttpConfig:
    workers: int = 2
    queue_max: int = 1000
    timeout_sec: float = 5.0
    max_retries: int = 3
    drop_on_full: bool = True


@dataclass(frozen=True)
class CommandsConfig:
    url: str = ""
    poll_interval_sec: float = 2.0


@dataclass(frozen=True)
class SimulationConfig:
    seed: Optional[int] = None
    base_cm: float = 20.0


@dataclass(frozen=True)
class AppConfig:
    device: DeviceConfig

    sensor_name: str = "rangeSensor"
    sample_period_sec: float = 1.0
    heartbeat_period_sec: float = 60.0
    window_size: int = 20
    max_valid_cm: float = 400.0
    alert_mean_limit: float = 30.0
    queue_size: int = 1000
    print_events: bool = True
    log_level: str = "INFO"

    gpio: GpioConfig = field(default_factory=GpioConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    @property
    def events_base_url(self) -> Optional[str]:
        """None when no platform is configured (events are only logged)."""
        if self.device.base_url:
            return self.device.base_url.rstrip("/")
        if self.device.org:
            return f"https://{self.device.org}.messaging.internetofthings.ibmcloud.com"
        return None


def _req(d: Mapping[str, Any], path: str) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            raise StartupConfigError(f"invalid config: required field '{path}' is missing")
        cur = cur[part]
    return cur


def _opt(d: Mapping[str, Any], path: str, default: Any) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return default if cur is None else cur


def _num(d: Mapping[str, Any], path: str, default: Any, kind: type, *, positive: bool = False) -> Any:
    raw = _opt(d, path, default)
    try:
        v = kind(raw)
    except (TypeError, ValueError) as e:
        raise StartupConfigError(f"invalid config: '{path}' must be {kind.__name__}, got {raw!r}") from e
    if positive and v <= 0:
        raise StartupConfigError(f"invalid config: '{path}' must be > 0, got {v}")
    return v


def _flag(d: Mapping[str, Any], path: str, default: bool) -> bool:
    raw = _opt(d, path, default)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    raise StartupConfigError(f"invalid config: '{path}' must be true or false, got {raw!r}")


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default.upper()
    candidate = value.strip()
    if not candidate:
        return default.upper()
    return candidate.upper()


def parse_config(data: Mapping[str, Any]) -> AppConfig:
    if not isinstance(data, Mapping):
        raise StartupConfigError("invalid config: top level must be a mapping")

    device = DeviceConfig(
        type=str(_req(data, "device.type")),
        id=str(_req(data, "device.id")),
        org=str(_opt(data, "device.org", "")),
        auth_token=(str(_opt(data, "device.auth_token", "")) or None),
        base_url=str(_opt(data, "device.base_url", "")),
    )

    gpio = GpioConfig(
        trigger_pin=_num(data, "gpio.trigger_pin", 23, int),
        echo_pin=_num(data, "gpio.echo_pin", 24, int),
        led_pin=_num(data, "gpio.led_pin", 18, int),
        max_distance_m=_num(data, "gpio.max_distance_m", 4.0, float, positive=True),
        flash_ms=_num(data, "gpio.flash_ms", 1000, int, positive=True),
    )

    http = HttpConfig(
        workers=_num(data, "http.workers", 2, int, positive=True),
        queue_max=_num(data, "http.queue_max", 1000, int, positive=True),
        timeout_sec=_num(data, "http.timeout_sec", 5.0, float, positive=True),
        max_retries=_num(data, "http.max_retries", 3, int),
        drop_on_full=_flag(data, "http.drop_on_full", True),
    )

    commands = CommandsConfig(
        url=str(_opt(data, "commands.url", "")),
        poll_interval_sec=_num(data, "commands.poll_interval_sec", 2.0, float, positive=True),
    )

    seed_raw = _opt(data, "simulation.seed", None)
    simulation = SimulationConfig(
        seed=None if seed_raw is None else _num(data, "simulation.seed", 0, int),
        base_cm=_num(data, "simulation.base_cm", 20.0, float),
    )

    return AppConfig(
        device=device,
        sensor_name=str(_opt(data, "sensor_name", "rangeSensor")),
        sample_period_sec=_num(data, "sample_period_sec", 1.0, float, positive=True),
        heartbeat_period_sec=_num(data, "heartbeat_period_sec", 60.0, float, positive=True),
        window_size=_num(data, "window_size", 20, int, positive=True),
        max_valid_cm=_num(data, "max_valid_cm", 400.0, float),
        alert_mean_limit=_num(data, "alert_mean_limit", 30.0, float),
        queue_size=_num(data, "queue_size", 1000, int, positive=True),
        print_events=_flag(data, "print_events", True),
        log_level=_read_log_level(str(_opt(data, "log_level", "INFO"))),
        gpio=gpio,
        http=http,
        commands=commands,
        simulation=simulation,
    )


def load_config(path: str = "device.yaml") -> AppConfig:
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise StartupConfigError(f"cannot read device config {path!r}: {e}") from e
    except yaml.YAMLError as e:
        raise StartupConfigError(f"device config {path!r} is not valid YAML: {e}") from e
    return parse_config(data)
