from __future__ import annotations

import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from config import AppConfig, load_config
from app.aggregator import WindowAggregator
from app.commands import CommandListener
from app.emitter import EventEmitter
from app.heartbeat import HeartbeatTicker
from app.pipeline import RangePipeline
from domain.errors import StartupConfigError
from domain.ports import EventChannel, MessageSink, SampleSource
from domain.thresholds import AlertFilter, ValidityFilter
from infra.clock import SystemClock
from infra.http_command_source import HttpCommandSource
from infra.http_event_channel import HttpEventChannel
from infra.poller import PeriodicPoller
from infra.range_sensor import RangeSensor, SimulatedRangeSensor
from infra.sinks import ConsoleMessageSink, LedFlashSink, LogEventChannel
from logging_config import configure_logging

logger = logging.getLogger("main")

USAGE = (
    "Proper Usage is:\n"
    "      python main.py device.yaml simulated_boolean\n"
    "Example:\n"
    "      python main.py device.yaml true"
)


def parse_bool(text: str) -> bool:
    # only "true" (any case) is true, anything else is false
    return text.strip().lower() == "true"


def parse_args(argv: Sequence[str]) -> tuple[str, bool]:
    if len(argv) != 2:
        raise StartupConfigError(USAGE)
    return argv[0], parse_bool(argv[1])


def build_sample_source(cfg: AppConfig, simulated: bool) -> SampleSource:
    if simulated:
        return SimulatedRangeSensor(cfg.simulation.seed, base_cm=cfg.simulation.base_cm)
    return RangeSensor.on_pins(
        cfg.gpio.trigger_pin,
        cfg.gpio.echo_pin,
        max_distance_m=cfg.gpio.max_distance_m,
    )


def build_channel(cfg: AppConfig) -> EventChannel:
    base_url = cfg.events_base_url
    if base_url is None:
        logger.warning("no platform org/base_url configured; events are only logged")
        return LogEventChannel()
    return HttpEventChannel(
        base_url,
        cfg.device.type,
        cfg.device.id,
        auth_token=cfg.device.auth_token,
        workers=cfg.http.workers,
        queue_max=cfg.http.queue_max,
        timeout_sec=cfg.http.timeout_sec,
        max_retries=cfg.http.max_retries,
        drop_on_full=cfg.http.drop_on_full,
    )


@dataclass
class RangeSensorApp:
    cfg: AppConfig
    source: SampleSource
    channel: EventChannel
    pipeline: RangePipeline
    heartbeat: HeartbeatTicker
    listener: CommandListener
    sinks: List[MessageSink]
    command_source: Optional[HttpCommandSource] = None
    pollers: List[PeriodicPoller] = field(default_factory=list)

    def start(self) -> None:
        start_channel = getattr(self.channel, "start", None)
        if start_channel is not None:
            start_channel()
        self.pipeline.start()
        self.listener.start(self.sinks)
        for p in self.pollers:
            p.start()

    def stop(self) -> None:
        # producers first, then drain pipeline and in-flight sends
        try:
            for p in self.pollers:
                p.stop()
        finally:
            try:
                self.pipeline.shutdown()
            finally:
                try:
                    self.listener.stop()
                finally:
                    try:
                        stop_channel = getattr(self.channel, "stop", None)
                        if stop_channel is not None:
                            stop_channel()
                    finally:
                        if self.command_source is not None:
                            self.command_source.close()
                        close = getattr(self.source, "close", None)
                        if close is not None:
                            close()


def build_app(
    cfg: AppConfig,
    simulated: bool,
    *,
    source: Optional[SampleSource] = None,
    channel: Optional[EventChannel] = None,
) -> RangeSensorApp:
    clock = SystemClock()
    source = source or build_sample_source(cfg, simulated)
    channel = channel or build_channel(cfg)
    emitter = EventEmitter(channel)

    pipeline = RangePipeline(
        aggregator=WindowAggregator(cfg.window_size),
        emitter=emitter,
        clock=clock,
        validity=ValidityFilter(cfg.max_valid_cm),
        alert=AlertFilter(cfg.alert_mean_limit),
        sensor_name=cfg.sensor_name,
        queue_size=cfg.queue_size,
        print_events=cfg.print_events,
    )
    heartbeat = HeartbeatTicker(emitter, clock, print_events=cfg.print_events)

    listener = CommandListener()
    sinks: List[MessageSink] = [ConsoleMessageSink()]
    if not simulated:
        sinks.append(LedFlashSink.on_pin(cfg.gpio.led_pin, flash_ms=cfg.gpio.flash_ms))

    pollers: List[PeriodicPoller] = [
        PeriodicPoller("range", source.read, cfg.sample_period_sec, pipeline.submit),
        PeriodicPoller("heartbeat", heartbeat.tick, cfg.heartbeat_period_sec),
    ]

    command_source = None
    if cfg.commands.url:
        command_source = HttpCommandSource(
            cfg.commands.url,
            auth_token=cfg.device.auth_token,
            timeout_sec=cfg.http.timeout_sec,
        )
        pollers.append(
            PeriodicPoller("commands", command_source.fetch, cfg.commands.poll_interval_sec, listener.on_envelopes)
        )

    return RangeSensorApp(
        cfg=cfg,
        source=source,
        channel=channel,
        pipeline=pipeline,
        heartbeat=heartbeat,
        listener=listener,
        sinks=sinks,
        command_source=command_source,
        pollers=pollers,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        cfg_path, simulated = parse_args(args)
        cfg = load_config(cfg_path)
    except StartupConfigError as e:
        print(e, file=sys.stderr)
        raise SystemExit(2) from e

    configure_logging(cfg.log_level)
    logger.info(
        "starting device %s/%s simulated=%s sensor=%s",
        cfg.device.type, cfg.device.id, simulated, cfg.sensor_name,
    )

    app = build_app(cfg, simulated)
    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    app.start()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        app.stop()
        t = app.pipeline.totals()
        logger.info(
            "stopped: processed=%d invalid=%d suppressed=%d emitted=%d send_failed=%d",
            t.processed, t.invalid, t.suppressed, t.emitted, t.send_failed,
            extra={"dropped": t.dropped},
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
