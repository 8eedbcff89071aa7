"""Config-driven capture -> art -> sink loop with pacing and shutdown policy."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from asciicam_capture import (
    CameraFrameSource,
    CaptureError,
    CaptureFormat,
    DecodeError,
    EncodedFrame,
    FrameDecoder,
    FrameSource,
    PatternFrameSource,
    ReplayFrameSource,
    SourceExhausted,
)
from asciicam_renderer import ArtGrid, CanvasRenderer, ColorFilter, FontAsset, GlyphMapper, PixelBuffer, luminance, resample
from asciicam_sink import BrokenPipe, EncoderSettings, FileSink, FrameWriteError, OutputSink, StreamSink

from .config import PipelineConfig, channel_for, resolve_ramp
from .logging_setup import get_logger
from .performance import FramePacer, PerformanceController, PerformanceTargets

logger = get_logger("pipeline")


class FrameProcessor:
    """The per-frame transformation; holds no state across frames besides the font cache."""

    def __init__(self, config: PipelineConfig, font: FontAsset) -> None:
        self.config = config
        self.decoder = FrameDecoder(config.capture.width, config.capture.height)
        self.color_filter = ColorFilter(config.filter.lower, config.filter.upper) if config.filter.enabled else None
        self.mapper = GlyphMapper(resolve_ramp(config))
        self.renderer = CanvasRenderer(font, scale=config.font.scale)
        self.last_grid: ArtGrid | None = None

    def decode(self, frame: EncodedFrame) -> PixelBuffer:
        return self.decoder.decode(frame)

    def art_grid(self, frame: PixelBuffer) -> ArtGrid:
        small = resample(frame, self.config.ascii.columns, self.config.ascii.rows)
        return self.mapper.build_grid(luminance(small))

    def render(self, frame: PixelBuffer) -> PixelBuffer:
        """Filter ``frame`` in place and compose the output canvas."""
        cfg = self.config
        if self.color_filter is not None:
            self.color_filter.apply(frame)

        if cfg.runtime.render == "text":
            if (frame.width, frame.height) == (cfg.output.width, cfg.output.height):
                canvas = frame
            else:
                canvas = resample(frame, cfg.output.width, cfg.output.height)
            self.renderer.draw_text(
                canvas,
                cfg.text.text,
                origin=(cfg.text.origin_x, cfg.text.origin_y),
                advance=cfg.text.advance,
                scale=cfg.text.scale,
                channel=channel_for(cfg.text.channel),
            )
            return canvas

        self.last_grid = self.art_grid(frame)
        return self.renderer.render_grid(
            self.last_grid,
            cfg.output.width,
            cfg.output.height,
            background=cfg.ascii.background,
            channel=channel_for(cfg.ascii.channel),
        )

    def process(self, frame: EncodedFrame) -> PixelBuffer:
        return self.render(self.decode(frame))


@dataclass
class RunReport:
    frames_captured: int = 0
    frames_written: int = 0
    frames_dropped: int = 0
    write_errors: int = 0
    stop_reason: str | None = None
    error: str | None = None
    sink_exit_status: int | None = None
    elapsed_s: float = 0.0
    fps: float = 0.0
    budget_warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None and self.sink_exit_status in (None, 0)


class PipelineDriver:
    """Runs the stages in strict sequence once per frame until told to stop.

    Stop requests and the frame limit are honoured at iteration boundaries
    only; a blocking pull or write is never interrupted.
    """

    def __init__(
        self,
        config: PipelineConfig,
        source: FrameSource,
        sink: OutputSink,
        processor: FrameProcessor,
        pacer: FramePacer | None = None,
        performance: PerformanceController | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.sink = sink
        self.processor = processor
        self.pacer = pacer or FramePacer(config.runtime.frame_rate, enabled=config.runtime.pace)
        self.performance = performance
        self.report = RunReport()
        self._stop = threading.Event()
        self._stop_reason = "stop_requested"
        self._events: list[dict[str, Any]] = []

    def request_stop(self, reason: str = "stop_requested") -> None:
        self._stop_reason = reason
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event}
        row.update(fields)
        self._events.append(row)
        if len(self._events) > 1000:
            self._events = self._events[-1000:]

    def run(self) -> RunReport:
        report = self.report = RunReport()
        started = time.perf_counter()
        self._log_event("run_start", render=self.config.runtime.render, output=self.config.output.mode)
        logger.info(
            "pipeline starting render=%s output=%s",
            self.config.runtime.render,
            self.config.output.mode,
            extra={"event": "run_start"},
        )

        self.source.open()
        try:
            self.sink.open()
            try:
                self._loop(report)
            finally:
                status = self.sink.close()
                if status is not None:
                    report.sink_exit_status = status
        finally:
            self.source.close()
            report.elapsed_s = time.perf_counter() - started
            report.fps = report.frames_written / report.elapsed_s if report.elapsed_s > 0 else 0.0
            self._log_event("run_end", stop_reason=report.stop_reason, frames=report.frames_written)
            logger.info(
                "pipeline stopped reason=%s captured=%s written=%s dropped=%s fps=%.2f",
                report.stop_reason,
                report.frames_captured,
                report.frames_written,
                report.frames_dropped,
                report.fps,
                extra={"event": "run_end", "reason": report.stop_reason},
            )
        return report

    def _loop(self, report: RunReport) -> None:
        limit = self.config.runtime.max_frames
        window_start = time.perf_counter()
        window_frames = 0

        while True:
            if self._stop.is_set():
                report.stop_reason = self._stop_reason
                return
            if limit is not None and report.frames_captured >= limit:
                report.stop_reason = "frame_limit"
                return

            tick = time.perf_counter()
            try:
                encoded = self.source.pull()
            except SourceExhausted:
                report.stop_reason = "source_exhausted"
                return
            except CaptureError as exc:
                self._fatal(report, "capture_error", exc)
                return
            report.frames_captured += 1
            index = report.frames_captured - 1

            try:
                canvas = self.processor.process(encoded)
            except DecodeError as exc:
                report.frames_dropped += 1
                self._log_event("frame_dropped", frame=index, error=str(exc))
                logger.warning("dropping frame %s: %s", index, exc, extra={"event": "frame_dropped", "frame": index})
                self.pacer.wait(tick)
                continue

            try:
                self.sink.write(canvas, index)
            except BrokenPipe as exc:
                report.sink_exit_status = exc.exit_status
                self._fatal(report, "broken_pipe", exc)
                return
            except FrameWriteError as exc:
                report.write_errors += 1
                if not self.config.runtime.continue_on_write_error:
                    self._fatal(report, "write_error", exc)
                    return
                logger.warning("frame %s not saved: %s", index, exc, extra={"event": "write_error", "frame": index})
            else:
                report.frames_written += 1
                window_frames += 1

            if self.performance is not None and window_frames >= self.config.runtime.budget_every:
                elapsed = max(time.perf_counter() - window_start, 1e-9)
                self._check_budget(report, window_frames / elapsed)
                window_start = time.perf_counter()
                window_frames = 0

            self.pacer.wait(tick)

    def _fatal(self, report: RunReport, reason: str, exc: Exception) -> None:
        report.stop_reason = reason
        report.error = str(exc)
        self._log_event(reason, error=str(exc))
        logger.error("%s: %s", reason, exc, extra={"event": reason, "reason": reason})

    def _check_budget(self, report: RunReport, fps: float) -> None:
        budget = self.performance.sample(fps)
        if budget.warning is None:
            return
        report.budget_warnings.append(budget.warning)
        self._log_event("budget_warning", warning=budget.warning, cpu_percent=budget.cpu_percent, rss_mb=budget.rss_mb)
        logger.warning(
            "budget %s cpu=%.1f%% rss=%.1fMB fps=%.2f",
            budget.warning,
            budget.cpu_percent,
            budget.rss_mb,
            budget.fps,
            extra={"event": "budget_warning"},
        )


def build_source(
    config: PipelineConfig,
    kind: str = "camera",
    patterns: list[str] | None = None,
    replay_dir: Path | None = None,
    loop: bool = False,
) -> FrameSource:
    cap = config.capture
    if kind == "camera":
        device: str | int = int(cap.device) if cap.device.isdigit() else cap.device
        return CameraFrameSource(device, CaptureFormat(width=cap.width, height=cap.height, fourcc=cap.fourcc))
    if kind == "pattern":
        return PatternFrameSource(cap.width, cap.height, patterns=tuple(patterns or ("quadrants",)))
    if kind == "replay":
        if replay_dir is None:
            raise ValueError("replay source needs a directory")
        return ReplayFrameSource(replay_dir, loop=loop)
    raise ValueError(f"Unknown source kind: {kind}")


def build_sink(config: PipelineConfig) -> OutputSink:
    out = config.output
    if out.mode == "file":
        return FileSink(Path(out.directory), out.filename)
    settings = EncoderSettings(
        width=out.width,
        height=out.height,
        frame_rate=config.runtime.frame_rate,
        output=out.stream_path,
        binary=out.encoder,
        codec=out.codec,
        preset=out.preset,
    )
    return StreamSink(settings, close_timeout_s=out.close_timeout_s)


def build_driver(
    config: PipelineConfig,
    font: FontAsset,
    source: FrameSource,
    sink: OutputSink | None = None,
) -> PipelineDriver:
    performance = PerformanceController(
        PerformanceTargets(
            cpu_percent_max=config.runtime.cpu_percent_max,
            rss_mb_max=config.runtime.rss_mb_max,
            fps_min=config.runtime.frame_rate / 2,
        )
    )
    return PipelineDriver(
        config,
        source=source,
        sink=sink or build_sink(config),
        processor=FrameProcessor(config, font),
        performance=performance,
    )
