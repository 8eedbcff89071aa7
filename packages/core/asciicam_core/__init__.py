"""Core services: configuration, logging, pacing, diagnostics and the pipeline driver."""

from .config import ConfigError, PipelineConfig, load_config, load_font, override, save_config, validate_config
from .diagnostics import build_doctor_payload
from .performance import BudgetStatus, FramePacer, PerformanceController, PerformanceTargets
from .pipeline import FrameProcessor, PipelineDriver, RunReport, build_driver, build_sink, build_source

__all__ = [
    "BudgetStatus",
    "ConfigError",
    "FramePacer",
    "FrameProcessor",
    "PerformanceController",
    "PerformanceTargets",
    "PipelineConfig",
    "PipelineDriver",
    "RunReport",
    "build_doctor_payload",
    "build_driver",
    "build_sink",
    "build_source",
    "load_config",
    "load_font",
    "override",
    "save_config",
    "validate_config",
]
