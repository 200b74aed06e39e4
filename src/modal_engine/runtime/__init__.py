"""Runtime services: telemetry and process-wide configuration."""

from . import telemetry
from .config import EngineConfig

__all__ = ["EngineConfig", "telemetry"]
