"""Monitoring and observability utilities."""

import logging
import time
from typing import Any, Dict, Optional

import structlog
from prometheus_client import Info, start_http_server

from .. import __version__
from .config import get_settings


# Service info
SERVICE_INFO = Info(
    "memoryflow_service",
    "Service information"
)


def setup_logging() -> None:
    """Setup structured logging."""
    settings = get_settings()

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.monitoring.log_format == "json"
            else structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if settings.debug else getattr(logging, settings.monitoring.log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)


def start_metrics_server() -> bool:
    """Start Prometheus metrics server if metrics are enabled."""
    settings = get_settings()
    if not settings.monitoring.enable_metrics:
        return False
    start_http_server(settings.monitoring.prometheus_port)
    set_service_info("memoryflow", __version__,
                     f"Memory validation engine ({settings.environment})")
    return True


class PerformanceTracker:
    """Performance tracking utility."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.start_time: Optional[float] = None
        self.duration: Optional[float] = None
        self.logger = get_logger(f"performance.{operation_name}")

    def start(self) -> None:
        """Start tracking."""
        self.start_time = time.perf_counter()
        self.logger.debug("Operation started", operation=self.operation_name)

    def end(self, additional_data: Optional[Dict[str, Any]] = None) -> float:
        """End tracking and return duration in seconds."""
        if self.start_time is None:
            raise RuntimeError("Must call start() before end()")

        self.duration = time.perf_counter() - self.start_time
        log_data = {
            "operation": self.operation_name,
            "duration": self.duration,
        }

        if additional_data:
            log_data.update(additional_data)

        self.logger.info("Operation completed", **log_data)
        return self.duration

    @property
    def elapsed_ms(self) -> float:
        """Elapsed milliseconds, live while running and frozen once ended."""
        if self.start_time is None:
            return 0.0
        if self.duration is not None:
            return self.duration * 1000
        return (time.perf_counter() - self.start_time) * 1000

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end({"success": exc_type is None})


def set_service_info(name: str, version: str, description: str) -> None:
    """Set service information metrics."""
    SERVICE_INFO.info({
        'name': name,
        'version': version,
        'description': description
    })
