"""
Structured logging for notemancy operations.
Vector builds, store persistence and note selection all report through here.
"""

import logging
import os
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for build, persistence and selection operations."""

    def __init__(self, name: str = "notemancy", level: str = None):
        self.logger = logging.getLogger(name)
        level_name = (level or os.getenv("NOTEMANCY_LOG_LEVEL", "WARNING")).upper()
        self.logger.setLevel(getattr(logging, level_name, logging.WARNING))

        # Create handler if not already set (stderr keeps stdout free for piping)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_level(self, level: str) -> None:
        """Change the logger level by name (DEBUG, INFO, WARNING, ...)."""
        self.logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "rejected", "corrupt"):
            self.logger.error(message)
        elif status in ("skipped", "warning"):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_vector_operation(self, operation: str, note_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a per-note vector operation."""
        log_details = {"note_id": note_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_build_event(self, vault: str, event: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a vault-level build lifecycle event."""
        log_details = {"vault": vault}
        if details:
            log_details.update(details)

        self.log_operation(f"build.{event}", status, log_details)

    def log_store_event(self, event: str, path: str, status: str = "success", details: Dict[str, Any] = None):
        """Log store persistence events (save, load, remove)."""
        log_details = {"path": path}
        if details:
            log_details.update(details)

        self.log_operation(f"store.{event}", status, log_details)

    def log_selection_event(self, vault: str, event: str, status: str = "success", details: Dict[str, Any] = None):
        """Log selection resolver events."""
        log_details = {"vault": vault}
        if details:
            # Titles can be long; keep the log line readable
            for k, v in details.items():
                if isinstance(v, str) and len(v) > 80:
                    log_details[k] = v[:77] + "..."
                else:
                    log_details[k] = v

        self.log_operation(f"selection.{event}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
