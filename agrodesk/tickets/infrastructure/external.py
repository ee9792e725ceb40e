"""
SLA Configuration Source
========================

YAML-backed SLA configuration with hot reload:
- SLAConfigManager: thread-safe holder of the current SLAConfig
- ConfigFileHandler: watchdog handler reloading on file change

The file looks like::

    sla_targets:
      critical: 30
      urgent: 120
      normal: 480
"""

import threading
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from agrodesk.core import ConfigurationException
from agrodesk.shared.infrastructure.logging import get_logger
from agrodesk.tickets.application.services import ISLAConfigProvider
from agrodesk.tickets.domain import SLAConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA config file changes."""

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA config file changed", extra={"path": str(event.src_path)})
            self.config_manager.reload()


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service. A reload that fails validation keeps
    the previous configuration in place.
    """

    def __init__(self, config: Optional[SLAConfig] = None):
        self._config: Optional[SLAConfig] = config
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: file present but unreadable or invalid
        """
        self._path = path
        try:
            config = self._load_from_file(path)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration in {path}",
                {"path": str(path), "error": str(e)}
            ) from e

        with self._lock:
            self._config = config
        logger.info(
            "SLA configuration loaded",
            extra={"path": str(path), "sla_targets": config.sla_targets}
        )
        return config

    def _load_from_file(self, path: Path) -> SLAConfig:
        """Load and parse YAML config file."""
        if not path.exists():
            logger.warning("SLA config file not found, using defaults", extra={"path": str(path)})
            return SLAConfig()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return SLAConfig.model_validate(data)

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError) as e:
            logger.error(
                "Failed to reload SLA config, keeping previous",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded", extra={"sla_targets": new_config.sla_targets})
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or the platform has no
        usable file notification (e.g. some container runtimes).
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA config file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching SLA config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_config(self) -> SLAConfig:
        with self._lock:
            if self._config is None:
                raise ConfigurationException("SLA configuration not loaded")
            return self._config
