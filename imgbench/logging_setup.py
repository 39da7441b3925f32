"""Configures application-wide logging."""

import logging
import logging.handlers
import os
from pathlib import Path

def get_app_data_dir() -> Path:
    """Returns the application data directory."""
    home = os.getenv("IMGBENCH_HOME")
    if home:
        return Path(home)
    app_data = os.getenv("APPDATA")
    if app_data:
        return Path(app_data) / "imgbench"
    return Path.home() / ".imgbench"

def setup_logging(debug: bool = False):
    """Sets up logging to a rotating file in the app data directory and to stderr."""
    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "imgbench.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10*1024*1024, backupCount=5
    )
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)

    # The results table goes to stdout, so keep the console quiet unless asked
    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug else logging.WARNING)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(handler)
    root_logger.addHandler(console)

    logging.getLogger("PIL").setLevel(logging.INFO)
    logging.getLogger("pyvips").setLevel(logging.INFO)
