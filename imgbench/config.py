"""Manages benchmark configuration via an INI file."""

import configparser
import dataclasses
import logging
from pathlib import Path
from typing import Optional, Tuple

from imgbench.logging_setup import get_app_data_dir

log = logging.getLogger(__name__)

MIB = 1024 * 1024

ALL_LIBRARIES = ("pillow", "turbojpeg", "opencv", "vips")

DEFAULT_CONFIG = {
    "bench": {
        "target_width": "256",
        "target_height": "256",
        "quality": "75",
        "destination_capacity_mb": "4",
        "fixture": "",  # Empty means the packaged square_1374.jpg
        "fixture_width": "1374",
        "fixture_height": "1374",
        "libraries": ",".join(ALL_LIBRARIES),
        "baseline": "pillow",
    },
    "driver": {
        "warmup_count": "3",
        "iteration_count": "3",
        "invocations_per_iteration": "8",
        "memory": "true",
        "hide_columns": "error,stddev,ratio_sd",
    },
    "vips": {
        "cache_max": "0",  # 0 disables the libvips operation cache
    },
}


def split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


class AppConfig:
    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or get_app_data_dir() / "imgbench.ini"
        self.config = configparser.ConfigParser()
        self.load()

    def load(self):
        """Loads the config, creating it with defaults if it doesn't exist."""
        if not self.config_path.exists():
            log.info(f"Creating default config at {self.config_path}")
            self.config.read_dict(DEFAULT_CONFIG)
            self.save()
        else:
            log.info(f"Loading config from {self.config_path}")
            self.config.read(self.config_path)
            # Ensure all sections and keys exist
            for section, keys in DEFAULT_CONFIG.items():
                if not self.config.has_section(section):
                    self.config.add_section(section)
                for key, value in keys.items():
                    if not self.config.has_option(section, key):
                        self.config.set(section, key, value)
            self.save() # Save to add any missing keys

    def save(self):
        """Saves the current configuration to the INI file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w") as f:
                self.config.write(f)
            log.info(f"Saved config to {self.config_path}")
        except IOError as e:
            log.error(f"Failed to save config to {self.config_path}: {e}")

    def get(self, section, key, fallback=None):
        return self.config.get(section, key, fallback=fallback)

    def getint(self, section, key, fallback=None):
        return self.config.getint(section, key, fallback=fallback)

    def getfloat(self, section, key, fallback=None):
        return self.config.getfloat(section, key, fallback=fallback)

    def getboolean(self, section, key, fallback=None):
        return self.config.getboolean(section, key, fallback=fallback)

    def set(self, section, key, value):
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))


@dataclasses.dataclass(frozen=True)
class BenchSettings:
    """Immutable snapshot of everything an operation is allowed to read."""
    target_width: int = 256
    target_height: int = 256
    quality: int = 75
    destination_capacity: int = 4 * MIB
    fixture_path: Optional[Path] = None
    fixture_width: int = 1374
    fixture_height: int = 1374
    libraries: Tuple[str, ...] = ALL_LIBRARIES
    baseline: str = "pillow"
    vips_cache_max: int = 0

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "BenchSettings":
        fixture = cfg.get("bench", "fixture", fallback="")
        libraries = split_list(cfg.get("bench", "libraries"))
        unknown = [lib for lib in libraries if lib not in ALL_LIBRARIES]
        if unknown:
            log.warning("Ignoring unknown libraries in config: %s", ", ".join(unknown))
        return cls(
            target_width=cfg.getint("bench", "target_width"),
            target_height=cfg.getint("bench", "target_height"),
            quality=cfg.getint("bench", "quality"),
            destination_capacity=int(cfg.getfloat("bench", "destination_capacity_mb") * MIB),
            fixture_path=Path(fixture).expanduser() if fixture else None,
            fixture_width=cfg.getint("bench", "fixture_width"),
            fixture_height=cfg.getint("bench", "fixture_height"),
            libraries=tuple(lib for lib in libraries if lib in ALL_LIBRARIES),
            baseline=cfg.get("bench", "baseline").strip().lower(),
            vips_cache_max=cfg.getint("vips", "cache_max"),
        )


@dataclasses.dataclass(frozen=True)
class DriverSettings:
    warmup_count: int = 3
    iteration_count: int = 3
    invocations_per_iteration: int = 8
    memory: bool = True
    hide_columns: Tuple[str, ...] = ("error", "stddev", "ratio_sd")

    def __post_init__(self):
        if self.warmup_count < 0:
            raise ValueError(f"warmup_count must be >= 0, got {self.warmup_count}")
        if self.iteration_count < 1:
            raise ValueError(f"iteration_count must be >= 1, got {self.iteration_count}")
        if self.invocations_per_iteration < 1:
            raise ValueError(
                f"invocations_per_iteration must be >= 1, got {self.invocations_per_iteration}"
            )

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "DriverSettings":
        return cls(
            warmup_count=cfg.getint("driver", "warmup_count"),
            iteration_count=cfg.getint("driver", "iteration_count"),
            invocations_per_iteration=cfg.getint("driver", "invocations_per_iteration"),
            memory=cfg.getboolean("driver", "memory"),
            hide_columns=split_list(cfg.get("driver", "hide_columns")),
        )
