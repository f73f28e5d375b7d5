"""
Configuration loader for subutil.
Loads from config.yaml and allows CLI argument overrides.
"""

import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

DELIMITERS = {"crlf": "\r\n", "lf": "\n"}


@dataclass
class CodecConfig:
    encoding: str = "utf-8"
    output_delimiter: str = "crlf"  # used when the input's can't be detected

    @property
    def delimiter(self) -> str:
        try:
            return DELIMITERS[self.output_delimiter.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown output_delimiter {self.output_delimiter!r}; "
                f"expected one of {sorted(DELIMITERS)}"
            )


@dataclass
class RingConfig:
    capacity: int = 65536


@dataclass
class AnchorConfig:
    strict: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class AppConfig:
    """Top-level application configuration."""
    codec: CodecConfig = field(default_factory=CodecConfig)
    ring: RingConfig = field(default_factory=RingConfig)
    anchors: AnchorConfig = field(default_factory=AnchorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def update_from_args(self, args):
        """Override config values from CLI arguments."""
        if getattr(args, "encoding", None):
            self.codec.encoding = args.encoding
        if getattr(args, "strict", False):
            self.anchors.strict = True
        if getattr(args, "buffer_size", None):
            self.ring.capacity = args.buffer_size


def _dict_to_dataclass(cls, data: dict):
    """Recursively convert a dict to a dataclass, ignoring unknown keys."""
    if data is None:
        return cls()
    field_names = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in field_names}
    return cls(**filtered)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    Falls back to defaults if file is missing.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.warning(f"Config file not found at {path}, using defaults.")
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig(
        codec=_dict_to_dataclass(CodecConfig, raw.get("codec")),
        ring=_dict_to_dataclass(RingConfig, raw.get("ring")),
        anchors=_dict_to_dataclass(AnchorConfig, raw.get("anchors")),
        logging=_dict_to_dataclass(LoggingConfig, raw.get("logging")),
    )
    # Fail early on a bad delimiter name rather than mid-run
    _ = config.codec.delimiter

    logger.info(f"Configuration loaded from {path}")
    return config
