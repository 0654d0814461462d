"""YAML configuration for report and diagram output."""

from pathlib import Path
from typing import Literal, Optional
import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_FILE = '.threatspec.yaml'


class ThreatSpecConfigError(Exception):
    """Raised when the configuration file is malformed or invalid."""
    pass


class ReportConfig(BaseModel):
    format: Literal['markdown', 'html'] = 'markdown'
    output: Optional[str] = None  # None prints to stdout


class DiagramConfig(BaseModel):
    enabled: bool = True
    format: Literal['png', 'svg', 'pdf', 'dot', 'mermaid'] = 'png'
    output: str = 'threatspec'
    rankdir: Literal['LR', 'TB', 'RL', 'BT'] = 'LR'


class ThreatSpecConfig(BaseModel):
    """Top-level configuration. Every section is optional."""
    title: Optional[str] = None
    report: ReportConfig = Field(default_factory=ReportConfig)
    diagram: DiagramConfig = Field(default_factory=DiagramConfig)


def load_config(path: Optional[str | Path] = None) -> ThreatSpecConfig:
    """
    Load configuration from `path`, or from .threatspec.yaml in the working
    directory when no path is given. A missing default file yields defaults;
    a missing explicit path is an error.
    """
    if path is None:
        config_path = Path(DEFAULT_CONFIG_FILE)
        if not config_path.exists():
            return ThreatSpecConfig()
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise ThreatSpecConfigError(f"Config file does not exist: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ThreatSpecConfigError(f"YAML parse error in {config_path}: {e}")

    if data is None:
        return ThreatSpecConfig()
    if not isinstance(data, dict):
        raise ThreatSpecConfigError(f"{config_path} must contain a mapping")
    try:
        return ThreatSpecConfig(**data)
    except ValidationError as e:
        raise ThreatSpecConfigError(f"Config validation error: {e}")
