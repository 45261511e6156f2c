"""
Engine configuration.

Configuration is a small YAML document:

    registry:
      sources: [path/to/domains]   # extra files or directories
      include_builtin: true        # load the packaged domains too
    logging:
      level: WARNING
    output:
      format: text                 # text | markdown | json

Every section is optional; missing keys fall back to DEFAULT_CONFIG. Without
an explicit file the packaged config.yaml is used.
"""
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional
import copy
import logging

import yaml

from .observability.reporter import FORMATS


logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    'registry': {
        'sources': [],
        'include_builtin': True,
    },
    'logging': {
        'level': 'WARNING',
    },
    'output': {
        'format': 'text',
    },
}

PACKAGE = "guidance_engine"
PACKAGED_CONFIG = "config.yaml"

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class EngineConfig:
    sources: List[str] = field(default_factory=list)
    include_builtin: bool = True
    log_level: str = 'WARNING'
    output_format: str = 'text'
    path: Optional[Path] = None

    @classmethod
    def from_file(cls, config_path) -> "EngineConfig":
        """
        Load configuration from a YAML file.

        Relative registry sources are resolved against the config file's
        directory.

        Raises:
            FileNotFoundError: if the file does not exist
            ValueError: if a section or value is invalid
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(path, encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}

        config = cls.from_dict(raw, base_dir=path.parent)
        config.path = path
        logger.debug(f"Loaded config from {path}")
        return config

    @classmethod
    def packaged(cls) -> "EngineConfig":
        """Load the config.yaml shipped inside the package."""
        text = resources.files(PACKAGE).joinpath(PACKAGED_CONFIG).read_text(encoding='utf-8')
        return cls.from_dict(yaml.safe_load(text) or {})

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], base_dir: Optional[Path] = None) -> "EngineConfig":
        if not isinstance(raw, dict):
            raise ValueError("Config must be a mapping")

        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in raw.items():
            if section not in merged:
                raise ValueError(f"Unknown config section: {section}")
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{section}' must be a mapping")
            merged[section].update(values)

        sources = merged['registry']['sources'] or []
        if not isinstance(sources, list):
            raise ValueError("registry.sources must be a list of paths")
        resolved = []
        for source in sources:
            source_path = Path(str(source))
            if base_dir is not None and not source_path.is_absolute():
                source_path = base_dir / source_path
            resolved.append(str(source_path))

        include_builtin = merged['registry']['include_builtin']
        if not isinstance(include_builtin, bool):
            raise ValueError("registry.include_builtin must be true or false")

        level = str(merged['logging']['level']).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}")

        output_format = merged['output']['format']
        if output_format not in FORMATS:
            raise ValueError(f"output.format must be one of {', '.join(FORMATS)}")

        return cls(
            sources=resolved,
            include_builtin=include_builtin,
            log_level=level,
            output_format=output_format
        )
