"""Configuration module for agentlens.

Loads configuration from defaults, an optional YAML file and environment
variables, in increasing order of precedence.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

CONFIG_FILENAME = "agentlens.yaml"
INDEX_FILENAME = "index.json"

_TRUE_VALUES = ("1", "true", "yes")
_FALSE_VALUES = ("0", "false", "no")

# field name -> environment variable
ENV_VARS = {
    "ollama_url": "AGENTLENS_OLLAMA_URL",
    "embed_model": "AGENTLENS_EMBED_MODEL",
    "embed_dimensions": "AGENTLENS_EMBED_DIMENSIONS",
    "embed_timeout": "AGENTLENS_EMBED_TIMEOUT",
    "chunk_max_tokens": "AGENTLENS_CHUNK_MAX_TOKENS",
    "chunk_overlap_tokens": "AGENTLENS_CHUNK_OVERLAP_TOKENS",
    "hybrid_enabled": "AGENTLENS_HYBRID",
    "hybrid_k": "AGENTLENS_HYBRID_K",
    "output_dir": "AGENTLENS_OUTPUT_DIR",
    "respect_gitignore": "AGENTLENS_RESPECT_GITIGNORE",
    "large_file_lines": "AGENTLENS_LARGE_FILE_LINES",
    "port": "AGENTLENS_PORT",
}


@dataclass
class Config:
    """Application configuration."""

    ollama_url: str = "http://localhost:11434"
    embed_model: str = "nomic-embed-text"
    embed_dimensions: int = 768
    embed_timeout: float = 120.0
    chunk_max_tokens: int = 512
    chunk_overlap_tokens: int = 50
    hybrid_enabled: bool = True
    hybrid_k: float = 60.0
    output_dir: str = ".agentlens"
    respect_gitignore: bool = True
    large_file_lines: int = 500
    port: int = 8080

    @classmethod
    def from_env(cls, project_root: Path | None = None) -> "Config":
        """Load configuration from the YAML file and environment variables.

        Args:
            project_root: Directory searched for ``agentlens.yaml``. The
                ``AGENTLENS_CONFIG`` env var, when set, names the file instead.
        """
        raw: dict[str, object] = {}

        config_path = _config_file(project_root)
        if config_path is not None:
            raw.update(_load_yaml(config_path))

        for name, env_var in ENV_VARS.items():
            value = os.getenv(env_var)
            if value is not None:
                raw[name] = value

        config = cls()
        for f in fields(cls):
            if f.name not in raw:
                continue
            setattr(config, f.name, _coerce(f.name, f.type, raw[f.name]))

        config.validate()
        return config

    def validate(self) -> None:
        """Check value ranges; raises ValueError naming the offending variable."""
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"Invalid AGENTLENS_PORT value '{self.port}': "
                f"Port must be between 1 and 65535, got {self.port}"
            )
        if self.embed_dimensions <= 0:
            raise ValueError(
                f"Invalid AGENTLENS_EMBED_DIMENSIONS value '{self.embed_dimensions}': "
                "must be positive"
            )
        if self.embed_timeout <= 0:
            raise ValueError(
                f"Invalid AGENTLENS_EMBED_TIMEOUT value '{self.embed_timeout}': "
                "must be positive"
            )
        if self.chunk_max_tokens <= 0:
            raise ValueError(
                f"Invalid AGENTLENS_CHUNK_MAX_TOKENS value '{self.chunk_max_tokens}': "
                "must be positive"
            )
        if not 0 <= self.chunk_overlap_tokens < self.chunk_max_tokens:
            raise ValueError(
                f"Invalid AGENTLENS_CHUNK_OVERLAP_TOKENS value '{self.chunk_overlap_tokens}': "
                f"must be between 0 and chunk_max_tokens ({self.chunk_max_tokens})"
            )
        if self.hybrid_k <= 0:
            raise ValueError(f"Invalid AGENTLENS_HYBRID_K value '{self.hybrid_k}': must be positive")
        if self.large_file_lines <= 0:
            raise ValueError(
                f"Invalid AGENTLENS_LARGE_FILE_LINES value '{self.large_file_lines}': "
                "must be positive"
            )

    def index_path(self, root: Path) -> Path:
        """Location of the index snapshot for a project root."""
        return root / self.output_dir / INDEX_FILENAME


def _config_file(project_root: Path | None) -> Path | None:
    explicit = os.getenv("AGENTLENS_CONFIG")
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ValueError(f"Invalid AGENTLENS_CONFIG value '{explicit}': file not found")
        return path

    if project_root is not None:
        path = project_root / CONFIG_FILENAME
        if path.is_file():
            return path
    return None


def _load_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file {path}: expected a mapping at the top level")

    unknown = set(data) - set(ENV_VARS)
    if unknown:
        raise ValueError(f"Invalid config file {path}: unknown keys {sorted(unknown)}")
    return data


def _coerce(name: str, type_: object, value: object) -> object:
    """Convert a YAML or env value to the field's type."""
    env_var = ENV_VARS[name]
    try:
        if type_ in (bool, "bool"):
            return _parse_bool(value)
        if type_ in (int, "int"):
            if isinstance(value, bool):
                raise ValueError("expected an integer")
            return int(value)
        if type_ in (float, "float"):
            if isinstance(value, bool):
                raise ValueError("expected a number")
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid {env_var} value '{value}': {e}") from e


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError("expected one of 1/0, true/false, yes/no")
