"""Tests for config module."""

from pathlib import Path

import pytest

from agentlens.config import Config


def test_config_defaults():
    """Test config loads with defaults when no env vars or file are set."""
    config = Config.from_env()
    assert config.ollama_url == "http://localhost:11434"
    assert config.embed_model == "nomic-embed-text"
    assert config.embed_dimensions == 768
    assert config.embed_timeout == 120.0
    assert config.chunk_max_tokens == 512
    assert config.chunk_overlap_tokens == 50
    assert config.hybrid_enabled is True
    assert config.hybrid_k == 60.0
    assert config.output_dir == ".agentlens"
    assert config.respect_gitignore is True
    assert config.large_file_lines == 500
    assert config.port == 8080


def test_config_from_env(monkeypatch):
    """Test config loads from environment variables."""
    monkeypatch.setenv("AGENTLENS_OLLAMA_URL", "http://gpu-box:11434")
    monkeypatch.setenv("AGENTLENS_EMBED_MODEL", "mxbai-embed-large")
    monkeypatch.setenv("AGENTLENS_EMBED_DIMENSIONS", "1024")
    monkeypatch.setenv("AGENTLENS_HYBRID", "no")
    monkeypatch.setenv("AGENTLENS_HYBRID_K", "30")
    monkeypatch.setenv("AGENTLENS_PORT", "9000")

    config = Config.from_env()
    assert config.ollama_url == "http://gpu-box:11434"
    assert config.embed_model == "mxbai-embed-large"
    assert config.embed_dimensions == 1024
    assert config.hybrid_enabled is False
    assert config.hybrid_k == 30.0
    assert config.port == 9000


def test_config_from_env_creates_new_instances():
    """Test Config.from_env() creates new instances each time."""
    config1 = Config.from_env()
    config2 = Config.from_env()
    assert config1 is not config2


def test_config_yaml_file(tmp_path: Path):
    """Test config reads agentlens.yaml from the project root."""
    (tmp_path / "agentlens.yaml").write_text(
        "embed_model: all-minilm\nembed_dimensions: 384\nhybrid_enabled: false\n"
    )

    config = Config.from_env(project_root=tmp_path)
    assert config.embed_model == "all-minilm"
    assert config.embed_dimensions == 384
    assert config.hybrid_enabled is False


def test_config_env_overrides_yaml(tmp_path: Path, monkeypatch):
    """Test environment variables take precedence over the YAML file."""
    (tmp_path / "agentlens.yaml").write_text("embed_model: all-minilm\n")
    monkeypatch.setenv("AGENTLENS_EMBED_MODEL", "nomic-embed-text")

    config = Config.from_env(project_root=tmp_path)
    assert config.embed_model == "nomic-embed-text"


def test_config_explicit_file(tmp_path: Path, monkeypatch):
    """Test AGENTLENS_CONFIG points at a config file outside the root."""
    path = tmp_path / "custom.yaml"
    path.write_text("large_file_lines: 1000\n")
    monkeypatch.setenv("AGENTLENS_CONFIG", str(path))

    config = Config.from_env()
    assert config.large_file_lines == 1000


def test_config_explicit_file_missing(tmp_path: Path, monkeypatch):
    """Test a missing AGENTLENS_CONFIG file is an error."""
    monkeypatch.setenv("AGENTLENS_CONFIG", str(tmp_path / "nope.yaml"))
    with pytest.raises(ValueError, match="Invalid AGENTLENS_CONFIG"):
        Config.from_env()


def test_config_empty_yaml(tmp_path: Path):
    """Test an empty YAML file leaves the defaults in place."""
    (tmp_path / "agentlens.yaml").write_text("")
    assert Config.from_env(project_root=tmp_path) == Config()


def test_config_yaml_unknown_key(tmp_path: Path):
    """Test unknown YAML keys are rejected."""
    (tmp_path / "agentlens.yaml").write_text("embedding_model: x\n")
    with pytest.raises(ValueError, match="unknown keys"):
        Config.from_env(project_root=tmp_path)


def test_config_yaml_not_mapping(tmp_path: Path):
    """Test a YAML file that is not a mapping is rejected."""
    (tmp_path / "agentlens.yaml").write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="expected a mapping"):
        Config.from_env(project_root=tmp_path)


def test_config_invalid_port_non_numeric(monkeypatch):
    """Test config raises error for non-numeric port."""
    monkeypatch.setenv("AGENTLENS_PORT", "not_a_number")
    with pytest.raises(ValueError, match="Invalid AGENTLENS_PORT"):
        Config.from_env()


def test_config_invalid_port_out_of_range(monkeypatch):
    """Test config raises error for port out of valid range."""
    monkeypatch.setenv("AGENTLENS_PORT", "70000")
    with pytest.raises(ValueError, match="Port must be between 1 and 65535"):
        Config.from_env()


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1", True), ("true", True), ("YES", True), ("0", False), ("False", False), ("no", False)],
)
def test_config_boolean_values(monkeypatch, value: str, expected: bool):
    """Test boolean env vars accept 1/0, true/false and yes/no."""
    monkeypatch.setenv("AGENTLENS_RESPECT_GITIGNORE", value)
    assert Config.from_env().respect_gitignore is expected


def test_config_invalid_boolean(monkeypatch):
    """Test an unrecognised boolean value raises."""
    monkeypatch.setenv("AGENTLENS_HYBRID", "maybe")
    with pytest.raises(ValueError, match="Invalid AGENTLENS_HYBRID"):
        Config.from_env()


def test_config_overlap_must_be_smaller_than_chunk(monkeypatch):
    """Test overlap tokens must stay below the chunk size."""
    monkeypatch.setenv("AGENTLENS_CHUNK_MAX_TOKENS", "100")
    monkeypatch.setenv("AGENTLENS_CHUNK_OVERLAP_TOKENS", "100")
    with pytest.raises(ValueError, match="AGENTLENS_CHUNK_OVERLAP_TOKENS"):
        Config.from_env()


def test_config_index_path(tmp_path: Path):
    """Test the index lives under the output dir of the project root."""
    config = Config(output_dir=".cache/lens")
    assert config.index_path(tmp_path) == tmp_path / ".cache" / "lens" / "index.json"
