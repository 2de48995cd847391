"""Smoke tests for the config loader and cache directory resolution."""

from pathlib import Path

import pytest
import yaml
from importlib.resources import files

from clintrialdata import cache_dir, load_config


def test_default_yaml_loads():
    """Loading the built-in default YAML should succeed."""
    cfg = load_config()

    with files("clintrialdata.resources").joinpath("default_config.yaml").open() as fh:
        expected = yaml.safe_load(fh)
    assert cfg.version == expected["version"]
    assert cfg.repo == "Lovemore-Gakava/clinTrialData"
    assert cfg.timeout == 60
    assert cfg.token is None


def test_explicit_file_and_env_overrides(tmp_path: Path, monkeypatch):
    """Verify an explicit YAML is read and environment variables win."""
    path = tmp_path / "cfg.yaml"
    path.write_text("repo: someone/else\ntimeout: 5\n")

    assert load_config(path).repo == "someone/else"

    monkeypatch.setenv("CLINTRIALDATA_REPO", "env/repo")
    monkeypatch.setenv("GITHUB_PAT", "pat-token")
    cfg = load_config(path)
    assert cfg.repo == "env/repo"
    assert cfg.timeout == 5
    assert cfg.token == "pat-token"


def test_env_config_path(tmp_path: Path, monkeypatch):
    """Verify $CLINTRIALDATA_CONFIG is picked up."""
    path = tmp_path / "env.yaml"
    path.write_text("repo: from/env-file\n")
    monkeypatch.setenv("CLINTRIALDATA_CONFIG", str(path))
    assert load_config().repo == "from/env-file"


def test_missing_explicit_file(tmp_path: Path):
    """Verify a missing explicit path is an error."""
    with pytest.raises(RuntimeError, match="does not exist"):
        load_config(tmp_path / "missing.yaml")


@pytest.mark.parametrize("body", ["repo: not-a-repo\n", "timeout: -1\n", "unknown_key: 1\n", "- a list\n"])
def test_invalid_configuration(tmp_path: Path, body: str):
    """Verify invalid documents raise a readable RuntimeError."""
    path = tmp_path / "bad.yaml"
    path.write_text(body)
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_config(path)


def test_cache_dir_resolution(tmp_path: Path, monkeypatch):
    """Verify env var, then config key, then the platform default."""
    assert cache_dir() == tmp_path / "cache"

    monkeypatch.delenv("CLINTRIALDATA_CACHE_DIR")
    path = tmp_path / "cfg.yaml"
    path.write_text(f"cache_dir: {tmp_path / 'from-config'}\n")
    assert cache_dir(load_config(path)) == tmp_path / "from-config"

    default = cache_dir(load_config())
    assert "clinTrialData" in str(default)
