from pathlib import Path

import pytest

from psexec_bridge.config import BridgeConfig, ConfigError

REQUIRED = {
    "PSEXEC_PATH": "C:\\Tools\\PsExec.exe",
    "WINDOWS_USERNAME": "svc-files",
    "WINDOWS_PASSWORD": "s3cret",
}


@pytest.fixture
def env(monkeypatch):
    for name in ("REMOTE_HOST", "ALLOWED_ORIGINS", "UPLOAD_FAIL_FAST", "COMMAND_TIMEOUT_S", "BRIDGE_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


def test_defaults(env):
    config = BridgeConfig.from_env()
    assert config.psexec_path == "C:\\Tools\\PsExec.exe"
    assert config.remote_host is None
    assert config.upload_fail_fast is True
    assert config.preview_retention_s == 3600
    assert config.allowed_origins == ("http://localhost:3001",)
    assert config.captures_dir == Path("bridge_data").resolve() / "captures"


def test_overrides(env, tmp_path):
    env.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")
    env.setenv("UPLOAD_FAIL_FAST", "false")
    env.setenv("COMMAND_TIMEOUT_S", "30")
    env.setenv("BRIDGE_DATA_DIR", str(tmp_path))
    config = BridgeConfig.from_env()
    assert config.allowed_origins == ("https://a.example", "https://b.example")
    assert config.upload_fail_fast is False
    assert config.command_timeout_s == 30
    assert config.previews_dir == tmp_path / "previews"


def test_missing_required(env):
    env.delenv("WINDOWS_PASSWORD")
    with pytest.raises(ConfigError, match="WINDOWS_PASSWORD"):
        BridgeConfig.from_env()


def test_bad_integer(env):
    env.setenv("COMMAND_TIMEOUT_S", "soon")
    with pytest.raises(ConfigError):
        BridgeConfig.from_env()
