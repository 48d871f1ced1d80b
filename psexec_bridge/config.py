"""
PsExec Bridge - Configuration.
One immutable value, built from the environment at startup and passed
to every component that needs it.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


class ConfigError(RuntimeError):
    pass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


DEV_JWT_SECRET = "change-me"


@dataclass(frozen=True)
class BridgeConfig:
    # ─── Remote host ──────────────────────────────────────────────────────────
    psexec_path: str
    username: str
    password: str
    remote_host: Optional[str] = None
    console_encoding: str = "utf-8"

    # ─── Auth ─────────────────────────────────────────────────────────────────
    jwt_secret: str = DEV_JWT_SECRET
    token_ttl_hours: int = 24
    bypass_auth: bool = False

    # ─── Execution limits ─────────────────────────────────────────────────────
    command_timeout_s: int = 120
    max_concurrent_commands: int = 8

    # ─── Artifacts ────────────────────────────────────────────────────────────
    data_dir: Path = Path("bridge_data")
    preview_retention_s: int = 3600
    preview_sweep_interval_s: int = 600
    preview_max_chars: int = 100_000
    upload_max_bytes: int = 100 * 1024 * 1024
    upload_fail_fast: bool = True

    # ─── HTTP ─────────────────────────────────────────────────────────────────
    default_path: str = "C:\\Users\\Public"
    allowed_origins: Tuple[str, ...] = field(default_factory=lambda: ("http://localhost:3001",))
    port: int = 5000

    @property
    def captures_dir(self) -> Path:
        return self.data_dir / "captures"

    @property
    def staging_dir(self) -> Path:
        return self.data_dir / "staging"

    @property
    def previews_dir(self) -> Path:
        return self.data_dir / "previews"

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        missing = [
            name for name in ("PSEXEC_PATH", "WINDOWS_USERNAME", "WINDOWS_PASSWORD")
            if not os.environ.get(name)
        ]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        origins = os.environ.get("ALLOWED_ORIGINS")
        return cls(
            psexec_path=os.environ["PSEXEC_PATH"],
            username=os.environ["WINDOWS_USERNAME"],
            password=os.environ["WINDOWS_PASSWORD"],
            remote_host=os.environ.get("REMOTE_HOST") or None,
            console_encoding=os.environ.get("CONSOLE_ENCODING", "utf-8"),
            jwt_secret=os.environ.get("JWT_SECRET", DEV_JWT_SECRET),
            token_ttl_hours=_env_int("TOKEN_TTL_HOURS", 24),
            bypass_auth=_env_bool("BYPASS_AUTH", False),
            command_timeout_s=_env_int("COMMAND_TIMEOUT_S", 120),
            max_concurrent_commands=_env_int("MAX_CONCURRENT_COMMANDS", 8),
            data_dir=Path(os.environ.get("BRIDGE_DATA_DIR", "bridge_data")).resolve(),
            preview_retention_s=_env_int("PREVIEW_RETENTION_S", 3600),
            preview_sweep_interval_s=_env_int("PREVIEW_SWEEP_INTERVAL_S", 600),
            preview_max_chars=_env_int("PREVIEW_MAX_CHARS", 100_000),
            upload_max_bytes=_env_int("UPLOAD_MAX_BYTES", 100 * 1024 * 1024),
            upload_fail_fast=_env_bool("UPLOAD_FAIL_FAST", True),
            default_path=os.environ.get("DEFAULT_PATH", "C:\\Users\\Public"),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip())
            if origins else ("http://localhost:3001",),
            port=_env_int("PORT", 5000),
        )
