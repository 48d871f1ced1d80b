"""
PsExec Bridge - Artifact manager.
Owns the local temp-file pools the remote side writes into: command output
captures, transfer staging (download and upload), and preview copies.

Names are generated from random entropy, never from caller input.
"""
import logging
import re
import secrets
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from .config import BridgeConfig

logger = logging.getLogger(__name__)

RE_PREVIEW_NAME = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,10})?$")


class Role(str, Enum):
    CAPTURE = "capture"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    PREVIEW = "preview"


@dataclass(frozen=True)
class Artifact:
    role: Role
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


class ArtifactManager:
    def __init__(self, config: BridgeConfig):
        self.config = config
        self._dirs = {
            Role.CAPTURE: config.captures_dir,
            Role.DOWNLOAD: config.staging_dir,
            Role.UPLOAD: config.staging_dir,
            Role.PREVIEW: config.previews_dir,
        }

    def directory(self, role: Role) -> Path:
        return self._dirs[role]

    def ensure_dirs(self) -> None:
        for d in set(self._dirs.values()):
            d.mkdir(parents=True, exist_ok=True)

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    def allocate(self, role: Role, extension: str = "") -> Artifact:
        """Reserve a unique path in the role's pool. The file itself is not created."""
        ext = f".{extension.lstrip('.').lower()}" if extension else ""
        token = secrets.token_hex(16)
        if role is Role.CAPTURE:
            name = f"output_{time.time_ns()}_{token}.txt"
        else:
            name = f"{token}{ext}"
        directory = self.directory(role)
        directory.mkdir(parents=True, exist_ok=True)
        return Artifact(role=role, path=directory / name)

    def release(self, artifact: Optional[Artifact]) -> None:
        """Delete the artifact if present. Never raises."""
        if artifact is None:
            return
        try:
            artifact.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete %s artifact %s: %s", artifact.role.value, artifact.path, e)

    @contextmanager
    def managed(self, role: Role, extension: str = "") -> Iterator[Artifact]:
        artifact = self.allocate(role, extension)
        try:
            yield artifact
        finally:
            self.release(artifact)

    # ─── Sweeps ───────────────────────────────────────────────────────────────

    def purge(self, role: Role) -> int:
        """Empty the role's directory. Returns the number of files removed."""
        directory = self.directory(role)
        if not directory.exists():
            return 0
        removed = 0
        for entry in directory.iterdir():
            if not entry.is_file():
                continue
            try:
                entry.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not delete stale artifact %s: %s", entry, e)
        return removed

    def sweep_previews(self, now: Optional[float] = None) -> int:
        """Remove preview copies older than the retention window."""
        directory = self.directory(Role.PREVIEW)
        if not directory.exists():
            return 0
        now = time.time() if now is None else now
        cutoff = now - self.config.preview_retention_s
        removed = 0
        for entry in directory.iterdir():
            try:
                if entry.is_file() and entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    removed += 1
            except OSError as e:
                logger.warning("Could not sweep preview %s: %s", entry, e)
        if removed:
            logger.info("Preview sweep removed %d file(s)", removed)
        return removed

    def startup_sweep(self) -> None:
        self.ensure_dirs()
        stale = self.purge(Role.CAPTURE) + self.purge(Role.DOWNLOAD)
        if stale:
            logger.info("Removed %d stale capture/staging file(s)", stale)
        self.sweep_previews()

    # ─── Published previews ───────────────────────────────────────────────────

    def preview_artifact(self, name: str) -> Optional[Artifact]:
        """Look up a published preview by its generated name."""
        if not RE_PREVIEW_NAME.match(name):
            return None
        path = self.directory(Role.PREVIEW) / name
        if not path.is_file():
            return None
        return Artifact(role=Role.PREVIEW, path=path)

    def preview_url(self, artifact: Artifact) -> str:
        return f"/previews/{artifact.name}"
