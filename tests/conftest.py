import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from psexec_bridge.app import create_app
from psexec_bridge.artifacts import ArtifactManager
from psexec_bridge.config import BridgeConfig
from psexec_bridge.executor import RemoteCommandRunner, RemoteProcess
from psexec_bridge.handlers import FileOperations
from psexec_bridge.models import RemoteCommandResult

RE_CAPTURE = re.compile(r'> "([^"]+)"$')
RE_COPY = re.compile(r'^copy "([^"]+)" "([^"]+)" /Y')
RE_WINDOWS = re.compile(r"^[A-Za-z]:\\")

LISTING = """\
 Volume in drive C has no label.
 Volume Serial Number is 1234-ABCD

 Directory of C:\\Users\\Public

03/14/2024  09:12 AM    <DIR>          .
03/14/2024  09:12 AM    <DIR>          ..
03/14/2024  09:12 AM    <DIR>          Sub1
03/14/2024  09:15 AM             1,234 notes.txt
               1 File(s)          1,234 bytes
               3 Dir(s)  100,000,000,000 bytes free
"""


@dataclass
class Rule:
    prefix: str
    output: str = ""
    exit_code: int = 0
    stderr: Optional[str] = None
    copy_bytes: Optional[bytes] = b"fake file contents"
    error: Optional[Exception] = None


class FakeRemoteProcess(RemoteProcess):
    """
    Stands in for PsExec. Rules are matched on the start of the cmd /c line,
    newest first. Capture redirects and local copy targets are materialized
    the way the remote side would write them.
    """

    def __init__(self):
        self.rules: List[Rule] = []
        self.calls: List[str] = []
        self.remote_files = {}
        self._lock = threading.Lock()

    def on(self, prefix: str, **kwargs) -> Rule:
        rule = Rule(prefix=prefix, **kwargs)
        self.rules.insert(0, rule)
        return rule

    @property
    def remote_commands(self) -> List[str]:
        return [remote_part(c) for c in self.calls]

    def execute_remote(self, command_line: str, timeout_s: float) -> RemoteCommandResult:
        with self._lock:
            self.calls.append(command_line)
        remote = remote_part(command_line)
        rule = next((r for r in self.rules if remote.startswith(r.prefix)), Rule(prefix=""))
        if rule.error is not None:
            raise rule.error

        capture = RE_CAPTURE.search(remote)
        if capture:
            Path(capture.group(1)).write_text(rule.output, encoding="utf-8")

        copy = RE_COPY.match(remote)
        if copy and rule.exit_code == 0 and rule.copy_bytes is not None:
            source, dest = copy.groups()
            if RE_WINDOWS.match(dest):
                self.remote_files[dest] = Path(source).read_bytes()
            else:
                Path(dest).write_bytes(rule.copy_bytes)

        stdout = "" if capture else rule.output
        return RemoteCommandResult(
            exit_succeeded=rule.exit_code == 0,
            captured_output=stdout,
            error_text=rule.stderr,
            exit_code=rule.exit_code,
        )


def remote_part(command_line: str) -> str:
    return command_line.split('cmd /c "', 1)[1][:-1]


@pytest.fixture
def config(tmp_path):
    return BridgeConfig(
        psexec_path="C:\\Tools\\PsExec.exe",
        username="svc-files",
        password="s3cret",
        jwt_secret="test-secret",
        data_dir=tmp_path / "data",
        command_timeout_s=5,
    )


@pytest.fixture
def fake():
    return FakeRemoteProcess()


@pytest.fixture
def artifacts(config):
    manager = ArtifactManager(config)
    manager.ensure_dirs()
    return manager


@pytest.fixture
def runner(config, artifacts, fake):
    return RemoteCommandRunner(config, artifacts, process=fake)


@pytest.fixture
def ops(config, runner, artifacts):
    return FileOperations(config, runner, artifacts)


@pytest.fixture
def client(config, fake):
    with TestClient(create_app(config, process=fake)) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    resp = client.post("/auth/login", json={"username": "svc-files", "password": "s3cret"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}
