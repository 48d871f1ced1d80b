"""
PsExec Bridge - Command builder.
Renders the cmd.exe line for each logical operation and wraps it in the
PsExec invocation that runs it under the configured Windows account.
"""
import ntpath
import subprocess
from pathlib import Path
from typing import Dict, Optional, Union

from .config import BridgeConfig

# Placeholders are filled with double-quoted values; nothing else is escaped,
# so every value must come from paths.validate_* or the artifact manager.
TEMPLATES: Dict[str, str] = {
    "list":       "dir {path}",
    "fileinfo":   "dir {path} /a",
    "search":     "dir {pattern} /s /b",
    "copy":       "copy {source} {dest} /Y",
    "ensure_dir": "if not exist {contents} mkdir {path}",
    "mkdir":      "mkdir {path}",
    "rename":     "rename {path} {name}",
    "probe":      "(if exist {contents} (echo directory) else if exist {path} (echo file) else (echo missing))",
    "rmdir":      "rmdir /s /q {path}",
    "del":        "del /f /q {path}",
}

REDACTED = "********"


def quote(value: Union[str, Path]) -> str:
    """Quote a path argument for the remote cmd line."""
    text = str(value)
    # A trailing backslash would escape the closing quote once PsExec
    # re-parses the line; "C:\\dir\\." names the same directory.
    if text.endswith("\\"):
        text += "."
    return f'"{text}"'


def quote_arg(value: str) -> str:
    """Quote a local PsExec argument with the C runtime rules, byte for byte."""
    return subprocess.list2cmdline([str(value)])


def contents_of(path: str) -> str:
    """``<path>\\*``: exists only when ``path`` is a directory."""
    return ntpath.join(path, "*")


def render(operation: str, args: Dict[str, Union[str, Path]],
           capture: Optional[Path] = None) -> str:
    try:
        template = TEMPLATES[operation]
    except KeyError:
        raise ValueError(f"Unknown remote operation: {operation}")
    line = template.format(**{k: quote(v) for k, v in args.items()})
    if capture is not None:
        line += f" > {quote(capture)}"
    return line


def build_command_line(config: BridgeConfig, remote_command: str) -> str:
    """The full local command line: PsExec, credentials, then ``cmd /c "<remote_command>"``."""
    parts = [quote_arg(config.psexec_path), "-accepteula", "-nobanner"]
    if config.remote_host:
        parts.append("\\\\" + config.remote_host.lstrip("\\"))
    parts += ["-u", quote_arg(config.username), "-p", quote_arg(config.password)]
    parts.append(f'cmd /c "{remote_command}"')
    return " ".join(parts)


def redact(config: BridgeConfig, command_line: str) -> str:
    if not config.password:
        return command_line
    return command_line.replace(f"-p {quote_arg(config.password)} ", f"-p {REDACTED} ")
