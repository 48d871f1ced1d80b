from dataclasses import replace
from pathlib import Path

import pytest

from psexec_bridge.command_builder import build_command_line, contents_of, quote, quote_arg, redact, render


def test_render_quotes_every_argument():
    assert render("list", {"path": "C:\\Users\\Public"}) == 'dir "C:\\Users\\Public"'
    assert render("rename", {"path": "C:\\a\\old.txt", "name": "new.txt"}) == \
        'rename "C:\\a\\old.txt" "new.txt"'


def test_render_appends_capture_redirect():
    line = render("fileinfo", {"path": "C:\\a.txt"}, capture=Path("/data/captures/out.txt"))
    assert line == 'dir "C:\\a.txt" /a > "/data/captures/out.txt"'


def test_trailing_backslash_cannot_escape_the_quote():
    assert quote("C:\\") == '"C:\\."'
    assert render("list", {"path": "C:\\"}) == 'dir "C:\\."'


def test_probe_wraps_branches_so_the_redirect_covers_all():
    line = render("probe", {"contents": contents_of("C:\\x"), "path": "C:\\x"}, capture=Path("/c/o.txt"))
    assert line.startswith('(if exist "C:\\x\\*" (echo directory) else if exist "C:\\x" (echo file)')
    assert line.endswith(') > "/c/o.txt"')


def test_unknown_operation():
    with pytest.raises(ValueError):
        render("format", {"path": "C:\\"})


def test_command_line_carries_credentials(config):
    line = build_command_line(config, 'dir "C:\\"')
    assert line == (
        'C:\\Tools\\PsExec.exe -accepteula -nobanner -u svc-files -p s3cret '
        'cmd /c "dir "C:\\""'
    )
    assert "s3cret" not in redact(config, line)


def test_command_line_with_remote_host(config):
    line = build_command_line(replace(config, remote_host="fileserver01"), "mkdir \"C:\\x\"")
    assert ' \\\\fileserver01 -u ' in line


def test_credentials_keep_trailing_backslash(config):
    line = build_command_line(replace(config, password="pa\\ss\\"), 'mkdir "C:\\x"')
    assert " -p pa\\ss\\ cmd /c " in line
    assert "\\." not in line.split("cmd /c", 1)[0]


def test_credentials_escape_embedded_quotes(config):
    line = build_command_line(replace(config, password='a"b c'), 'mkdir "C:\\x"')
    assert ' -p "a\\"b c" cmd /c ' in line
    assert redact(replace(config, password='a"b c'), line).count("a\\\"b c") == 0


def test_quote_arg_follows_runtime_rules():
    assert quote_arg("svc-files") == "svc-files"
    assert quote_arg("C:\\Program Files\\PsExec.exe") == '"C:\\Program Files\\PsExec.exe"'
    assert quote_arg("ends in \\") == '"ends in \\\\"'
    assert quote_arg("") == '""'


def test_redact_masks_only_the_password_argument(config):
    weak = replace(config, password="dir")
    line = build_command_line(weak, 'dir "C:\\x"')
    masked = redact(weak, line)
    assert " -p ******** " in masked
    assert masked.endswith('cmd /c "dir "C:\\x""')
