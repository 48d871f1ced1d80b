import pytest

from psexec_bridge import paths
from psexec_bridge.errors import InvalidName, InvalidPath, MissingArgument


@pytest.mark.parametrize("raw", [
    "C:\\",
    "C:\\Users\\Public",
    "d:\\Projects\\My Docs\\",
    "E:\\data\\report (final).txt",
])
def test_valid_paths_pass_unchanged(raw):
    assert paths.validate_path(raw) == raw


@pytest.mark.parametrize("raw, expected", [
    ("C:\\Users\\Public;", "C:\\Users\\Public"),
    ("C:\\Temp\\a`b$c", "C:\\Temp\\abc"),
    ("C:\\Temp\\<x>|y", "C:\\Temp\\xy"),
])
def test_metacharacters_are_stripped_then_checked(raw, expected):
    assert paths.validate_path(raw) == expected


def test_sanitize_strips_exactly_the_shell_metacharacters():
    assert paths.sanitize("a&b;c|d`e$f<g>h (i) %j% ^k") == "abcdefgh (i) %j% ^k"


def test_chained_command_is_rejected_after_sanitizing():
    with pytest.raises(InvalidPath):
        paths.validate_path("C:\\Users\\Public\\Docs & del C:\\ ")


@pytest.mark.parametrize("raw", [
    "Users\\Public",
    "\\\\server\\share",
    "C:/Users/Public",
    "C:\\Users\\Pu\"blic",
    "C:\\Users\\*",
    "C:\\Users\\a?b",
    "C:\\Users\nC:\\Windows",
    "CC:\\Users",
    "C:\\%USERPROFILE%\\Desktop",
])
def test_grammar_rejects(raw):
    with pytest.raises(InvalidPath):
        paths.validate_path(raw)


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_path(raw):
    with pytest.raises(MissingArgument):
        paths.validate_path(raw)


@pytest.mark.parametrize("name", ["New Folder", "notes.txt", "report (2024)"])
def test_valid_names(name):
    assert paths.validate_name(name) == name


@pytest.mark.parametrize("name", ["a/b", "a\\b", "c:d", "x*", "why?", 'say "hi"', "<tag>", "a|b", ".."])
def test_names_are_rejected_not_stripped(name):
    with pytest.raises(InvalidName):
        paths.validate_name(name)


@pytest.mark.parametrize("name", ["   ", "draft ", "draft.", "notes.txt.", "a %USERNAME% b"])
def test_names_windows_would_trim_or_expand_are_rejected(name):
    with pytest.raises(InvalidName):
        paths.validate_name(name)


def test_name_with_shell_metacharacter_is_rejected():
    with pytest.raises(InvalidName):
        paths.validate_name("Tom & Jerry")


def test_query_rejects_wildcards_and_separators():
    assert paths.validate_query("report") == "report"
    with pytest.raises(InvalidName):
        paths.validate_query("..\\Windows")
    with pytest.raises(MissingArgument):
        paths.validate_query("")


def test_join_and_parent():
    base = paths.validate_path("C:\\Users")
    assert paths.join(base, "Public") == "C:\\Users\\Public"
    assert paths.parent(paths.validate_path("C:\\Users\\Public\\")) == "C:\\Users"
    assert paths.parent(paths.validate_path("C:\\Users")) == "C:\\"


def test_extension():
    assert paths.extension("Photo.JPG") == "jpg"
    assert paths.extension("Makefile") == ""
    assert paths.basename("C:\\Users\\Public\\notes.txt") == "notes.txt"
