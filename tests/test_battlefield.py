import json
from unittest import mock

import pytest

from firecore.battlefield import compare_block_files, diff_command, main


@pytest.fixture
def block_files(tmp_path):
    def write(name, content):
        path = tmp_path / name
        path.write_text(content)
        return str(path)

    return write


def test_equal_files(block_files, capsys):
    ref = block_files("ref.json", json.dumps({"a": [1, 2]}))
    other = block_files("other.json", '{ "a" : [1, 2] }')
    assert compare_block_files(ref, other) is True
    assert "Files are equal, all good" in capsys.readouterr().out


def test_different_files_not_shown(block_files, capsys, monkeypatch):
    monkeypatch.delenv("DIFF_EDITOR", raising=False)
    ref = block_files("ref.json", '{"a": 1}')
    other = block_files("other.json", '{"a": 2}')
    questions = []
    result = compare_block_files(ref, other, ask=lambda q: questions.append(q) or False)
    assert result is False
    assert len(questions) == 1 and ref in questions[0]
    out = capsys.readouterr().out
    assert "Not showing diff between files" in out
    assert diff_command(ref, other) in out


def test_different_files_shown_runs_diff(block_files, capsys):
    ref = block_files("ref.json", '{"a": 1}')
    other = block_files("other.json", '{"a": 2}')
    with mock.patch("firecore.battlefield.subprocess.run") as run:
        run.return_value.returncode = 0
        assert compare_block_files(ref, other, ask=lambda q: True) is False
    assert run.call_args[0][0] == ["bash", "-c", diff_command(ref, other)]
    assert "You can run the following command" in capsys.readouterr().out


def test_failing_diff_raises(block_files):
    ref = block_files("ref.json", '{"a": 1}')
    other = block_files("other.json", '{"a": 2}')
    with mock.patch("firecore.battlefield.subprocess.run") as run:
        run.return_value.returncode = 1
        with pytest.raises(RuntimeError, match="diff command failed"):
            compare_block_files(ref, other, ask=lambda q: True)


def test_invalid_json_raises(block_files):
    ref = block_files("ref.json", "not json")
    other = block_files("other.json", "{}")
    with pytest.raises(ValueError, match="unable to unmarshal block"):
        compare_block_files(ref, other)


def test_missing_file_raises(block_files, tmp_path):
    other = block_files("other.json", "{}")
    with pytest.raises(OSError, match="unable to read block file"):
        compare_block_files(str(tmp_path / "missing.json"), other)


def test_process_file_content_used(block_files):
    ref = block_files("ref.txt", "Hello")
    other = block_files("other.txt", "hello")
    lowered = lambda a, b: (a.lower(), b.lower())
    assert compare_block_files(ref, other, process_file_content=lowered) is True


def test_process_file_content_error_wrapped(block_files):
    ref = block_files("ref.txt", "x")
    other = block_files("other.txt", "y")

    def broken(a, b):
        raise KeyError("boom")

    with pytest.raises(ValueError, match="failed to process blocks content file"):
        compare_block_files(ref, other, process_file_content=broken)


def test_diff_command_default(monkeypatch):
    monkeypatch.delenv("DIFF_EDITOR", raising=False)
    assert diff_command("a", "b") == 'diff -C 5 "a" "b" | less'


def test_diff_command_editor(monkeypatch):
    monkeypatch.setenv("DIFF_EDITOR", "meld")
    assert diff_command("a", "b") == 'meld "a" "b"'


def test_main_run_with_variant(capsys):
    assert main(["run", "fast"]) == 0
    assert capsys.readouterr().out.strip() == "Variant fast"


def test_main_run_too_many_args():
    with pytest.raises(SystemExit) as excinfo:
        main(["run", "a", "b"])
    assert excinfo.value.code == 2