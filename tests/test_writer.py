"""
Tests for the create-or-overwrite write discipline.
"""
import pytest

from geheim.errors import RecordAlreadyExists
from geheim.writer import SafeWriter


def test_creates_parents_and_stages(tmp_path, vcs):
    target = tmp_path / "a" / "b" / "c.data"
    SafeWriter(vcs).write(target, b"content")

    assert target.read_bytes() == b"content"
    assert vcs.staged == [target]


def test_refuses_to_overwrite_without_force(tmp_path, vcs):
    target = tmp_path / "c.data"
    target.write_bytes(b"original")

    with pytest.raises(RecordAlreadyExists):
        SafeWriter(vcs).write(target, b"replacement")

    assert target.read_bytes() == b"original"
    assert vcs.staged == []


def test_force_overwrites(tmp_path, vcs):
    target = tmp_path / "c.data"
    target.write_bytes(b"original")

    SafeWriter(vcs).write(target, b"replacement", force=True)

    assert target.read_bytes() == b"replacement"
    assert vcs.staged == [target]


def test_leaves_no_temporary_file(tmp_path, vcs):
    SafeWriter(vcs).write(tmp_path / "c.data", b"content")
    assert [p.name for p in tmp_path.iterdir()] == ["c.data"]
