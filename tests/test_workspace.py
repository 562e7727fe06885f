"""Tests for per-request keyframe workspaces."""

import pytest

from workspace import allocate_workspace, keyframe_workspace


def test_workspace_removed_on_exit(tmp_path):
    with keyframe_workspace(tmp_path) as ws:
        (ws / "frame_001.jpg").write_bytes(b"x")
        assert ws.parent == tmp_path
        assert ws.name.startswith("keyframes_")
    assert not ws.exists()


def test_workspace_removed_on_error(tmp_path):
    with pytest.raises(ValueError):
        with keyframe_workspace(tmp_path) as ws:
            (ws / "frame_001.jpg").write_bytes(b"x")
            raise ValueError("analysis failed")
    assert not ws.exists()


def test_workspaces_do_not_collide(tmp_path):
    with keyframe_workspace(tmp_path) as a, keyframe_workspace(tmp_path) as b:
        assert a != b


def test_reused_request_id_is_refused(tmp_path):
    allocate_workspace(tmp_path, "req1")
    with pytest.raises(FileExistsError):
        allocate_workspace(tmp_path, "req1")
