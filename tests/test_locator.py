"""
Tests for the manifest locator.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from spm_swap.resolved.locator import MANIFEST_NAME, find_manifests


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{}", encoding="utf-8")
    return path


class TestFindManifests:

    def test_finds_nested_manifests_in_sorted_order(self, tmp_path):
        b = _touch(tmp_path / "b" / MANIFEST_NAME)
        a = _touch(tmp_path / "a" / "deep" / "er" / MANIFEST_NAME)
        top = _touch(tmp_path / MANIFEST_NAME)

        assert list(find_manifests(tmp_path)) == [top, a, b]

    def test_finds_manifest_inside_xcode_workspace(self, tmp_path):
        path = _touch(
            tmp_path / "App.xcodeproj" / "project.xcworkspace" / "xcshareddata" / "swiftpm" / MANIFEST_NAME
        )
        assert list(find_manifests(tmp_path)) == [path]

    def test_ignores_other_files(self, tmp_path):
        _touch(tmp_path / "Package.swift")
        _touch(tmp_path / "x" / "package.resolved")
        _touch(tmp_path / "y" / "Package.resolved.bak")

        assert list(find_manifests(tmp_path)) == []

    def test_empty_tree_is_not_an_error(self, tmp_path):
        assert list(find_manifests(tmp_path)) == []

    def test_is_lazy_and_restartable(self, tmp_path):
        _touch(tmp_path / "one" / MANIFEST_NAME)
        _touch(tmp_path / "two" / MANIFEST_NAME)

        gen = find_manifests(tmp_path)
        assert next(gen).parent.name == "one"

        assert list(find_manifests(tmp_path)) == list(find_manifests(tmp_path))

    def test_directory_named_like_manifest_is_skipped(self, tmp_path):
        (tmp_path / MANIFEST_NAME).mkdir()
        assert list(find_manifests(tmp_path)) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    @pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root ignores permissions")
    def test_unreadable_directory_is_skipped(self, tmp_path):
        locked = tmp_path / "locked"
        _touch(locked / MANIFEST_NAME)
        visible = _touch(tmp_path / "visible" / MANIFEST_NAME)
        locked.chmod(0)
        try:
            assert list(find_manifests(tmp_path)) == [visible]
        finally:
            locked.chmod(0o755)
