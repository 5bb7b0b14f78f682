# SPDX-License-Identifier: MIT
"""Tests for bscf.core.target."""

from pathlib import Path

import pytest

from bscf.core.errors import DuplicateTargetError
from bscf.core.target import Target, TargetKind, TargetSet


class TestTargetKind:
    def test_from_token(self):
        assert TargetKind.from_token("EXEC") is TargetKind.EXECUTABLE
        assert TargetKind.from_token("SLIB") is TargetKind.STATIC_LIBRARY
        assert TargetKind.from_token("DLIB") is TargetKind.DYNAMIC_LIBRARY
        assert TargetKind.from_token("INTERFACE") is TargetKind.INTERFACE

    def test_unknown_token(self):
        with pytest.raises(ValueError):
            TargetKind.from_token("exec")

    def test_has_artifact(self):
        assert TargetKind.EXECUTABLE.has_artifact
        assert not TargetKind.INTERFACE.has_artifact


class TestTarget:
    def test_defaults(self, tmp_path: Path):
        target = Target(TargetKind.EXECUTABLE, "app", tmp_path)
        assert target.sources == []
        assert target.dependencies == []
        assert not target.is_external
        assert target.config_file == tmp_path / "proj.bscf"

    def test_add_include_dir_dedups(self, tmp_path: Path):
        target = Target(TargetKind.STATIC_LIBRARY, "lib", tmp_path)
        target.add_include_dir(tmp_path / "inc")
        target.add_include_dir(tmp_path / "inc")
        assert target.include_dirs == [tmp_path / "inc"]


class TestTargetSet:
    def test_order_and_lookup(self, tmp_path: Path):
        a = Target(TargetKind.STATIC_LIBRARY, "a", tmp_path)
        b = Target(TargetKind.EXECUTABLE, "b", tmp_path / "sub")
        targets = TargetSet([a, b])

        assert list(targets) == [a, b]
        assert targets.names() == ["a", "b"]
        assert targets["b"] is b
        assert targets.get("c") is None
        assert "a" in targets
        assert len(targets) == 2
        assert targets.project_roots() == [tmp_path, tmp_path / "sub"]

    def test_duplicate_rejected(self, tmp_path: Path):
        targets = TargetSet([Target(TargetKind.EXECUTABLE, "app", tmp_path)])
        with pytest.raises(DuplicateTargetError):
            targets.add(Target(TargetKind.STATIC_LIBRARY, "app", tmp_path))
