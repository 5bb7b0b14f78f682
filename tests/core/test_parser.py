# SPDX-License-Identifier: MIT
"""Tests for bscf.core.parser."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from conftest import LINUX, WINDOWS

from bscf.core.errors import (
    FetchError,
    ForwardReferenceError,
    IncludeCycleError,
    MissingConfigError,
)
from bscf.core.parser import ParseContext, Parser, scan_sources
from bscf.core.target import TargetKind
from bscf.packages.builtins import Builtin


def parse(root: Path, **context) -> list:
    context.setdefault("platform", LINUX)
    return list(Parser(ParseContext(**context)).parse(root))


class TestScanSources:
    def test_missing_directory(self, tmp_path: Path) -> None:
        assert scan_sources(tmp_path / "nope", recursive=True) == []

    def test_filters_and_sorts(self, tmp_path: Path) -> None:
        for name in ["b.c", "a.cpp", "notes.txt", "x.h"]:
            (tmp_path / name).write_text("")
        names = [p.name for p in scan_sources(tmp_path, recursive=False)]
        assert names == ["a.cpp", "b.c", "x.h"]

    def test_recursive(self, tmp_path: Path) -> None:
        (tmp_path / "sub").mkdir()
        (tmp_path / "top.c").write_text("")
        (tmp_path / "sub" / "deep.c").write_text("")
        assert len(scan_sources(tmp_path, recursive=False)) == 1
        assert len(scan_sources(tmp_path, recursive=True)) == 2


class TestTargetDirective:
    def test_explicit_sources(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "TARGET EXEC app main.c util.c\n")
        (target,) = parse(root)
        assert target.kind is TargetKind.EXECUTABLE
        assert target.name == "app"
        assert target.root_path == root
        assert target.sources == [root / "main.c", root / "util.c"]
        assert not target.is_external

    def test_all_scans_src_recursively(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "TARGET SLIB core ALL extra.c\n",
            {"src/b.c": "", "src/a.h": "", "src/net/io.c": ""},
        )
        (target,) = parse(root)
        assert target.kind is TargetKind.STATIC_LIBRARY
        # ALL consumes the rest of the line
        assert [p.name for p in target.sources] == ["a.h", "b.c", "io.c"]
        assert target.include_dirs == [root / "src"]

    def test_glob_and_recurse(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "TARGET DLIB one GLOB gen\nTARGET EXEC two RECURSE gen\n",
            {"gen/a.c": "", "gen/sub/b.c": ""},
        )
        one, two = parse(root)
        assert [p.name for p in one.sources] == ["a.c"]
        assert [p.name for p in two.sources] == ["a.c", "b.c"]
        assert one.include_dirs == [root / "gen"]

    def test_glob_missing_directory_warns(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "TARGET EXEC app GLOB nothere\n")
        with caplog.at_level(logging.WARNING):
            (target,) = parse(root)
        assert target.sources == []
        assert "does not exist" in caplog.text

    def test_invalid_kind_ignored(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "TARGET PROGRAM app main.c\n")
        with caplog.at_level(logging.WARNING):
            assert parse(root) == []
        assert "invalid target type" in caplog.text

    def test_duplicate_name_ignored(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "TARGET EXEC app a.c\nTARGET SLIB app b.c\n")
        with caplog.at_level(logging.WARNING):
            (target,) = parse(root)
        assert target.kind is TargetKind.EXECUTABLE
        assert "already declared" in caplog.text

    def test_interface(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "TARGET INTERFACE sys\nLIB sys m\n")
        (target,) = parse(root)
        assert target.kind is TargetKind.INTERFACE
        assert target.libraries == ["m"]


class TestModifierDirectives:
    def test_modifiers(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "\n".join(
                [
                    "TARGET SLIB core core.c",
                    "TARGET EXEC app main.c",
                    "DEPEND app core",
                    "DEPEND app core",
                    "PREBUILD app echo before   build",
                    "POSTBUILD app echo after",
                    "DEFINE app VERSION=\"1 2\"",
                    "LIB app pthread",
                    "INCDIR app include",
                    "ALLOWSKIP core",
                ]
            ),
        )
        core, app = parse(root)
        assert app.dependencies == ["core"]
        assert app.prebuild_commands == ["echo before   build"]
        assert app.postbuild_commands == ["echo after"]
        assert app.defines == ['VERSION="1 2"']
        assert app.libraries == ["pthread"]
        assert app.include_dirs == [root / "include"]
        assert core.is_external
        assert not app.is_external

    def test_comments_stripped(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "# header comment\n\nTARGET EXEC app main.c  # trailing\n"
            "PREBUILD app make gen # not part of the command\n",
        )
        (app,) = parse(root)
        assert app.sources == [root / "main.c"]
        assert app.prebuild_commands == ["make gen"]

    def test_unknown_directive(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "FROBNICATE app\nTARGET EXEC app main.c\n")
        with caplog.at_level(logging.WARNING):
            (app,) = parse(root)
        assert app.name == "app"
        assert "proj.bscf:1" in caplog.text
        assert "FROBNICATE" in caplog.text

    def test_forward_reference_warns(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "DEFINE app X\nTARGET EXEC app main.c\n")
        with caplog.at_level(logging.WARNING):
            (app,) = parse(root)
        assert app.defines == []
        assert "app" in caplog.text

    def test_forward_reference_strict(self, tmp_path, write_project) -> None:
        root = write_project(tmp_path, "DEPEND app core\nTARGET EXEC app main.c\n")
        with pytest.raises(ForwardReferenceError):
            parse(root, strict=True)

    def test_depend_on_undeclared_target_kept(self, tmp_path, write_project) -> None:
        root = write_project(tmp_path, "TARGET EXEC app main.c\nDEPEND app ghost\n")
        (app,) = parse(root)
        assert app.dependencies == ["ghost"]


class TestConditionals:
    CONFIG = "\n".join(
        [
            "TARGET EXEC app main.c",
            "IF PLATFORM linux",
            "LIB app dl",
            "ENDIF",
            "IF NOT PLATFORM linux",
            "LIB app ws2_32",
            "ENDIF",
            "IF COMPILER msvc",
            "DEFINE app MSVC",
            "ENDIF",
            "IF NOT COMPILER msvc",
            "DEFINE app NOT_MSVC",
            "ENDIF",
        ]
    )

    def test_linux_gnu(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, self.CONFIG)
        (app,) = parse(root, platform=LINUX, toolchain="gnu")
        assert app.libraries == ["dl"]
        assert app.defines == ["NOT_MSVC"]

    def test_windows_msvc(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, self.CONFIG)
        (app,) = parse(root, platform=WINDOWS, toolchain="msvc")
        assert app.libraries == ["ws2_32"]
        assert app.defines == ["MSVC"]

    def test_unix_matches_linux(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path, "TARGET EXEC app main.c\nIF PLATFORM unix\nLIB app m\nENDIF\n"
        )
        (app,) = parse(root, platform=LINUX)
        assert app.libraries == ["m"]

    def test_nested_blocks_skipped(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "\n".join(
                [
                    "TARGET EXEC app main.c",
                    "IF PLATFORM windows",
                    "IF COMPILER gnu",
                    "LIB app inner",
                    "ENDIF",
                    "LIB app outer",
                    "ENDIF",
                    "LIB app after",
                ]
            ),
        )
        (app,) = parse(root, platform=LINUX, toolchain="gnu")
        assert app.libraries == ["after"]

    def test_false_block_skips_include(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "TARGET EXEC app main.c\nIF NOT PLATFORM linux\nINCLUDE sub\nENDIF\n",
        )
        write_project(root / "lib" / "sub", "TARGET SLIB sub s.c\n")
        assert [t.name for t in parse(root, platform=LINUX)] == ["app"]
        assert [t.name for t in parse(root, platform=WINDOWS)] == ["app", "sub"]

    @pytest.mark.parametrize("test", ["IF PLATFORM amiga", "IF NOT PLATFORM amiga"])
    def test_unknown_token_never_taken(self, tmp_path, write_project, caplog, test) -> None:
        root = write_project(
            tmp_path, f"TARGET EXEC app main.c\n{test}\nLIB app x\nENDIF\n"
        )
        with caplog.at_level(logging.WARNING):
            (app,) = parse(root)
        assert app.libraries == []
        assert "amiga" in caplog.text

    def test_missing_endif(self, tmp_path, write_project, caplog) -> None:
        root = write_project(
            tmp_path, "TARGET EXEC app main.c\nIF PLATFORM windows\nLIB app x\n"
        )
        with caplog.at_level(logging.WARNING):
            (app,) = parse(root, platform=LINUX)
        assert app.libraries == []
        assert "ENDIF" in caplog.text

    def test_stray_endif(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "ENDIF\nTARGET EXEC app main.c\n")
        assert [t.name for t in parse(root)] == ["app"]


class TestInclude:
    def test_include_splices_in_place(self, tmp_path: Path, write_project) -> None:
        root = write_project(
            tmp_path,
            "TARGET EXEC first a.c\nINCLUDE math\nTARGET EXEC app main.c\n"
            "DEPEND app mathlib\nINCDIR mathlib extra\n",
        )
        sub = write_project(root / "lib" / "math", "TARGET SLIB mathlib ALL\n")
        targets = parse(root)
        assert [t.name for t in targets] == ["first", "mathlib", "app"]
        mathlib = targets[1]
        assert mathlib.root_path == sub
        assert not mathlib.is_external
        # Included targets are visible to later directives of the includer
        assert targets[2].dependencies == ["mathlib"]
        assert mathlib.include_dirs == [sub / "src", root / "extra"]

    def test_missing_root_config(self, tmp_path: Path) -> None:
        with pytest.raises(MissingConfigError):
            parse(tmp_path)

    def test_missing_sub_config_warns(self, tmp_path, write_project, caplog) -> None:
        root = write_project(tmp_path, "INCLUDE ghost\nTARGET EXEC app main.c\n")
        with caplog.at_level(logging.WARNING):
            assert [t.name for t in parse(root)] == ["app"]
        assert "include ignored" in caplog.text

    def test_include_cycle(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path / "root", "TARGET EXEC app main.c\nINCLUDE a\n")
        # lib/a/lib/../../.. is the root project again
        write_project(root / "lib" / "a", "INCLUDE ../../..\n")
        (root / "lib" / "a" / "lib").mkdir()
        with pytest.raises(IncludeCycleError):
            parse(root)

    def test_self_include(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "INCLUDE ..\n")
        (root / "lib").mkdir()
        with pytest.raises(IncludeCycleError):
            parse(root)

    def test_diamond_include_parsed_once(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "INCLUDE left\nINCLUDE right\nINCLUDE shared\n")
        write_project(root / "lib" / "left", "INCLUDE ../../shared\n")
        write_project(root / "lib" / "right", "INCLUDE ../../shared\n")
        (root / "lib" / "left" / "lib").mkdir()
        (root / "lib" / "right" / "lib").mkdir()
        write_project(root / "lib" / "shared", "TARGET SLIB shared s.c\n")
        assert [t.name for t in parse(root)] == ["shared"]

    def test_config_files(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "INCLUDE sub\n")
        write_project(root / "lib" / "sub", "TARGET SLIB s s.c\n")
        parser = Parser(ParseContext(platform=LINUX))
        parser.parse(root)
        assert set(parser.config_files) == {
            root / "proj.bscf",
            root / "lib" / "sub" / "proj.bscf",
        }


class TestRemoteIncludes:
    def test_gitinclude_fetches_and_marks_external(
        self, tmp_path: Path, write_project
    ) -> None:
        root = write_project(
            tmp_path, "GITINCLUDE https://example.com/dep.git dep main\n"
        )
        calls = []

        def fetch(url, destination, branch):
            calls.append((url, destination, branch))
            write_project(destination, "TARGET SLIB dep dep.c\n")
            return True

        (dep,) = parse(root, fetch=fetch)
        assert calls == [("https://example.com/dep.git", root / "lib" / "dep", "main")]
        assert dep.is_external

    def test_gitinclude_fetch_failure(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "GITINCLUDE https://example.com/x.git x\n")
        with pytest.raises(FetchError):
            parse(root, fetch=lambda url, dest, branch: False)

    def test_gitinclude_without_fetch_uses_present_copy(
        self, tmp_path: Path, write_project
    ) -> None:
        root = write_project(tmp_path, "GITINCLUDE https://example.com/x.git x\n")
        write_project(root / "lib" / "x", "TARGET SLIB x x.c\n")
        (x,) = parse(root)
        assert x.is_external

    def test_builtin(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "BUILTIN fancy\nTARGET EXEC app main.c\n")
        registry = {
            "fancy": Builtin(repo="https://example.com/fancy", db="https://example.com/db")
        }

        def fetch(url, destination, branch):
            destination.mkdir(parents=True, exist_ok=True)
            if url.endswith("db"):
                (destination / "proj.bscf").write_text("TARGET SLIB fancy ALL\n")
            return True

        parser = Parser(ParseContext(platform=LINUX, fetch=fetch), builtins=registry)
        fancy, app = parser.parse(root)
        assert fancy.is_external
        assert fancy.root_path == root / "lib" / "fancy"
        assert not (root / "lib" / "fancy" / "bscf-db").exists()
        assert app.name == "app"

    def test_unknown_builtin(self, tmp_path: Path, write_project) -> None:
        root = write_project(tmp_path, "BUILTIN nonesuch\n")
        with pytest.raises(FetchError):
            parse(root)
