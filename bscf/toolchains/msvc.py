# SPDX-License-Identifier: MIT
"""MSVC toolchain implementation.

Provides the Microsoft Visual C++ toolchain:
- cl.exe for C and C++ compilation
- lib.exe for static archives
- link.exe for programs and DLLs
"""

from __future__ import annotations

from bscf.tools.toolchain import BaseToolchain, LinkFlag


class MsvcToolchain(BaseToolchain):
    """The MSVC toolchain.

    MSVC uses '/'-style flags, a '.obj' object suffix and unprefixed
    '.lib' archives.
    """

    object_suffix = ".obj"
    static_lib_prefix = ""
    static_lib_suffix = ".lib"

    def __init__(self) -> None:
        super().__init__("msvc", cc="cl", cxx="cl", link="link", ar="lib")

    def compile_args(
        self,
        compiler: str,
        source: str,
        obj: str,
        defines: list[str],
        includes: list[str],
        extra: list[str],
    ) -> list[str]:
        args = [compiler, "/nologo", "/c", source, f"/Fo{obj}"]
        args.extend(f"/D{d}" for d in defines)
        args.extend(f"/I{i}" for i in includes)
        args.extend(extra)
        return args

    def archive_args(self, output: str, objects: list[str]) -> list[str]:
        return [self.ar, "/nologo", f"/OUT:{output}", *objects]

    def link_args(
        self,
        output: str,
        objects: list[str],
        flags: list[LinkFlag],
        *,
        shared: bool,
    ) -> list[str]:
        args = [self.link, "/nologo"]
        if shared:
            args.append("/DLL")
        args.extend(objects)
        args.append(f"/OUT:{output}")
        for flag in flags:
            if flag.kind == "libdir":
                args.append(f"/LIBPATH:{flag.value}")
            else:
                args.append(f"{flag.value}.lib")
        return args
