# SPDX-License-Identifier: MIT
"""Toolchain protocol shared by the concrete toolchains."""
