# SPDX-License-Identifier: MIT
"""Core engine: targets, parsing, resolution, planning, caching, building."""
