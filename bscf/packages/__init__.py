# SPDX-License-Identifier: MIT
"""Registry-provided sub-projects (builtins)."""
