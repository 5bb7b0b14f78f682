# SPDX-License-Identifier: MIT
"""Configure phase: platform detection and cached program discovery."""
