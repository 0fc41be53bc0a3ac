from __future__ import annotations

"""
Wiring entrypoints (open_editor, run_demo).
"""
