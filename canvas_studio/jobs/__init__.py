from __future__ import annotations

"""
Generation jobs:
- schemas (requests, replies, statuses)
- tracker (JobTracker / JobHandle polling)
"""
