"""Release planning across environments."""

from __future__ import annotations

from branchline.release.planner import ReleasePlan, ReleasePlanner

__all__ = ["ReleasePlan", "ReleasePlanner"]
