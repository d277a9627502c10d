"""Workflow stage registry and per-entity stage tracking."""

from __future__ import annotations

from .registry import StageRegistry, load_workflows, parse_workflows
from .tracker import StageTracker

__all__ = ["StageRegistry", "StageTracker", "load_workflows", "parse_workflows"]
