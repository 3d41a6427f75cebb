"""Glob matching and workflow trigger evaluation."""
from __future__ import annotations

from hookgate.triggers.glob import (
    extract_branch,
    extract_tag,
    match_any,
    match_glob,
    match_patterns,
)
from hookgate.triggers.matcher import TriggerMatcher

__all__ = [
    "TriggerMatcher",
    "extract_branch",
    "extract_tag",
    "match_any",
    "match_glob",
    "match_patterns",
]
