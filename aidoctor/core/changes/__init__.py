"""
Change Detection

What changed in the chart since the assistant last spoke.
"""
from .detector import detect_changes, last_assistant_cutoff
from .narrator import NO_CHANGES, render_recent_changes

__all__ = [
    "NO_CHANGES",
    "detect_changes",
    "last_assistant_cutoff",
    "render_recent_changes",
]
