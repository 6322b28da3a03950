"""
Context Assembly

Size-bounded patient summaries for the assistant.
"""
from .assembler import build_context, build_patient_context
from .formatting import render_bounded_list

__all__ = [
    "build_context",
    "build_patient_context",
    "render_bounded_list",
]
