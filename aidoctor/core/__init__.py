"""
Clinical assistant core: record normalization, context assembly, change
detection and completion-request construction.
"""
