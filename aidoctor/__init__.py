"""
AI-Doctor clinical assistant service.
"""

__version__ = "1.0.0"
