"""
Utilities Package

Helper functions used across the routers:
- htmx.py: HTMX request detection and response headers
"""

from bookreview.utils.htmx import htmx_location, htmx_trigger, is_htmx

__all__ = ["htmx_location", "htmx_trigger", "is_htmx"]
