"""
Report package: render stats, bug and project views in several output formats.
"""

from .renderer import render

__all__ = ["render"]
