"""
Cost Analysis

Rolls per-app resource costs up into team, project and system-wide
summaries, estimates cost trends, and exports deterministic CSV reports.
"""

__version__ = "1.0.0"
__author__ = "Cost Analysis Team"
