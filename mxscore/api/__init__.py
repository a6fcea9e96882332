"""
Score API Module

This module exposes the public score parsing and export APIs.
"""

from mxscore.api.score import parse_score, summarize_score
from mxscore.api.export import to_music21

__all__ = [
    "parse_score",
    "summarize_score",
    "to_music21",
]
