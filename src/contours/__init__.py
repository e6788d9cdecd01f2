"""
Package initializer for contours.
Re-exports the marching-squares entry points.
"""
from __future__ import annotations

from .isobands import extract_isobands as extract_isobands
from .isolines import extract_isolines as extract_isolines
from .synthesizer import synthesize as synthesize
