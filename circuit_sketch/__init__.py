"""
Circuit sketch normalizer.

Turns a hand-drawn circuit sketch into a fixed-size, contrast-enhanced,
edge-emphasized image for a downstream recognition model.
"""

__version__ = "1.0.0"
