"""
Utility modules for the TL866 firmware tool.

This package groups pure helpers that are shared across the codecs.
"""

from . import crypto as crypto
from . import randomness as randomness

from .crypto import Crypto
from .randomness import RandomByteSource, SeededRandomSource, SystemRandomSource

__all__ = [
    # Submodules
    "crypto",
    "randomness",
    "Crypto",
    "RandomByteSource",
    "SeededRandomSource",
    "SystemRandomSource",
]
