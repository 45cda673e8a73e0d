"""
Two-stage semantic search over the Korean (KRV) and English (ASV) Bible.
"""

__version__ = "1.0.0"
