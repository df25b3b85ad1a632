"""
Decision Forge
==============

Decision synthesis engine: generates connected and local strategies for a
scenario, scores their risk, blends them into one hybrid recommendation and
records an immutable, traceable decision.
"""

__version__ = "0.1.0"
