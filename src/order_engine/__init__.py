"""
Order panel engine.

Presentation-side state, event dispatch and rendering for normalized
customer orders. Payload decoding lives in ``ingestion.order``.
"""

__version__ = "0.1.0"
