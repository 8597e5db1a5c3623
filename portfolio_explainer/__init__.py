"""
Portfolio Explainer - A FastAPI service that explains portfolio snapshots.

Holdings are imported from CSV, summarized into concentration statistics,
diffed against the previous snapshot, enriched with recent news evidence and
turned into an educational explanation by a fixed pipeline of LLM steps.
"""

__version__ = "1.0.0"
