"""
Ingest orchestration: crawl seed categories and persist their offers.
"""

from .coordinator import IngestCoordinator

__all__ = ["IngestCoordinator"]
