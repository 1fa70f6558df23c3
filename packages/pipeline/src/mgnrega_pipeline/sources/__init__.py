"""
mgnrega_pipeline.sources — data source adapters.

  MgnregaSource — data.gov.in MGNREGA district resource (paginated JSON)
"""

from mgnrega_pipeline.sources.base import BaseSource
from mgnrega_pipeline.sources.mgnrega import MgnregaSource

__all__ = [
    "BaseSource",
    "MgnregaSource",
]
