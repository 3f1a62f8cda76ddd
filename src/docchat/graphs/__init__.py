from .ingestion import build_ingestion_graph
from .state import IngestionState

__all__ = ["IngestionState", "build_ingestion_graph"]
