"""Ingestion and retrieval pipelines plus the event bus they report through."""

from src.pipeline.event_bus import EventBus
from src.pipeline.ingestion_pipeline import IngestionPipeline
from src.pipeline.retrieval_pipeline import RetrievalPipeline

__all__ = [
    "EventBus",
    "IngestionPipeline",
    "RetrievalPipeline",
]
