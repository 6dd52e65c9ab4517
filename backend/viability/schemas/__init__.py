# Schemas package
from .discovery_schema import (
    DiscoveredUrl,
    DiscoveryMetadata,
    DiscoveryRequest,
    DiscoveryResponse,
    RankedUrlList,
    SearchResult,
)
from .ingestion_schema import (
    IngestionEvent,
    IngestRequest,
    IngestResponse,
    JobStatusResponse,
    RagStatusResponse,
)
from .chat_schema import ChatRequest, ChatResponse, ChatSource

__all__ = [
    "SearchResult",
    "DiscoveredUrl",
    "RankedUrlList",
    "DiscoveryRequest",
    "DiscoveryMetadata",
    "DiscoveryResponse",
    "IngestRequest",
    "IngestResponse",
    "JobStatusResponse",
    "IngestionEvent",
    "RagStatusResponse",
    "ChatRequest",
    "ChatResponse",
    "ChatSource",
]
