"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .vector_store import VectorStoreProtocol
from .reranker import RerankerProtocol
from .llm import LLMProtocol
from .tokenizer import TokenCounterProtocol

__all__ = [
    "EmbedderProtocol",
    "VectorStoreProtocol",
    "RerankerProtocol",
    "LLMProtocol",
    "TokenCounterProtocol",
]
