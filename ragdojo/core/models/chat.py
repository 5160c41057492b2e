"""Chat domain models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import InvalidInputError
from .search import SearchEnhancements


@dataclass(frozen=True)
class ChatMessage:
    """Chat message."""
    role: str  # "user" | "assistant" | "system"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


class PipelineStage(str, Enum):
    """States walked by one chat request."""
    START = "start"
    QUERY_REWRITE = "query_rewrite"
    EMBED = "embed"
    PRUNE = "prune"
    FUSE = "fuse"
    RERANK = "rerank"
    CONTEXT_ASSEMBLY = "context_assembly"
    GENERATE = "generate"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ChatRequest:
    message: str
    include_debug_info: bool = False
    enhancements: Optional[SearchEnhancements] = None
    top_k: Optional[int] = None

    def validate(self, default_top_k: int) -> None:
        if not self.message or not self.message.strip():
            raise InvalidInputError("Message cannot be empty")
        top_k = default_top_k if self.top_k is None else self.top_k
        if top_k < 1:
            raise InvalidInputError("top_k must be at least 1")
        if self.enhancements is not None:
            self.enhancements.validate(top_k)


@dataclass(frozen=True)
class RetrievedChunk:
    id: str
    content: str
    source_file_name: str
    chunk_index: int
    relevance_score: float


@dataclass(frozen=True)
class TokenUsage:
    system_prompt_tokens: int
    context_tokens: int
    query_tokens: int
    total_input_tokens: int
    max_context_tokens: int
    usage_percentage: float

    @classmethod
    def from_counts(
        cls, system: int, context: int, query: int, max_context_tokens: int
    ) -> "TokenUsage":
        total = system + context + query
        percentage = round(total / max_context_tokens * 100, 2) if max_context_tokens else 0.0
        return cls(
            system_prompt_tokens=system,
            context_tokens=context,
            query_tokens=query,
            total_input_tokens=total,
            max_context_tokens=max_context_tokens,
            usage_percentage=percentage,
        )


@dataclass
class PipelineMetrics:
    """Observational only; never read by the pipeline itself."""
    embedding_time_ms: int = 0
    search_time_ms: int = 0
    rerank_time_ms: int = 0
    generation_time_ms: int = 0
    total_time_ms: int = 0
    chunks_retrieved: int = 0
    candidates_considered: int = 0
    embedding_model: str = ""
    chat_model: str = ""
    stages: list[PipelineStage] = field(default_factory=list)


@dataclass
class ChatResponse:
    answer: str
    retrieved_chunks: list[RetrievedChunk]
    token_usage: Optional[TokenUsage] = None
    metrics: Optional[PipelineMetrics] = None
    expanded_query: Optional[str] = None
    hypothetical_document: Optional[str] = None
