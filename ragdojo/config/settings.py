
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # Providers: openai | ollama | lmstudio (chat + embeddings),
    # sentence-transformers (local embeddings, chat via ollama)
    ai_provider: str = "ollama"
    embedding_provider: str | None = None

    openai_api_key: str = ""
    openai_base_url: str | None = None
    ollama_base_url: str = "http://localhost:11434/v1"
    lmstudio_base_url: str = "http://localhost:1234/v1"

    chat_model: str = "llama3.2"
    embedding_model: str = "all-minilm"
    embedding_dimensions: int = 384
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.1

    vector_store_provider: str = "memory"
    chroma_host: str = "localhost"
    chroma_port: int = 8001
    collection_prefix: str = "documents_"

    chunk_size: int = 500
    chunk_overlap: int = 100
    chunking_strategy: str = "window"
    semantic_target_size: int = 500

    rag_top_k: int = 5
    rag_min_score: float = 0.5
    rag_candidate_pool: int = 20
    hnsw_ef_search: int = 32

    hybrid_vector_weight: float = 0.7
    hybrid_keyword_weight: float = 0.3
    multi_vector_content_weight: float = 0.75
    multi_vector_tag_weight: float = 0.25

    # Token accounting
    tokenizer_model: str = "gpt-4o"
    max_context_tokens: int = 128000

    docs_path: str = "./docs"
    # Packaged corpus when unset
    demo_corpus_path: str | None = None
    rewrite_domain: str = "coffee and coffee preparation"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def active_embedding_provider(self) -> str:
        return self.embedding_provider or self.ai_provider

    @property
    def llm_base_url(self) -> str | None:
        """Base URL of the OpenAI-compatible endpoint for the chat provider."""
        if self.ai_provider == "lmstudio":
            return self.lmstudio_base_url
        if self.ai_provider == "openai":
            return self.openai_base_url
        return self.ollama_base_url

    @property
    def embedding_base_url(self) -> str | None:
        provider = self.active_embedding_provider
        if provider == "lmstudio":
            return self.lmstudio_base_url
        if provider == "openai":
            return self.openai_base_url
        return self.ollama_base_url


settings = Settings()
