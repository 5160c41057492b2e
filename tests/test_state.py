"""Tests for the shared state tables."""

import asyncio

import pytest

from ragdojo.core.errors import NotFoundError
from ragdojo.core.models.document import Chunk, SourceDocument
from ragdojo.core.state import (
    ChunkIndex,
    CollectionRegistry,
    DocumentTable,
    EmbeddingCache,
    collection_name_for,
)
from ragdojo.infrastructure.vector_stores.in_memory_store import InMemoryVectorStore


@pytest.mark.parametrize(
    "model,expected",
    [
        ("all-minilm", "documents_all-minilm"),
        ("nomic-embed-text:v1.5", "documents_nomic-embed-text-v1-5"),
        ("sentence-transformers/All-MiniLM-L6-v2", "documents_sentence-transformers-all-minilm-l6-v2"),
    ],
)
def test_collection_name_for(model, expected):
    assert collection_name_for(model) == expected


def test_document_table_roundtrip():
    table = DocumentTable()
    document = SourceDocument(file_name="a.txt", content="x")

    table.add(document)

    assert table.get(document.id) is document
    assert len(table) == 1
    table.remove(document.id)
    with pytest.raises(NotFoundError):
        table.get(document.id)


def test_chunk_index_items_skip_unembedded():
    index = ChunkIndex()
    chunks = [
        Chunk(content="a", source_document_id="d1", source_file_name="a.txt",
              chunk_index=0, start_offset=0, end_offset=1, embedding=[1.0]),
        Chunk(content="b", source_document_id="d1", source_file_name="a.txt",
              chunk_index=1, start_offset=1, end_offset=2),
    ]
    index.replace("col", "d1", chunks)

    items = index.items("col")

    assert [i.text for i in items] == ["a"]
    assert index.collections_for("d1") == ["col"]
    index.remove("col", "d1")
    assert index.chunks("col") == []
    assert index.collections_for("d1") == []


def test_embedding_cache_per_model():
    cache = EmbeddingCache()
    cache.put("m1", "content", {"s1": [1.0]})

    assert cache.has("m1")
    assert not cache.has("m2")
    assert cache.get("m1", "content") == {"s1": [1.0]}
    cache.clear("m1")
    assert not cache.has("m1")


async def test_registry_creates_collection_once():
    store = InMemoryVectorStore()
    registry = CollectionRegistry()

    names = await asyncio.gather(*(registry.get_or_create("m", 3, store) for _ in range(5)))

    assert set(names) == {"documents_m"}
    assert len(await registry.entries()) == 1
    assert await store.list_collections() == ["documents_m"]


async def test_registry_remove_unknown():
    with pytest.raises(NotFoundError):
        await CollectionRegistry().remove("documents_x")
