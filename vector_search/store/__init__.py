"""
Store subpackage -- the document collection the ranking engine reads.
"""

from vector_search.store.document_store import (
    Document,
    DocumentStore,
    InMemoryDocumentStore,
    SQLiteDocumentStore,
)
