"""
Document Store
===============
Holds the question/answer documents together with their precomputed
embeddings.  The ranking engine only ever reads from it via
``list_all()``.

Two implementations:
    SQLiteDocumentStore   -- one ``documents`` table, vectors stored as JSON
                             text (portable, inspectable with any SQLite
                             client)
    InMemoryDocumentStore -- an immutable snapshot, for tests and for
                             callers that already hold the documents

Schema:
    id                   INTEGER PRIMARY KEY
    question             TEXT
    answer               TEXT
    combined_text        TEXT     ("{question} : {answer}")
    embedding            TEXT     (JSON array of floats)
    embedding_dimensions INTEGER
    created_at           DATETIME (defaults to CURRENT_TIMESTAMP)
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """
    One stored document.

    Attributes:
        id                   : dataset identifier
        question             : source question text
        answer               : source answer text
        combined_text        : the text that was embedded
        embedding            : precomputed unit-length vector (float32)
        embedding_dimensions : len(embedding), stored for validation
        created_at           : insertion timestamp from the store, if any
    """
    id: int
    question: str
    answer: str
    combined_text: str
    embedding: np.ndarray = field(repr=False)
    embedding_dimensions: int = 0
    created_at: Optional[str] = None

    def __post_init__(self):
        self.embedding = np.asarray(self.embedding, dtype=np.float32)
        if not self.embedding_dimensions:
            self.embedding_dimensions = int(self.embedding.shape[0])

    def to_dict(self, include_embedding: bool = False) -> Dict:
        data = {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "combined_text": self.combined_text,
            "embedding_dimensions": self.embedding_dimensions,
            "created_at": self.created_at,
        }
        if include_embedding:
            data["embedding"] = self.embedding.tolist()
        return data


class DocumentStore(ABC):
    """Read side of the document collection, as the ranking engine sees it."""

    @abstractmethod
    def list_all(self) -> List[Document]:
        ...


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, documents: Iterable[Document] = ()):
        self._documents = tuple(documents)

    def list_all(self) -> List[Document]:
        return list(self._documents)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY,
    question TEXT NOT NULL,
    answer TEXT NOT NULL,
    combined_text TEXT NOT NULL,
    embedding TEXT NOT NULL,
    embedding_dimensions INTEGER NOT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_documents_created_at ON documents(created_at);
CREATE INDEX IF NOT EXISTS idx_documents_question ON documents(question);
"""


class SQLiteDocumentStore(DocumentStore):
    """
    Usage:
        store = SQLiteDocumentStore("data/embeddings.db")
        store.initialize(reset=True)
        store.add(Document(1, "q", "a", "q : a", vector))
        docs = store.list_all()
    """

    def __init__(self, database_path: Union[str, Path]):
        self.database_path = Path(database_path)

    @contextmanager
    def _connection(self):
        """Open, commit on success (roll back on error), always close."""
        conn = sqlite3.connect(str(self.database_path))
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self, reset: bool = False) -> None:
        """Create the schema; ``reset`` deletes an existing database first."""
        if reset and self.database_path.exists():
            self.database_path.unlink()
            logger.info("Deleted existing database file %s", self.database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as conn:
            conn.executescript(_SCHEMA)
        logger.info("Database schema ready at %s", self.database_path)

    @staticmethod
    def _row(document: Document) -> tuple:
        return (
            document.id,
            document.question,
            document.answer,
            document.combined_text,
            json.dumps(document.embedding.tolist()),
            document.embedding_dimensions,
        )

    def add(self, document: Document) -> None:
        self.add_many([document])

    def add_many(self, documents: Iterable[Document]) -> int:
        """
        Insert every document in one transaction.  Any failure (e.g. a
        duplicate id) rolls the whole batch back; nothing is written.
        """
        rows = [self._row(doc) for doc in documents]
        with self._connection() as conn:
            conn.executemany(
                "INSERT INTO documents "
                "(id, question, answer, combined_text, embedding, embedding_dimensions) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                rows,
            )
        logger.debug("Stored %d documents in %s", len(rows), self.database_path)
        return len(rows)

    def _require_database(self) -> None:
        if not self.database_path.exists():
            raise FileNotFoundError(
                f"Database not found: {self.database_path}. "
                "Run 'python cli.py prepare' first."
            )

    def list_all(self) -> List[Document]:
        self._require_database()
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, question, answer, combined_text, embedding, "
                "embedding_dimensions, created_at FROM documents ORDER BY id"
            ).fetchall()
        documents = [
            Document(
                id=row[0],
                question=row[1],
                answer=row[2],
                combined_text=row[3],
                embedding=np.asarray(json.loads(row[4]), dtype=np.float32),
                embedding_dimensions=row[5],
                created_at=row[6],
            )
            for row in rows
        ]
        logger.info("Retrieved %d documents from %s", len(documents), self.database_path)
        return documents

    def count(self) -> int:
        self._require_database()
        with self._connection() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        return n
