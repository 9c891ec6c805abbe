"""
Dataset Preparation
====================
Builds the document collection from a question/answer CSV file.

Input format (header row required)::

    id,question,answer
    1,"How do I cancel my booking?","Open 'My trips' and choose Cancel."

For every row the question and answer are joined into
``"{question} : {answer}"``, embedded with the passage prefix
(``"passage: "`` for e5 models), and written to the document store.

Design notes
------------
* Rows with fewer than three fields or a non-integer id are skipped with
  a warning; the rest of the file is still processed.
* Embedding failures are not skipped: a document that cannot be embedded
  aborts preparation so the store never silently misses rows.
* All documents are embedded first and written in a single transaction;
  a failed run leaves the table empty rather than partly filled.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from vector_search.embeddings.pipeline import EmbeddingPipeline
from vector_search.store.document_store import Document, SQLiteDocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QARecord:
    id: int
    question: str
    answer: str

    @property
    def combined_text(self) -> str:
        return f"{self.question} : {self.answer}"


def load_qa_csv(path: Union[str, Path]) -> List[QARecord]:
    """
    Read ``id,question,answer`` rows from a CSV file.

    Raises:
        FileNotFoundError : the dataset file does not exist
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Dataset file not found at {csv_path}")

    records: List[QARecord] = []
    with open(csv_path, "r", encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh)
        next(reader, None)  # header
        for line_no, row in enumerate(reader, start=2):
            if len(row) < 3:
                logger.warning("Skipping line %d: expected 3 fields, got %d", line_no, len(row))
                continue
            try:
                record_id = int(row[0].strip())
            except ValueError:
                logger.warning("Skipping line %d: invalid id %r", line_no, row[0])
                continue
            records.append(QARecord(record_id, row[1].strip(), row[2].strip()))

    logger.info("Loaded %d records from %s", len(records), csv_path)
    return records


async def prepare_documents(
    pipeline: EmbeddingPipeline,
    store: SQLiteDocumentStore,
    records: Iterable[QARecord],
    show_progress: bool = False,
) -> int:
    """
    Embed each record and store it.  Returns the number of documents
    inserted.
    """
    records = list(records)
    prefix = pipeline.config.passage_prefix

    iterator = records
    if show_progress:
        from tqdm import tqdm
        iterator = tqdm(records, desc="Embedding", unit="doc")

    documents: List[Document] = []
    for record in iterator:
        logger.debug("Processing entry %d: %s", record.id, record.question)
        combined = record.combined_text
        vector = await pipeline.embed(prefix + combined)
        documents.append(
            Document(
                id=record.id,
                question=record.question,
                answer=record.answer,
                combined_text=combined,
                embedding=vector,
            )
        )

    inserted = store.add_many(documents)
    logger.info("Stored %d document embeddings in %s", inserted, store.database_path)
    return inserted
