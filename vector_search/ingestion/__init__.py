"""
Ingestion subpackage -- build the document collection from a CSV dataset.

Pipeline flow:
    load_qa_csv  -->  EmbeddingPipeline.embed  -->  SQLiteDocumentStore.add
"""

from vector_search.ingestion.loader import QARecord, load_qa_csv, prepare_documents
