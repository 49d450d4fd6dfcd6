from docpage.db.compiler import compile_pipeline, documents
from docpage.db.engine import get_engine
from docpage.db.memory import InMemoryDocumentStore
from docpage.db.postgres import PostgresDocumentStore

__all__ = [
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    "compile_pipeline",
    "documents",
    "get_engine",
]
