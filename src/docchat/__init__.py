"""docchat — chat with an uploaded document through a RAG pipeline."""

__version__ = "0.1.0"
