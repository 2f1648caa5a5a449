"""
Ingestion — text extraction, chunking, and embedding into the vector store.

This module is responsible for turning one uploaded document into an
isolated, searchable namespace while streaming progress to the caller.
"""
