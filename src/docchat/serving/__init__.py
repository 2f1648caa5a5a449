"""
Serving — FastAPI application for document upload and chat.

Uploads stream ingestion progress as Server-Sent Events; chat turns are
answered synchronously as JSON.
"""
