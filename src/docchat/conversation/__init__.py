"""
Conversation — history-aware question answering over one document.

Each turn is stateless: the caller supplies the full prior history and
the pipeline rewrites the question, retrieves from the document's
namespace, and synthesizes a grounded answer with citations.
"""
