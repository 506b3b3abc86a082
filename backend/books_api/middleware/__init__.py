"""
Books API — Middleware Package
===============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    Rate limiting rejects abusive clients before any other work. The request
    ID is assigned next so that the access log line and every error body of
    the request carry it.
"""
