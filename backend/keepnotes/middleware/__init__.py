"""
KeepNotes Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [GZip] → Route Handler

    1. CORS first: OPTIONS preflights are answered before anything else runs
    2. Request ID: correlation ID for logs and error bodies; also answers
       uncaught errors with the JSON 500 so CORS still applies to it
    3. Logging: method, path, status, duration with the request ID
"""
