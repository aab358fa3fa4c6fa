"""
Collab Platform API - Middleware Package
=========================================

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Rate Limit] → [Logging] → Router

    1. Request ID first: every later stage, including a 429 rejection,
       carries the correlation ID
    2. Rate Limit: rejects over-budget clients before any body is read
    3. Logging: request-received on entry, response-sent on success

Response headers (X-Request-ID) are set on the way back out.
"""
