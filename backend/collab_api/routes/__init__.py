# Routes package init
"""
Collab Platform API - Routes Package
=====================================

Route Inventory:
    - users.py:   POST /api/v1/users/register   (create account)
                  POST /api/v1/users/login      (verify credentials)
                  GET  /api/v1/users/me         (current principal's profile)
                  GET  /api/v1/users            (paginated list)
                  GET  /api/v1/users/stats      (account statistics)
                  GET  /api/v1/users/search     (name/email search)
                  GET  /api/v1/users/{id}       (public profile)
    - health.py:  GET  /health                  (liveness probe)

Every router uses PipelineRoute, so endpoints return plain models and the
pipeline adds envelopes, deadlines and error translation.
"""
