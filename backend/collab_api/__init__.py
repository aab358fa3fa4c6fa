"""
Collab Platform API - Application Package
==========================================

Layers:

    ┌─────────────────────────────────────┐
    │   Middleware + Pipeline (HTTP)      │  ← correlation, logging, limits, envelopes
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← thin endpoint functions
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← registration, login, profile
    ├─────────────────────────────────────┤
    │   Repositories + Models (Storage)   │  ← SQLAlchemy ORM and raw SQL
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
