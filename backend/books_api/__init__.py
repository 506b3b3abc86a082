"""
Books API — Application Package Initializer
============================================

What:  Marks the `books_api` directory as a Python package.
Who:   Used by uvicorn (`books_api.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Controller (permissions, shaping) │  ← Resource-controller pattern
    ├─────────────────────────────────────┤
    │  Collaborators (store, authorizer,  │  ← Narrow interfaces consumed
    │   content renderer, registry)       │    by the controller
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes translate HTTP into controller calls, the controller decides who
    may do what and how entities are rendered, and the collaborators own
    storage, capabilities and content transformation.
"""

__version__ = "1.0.0"
__app_name__ = "Books API"
