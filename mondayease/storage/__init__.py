"""
MondayEase Storage

Table-oriented persistence with swappable backends:

    storage/
    ├── base.py         # DocumentStore protocol
    ├── memory.py       # InMemoryStore (tests, local development)
    ├── mongo.py        # MongoStore (motor)
    ├── schemas.py      # Row models for the external tables
    └── repository.py   # Typed access used by services and routes
"""

from .base import DocumentStore, StoreError
from .memory import InMemoryStore
from .mongo import MongoStore
from .repository import Repository

__all__ = [
    "DocumentStore",
    "InMemoryStore",
    "MongoStore",
    "Repository",
    "StoreError",
]
