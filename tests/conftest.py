"""Shared fixtures for resolver tests.

Builds an in-memory document store holding one creator library, the program
documents that reference it, and a client override document.
"""

import copy
from typing import Any

import pytest

from content_resolver.store import InMemoryDocumentStore

CREATOR_ID = "creator-1"
PROGRAM_ID = "prog-1"
USER_ID = "user-1"

LIBRARY_DOCUMENTS: dict[str, dict[str, Any]] = {
    "creator_libraries/creator-1/modules/lm-1": {
        "title": "Strength Block",
        "description": "Four weeks of compound lifts",
        "order": 0,
        "sessionRefs": ["ls-1", "ls-2"],
        "version": 3,
    },
    "creator_libraries/creator-1/sessions/ls-1": {
        "title": "Push Day",
        "description": "Chest and shoulders",
        "image_url": "https://cdn.example.com/push.png",
        "order": 0,
        "version": 2,
    },
    "creator_libraries/creator-1/sessions/ls-1/exercises/ex-1": {"name": "Bench Press", "order": 0},
    "creator_libraries/creator-1/sessions/ls-1/exercises/ex-1/sets/set-1": {"order": 0, "reps": 8, "weight": 60},
    "creator_libraries/creator-1/sessions/ls-1/exercises/ex-1/sets/set-2": {"order": 1, "reps": 6, "weight": 70},
    "creator_libraries/creator-1/sessions/ls-1/exercises/ex-2": {"name": "Overhead Press", "order": 1},
    "creator_libraries/creator-1/sessions/ls-1/exercises/ex-2/sets/set-3": {"order": 0, "reps": 10, "weight": 30},
    "creator_libraries/creator-1/sessions/ls-2": {
        "title": "Pull Day",
        "order": 1,
        "version": 5,
    },
    "creator_libraries/creator-1/sessions/ls-2/exercises/ex-3": {"name": "Deadlift", "order": 0},
    "creator_libraries/creator-1/sessions/ls-2/exercises/ex-3/sets/set-4": {"order": 0, "reps": 5, "weight": 100},
    "creator_libraries/creator-1/sessions/ls-3": {
        "title": "Conditioning",
        "order": 2,
        "version": 1,
    },
    "creator_libraries/creator-1/sessions/ls-3/exercises/ex-4": {"name": "Rower", "order": 0},
}

PROGRAM_TEMPLATE: dict[str, Any] = {
    "id": PROGRAM_ID,
    "title": "Twelve Week Strength",
    "description": "Progressive strength program",
    "image_url": "https://cdn.example.com/program.png",
    "creator_id": CREATOR_ID,
    "modules": [
        {"id": "pm-1", "order": 0, "libraryModuleRef": "lm-1"},
        {
            "id": "pm-2",
            "order": 1,
            "title": "Mobility",
            "sessions": [
                {
                    "id": "ps-1",
                    "title": "Hip Flow",
                    "description": "Open the hips",
                    "order": 0,
                    "exercises": [
                        {"id": "mx-1", "name": "Hip circles", "sets": [{"id": "ms-1", "reps": 10}]},
                    ],
                },
                {"id": "ps-2", "title": "Shoulder Flow", "order": 1, "exercises": []},
            ],
        },
    ],
}


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """In-memory store seeded with the library documents."""
    return InMemoryDocumentStore(LIBRARY_DOCUMENTS)


@pytest.fixture
def program_template() -> dict[str, Any]:
    """Fresh copy of the program template."""
    return copy.deepcopy(PROGRAM_TEMPLATE)


@pytest.fixture
def put_client_overrides(store: InMemoryDocumentStore):
    """Store a client override document for user-1 on prog-1."""

    def _put(modules: dict[str, Any], **root_fields: Any) -> None:
        store.put(f"client_programs/{USER_ID}_{PROGRAM_ID}", {"modules": modules, **root_fields})

    return _put


@pytest.fixture
def library_documents() -> dict[str, dict[str, Any]]:
    """Fresh copy of the raw library documents, keyed by path."""
    return copy.deepcopy(LIBRARY_DOCUMENTS)
