"""Library session resolution.

Turns a librarySessionRef into a fully populated session: library content,
then program overrides, then client overrides, with every exercise carrying
its ordered sets.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from loguru import logger

from content_resolver.config.settings import Settings, settings as default_settings
from content_resolver.library.errors import LibrarySessionNotFoundError
from content_resolver.library.gaps import record_gap
from content_resolver.library.merge import apply_exercise_overrides
from content_resolver.library.precedence import SESSION_FIELD_RULES, UNSET, pick
from content_resolver.library.refs import fetch_library_session
from content_resolver.library.types import ResolutionGap
from content_resolver.store import paths
from content_resolver.store.base import DocumentSnapshot, DocumentStore, DocumentStoreError


async def fetch_sets(
    store: DocumentStore,
    sets_path: str,
    gaps: list[ResolutionGap] | None = None,
) -> list[dict[str, Any]]:
    """Fetch an exercise's sets; a failed read degrades to no sets."""
    try:
        snapshots = await store.get_ordered_collection(sets_path, "order")
    except DocumentStoreError as e:
        record_gap(gaps, sets_path, "sets", e)
        return []
    return [snapshot.to_dict() for snapshot in snapshots]


async def fetch_exercises_with_sets(
    store: DocumentStore,
    exercises_path: str,
    gaps: list[ResolutionGap] | None = None,
) -> list[dict[str, Any]]:
    """Fetch ordered exercises and, concurrently, each exercise's ordered sets.

    Raises:
        DocumentStoreError: If the exercise collection itself cannot be read
    """
    exercise_docs = await store.get_ordered_collection(exercises_path, "order")

    async def with_sets(exercise_doc: DocumentSnapshot) -> dict[str, Any]:
        exercise = exercise_doc.to_dict()
        exercise["sets"] = await fetch_sets(store, paths.join(exercises_path, exercise_doc.id, "sets"), gaps)
        return exercise

    return list(await asyncio.gather(*[with_sets(exercise_doc) for exercise_doc in exercise_docs]))


async def load_legacy_program_overrides(
    store: DocumentStore,
    program_id: str,
    program_module_id: str,
    program_session_id: str,
) -> dict[str, Any] | None:
    """Read the legacy overrides/data document under a program session, if any."""
    path = paths.program_session_overrides(program_id, program_module_id, program_session_id)
    try:
        snapshot = await store.get_doc(path)
    except DocumentStoreError as e:
        logger.bind(path=path, error=str(e)).debug("Legacy session overrides unavailable")
        return None
    return snapshot.data() if snapshot.exists else None


async def resolve_library_session(
    store: DocumentStore,
    creator_id: str,
    library_session_ref: str,
    program_id: str,
    program_module_id: str,
    program_session_id: str,
    program_overrides: Mapping[str, Any] | None = None,
    client_overrides: Mapping[str, Any] | None = None,
    *,
    gaps: list[ResolutionGap] | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Resolve one library session with program and client overrides.

    Scalar precedence for title, description, image_url and order is
    client > program > library. Title and description only take non-empty
    overrides; image_url and order take any value that is present.

    Args:
        store: Document store
        creator_id: Owner of the library
        library_session_ref: Library session id
        program_id: Program (course) id
        program_module_id: Program module document id
        program_session_id: Program session document id; becomes the result id
        program_overrides: In-document program overrides. When None, the legacy
            overrides/data document is consulted instead.
        client_overrides: Client session override (scalars plus exercises map)
        gaps: Optional collector for degraded sub-fetches
        settings: Settings supplying the untitled fallback; defaults to the
            module-level settings

    Returns:
        Resolved session dict with ordered exercises, each with ordered sets

    Raises:
        LibrarySessionNotFoundError: If the library session does not exist
    """
    library_ref, legacy_overrides = await asyncio.gather(
        fetch_library_session(store, creator_id, library_session_ref),
        load_legacy_program_overrides(store, program_id, program_module_id, program_session_id)
        if program_overrides is None
        else _none(),
    )
    if not library_ref.found:
        logger.bind(creator_id=creator_id, library_session_ref=library_session_ref).error("Library session not found")
        raise LibrarySessionNotFoundError(creator_id, library_session_ref)

    library_session: dict[str, Any] = library_ref.resolved or {}
    program_layer = program_overrides if program_overrides is not None else legacy_overrides

    exercises = await fetch_exercises_with_sets(store, paths.library_exercises(creator_id, library_session_ref), gaps)

    title = pick("title", SESSION_FIELD_RULES["title"], client_overrides, program_layer, library_session)
    if title is UNSET:
        title = library_session.get("name") or (settings or default_settings).untitled_session_title

    resolved = {
        **library_session,
        "id": program_session_id,
        "librarySessionRef": library_session_ref,
        "title": title,
        "description": pick("description", SESSION_FIELD_RULES["description"], client_overrides, program_layer, library_session, default=None),
        "image_url": pick("image_url", SESSION_FIELD_RULES["image_url"], client_overrides, program_layer, library_session, default=None),
        "order": pick("order", SESSION_FIELD_RULES["order"], client_overrides, program_layer, library_session, default=0),
        "exercises": exercises,
    }

    exercise_overrides = (client_overrides or {}).get("exercises")
    if isinstance(exercise_overrides, Mapping):
        resolved["exercises"] = apply_exercise_overrides(exercises, exercise_overrides)

    logger.bind(
        library_session_ref=library_session_ref,
        program_session_id=program_session_id,
        exercise_count=len(exercises),
    ).debug("Resolved library session")
    return resolved


async def _none() -> None:
    return None
