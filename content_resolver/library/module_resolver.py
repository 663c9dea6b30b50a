"""Library module resolution."""

import asyncio
from typing import Any

from loguru import logger

from content_resolver.config.settings import Settings, settings as default_settings
from content_resolver.library.errors import LibraryModuleNotFoundError, ResolutionError
from content_resolver.library.gaps import record_gap
from content_resolver.library.refs import fetch_library_module
from content_resolver.library.session_resolver import resolve_library_session
from content_resolver.library.types import ResolutionGap
from content_resolver.store import paths
from content_resolver.store.base import DocumentStore, DocumentStoreError


async def _load_program_session(
    store: DocumentStore,
    program_id: str,
    program_module_id: str,
    session_id: str,
) -> tuple[str, dict[str, Any] | None]:
    """Return (program session id, in-document overrides) for a library session.

    The program may hold a session document under the library session's id;
    its fields are the program-level overrides for that session.
    """
    path = paths.program_session(program_id, program_module_id, session_id)
    try:
        snapshot = await store.get_doc(path)
    except DocumentStoreError as e:
        logger.bind(path=path, error=str(e)).debug("Program session document unavailable")
        return session_id, None
    if not snapshot.exists:
        return session_id, None
    return snapshot.id, snapshot.data()


async def resolve_library_module(
    store: DocumentStore,
    creator_id: str,
    library_module_ref: str,
    program_id: str,
    program_module_id: str,
    *,
    gaps: list[ResolutionGap] | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Resolve a library module and all of its referenced sessions.

    Sessions are resolved concurrently. A session that cannot be resolved is
    dropped from the result and recorded as a gap; the module itself still
    resolves with the remaining sessions.

    Raises:
        LibraryModuleNotFoundError: If the library module does not exist
    """
    settings = settings or default_settings
    module_ref = await fetch_library_module(store, creator_id, library_module_ref)
    if not module_ref.found:
        logger.bind(creator_id=creator_id, library_module_ref=library_module_ref).error("Library module not found")
        raise LibraryModuleNotFoundError(creator_id, library_module_ref)

    library_module: dict[str, Any] = module_ref.resolved or {}
    session_refs: list[str] = list(library_module.get("sessionRefs") or [])

    async def resolve_session(index: int, session_id: str) -> dict[str, Any] | None:
        try:
            program_session_id, program_overrides = await _load_program_session(
                store, program_id, program_module_id, session_id
            )
            session = await resolve_library_session(
                store,
                creator_id,
                session_id,
                program_id,
                program_module_id,
                program_session_id,
                program_overrides,
                gaps=gaps,
                settings=settings,
            )
        except (ResolutionError, DocumentStoreError) as e:
            record_gap(gaps, paths.library_session(creator_id, session_id), "session", e)
            return None
        return {**session, "order": index, "librarySessionRef": session_id}

    sessions = await asyncio.gather(*[resolve_session(index, session_id) for index, session_id in enumerate(session_refs)])

    resolved = {
        "id": program_module_id,
        "libraryModuleRef": library_module_ref,
        "title": library_module.get("title") or library_module.get("name") or settings.untitled_module_title,
        "description": library_module.get("description") or None,
        "order": library_module.get("order") or 0,
        "sessions": [session for session in sessions if session is not None],
    }
    logger.bind(
        library_module_ref=library_module_ref,
        program_module_id=program_module_id,
        session_count=len(resolved["sessions"]),
        dropped=len(session_refs) - len(resolved["sessions"]),
    ).debug("Resolved library module")
    return resolved
