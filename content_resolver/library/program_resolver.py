"""Client program resolution - top-level entry point.

Resolves a program template for one client:
1. Load the client's override document (absence or failure means no overrides)
2. Without a creator id, apply root-level overrides only
3. Otherwise resolve every module concurrently, library-backed modules
   through the library, standalone modules directly from the template
"""

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from loguru import logger

from content_resolver.config.settings import Settings, settings as default_settings
from content_resolver.library.errors import InvalidProgramTemplateError, ResolutionError
from content_resolver.library.gaps import record_gap
from content_resolver.library.merge import (
    IDENTITY_KEYS,
    apply_session_override,
    merge_module_overrides,
    merge_program_overrides,
    session_key,
)
from content_resolver.library.module_resolver import resolve_library_module
from content_resolver.library.precedence import MODULE_FIELD_RULES, merge_fields
from content_resolver.library.session_resolver import fetch_exercises_with_sets, resolve_library_session
from content_resolver.library.types import ProgramResolution, ResolutionGap
from content_resolver.store import paths
from content_resolver.store.base import DocumentStore, DocumentStoreError


async def load_client_overrides(
    store: DocumentStore,
    user_id: str,
    program_id: str,
    gaps: list[ResolutionGap] | None = None,
) -> dict[str, Any] | None:
    """Load client_programs/{user}_{program}; None when absent or unreadable."""
    path = paths.client_program(user_id, program_id)
    try:
        snapshot = await store.get_doc(path)
    except DocumentStoreError as e:
        record_gap(gaps, path, "client_overrides", e)
        return None
    return snapshot.data() if snapshot.exists else None


def _client_module(client_doc: Mapping[str, Any] | None, module_id: str | None) -> dict[str, Any] | None:
    modules = (client_doc or {}).get("modules")
    if not isinstance(modules, Mapping) or module_id is None:
        return None
    override = modules.get(module_id)
    return override if isinstance(override, dict) else None


async def _load_program_sessions(
    store: DocumentStore,
    program_id: str,
    module_id: str,
    gaps: list[ResolutionGap] | None,
) -> list[dict[str, Any]]:
    path = paths.program_sessions(program_id, module_id)
    try:
        snapshots = await store.get_ordered_collection(path, "order")
    except DocumentStoreError as e:
        record_gap(gaps, path, "session", e)
        return []
    return [snapshot.to_dict() for snapshot in snapshots]


async def _resolve_standalone_session(
    store: DocumentStore,
    creator_id: str | None,
    program_id: str,
    module_id: str,
    session: dict[str, Any],
    client_session: Mapping[str, Any] | None,
    gaps: list[ResolutionGap] | None,
    settings: Settings,
) -> dict[str, Any]:
    library_session_ref = session.get("librarySessionRef")
    session_id = session_key(session)

    if library_session_ref and creator_id:
        try:
            return await resolve_library_session(
                store,
                creator_id,
                library_session_ref,
                program_id,
                module_id,
                session.get("id") or library_session_ref,
                program_overrides=session,
                client_overrides=client_session,
                gaps=gaps,
                settings=settings,
            )
        except (ResolutionError, DocumentStoreError) as e:
            record_gap(gaps, paths.library_session(creator_id, library_session_ref), "session", e)
            return {**apply_session_override(session, client_session), "exercises": []}

    if "exercises" not in session and session_id is not None:
        exercises_path = paths.program_exercises(program_id, module_id, session_id)
        try:
            exercises = await fetch_exercises_with_sets(store, exercises_path, gaps)
        except DocumentStoreError as e:
            record_gap(gaps, exercises_path, "exercises", e)
            exercises = []
        session = {**session, "exercises": exercises}

    return apply_session_override(session, client_session)


async def _resolve_standalone_module(
    store: DocumentStore,
    creator_id: str | None,
    program_id: str,
    module: dict[str, Any],
    client_module: Mapping[str, Any] | None,
    gaps: list[ResolutionGap] | None,
    settings: Settings,
) -> dict[str, Any]:
    """Apply client overrides onto a module that lives entirely in the program."""
    module_id = module.get("id")
    if "sessions" in module:
        sessions = list(module.get("sessions") or [])
    elif module_id is not None:
        sessions = await _load_program_sessions(store, program_id, module_id, gaps)
    else:
        sessions = []

    client_sessions = (client_module or {}).get("sessions")
    if not isinstance(client_sessions, Mapping):
        client_sessions = {}

    resolved_sessions = await asyncio.gather(
        *[
            _resolve_standalone_session(
                store,
                creator_id,
                program_id,
                module_id,
                session,
                client_sessions.get(session_key(session)),
                gaps,
                settings,
            )
            for session in sessions
        ]
    )

    resolved = merge_fields(module, client_module, MODULE_FIELD_RULES, exclude=IDENTITY_KEYS | {"sessions"})
    resolved["sessions"] = list(resolved_sessions)
    return resolved


async def _resolve_module(
    store: DocumentStore,
    creator_id: str,
    program_id: str,
    module: dict[str, Any],
    client_doc: Mapping[str, Any] | None,
    gaps: list[ResolutionGap] | None,
    strict: bool,
    settings: Settings,
) -> dict[str, Any]:
    module_id = module.get("id")
    client_module = _client_module(client_doc, module_id)
    library_module_ref = module.get("libraryModuleRef")

    if not library_module_ref:
        return await _resolve_standalone_module(
            store, creator_id, program_id, module, client_module, gaps, settings
        )

    try:
        library_module = await resolve_library_module(
            store, creator_id, library_module_ref, program_id, module_id, gaps=gaps, settings=settings
        )
    except (ResolutionError, DocumentStoreError) as e:
        if strict:
            raise
        record_gap(gaps, paths.library_module(creator_id, library_module_ref), "module", e)
        return {**module, "sessions": []}

    return merge_module_overrides(library_module, module, client_module)


async def resolve_client_program(
    store: DocumentStore,
    user_id: str,
    program_id: str,
    program_template: Mapping[str, Any],
    *,
    gaps: list[ResolutionGap] | None = None,
    strict: bool | None = None,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Resolve a program template for one client.

    Args:
        store: Document store
        user_id: Client user id
        program_id: Program (course) id
        program_template: Program document with a ``modules`` list and,
            normally, a ``creator_id`` naming the library owner
        gaps: Optional collector for degraded sub-fetches
        strict: Override settings.strict_module_resolution for this call
        settings: Settings for strict mode and untitled fallbacks; defaults to
            the module-level settings

    Returns:
        A new program: the template with ``modules`` replaced by resolved
        modules, in template order. The template itself is never shared with
        the result.

    Raises:
        InvalidProgramTemplateError: If the template has no modules list
        ResolutionError: If a library-backed module cannot be resolved (strict mode)
        DocumentStoreError: If a module-level read fails (strict mode)
    """
    modules = program_template.get("modules")
    if not isinstance(modules, list):
        raise InvalidProgramTemplateError(program_id)

    settings = settings or default_settings
    strict = settings.strict_module_resolution if strict is None else strict
    program_template = copy.deepcopy(program_template)
    log = logger.bind(user_id=user_id, program_id=program_id)

    client_doc = await load_client_overrides(store, user_id, program_id, gaps)

    creator_id = program_template.get("creator_id")
    if not creator_id:
        log.warning("Program has no creator_id, skipping library resolution")
        return merge_program_overrides(program_template, None, client_doc)

    try:
        resolved_modules = await asyncio.gather(
            *[
                _resolve_module(store, creator_id, program_id, module, client_doc, gaps, strict, settings)
                for module in program_template["modules"]
            ]
        )
    except (ResolutionError, DocumentStoreError) as e:
        log.bind(error=str(e), error_type=type(e).__name__).error("Client program resolution failed")
        raise

    log.bind(module_count=len(resolved_modules)).info("Resolved client program")
    return {**program_template, "modules": list(resolved_modules)}


async def resolve_client_program_report(
    store: DocumentStore,
    user_id: str,
    program_id: str,
    program_template: Mapping[str, Any],
    *,
    strict: bool | None = None,
    settings: Settings | None = None,
) -> ProgramResolution:
    """Resolve a client program and report whether anything was left out.

    Returns:
        ProgramResolution with status resolved, resolved_with_gaps or failed
    """
    gaps: list[ResolutionGap] = []
    try:
        program = await resolve_client_program(
            store, user_id, program_id, program_template, gaps=gaps, strict=strict, settings=settings
        )
    except (ResolutionError, DocumentStoreError) as e:
        return ProgramResolution(status="failed", gaps=gaps, error=str(e))
    return ProgramResolution(
        status="resolved_with_gaps" if gaps else "resolved",
        program=program,
        gaps=gaps,
    )
