"""Library version snapshots and drift detection.

A snapshot records the version counter of every library module and session
a program references at the moment it was resolved. Comparing the snapshot
with the library later tells a caller whether a cached resolution is stale.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Literal

from loguru import logger

from content_resolver.library.types import (
    ModuleVersionChange,
    SessionVersionChange,
    VersionCheckResult,
    VersionSnapshot,
)
from content_resolver.store import paths
from content_resolver.store.base import DocumentStore, DocumentStoreError

EntityKind = Literal["module", "session"]

# Sentinel for "current version could not be read"
_UNKNOWN = object()


def _path_for(kind: EntityKind, creator_id: str, library_id: str) -> str:
    if kind == "module":
        return paths.library_module(creator_id, library_id)
    return paths.library_session(creator_id, library_id)


def _version_of(data: Mapping[str, Any]) -> int:
    return data.get("version") or 0


async def fetch_library_version(store: DocumentStore, creator_id: str, kind: EntityKind, library_id: str) -> Any:
    """Return the current version of one library entity, or _UNKNOWN.

    Missing documents and failed reads are both _UNKNOWN; each is logged.
    """
    path = _path_for(kind, creator_id, library_id)
    try:
        snapshot = await store.get_doc(path)
    except DocumentStoreError as e:
        logger.bind(path=path, error=str(e)).warning(f"Could not fetch library {kind} version")
        return _UNKNOWN
    if not snapshot.exists:
        logger.bind(path=path).warning(f"Library {kind} {library_id} not found while reading version")
        return _UNKNOWN
    return _version_of(snapshot.fields)


def collect_library_refs(modules: list[Mapping[str, Any]]) -> tuple[list[str], list[str]]:
    """Collect unique library module and session refs, in first-seen order.

    Session refs are taken from every module's sessions, whether or not the
    module itself is library-backed.
    """
    module_refs: dict[str, None] = {}
    session_refs: dict[str, None] = {}
    for module in modules:
        if module.get("libraryModuleRef"):
            module_refs.setdefault(module["libraryModuleRef"], None)
        for session in module.get("sessions") or []:
            if isinstance(session, Mapping) and session.get("librarySessionRef"):
                session_refs.setdefault(session["librarySessionRef"], None)
    return list(module_refs), list(session_refs)


async def extract_library_versions(
    store: DocumentStore,
    creator_id: str | None,
    modules: list[Mapping[str, Any]] | None,
) -> VersionSnapshot:
    """Capture the current library version of everything the modules reference.

    Args:
        store: Document store
        creator_id: Owner of the library
        modules: Program modules (template or resolved)

    Returns:
        VersionSnapshot; ids whose version could not be read are omitted
    """
    snapshot = VersionSnapshot()
    if not creator_id or not modules:
        return snapshot

    module_refs, session_refs = collect_library_refs(modules)
    module_versions, session_versions = await asyncio.gather(
        asyncio.gather(*[fetch_library_version(store, creator_id, "module", ref) for ref in module_refs]),
        asyncio.gather(*[fetch_library_version(store, creator_id, "session", ref) for ref in session_refs]),
    )

    for ref, version in zip(module_refs, module_versions, strict=True):
        if version is not _UNKNOWN:
            snapshot.modules[ref] = version
    for ref, version in zip(session_refs, session_versions, strict=True):
        if version is not _UNKNOWN:
            snapshot.sessions[ref] = version

    logger.bind(
        creator_id=creator_id,
        modules=len(snapshot.modules),
        sessions=len(snapshot.sessions),
    ).debug("Extracted library versions")
    return snapshot


async def check_library_versions_changed(
    store: DocumentStore,
    creator_id: str,
    stored_versions: VersionSnapshot | Mapping[str, Any] | None,
) -> VersionCheckResult:
    """Compare a stored snapshot with the library's current versions.

    Ids whose current version cannot be read are listed as unknown rather
    than changed; they do not set needs_update on their own.
    """
    if stored_versions is None:
        return VersionCheckResult()
    if not isinstance(stored_versions, VersionSnapshot):
        stored_versions = VersionSnapshot.model_validate(
            {key: value or {} for key, value in stored_versions.items() if key in ("modules", "sessions")}
        )
    if stored_versions.is_empty():
        return VersionCheckResult()

    module_items = list(stored_versions.modules.items())
    session_items = list(stored_versions.sessions.items())
    module_versions, session_versions = await asyncio.gather(
        asyncio.gather(*[fetch_library_version(store, creator_id, "module", ref) for ref, _ in module_items]),
        asyncio.gather(*[fetch_library_version(store, creator_id, "session", ref) for ref, _ in session_items]),
    )

    result = VersionCheckResult()
    for (module_id, old_version), new_version in zip(module_items, module_versions, strict=True):
        if new_version is _UNKNOWN:
            result.unknown_modules.append(module_id)
        elif new_version != old_version:
            result.changed_modules.append(
                ModuleVersionChange(module_id=module_id, old_version=old_version, new_version=new_version)
            )
    for (session_id, old_version), new_version in zip(session_items, session_versions, strict=True):
        if new_version is _UNKNOWN:
            result.unknown_sessions.append(session_id)
        elif new_version != old_version:
            result.changed_sessions.append(
                SessionVersionChange(session_id=session_id, old_version=old_version, new_version=new_version)
            )

    result.needs_update = bool(result.changed_modules or result.changed_sessions)
    if result.needs_update or result.has_unknown:
        logger.bind(
            creator_id=creator_id,
            changed_modules=len(result.changed_modules),
            changed_sessions=len(result.changed_sessions),
            unknown=len(result.unknown_modules) + len(result.unknown_sessions),
        ).info("Library drift detected")
    return result
