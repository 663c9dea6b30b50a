"""Override merge functions.

Three tiers contribute to every resolved object:
library (shared, versioned) < program (per course) < client (per user).

Scalar fields follow the precedence table in precedence.py. Collections are
merged by identity: the library tier seeds the collection, the program tier
may modify or append entries, and the client tier may only modify entries
that already exist.
"""

from collections.abc import Mapping
from typing import Any

from loguru import logger

from content_resolver.library.precedence import (
    MODULE_FIELD_RULES,
    PROGRAM_FIELD_RULES,
    SESSION_FIELD_RULES,
    UNSET,
    merge_fields,
    pick,
    rule_for,
)

# Keys a client tier can never rewrite
IDENTITY_KEYS = frozenset({"id", "libraryModuleRef", "librarySessionRef"})


def session_key(session: Mapping[str, Any]) -> str | None:
    """Identity of a session within a module: its id, else its library ref."""
    if session.get("id") is not None:
        return session["id"]
    return session.get("librarySessionRef")


def apply_set_overrides(sets: list[dict[str, Any]], set_overrides: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Shallow-merge set overrides onto matching sets, by set id."""
    merged = []
    for set_data in sets:
        override = set_overrides.get(set_data.get("id"))
        if isinstance(override, Mapping):
            set_data = {**set_data, **{k: v for k, v in override.items() if k != "id"}}
        merged.append(set_data)
    return merged


def apply_exercise_overrides(
    exercises: list[dict[str, Any]],
    exercise_overrides: Mapping[str, Any],
) -> list[dict[str, Any]]:
    """Shallow-merge exercise overrides onto matching exercises, by exercise id.

    An override's ``sets`` map is applied to the exercise's own sets. Override
    keys with no matching exercise or set are ignored.
    """
    merged = []
    for exercise in exercises:
        override = exercise_overrides.get(exercise.get("id"))
        if isinstance(override, Mapping):
            fields = {k: v for k, v in override.items() if k not in ("id", "sets")}
            updated = {**exercise, **fields}
            set_overrides = override.get("sets")
            if isinstance(set_overrides, Mapping):
                updated["sets"] = apply_set_overrides(list(exercise.get("sets") or []), set_overrides)
            exercise = updated
        merged.append(exercise)
    return merged


def apply_session_override(session: dict[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """Apply one client session override onto an existing session."""
    if not override:
        return dict(session)
    merged = merge_fields(session, override, SESSION_FIELD_RULES, exclude=IDENTITY_KEYS | {"exercises"})
    exercise_overrides = override.get("exercises")
    if isinstance(exercise_overrides, Mapping):
        merged["exercises"] = apply_exercise_overrides(list(session.get("exercises") or []), exercise_overrides)
    elif exercise_overrides is not None:
        logger.bind(session_id=session_key(session)).warning("Ignoring client exercise override that is not keyed by id")
    return merged


def merge_session_lists(
    library_sessions: list[dict[str, Any]] | None,
    program_sessions: list[dict[str, Any]] | None,
    client_sessions: Mapping[str, Any] | None,
) -> list[dict[str, Any]]:
    """Merge the three session tiers by identity, keeping library order first."""
    merged: dict[Any, dict[str, Any]] = {}
    for index, session in enumerate(library_sessions or []):
        key = session_key(session)
        merged[key if key is not None else ("library", index)] = dict(session)

    for index, session in enumerate(program_sessions or []):
        key = session_key(session)
        if key is not None and key in merged:
            merged[key] = merge_fields(merged[key], session, SESSION_FIELD_RULES)
        else:
            merged[key if key is not None else ("program", index)] = dict(session)

    for key, override in (client_sessions or {}).items():
        if key not in merged:
            logger.bind(session_id=key).debug("Client override targets unknown session, ignoring")
            continue
        if isinstance(override, Mapping):
            merged[key] = apply_session_override(merged[key], override)

    return list(merged.values())


def _first_present(field: str, *layers: Mapping[str, Any] | None) -> Any:
    for layer in layers:
        if layer and field in layer:
            return layer[field]
    return UNSET


def merge_module_overrides(
    library_module: Mapping[str, Any] | None,
    program_module: Mapping[str, Any] | None,
    client_module: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Combine the library, program and client tiers of one module.

    Scalar fields: client > program > library per the module rules (title and
    description never lose to an empty override). The client tier cannot
    change identity keys. Sessions are rebuilt by merge_session_lists.

    Args:
        library_module: Resolved library module (sessions as a list)
        program_module: Program module document (sessions as a list of partials)
        client_module: Client module override (sessions keyed by session id)

    Returns:
        The merged module as a new dict
    """
    library_module = library_module or {}
    program_module = program_module or {}
    client_scalars = {k: v for k, v in (client_module or {}).items() if k not in IDENTITY_KEYS}

    fields: dict[str, None] = {}
    for layer in (library_module, program_module, client_scalars):
        for field in layer:
            if field != "sessions":
                fields.setdefault(field, None)

    merged: dict[str, Any] = {}
    for field in fields:
        value = pick(
            field,
            rule_for(field, MODULE_FIELD_RULES),
            client_scalars,
            program_module,
            library_module,
            default=_first_present(field, library_module, program_module, client_scalars),
        )
        merged[field] = value

    client_sessions = (client_module or {}).get("sessions")
    merged["sessions"] = merge_session_lists(
        library_module.get("sessions"),
        program_module.get("sessions"),
        client_sessions if isinstance(client_sessions, Mapping) else None,
    )
    return merged


def merge_program_overrides(
    program_template: Mapping[str, Any],
    program_overrides: Mapping[str, Any] | None,
    client_overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Apply root-level overrides to a program template.

    Only title, description and image_url are considered, client over program
    over template, and an empty override never wins. Modules are left as they
    are in the template.
    """
    merged = dict(program_template)
    for field, rule in PROGRAM_FIELD_RULES.items():
        value = pick(field, rule, client_overrides, program_overrides, program_template)
        if value is not UNSET:
            merged[field] = value
    return merged
