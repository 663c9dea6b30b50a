"""Path builders for the hierarchical document namespace."""


def join(*segments: str) -> str:
    return "/".join(str(segment).strip("/") for segment in segments)


def parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def library_module(creator_id: str, module_id: str) -> str:
    return join("creator_libraries", creator_id, "modules", module_id)


def library_session(creator_id: str, session_id: str) -> str:
    return join("creator_libraries", creator_id, "sessions", session_id)


def library_exercises(creator_id: str, session_id: str) -> str:
    return join(library_session(creator_id, session_id), "exercises")


def library_sets(creator_id: str, session_id: str, exercise_id: str) -> str:
    return join(library_exercises(creator_id, session_id), exercise_id, "sets")


def program_session(program_id: str, module_id: str, session_id: str) -> str:
    return join("courses", program_id, "modules", module_id, "sessions", session_id)


def program_session_overrides(program_id: str, module_id: str, session_id: str) -> str:
    """Legacy per-session override document."""
    return join(program_session(program_id, module_id, session_id), "overrides", "data")


def program_exercises(program_id: str, module_id: str, session_id: str) -> str:
    return join(program_session(program_id, module_id, session_id), "exercises")


def program_sets(program_id: str, module_id: str, session_id: str, exercise_id: str) -> str:
    return join(program_exercises(program_id, module_id, session_id), exercise_id, "sets")


def client_program_id(user_id: str, program_id: str) -> str:
    return f"{user_id}_{program_id}"


def client_program(user_id: str, program_id: str) -> str:
    return join("client_programs", client_program_id(user_id, program_id))


def program_sessions(program_id: str, module_id: str) -> str:
    return join("courses", program_id, "modules", module_id, "sessions")
