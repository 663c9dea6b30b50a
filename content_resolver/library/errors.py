"""Resolution errors.

Fatal conditions raise one of these; degraded conditions are logged and
recorded as gaps instead.
"""


class ResolutionError(Exception):
    """Base exception for all resolution errors."""

    pass


class LibraryModuleNotFoundError(ResolutionError):
    """Raised when a libraryModuleRef points at a missing library module."""

    def __init__(self, creator_id: str, library_module_ref: str) -> None:
        self.creator_id = creator_id
        self.library_module_ref = library_module_ref
        super().__init__(f"Library module {library_module_ref} not found for creator {creator_id}")


class LibrarySessionNotFoundError(ResolutionError):
    """Raised when a librarySessionRef points at a missing library session."""

    def __init__(self, creator_id: str, library_session_ref: str) -> None:
        self.creator_id = creator_id
        self.library_session_ref = library_session_ref
        super().__init__(f"Library session {library_session_ref} not found for creator {creator_id}")


class InvalidProgramTemplateError(ResolutionError):
    """Raised when a program template has no modules array."""

    def __init__(self, program_id: str) -> None:
        self.program_id = program_id
        super().__init__(f"Program template {program_id} has no modules array")
