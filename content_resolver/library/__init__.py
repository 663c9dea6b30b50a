"""Library content resolution.

Resolves programs whose modules and sessions come from a creator's shared
library, layering program-level and client-level overrides on top, and
detects when the library has moved on since a snapshot was taken.

This is read-only: nothing here writes to the document store.
"""

from content_resolver.library.errors import (
    InvalidProgramTemplateError,
    LibraryModuleNotFoundError,
    LibrarySessionNotFoundError,
    ResolutionError,
)
from content_resolver.library.merge import merge_module_overrides, merge_program_overrides
from content_resolver.library.module_resolver import resolve_library_module
from content_resolver.library.program_resolver import resolve_client_program, resolve_client_program_report
from content_resolver.library.service import LibraryResolutionService
from content_resolver.library.session_resolver import resolve_library_session
from content_resolver.library.types import (
    ModuleVersionChange,
    ProgramResolution,
    ResolutionGap,
    SessionVersionChange,
    VersionCheckResult,
    VersionSnapshot,
)
from content_resolver.library.versions import check_library_versions_changed, extract_library_versions

__all__ = [
    "InvalidProgramTemplateError",
    "LibraryModuleNotFoundError",
    "LibraryResolutionService",
    "LibrarySessionNotFoundError",
    "ModuleVersionChange",
    "ProgramResolution",
    "ResolutionError",
    "ResolutionGap",
    "SessionVersionChange",
    "VersionCheckResult",
    "VersionSnapshot",
    "check_library_versions_changed",
    "extract_library_versions",
    "merge_module_overrides",
    "merge_program_overrides",
    "resolve_client_program",
    "resolve_client_program_report",
    "resolve_library_module",
    "resolve_library_session",
]
