"""Structured resolver outputs.

Document content (modules, sessions, exercises, sets) stays as plain dicts;
the resolver is agnostic to leaf fields. These models cover what the
resolver itself produces:
- VersionSnapshot: library versions captured at resolution time
- VersionCheckResult: drift between a snapshot and current library state
- ResolutionGap / ProgramResolution: best-effort outcome reporting
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GapKind = Literal["client_overrides", "module", "session", "exercises", "sets"]
ResolutionStatus = Literal["resolved", "resolved_with_gaps", "failed"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VersionSnapshot(_CamelModel):
    """Library versions keyed by library id.

    Attributes:
        modules: {libraryModuleId: version}
        sessions: {librarySessionId: version}
    """

    modules: dict[str, int] = Field(default_factory=dict)
    sessions: dict[str, int] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.modules and not self.sessions


class ModuleVersionChange(_CamelModel):
    module_id: str
    old_version: int
    new_version: int


class SessionVersionChange(_CamelModel):
    session_id: str
    old_version: int
    new_version: int


class VersionCheckResult(_CamelModel):
    """Drift between a stored snapshot and the current library.

    Attributes:
        needs_update: True when at least one id is known to have changed
        changed_modules: Modules whose version moved
        changed_sessions: Sessions whose version moved
        unknown_modules: Module ids whose current version could not be read
        unknown_sessions: Session ids whose current version could not be read
    """

    needs_update: bool = False
    changed_modules: list[ModuleVersionChange] = Field(default_factory=list)
    changed_sessions: list[SessionVersionChange] = Field(default_factory=list)
    unknown_modules: list[str] = Field(default_factory=list)
    unknown_sessions: list[str] = Field(default_factory=list)

    @property
    def has_unknown(self) -> bool:
        return bool(self.unknown_modules or self.unknown_sessions)


class ResolutionGap(BaseModel):
    """One piece of content that was skipped during a best-effort resolution.

    Attributes:
        path: Store path (or logical path) of the missing piece
        kind: What was lost
        reason: Error text
    """

    path: str
    kind: GapKind
    reason: str


class ProgramResolution(BaseModel):
    """Outcome of resolving a client program.

    Attributes:
        status: resolved, resolved_with_gaps or failed
        program: Resolved program (None when failed)
        gaps: Degraded sub-fetches, in the order they were recorded
        error: Failure reason (only when failed)
    """

    status: ResolutionStatus
    program: dict[str, Any] | None = None
    gaps: list[ResolutionGap] = Field(default_factory=list)
    error: str | None = None
