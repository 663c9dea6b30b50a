"""Service facade binding a document store to the resolver operations."""

from collections.abc import Mapping
from typing import Any

from content_resolver.config.settings import Settings, settings as default_settings
from content_resolver.library.program_resolver import resolve_client_program, resolve_client_program_report
from content_resolver.library.types import ProgramResolution, VersionCheckResult, VersionSnapshot
from content_resolver.library.versions import check_library_versions_changed, extract_library_versions
from content_resolver.store.base import DocumentStore
from content_resolver.store.limits import ConcurrencyLimitedStore


class LibraryResolutionService:
    """Resolve client programs and track library drift against one store.

    Every call gets its own concurrency-limited view of the store, so no
    state is shared between calls.
    """

    def __init__(self, store: DocumentStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or default_settings

    def _limited_store(self) -> ConcurrencyLimitedStore:
        return ConcurrencyLimitedStore(self.store, self.settings.max_concurrent_fetches)

    async def resolve_client_program(
        self,
        user_id: str,
        program_id: str,
        program_template: Mapping[str, Any],
    ) -> dict[str, Any]:
        return await resolve_client_program(
            self._limited_store(),
            user_id,
            program_id,
            program_template,
            strict=self.settings.strict_module_resolution,
            settings=self.settings,
        )

    async def resolve_client_program_report(
        self,
        user_id: str,
        program_id: str,
        program_template: Mapping[str, Any],
    ) -> ProgramResolution:
        return await resolve_client_program_report(
            self._limited_store(),
            user_id,
            program_id,
            program_template,
            strict=self.settings.strict_module_resolution,
            settings=self.settings,
        )

    async def extract_library_versions(
        self,
        creator_id: str | None,
        modules: list[Mapping[str, Any]] | None,
    ) -> VersionSnapshot:
        return await extract_library_versions(self._limited_store(), creator_id, modules)

    async def check_library_versions_changed(
        self,
        creator_id: str,
        stored_versions: VersionSnapshot | Mapping[str, Any] | None,
    ) -> VersionCheckResult:
        return await check_library_versions_changed(self._limited_store(), creator_id, stored_versions)
