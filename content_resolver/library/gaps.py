"""Gap recording for best-effort resolution."""

from loguru import logger

from content_resolver.library.types import GapKind, ResolutionGap


def record_gap(gaps: list[ResolutionGap] | None, path: str, kind: GapKind, error: BaseException | str) -> None:
    """Log a degraded sub-fetch and, when a collector is given, remember it."""
    reason = str(error)
    logger.bind(path=path, kind=kind).warning(f"Skipping {kind} at {path}: {reason}")
    if gaps is not None:
        gaps.append(ResolutionGap(path=path, kind=kind, reason=reason))
