"""Consensus merging of candidates from several generators."""

import logging

from .models import MappingCandidate

logger = logging.getLogger(__name__)


def merge_candidates(
    candidates: list[MappingCandidate], vote_boost: float = 0.1
) -> list[MappingCandidate]:
    """Reduce candidates to at most one per source column.

    Candidates for the same column vote for their target cell. The cell with
    the most votes wins (ties go to the higher confidence sum, then to the
    cell seen first); its most confident candidate is kept with confidence
    raised by ``vote_boost`` per additional vote, capped at 1.0.
    """
    by_column: dict[str, list[MappingCandidate]] = {}
    for candidate in candidates:
        by_column.setdefault(candidate.source_column, []).append(candidate)

    merged = []
    for column, group in by_column.items():
        if len(group) == 1:
            merged.append(group[0])
            continue

        votes: dict[tuple[int, int], list[MappingCandidate]] = {}
        for candidate in group:
            votes.setdefault(candidate.target, []).append(candidate)

        best_group = None
        for cell_group in votes.values():
            if best_group is None:
                best_group = cell_group
                continue
            count, best_count = len(cell_group), len(best_group)
            total = sum(c.confidence for c in cell_group)
            best_total = sum(c.confidence for c in best_group)
            if count > best_count or (count == best_count and total > best_total):
                best_group = cell_group

        best = best_group[0]
        for candidate in best_group[1:]:
            if candidate.confidence > best.confidence:
                best = candidate

        count = len(best_group)
        if count > 1:
            best = best.model_copy(
                update={
                    "confidence": min(1.0, best.confidence + vote_boost * (count - 1)),
                    "reason": f"{count} sources agree: {best.reason}",
                }
            )
        logger.debug(f"Merged {len(group)} candidates for '{column}' -> {best.target} ({count} votes)")
        merged.append(best)

    logger.info(f"Merged {len(candidates)} candidates into {len(merged)}")
    return merged
