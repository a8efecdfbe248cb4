"""Conflict resolution between overlapping tag candidates.

Candidates are grouped into clusters of transitively overlapping spans (if A
overlaps B and B overlaps C, all three are one cluster). Each cluster keeps
exactly one winner, chosen by, in order:

1. highest confidence
2. longest span
3. earliest start
4. first in input order (recognizer execution order)
"""

import logging

from smartinput.services.tags import ConflictGroup, ParsedTag

logger = logging.getLogger(__name__)


def cluster_candidates(candidates: list[ParsedTag]) -> list[list[ParsedTag]]:
    """Group candidates into clusters of transitively overlapping spans.

    Clusters are ordered by start; members keep their input order.
    """
    order = {id(c): i for i, c in enumerate(candidates)}
    by_start = sorted(candidates, key=lambda c: (c.start_index, order[id(c)]))

    clusters: list[list[ParsedTag]] = []
    cluster_end = -1
    for candidate in by_start:
        if clusters and candidate.start_index < cluster_end:
            clusters[-1].append(candidate)
            cluster_end = max(cluster_end, candidate.end_index)
        else:
            clusters.append([candidate])
            cluster_end = candidate.end_index

    return [sorted(cluster, key=lambda c: order[id(c)]) for cluster in clusters]


def pick_winner(cluster: list[ParsedTag]) -> ParsedTag:
    """Choose the winning candidate of a cluster given in input order."""
    best = cluster[0]
    for candidate in cluster[1:]:
        if _beats(candidate, best):
            best = candidate
    return best


def _beats(challenger: ParsedTag, holder: ParsedTag) -> bool:
    # Strict comparisons only: on a full tie the earlier (holder) candidate stays
    if challenger.confidence != holder.confidence:
        return challenger.confidence > holder.confidence
    if challenger.length() != holder.length():
        return challenger.length() > holder.length()
    return challenger.start_index < holder.start_index


def resolve_conflicts(candidates: list[ParsedTag]) -> tuple[list[ParsedTag], list[ConflictGroup]]:
    """Resolve overlapping candidates.

    Args:
        candidates: All candidates, in recognizer execution order

    Returns:
        (winners sorted by start_index, one ConflictGroup per cluster of 2+)
    """
    winners: list[ParsedTag] = []
    conflicts: list[ConflictGroup] = []

    for cluster in cluster_candidates(candidates):
        winner = pick_winner(cluster)
        winners.append(winner)
        if len(cluster) > 1:
            discarded = [c for c in cluster if c is not winner]
            conflicts.append(ConflictGroup(winner=winner, discarded=discarded))
            logger.debug(
                f"Conflict over [{winner.start_index}, {winner.end_index}): kept {winner.type.value} "
                f"{winner.original_text!r}, dropped {len(discarded)}"
            )

    winners.sort(key=lambda t: t.start_index)
    return winners, conflicts
