"""
Reachability analysis over a scanned LinkGraph.

Pure set operations, no filesystem access:
- a revision is reachable when it is some tag's current digest or appears in
  some tag's history index; everything else in the revision store is orphaned
- compacting a tag keeps only its current digest in its history index, which
  can only shrink the reachable set, so orphans are recomputed afterwards on
  the whole repository
"""

from typing import List, Set

from registry_prune.error_utils import NoSuchTagError
from registry_prune.link_graph import LinkGraph


def reachable_digests(graph: LinkGraph) -> Set[str]:
    """Digests referenced by any tag of the repository."""
    reachable = set()
    for state in graph.tags.values():
        reachable.update(state.history)
        # A current pointer missing from its own index is still live
        reachable.add(state.current)
    return reachable


def find_orphaned_revisions(graph: LinkGraph) -> List[str]:
    """Revisions no tag references, sorted for stable logs."""
    return sorted(graph.revisions - reachable_digests(graph))


def find_stale_history(graph: LinkGraph, tag: str) -> List[str]:
    """History entries of tag other than its current digest, sorted.

    Raises:
        NoSuchTagError: if the tag is not part of the graph
    """
    state = graph.tags.get(tag)
    if state is None:
        raise NoSuchTagError(graph.repository, tag)
    return sorted(state.history - {state.current})


def compact_history(graph: LinkGraph, tag: str) -> LinkGraph:
    """Return the graph as it looks after tag's stale history entries are pruned."""
    state = graph.tags.get(tag)
    if state is None:
        raise NoSuchTagError(graph.repository, tag)
    return graph.with_history(tag, state.history & {state.current})
