"""
nudge_engine/models/validators.py -- Structural and save-readiness validators.

Pydantic checks the shape of each layer.  These validators check the things
a single layer cannot know about:

    - Tree integrity: unique ids, parent pointers and ``children`` lists
      agree, every layer has at most one parent, no cycles.
    - Save readiness: the campaign has a name and at least one layer.

They return human-readable issue lists instead of raising, so the editor
can show them next to the save button.  ``DocumentStore`` and the
serializer turn tree errors into :class:`~nudge_engine.errors.DocumentLoadError`.

Usage::

    from nudge_engine.models.validators import validate_layer_tree

    report = validate_layer_tree(doc.layers)
    if report.errors:
        ...
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

import networkx as nx

from nudge_engine.models.layers import LayerBase

logger = logging.getLogger(__name__)


@dataclass
class TreeReport:
    """Result of :func:`validate_layer_tree`.

    ``errors`` make the tree unusable; ``warnings`` (dangling child ids)
    are tolerated because renderers skip unknown children.
    """
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ------------------------------------------------------------------
# Tree integrity
# ------------------------------------------------------------------

def build_layer_graph(layers: Iterable[LayerBase]) -> nx.DiGraph:
    """Return a directed parent -> child graph of *layers*.

    Nodes carry ``type`` and ``name`` attributes.  Edges come from the
    ``children`` lists; dangling child ids are not added as nodes.
    """
    layers = list(layers)
    graph = nx.DiGraph()
    for layer in layers:
        graph.add_node(layer.id, type=layer.type, name=layer.name)
    for layer in layers:
        for child_id in layer.children:
            if child_id in graph:
                graph.add_edge(layer.id, child_id)
    return graph


def validate_layer_tree(layers: Iterable[LayerBase]) -> TreeReport:
    """Check that *layers* form a forest whose back-references agree."""
    layers = list(layers)
    report = TreeReport()

    id_counts = Counter(layer.id for layer in layers)
    for layer_id, count in id_counts.items():
        if count > 1:
            report.errors.append(f"Layer id '{layer_id}' is used {count} times.")

    by_id = {layer.id: layer for layer in layers}

    # Who lists whom as a child
    listed_by: dict[str, list[str]] = {}
    for layer in layers:
        for child_id in layer.children:
            listed_by.setdefault(child_id, []).append(layer.id)
            if child_id not in by_id:
                report.warnings.append(
                    f"Layer '{layer.id}' lists missing child '{child_id}'."
                )

    for layer in layers:
        owners = listed_by.get(layer.id, [])
        if layer.parent is None:
            if owners:
                report.errors.append(
                    f"Root layer '{layer.id}' is listed as a child of "
                    f"{', '.join(repr(o) for o in owners)}."
                )
            continue
        if layer.parent not in by_id:
            report.errors.append(
                f"Layer '{layer.id}' points to missing parent '{layer.parent}'."
            )
            continue
        if owners.count(layer.parent) != 1:
            report.errors.append(
                f"Parent '{layer.parent}' must list '{layer.id}' exactly once "
                f"(found {owners.count(layer.parent)})."
            )
        strangers = [o for o in owners if o != layer.parent]
        if strangers:
            report.errors.append(
                f"Layer '{layer.id}' is also listed as a child of "
                f"{', '.join(repr(o) for o in strangers)}."
            )

    graph = build_layer_graph(layers)
    if not nx.is_directed_acyclic_graph(graph):
        cycle = nx.find_cycle(graph)
        path = " -> ".join(edge[0] for edge in cycle)
        report.errors.append(f"Layer tree contains a cycle: {path}.")

    return report


def descendants_of(layers: Iterable[LayerBase], layer_id: str) -> set[str]:
    """Return the ids of every transitive child of *layer_id*."""
    graph = build_layer_graph(layers)
    if layer_id not in graph:
        return set()
    return set(nx.descendants(graph, layer_id))


# ------------------------------------------------------------------
# Save readiness
# ------------------------------------------------------------------

def validate_for_save(name: str | None, layers: Iterable[LayerBase]) -> list[str]:
    """Return the user-facing reasons a campaign cannot be saved or launched."""
    issues: list[str] = []
    if not name or not name.strip():
        issues.append("Campaign name is required")
    if not list(layers):
        issues.append("Campaign must have at least one layer")
    return issues
