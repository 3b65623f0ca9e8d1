"""
nudge_engine/renderer/nodes.py -- The render tree handed to preview surfaces.

A :class:`RenderNode` is toolkit-neutral: a kind (``"text"``, ``"button"``,
``"container"``...), a resolved CSS-like style dict, optional text, extra
props, children and, for nodes backed by a layer, a zero-argument
``on_select`` callback.  The Qt preview, the CLI and the tests all consume
the same tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional


@dataclass
class RenderNode:
    kind: str
    layer_id: Optional[str] = None
    style: dict[str, Any] = field(default_factory=dict)
    text: Optional[str] = None
    props: dict[str, Any] = field(default_factory=dict)
    children: list[RenderNode] = field(default_factory=list)
    on_select: Optional[Callable[[], None]] = None

    @property
    def selected(self) -> bool:
        return bool(self.props.get("selected"))

    def walk(self) -> Iterator[RenderNode]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find(self, layer_id: str) -> Optional[RenderNode]:
        for node in self.walk():
            if node.layer_id == layer_id:
                return node
        return None

    def find_kind(self, kind: str) -> list[RenderNode]:
        return [node for node in self.walk() if node.kind == kind]

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form (callbacks dropped, empty fields omitted)."""
        data: dict[str, Any] = {"kind": self.kind}
        if self.layer_id is not None:
            data["layerId"] = self.layer_id
        if self.style:
            data["style"] = dict(self.style)
        if self.text is not None:
            data["text"] = self.text
        if self.props:
            data["props"] = dict(self.props)
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data
