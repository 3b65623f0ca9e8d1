"""
nudge_engine/renderer/dispatch.py -- Pick the renderer for a nudge type.

Rendering never raises for content problems: an unknown nudge type, a
missing root container or a dangling child id all produce placeholder
nodes instead.  Nothing here performs I/O.

Usage::

    from nudge_engine.renderer import render_document

    tree = render_document(doc, on_layer_select=store.select_layer)
    tree.to_dict()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Optional

from nudge_engine.defaults import default_config, find_root_layer
from nudge_engine.models.campaign import CampaignDocument
from nudge_engine.models.layers import LayerBase
from nudge_engine.renderer.banner import render_banner
from nudge_engine.renderer.base import RenderContext, placeholder
from nudge_engine.renderer.bottom_sheet import render_bottom_sheet
from nudge_engine.renderer.dynamic import TickerRegistry
from nudge_engine.renderer.modal import render_modal
from nudge_engine.renderer.nodes import RenderNode
from nudge_engine.renderer.tooltip import render_tooltip

logger = logging.getLogger(__name__)

RENDERERS: dict[str, Callable[[RenderContext, Optional[LayerBase]], RenderNode]] = {
    "modal": render_modal,
    "banner": render_banner,
    "bottomsheet": render_bottom_sheet,
    "tooltip": render_tooltip,
}


def unavailable_text(nudge_type: str) -> str:
    return f"Preview unavailable for '{nudge_type}' nudges"


def render(
    nudge_type: str,
    layers: Iterable[LayerBase],
    selected_layer_id: Optional[str] = None,
    on_layer_select: Optional[Callable[[str], None]] = None,
    colors: Optional[Mapping] = None,
    config: Any = None,
    root_layer_id: Optional[str] = None,
    tickers: Optional[TickerRegistry] = None,
) -> RenderNode:
    """Render a layer tree for *nudge_type*.

    Parameters
    ----------
    nudge_type : str
        Selects the renderer; unsupported types yield a placeholder.
    layers : iterable of LayerBase
        The flat layer list.
    selected_layer_id : str, optional
        Layer to outline.
    on_layer_select : callable, optional
        Called with a layer id when a rendered node is clicked.
    colors : mapping, optional
        Theme tokens, ``colors[family][shade]``.
    config : optional
        Per-type config model; the type's defaults when omitted.
    root_layer_id : str, optional
        Root container id; the reserved container name is used otherwise.
    tickers : TickerRegistry, optional
        Live countdown / counter state.  Tickers for layers that are no
        longer rendered are stopped after every render.
    """
    renderer = RENDERERS.get(nudge_type)
    if renderer is None:
        logger.debug("No renderer for nudge type %r", nudge_type)
        if tickers is not None:
            tickers.stop_all()
        return placeholder(unavailable_text(nudge_type))

    layers = tuple(layers)
    ctx = RenderContext(
        layers_by_id={layer.id: layer for layer in layers},
        nudge_type=nudge_type,
        selected_layer_id=selected_layer_id,
        on_layer_select=on_layer_select,
        colors=colors,
        config=config if config is not None else default_config(nudge_type),
        tickers=tickers,
    )
    root = find_root_layer(layers, nudge_type, root_layer_id)
    if root is None:
        logger.debug("No root container for %s; rendering placeholder", nudge_type)
    node = renderer(ctx, root)
    if tickers is not None:
        tickers.reconcile(ctx.rendered_ids)
    return node


def render_document(
    doc: CampaignDocument,
    on_layer_select: Optional[Callable[[str], None]] = None,
    colors: Optional[Mapping] = None,
    tickers: Optional[TickerRegistry] = None,
) -> RenderNode:
    return render(
        doc.nudge_type,
        doc.layers,
        selected_layer_id=doc.selected_layer_id,
        on_layer_select=on_layer_select,
        colors=colors,
        config=doc.active_config,
        root_layer_id=doc.root_layer_id,
        tickers=tickers,
    )
