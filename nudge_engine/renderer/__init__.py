"""
nudge_engine/renderer/ -- Turn a layer tree into a toolkit-neutral render tree.

Submodules:
    nodes         RenderNode, the output tree.
    base          Shared layer rendering and leaf builders.
    modal         Modal frame.
    banner        Banner frame.
    bottom_sheet  Bottom sheet frame.
    tooltip       Tooltip frame.
    dynamic       Countdown and counter tickers.
    dispatch      Renderer selection by nudge type.
"""

from nudge_engine.renderer.dispatch import RENDERERS, render, render_document
from nudge_engine.renderer.dynamic import TickerRegistry
from nudge_engine.renderer.nodes import RenderNode

__all__ = ["RENDERERS", "RenderNode", "TickerRegistry", "render", "render_document"]
