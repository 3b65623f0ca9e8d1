"""
nudge_engine/models/ -- Pydantic v2 models for the nudge editor.

Submodules:
    layers      Layer discriminated union, style and per-type content blocks.
    campaign    CampaignDocument, per-type configs, targeting and display rules.
    validators  Tree-integrity and save-readiness checks.
"""

from nudge_engine.models.campaign import CampaignDocument
from nudge_engine.models.layers import Layer, LayerBase, LayerStyle, parse_layer

__all__ = ["CampaignDocument", "Layer", "LayerBase", "LayerStyle", "parse_layer"]
