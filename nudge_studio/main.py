"""
nudge_studio/main.py -- Command line entry point.

Works on campaign JSON files in the persisted wire shape, without Qt:

    nudge-studio new bottomsheet --name "Flash sale" --template flash-sale
    nudge-studio validate drafts/campaign_x.json
    nudge-studio render drafts/campaign_x.json --json
    nudge-studio templates --type modal
    nudge-studio push drafts/campaign_x.json

Usage::

    python -m nudge_studio.main --help
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from nudge_engine import __version__
from nudge_engine.autosave import AutosaveCoordinator
from nudge_engine.document_store import DocumentStore
from nudge_engine.errors import DocumentError, DocumentLoadError
from nudge_engine.models.campaign import NUDGE_TYPES
from nudge_engine.models.validators import validate_for_save, validate_layer_tree
from nudge_engine.renderer import RenderNode, render_document
from nudge_engine.scheduler import ManualScheduler
from nudge_engine.serialization import load_document_file, save_document_file
from nudge_engine.templates import TemplateCatalog
from nudge_studio.config import StudioSettings, load_settings
from nudge_studio.paths import get_drafts_dir, get_templates_dir
from nudge_studio.services.api_client import ApiClient, ApiError

logger = logging.getLogger("nudge_studio")


def _setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _catalog(settings: StudioSettings) -> TemplateCatalog:
    directory = Path(settings.templates_dir) if settings.templates_dir else get_templates_dir()
    return TemplateCatalog.with_builtins(directory)


def _print_issues(title: str, issues: Sequence[str]) -> None:
    print(title, file=sys.stderr)
    for issue in issues:
        print(f"  - {issue}", file=sys.stderr)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------

def cmd_new(args: argparse.Namespace, settings: StudioSettings) -> int:
    store = DocumentStore()
    doc = store.create_campaign(args.experience, args.nudge_type, args.name)
    if args.template:
        _catalog(settings).apply(store, args.template)
        doc = store.document
    output = Path(args.output) if args.output else get_drafts_dir() / f"{doc.id}.json"
    save_document_file(doc, output)
    print(output)
    return 0


def cmd_validate(args: argparse.Namespace, settings: StudioSettings) -> int:
    doc = load_document_file(args.file)
    report = validate_layer_tree(doc.layers)
    for warning in report.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    issues = validate_for_save(doc.name, doc.layers)
    if issues:
        _print_issues(f"{args.file}: not ready to save", issues)
        return 1
    print(f"{args.file}: OK ({len(doc.layers)} layers, {doc.nudge_type})")
    return 0


def _outline(node: RenderNode, depth: int = 0) -> list[str]:
    label = node.kind
    if node.layer_id:
        label += f" [{node.layer_id}]"
    if node.text:
        label += f" {node.text!r}"
    if node.selected:
        label += " *"
    lines = ["  " * depth + label]
    for child in node.children:
        lines.extend(_outline(child, depth + 1))
    return lines


def cmd_render(args: argparse.Namespace, settings: StudioSettings) -> int:
    doc = load_document_file(args.file)
    if args.selected:
        doc = doc.model_copy(update={"selected_layer_id": args.selected})
    tree = render_document(doc, colors=settings.colors or None)
    if args.json:
        print(json.dumps(tree.to_dict(), indent=2, ensure_ascii=False))
    else:
        print("\n".join(_outline(tree)))
    return 0


def cmd_templates(args: argparse.Namespace, settings: StudioSettings) -> int:
    for template in _catalog(settings).list(args.type):
        star = "*" if template.featured else " "
        print(f"{star} {template.id:<20} {template.nudge_type:<12} {template.name}")
    return 0


def cmd_push(args: argparse.Namespace, settings: StudioSettings) -> int:
    client = ApiClient.from_settings(settings)
    store = DocumentStore()
    store.load_document(load_document_file(args.file))
    coordinator = AutosaveCoordinator(store, ManualScheduler(), persist=client.save_ticket)
    result = coordinator.save_now(force=True)
    if not result.ok:
        print(f"push failed: {result.message}", file=sys.stderr)
        return 1
    save_document_file(store.document, args.file)
    print(f"pushed {result.campaign_id}")
    return 0


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nudge-studio", description="Compose and preview in-app nudges.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--settings", help="path to settings.json")
    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="create a campaign file with the default layers")
    new.add_argument("nudge_type", choices=sorted(NUDGE_TYPES))
    new.add_argument("--name", default="New Campaign")
    new.add_argument("--experience", default="nudges")
    new.add_argument("--template", help="template id to start from")
    new.add_argument("-o", "--output", help="output file (default: drafts directory)")
    new.set_defaults(func=cmd_new)

    validate = sub.add_parser("validate", help="check a campaign file")
    validate.add_argument("file")
    validate.set_defaults(func=cmd_validate)

    render = sub.add_parser("render", help="print the preview tree of a campaign file")
    render.add_argument("file")
    render.add_argument("--selected", help="layer id to mark as selected")
    render.add_argument("--json", action="store_true", help="print the full tree as JSON")
    render.set_defaults(func=cmd_render)

    templates = sub.add_parser("templates", help="list available templates")
    templates.add_argument("--type", choices=sorted(NUDGE_TYPES))
    templates.set_defaults(func=cmd_templates)

    push = sub.add_parser("push", help="save a campaign file to the backend")
    push.add_argument("file")
    push.set_defaults(func=cmd_push)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    settings = load_settings(Path(args.settings) if args.settings else None)
    try:
        return args.func(args, settings)
    except DocumentLoadError as exc:
        _print_issues(f"error: {exc}", exc.issues)
        return 2
    except (DocumentError, ApiError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
