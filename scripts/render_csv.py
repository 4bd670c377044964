#!/usr/bin/env python3
"""Render a link-node graph from CSV files and print the scene as JSON.

Usage:
    # Source to destination addresses
    uv run python scripts/render_csv.py flows.csv -r "sip=>dip"

    # Several relationships, typed entities, a spring layout first
    uv run python scripts/render_csv.py a.csv b.csv -r "user=>host" -r "host=>dip" \
        --typed --layout spring --save-layout layout.txt
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from linknode.config import settings
from linknode.errors import LinkNodeError
from linknode.graph.layouts import LayoutAlgorithm
from linknode.ingestion.csv_loader import load_csv_files
from linknode.models.relationship import EdgeStyle, RelationshipSpec
from linknode.view import LinkNodeView

logger = logging.getLogger(__name__)


def render_csv(
    paths: list[str],
    relationships: list[str],
    typed: bool = False,
    ignore_not_set: bool = False,
    style: str = "solid",
    timestamp_field: str | None = None,
    layout: str | None = None,
    load_layout_path: str | None = None,
    save_layout_path: str | None = None,
    view_config: str | None = None,
) -> dict:
    """Build the view, render one frame and return its summary."""
    view = LinkNodeView(settings)
    view.set_records(load_csv_files(paths, settings, timestamp_field=timestamp_field))

    if view_config:
        view.apply_view_config(view_config)
    for text in relationships:
        spec = RelationshipSpec.parse_arrow(
            text,
            from_typed=typed,
            to_typed=typed,
            ignore_not_set=ignore_not_set,
            style=EdgeStyle(style),
        )
        view.add_relationship(spec)

    if load_layout_path:
        view.load_layout(load_layout_path)
    if layout:
        candidates = view.preview_layouts([LayoutAlgorithm.parse(layout)])
        if candidates:
            view.adopt_layout(candidates[0])

    view.zoom_to_fit()
    scene = view.render()
    if save_layout_path:
        count = view.save_layout(save_layout_path)
        logger.info(f"Saved {count} positions to {save_layout_path}")

    summary = scene.summary() if scene else {}
    summary["no_mapping"] = len(view.no_mapping())
    summary["config"] = view.view_config()
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a link-node graph from CSV files")
    parser.add_argument("csv", nargs="+", help="CSV files (header row = fields)")
    parser.add_argument(
        "-r", "--relationship",
        action="append",
        default=[],
        help="Relationship as 'from=>to' (repeatable)",
    )
    parser.add_argument("--typed", action="store_true", help="Prefix entities with their field name")
    parser.add_argument("--ignore-not-set", action="store_true", help="Skip blank endpoints")
    parser.add_argument(
        "--style",
        choices=[s.value for s in EdgeStyle],
        default="solid",
        help="Edge style (default: solid)",
    )
    parser.add_argument("--timestamp-field", help="Column holding ISO-8601 timestamps")
    parser.add_argument(
        "--layout",
        choices=[a.value for a in LayoutAlgorithm],
        help="Apply a whole-graph layout before rendering",
    )
    parser.add_argument("--load-layout", help="Layout file to apply")
    parser.add_argument("--save-layout", help="Write world positions here")
    parser.add_argument("--config", help="View configuration string to apply first")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        summary = render_csv(
            paths=args.csv,
            relationships=args.relationship,
            typed=args.typed,
            ignore_not_set=args.ignore_not_set,
            style=args.style,
            timestamp_field=args.timestamp_field,
            layout=args.layout,
            load_layout_path=args.load_layout,
            save_layout_path=args.save_layout,
            view_config=args.config,
        )
    except LinkNodeError as e:
        logger.error(f"Render failed: {e}")
        sys.exit(1)

    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
