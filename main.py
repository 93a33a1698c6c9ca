# main.py
"""
Command-Line Interface

Compile autonomous routine projects to FTC OpMode source, list derived
waypoints, render a field preview, or append a freehand-drawn path.
"""

import argparse
import json
import logging
import os
import sys

from autoflow.codegen import BACKENDS, generate_code, output_filename, resolve_style
from autoflow.config import codegen_flat, load_config, preview_flat
from autoflow.errors import GraphError, NoRouteError, ProjectFileError
from autoflow.freehand import append_drawn_path
from autoflow.storage import load_project, save_project, write_source
from autoflow.waypoints import derive_waypoints, waypoint_node_ids


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="autoflow",
        description="Autoflow - compile node graph autonomous routines to FTC Java",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Compile command
    comp_parser = subparsers.add_parser("compile", help="Generate OpMode source")
    comp_parser.add_argument("project", help="Project JSON file")
    comp_parser.add_argument(
        "--style", "-s",
        choices=list(BACKENDS) + ["all"],
        default=None,
        help="Code style (default: from config, usually simple)",
    )
    comp_parser.add_argument(
        "--output", "-o",
        type=str,
        default=".",
        help="Output directory (default: current directory)",
    )

    # Waypoints command
    wp_parser = subparsers.add_parser("waypoints", help="Print derived waypoints")
    wp_parser.add_argument("project", help="Project JSON file")

    # Preview command
    prev_parser = subparsers.add_parser("preview", help="Render the field preview to an image")
    prev_parser.add_argument("project", help="Project JSON file")
    prev_parser.add_argument("--output", "-o", required=True, help="Image path (.png)")

    # Freehand command
    draw_parser = subparsers.add_parser("freehand", help="Append a drawn path as moveToPosition nodes")
    draw_parser.add_argument("project", help="Project JSON file (updated in place)")
    draw_parser.add_argument("points", help="JSON file with [[x, y], ...] field points")
    draw_parser.add_argument("--heading", type=float, default=None,
                             help="Target heading for the new nodes (default: initial heading)")
    draw_parser.add_argument("--linear", action="store_true", help="Use linear instead of spline curves")

    # Common arguments for all commands
    for p in [comp_parser, wp_parser, prev_parser, draw_parser]:
        p.add_argument(
            "--config", "-c",
            type=str,
            default=None,
            help="Config file (default: ./autoflow.json)",
        )
        p.add_argument(
            "--verbose", "-v",
            action="store_true",
            help="Enable verbose output",
        )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    cfg = load_config(args.config)

    try:
        if args.command == "compile":
            return run_compile(args, cfg)
        if args.command == "waypoints":
            return run_waypoints(args, cfg)
        if args.command == "preview":
            return run_preview(args, cfg)
        if args.command == "freehand":
            return run_freehand(args, cfg)
    except (ProjectFileError, GraphError) as e:
        print(f"Error: {e}")
        return 2
    return 1


def run_compile(args, cfg):
    """Run the compile command."""
    project = load_project(args.project)
    style = args.style or codegen_flat(cfg)["style"]
    try:
        styles = list(BACKENDS) if str(style).lower() == "all" else [resolve_style(style)]
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    for s in styles:
        try:
            source = generate_code(s, project.graph, project.registry,
                                   project.initial_pose, cfg, project.name)
        except NoRouteError as e:
            print(f"Error: {e}")
            return 2
        path = write_source(source, os.path.join(args.output, output_filename(s, project.name)))
        print(f"[{s}] wrote {path}")
    return 0


def run_waypoints(args, cfg):
    """Run the waypoints command."""
    project = load_project(args.project)
    waypoints = derive_waypoints(project.graph, project.initial_pose)
    ids = ["(start)"] + waypoint_node_ids(project.graph)
    for i, (w, node_id) in enumerate(zip(waypoints, ids)):
        print(f"{i:3d}  x={w.x:8.2f}  y={w.y:8.2f}  heading={w.heading:8.2f}  {node_id}")
    unreachable = [n.id for n in project.graph.unreachable_nodes()]
    if unreachable:
        print(f"Unreachable (excluded): {', '.join(unreachable)}")
    return 0


def run_preview(args, cfg):
    """Run the preview command."""
    from autoflow.draw import render_graph, save_preview

    project = load_project(args.project)
    surface = render_graph(project.graph, project.initial_pose, cfg)
    print(f"Preview saved to {save_preview(surface, args.output)}")
    return 0


def run_freehand(args, cfg):
    """Run the freehand command."""
    project = load_project(args.project)
    try:
        with open(args.points, "r", encoding="utf-8") as f:
            points = json.load(f)
    except (OSError, ValueError) as e:
        raise ProjectFileError(f"Cannot read points from {args.points}: {e}") from e

    prev = preview_flat(cfg)
    heading = project.initial_pose.heading if args.heading is None else args.heading
    created = append_drawn_path(project.graph, points, heading,
                                use_curves=not args.linear,
                                epsilon=float(prev["simplify_epsilon_in"]))
    if not created:
        print("Need at least two points; nothing added.")
        return 1
    save_project(project, args.project)
    print(f"Added {len(created)} nodes: {', '.join(created)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
