"""
Command-line entry point.

Examples
--------
    # summary only
    python -m repocity repos.json

    # write the packed layout and every texture, then open the viewer
    python -m repocity repos.json --branding brand.json \\
        --out city.msgpack --textures ./textures --gui
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from PIL import Image

from repocity.constants import LOG_DIR, LOG_LEVEL
from repocity.core.city_generator import assemble
from repocity.protocol import CityLayout
from repocity.utils.hash import sha256sum
from repocity.utils.logging import ColoredLogger, log_event, setup_logging


def read_config(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="repocity",
        description="Generate a 3D city from a list of repositories.",
    )
    parser.add_argument("repos", type=Path,
                        help="JSON file: a list of repositories or {'repos': [...]}")
    parser.add_argument("--branding", type=Path, default=None,
                        help="JSON file with primaryColor / accentColor / faviconUrl / screenshotUrl")
    parser.add_argument("--out", type=Path, default=None,
                        help="Write the packed layout (msgpack) here")
    parser.add_argument("--textures", type=Path, default=None,
                        help="Directory to write window, label and environment PNGs to")
    parser.add_argument("--gui", action="store_true",
                        help="Open the PyBullet viewer and play the rise-in")
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        help="Log level (default: $REPOCITY_LOG_LEVEL or INFO)")
    parser.add_argument("--log-dir", default=LOG_DIR,
                        help="Directory for events.log (default: $REPOCITY_LOG_DIR, off)")
    return parser.parse_args(argv)


def load_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def load_repositories(path: Path) -> list:
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("repos") or data.get("repository_list") or []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of repositories")
    return data


def export_textures(layout: CityLayout, out_dir: Path) -> int:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = 0
    for b, mat in zip(layout.buildings, layout.materials):
        stem = f"{b.index:04d}"
        Image.fromarray(mat.front.tiled()).save(out_dir / f"{stem}_front.png")
        Image.fromarray(mat.side.tiled()).save(out_dir / f"{stem}_side.png")
        Image.fromarray(mat.label.pixels).save(out_dir / f"{stem}_label.png")
        written += 3
    if layout.environment is not None:
        Image.fromarray(layout.environment.sky.pixels).save(out_dir / "sky.png")
        Image.fromarray(layout.environment.ground.pixels).save(out_dir / "ground.png")
        written += 2
    return written


def main(argv: Optional[List[str]] = None) -> int:
    args = read_config(argv)
    setup_logging(args.log_level, args.log_dir)

    try:
        repos = load_repositories(args.repos)
        branding = load_json(args.branding) if args.branding else None
        if branding is not None and not isinstance(branding, dict):
            raise ValueError(f"{args.branding}: expected a JSON object")
    except (OSError, ValueError) as e:
        ColoredLogger.error(f"Could not read input: {e}")
        return 2

    layout = assemble(repos, branding)
    if layout.is_empty:
        ColoredLogger.warning(f"No repositories found in {args.repos}")
        return 1

    ColoredLogger.info(
        f"{len(layout)} buildings · {len(layout.roads)} roads · "
        f"{layout.total_stars} total stars"
    )
    ColoredLogger.info(f"layout sha256 {layout.digest}", color=ColoredLogger.GRAY)
    log_event(f"city generated from {args.repos} ({len(layout)} buildings, {layout.digest[:12]})")

    if args.out is not None:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_bytes(layout.pack())
        ColoredLogger.success(f"Wrote {args.out} ({sha256sum(args.out)[:12]})")

    if args.textures is not None:
        n = export_textures(layout, args.textures)
        ColoredLogger.success(f"Wrote {n} textures to {args.textures}")

    if args.gui:
        from repocity.core.scene_loader import run_viewer

        asset_dir = os.fspath(args.textures) if args.textures is not None else None
        run_viewer(layout, asset_dir)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
