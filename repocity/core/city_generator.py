"""
Scene assembler: repository list → immutable :class:`CityLayout`.

Buildings are sorted by descending stars (stable, so ties keep input order),
placed along the outward spiral, sized from their star count and textured from
generators seeded by the repository name. Nothing here reads the clock or any
global state, so the same list always produces a bit-identical layout.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple, Union

from loguru import logger

from repocity.constants import (
    ACCENT_LIGHT_COUNT,
    ACCENT_LIGHT_DISTANCE,
    ACCENT_LIGHT_INTENSITY,
    ACCENT_LIGHT_OFFSET_Y,
    DECAL_SIZE,
    FOG_COLOR,
    FOG_FAR,
    FOG_NEAR,
    FOOTPRINT_DEPTH_MIN,
    FOOTPRINT_DEPTH_SPAN,
    FOOTPRINT_WIDTH_MIN,
    FOOTPRINT_WIDTH_SPAN,
    GROUND_REPEAT,
    GROUND_SIZE,
    LAMP_CLEARANCE,
    LAMP_COLOR,
    LAMP_DISTANCE,
    LAMP_EVERY,
    LAMP_INTENSITY,
    LAMP_POLE_HEIGHT,
    LIGHT_RIG,
)
from repocity.core.rng import SeededRNG
from repocity.core.roads import build_pads, build_roads, building_mesh, pad_mesh, road_meshes
from repocity.core.scale import floors_of, height_of
from repocity.core.spiral import cell_to_world, spiral_coordinates
from repocity.core.textures import build_palette, building_materials, ground_texture, sky_texture
from repocity.protocol import (
    AccentLight,
    Branding,
    BrandDecal,
    BuildingRecord,
    CityLayout,
    CityMeshes,
    Environment,
    LightSpec,
    Repository,
    StreetLamp,
)
from repocity.utils.colors import rgb

RepoInput = Union[Repository, dict]


# ---------------------------------------------------------------------------
# SECTION 1: Input normalisation
# ---------------------------------------------------------------------------
def normalize_repositories(entries: Optional[Iterable[RepoInput]]) -> List[Repository]:
    """Coerce provider output to :class:`Repository`; drop malformed or duplicate entries."""
    repos: List[Repository] = []
    seen = set()
    for entry in entries or ():
        if isinstance(entry, Repository):
            repo = entry
        else:
            try:
                repo = Repository.from_dict(entry)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed repository entry: {e}")
                continue
        if repo.name in seen:
            logger.warning(f"Skipping duplicate repository {repo.name!r}")
            continue
        seen.add(repo.name)
        repos.append(repo)
    return repos


def sort_by_stars(repos: Sequence[Repository]) -> List[Repository]:
    # sorted() is stable, ties keep provider order
    return sorted(repos, key=lambda r: -r.stars)


# ---------------------------------------------------------------------------
# SECTION 2: Buildings
# ---------------------------------------------------------------------------
def footprint(name: str) -> Tuple[float, float]:
    """``(width, depth)`` jittered per repository name."""
    rng = SeededRNG(name)
    width = FOOTPRINT_WIDTH_MIN + rng() * FOOTPRINT_WIDTH_SPAN
    depth = FOOTPRINT_DEPTH_MIN + rng() * FOOTPRINT_DEPTH_SPAN
    return width, depth


def layout_buildings(repos: Sequence[Repository]) -> Tuple[BuildingRecord, ...]:
    ordered = sort_by_stars(repos)
    cells = spiral_coordinates(len(ordered))
    records = []
    for i, (repo, cell) in enumerate(zip(ordered, cells)):
        width, depth = footprint(repo.name)
        world_x, world_z = cell_to_world(cell)
        records.append(BuildingRecord(
            repo=repo,
            index=i,
            grid_x=cell[0],
            grid_z=cell[1],
            world_x=world_x,
            world_z=world_z,
            width=width,
            depth=depth,
            height=height_of(repo.stars),
            floors=floors_of(repo.stars),
        ))
    return tuple(records)


# ---------------------------------------------------------------------------
# SECTION 3: Decorations
# ---------------------------------------------------------------------------
def place_lamps(buildings: Sequence[BuildingRecord]) -> Tuple[StreetLamp, ...]:
    lamps = []
    color = rgb(LAMP_COLOR)
    for b in buildings[::LAMP_EVERY]:
        rng = SeededRNG(b.repo.name + "lamp")
        side = 1 if rng() > 0.5 else -1
        lamps.append(StreetLamp(
            building=b.repo.name,
            x=b.world_x + side * (b.width / 2 + LAMP_CLEARANCE),
            z=b.world_z + (rng() - 0.5) * b.depth,
            pole_height=LAMP_POLE_HEIGHT,
            color=color,
            intensity=LAMP_INTENSITY,
            distance=LAMP_DISTANCE,
        ))
    return tuple(lamps)


def place_accent_lights(buildings: Sequence[BuildingRecord],
                        branding: Branding) -> Tuple[AccentLight, ...]:
    color = branding.light_color()
    if color is None:
        return ()
    return tuple(
        AccentLight(
            building=b.repo.name,
            x=b.world_x,
            y=b.height + ACCENT_LIGHT_OFFSET_Y,
            z=b.world_z,
            color=color,
            intensity=ACCENT_LIGHT_INTENSITY,
            distance=ACCENT_LIGHT_DISTANCE,
        )
        for b in buildings[:ACCENT_LIGHT_COUNT]
    )


def place_decals(buildings: Sequence[BuildingRecord],
                 branding: Branding) -> Tuple[BrandDecal, ...]:
    """Screenshot on the tallest roof, favicon on the runner-up (or the same roof)."""
    if not buildings:
        return ()
    decals = []
    sources = (("screenshot", branding.screenshot_url), ("favicon", branding.favicon_url))
    for slot, (kind, url) in enumerate(sources):
        if not url:
            continue
        b = buildings[min(slot, len(buildings) - 1)]
        size = min(DECAL_SIZE, b.width, b.depth)
        decals.append(BrandDecal(
            kind=kind,
            url=url,
            building=b.repo.name,
            x=b.world_x,
            y=b.height,
            z=b.world_z,
            size=size if kind == "screenshot" else size / 2,
        ))
    return tuple(decals)


def build_environment() -> Environment:
    return Environment(
        sky=sky_texture(),
        ground=ground_texture(),
        ground_repeat=GROUND_REPEAT,
        ground_size=GROUND_SIZE,
        fog_color=rgb(FOG_COLOR),
        fog_near=FOG_NEAR,
        fog_far=FOG_FAR,
        lights=tuple(
            LightSpec(kind=kind, color=rgb(color), intensity=intensity, position=position)
            for kind, color, intensity, position in LIGHT_RIG
        ),
    )


# ---------------------------------------------------------------------------
# SECTION 4: Public API
# ---------------------------------------------------------------------------
def assemble(repositories: Optional[Iterable[RepoInput]],
             branding: Union[Branding, dict, None] = None) -> CityLayout:
    """Build the complete city for *repositories*.

    An empty (or entirely malformed) list yields ``CityLayout.empty()``; the
    caller decides whether an empty city is worth reporting.
    """
    repos = normalize_repositories(repositories)
    if not repos:
        logger.debug("No repositories to lay out, returning an empty city")
        return CityLayout.empty()

    if not isinstance(branding, Branding):
        branding = Branding.from_dict(branding)

    buildings = layout_buildings(repos)
    palette = build_palette(branding.accent_colors())
    materials = tuple(building_materials(b, palette) for b in buildings)

    roads = build_roads(buildings)
    pads = build_pads(buildings)
    road_mesh, sidewalk_mesh = road_meshes(roads)
    meshes = CityMeshes(
        roads=road_mesh,
        sidewalks=sidewalk_mesh,
        pads=pad_mesh(pads),
        buildings=building_mesh(buildings),
    )

    layout = CityLayout(
        buildings=buildings,
        materials=materials,
        roads=roads,
        pads=pads,
        lamps=place_lamps(buildings),
        accent_lights=place_accent_lights(buildings, branding),
        decals=place_decals(buildings, branding),
        meshes=meshes,
        environment=build_environment(),
        total_stars=sum(r.stars for r in repos),
    )
    logger.debug(
        f"Assembled city: {len(buildings)} buildings | {len(roads)} roads | "
        f"{len(layout.lamps)} lamps | {len(layout.accent_lights)} accent lights"
    )
    return layout
