# =============================================================================
# REPOCITY CONSTANTS
# =============================================================================
# Centralized constants for the repository city generator. This file contains
# every tunable used by layout, texture synthesis, the road network, the
# animation state machines and the pybullet scene loader.
# =============================================================================

import math
import os

# =============================================================================
# LAYOUT
# =============================================================================

CELL_SIZE = 50.0                        # Building lot size along each axis (world units)
STREET_WIDTH = 30.0                     # Gap between neighbouring lots (world units)
CELL_PITCH = CELL_SIZE + STREET_WIDTH   # Distance between two adjacent grid cells
# Footprint jitter drawn from the per-repository generator
FOOTPRINT_WIDTH_MIN = 16.0              # Minimum building width
FOOTPRINT_WIDTH_SPAN = 12.0             # width = MIN + rng() * SPAN
FOOTPRINT_DEPTH_MIN = 14.0              # Minimum building depth
FOOTPRINT_DEPTH_SPAN = 10.0             # depth = MIN + rng() * SPAN

# =============================================================================
# STAR SCALE
# =============================================================================

MIN_HEIGHT = 8.0                        # Height of a repository with zero stars
FLOOR_HEIGHT = 6.0                      # World units per rendered floor
# Breakpoints of the piecewise height curve (inclusive upper bounds)
LINEAR_STEEP_MAX = 5                    # 1..5 stars: 4 units per star
LINEAR_MID_MAX = 50                     # 6..50 stars: 2 units per star
LINEAR_GENTLE_MAX = 500                 # 51..500 stars: 0.5 units per star
SQRT_MAX = 5000                         # 501..5000 stars: square-root growth
LOG_BASE_HEIGHT = 450.0                 # Height at SQRT_MAX, start of the log regime
LOG_HEIGHT_PER_DECADE = 100.0           # Height added per 10x stars above SQRT_MAX
# Square-root coefficient chosen so the sqrt regime lands on LOG_BASE_HEIGHT
SQRT_COEFFICIENT = (LOG_BASE_HEIGHT - 343.0) / math.sqrt(SQRT_MAX - LINEAR_GENTLE_MAX)

# =============================================================================
# WINDOW TEXTURES
# =============================================================================

WINDOW_CELL_SIZE = 5.0                  # World units of wall per window column
WINDOW_CELL_PX = 8                      # Pixels per window cell in the tile
WINDOW_BORDER_PX = 1                    # Dark border around every window
TILE_ROWS = 4                           # Window rows in one tileable pattern
MIN_WINDOW_COLUMNS = 2                  # Narrow walls still get two columns
LIT_BASE = 0.2                          # Lit probability of a zero-star repository
LIT_SPAN = 0.75                         # Extra probability gained at 10^4 stars
LIT_DECADES = 4.0                       # log10(stars + 1) saturating at this value
LIT_MAX = 0.95                          # Never light every window
WINDOW_LIT_COLORS = (
    "#ffcc44", "#ffdd66", "#ffe088",    # warm interiors
    "#44bbff", "#66ddff", "#88eeff",    # screens
)
WINDOW_OFF_COLOR = "#0c0c1a"
BRAND_COLOR_WEIGHT = 2                  # Each brand color enters the palette twice

# =============================================================================
# BUILDING MATERIALS
# =============================================================================

FACE_COLORS = ("#1a1a2e", "#181830", "#1c1c28", "#161628", "#1e1a2a")
ROOF_COLOR = "#2a3858"
ROOF_EMISSIVE_INTENSITY = 0.3
BOTTOM_COLOR = "#0a0a0a"
WALL_EMISSIVE_INTENSITY = 1.0
WALL_ROUGHNESS = 0.85
WALL_METALNESS = 0.05

# =============================================================================
# LABELS
# =============================================================================

LABEL_MAX_CHARS = 24                    # Longer names are truncated
LABEL_ELLIPSIS = "..."
LABEL_SIZE_PX = (192, 40)               # (width, height) of the label image
LABEL_STAR_COLOR = (255, 204, 68, 255)
LABEL_NAME_COLOR = (153, 153, 170, 255)
LABEL_OFFSET_Y = 6.0                    # Label floats this far above the roof

# =============================================================================
# ROADS & PADS
# =============================================================================

ROAD_WIDTH = 12.0                       # Asphalt strip width
ROAD_Y = 0.05                           # Road surface elevation
SIDEWALK_WIDTH = 3.0                    # Sidewalk strip on each side of a road
SIDEWALK_Y = 0.15                       # Sidewalk surface elevation
PAD_MARGIN = 4.0                        # Pad extends this far beyond the footprint
PAD_HEIGHT = 0.6                        # Pad extrusion height

# =============================================================================
# DECORATIONS
# =============================================================================

LAMP_EVERY = 3                          # One street lamp per this many buildings
LAMP_CLEARANCE = 8.0                    # Lamp distance from the building wall
LAMP_POLE_HEIGHT = 10.0
LAMP_POLE_RADIUS = 0.3
LAMP_COLOR = "#ffcc44"
LAMP_INTENSITY = 15.0
LAMP_DISTANCE = 40.0
ACCENT_LIGHT_COUNT = 4                  # Top buildings that get a brand accent light
ACCENT_LIGHT_OFFSET_Y = 12.0            # Accent light height above the roof
ACCENT_LIGHT_INTENSITY = 30.0
ACCENT_LIGHT_DISTANCE = 120.0
DECAL_SIZE = 24.0                       # Edge length of a brand decal on the tallest roof

# =============================================================================
# ANIMATION
# =============================================================================

RISE_RATE = 0.6                         # Global rise clock units per second
RISE_DELAY = 0.004                      # Per-building start delay on the clock
RISE_MIN_SPAN = 0.05                    # Lower bound on a building's rise window
RISE_MIN_SCALE = 0.001                  # Vertical scale before the rise starts
DESAT_RATE = 6.0                        # Approach rate of the desaturation blend
DESAT_EPSILON = 1e-3                    # Snap to target below this distance
DESAT_COLOR = "#2a2a30"                 # Near-greyscale target face color
DESAT_EMISSIVE_INTENSITY = 0.15         # Glow left on a desaturated building

# =============================================================================
# ENVIRONMENT
# =============================================================================

SKY_STOPS = (
    (0.0, "#000206"),
    (0.25, "#040e28"),
    (0.5, "#0c2048"),
    (0.75, "#183060"),
    (1.0, "#203860"),
)
SKY_TEXTURE_PX = (2, 512)               # (width, height) of the sky gradient
GROUND_TEXTURE_PX = 512                 # Ground texture edge length
GROUND_GRAIN_PX = 4                     # Noise grain block size
GROUND_GRID_LINES = 8                   # Road grid lines drawn across the texture
GROUND_GRID_COLOR = "#2a2a40"
GROUND_REPEAT = 60                      # Ground texture repeat across the floor plane
GROUND_SIZE = 6000.0                    # Visible floor edge length
FOG_COLOR = "#0a1428"
FOG_NEAR = 400.0
FOG_FAR = 2800.0
# (kind, color, intensity, position or None)
LIGHT_RIG = (
    ("ambient", "#334466", 1.0, None),
    ("directional", "#8090c0", 2.8, (300.0, 150.0, -200.0)),
    ("directional", "#405880", 1.5, (-200.0, 80.0, 200.0)),
    ("hemisphere", "#203060", 2.2, None),
)

# =============================================================================
# RENDERING (pybullet scene loader)
# =============================================================================

RENDER_FPS = 60                         # Viewer frame rate
MESH_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".cache", "repocity")
ROAD_RGBA = [0.16, 0.16, 0.22, 1.0]
SIDEWALK_RGBA = [0.28, 0.28, 0.34, 1.0]
PAD_RGBA = [0.20, 0.20, 0.26, 1.0]
GROUND_RGBA = [0.07, 0.07, 0.10, 1.0]
LAMP_RGBA = [0.2, 0.2, 0.25, 1.0]

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv("REPOCITY_LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("REPOCITY_LOG_DIR", "")
EVENTS_RETENTION_SIZE = 10 * 1024 * 1024  # Rotate events.log at this size (bytes)

# =============================================================================
# WIRE FORMAT
# =============================================================================

LAYOUT_VERSION = "1"
