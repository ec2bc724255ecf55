from __future__ import annotations

# Window
WINDOW_WIDTH = 1280
WINDOW_HEIGHT = 720
FPS_CAP = 0  # 0 = uncapped

# App
APP_VERSION = "0.4.1"
DEFAULT_SEED = 12345

# Domain / chunks
DEFAULT_DOMAIN_SIZE = 128  # lattice units per side
DEFAULT_CHUNK_SIZE = 64
DEFAULT_MAX_VERTICES_PER_CHUNK = 60000

# Placement
DEFAULT_DENSITY = 1  # candidate blades per accepted lattice point
DEFAULT_DISPERSION = 1.0
DEFAULT_PLACEMENT_NOISE = "gradient"  # "gradient" | "clumps"
DEFAULT_PLACEMENT_NOISE_SCALE = 4.0
DEFAULT_MIN_NOISE_VALUE = 0.4
DEFAULT_CLUMP_SCALE = 15.0
DEFAULT_MIN_SURFACE_WEIGHT = 0.5
DEFAULT_ALLOWED_LAYERS = (0,)

# Blade type selection
DEFAULT_TYPE_POLICY = "blended"  # "blended" | "discrete" | "random"
DEFAULT_TYPE_NOISE_SCALE = 5.0
DEFAULT_TRANSITION_WIDTH = 0.1

# Blade look
DEFAULT_AMBIENT_OCCLUSION = True
DEFAULT_AO_INTENSITY = 0.3
DEFAULT_RANDOM_YAW = True
DEFAULT_HEIGHT_VARIATION = True
DEFAULT_HEIGHT_VARIATION_AMOUNT = 0.2
DEFAULT_HEIGHT_VARIATION_SCALE = 50.0  # much finer than the placement mask

# LOD buckets (bookkeeping only, geometry is never swapped)
DEFAULT_LOD0_DISTANCE = 30.0
DEFAULT_LOD1_DISTANCE = 80.0
DEFAULT_MAX_RENDER_DISTANCE = 150.0

# Wind / interaction feed
DEFAULT_WIND = True
DEFAULT_WIND_SPEED = 1.0
DEFAULT_WIND_STRENGTH = 0.5
DEFAULT_WIND_DIRECTION_DEG = 45.0
DEFAULT_WIND_TURBULENCE = 0.3
DEFAULT_INTERACTION = False
DEFAULT_INTERACTION_RADIUS = 3.0
DEFAULT_INTERACTION_STRENGTH = 1.0

# Preview
FOV_DEG = 70.0
NEAR = 0.1
FAR = 400.0
FOG_START = 90.0
FOG_END = 160.0
LIGHT_DIR = (0.35, 0.9, 0.2)  # will be normalized in shader
DEFAULT_WALK_SPEED = 8.0
DEFAULT_TURN_RATE = 1.6  # rad/sec
DEFAULT_EYE_HEIGHT = 1.7
HEIGHT_SMOOTH_K = 8.0  # larger = faster follow
GROUND_STEP = 1.0  # ground mesh spacing in lattice units
