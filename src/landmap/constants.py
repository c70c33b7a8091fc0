"""Environment-driven defaults for landmap.

Values can be set in a ``.env`` file at the project root or in the process
environment.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# ============================================================================
# Parallelism
# ============================================================================

# Worker threads for projection and SOM assignment (0 or unset = cpu count)
NUM_WORKERS = int(os.environ.get("LANDMAP_NUM_WORKERS", "0")) or (os.cpu_count() or 1)

# Points per chunk handed to a worker
CHUNK_SIZE = int(os.environ.get("LANDMAP_CHUNK_SIZE", "4096"))

# ============================================================================
# Reproducibility
# ============================================================================

DEFAULT_SEED = int(os.environ.get("LANDMAP_SEED", "42"))

# ============================================================================
# Numerics
# ============================================================================

# Squared distances at or below this count as exact coincidence
DISTANCE_EPSILON = 1e-12

# Lower clamp for Gaussian exponents
UNDERFLOW_EXPONENT = -50.0
