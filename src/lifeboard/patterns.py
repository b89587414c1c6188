from typing import Dict, List, Optional

import numpy as np

Grid = List[List[int]]

PATTERNS: Dict[str, Grid] = {
    "block": [
        [1, 1],
        [1, 1],
    ],
    "blinker": [
        [0, 1, 0],
        [0, 1, 0],
        [0, 1, 0],
    ],
    "beehive": [
        [0, 1, 1, 0],
        [1, 0, 0, 1],
        [0, 1, 1, 0],
    ],
    "toad": [
        [0, 0, 0, 0],
        [0, 1, 1, 1],
        [1, 1, 1, 0],
        [0, 0, 0, 0],
    ],
    "glider": [
        [0, 1, 0, 0, 0, 0],
        [0, 0, 1, 0, 0, 0],
        [1, 1, 1, 0, 0, 0],
        [0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0],
    ],
}


def get_pattern(name: str) -> Grid:
    try:
        return [list(row) for row in PATTERNS[name]]
    except KeyError:
        raise KeyError(
            f"Unknown pattern '{name}'. Available: {', '.join(sorted(PATTERNS))}"
        ) from None


def random_grid(
    width: int, height: int, density: float = 0.25, seed: Optional[int] = None
) -> Grid:
    """Creates a grid initialized with random noise, reproducible for a given seed."""
    if not 0.0 <= density <= 1.0:
        raise ValueError(f"Density must be within [0, 1], got {density}")
    rng = np.random.default_rng(seed)
    noise = rng.random((height, width))
    return (noise < density).astype(np.int8).tolist()


def parse_size(value: str) -> tuple:
    """Parses a 'WIDTHxHEIGHT' string."""
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise ValueError(f"Size must look like WIDTHxHEIGHT, got '{value}'") from None
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got '{value}'")
    return width, height
