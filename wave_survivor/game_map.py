"""
Chunked Map
============
Infinite plane split into square chunks, each holding a few rectangular
walls. Chunks are generated lazily the first time they come near the
player and are cached forever after, so a chunk's walls never change.
Only the 3x3 neighbourhood around the player is collidable.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .components import Position

logger = logging.getLogger(__name__)


CHUNK_SIZE = 1000
MIN_WALLS = 5
WALL_COUNT_SPREAD = 5  # 5..9 walls per chunk before the origin exclusion
MIN_WALL_SIDE = 64
WALL_SIDE_SPREAD = 128
SAFE_ZONE = 200  # No walls start this close to the origin


@dataclass
class Wall:
    """Axis-aligned rectangle; (x, y) is the top-left corner."""
    x: float
    y: float
    w: float
    h: float

    def overlaps_box(self, x: float, y: float, size: float) -> bool:
        """Strict AABB overlap with a square of `size` centred on (x, y)."""
        half = size / 2
        return (
            x - half < self.x + self.w and
            x + half > self.x and
            y - half < self.y + self.h and
            y + half > self.y
        )


class GameMap:
    """Lazily generated walls plus the active collision set."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size
        self.chunks: Dict[Tuple[int, int], List[Wall]] = {}
        self.walls: List[Wall] = []

    def chunk_coords(self, x: float, y: float) -> Tuple[int, int]:
        """Chunk key containing a world point."""
        return (math.floor(x / self.chunk_size), math.floor(y / self.chunk_size))

    def update(self, x: float, y: float) -> None:
        """Make sure the 3x3 chunks around (x, y) exist and rebuild the wall list."""
        cx, cy = self.chunk_coords(x, y)
        walls = []
        for dx in range(-1, 2):
            for dy in range(-1, 2):
                key = (cx + dx, cy + dy)
                if key not in self.chunks:
                    self.chunks[key] = self.generate_chunk(*key)
                walls.extend(self.chunks[key])
        self.walls = walls

    def generate_chunk(self, cx: int, cy: int) -> List[Wall]:
        """Roll the walls for one chunk."""
        walls = []
        base_x = cx * self.chunk_size
        base_y = cy * self.chunk_size
        count = MIN_WALLS + math.floor(random.random() * WALL_COUNT_SPREAD)

        for _ in range(count):
            w = MIN_WALL_SIDE + random.random() * WALL_SIDE_SPREAD
            h = MIN_WALL_SIDE + random.random() * WALL_SIDE_SPREAD
            x = base_x + random.random() * (self.chunk_size - w)
            y = base_y + random.random() * (self.chunk_size - h)

            # Keep the spawn point clear
            if abs(x) < SAFE_ZONE and abs(y) < SAFE_ZONE:
                continue

            walls.append(Wall(x, y, w, h))

        logger.debug("Generated chunk (%d, %d) with %d walls", cx, cy, len(walls))
        return walls

    def check_collision(self, x: float, y: float, size: float) -> Optional[Wall]:
        """First active wall overlapping the square, or None."""
        for wall in self.walls:
            if wall.overlaps_box(x, y, size):
                return wall
        return None

    def resolve_collision(self, pos: Position, size: float) -> bool:
        """
        Push `pos` out of the first overlapping wall along the axis of
        least penetration. Ties go left, right, top, bottom in that order.
        Returns True if the position was moved.
        """
        wall = self.check_collision(pos.x, pos.y, size)
        if wall is None:
            return False

        half = size / 2
        overlap_left = (pos.x + half) - wall.x
        overlap_right = (wall.x + wall.w) - (pos.x - half)
        overlap_top = (pos.y + half) - wall.y
        overlap_bottom = (wall.y + wall.h) - (pos.y - half)

        smallest = min(overlap_left, overlap_right, overlap_top, overlap_bottom)
        if smallest == overlap_left:
            pos.x -= overlap_left
        elif smallest == overlap_right:
            pos.x += overlap_right
        elif smallest == overlap_top:
            pos.y -= overlap_top
        else:
            pos.y += overlap_bottom
        return True
