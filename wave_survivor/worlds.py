"""
World Configuration
====================
Unlockable worlds. A world caps how many waves must be survived and
sets the palette (ANSI 256 colours) used to draw it.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class WorldConfig:
    id: str
    name: str
    waves: int
    difficulty_offset: int  # Carried for display; scaling ignores it
    colors: Dict[str, int] = field(default_factory=dict)


WORLDS: List[WorldConfig] = [
    WorldConfig('tech', 'CYBER SECTOR', 30, 0, {
        'bg': 233, 'floor': 234, 'grid': 236,
        'wall': 24, 'wallTop': 255, 'wallShadow': 23,
    }),
    WorldConfig('magma', 'MAGMA CORE', 30, 30, {
        'bg': 52, 'floor': 52, 'grid': 160,
        'wall': 124, 'wallTop': 220, 'wallShadow': 88,
    }),
    WorldConfig('ice', 'FROZEN WASTE', 30, 60, {
        'bg': 17, 'floor': 17, 'grid': 33,
        'wall': 31, 'wallTop': 255, 'wallShadow': 24,
    }),
    WorldConfig('void', 'THE VOID', 9999, 90, {
        'bg': 232, 'floor': 53, 'grid': 97,
        'wall': 54, 'wallTop': 134, 'wallShadow': 53,
    }),
]


def get_world_by_id(world_id: str) -> WorldConfig:
    """Look up a world; unknown ids fall back to the first one."""
    for world in WORLDS:
        if world.id == world_id:
            return world
    return WORLDS[0]


def get_next_world(world_id: str) -> Optional[WorldConfig]:
    """The world unlocked by clearing `world_id`, if any."""
    ids = [world.id for world in WORLDS]
    if world_id not in ids:
        return None
    index = ids.index(world_id) + 1
    return WORLDS[index] if index < len(WORLDS) else None
