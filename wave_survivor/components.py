"""
Component Definitions
======================
All components are plain dataclasses with no behavior.
Distances are world units, times are seconds.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum


# =============================================================================
# PHYSICS COMPONENTS
# =============================================================================

@dataclass
class Position:
    """Centre of the entity in world units."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class Velocity:
    """Movement velocity in units per second."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class CollisionBox:
    """Square hitbox centred on Position."""
    size: float = 24.0


@dataclass
class JumpState:
    """Vertical arc used to hop over walls. Airborne enemies ignore walls."""
    z: float = 0.0
    vz: float = 0.0
    is_jumping: bool = False


# =============================================================================
# RENDERING COMPONENTS
# =============================================================================

@dataclass
class Renderable:
    """Visual representation of an entity."""
    char: str = '?'
    color: int = 7  # ANSI 256 color
    layer: int = 0  # Higher layers render on top
    visible: bool = True


# =============================================================================
# COMBAT COMPONENTS
# =============================================================================

@dataclass
class Health:
    """Hit points. Death is current <= 0; the value is never clamped at 0."""
    current: float = 100.0
    maximum: float = 100.0


@dataclass
class Invulnerable:
    """I-frames after taking damage. Flashing toggles at 10Hz."""
    time_remaining: float = 0.0
    flashing: bool = False


# =============================================================================
# PLAYER COMPONENTS
# =============================================================================

@dataclass
class PlayerStats:
    """Run-time player stats. Mutated by permanent upgrades, gems and the shop."""
    speed: float = 200.0
    damage: float = 10.0
    base_fire_rate: float = 0.5
    fire_rate_bonus: float = 0.0
    fire_rate: float = 0.5  # Seconds between volleys
    fire_timer: float = 0.0
    range: float = 400.0
    crit_chance: float = 0.0  # Percent
    gold_multiplier: float = 1.0

    regen_rate: float = 0.0  # HP per second
    thorns_damage: float = 0.0  # DPS reflected on contact
    lifesteal_chance: float = 0.0

    ricochet_count: int = 0
    projectile_count: int = 1
    has_frost_shot: bool = False
    has_explosive_shots: bool = False

    shop_picks: List[str] = field(default_factory=list)


@dataclass
class FireAura:
    """Pulses flat damage to every enemy in range."""
    active: bool = False
    damage: float = 0.0
    range: float = 100.0
    timer: float = 0.0
    interval: float = 0.5


@dataclass
class Orbitals:
    """Shields circling the player that deal damage per second on contact."""
    count: int = 0
    damage: float = 0.0
    angle: float = 0.0
    radius: float = 60.0
    spin_speed: float = 2.0  # Radians per second
    hit_radius: float = 24.0


# =============================================================================
# ENEMY COMPONENTS
# =============================================================================

class EnemyType(Enum):
    """Closed set of enemy archetypes."""
    CHASER = 'CHASER'
    SHOOTER = 'SHOOTER'
    TANK = 'TANK'
    BOSS = 'BOSS'
    SWARM = 'SWARM'
    HEALER = 'HEALER'
    SPLITTER = 'SPLITTER'
    TELEPORTER = 'TELEPORTER'


@dataclass
class EnemyStats:
    """Scaled combat stats, fixed at spawn except for slow and enrage."""
    speed: float = 100.0
    base_speed: float = 100.0
    damage: float = 10.0
    xp_value: float = 10.0
    slow_timer: float = 0.0


@dataclass
class RangedAttack:
    """Periodic aimed shot at the player (SHOOTER, BOSS)."""
    cooldown: float = 2.5
    timer: float = 2.0
    max_distance: float = 500.0
    hold_range: Optional[float] = 300.0  # Stops advancing inside this range


@dataclass
class BossPhases:
    """HP thresholds that each summon minions once, plus a one-time enrage."""
    thresholds: Tuple[float, ...] = (0.7, 0.4, 0.1)
    triggered: List[int] = field(default_factory=list)
    minions_per_phase: int = 3
    enrage_threshold: float = 0.5
    is_enraged: bool = False


@dataclass
class HealAura:
    """Heals other wounded enemies nearby on a fixed interval."""
    radius: float = 200.0
    rate: float = 4.0
    timer: float = 0.0
    interval: float = 1.0
    hold_distance: float = 150.0


@dataclass
class Splitter:
    """Breaks into smaller enemies on death."""
    can_split: bool = True
    children: int = 2


@dataclass
class Teleporter:
    """Blinks toward the player on a cooldown."""
    timer: float = 3.0
    cooldown: float = 3.0
    flash: float = 0.0
    min_distance: float = 100.0


# =============================================================================
# PROJECTILE COMPONENTS
# =============================================================================

@dataclass
class Projectile:
    """A straight-line bullet fired by the player or an enemy."""
    damage: float = 10.0
    is_enemy: bool = False
    is_frost: bool = False
    is_explosive: bool = False
    ricochet_count: int = 0


@dataclass
class Lifetime:
    """Seconds until the entity expires."""
    seconds: float = 2.0


# =============================================================================
# EFFECT COMPONENTS
# =============================================================================

@dataclass
class Explosion:
    """Visual burst. Grows from 10 units to max_size over its lifetime."""
    max_size: float = 50.0
    size: float = 10.0
    duration: float = 0.4
    color: int = 208
    effect: str = 'default'


@dataclass
class Particle:
    """Debris flung out by an explosion. Purely visual."""
    char: str = '.'


# =============================================================================
# TAG COMPONENTS (empty, used for queries)
# =============================================================================

@dataclass
class PlayerTag:
    """Marks the player entity."""
    pass


@dataclass
class EnemyTag:
    """Marks an enemy and names its archetype."""
    enemy_type: EnemyType = EnemyType.CHASER
