"""
Explosions and Particles
=========================
Purely visual bursts. Gameplay never reads these entities; explosive
area damage is applied by the projectile system directly.
"""

import math

from .ecs import World
from .components import Position, Velocity, Renderable, Lifetime, Explosion, Particle
from .engine import NEON_ORANGE, NEON_YELLOW, NEON_MAGENTA, NEON_CYAN, WHITE


EXPLOSION_DURATION = 0.4
PARTICLE_COUNT = 8
PARTICLE_SPEED = 100.0
PARTICLE_LIFETIME = 0.5

# Kill effect id -> (colour, particle glyph)
KILL_EFFECTS = {
    'default': (WHITE, '.'),
    'k_pixel': (NEON_CYAN, '#'),
    'k_confetti': (NEON_MAGENTA, '*'),
    'k_gold': (NEON_YELLOW, '$'),
    'k_blackhole': (93, 'o'),
}


def spawn_particle(world: World, x: float, y: float, vx: float, vy: float,
                   char: str = '.', color: int = WHITE,
                   lifetime: float = PARTICLE_LIFETIME) -> int:
    """Spawn a single particle entity."""
    entity_id = world.create_entity()

    world.add_component(entity_id, Position(x, y))
    world.add_component(entity_id, Velocity(vx, vy))
    world.add_component(entity_id, Renderable(char=char, color=color, layer=5))
    world.add_component(entity_id, Lifetime(lifetime))
    world.add_component(entity_id, Particle(char))

    return entity_id


def spawn_explosion(world: World, x: float, y: float, max_size: float = 50.0,
                    color: int = NEON_ORANGE, effect: str = 'default') -> int:
    """Spawn a shockwave plus a ring of particles."""
    entity_id = world.create_entity()

    world.add_component(entity_id, Position(x, y))
    world.add_component(entity_id, Explosion(max_size=max_size, color=color, effect=effect))
    world.add_component(entity_id, Lifetime(EXPLOSION_DURATION))
    world.add_component(entity_id, Renderable(char='O', color=color, layer=4))

    particle_color, char = KILL_EFFECTS.get(effect, KILL_EFFECTS['default'])
    if effect == 'default':
        particle_color = color
    for i in range(PARTICLE_COUNT):
        angle = math.pi * 2 * i / PARTICLE_COUNT
        spawn_particle(
            world, x, y,
            math.cos(angle) * PARTICLE_SPEED,
            math.sin(angle) * PARTICLE_SPEED,
            char=char, color=particle_color,
        )

    return entity_id


def spawn_kill_effect(world: World, x: float, y: float, effect: str = 'default') -> int:
    """Burst shown where an enemy died, styled by the equipped kill effect."""
    return spawn_explosion(world, x, y, 50.0, WHITE, effect)


def explosion_system(world: World, dt: float) -> None:
    """Grow shockwaves, drift particles and expire both."""
    for entity_id, explosion, lifetime in world.query(Explosion, Lifetime):
        lifetime.seconds -= dt
        progress = 1 - max(lifetime.seconds, 0.0) / explosion.duration
        explosion.size = 10 + (explosion.max_size - 10) * progress
        if lifetime.seconds <= 0:
            world.destroy_entity(entity_id)

    for entity_id, pos, vel, lifetime, _ in world.query(Position, Velocity, Lifetime, Particle):
        pos.x += vel.x * dt
        pos.y += vel.y * dt
        lifetime.seconds -= dt
        if lifetime.seconds <= 0:
            world.destroy_entity(entity_id)
