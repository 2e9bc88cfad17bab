#!/usr/bin/env python3
"""
WAVE SURVIVOR - Terminal Wave-Survival Arcade
==============================================
Survive escalating waves across unlockable worlds. Your ship fires on
its own; you steer, pick upgrades between waves and bank the gold.

Controls:
    WASD / Arrows - Move
    1-3           - Pick a shop upgrade (ENTER skips)
    P             - Pause
    F             - Toggle FPS display
    Q/ESC         - End the run
"""

import logging
import math
import os
import sys
import time

from blessed import Terminal

from . import config
from .components import Health
from .engine import (
    GameRenderer, GRAY_DARK, GRAY_MED, GRAY_DARKER,
    NEON_CYAN, NEON_MAGENTA, NEON_YELLOW, NEON_GREEN, NEON_RED, NEON_ORANGE, WHITE,
)
from .items import RARITY_TIERS
from .persistence import Profile, ProfileWriter, create_repository
from .shop import SHOP_UPGRADES
from .simulation import RunPhase, Simulation
from .store_rank import format_rank_display
from .systems import health_ratio, render_system
from .worlds import WORLDS

logger = logging.getLogger(__name__)

SCREEN_TITLE = 'title'
SCREEN_RUN = 'run'

TITLE_ART = [
    r" __      __  ___   _  _ ___   ___ _   _ ___ __   _____   _____  ___ ",
    r" \ \    / / /_\ \ / /| __|  / __| | | | _ \\ \ / /_ _\ \ / / _ \| _ \ ",
    r"  \ \/\/ / / _ \ V / | _|   \__ \ |_| |   / \ V / | | \ V / (_) |   /",
    r"   \_/\_/ /_/ \_\_/  |___|  |___/\___/|_|_\  \_/ |___| \_/ \___/|_|_\ ",
]

GRID_SPACING = 128


# =============================================================================
# UI RENDERING
# =============================================================================

def render_floor(renderer: GameRenderer, colors: dict):
    """Faint dot grid so movement reads against an empty floor."""
    view_w, view_h = renderer.view_size
    left = math.floor(renderer.camera_x / GRID_SPACING) * GRID_SPACING
    top = math.floor(renderer.camera_y / GRID_SPACING) * GRID_SPACING
    color = colors.get('grid', GRAY_DARKER)
    y = top
    while y < renderer.camera_y + view_h:
        x = left
        while x < renderer.camera_x + view_w:
            renderer.put_world(x, y, '.', color)
            x += GRID_SPACING
        y += GRID_SPACING


def render_hud(sim: Simulation, renderer: GameRenderer):
    """Two HUD rows under the playfield."""
    ui_y = renderer.game_height
    width = renderer.width
    manager = sim.wave_manager

    renderer.put_string(0, ui_y, '=' * width, GRAY_DARK)
    renderer.put_string(2, ui_y, f' {sim.stage.name} ', NEON_MAGENTA)

    health = sim.world.get_component(sim.player_id, Health)
    row = ui_y + 1
    if health:
        bar_width = 20
        ratio = health_ratio(sim.world, sim.player_id)
        filled = int(ratio * bar_width)
        bar = '|' * filled + '.' * (bar_width - filled)
        color = NEON_CYAN if ratio > 0.3 else NEON_RED
        renderer.put_string(2, row, 'HP', GRAY_MED)
        renderer.put_string(5, row, f'[{bar}] {max(0, math.ceil(health.current))}', color)

    waves = sim.stage.waves
    wave_text = f'WAVE {sim.wave}/{waves}' if waves < 1000 else f'WAVE {sim.wave}'
    status = (f'{wave_text}  TIME {max(0, math.ceil(manager.timer))}  '
              f'ENEMIES {manager.remaining_enemies()}  GOLD {sim.gold}')
    renderer.put_string(width - len(status) - 2, row, status, NEON_YELLOW)

    extras = []
    if manager.is_boss_wave:
        extras.append(('BOSS WAVE', NEON_RED))
    if manager.modifier:
        extras.append((manager.modifier.name, NEON_ORANGE))
    if manager.challenge:
        extras.append((f'CHALLENGE: {manager.challenge.description}', NEON_GREEN))
    x = 2
    for text, color in extras:
        renderer.put_string(x, ui_y, f' {text} ', color)
        x += len(text) + 3
    if extras:
        renderer.put_string(x, ui_y, f' {sim.stage.name} ', NEON_MAGENTA)

    if renderer.show_fps:
        fps_text = f'FPS:{renderer.current_fps:.0f}'
        renderer.put_string(width - len(fps_text) - 2, 0, fps_text, GRAY_MED)


def render_title_screen(renderer: GameRenderer, profile: Profile, frame: int):
    width = renderer.width
    height = renderer.height
    data = profile.data

    art_y = max(1, height // 2 - 9)
    for i, line in enumerate(TITLE_ART):
        color = NEON_MAGENTA if i % 2 == 0 else NEON_CYAN
        renderer.put_string(max(0, width // 2 - len(line) // 2), art_y + i, line, color)

    y = art_y + len(TITLE_ART) + 1
    renderer.put_centered(y, f"PILOT {data['username']}   GOLD {data['gold']}   "
                             f"TOKENS {data['shopTokens']}", NEON_YELLOW)
    renderer.put_centered(y + 1, format_rank_display(data['storeXP'], data['storeRank']), GRAY_MED)

    y += 3
    renderer.put_centered(y, 'SELECT WORLD', WHITE)
    for i, stage in enumerate(WORLDS):
        unlocked = stage.id in data['unlockedWorlds']
        label = f'[{i + 1}] {stage.name:<14}'
        if not unlocked:
            label += ' LOCKED'
        elif stage.waves < 1000:
            label += f' {stage.waves} WAVES'
        else:
            label += ' ENDLESS'
        renderer.put_centered(y + 2 + i, label, NEON_GREEN if unlocked else GRAY_DARK)

    if (frame // 30) % 2 == 0:
        renderer.put_centered(y + 3 + len(WORLDS), '[ Q - QUIT ]', GRAY_MED)

    if data['highScores']:
        best = data['highScores'][0]
        renderer.put_centered(height - 2, f"BEST: WAVE {best['wave']}  SCORE {best['score']}",
                              GRAY_MED)


def render_shop_overlay(renderer: GameRenderer, sim: Simulation):
    options = sim.shop_options
    box_w = min(renderer.width - 4, 64)
    box_h = 6 + len(options) * 2
    bx = renderer.width // 2 - box_w // 2
    by = max(0, renderer.game_height // 2 - box_h // 2)
    renderer.draw_box(bx, by, box_w, box_h, NEON_CYAN, fill=True)

    result = sim.last_wave_result
    title = f'WAVE {sim.wave} CLEARED'
    renderer.put_centered(by + 1, title, NEON_GREEN)
    if result is not None and result.challenge is not None:
        text = f'{result.challenge.label}: ' + ('+50 GOLD' if result.success else 'FAILED')
        renderer.put_centered(by + 2, text, NEON_YELLOW if result.success else NEON_RED)

    for i, upgrade_id in enumerate(options):
        data = SHOP_UPGRADES[upgrade_id]
        color = RARITY_TIERS[data['rarity']]['color']
        renderer.put_string(bx + 2, by + 4 + i * 2, f"[{i + 1}] {data['name']}", color)
        renderer.put_string(bx + 6, by + 5 + i * 2, data['description'][:box_w - 8], GRAY_MED)

    renderer.put_centered(by + box_h - 1, ' 1-3 PICK   ENTER SKIP ', GRAY_MED)


def render_pause_overlay(renderer: GameRenderer):
    y = renderer.game_height // 2
    renderer.draw_box(renderer.width // 2 - 12, y - 2, 24, 5, NEON_YELLOW, fill=True)
    renderer.put_centered(y - 1, 'PAUSED', NEON_YELLOW)
    renderer.put_centered(y + 1, 'P RESUME  Q END RUN', GRAY_MED)


def render_run_over_screen(renderer: GameRenderer, sim: Simulation, frame: int):
    summary = sim.summary
    y = max(1, renderer.height // 2 - 6)
    if summary.victory:
        renderer.put_centered(y, '*** WORLD CLEARED ***', NEON_GREEN)
    else:
        renderer.put_centered(y, '--- GAME OVER ---', NEON_RED)

    lines = [
        f'WAVE REACHED: {summary.wave}',
        f'SCORE: {summary.score}',
        f'GOLD: {summary.gold}' + (f' (+{summary.bonus_gold} DIVIDEND)' if summary.bonus_gold else ''),
        f'SHOP TOKENS: +{summary.tokens}',
    ]
    if summary.crate:
        names = ', '.join(item['name'] for item in summary.crate_items)
        lines.append(f"FREE {summary.crate.replace('_', ' ')}: {names}")
    if summary.unlocked_world:
        lines.append(f'NEW WORLD UNLOCKED: {summary.unlocked_world.upper()}')

    for i, line in enumerate(lines):
        renderer.put_centered(y + 2 + i, line, NEON_YELLOW)

    if (frame // 30) % 2 == 0:
        renderer.put_centered(y + 4 + len(lines), '[ ENTER - MENU ]    [ Q - QUIT ]', NEON_CYAN)


# =============================================================================
# GAME STATE
# =============================================================================

class GameState:
    """Screen machine around one Simulation at a time."""

    def __init__(self, term: Terminal, profile: Profile):
        from .player import InputHandler

        self.term = term
        self.profile = profile
        self.renderer = GameRenderer(term)
        self.input_handler = InputHandler()

        self.running = True
        self.screen = SCREEN_TITLE
        self.frame = 0
        self.sim: Simulation = None

    def start_run(self, world_index: int):
        stage = WORLDS[world_index]
        if stage.id not in self.profile.data['unlockedWorlds']:
            return
        view_w, view_h = self.renderer.view_size
        self.sim = Simulation(self.profile, view_w, view_h)
        self.sim.start(stage.id)
        self.renderer.background = stage.colors.get('bg', -1)
        self.input_handler.release_all()
        self.screen = SCREEN_RUN

    def return_to_title(self):
        self.sim = None
        self.renderer.background = -1
        self.screen = SCREEN_TITLE

    def update(self, dt: float):
        self.frame += 1
        self.renderer.update_effects(dt)
        if self.screen != SCREEN_RUN:
            return

        self.input_handler.update(dt)
        events = self.sim.step(dt, self.input_handler.get_axis())
        for event in events:
            if event['type'] == 'player_hit':
                self.renderer.trigger_shake(0.15)
            elif event['type'] == 'explosion':
                self.renderer.trigger_shake(0.1)
            elif event['type'] == 'boss_phase':
                self.renderer.trigger_shake(0.3)

    def check_resize(self):
        if (self.term.width, self.term.height) == (self.renderer.width, self.renderer.height):
            return
        self.renderer.resize(self.term.width, self.term.height)
        if self.sim is not None:
            self.sim.camera.width, self.sim.camera.height = self.renderer.view_size
        print(self.term.home + self.term.clear, end='', flush=True)

    def render(self):
        self.renderer.begin_frame()

        if self.screen == SCREEN_TITLE:
            render_title_screen(self.renderer, self.profile, self.frame)
        elif self.sim.phase in (RunPhase.GAME_OVER, RunPhase.VICTORY):
            render_run_over_screen(self.renderer, self.sim, self.frame)
        else:
            sim = self.sim
            self.renderer.set_camera(sim.camera.x, sim.camera.y)
            render_floor(self.renderer, sim.stage.colors)
            render_system(sim.world, self.renderer, sim.game_map, sim.stage.colors)
            render_hud(sim, self.renderer)
            if sim.phase == RunPhase.SHOP:
                render_shop_overlay(self.renderer, sim)
            elif sim.phase == RunPhase.PAUSED:
                render_pause_overlay(self.renderer)

        output = self.renderer.end_frame()
        if output:
            print(output, end='', flush=True)

    def handle_input(self):
        """Drain all pending input from the terminal."""
        key = self.term.inkey(timeout=0)
        while key:
            key_str = key.lower() if not key.is_sequence else ''
            if self.screen == SCREEN_TITLE:
                if key_str in ('1', '2', '3', '4'):
                    self.start_run(int(key_str) - 1)
                    return
                if key_str == 'q' or key.name == 'KEY_ESCAPE':
                    self.running = False
                    return
            elif self.sim.phase in (RunPhase.GAME_OVER, RunPhase.VICTORY):
                if key.name == 'KEY_ENTER' or key_str == 'r':
                    self.return_to_title()
                    return
                if key_str == 'q' or key.name == 'KEY_ESCAPE':
                    self.running = False
                    return
            elif self.sim.phase == RunPhase.SHOP:
                if key_str in ('1', '2', '3'):
                    self.sim.choose_shop_option(int(key_str) - 1)
                    self.input_handler.release_all()
                    return
                if key.name == 'KEY_ENTER':
                    self.sim.close_shop()
                    self.input_handler.release_all()
                    return
            else:
                self.input_handler.process_key(key)

            key = self.term.inkey(timeout=0)

        if self.screen == SCREEN_RUN and self.sim.running:
            if self.input_handler.consume_quit():
                self.sim.quit()
            if self.input_handler.consume_pause():
                self.sim.toggle_pause()
                self.input_handler.release_all()
            if self.input_handler.consume_toggle_fps():
                self.renderer.show_fps = not self.renderer.show_fps


# =============================================================================
# MAIN LOOP
# =============================================================================

def setup_logging():
    log_dir = os.path.dirname(config.LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        filename=config.LOG_FILE,
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def main():
    """Entry point. Loads the profile and runs the game; saves drain on exit."""
    setup_logging()
    username = sys.argv[1] if len(sys.argv) > 1 else config.DEFAULT_USERNAME
    repository = create_repository()
    writer = ProfileWriter(repository)
    profile = Profile(repository, username, writer)
    profile.load()
    try:
        run_game(profile)
    finally:
        writer.close(timeout=config.get_settings().request_timeout * 2)
    logger.info("Session ended for %s", username)


def run_game(profile: Profile):
    """Terminal setup and the fixed-step loop."""
    term = Terminal()
    if term.width < config.MIN_WIDTH or term.height < config.MIN_HEIGHT:
        print(
            f'Terminal too small: {term.width}x{term.height}. '
            f'Minimum: {config.MIN_WIDTH}x{config.MIN_HEIGHT}'
        )
        sys.exit(1)

    with term.fullscreen(), term.cbreak(), term.hidden_cursor():
        game = GameState(term, profile)

        last_time = time.perf_counter()
        accumulator = 0.0
        fps_timer = 0.0
        fps_frame_count = 0

        print(term.home + term.clear, end='', flush=True)

        while game.running:
            now = time.perf_counter()
            delta = now - last_time
            last_time = now

            # Clamp delta to prevent spiral of death
            delta = min(delta, config.FRAME_TIME * 5)

            accumulator += delta
            fps_timer += delta

            game.check_resize()
            game.handle_input()

            ticks = 0
            while accumulator >= config.FRAME_TIME and ticks < config.MAX_TICKS_PER_FRAME:
                game.update(config.FRAME_TIME)
                accumulator -= config.FRAME_TIME
                ticks += 1
                fps_frame_count += 1

            game.render()

            if fps_timer >= 0.5:
                game.renderer.current_fps = fps_frame_count / fps_timer
                fps_frame_count = 0
                fps_timer = 0.0

            elapsed = time.perf_counter() - now
            sleep_time = config.FRAME_TIME - elapsed
            if sleep_time > 0.001:
                time.sleep(sleep_time * 0.9)

        if game.sim is not None:
            game.sim.quit()
        print(term.normal, end='', flush=True)


if __name__ == '__main__':
    main()
