"""
Rendering Engine
=================
Double-buffered terminal renderer. World units are mapped onto terminal
cells through a camera; sub-cell effects use braille dots.
"""

from dataclasses import dataclass, field
from typing import List, Tuple
import math
import random

from blessed import Terminal

from .config import CELL_WIDTH, CELL_HEIGHT


# ANSI 256 color constants
NEON_CYAN = 51
NEON_MAGENTA = 201
NEON_YELLOW = 226
NEON_GREEN = 46
NEON_RED = 196
NEON_ORANGE = 208
NEON_PINK = 199
NEON_BLUE = 33
NEON_PURPLE = 129
ICE_BLUE = 117

GRAY_LIGHT = 252
GRAY_MED = 245
GRAY_DARK = 238
GRAY_DARKER = 235

WHITE = 255
BLACK = 0

HUD_ROWS = 2


@dataclass
class Cell:
    """A single cell in the render buffer."""
    char: str = ' '
    fg_color: int = 7
    bg_color: int = -1  # -1 = terminal default

    def same_as(self, other: 'Cell') -> bool:
        return (self.char, self.fg_color, self.bg_color) == \
            (other.char, other.fg_color, other.bg_color)

    def clear(self, bg_color: int = -1):
        self.char = ' '
        self.fg_color = 7
        self.bg_color = bg_color


class DoubleBuffer:
    """
    Back buffer for drawing, front buffer for what is on screen.
    present() emits escape sequences for changed cells only.
    """

    def __init__(self, term: Terminal):
        self.term = term
        self.width = term.width
        self.height = term.height
        self.front: List[List[Cell]] = self._blank()
        self.back: List[List[Cell]] = self._blank()
        self._normal = term.normal

    def _blank(self) -> List[List[Cell]]:
        return [[Cell() for _ in range(self.width)] for _ in range(self.height)]

    def resize(self, width: int, height: int):
        self.width = width
        self.height = height
        self.front = self._blank()
        self.back = self._blank()

    def clear_back(self, bg_color: int = -1):
        for row in self.back:
            for cell in row:
                cell.clear(bg_color)

    def put(self, x: int, y: int, char: str, fg_color: int = 7, bg_color: int = None):
        """Write one cell. bg_color None keeps the cell's background."""
        if 0 <= x < self.width and 0 <= y < self.height:
            cell = self.back[y][x]
            cell.char = char
            cell.fg_color = fg_color
            if bg_color is not None:
                cell.bg_color = bg_color

    def put_string(self, x: int, y: int, text: str, fg_color: int = 7, bg_color: int = None):
        for i, char in enumerate(text):
            self.put(x + i, y, char, fg_color, bg_color)

    def present(self) -> str:
        """Swap buffers and return the output for changed cells."""
        term = self.term
        parts = []
        for y in range(self.height):
            back_row = self.back[y]
            front_row = self.front[y]
            for x in range(self.width):
                cell = back_row[x]
                if cell.same_as(front_row[x]):
                    continue
                parts.append(term.move_xy(x, y))
                parts.append(self._normal)
                if cell.bg_color >= 0:
                    parts.append(term.on_color(cell.bg_color))
                parts.append(term.color(cell.fg_color))
                parts.append(cell.char or ' ')

        self.front, self.back = self.back, self.front
        return ''.join(parts)


class BrailleCanvas:
    """
    Each character cell holds a 2x4 grid of braille dots, used for
    shockwave rings and orbitals that are smaller than a cell.
    """

    # (column, row) -> bit
    DOT_BITS = {
        (0, 0): 0x01, (0, 1): 0x02, (0, 2): 0x04, (0, 3): 0x40,
        (1, 0): 0x08, (1, 1): 0x10, (1, 2): 0x20, (1, 3): 0x80,
    }
    BASE = 0x2800

    def __init__(self, char_width: int, char_height: int):
        self.char_width = char_width
        self.char_height = char_height
        self.dots: dict = {}  # (cx, cy) -> [pattern, color]

    def clear(self):
        self.dots = {}

    def set_pixel(self, px: int, py: int, color: int = WHITE):
        cx, cy = px // 2, py // 4
        if 0 <= cx < self.char_width and 0 <= cy < self.char_height:
            entry = self.dots.setdefault((cx, cy), [0, color])
            entry[0] |= self.DOT_BITS[(px % 2, py % 4)]
            entry[1] = color

    def blit_to_buffer(self, buffer: DoubleBuffer):
        """Overlay dots onto empty cells only."""
        for (cx, cy), (pattern, color) in self.dots.items():
            if cy < buffer.height and cx < buffer.width:
                if buffer.back[cy][cx].char == ' ':
                    buffer.put(cx, cy, chr(self.BASE + pattern), color)


@dataclass
class GameRenderer:
    """
    Maps world coordinates to cells relative to the camera and owns the
    screen-shake effect. The bottom HUD_ROWS rows are reserved for the HUD.
    """
    term: Terminal
    buffer: DoubleBuffer = field(init=False)
    braille: BrailleCanvas = field(init=False)

    camera_x: float = 0.0
    camera_y: float = 0.0
    background: int = -1

    shake_x: int = 0
    shake_y: int = 0
    shake_time: float = 0.0

    show_fps: bool = False
    current_fps: float = 60.0

    def __post_init__(self):
        self.buffer = DoubleBuffer(self.term)
        self.braille = BrailleCanvas(self.term.width, self.game_height)

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    @property
    def game_height(self) -> int:
        """Rows available to the playfield."""
        return self.buffer.height - HUD_ROWS

    @property
    def view_size(self) -> Tuple[float, float]:
        """Playfield size in world units."""
        return self.width * CELL_WIDTH, self.game_height * CELL_HEIGHT

    def set_camera(self, x: float, y: float):
        self.camera_x = x
        self.camera_y = y

    def trigger_shake(self, seconds: float = 0.15):
        self.shake_time = max(self.shake_time, seconds)

    def update_effects(self, dt: float):
        if self.shake_time > 0:
            self.shake_time -= dt
            self.shake_x = random.randint(-1, 1)
            self.shake_y = random.randint(-1, 1) if random.random() < 0.3 else 0
        else:
            self.shake_x = 0
            self.shake_y = 0

    def world_to_cell(self, x: float, y: float) -> Tuple[int, int]:
        cx = math.floor((x - self.camera_x) / CELL_WIDTH) + self.shake_x
        cy = math.floor((y - self.camera_y) / CELL_HEIGHT) + self.shake_y
        return cx, cy

    def begin_frame(self):
        self.buffer.clear_back(self.background)
        self.braille.clear()

    def end_frame(self) -> str:
        self.braille.blit_to_buffer(self.buffer)
        return self.buffer.present()

    def put_world(self, x: float, y: float, char: str, fg_color: int = 7,
                  bg_color: int = None):
        """Draw a glyph at a world position, clipped to the playfield."""
        cx, cy = self.world_to_cell(x, y)
        if cy < self.game_height:
            self.buffer.put(cx, cy, char, fg_color, bg_color)

    def fill_world_rect(self, x: float, y: float, w: float, h: float,
                        char: str, fg_color: int, bg_color: int = None):
        """Fill the cells covered by a world-space rectangle."""
        left, top = self.world_to_cell(x, y)
        right, bottom = self.world_to_cell(x + w, y + h)
        for cy in range(max(top, 0), min(bottom + 1, self.game_height)):
            for cx in range(max(left, 0), min(right + 1, self.width)):
                self.buffer.put(cx, cy, char, fg_color, bg_color)

    def ring_world(self, x: float, y: float, radius: float, color: int = WHITE):
        """Braille circle outline in world space."""
        steps = max(12, int(radius / 4))
        for i in range(steps):
            angle = math.pi * 2 * i / steps
            self.dot_world(x + math.cos(angle) * radius, y + math.sin(angle) * radius, color)

    def dot_world(self, x: float, y: float, color: int = WHITE):
        px = math.floor((x - self.camera_x) / CELL_WIDTH * 2) + self.shake_x * 2
        py = math.floor((y - self.camera_y) / CELL_HEIGHT * 4) + self.shake_y * 4
        if px >= 0 and py >= 0:
            self.braille.set_pixel(px, py, color)

    def put_string(self, x: int, y: int, text: str, fg_color: int = 7,
                   bg_color: int = None):
        """Screen-space text for HUD and menus."""
        self.buffer.put_string(x, y, text, fg_color, bg_color)

    def put_centered(self, y: int, text: str, fg_color: int = 7):
        self.buffer.put_string(max(0, self.width // 2 - len(text) // 2), y, text, fg_color)

    def resize(self, width: int, height: int):
        self.buffer.resize(width, height)
        self.braille = BrailleCanvas(width, self.game_height)

    def draw_box(self, x: int, y: int, w: int, h: int, color: int = GRAY_DARK,
                 fill: bool = False):
        """Box drawn with line characters, optionally blanking its inside."""
        for j in range(h):
            for i in range(w):
                edge_x = i in (0, w - 1)
                edge_y = j in (0, h - 1)
                if edge_x and edge_y:
                    char = '+'
                elif edge_y:
                    char = '-'
                elif edge_x:
                    char = '|'
                elif fill:
                    char = ' '
                else:
                    continue
                self.buffer.put(x + i, y + j, char, color, BLACK if fill else None)
