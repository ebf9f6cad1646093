"""Reading the game from screenshots and playing moves through adb."""

from __future__ import annotations

import argparse
import io
import itertools
import math
import random
import subprocess
import sys
import time
from pathlib import Path
from typing import Callable, Sequence

from PIL import Image

from .game import BOARD_SIZE, GameState, Move, Piece, Position
from .utils import save_rect_to_file

ADB_PATH = "./platform-tools/adb"

BOARD_LEFT = 44
BOARD_TOP = 415
CELL_SIZE = 76
CELL_GAP = 3
BOARD_THRESHOLD = 40

PIECE_AREA = (28, 1105, 28 + 663, 1105 + 266)
BLOCK_SIZE = 36
PIECE_LUMINANCE = 90

# Where to touch the screen to pick up each of the three pieces.
PIECE_SLOTS = (
    Position(150, 1237),
    Position(360, 1237),
    Position(570, 1237),
)

SWIPE_ADJUST = 0.73
SWIPE_SPEED = 400  # pixels per second

Box = tuple[int, int, int, int]
_Sampler = Callable[[int, int], tuple[int, int, int]]


class PieceNotFoundError(Exception):
    """Raised when no piece can be made out in a part of the screenshot."""


def adb_screenshot(adb_path: str = ADB_PATH) -> bytes:
    """Capture the device screen as PNG bytes."""
    result = subprocess.run(
        [adb_path, "exec-out", "screencap", "-p"],
        stdout=subprocess.PIPE,
        check=True,
    )
    return result.stdout


def luminance(r: int, g: int, b: int) -> float:
    """Perceived brightness of an 8-bit colour."""
    return 0.299 * r + 0.587 * g + 0.114 * b


def _sampler(image: Image.Image) -> _Sampler:
    """Return a function giving the 8-bit premultiplied RGB at a pixel.

    Pixels outside the image read as black.
    """
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    pixels = rgba.load()
    width, height = rgba.size

    def at(x: int, y: int) -> tuple[int, int, int]:
        if not (0 <= x < width and 0 <= y < height):
            return 0, 0, 0
        r, g, b, a = pixels[x, y]
        if a != 255:
            r, g, b = r * a // 255, g * a // 255, b * a // 255
        return r, g, b

    return at


def _is_piece_colour(r: int, g: int, b: int) -> bool:
    return luminance(r, g, b) > PIECE_LUMINANCE or b < 80 or (b < 150 and r > 80)


def read_board(image: Image.Image) -> list[list[bool]]:
    """Read the 8x8 board: a cell is filled when its centre is bright."""
    at = _sampler(image)
    step = CELL_SIZE + CELL_GAP
    half = CELL_SIZE // 2
    return [
        [
            luminance(*at(BOARD_LEFT + x * step + half, BOARD_TOP + y * step + half))
            > BOARD_THRESHOLD
            for x in range(BOARD_SIZE)
        ]
        for y in range(BOARD_SIZE)
    ]


def find_piece_bounds(image: Image.Image, box: Box, piece_index: int) -> Box:
    """Find the box (left, top, right, bottom) around the piece drawn inside box.

    Right and bottom are the last coloured column and row, inclusive.
    """
    left, top, right, bottom = box
    at = _sampler(image)
    x0 = x1 = y0 = y1 = 0
    for x in range(right - left):
        for y in range(bottom - top):
            if not _is_piece_colour(*at(left + x, top + y)):
                continue
            if x0 == 0 or x < x0:
                x0 = x
            if y0 == 0 or y < y0:
                y0 = y
            if x1 == 0 or x > x1:
                x1 = x
            if y1 == 0 or y > y1:
                y1 = y
    if x0 >= x1 or y0 >= y1:
        raise PieceNotFoundError(f"could not find bounds for piece {piece_index}")
    return x0 + left, y0 + top, x1 + left, y1 + top


def read_piece(image: Image.Image, bounds: Box) -> Piece:
    """Sample the blocks of a piece found at bounds."""
    left, top, right, bottom = bounds
    width = (right - left) // BLOCK_SIZE + 1
    height = (bottom - top) // BLOCK_SIZE + 1
    at = _sampler(image)
    half = BLOCK_SIZE // 2
    return Piece(
        [
            _is_piece_colour(*at(left + x * BLOCK_SIZE + half, top + y * BLOCK_SIZE + half))
            for x in range(width)
        ]
        for y in range(height)
    )


def _render_piece(piece: Piece) -> str:
    return "\n".join(
        "".join("\U0001f7e9" if cell else "\U0001f7e5" for cell in row) for row in piece
    )


def read_pieces(image: Image.Image, save_images: bool = True) -> list[Piece]:
    """Read the three pieces offered below the board.

    With save_images, each piece's region is written to piece_<n>.png.
    """
    left, top, right, bottom = PIECE_AREA
    slice_width = (right - left - 3) // 3
    pieces = []
    for index in range(3):
        box = (
            left + slice_width * index,
            top,
            left + slice_width * (index + 1),
            bottom,
        )
        bounds = find_piece_bounds(image, box, index)
        if save_images:
            save_rect_to_file(image, bounds, f"piece_{index}.png")
        piece = read_piece(image, bounds)
        if piece.to_board(0, 0) == 0:
            raise PieceNotFoundError(f"piece {index} is empty")
        print(f"Piece {index} :", file=sys.stderr)
        print(_render_piece(piece), file=sys.stderr)
        pieces.append(piece)
    return pieces


def swipe_for_move(move: Move) -> tuple[Position, Position, float]:
    """Work out where to start and end a drag for a move, and how long it takes.

    Returns (start, end, duration in milliseconds).
    """
    width, height = move.piece.bounds()
    target = Position(
        BOARD_LEFT + move.to.x * CELL_SIZE + width * CELL_SIZE // 2,
        BOARD_TOP + move.to.y * CELL_SIZE + height * CELL_SIZE // 2,
    )
    start = PIECE_SLOTS[move.piece_index]

    diff_x = (start.x - target.x) * SWIPE_ADJUST
    diff_y = (start.y - target.y) * SWIPE_ADJUST
    x2 = int(start.x - diff_x)
    y2 = int(start.y - diff_y)
    end = Position(int(x2 + (540 - diff_x) * 0.04), y2 + 150)

    distance = math.hypot(target.x - start.x, target.y - start.y)
    duration_ms = distance / SWIPE_SPEED * 1000
    return start, end, duration_ms


def send_swipe(adb_path: str, start: Position, end: Position, duration_ms: float) -> None:
    """Drag on the device screen from start to end; failures are only reported."""
    command = [
        adb_path,
        "shell",
        "input",
        "swipe",
        str(start.x),
        str(start.y),
        str(end.x),
        str(end.y),
        str(int(duration_ms)),
    ]
    try:
        subprocess.run(command, check=False)
    except OSError as exc:
        print(f"swipe failed: {exc}", file=sys.stderr)


def do_round(adb_path: str = ADB_PATH) -> list[Move]:
    """Take a screenshot, find the best three moves and play them.

    Returns the moves played, or an empty list when nothing was played.
    """
    shot = adb_screenshot(adb_path)
    Path("screenshot.png").write_bytes(shot)

    with Image.open(io.BytesIO(shot)) as decoded:
        image = decoded.convert("RGBA")

    board = read_board(image)
    try:
        pieces = read_pieces(image, save_images=True)
    except PieceNotFoundError as exc:
        print(f"{exc}, trying to find bounds failed", file=sys.stderr)
        return []

    state = GameState.from_grid(board, pieces)
    print(state.render(), end="", file=sys.stderr)
    moves = state.find_best_move()

    for move in moves:
        print(f"Move: Piece {move.piece_index} at ({move.to.x}, {move.to.y})")

    for move in moves:
        start, end, duration_ms = swipe_for_move(move)
        print(f"Swiping from ({start.x}, {start.y}) to ({end.x}, {end.y})")
        print(f"Swipe time: {duration_ms:.2f}", file=sys.stderr)
        end = Position(end.x + random.randrange(10) - 5, end.y + random.randrange(10) - 5)
        send_swipe(adb_path, start, end, duration_ms)
        time.sleep(int(duration_ms) / 1000)

    return moves


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="blastbot", description="Play the block puzzle on a device through adb."
    )
    parser.add_argument("--adb", default=ADB_PATH, help="path to the adb executable")
    parser.add_argument(
        "--rounds", type=int, default=None, help="number of rounds to play (default: forever)"
    )
    args = parser.parse_args(argv)

    print("Starting Block Blast Bot...", file=sys.stderr)
    time.sleep(1)

    rounds = itertools.count() if args.rounds is None else range(args.rounds)
    try:
        for _ in rounds:
            do_round(args.adb)
            print("Round completed, waiting for next round...", file=sys.stderr)
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())