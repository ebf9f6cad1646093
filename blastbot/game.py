"""Board model and move search for an 8x8 block-placement puzzle.

The board is a 64-bit integer: bit ``y * 8 + x`` is set when the cell at
column ``x`` and row ``y`` is filled.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Iterable, Iterator

BOARD_SIZE = 8
FULL = (1 << 64) - 1

_ROW0 = 0xFF
_COL0 = 0x0101010101010101
ROW_MASKS = tuple(_ROW0 << (8 * y) for y in range(BOARD_SIZE))
COL_MASKS = tuple(_COL0 << x for x in range(BOARD_SIZE))

_NOT_COL0 = FULL & ~COL_MASKS[0]
_NOT_COL7 = FULL & ~COL_MASKS[7]
_NOT_ROW0 = FULL & ~ROW_MASKS[0]
_NOT_ROW7 = FULL & ~ROW_MASKS[7]
# Cells that have a neighbour to the right, left, below and above.
_HAS_NEIGHBOUR = (_NOT_COL7, _NOT_COL0, _NOT_ROW7, _NOT_ROW0)

EMPTY_BLOCK_PENALTY = 5
FULL_BLOCK_PENALTY = 10
LINE_CLEAR_BONUS = 1000
BOARD_CLEAR_BONUS = 400
EMPTY_SECTION_PENALTY = 100
_SCORE_FLOOR = -1_000_000

ORDERS = (
    (0, 1, 2),
    (0, 2, 1),
    (1, 0, 2),
    (1, 2, 0),
    (2, 0, 1),
    (2, 1, 0),
)

_FILLED = "\U0001f7e9"
_EMPTY = "\u2b1b\ufe0f"


class PlacementError(Exception):
    """Raised when a piece cannot be placed where it was asked to go."""


class Piece:
    """A block shape: rows of cells, each either filled or not."""

    __slots__ = ("rows",)

    def __init__(self, rows: Iterable[Iterable[bool]]) -> None:
        self.rows: tuple[tuple[bool, ...], ...] = tuple(
            tuple(bool(cell) for cell in row) for row in rows
        )

    def __iter__(self) -> Iterator[tuple[bool, ...]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Piece):
            return NotImplemented
        return self.rows == other.rows

    def __hash__(self) -> int:
        return hash(self.rows)

    def __repr__(self) -> str:
        return f"Piece({[list(row) for row in self.rows]!r})"

    def _cells(self) -> Iterator[tuple[int, int]]:
        for i, row in enumerate(self.rows):
            for j, cell in enumerate(row):
                if cell:
                    yield j, i

    def to_board(self, x: int, y: int) -> int:
        """Return a board holding only this piece, top-left corner at (x, y).

        Cells that land past the last bit are dropped; a column overflow
        wraps onto the next row, as the flat bit layout dictates.
        """
        board = 0
        for j, i in self._cells():
            pos = (y + i) * BOARD_SIZE + x + j
            if pos < 0:
                raise ValueError(f"piece cell at ({x + j}, {y + i}) lies before the board")
            if pos < 64:
                board |= 1 << pos
        return board

    def bounds(self) -> tuple[int, int]:
        """Return (width, height): the most filled cells in a row and the row count."""
        width = max((sum(row) for row in self.rows), default=0)
        return width, len(self.rows)

    def fits_on_board(
        self, x: int, y: int, width: int = BOARD_SIZE, height: int = BOARD_SIZE
    ) -> bool:
        """Tell whether every filled cell lies inside a width x height board."""
        return all(
            0 <= x + j < width and 0 <= y + i < height for j, i in self._cells()
        )


@dataclass(frozen=True)
class Position:
    x: int
    y: int


@dataclass
class Move:
    piece: Piece
    piece_index: int
    to: Position


@dataclass
class Job:
    order_index: int
    first_pos: Position
    second_pos: Position
    third_pos: Position
    score: int = 0


def _full_neighbours(board: int) -> tuple[int, int, int, int]:
    """Masks of cells whose right, left, lower and upper neighbour is filled."""
    return (
        (board >> 1) & _NOT_COL7,
        (board << 1) & _NOT_COL0,
        board >> 8,
        (board << 8) & FULL,
    )


def _penalty(board: int) -> int:
    lonely_empty = FULL & ~board
    lonely_full = board
    perimeter = 0
    for has, full in zip(_HAS_NEIGHBOUR, _full_neighbours(board)):
        lonely_empty &= ~has | full
        lonely_full &= ~full
        perimeter += (board & ~full).bit_count()
    return -(
        EMPTY_BLOCK_PENALTY * lonely_empty.bit_count()
        + FULL_BLOCK_PENALTY * lonely_full.bit_count()
        + perimeter
    )


def _count_empty_sections(board: int) -> int:
    remaining = FULL & ~board
    sections = 0
    while remaining:
        region = remaining & -remaining
        while True:
            grown = (
                region
                | ((region << 1) & _NOT_COL0)
                | ((region >> 1) & _NOT_COL7)
                | (region << 8)
                | (region >> 8)
            ) & remaining
            if grown == region:
                break
            region = grown
        remaining &= ~region
        sections += 1
    return sections


def _evaluate(board: int) -> int:
    value = _penalty(board)
    sections = _count_empty_sections(board)
    if sections > 1:
        value -= sections * EMPTY_SECTION_PENALTY
    return value


def _clear_lines(board: int) -> tuple[int, int]:
    full_lines = [m for m in ROW_MASKS if board & m == m]
    full_lines += [m for m in COL_MASKS if board & m == m]
    for mask in full_lines:
        board &= ~mask
    return board, len(full_lines)


def _settle(board: int, score: int, mask: int) -> tuple[int, int, int]:
    """Drop a piece mask on the board; return new board, new score and lines cleared."""
    board, lines = _clear_lines(board | mask)
    if board == 0:
        score += BOARD_CLEAR_BONUS
    score += (FULL & ~board).bit_count()
    return board, score, lines


@dataclass
class GameState:
    board: int = 0
    pieces: list[Piece] = field(default_factory=list)
    score: int = 0

    @classmethod
    def from_grid(cls, grid: Iterable[Iterable[bool]], pieces: Iterable[Piece] = ()) -> GameState:
        """Build a state from rows of booleans, true meaning filled."""
        board = 0
        for y, row in enumerate(grid):
            for x, cell in enumerate(row):
                pos = y * BOARD_SIZE + x
                if cell and pos < 64:
                    board |= 1 << pos
        return cls(board=board, pieces=list(pieces))

    def penalize(self) -> None:
        """Lower the score for isolated cells and for the filled area's perimeter."""
        self.score += _penalty(self.board)

    def place_piece(self, piece: Piece, pos: Position) -> GameState:
        """Return the state after placing a piece and clearing full lines.

        The line-clear bonus is credited to this state, not to the new one.
        """
        mask = piece.to_board(pos.x, pos.y)
        if self.board & mask:
            raise PlacementError("piece collides with existing pieces")
        board, score, lines = _settle(self.board, self.score, mask)
        new_state = GameState(board=board, pieces=list(self.pieces), score=score)
        self.score += sum(LINE_CLEAR_BONUS * k for k in range(1, lines + 1))
        return new_state

    def render(self) -> str:
        """Return the board as eight lines of coloured squares."""
        lines = (
            "".join(
                _FILLED if self.board >> (y * BOARD_SIZE + x) & 1 else _EMPTY
                for x in range(BOARD_SIZE)
            )
            for y in range(BOARD_SIZE)
        )
        return "\n".join(lines) + "\n"

    def count_empty_sections(self) -> int:
        """Count the 4-connected regions of empty cells."""
        return _count_empty_sections(self.board)

    def _placements(self, index: int) -> list[tuple[Position, int]]:
        piece = self.pieces[index]
        width, height = piece.bounds()
        return [
            (Position(x, y), piece.to_board(x, y))
            for x in range(BOARD_SIZE + 1 - width)
            for y in range(BOARD_SIZE + 1 - height)
            if piece.fits_on_board(x, y)
        ]

    def find_best_move(self) -> list[Move]:
        """Search every order and placement of the three pieces for the best score.

        Returns the three moves in play order, or an empty list when no
        placement of all three pieces is possible.
        """
        if len(self.pieces) != 3:
            raise ValueError(f"expected 3 pieces, got {len(self.pieces)}")

        total = 0
        for order in ORDERS:
            count = 1
            for index in order:
                width, height = self.pieces[index].bounds()
                count *= max(0, BOARD_SIZE + 1 - width) * max(0, BOARD_SIZE + 1 - height)
            total += count
        print("Total Jobs:", total, file=sys.stderr)

        options = [self._placements(index) for index in range(3)]
        evaluations: dict[int, int] = {}
        valid = 0
        best: Job | None = None
        best_score = _SCORE_FLOOR

        for order_index, order in enumerate(ORDERS):
            first, second, third = (options[i] for i in order)
            for pos1, mask1 in first:
                if self.board & mask1:
                    continue
                board1, score1, _ = _settle(self.board, self.score, mask1)
                for pos2, mask2 in second:
                    if board1 & mask2:
                        continue
                    board2, score2, _ = _settle(board1, score1, mask2)
                    for pos3, mask3 in third:
                        if board2 & mask3:
                            continue
                        board3, score3, _ = _settle(board2, score2, mask3)
                        penalty = evaluations.get(board3)
                        if penalty is None:
                            penalty = evaluations[board3] = _evaluate(board3)
                        score = score3 + penalty
                        valid += 1
                        if score > best_score:
                            best_score = score
                            best = Job(order_index, pos1, pos2, pos3, score)

        print("Valid Jobs:", valid, file=sys.stderr)
        if valid == 0:
            return []
        if best is None:
            raise RuntimeError(f"no valid move scored above {_SCORE_FLOOR}")

        order = ORDERS[best.order_index]
        positions = (best.first_pos, best.second_pos, best.third_pos)
        print("Best Score:", best.score, file=sys.stderr)
        return [
            Move(piece=self.pieces[index], piece_index=index, to=pos)
            for index, pos in zip(order, positions)
        ]