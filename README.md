# blastbot

blastbot plays an 8×8 block-placement puzzle on an Android phone that is
connected over adb. Each round goes like this:

1. It takes a screenshot with `adb exec-out screencap -p`.
2. It reads the 8×8 board and the three pieces that are offered below it.
3. It tries every order and every position of the three pieces and scores
   each resulting board.
4. It plays the best-scoring sequence with `adb shell input swipe`.

## Installation

```
pip install .
```

You also need an `adb` binary. By default the bot runs
`./platform-tools/adb`.

## Running

Connect the phone, open the game, then run:

```
blastbot
```

Options:

- `--adb PATH` – path to the adb executable (default `./platform-tools/adb`).
- `--rounds N` – play `N` rounds and stop. Without it the bot plays until
  you stop it with Ctrl+C, and then it exits with status 130.

On standard output the bot prints the moves it chose and the swipes it sends.
On standard error it prints the pieces and board it detected, the number of
placements it tried and the best score. In the working directory it saves
`screenshot.png` and the piece images `piece_0.png` to `piece_2.png`.
If a piece cannot be found in the screenshot, nothing is played in that round.

## Using the solver directly

`blastbot.game` works without a phone:

```python
from blastbot.game import GameState, Piece, Position

grid = [[False] * 8 for _ in range(8)]
pieces = [
    Piece([[True, True]]),
    Piece([[True], [True]]),
    Piece([[True, True], [True, True]]),
]
state = GameState.from_grid(grid, pieces)
print(state.render())
for move in state.find_best_move():
    print(move.piece_index, move.to.x, move.to.y)
```

- `GameState.board` is a 64-bit integer; bit `y * 8 + x` is the cell at
  column `x`, row `y`.
- `GameState.find_best_move()` needs exactly three pieces (otherwise it
  raises `ValueError`). It returns three `Move` objects in play order, or an
  empty list when the three pieces cannot all be placed.
- `GameState.place_piece(piece, Position(x, y))` returns a new state with the
  piece placed and any full rows and columns cleared. It raises
  `PlacementError` if the piece overlaps a filled cell. The bonus for cleared
  lines is added to the state it is called on, not to the returned one.
- `GameState.count_empty_sections()` counts the 4-connected regions of empty
  cells; `GameState.penalize()` lowers the score for isolated cells and for
  the perimeter of the filled area.
- `Piece.bounds()` gives `(width, height)` and `Piece.fits_on_board(x, y)`
  tells whether the piece lies inside the board at that position.

The screenshot reading is in `blastbot.bot`: `read_board`, `read_pieces`,
`read_piece` and `find_piece_bounds` take a Pillow image, and
`swipe_for_move` computes the start, end and duration of the drag for a move.

`blastbot.utils` has `int64_to_binary`, `uint64_to_binary` (64-character
bit strings) and `save_rect_to_file`, which saves part of an image as PNG.

## Limitations

- The pixel positions of the board, the piece tray and the touch points are
  fixed for one screen layout. There is no calibration; on another resolution
  the detection fails.
- The bot does not start the game, handle menus or detect game over; it only
  reads the board and plays pieces, round after round.

## Tests

```
pip install .[test]
pytest
```