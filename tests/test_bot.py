import io
import subprocess
from unittest import mock

import pytest
from PIL import Image, ImageDraw

from blastbot.bot import (
    PIECE_SLOTS,
    PieceNotFoundError,
    adb_screenshot,
    do_round,
    find_piece_bounds,
    luminance,
    main,
    read_board,
    read_piece,
    read_pieces,
    send_swipe,
    swipe_for_move,
)
from blastbot.game import Move, Piece, Position

BACKGROUND = (40, 60, 160)
PIECE_COLOUR = (255, 200, 0)
SIZE = (720, 1400)
SLICE_LEFTS = (28, 248, 468)


def _blank():
    return Image.new("RGB", SIZE, BACKGROUND)


def _draw_board(image, grid):
    draw = ImageDraw.Draw(image)
    draw.rectangle([44, 415, 44 + 8 * 79, 415 + 8 * 79], fill=(0, 0, 0))
    for y, row in enumerate(grid):
        for x, cell in enumerate(row):
            if cell:
                left = 44 + x * 79
                top = 415 + y * 79
                draw.rectangle([left, top, left + 75, top + 75], fill=(255, 255, 255))


def _draw_piece(image, rows, left, top):
    draw = ImageDraw.Draw(image)
    for y, row in enumerate(rows):
        for x, cell in enumerate(row):
            if cell:
                bx = left + x * 36
                by = top + y * 36
                draw.rectangle([bx, by, bx + 35, by + 35], fill=PIECE_COLOUR)


def _png(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def test_luminance_extremes_and_weights():
    assert luminance(0, 0, 0) == 0
    assert luminance(255, 255, 255) == pytest.approx(255)
    assert luminance(0, 0, 255) < luminance(255, 0, 0) < luminance(0, 255, 0)


def test_read_board_round_trip():
    grid = [[(x + 2 * y) % 3 == 0 for x in range(8)] for y in range(8)]
    image = _blank()
    _draw_board(image, grid)
    assert read_board(image) == grid


def test_read_board_handles_rgba_input():
    grid = [[x == y for x in range(8)] for y in range(8)]
    image = _blank()
    _draw_board(image, grid)
    assert read_board(image.convert("RGBA")) == grid


def test_find_piece_bounds_locates_block():
    image = _blank()
    ImageDraw.Draw(image).rectangle([100, 1200, 171, 1271], fill=PIECE_COLOUR)
    assert find_piece_bounds(image, (28, 1105, 248, 1371), 0) == (100, 1200, 171, 1271)


def test_find_piece_bounds_empty_region_raises():
    with pytest.raises(PieceNotFoundError, match="piece 1"):
        find_piece_bounds(_blank(), (248, 1105, 468, 1371), 1)


def test_read_piece_l_shape():
    rows = [[True, False], [True, False], [True, True]]
    image = _blank()
    _draw_piece(image, rows, 60, 1150)
    bounds = find_piece_bounds(image, (28, 1105, 248, 1371), 0)
    assert read_piece(image, bounds) == Piece(rows)


def test_read_pieces_reads_all_three():
    shapes = [
        [[True, True], [True, True]],
        [[True, True, True]],
        [[False, True], [True, True]],
    ]
    image = _blank()
    for rows, left in zip(shapes, SLICE_LEFTS):
        _draw_piece(image, rows, left + 40, 1150)
    assert read_pieces(image, False) == [Piece(rows) for rows in shapes]


def test_read_pieces_missing_piece_raises():
    image = _blank()
    _draw_piece(image, [[True, True]], SLICE_LEFTS[0] + 40, 1150)
    _draw_piece(image, [[True, True]], SLICE_LEFTS[1] + 40, 1150)
    with pytest.raises(PieceNotFoundError, match="2"):
        read_pieces(image, False)


def test_read_pieces_saves_images(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    image = _blank()
    for left in SLICE_LEFTS:
        _draw_piece(image, [[True, True]], left + 40, 1150)
    pieces = read_pieces(image, True)
    assert pieces == [Piece([[True, True]])] * 3
    assert sorted(p.name for p in tmp_path.glob("piece_*.png")) == [
        "piece_0.png",
        "piece_1.png",
        "piece_2.png",
    ]
    with Image.open(tmp_path / "piece_0.png") as saved:
        assert saved.width > 0 and saved.height > 0


@pytest.mark.parametrize("index", [0, 1, 2])
def test_swipe_starts_at_piece_slot(index):
    move = Move(piece=Piece([[True]]), piece_index=index, to=Position(3, 3))
    start, _, duration = swipe_for_move(move)
    assert start == PIECE_SLOTS[index]
    assert duration > 0


def test_swipe_worked_example():
    move = Move(piece=Piece([[True]]), piece_index=0, to=Position(0, 0))
    start, end, _ = swipe_for_move(move)
    assert start == Position(150, 1237)
    assert end == Position(119, 814)


def test_swipe_duration_grows_with_distance():
    piece = Piece([[True]])
    _, _, far = swipe_for_move(Move(piece=piece, piece_index=0, to=Position(0, 0)))
    _, _, near = swipe_for_move(Move(piece=piece, piece_index=0, to=Position(0, 7)))
    assert far > near


def test_send_swipe_command():
    calls = []

    def record(command, **kwargs):
        calls.append(list(command))
        return subprocess.CompletedProcess(command, 0)

    move = Move(piece=Piece([[True]]), piece_index=0, to=Position(0, 0))
    start, end, duration = swipe_for_move(move)
    assert (start, end) == (Position(150, 1237), Position(119, 814))
    assert duration > 0

    with mock.patch("blastbot.bot.subprocess.run", side_effect=record):
        send_swipe("adb", Position(1, 2), Position(3, 4), 250.7)
        send_swipe("adb", start, end, duration)
    assert calls == [
        ["adb", "shell", "input", "swipe", "1", "2", "3", "4", "250"],
        ["adb", "shell", "input", "swipe", "150", "1237", "119", "814", str(int(duration))],
    ]


def test_send_swipe_missing_adb_is_reported(capsys):
    with mock.patch("blastbot.bot.subprocess.run", side_effect=FileNotFoundError("adb")):
        send_swipe("adb", Position(1, 2), Position(3, 4), 100)
    assert "swipe failed" in capsys.readouterr().err


def test_adb_screenshot_returns_stdout():
    completed = subprocess.CompletedProcess(["adb"], 0, stdout=b"png-data")
    with mock.patch("blastbot.bot.subprocess.run", return_value=completed) as run:
        assert adb_screenshot("adb") == b"png-data"
    assert run.call_args.args[0] == ["adb", "exec-out", "screencap", "-p"]


def test_adb_screenshot_failure_raises():
    error = subprocess.CalledProcessError(1, ["adb"])
    with mock.patch("blastbot.bot.subprocess.run", side_effect=error):
        with pytest.raises(subprocess.CalledProcessError):
            adb_screenshot("adb")


def _nearly_full_screen():
    grid = [[True] * 8 for _ in range(8)]
    for x in range(3):
        grid[0][x] = False
    image = _blank()
    _draw_board(image, grid)
    for left in SLICE_LEFTS:
        _draw_piece(image, [[True]], left + 60, 1200)
    return _png(image)


def _fake_adb(screenshot, calls):
    def run(command, **kwargs):
        calls.append(list(command))
        if "screencap" in command:
            return subprocess.CompletedProcess(command, 0, stdout=screenshot)
        return subprocess.CompletedProcess(command, 0)

    return run


def test_do_round_plays_three_moves(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    calls = []
    with mock.patch("blastbot.bot.subprocess.run", side_effect=_fake_adb(_nearly_full_screen(), calls)), \
            mock.patch("blastbot.bot.time.sleep"):
        moves = do_round("adb")
    assert sorted(m.piece_index for m in moves) == [0, 1, 2]
    assert {m.to for m in moves} == {Position(0, 0), Position(1, 0), Position(2, 0)}
    swipes = [c for c in calls if "swipe" in c]
    assert len(swipes) == 3
    assert (tmp_path / "screenshot.png").exists()


def test_do_round_without_pieces_plays_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    calls = []
    screenshot = _png(_blank())
    with mock.patch("blastbot.bot.subprocess.run", side_effect=_fake_adb(screenshot, calls)), \
            mock.patch("blastbot.bot.time.sleep"):
        assert do_round("adb") == []
    assert not [c for c in calls if "swipe" in c]


def test_main_runs_given_rounds(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    calls = []
    with mock.patch("blastbot.bot.subprocess.run", side_effect=_fake_adb(_nearly_full_screen(), calls)), \
            mock.patch("blastbot.bot.time.sleep"):
        assert main(["--adb", "adb-test", "--rounds", "1"]) == 0
    assert calls[0] == ["adb-test", "exec-out", "screencap", "-p"]
    assert sum("screencap" in c for c in calls) == 1