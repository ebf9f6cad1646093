"""Solver for an 8x8 block-placement puzzle and a bot that plays it over adb."""

__version__ = "0.1.0"
__all__ = ["game", "utils", "bot"]