"""Module entrypoint for `python -m nido_tui`."""

from nido_tui.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
