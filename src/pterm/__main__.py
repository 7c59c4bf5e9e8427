"""Module entrypoint for `python -m pterm`."""

from pterm.cli import run

if __name__ == "__main__":
    raise SystemExit(run())
