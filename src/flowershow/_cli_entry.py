"""Console-script entry point; reports a missing 'cli' extra instead of a traceback."""

import sys

_MISSING_CLI = (
    "Error: the flowershow command needs click, which ships with the 'cli' extra.\n"
    "Install it with:  pip install 'flowershow-publish[cli]'"
)


def main():
    try:
        from .cli import main as cli_main
    except ImportError:
        print(_MISSING_CLI, file=sys.stderr)
        raise SystemExit(1)
    cli_main(prog_name="flowershow")
