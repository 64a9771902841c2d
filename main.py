"""
Compatibility entrypoint for platforms that expect `python main.py`.

The command itself lives in `ginius/cli.py` (installed as the `ginius` script).
"""

from ginius.cli import main

if __name__ == "__main__":
    main(prog_name="ginius")
