from __future__ import annotations

from tidal_cli.cli import main


if __name__ == "__main__":
    main()
