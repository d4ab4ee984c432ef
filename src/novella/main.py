"""Entry-point for launching the CLI application."""
from __future__ import annotations

import logging

from .presentation.cli import config
from .presentation.cli.app import main as cli_main


def main() -> None:
    """Configure logging from the user config, then run the CLI presentation layer."""
    settings = config.load_config()
    logging.basicConfig(
        level=getattr(logging, settings["log_level"]),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli_main(settings)


if __name__ == "__main__":
    main()
