"""
Logging setup for the CLI and the HTTP app.
"""
import logging


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("notevault").setLevel(getattr(logging, level.upper(), logging.INFO))
