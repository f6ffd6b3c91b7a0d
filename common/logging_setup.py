"""
common.logging_setup

Set up standard logging for the project.
"""
import logging
from typing import Dict, Optional


def setup_logging(level: int = logging.INFO, module_levels: Optional[Dict[str, int]] = None):
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    # per module overrides, e.g. {"ingestion.reader": logging.DEBUG}
    for name, lvl in (module_levels or {}).items():
        logging.getLogger(name).setLevel(lvl)
