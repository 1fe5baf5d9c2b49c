"""
Logging setup shared by the API, the launcher and maintenance scripts
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s] - %(message)s'


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
