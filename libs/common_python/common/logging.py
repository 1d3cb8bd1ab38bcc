"""Process logging setup shared by the overlay services.

Each service calls `configure_logging(<service>)` once from its entrypoint.
Records go to stderr with a `[<service>]` prefix. Uvicorn is started with
`log_config=None`, so its access/error loggers propagate to the same handler.
"""

import logging
import os

LOG_LEVEL_VAR = "OVERLAY_LOG_LEVEL"


def configure_logging(service: str, level: str | None = None) -> None:
    level = (level or os.getenv(LOG_LEVEL_VAR) or "INFO").upper()
    logging.basicConfig(
        level=level,
        format=f"%(asctime)s [{service}] %(levelname)s %(name)s: %(message)s",
        force=True,
    )
