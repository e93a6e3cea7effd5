"""Run the API server."""

from typing import Optional

import uvicorn

from ..config import CaseGraphConfig, ConfigManager
from ..logging_config import setup_logging
from .app import create_app


def main(config: Optional[CaseGraphConfig] = None, reload: bool = False):
    """Run the API server with the loaded configuration."""
    config = config or ConfigManager().load()
    setup_logging(format=config.logging.format, level=config.logging.level, log_file=config.logging.file)

    if reload:
        # The factory re-reads configuration in the reloaded process
        uvicorn.run(
            "casegraph.api.app:create_app",
            factory=True,
            host=config.api.host,
            port=config.api.port,
            reload=True,
            log_config=None,
        )
        return

    uvicorn.run(create_app(config=config), host=config.api.host, port=config.api.port, log_config=None)


if __name__ == "__main__":
    main()
