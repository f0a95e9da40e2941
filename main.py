"""Application entry point."""

from __future__ import annotations

import asyncio
import os

from config import load_config
from core import setup_logger, ApplicationInitializer
from services import set_main_loop

config = load_config()

# Setup logging
logger = setup_logger(
    level=config.log_level,
    log_file=os.path.join(config.log_folder, "app.log"),
    colored=True
)


async def main() -> None:
    """Main application entry point."""
    # Set event loop for services
    loop = asyncio.get_running_loop()
    set_main_loop(loop)

    # Initialize and run application
    app = ApplicationInitializer(config)
    await app.initialize()
    await app.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
