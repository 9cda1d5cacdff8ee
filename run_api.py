#!/usr/bin/env python3
"""
Script to run the Cloud Library API server.
"""

import uvicorn

from api.config import APIConfig
from utilities.config import StorageConfig
from utilities.logger import get_logger, setup_logging


def main():
    """Run the API server."""
    api_config = APIConfig()
    storage_config = StorageConfig()

    setup_logging(
        log_level=storage_config.log_level,
        log_format=storage_config.log_format,
        log_file=storage_config.get_log_file_path(),
        debug=storage_config.debug,
    )

    logger = get_logger(__name__)
    logger.info(
        "Starting Cloud Library API server",
        host=api_config.host,
        port=api_config.port,
        debug=api_config.debug,
        books_storage_path=storage_config.books_storage_path,
    )

    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
