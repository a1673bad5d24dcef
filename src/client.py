"""Directory client factory for skyscope.

The handle directory is the only network dependency needed before the
stream starts, so it is built explicitly and handed to the registry.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from adapters.directory_client import XrpcDirectoryClient
from core.config import DirectoryConfig


def build_directory_client(config: DirectoryConfig) -> XrpcDirectoryClient:
    """Create a directory client from config, with environment overrides.

    DIRECTORY_URL (read via python-dotenv) replaces the configured service,
    which is handy for pointing at a self-hosted PDS without editing config.
    """

    load_dotenv()

    service_url = os.getenv("DIRECTORY_URL") or config.service_url
    if not service_url.startswith(("http://", "https://")):
        raise RuntimeError(f"Directory service URL must be http(s): {service_url}")

    logging.getLogger(__name__).info("Using handle directory %s", service_url)

    return XrpcDirectoryClient(service_url, timeout=config.timeout)
