"""
IT Glue API client and bulk jobs.
"""

import os

from msp_toolkit.exceptions import ITGlueAuthError
from msp_toolkit.itglue.client import DEFAULT_BASE_URL, REGION_URLS, ITGlueClient
from msp_toolkit.itglue.resources import Resource


def get_client(config: dict, api_key: str | None = None) -> ITGlueClient:
    """
    Factory function to build an ITGlueClient from configuration.

    Args:
        config: Configuration dict with 'itglue' section
        api_key: Explicit key; defaults to the env var named by itglue.api_key_env

    Returns:
        ITGlueClient instance

    Raises:
        ITGlueAuthError: If no API key is available
    """
    itglue_config = config.get("itglue", {})
    api_key_env = itglue_config.get("api_key_env", "ITGLUE_API_KEY")

    api_key = api_key or os.environ.get(api_key_env)
    if not api_key:
        raise ITGlueAuthError(api_key_env)

    region = itglue_config.get("region")
    if region:
        base_url = REGION_URLS[region]
    else:
        base_url = itglue_config.get("base_url", DEFAULT_BASE_URL)

    return ITGlueClient(
        api_key,
        base_url=base_url,
        page_size=itglue_config.get("page_size", 1000),
        timeout=itglue_config.get("timeout", 30),
        retry=itglue_config.get("retry"),
    )


__all__ = ["ITGlueClient", "Resource", "get_client"]
