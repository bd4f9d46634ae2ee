"""
Configuration for the DataUnison SDK.

Values come from the process environment, optionally seeded from
~/.dataunison/.env:

- DATAUNISON_GRAPHQL_URL   GraphQL endpoint (default: production backend)
- DATAUNISON_API_KEY       project API key
- DATAUNISON_PROJECT_ID    numeric project id (CLI default)
- DATAUNISON_PRIVATE_KEY   hex private key for signing transactions
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_GRAPHQL_URL = "https://data-unison.covestlabs.com/graphql"

# Default config directory
DATAUNISON_DIR = Path.home() / ".dataunison"
DATAUNISON_ENV = DATAUNISON_DIR / ".env"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load the .env file into the environment if it exists.

    Values already set in the environment win over the file.
    """
    env_path = env_path or DATAUNISON_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)


def get_graphql_url() -> str:
    """Get the GraphQL endpoint from environment or default."""
    return os.environ.get("DATAUNISON_GRAPHQL_URL", DEFAULT_GRAPHQL_URL)


def load_api_key(env_path: Optional[Path] = None) -> str:
    """
    Load the project API key.

    Raises:
        ValueError: If DATAUNISON_API_KEY is not set
    """
    load_env(env_path)
    api_key = os.environ.get("DATAUNISON_API_KEY")
    if not api_key:
        raise ValueError(
            f"DATAUNISON_API_KEY not found. Set it in the environment or in "
            f"{env_path or DATAUNISON_ENV}"
        )
    return api_key


def load_private_key(env_path: Optional[Path] = None) -> Optional[str]:
    """
    Load the signing key, if one is configured.

    Returns:
        0x-prefixed hex private key, or None for read-only use
    """
    load_env(env_path)
    private_key = os.environ.get("DATAUNISON_PRIVATE_KEY")
    if not private_key:
        return None

    # Ensure 0x prefix
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key
