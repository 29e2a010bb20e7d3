"""Versioned data.json schema (code-first migration chain).

Each migration takes the raw JSON object of version N and returns the
object for version N + 1. Migrations run on plain dicts before model
validation so field renames never trip the validator.
"""

import logging
from collections.abc import Callable
from typing import Any

from slimetodo.core.config import Constants


logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = Constants.SCHEMA_VERSION

SCHEMA_VERSION_KEY = "schemaVersion"


def _migrate_v0_to_v1(payload: dict[str, Any]) -> dict[str, Any]:
    """Files written before versioning already have the v1 layout."""
    return payload


# Keyed by the version a migration upgrades *from*
MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    0: _migrate_v0_to_v1,
}


def get_schema_version(payload: dict[str, Any]) -> int:
    """Read the stored version; files without one are treated as version 0."""
    version = payload.get(SCHEMA_VERSION_KEY, payload.get("schema_version", 0))
    if not isinstance(version, int) or isinstance(version, bool) or version < 0:
        return 0
    return version


def migrate_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a raw data.json object to the current schema version.

    Args:
        payload: Parsed JSON object as read from disk or an import

    Returns:
        The migrated object with schemaVersion set to the current version

    Raises:
        ValueError: If the payload was written by a newer release
    """
    version = get_schema_version(payload)

    if version > CURRENT_SCHEMA_VERSION:
        msg = f"Data schema version {version} is newer than supported version {CURRENT_SCHEMA_VERSION}"
        raise ValueError(msg)

    while version < CURRENT_SCHEMA_VERSION:
        migration = MIGRATIONS[version]
        logger.info("Migrating data from schema v%d to v%d", version, version + 1)
        payload = migration(payload)
        version += 1

    payload.pop("schema_version", None)
    payload[SCHEMA_VERSION_KEY] = CURRENT_SCHEMA_VERSION
    return payload
