"""
Mod loader descriptor parsers.

One parser per metadata dialect. Forge and NeoForge share the mods.toml
line format; Fabric and Quilt ship JSON descriptors.
"""

import json
import re
import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

UNKNOWN_MOD_NAME = "Unknown Mod"

_MOD_ID_RE = re.compile(r'modId\s*=\s*"([^"]+)"')
_DISPLAY_NAME_RE = re.compile(r'displayName\s*=\s*"([^"]+)"')

# Matched verbatim against each line
_CLIENT_SIDE_MARKERS = (
    'side="CLIENT"',
    "side='CLIENT'",
    "clientSideOnly=true",
    "clientSideOnly = true",
)


@dataclass(frozen=True)
class LoaderMetadata:
    display_name: str
    declared_client_only: bool


def parse_forge_mods_toml(content: str) -> Optional[LoaderMetadata]:
    """Parse a Forge / NeoForge ``mods.toml``. Never fails; unmatched lines are ignored."""
    mod_id = None
    display_name = None
    client_only = False

    for line in content.lstrip("\ufeff").splitlines():
        m = _MOD_ID_RE.search(line)
        if m:
            mod_id = m.group(1)
        m = _DISPLAY_NAME_RE.search(line)
        if m:
            display_name = m.group(1)
        if not client_only and any(marker in line for marker in _CLIENT_SIDE_MARKERS):
            client_only = True

    return LoaderMetadata(
        display_name=display_name or mod_id or UNKNOWN_MOD_NAME,
        declared_client_only=client_only,
    )


def _load_json_object(content: str, descriptor: str) -> Optional[dict]:
    try:
        data = json.loads(content.lstrip("\ufeff"))
    except ValueError as e:
        logger.debug(f"Malformed {descriptor}: {e}")
        return None
    if not isinstance(data, dict):
        logger.debug(f"Malformed {descriptor}: top-level value is {type(data).__name__}")
        return None
    return data


def _dig(data: Any, *path: str) -> Any:
    """Nested field access; any missing or non-object step yields None."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first_name(*candidates: Any) -> str:
    for value in candidates:
        if not value:
            continue
        return str(value)
    return UNKNOWN_MOD_NAME


def _is_client_environment(value: Optional[str]) -> bool:
    return value is not None and value.lower() == "client"


def _environment_is_readable(value: Any, descriptor: str) -> bool:
    """A present environment must be a string; anything else makes the descriptor malformed."""
    if value is None or isinstance(value, str):
        return True
    logger.debug(f"Malformed {descriptor}: environment is {type(value).__name__}")
    return False


def parse_fabric_mod_json(content: str) -> Optional[LoaderMetadata]:
    data = _load_json_object(content, "fabric.mod.json")
    if data is None:
        return None
    environment = data.get("environment")
    if not _environment_is_readable(environment, "fabric.mod.json"):
        return None
    return LoaderMetadata(
        display_name=_first_name(data.get("name"), data.get("id")),
        declared_client_only=_is_client_environment(environment),
    )


def parse_quilt_mod_json(content: str) -> Optional[LoaderMetadata]:
    data = _load_json_object(content, "quilt.mod.json")
    if data is None:
        return None
    environment = _dig(data, "quilt_loader", "minecraft", "environment")
    if not _environment_is_readable(environment, "quilt.mod.json"):
        return None
    return LoaderMetadata(
        display_name=_first_name(
            _dig(data, "quilt_loader", "metadata", "name"),
            _dig(data, "quilt_loader", "id"),
        ),
        declared_client_only=_is_client_environment(environment),
    )
