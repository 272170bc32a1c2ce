"""Extraction of the favicon key from vault item metadata."""

from __future__ import annotations

import json
from typing import Any, Mapping, Union

from .logging import get_logger

LOGGER = get_logger(__name__)

FAV_FIELD = "fav"


def extract_fav_key(raw: Union[str, bytes, Mapping[str, Any], None]) -> str:
    """Return the ``fav`` string from an item's icon metadata, or ``""``.

    ``raw`` is the metadata JSON as stored with the item; already decoded
    mappings are accepted too. Every other field is ignored.
    """
    if raw is None or raw == "" or raw == b"":
        return ""

    if isinstance(raw, Mapping):
        payload: Any = raw
    elif not isinstance(raw, (str, bytes, bytearray)):
        LOGGER.warning("Unsupported icon metadata type %s", type(raw).__name__)
        return ""
    else:
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            LOGGER.warning("Could not decode icon metadata: %s", exc)
            return ""

    if not isinstance(payload, Mapping):
        LOGGER.warning("Icon metadata is not a JSON object (got %s)", type(payload).__name__)
        return ""

    fav = payload.get(FAV_FIELD)
    if not isinstance(fav, str):
        return ""
    return fav.strip()
