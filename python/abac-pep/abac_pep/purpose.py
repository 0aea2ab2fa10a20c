"""Purpose vector validation.

A purpose vector declares, per ontology entry, whether the requested data is
used for that purpose. An absent declaration means every purpose; a declared
but malformed one is rejected as a whole and yields an empty vector.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from abac_pep.ontology import ONTOLOGY_SIZE

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1"}
_FALSE_STRINGS = {"false", "0"}


def _coerce_flag(value: Any) -> bool | None:
    """Return the boolean a purpose entry stands for, or None if it is not one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def default_purpose() -> list[bool]:
    """All purposes declared."""
    return [True] * ONTOLOGY_SIZE


def coerce_purpose_flags(value: Any) -> list[bool]:
    """Convert a purpose array into booleans.

    Raises:
        ValueError: if ``value`` is not a list of exactly ``ONTOLOGY_SIZE``
            boolean-coercible entries.
    """
    if not isinstance(value, list | tuple):
        raise ValueError("purpose is not an array")
    if len(value) != ONTOLOGY_SIZE:
        raise ValueError(
            f"wrong purpose vector length {len(value)}, expected {ONTOLOGY_SIZE}"
        )
    flags: list[bool] = []
    for index, item in enumerate(value):
        flag = _coerce_flag(item)
        if flag is None:
            raise ValueError(f"purpose number {index} is not a boolean")
        flags.append(flag)
    return flags


def encode_purpose_bits(value: Any) -> str:
    """Encode a purpose declaration as a string of '0'/'1' characters.

    Accepts a purpose array or an already encoded bit string.
    """
    if isinstance(value, str):
        if len(value) != ONTOLOGY_SIZE or not set(value) <= {"0", "1"}:
            raise ValueError(
                f"purpose bit string must be {ONTOLOGY_SIZE} characters of '0' or '1'"
            )
        return value
    return "".join("1" if flag else "0" for flag in coerce_purpose_flags(value))


def validate_purpose(request: Mapping[str, Any]) -> list[bool]:
    """Read the ``purpose`` declaration of a raw request.

    Returns the full default vector when the field is absent (or null), the
    coerced vector when it is valid, and an empty list when it is present
    but malformed.
    """
    value = request.get("purpose")
    if value is None:
        logger.debug("Purpose parameter not found, all purposes declared")
        return default_purpose()

    try:
        flags = coerce_purpose_flags(value)
    except ValueError as exc:
        logger.info("Invalid purpose parameter: %s", exc)
        return []

    logger.debug("Purpose vector: %s", "".join("1" if f else "0" for f in flags))
    return flags
