"""Obligation and trigger grammar validation.

An obligation pairs one action with one or more triggers. Every action and
trigger kind has its own pydantic model listing the fields it requires;
validation returns either the model or a :class:`Rejected` with the reason.
Malformed entries are dropped and logged, never raised: obligations are
data-handling hints, not access-control inputs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from abac_pep.models import Action, Obligation, Rejected, Trigger

logger = logging.getLogger(__name__)

ACTION_TAG = "actionID"
TRIGGER_TAG = "triggerID"

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)
_trigger_adapter: TypeAdapter[Trigger] = TypeAdapter(Trigger)


def _tag_value(error: Any, tag: str) -> Any:
    raw = error.get("input")
    return raw.get(tag) if isinstance(raw, Mapping) else None


def _reasons(exc: ValidationError, tag: str) -> str:
    """Summarize a pydantic error for a tagged grammar entry."""
    reasons: list[str] = []
    for error in exc.errors():
        kind = error["type"]
        loc = [str(part) for part in error["loc"][1:]]
        field = loc[-1] if loc else tag
        if kind == "union_tag_not_found":
            reasons.append(f"{tag} is missing")
        elif kind == "union_tag_invalid" and _tag_value(error, tag) is None:
            reasons.append(f"{tag} is missing")
        elif kind == "union_tag_invalid":
            reasons.append(f"unrecognized {tag} {error.get('ctx', {}).get('tag')}")
        elif kind == "missing" or (kind == "value_error" and error.get("input") is None):
            reasons.append(f"{field} is missing")
        else:
            reasons.append(f"{'.'.join(loc) or tag}: {error['msg']}")
    return "; ".join(reasons)


def validate_action(raw: Any) -> Action | Rejected:
    """Validate one action declaration against its kind's required fields."""
    if not isinstance(raw, Mapping):
        return Rejected(reason="action is not an object")
    try:
        return _action_adapter.validate_python(dict(raw))
    except ValidationError as exc:
        return Rejected(reason=_reasons(exc, ACTION_TAG))


def validate_trigger(raw: Any) -> Trigger | Rejected:
    """Validate one trigger declaration against its kind's required fields."""
    if not isinstance(raw, Mapping):
        return Rejected(reason="trigger is not an object")
    try:
        return _trigger_adapter.validate_python(dict(raw))
    except ValidationError as exc:
        return Rejected(reason=_reasons(exc, TRIGGER_TAG))


def validate_obligation(raw: Any, index: int = 0) -> Obligation | Rejected:
    """Validate one obligation.

    The action must be valid. Invalid triggers are dropped one by one; the
    obligation survives if at least one trigger is valid.
    """
    if not isinstance(raw, Mapping) or raw.get("action") is None:
        return Rejected(reason="action is missing")

    action = validate_action(raw["action"])
    if isinstance(action, Rejected):
        return action
    logger.debug("Obligation %d: action %s", index, action.kind)

    declared = raw.get("triggers")
    if declared is None:
        return Rejected(reason="triggers are missing")
    if not isinstance(declared, list | tuple):
        return Rejected(reason="triggers is not an array")

    triggers: list[Trigger] = []
    for position, entry in enumerate(declared):
        trigger = validate_trigger(entry)
        if isinstance(trigger, Rejected):
            logger.info(
                "Obligation %d, trigger %d dropped: %s", index, position, trigger.reason
            )
            continue
        logger.debug("Obligation %d, trigger %d: %s", index, position, trigger.kind)
        triggers.append(trigger)

    if not triggers:
        return Rejected(reason="no valid trigger")
    return Obligation(action=action, triggers=triggers)


def validate_obligations(request: Mapping[str, Any]) -> list[Obligation]:
    """Valid obligations of a raw request, in input order.

    A missing or non-array ``obligations`` field yields an empty list.
    """
    declared = request.get("obligations")
    if declared is None:
        return []
    if not isinstance(declared, list | tuple):
        logger.info("Invalid obligations parameter, it is not an array")
        return []

    logger.debug("Read %d obligations", len(declared))
    obligations: list[Obligation] = []
    for index, entry in enumerate(declared):
        result = validate_obligation(entry, index)
        if isinstance(result, Rejected):
            logger.info("Obligation %d dropped: %s", index, result.reason)
            continue
        obligations.append(result)
    return obligations
