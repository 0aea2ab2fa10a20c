"""Tests for obligation and trigger grammar validation."""

from __future__ import annotations

from typing import Any

import pytest
from abac_pep.models import (
    ActionKind,
    AtTimeTrigger,
    DataSubjectAccessTrigger,
    DeleteAction,
    NotifyAction,
    PurposeAccessTrigger,
    Rejected,
    TriggerKind,
)
from abac_pep.obligations import (
    validate_action,
    validate_obligation,
    validate_obligations,
    validate_trigger,
)
from abac_pep.ontology import ONTOLOGY_SIZE

AT_TIME = {"triggerID": "TriggerAtTime", "start": "2012-05-01T10:00", "maxDelay": "P1D"}
DELETED = {"triggerID": "TriggerPersonalDataDeleted", "maxDelay": "PT1H"}
NOTIFY = {"actionID": "ActionNotifyDataSubject", "media": "e-mail", "address": "a@example.org"}


def _obligation(action: Any, *triggers: Any) -> dict[str, Any]:
    return {"action": action, "triggers": list(triggers)}


# ── Actions ──────────────────────────────────────────────────────


def test_notify_action_valid() -> None:
    action = validate_action(NOTIFY)
    assert isinstance(action, NotifyAction)
    assert action.kind == ActionKind.NOTIFY_DATA_SUBJECT
    assert action.media == "e-mail"
    assert action.address == "a@example.org"


@pytest.mark.parametrize("missing", ["media", "address"])
def test_notify_action_requires_media_and_address(missing: str) -> None:
    raw = {k: v for k, v in NOTIFY.items() if k != missing}
    result = validate_action(raw)
    assert isinstance(result, Rejected)
    assert f"{missing} is missing" in result.reason


@pytest.mark.parametrize(
    "action_id",
    ["ActionDelete", "ActionAnonymize", "ActionLog", "ActionSecureLog"],
)
def test_simple_actions_need_only_kind(action_id: str) -> None:
    action = validate_action({"actionID": action_id})
    assert not isinstance(action, Rejected)
    assert action.kind == ActionKind(action_id)


def test_unrecognized_action_rejected() -> None:
    result = validate_action({"actionID": "ActionSelfDestruct"})
    assert isinstance(result, Rejected)
    assert "unrecognized actionID" in result.reason


def test_action_without_id_rejected() -> None:
    result = validate_action({"media": "sms"})
    assert isinstance(result, Rejected)
    assert result.reason == "actionID is missing"


def test_null_action_id_counts_as_missing() -> None:
    result = validate_action({"actionID": None, "media": "sms"})
    assert isinstance(result, Rejected)
    assert result.reason == "actionID is missing"


def test_null_field_counts_as_missing() -> None:
    result = validate_action({**NOTIFY, "address": None})
    assert isinstance(result, Rejected)
    assert "address is missing" in result.reason


def test_extra_action_fields_ignored() -> None:
    action = validate_action({"actionID": "ActionDelete", "media": "sms"})
    assert isinstance(action, DeleteAction)


# ── Triggers ─────────────────────────────────────────────────────


def test_at_time_trigger_valid() -> None:
    trigger = validate_trigger(AT_TIME)
    assert isinstance(trigger, AtTimeTrigger)
    assert trigger.max_delay == "P1D"


@pytest.mark.parametrize("missing", ["start", "maxDelay"])
def test_at_time_requires_start_and_max_delay(missing: str) -> None:
    raw = {k: v for k, v in AT_TIME.items() if k != missing}
    result = validate_trigger(raw)
    assert isinstance(result, Rejected)
    assert f"{missing} is missing" in result.reason


def test_deleted_trigger_requires_max_delay() -> None:
    assert not isinstance(validate_trigger(DELETED), Rejected)
    assert isinstance(validate_trigger({"triggerID": "TriggerPersonalDataDeleted"}), Rejected)


def test_data_subject_access_requires_endpoint() -> None:
    trigger = validate_trigger(
        {"triggerID": "TriggerDataSubjectAccess", "endpoint": "https://example.org/access"}
    )
    assert isinstance(trigger, DataSubjectAccessTrigger)
    assert trigger.kind == TriggerKind.DATA_SUBJECT_ACCESS
    assert isinstance(validate_trigger({"triggerID": "TriggerDataSubjectAccess"}), Rejected)


def test_purpose_trigger_encodes_bits() -> None:
    flags = [False] * ONTOLOGY_SIZE
    flags[0] = True
    trigger = validate_trigger(
        {
            "triggerID": "TriggerPersonalDataAccessedForPurpose",
            "purpose": flags,
            "maxDelay": "0",
        }
    )
    assert isinstance(trigger, PurposeAccessTrigger)
    assert trigger.purpose == "1" + "0" * (ONTOLOGY_SIZE - 1)


def test_purpose_trigger_wrong_length_rejected() -> None:
    result = validate_trigger(
        {
            "triggerID": "TriggerPersonalDataAccessedForPurpose",
            "purpose": [True, False],
            "maxDelay": "0",
        }
    )
    assert isinstance(result, Rejected)
    assert "purpose" in result.reason


def test_purpose_trigger_non_boolean_entry_rejected() -> None:
    flags: list[object] = [True] * ONTOLOGY_SIZE
    flags[3] = {"not": "a flag"}
    result = validate_trigger(
        {"triggerID": "TriggerPersonalDataAccessedForPurpose", "purpose": flags, "maxDelay": "0"}
    )
    assert isinstance(result, Rejected)


def test_purpose_trigger_requires_purpose() -> None:
    result = validate_trigger(
        {"triggerID": "TriggerPersonalDataAccessedForPurpose", "maxDelay": "0"}
    )
    assert isinstance(result, Rejected)
    assert "purpose is missing" in result.reason


def test_unrecognized_trigger_rejected() -> None:
    result = validate_trigger({"triggerID": "TriggerFullMoon"})
    assert isinstance(result, Rejected)
    assert "unrecognized triggerID" in result.reason


def test_trigger_without_id_rejected() -> None:
    result = validate_trigger({"maxDelay": "P1D"})
    assert isinstance(result, Rejected)
    assert result.reason == "triggerID is missing"


def test_null_trigger_id_counts_as_missing() -> None:
    result = validate_trigger({"triggerID": None, "maxDelay": "P1D"})
    assert isinstance(result, Rejected)
    assert result.reason == "triggerID is missing"


def test_numeric_fields_stringified() -> None:
    trigger = validate_trigger({"triggerID": "TriggerPersonalDataDeleted", "maxDelay": 3600})
    assert not isinstance(trigger, Rejected)
    assert trigger.max_delay == "3600"


# ── Obligations ──────────────────────────────────────────────────


def test_obligation_with_valid_action_and_trigger() -> None:
    obligation = validate_obligation(_obligation(NOTIFY, AT_TIME))
    assert not isinstance(obligation, Rejected)
    assert isinstance(obligation.action, NotifyAction)
    assert len(obligation.triggers) == 1


def test_invalid_trigger_dropped_individually() -> None:
    broken = {"triggerID": "TriggerAtTime", "start": "2012-05-01T10:00"}
    obligation = validate_obligation(_obligation({"actionID": "ActionLog"}, AT_TIME, broken))
    assert not isinstance(obligation, Rejected)
    assert len(obligation.triggers) == 1
    assert obligation.triggers[0] == validate_trigger(AT_TIME)


def test_triggers_keep_input_order() -> None:
    obligation = validate_obligation(
        _obligation({"actionID": "ActionDelete"}, DELETED, {"triggerID": "?"}, AT_TIME)
    )
    assert not isinstance(obligation, Rejected)
    assert [t.kind for t in obligation.triggers] == [
        TriggerKind.PERSONAL_DATA_DELETED,
        TriggerKind.AT_TIME,
    ]


def test_obligation_without_valid_triggers_dropped() -> None:
    result = validate_obligation(_obligation({"actionID": "ActionLog"}, {"triggerID": "?"}))
    assert isinstance(result, Rejected)


def test_obligation_with_invalid_action_dropped() -> None:
    notify = {k: v for k, v in NOTIFY.items() if k != "address"}
    result = validate_obligation(_obligation(notify, AT_TIME))
    assert isinstance(result, Rejected)
    assert "address is missing" in result.reason


def test_obligation_without_action_dropped() -> None:
    result = validate_obligation({"triggers": [AT_TIME]})
    assert isinstance(result, Rejected)
    assert result.reason == "action is missing"


@pytest.mark.parametrize("triggers", [None, "TriggerAtTime", {"triggerID": "TriggerAtTime"}])
def test_obligation_needs_trigger_array(triggers: Any) -> None:
    raw: dict[str, Any] = {"action": {"actionID": "ActionLog"}}
    if triggers is not None:
        raw["triggers"] = triggers
    assert isinstance(validate_obligation(raw), Rejected)


def test_obligations_absent_or_not_array_yield_empty_list() -> None:
    assert validate_obligations({}) == []
    assert validate_obligations({"obligations": "delete everything"}) == []


def test_all_invalid_obligations_yield_empty_list() -> None:
    request = {
        "obligations": [
            _obligation({"actionID": "Nope"}, AT_TIME),
            _obligation({"actionID": "ActionLog"}),
            "not an obligation",
            {"action": "ActionLog", "triggers": [AT_TIME]},
        ]
    }
    assert validate_obligations(request) == []


def test_obligations_keep_input_order() -> None:
    request = {
        "obligations": [
            _obligation({"actionID": "ActionSecureLog"}, AT_TIME),
            _obligation({"actionID": "Unknown"}, AT_TIME),
            _obligation(NOTIFY, DELETED),
        ]
    }
    obligations = validate_obligations(request)
    assert [o.action.kind for o in obligations] == [
        ActionKind.SECURE_LOG,
        ActionKind.NOTIFY_DATA_SUBJECT,
    ]


def test_validated_obligations_are_independent() -> None:
    request = {
        "obligations": [
            _obligation(NOTIFY, AT_TIME),
            _obligation({"actionID": "ActionDelete"}, DELETED),
        ]
    }
    first, second = validate_obligations(request)
    assert isinstance(second.action, DeleteAction)
    assert len(first.triggers) == 1
    assert len(second.triggers) == 1
    assert first.triggers[0] != second.triggers[0]
