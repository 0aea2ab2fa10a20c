"""Policy request data models."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)

from abac_pep.ontology import KNOWN_IDS_URI, OWNER_ID_URI
from abac_pep.purpose import encode_purpose_bits


def stringify(value: Any) -> str:
    """Render a loosely-typed scalar the way attribute values are compared."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _present_string(value: Any) -> str:
    if value is None:
        raise ValueError("value is null")
    return stringify(value)


# A required field that accepts any non-null scalar and stores its string form.
FieldStr = Annotated[str, BeforeValidator(_present_string)]


# ── Decision outcome ─────────────────────────────────────────────


class ConsentScope(StrEnum):
    """How long a user's prompt answer applies."""

    ONCE = "once"
    SESSION = "session"
    PERMANENT = "permanent"


class PromptChoice(IntEnum):
    """Answers a user can give to an access prompt."""

    DENY_ALWAYS = 0
    DENY_SESSION = 1
    DENY_ONCE = 2
    ALLOW_ONCE = 3
    ALLOW_SESSION = 4
    ALLOW_ALWAYS = 5

    @property
    def permits(self) -> bool:
        return self >= PromptChoice.ALLOW_ONCE

    @property
    def scope(self) -> ConsentScope:
        if self in (PromptChoice.DENY_ALWAYS, PromptChoice.ALLOW_ALWAYS):
            return ConsentScope.PERMANENT
        if self in (PromptChoice.DENY_SESSION, PromptChoice.ALLOW_SESSION):
            return ConsentScope.SESSION
        return ConsentScope.ONCE


class Effect(IntEnum):
    """Outcome of a policy evaluation. The integer value is the wire code."""

    PERMIT = 0
    DENY = 1
    PROMPT_ONESHOT = 2
    PROMPT_SESSION = 3
    PROMPT_BLANKET = 4
    UNDETERMINED = 5
    INAPPLICABLE = 6

    @classmethod
    def parse(cls, value: Any) -> Effect:
        """Effect from a member, its integer code, or its name in any case."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"unknown effect {value!r}")

    @property
    def is_prompt(self) -> bool:
        return self in _PROMPT_CHOICES

    def prompt_choices(self) -> tuple[PromptChoice, ...]:
        """Answers a prompt for this effect may offer (empty if not a prompt)."""
        return _PROMPT_CHOICES.get(self, ())


_PROMPT_CHOICES: dict[Effect, tuple[PromptChoice, ...]] = {
    Effect.PROMPT_ONESHOT: (
        PromptChoice.DENY_ALWAYS,
        PromptChoice.DENY_ONCE,
        PromptChoice.ALLOW_ONCE,
    ),
    Effect.PROMPT_SESSION: (
        PromptChoice.DENY_ALWAYS,
        PromptChoice.DENY_SESSION,
        PromptChoice.DENY_ONCE,
        PromptChoice.ALLOW_ONCE,
        PromptChoice.ALLOW_SESSION,
    ),
    Effect.PROMPT_BLANKET: tuple(PromptChoice),
}


class Decision(BaseModel):
    """Result of evaluating a policy request."""

    model_config = ConfigDict(frozen=True)

    effect: Effect
    path: str = ""


class Rejected(BaseModel):
    """A content-validation failure for one purpose vector, action or trigger."""

    model_config = ConfigDict(frozen=True)

    reason: str


# ── Attribute sets ───────────────────────────────────────────────


class _AttributeSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def categories(self) -> dict[str, Any]:
        """Category name -> value(s), covering the whole catalog."""
        return self.model_dump(by_alias=True)


class SubjectAttributes(_AttributeSet):
    """Attributes of the requesting user, widget and device."""

    user_id: list[str] = Field(default_factory=list, alias="user-id")
    user_key_cn: list[str] = Field(default_factory=list, alias="user-key-cn")
    user_key_fingerprint: list[str] = Field(default_factory=list, alias="user-key-fingerprint")
    user_key_root_cn: list[str] = Field(default_factory=list, alias="user-key-root-cn")
    user_key_root_fingerprint: list[str] = Field(
        default_factory=list, alias="user-key-root-fingerprint"
    )

    id: list[str] = Field(default_factory=list, alias="id")

    distributor_key_cn: list[str] = Field(default_factory=list, alias="distributor-key-cn")
    distributor_key_fingerprint: list[str] = Field(
        default_factory=list, alias="distributor-key-fingerprint"
    )
    distributor_key_root_cn: list[str] = Field(
        default_factory=list, alias="distributor-key-root-cn"
    )
    distributor_key_root_fingerprint: list[str] = Field(
        default_factory=list, alias="distributor-key-root-fingerprint"
    )

    author_key_cn: list[str] = Field(default_factory=list, alias="author-key-cn")
    author_key_fingerprint: list[str] = Field(default_factory=list, alias="author-key-fingerprint")
    author_key_root_cn: list[str] = Field(default_factory=list, alias="author-key-root-cn")
    author_key_root_fingerprint: list[str] = Field(
        default_factory=list, alias="author-key-root-fingerprint"
    )

    target_id: list[str] = Field(default_factory=list, alias="target-id")
    target_domain: list[str] = Field(default_factory=list, alias="target-domain")
    requestor_id: list[str] = Field(default_factory=list, alias="requestor-id")
    requestor_domain: list[str] = Field(default_factory=list, alias="requestor-domain")
    webinos_enabled: list[str] = Field(default_factory=list, alias="webinos-enabled")


class ResourceAttributes(_AttributeSet):
    """Attributes of the requested API feature or device capability."""

    api_feature: list[str] = Field(default_factory=list, alias="api-feature")
    service_id: list[str] = Field(default_factory=list, alias="service-id")
    device_cap: list[str] = Field(default_factory=list, alias="device-cap")
    param_feature: list[str] = Field(default_factory=list, alias="param:feature")


class EnvironmentAttributes(_AttributeSet):
    """Single-valued context attributes. ``None`` means not supplied."""

    profile: str | None = Field(default=None, alias="profile")
    timemin: str | None = Field(default=None, alias="timemin")
    days_of_week: str | None = Field(default=None, alias="days-of-week")
    days_of_month: str | None = Field(default=None, alias="days-of-month")


# ── Obligation grammar ───────────────────────────────────────────


class ActionKind(StrEnum):
    NOTIFY_DATA_SUBJECT = "ActionNotifyDataSubject"
    DELETE = "ActionDelete"
    ANONYMIZE = "ActionAnonymize"
    LOG = "ActionLog"
    SECURE_LOG = "ActionSecureLog"


class TriggerKind(StrEnum):
    AT_TIME = "TriggerAtTime"
    PERSONAL_DATA_ACCESSED_FOR_PURPOSE = "TriggerPersonalDataAccessedForPurpose"
    PERSONAL_DATA_DELETED = "TriggerPersonalDataDeleted"
    DATA_SUBJECT_ACCESS = "TriggerDataSubjectAccess"


class _GrammarModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class NotifyAction(_GrammarModel):
    """Notify the data subject through ``media`` at ``address``."""

    action_id: Literal["ActionNotifyDataSubject"] = Field(alias="actionID")
    media: FieldStr
    address: FieldStr

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action_id)


class DeleteAction(_GrammarModel):
    action_id: Literal["ActionDelete"] = Field(alias="actionID")

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action_id)


class AnonymizeAction(_GrammarModel):
    action_id: Literal["ActionAnonymize"] = Field(alias="actionID")

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action_id)


class LogAction(_GrammarModel):
    action_id: Literal["ActionLog"] = Field(alias="actionID")

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action_id)


class SecureLogAction(_GrammarModel):
    action_id: Literal["ActionSecureLog"] = Field(alias="actionID")

    @property
    def kind(self) -> ActionKind:
        return ActionKind(self.action_id)


Action = Annotated[
    NotifyAction | DeleteAction | AnonymizeAction | LogAction | SecureLogAction,
    Field(discriminator="action_id"),
]


class AtTimeTrigger(_GrammarModel):
    """Fire at ``start``, at most ``max_delay`` late."""

    trigger_id: Literal["TriggerAtTime"] = Field(alias="triggerID")
    start: FieldStr
    max_delay: FieldStr = Field(alias="maxDelay")

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind(self.trigger_id)


class PurposeAccessTrigger(_GrammarModel):
    """Fire when personal data is accessed for one of the flagged purposes.

    ``purpose`` is stored as a string of ``'0'``/``'1'`` characters, one per
    ontology entry.
    """

    trigger_id: Literal["TriggerPersonalDataAccessedForPurpose"] = Field(alias="triggerID")
    purpose: str
    max_delay: FieldStr = Field(alias="maxDelay")

    @field_validator("purpose", mode="before")
    @classmethod
    def _encode_purpose(cls, value: Any) -> str:
        return encode_purpose_bits(value)

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind(self.trigger_id)


class DataDeletedTrigger(_GrammarModel):
    trigger_id: Literal["TriggerPersonalDataDeleted"] = Field(alias="triggerID")
    max_delay: FieldStr = Field(alias="maxDelay")

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind(self.trigger_id)


class DataSubjectAccessTrigger(_GrammarModel):
    trigger_id: Literal["TriggerDataSubjectAccess"] = Field(alias="triggerID")
    endpoint: FieldStr

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind(self.trigger_id)


Trigger = Annotated[
    AtTimeTrigger | PurposeAccessTrigger | DataDeletedTrigger | DataSubjectAccessTrigger,
    Field(discriminator="trigger_id"),
]


class Obligation(_GrammarModel):
    """One validated action and the triggers that activate it."""

    action: Action
    triggers: tuple[Trigger, ...] = Field(min_length=1)


# ── Request envelope ─────────────────────────────────────────────


class PolicyRequest(BaseModel):
    """Validated request handed to a decision engine."""

    model_config = ConfigDict(frozen=True)

    subject: SubjectAttributes = Field(default_factory=SubjectAttributes)
    resource: ResourceAttributes = Field(default_factory=ResourceAttributes)
    purpose: tuple[bool, ...] = ()
    obligations: tuple[Obligation, ...] = ()
    environment: EnvironmentAttributes = Field(default_factory=EnvironmentAttributes)

    def to_input(self) -> dict[str, Any]:
        """JSON-ready form keyed by category and grammar names."""
        return self.model_dump(mode="json", by_alias=True)


class IdentitySeed(BaseModel):
    """Owner and known identities fed to the decision engine."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    owner_id: FieldStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ownerId", OWNER_ID_URI, "owner_id"),
    )
    known_ids: list[FieldStr] = Field(
        default_factory=list,
        validation_alias=AliasChoices("knownIds", KNOWN_IDS_URI, "known_ids"),
    )

    def as_attributes(self) -> dict[str, list[str]]:
        """Identity attributes keyed by their subject-id URIs."""
        return {
            OWNER_ID_URI: [self.owner_id] if self.owner_id is not None else [],
            KNOWN_IDS_URI: list(self.known_ids),
        }
