"""Local decision engine — evaluates requests against a YAML policy file.

Rules are checked in order and the first applicable one decides. A rule lists
allowed values per attribute category; it applies when every listed category
of the request holds at least one allowed value. The subject-id URIs of the
identity seed expand to the owner and known identities::

    id: personal-zone
    default: deny
    rules:
      - id: owner
        effect: permit
        subject:
          user-id: [http://webinos.org/subject/id/PZ-Owner]
      - id: known-geolocation
        effect: prompt_session
        subject:
          user-id: [http://webinos.org/subject/id/known]
        resource:
          api-feature: [http://www.w3.org/ns/api-perms/geolocation]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from abac_pep.errors import PolicyLoadError
from abac_pep.models import (
    Decision,
    Effect,
    EnvironmentAttributes,
    IdentitySeed,
    PolicyRequest,
    ResourceAttributes,
    SubjectAttributes,
)

logger = logging.getLogger(__name__)


def _catalog(model: type[BaseModel]) -> set[str]:
    return {info.alias or name for name, info in model.model_fields.items()}


SUBJECT_CATEGORIES = _catalog(SubjectAttributes)
RESOURCE_CATEGORIES = _catalog(ResourceAttributes)
ENVIRONMENT_CATEGORIES = _catalog(EnvironmentAttributes)


def _check_categories(conditions: dict[str, list[str]], catalog: set[str]) -> dict[str, list[str]]:
    unknown = sorted(set(conditions) - catalog)
    if unknown:
        raise ValueError(f"unknown attribute categories: {', '.join(unknown)}")
    return conditions


class PolicyRule(BaseModel):
    """One rule of a policy document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    effect: Effect
    subject: dict[str, list[str]] = {}
    resource: dict[str, list[str]] = {}
    environment: dict[str, list[str]] = {}

    @field_validator("effect", mode="before")
    @classmethod
    def _parse_effect(cls, value: Any) -> Effect:
        return Effect.parse(value)

    @field_validator("subject")
    @classmethod
    def _subject_categories(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return _check_categories(value, SUBJECT_CATEGORIES)

    @field_validator("resource")
    @classmethod
    def _resource_categories(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return _check_categories(value, RESOURCE_CATEGORIES)

    @field_validator("environment")
    @classmethod
    def _environment_categories(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        return _check_categories(value, ENVIRONMENT_CATEGORIES)


class PolicyDocument(BaseModel):
    """A policy file: ordered rules plus the effect used when none applies."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    default: Effect = Effect.INAPPLICABLE
    rules: list[PolicyRule] = []

    @field_validator("default", mode="before")
    @classmethod
    def _parse_default(cls, value: Any) -> Effect:
        return Effect.parse(value)


def load_policy_document(path: str | Path) -> PolicyDocument:
    """Read and validate a policy file.

    Raises:
        PolicyLoadError: if the file cannot be read, is not YAML, or does
            not describe a well-formed policy document.
    """
    try:
        data = yaml.safe_load(Path(path).read_text())
    except OSError as exc:
        raise PolicyLoadError(f"Cannot read policy file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise PolicyLoadError(f"Policy file {path} is not valid YAML: {exc}") from exc

    try:
        return PolicyDocument.model_validate(data)
    except ValidationError as exc:
        raise PolicyLoadError(f"Policy file {path} is not well formed: {exc}") from exc


class LocalDecisionEngine:
    """In-process decision engine backed by a policy file on disk."""

    def __init__(self, policy_file: str, identity: IdentitySeed) -> None:
        self._policy_file = policy_file
        self._identity = identity
        self._document = load_policy_document(policy_file)
        logger.info(
            "Loaded policy %s (%d rules) from %s",
            self._document.id,
            len(self._document.rules),
            policy_file,
        )

    @property
    def policy_file_name(self) -> str:
        return self._policy_file

    @property
    def document(self) -> PolicyDocument:
        return self._document

    def check_request(self, request: PolicyRequest) -> Decision:
        """Return the effect of the first applicable rule, or the default."""
        for rule in self._document.rules:
            if self._applies(rule, request):
                return Decision(effect=rule.effect, path=f"{self._document.id}/{rule.id}")
        return Decision(effect=self._document.default, path=self._document.id)

    def reload(self, identity: IdentitySeed) -> None:
        """Re-read the policy file and replace the identity seed."""
        self._document = load_policy_document(self._policy_file)
        self._identity = identity

    def close(self) -> None:
        """Nothing to release; present for the engine interface."""

    def _expand(self, allowed: list[str]) -> set[str]:
        identities = self._identity.as_attributes()
        values: set[str] = set()
        for value in allowed:
            values.update(identities.get(value, [value]))
        return values

    def _applies(self, rule: PolicyRule, request: PolicyRequest) -> bool:
        for conditions, attributes in (
            (rule.subject, request.subject.categories()),
            (rule.resource, request.resource.categories()),
        ):
            for category, allowed in conditions.items():
                if not set(attributes[category]) & self._expand(allowed):
                    return False

        environment = request.environment.categories()
        for category, allowed in rule.environment.items():
            if environment[category] not in self._expand(allowed):
                return False
        return True
