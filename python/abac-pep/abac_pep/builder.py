"""Composition of validated parts into a PolicyRequest."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from abac_pep.errors import RequestBuildError
from abac_pep.extract import extract_attributes
from abac_pep.models import PolicyRequest
from abac_pep.obligations import validate_obligations
from abac_pep.purpose import validate_purpose

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from abac_pep.models import (
        EnvironmentAttributes,
        Obligation,
        ResourceAttributes,
        SubjectAttributes,
    )


class PolicyRequestBuilder:
    """Collects the outputs of extraction and validation, then builds once.

    Usage::

        request = (
            PolicyRequestBuilder()
            .with_attributes(subject, resource, environment)
            .with_purpose(purpose)
            .with_obligations(obligations)
            .build()
        )
    """

    def __init__(self) -> None:
        self._subject: SubjectAttributes | None = None
        self._resource: ResourceAttributes | None = None
        self._environment: EnvironmentAttributes | None = None
        self._purpose: tuple[bool, ...] | None = None
        self._obligations: tuple[Obligation, ...] | None = None

    @classmethod
    def from_raw(cls, request: Mapping[str, Any]) -> PolicyRequestBuilder:
        """Run extraction and both validators over a raw request."""
        subject, resource, environment = extract_attributes(request)
        return (
            cls()
            .with_attributes(subject, resource, environment)
            .with_purpose(validate_purpose(request))
            .with_obligations(validate_obligations(request))
        )

    def with_attributes(
        self,
        subject: SubjectAttributes,
        resource: ResourceAttributes,
        environment: EnvironmentAttributes,
    ) -> PolicyRequestBuilder:
        self._subject = subject
        self._resource = resource
        self._environment = environment
        return self

    def with_purpose(self, purpose: Sequence[bool]) -> PolicyRequestBuilder:
        self._purpose = tuple(purpose)
        return self

    def with_obligations(self, obligations: Sequence[Obligation]) -> PolicyRequestBuilder:
        self._obligations = tuple(obligations)
        return self

    def build(self) -> PolicyRequest:
        """Build the request.

        Raises:
            RequestBuildError: if any part has not been set.
        """
        parts = {
            "subject": self._subject,
            "resource": self._resource,
            "environment": self._environment,
            "purpose": self._purpose,
            "obligations": self._obligations,
        }
        missing = [name for name, value in parts.items() if value is None]
        if missing:
            raise RequestBuildError(f"Request parts not computed: {', '.join(missing)}")
        return PolicyRequest(**parts)


def build_policy_request(request: Mapping[str, Any]) -> PolicyRequest:
    """Extract, validate and compose a raw request in one step."""
    return PolicyRequestBuilder.from_raw(request).build()
