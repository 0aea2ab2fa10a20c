"""Policy manager session — owns the policy file and the live decision engine."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from functools import partial
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from abac_pep.builder import build_policy_request
from abac_pep.config import Settings, settings
from abac_pep.engine import DecisionEngine, EngineFactory, create_engine
from abac_pep.errors import BadArgumentTypeError, MissingArgumentError, PolicyManagerError
from abac_pep.models import Decision, Effect, IdentitySeed

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


def _parse_identity(value: Any, argument: str) -> IdentitySeed:
    if value is None:
        raise MissingArgumentError(argument)
    if isinstance(value, IdentitySeed):
        return value
    if not isinstance(value, Mapping):
        raise BadArgumentTypeError(argument, "an object", value)
    try:
        return IdentitySeed.model_validate(dict(value))
    except ValidationError as exc:
        raise BadArgumentTypeError(
            argument, "an object with a string owner id and a list of known ids", value
        ) from exc


class PolicyManagerSession:
    """Turns raw access requests into decisions for one embedding host.

    The session is meant for synchronous, one-call-at-a-time use. Callers
    sharing a session between threads must serialize ``check_request`` and
    ``reload_policy`` themselves.

    Usage::

        with PolicyManagerSession("policy.yaml", {"ownerId": "alice"}) as pm:
            details = {}
            effect = pm.check_request(raw_request, details)
            print(effect, details["path"])
    """

    def __init__(
        self,
        policy_file: str | None = None,
        identity_seed: Mapping[str, Any] | IdentitySeed | None = None,
        *,
        engine_factory: EngineFactory | None = None,
        config: Settings | None = None,
    ) -> None:
        if policy_file is None:
            raise MissingArgumentError("policy_file")
        if identity_seed is None:
            raise MissingArgumentError("identity_seed")
        if not isinstance(policy_file, str):
            raise BadArgumentTypeError("policy_file", "a string", policy_file)

        self._policy_file = policy_file
        self._identity = _parse_identity(identity_seed, "identity_seed")
        self._engine_factory: EngineFactory = engine_factory or partial(
            create_engine, config=config or settings
        )
        self._engine: DecisionEngine | None = self._engine_factory(policy_file, self._identity)
        self._request_count = 0
        logger.info("Policy manager session started with %s", policy_file)

    def __enter__(self) -> PolicyManagerSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def identity(self) -> IdentitySeed:
        return self._identity

    @property
    def request_count(self) -> int:
        """Number of requests evaluated by this session."""
        return self._request_count

    @property
    def engine(self) -> DecisionEngine:
        if self._engine is None:
            raise PolicyManagerError("Policy manager session is closed")
        return self._engine

    def get_policy_filename(self) -> str:
        return self._policy_file

    def decide(self, request: Mapping[str, Any] | None = None) -> Decision:
        """Build a PolicyRequest from raw input and evaluate it.

        Raises:
            MissingArgumentError: if ``request`` is None.
            BadArgumentTypeError: if ``request`` is not a mapping.
        """
        if request is None:
            raise MissingArgumentError("request")
        if not isinstance(request, Mapping):
            raise BadArgumentTypeError("request", "an object", request)

        engine = self.engine
        policy_request = build_policy_request(request)
        self._request_count += 1
        decision = engine.check_request(policy_request)
        logger.info(
            "Request %d: effect %s (%s)",
            self._request_count,
            decision.effect.name,
            decision.path or "no path",
        )
        return decision

    def check_request(
        self,
        request: Mapping[str, Any] | None = None,
        diagnostics: MutableMapping[str, Any] | None = None,
    ) -> Effect:
        """Evaluate a raw request and return its effect.

        When ``diagnostics`` is given, the policy path that produced the
        decision is stored under its ``"path"`` key.
        """
        if diagnostics is not None and not isinstance(diagnostics, MutableMapping):
            raise BadArgumentTypeError("diagnostics", "a mutable mapping", diagnostics)
        decision = self.decide(request)
        if diagnostics is not None:
            diagnostics["path"] = decision.path
        return decision.effect

    def reload_policy(
        self, identity_seed: Mapping[str, Any] | IdentitySeed | None = None
    ) -> int:
        """Replace the decision engine with one built from a new identity seed.

        The new engine is built before the old one is closed, so a failed
        reload leaves the previous engine in service.

        Returns:
            0 on success.

        Raises:
            MissingArgumentError: if ``identity_seed`` is None.
            BadArgumentTypeError: if ``identity_seed`` is malformed.
            PolicyLoadError: if the policy file cannot be re-read.
        """
        identity = _parse_identity(identity_seed, "identity_seed")
        current = self.engine
        logger.info("Reloading policy %s", self._policy_file)
        self._engine = self._engine_factory(self._policy_file, identity)
        self._identity = identity
        current.close()
        return 0

    def close(self) -> None:
        """Release the decision engine. Further requests raise."""
        if self._engine is not None:
            self._engine.close()
            self._engine = None
            logger.info("Policy manager session closed after %d requests", self._request_count)
