"""Decision engine interface and the OPA-backed implementation.

A session talks to exactly one engine at a time through the
:class:`DecisionEngine` protocol. Two engines ship with the package: the
in-process :class:`~abac_pep.local.LocalDecisionEngine` and
:class:`OpaDecisionEngine`, which delegates evaluation to an OPA sidecar via
its REST API.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from abac_pep.config import Settings, settings
from abac_pep.errors import PolicyLoadError
from abac_pep.local import LocalDecisionEngine
from abac_pep.models import Decision, Effect, IdentitySeed, PolicyRequest

logger = logging.getLogger(__name__)

DEFAULT_OPA_URL = "http://localhost:8181"
IDENTITY_DATA_PATH = "abac/identity"


@runtime_checkable
class DecisionEngine(Protocol):
    """Interface a session uses to evaluate requests."""

    @property
    def policy_file_name(self) -> str:
        """Policy file the engine was built from."""
        ...

    def check_request(self, request: PolicyRequest) -> Decision:
        """Evaluate a request; the decision carries the matched policy path."""
        ...

    def reload(self, identity: IdentitySeed) -> None:
        """Re-read the policy source with a new identity seed.

        Raises:
            PolicyLoadError: if the policy source cannot be re-read.
        """
        ...

    def close(self) -> None:
        """Release resources held by the engine."""
        ...


EngineFactory = Callable[[str, IdentitySeed], DecisionEngine]


class OpaDecisionEngine:
    """Client that evaluates requests against an OPA server."""

    def __init__(
        self,
        policy_file: str,
        identity: IdentitySeed,
        *,
        opa_url: str = DEFAULT_OPA_URL,
        decision_path: str = "abac/decision",
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._policy_file = policy_file
        self._opa_url = opa_url.rstrip("/")
        self._decision_path = decision_path.strip("/")
        self._client = httpx.Client(base_url=self._opa_url, timeout=timeout, transport=transport)
        try:
            self.reload(identity)
        except PolicyLoadError:
            self._client.close()
            raise

    @property
    def policy_file_name(self) -> str:
        return self._policy_file

    @property
    def policy_id(self) -> str:
        """Identifier the policy module is uploaded under."""
        return Path(self._policy_file).stem

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def reload(self, identity: IdentitySeed) -> None:
        """Upload the policy file and the identity seed to OPA."""
        try:
            policy = Path(self._policy_file).read_text()
        except OSError as exc:
            raise PolicyLoadError(f"Cannot read policy file {self._policy_file}: {exc}") from exc

        try:
            resp = self._client.put(
                f"/v1/policies/{self.policy_id}",
                content=policy,
                headers={"Content-Type": "text/plain"},
            )
            resp.raise_for_status()
            resp = self._client.put(
                f"/v1/data/{IDENTITY_DATA_PATH}", json=identity.as_attributes()
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PolicyLoadError(
                f"OPA rejected policy {self.policy_id}: {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise PolicyLoadError(f"OPA not reachable at {self._opa_url}: {exc}") from exc
        logger.info("Uploaded policy %s to %s", self.policy_id, self._opa_url)

    def check_request(self, request: PolicyRequest) -> Decision:
        """Evaluate a request; deny if OPA fails or cannot be reached."""
        url = f"/v1/data/{self._decision_path}"
        payload = {"input": request.to_input()}

        try:
            resp = self._client.post(url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("OPA returned %s for %s", exc.response.status_code, self._decision_path)
            return Decision(effect=Effect.DENY, path=f"OPA error: {exc.response.status_code}")
        except httpx.TransportError:
            logger.warning("OPA not reachable at %s, denying by default", self._opa_url)
            return Decision(effect=Effect.DENY, path="OPA service unavailable")

        try:
            body = resp.json()
        except ValueError:
            logger.error("OPA returned a non-JSON body for %s", self._decision_path)
            return Decision(effect=Effect.DENY, path="OPA returned invalid JSON")
        if not isinstance(body, dict):
            return self._parse_result(body)
        return self._parse_result(body.get("result", {}))

    def health(self) -> bool:
        """Check if OPA is reachable."""
        try:
            resp = self._client.get("/health")
            return resp.status_code == 200
        except httpx.TransportError:
            return False

    @staticmethod
    def _parse_result(result: Any) -> Decision:
        """Parse an OPA result document into a Decision."""
        if not isinstance(result, dict):
            return Decision(effect=Effect.UNDETERMINED)
        path = str(result.get("path", ""))
        if "effect" not in result:
            return Decision(effect=Effect.INAPPLICABLE, path=path)
        try:
            effect = Effect.parse(result["effect"])
        except ValueError:
            effect = Effect.UNDETERMINED
        return Decision(effect=effect, path=path)


def create_engine(
    policy_file: str,
    identity: IdentitySeed,
    config: Settings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> DecisionEngine:
    """Build the engine selected by ``pdp_backend``.

    ``transport`` is handed to the OPA client and ignored by the local engine.
    """
    config = config or settings
    if config.pdp_backend == "opa":
        return OpaDecisionEngine(
            policy_file,
            identity,
            opa_url=config.opa_url,
            decision_path=config.opa_decision_path,
            timeout=config.opa_timeout,
            transport=transport,
        )
    return LocalDecisionEngine(policy_file, identity)
