"""Request normalization and validation for an ABAC policy enforcement point."""

from abac_pep.builder import PolicyRequestBuilder, build_policy_request
from abac_pep.engine import DecisionEngine, OpaDecisionEngine, create_engine
from abac_pep.errors import (
    BadArgumentTypeError,
    MissingArgumentError,
    PolicyLoadError,
    PolicyManagerError,
    RequestBuildError,
)
from abac_pep.local import LocalDecisionEngine
from abac_pep.models import (
    Decision,
    Effect,
    IdentitySeed,
    Obligation,
    PolicyRequest,
    PromptChoice,
)
from abac_pep.session import PolicyManagerSession

__all__ = [
    "BadArgumentTypeError",
    "Decision",
    "DecisionEngine",
    "Effect",
    "IdentitySeed",
    "LocalDecisionEngine",
    "MissingArgumentError",
    "Obligation",
    "OpaDecisionEngine",
    "PolicyLoadError",
    "PolicyManagerError",
    "PolicyManagerSession",
    "PolicyRequest",
    "PolicyRequestBuilder",
    "PromptChoice",
    "RequestBuildError",
    "build_policy_request",
    "create_engine",
]
