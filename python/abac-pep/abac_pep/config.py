"""Settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Policy enforcement point configuration.

    Every setting can be overridden with a ``PEP_``-prefixed environment
    variable (e.g., PEP_PDP_BACKEND=opa, PEP_OPA_URL).
    """

    # Decision engine
    pdp_backend: Literal["local", "opa"] = "local"

    # OPA sidecar
    opa_url: str = "http://localhost:8181"
    opa_decision_path: str = "abac/decision"
    opa_timeout: float = 5.0

    # Diagnostics
    log_attribute_values: bool = True

    model_config = {"env_prefix": "PEP_", "case_sensitive": False}


settings = Settings()
