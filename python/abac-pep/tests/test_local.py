"""Tests for the local (in-process) decision engine."""

from __future__ import annotations

from pathlib import Path

import pytest
from abac_pep.builder import build_policy_request
from abac_pep.errors import PolicyLoadError
from abac_pep.local import LocalDecisionEngine, load_policy_document
from abac_pep.models import Effect, IdentitySeed

POLICY = """\
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
  - id: work-hours
    effect: prompt_oneshot
    resource:
      api-feature: [http://webinos.org/api/file]
    environment:
      profile: [work]
"""


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY)
    return path


@pytest.fixture
def engine(policy_file: Path) -> LocalDecisionEngine:
    seed = IdentitySeed(owner_id="alice", known_ids=["bob"])
    return LocalDecisionEngine(str(policy_file), seed)


# ── Policy documents ─────────────────────────────────────────────


def test_load_policy_document(policy_file: Path) -> None:
    document = load_policy_document(policy_file)
    assert document.id == "personal-zone"
    assert document.default == Effect.DENY
    assert [rule.id for rule in document.rules] == ["owner", "known-geolocation", "work-hours"]
    assert document.rules[1].effect == Effect.PROMPT_SESSION


def test_missing_policy_file(tmp_path: Path) -> None:
    with pytest.raises(PolicyLoadError, match="Cannot read"):
        load_policy_document(tmp_path / "absent.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("id: [unterminated\n")
    with pytest.raises(PolicyLoadError, match="not valid YAML"):
        load_policy_document(path)


@pytest.mark.parametrize(
    "content",
    [
        "",
        "rules: []\n",
        "id: p\nrules:\n  - id: r\n    effect: sometimes\n",
        "id: p\nrules:\n  - id: r\n    effect: permit\n    subject:\n      shoe-size: ['42']\n",
        "id: p\nunexpected: true\n",
    ],
)
def test_malformed_policy_rejected(tmp_path: Path, content: str) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text(content)
    with pytest.raises(PolicyLoadError, match="not well formed"):
        load_policy_document(path)


def test_default_effect_is_inapplicable(tmp_path: Path) -> None:
    path = tmp_path / "policy.yaml"
    path.write_text("id: empty\n")
    assert load_policy_document(path).default == Effect.INAPPLICABLE


# ── Evaluation ───────────────────────────────────────────────────


def test_owner_permitted(engine: LocalDecisionEngine) -> None:
    request = build_policy_request({"subjectInfo": {"userId": "alice"}})
    decision = engine.check_request(request)
    assert decision.effect == Effect.PERMIT
    assert decision.path == "personal-zone/owner"


def test_known_user_prompted_for_geolocation(engine: LocalDecisionEngine) -> None:
    request = build_policy_request(
        {
            "subjectInfo": {"userId": "bob"},
            "resourceInfo": {"apiFeature": "http://www.w3.org/ns/api-perms/geolocation"},
        }
    )
    decision = engine.check_request(request)
    assert decision.effect == Effect.PROMPT_SESSION
    assert decision.path == "personal-zone/known-geolocation"


def test_environment_condition(engine: LocalDecisionEngine) -> None:
    raw = {"resourceInfo": {"apiFeature": "http://webinos.org/api/file"}}
    at_work = build_policy_request({**raw, "environmentInfo": {"profile": "work"}})
    at_home = build_policy_request({**raw, "environmentInfo": {"profile": "home"}})
    assert engine.check_request(at_work).effect == Effect.PROMPT_ONESHOT
    assert engine.check_request(at_home).effect == Effect.DENY


def test_unmatched_request_gets_default(engine: LocalDecisionEngine) -> None:
    decision = engine.check_request(build_policy_request({"subjectInfo": {"userId": "eve"}}))
    assert decision.effect == Effect.DENY
    assert decision.path == "personal-zone"


def test_owner_uri_without_owner_matches_nobody(policy_file: Path) -> None:
    engine = LocalDecisionEngine(str(policy_file), IdentitySeed())
    request = build_policy_request({"subjectInfo": {"userId": "alice"}})
    assert engine.check_request(request).effect == Effect.DENY


def test_reload_rereads_file_and_identity(
    engine: LocalDecisionEngine, policy_file: Path
) -> None:
    policy_file.write_text("id: locked\ndefault: deny\n")
    engine.reload(IdentitySeed(owner_id="carol"))
    assert engine.document.id == "locked"
    decision = engine.check_request(build_policy_request({"subjectInfo": {"userId": "carol"}}))
    assert decision.effect == Effect.DENY
    assert decision.path == "locked"


def test_reload_fails_when_file_disappears(
    engine: LocalDecisionEngine, policy_file: Path
) -> None:
    policy_file.unlink()
    with pytest.raises(PolicyLoadError):
        engine.reload(IdentitySeed())
    assert engine.document.id == "personal-zone"


def test_policy_file_name(engine: LocalDecisionEngine, policy_file: Path) -> None:
    assert engine.policy_file_name == str(policy_file)
