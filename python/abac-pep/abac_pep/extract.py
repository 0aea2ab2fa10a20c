"""Attribute extraction from loosely-typed request groups.

Each table below maps ``group -> input field -> attribute category``. Fields
not listed are ignored, and listed fields that are absent or null leave their
category empty.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from abac_pep.config import settings
from abac_pep.models import (
    EnvironmentAttributes,
    ResourceAttributes,
    SubjectAttributes,
    stringify,
)

logger = logging.getLogger(__name__)

SUBJECT_FIELDS: dict[str, dict[str, str]] = {
    "subjectInfo": {
        "userId": "user-id",
        "userKeyCn": "user-key-cn",
        "userKeyFingerprint": "user-key-fingerprint",
        "userKeyRootCn": "user-key-root-cn",
        "userKeyRootFingerprint": "user-key-root-fingerprint",
    },
    "widgetInfo": {
        "id": "id",
        "distributorKeyCn": "distributor-key-cn",
        "distributorKeyFingerprint": "distributor-key-fingerprint",
        "distributorKeyRootCn": "distributor-key-root-cn",
        "distributorKeyRootFingerprint": "distributor-key-root-fingerprint",
        "authorKeyCn": "author-key-cn",
        "authorKeyFingerprint": "author-key-fingerprint",
        "authorKeyRootCn": "author-key-root-cn",
        "authorKeyRootFingerprint": "author-key-root-fingerprint",
    },
    "deviceInfo": {
        "targetId": "target-id",
        "targetDomain": "target-domain",
        "requestorId": "requestor-id",
        "requestorDomain": "requestor-domain",
        "webinosEnabled": "webinos-enabled",
    },
}

RESOURCE_FIELDS: dict[str, dict[str, str]] = {
    "resourceInfo": {
        "deviceCap": "device-cap",
        "apiFeature": "api-feature",
        "serviceId": "service-id",
        "paramFeature": "param:feature",
    },
}

ENVIRONMENT_FIELDS: dict[str, dict[str, str]] = {
    "environmentInfo": {
        "profile": "profile",
        "timemin": "timemin",
        "days-of-week": "days-of-week",
        "days-of-month": "days-of-month",
    },
}


def _group_fields(
    request: Mapping[str, Any], schema: dict[str, dict[str, str]]
) -> list[tuple[str, Any]]:
    """(category, raw value) for every listed field present in the request."""
    found: list[tuple[str, Any]] = []
    for group, fields in schema.items():
        info = request.get(group)
        if info is None:
            continue
        if not isinstance(info, Mapping):
            logger.debug("Ignoring %s: not an object", group)
            continue
        for key, category in fields.items():
            value = info.get(key)
            if value is not None:
                found.append((category, value))
    return found


def _log_value(category: str, value: str) -> None:
    if settings.log_attribute_values:
        logger.debug("Parameter %s : %s", category, value)


def _collect_values(
    request: Mapping[str, Any], schema: dict[str, dict[str, str]]
) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for category, value in _group_fields(request, schema):
        # A list contributes each of its entries, in order.
        items = value if isinstance(value, list | tuple) else [value]
        for item in items:
            if item is None:
                continue
            text = stringify(item)
            values.setdefault(category, []).append(text)
            _log_value(category, text)
    return values


def extract_subject(request: Mapping[str, Any]) -> SubjectAttributes:
    """Subject attributes from ``subjectInfo``, ``widgetInfo`` and ``deviceInfo``."""
    return SubjectAttributes.model_validate(_collect_values(request, SUBJECT_FIELDS))


def extract_resource(request: Mapping[str, Any]) -> ResourceAttributes:
    """Resource attributes from ``resourceInfo``."""
    return ResourceAttributes.model_validate(_collect_values(request, RESOURCE_FIELDS))


def extract_environment(request: Mapping[str, Any]) -> EnvironmentAttributes:
    """Environment attributes from ``environmentInfo``, one value per category."""
    values: dict[str, str] = {}
    for category, value in _group_fields(request, ENVIRONMENT_FIELDS):
        if isinstance(value, list | tuple):
            text = ",".join(stringify(item) for item in value if item is not None)
        else:
            text = stringify(value)
        values[category] = text
        _log_value(category, text)
    return EnvironmentAttributes.model_validate(values)


def extract_attributes(
    request: Mapping[str, Any],
) -> tuple[SubjectAttributes, ResourceAttributes, EnvironmentAttributes]:
    """Extract all three attribute sets from a raw request."""
    return (
        extract_subject(request),
        extract_resource(request),
        extract_environment(request),
    )
