"""Browser-based uploads through signed POST policies.

A POST policy lets a browser upload straight to a bucket with an HTML form.
The policy is a base64 JSON document listing the conditions the form must
satisfy; its signature is computed with the ordinary SigV4 signing key.
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timezone
from typing import Any

from minnow.auth import ALGORITHM, RequestSigner, SigningScope, amz_date
from minnow.credentials import Credentials
from minnow.errors import ConstructionError

EQ = "eq"
STARTS_WITH = "starts-with"

# Form fields the policy itself fills in.
RESERVED_ELEMENTS = frozenset(
    {"bucket", "x-amz-algorithm", "x-amz-credential", "x-amz-date", "policy", "x-amz-signature"}
)

EXPIRATION_FORMAT = "%Y-%m-%dT%H:%M:%S.{ms:03d}Z"


def _format_expiration(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime(EXPIRATION_FORMAT).format(ms=value.microsecond // 1000)


def _trim_dollar(element: str) -> str:
    return element[1:] if element.startswith("$") else element


class PostPolicy:
    """Conditions for a browser upload into ``bucket`` until ``expiration``."""

    def __init__(self, bucket: str, expiration: datetime) -> None:
        if not bucket:
            raise ConstructionError("bucket", bucket, "must not be empty")
        self.bucket = bucket
        self.expiration = expiration
        self._conditions: dict[str, dict[str, str]] = {EQ: {}, STARTS_WITH: {}}
        self._content_length: tuple[int, int] | None = None

    def _element(self, element: str) -> str:
        if not element:
            raise ConstructionError("element", element, "must not be empty")
        element = _trim_dollar(element)
        if element in RESERVED_ELEMENTS:
            raise ConstructionError("element", element, "is set by the policy itself")
        return element

    def add_equals_condition(self, element: str, value: str) -> None:
        element = self._element(element)
        if element in ("success_action_redirect", "redirect", "content-length-range"):
            raise ConstructionError("element", element, "is not supported for equals conditions")
        self._conditions[EQ][element] = value

    def remove_equals_condition(self, element: str) -> None:
        self._conditions[EQ].pop(_trim_dollar(element), None)

    def add_starts_with_condition(self, element: str, value: str) -> None:
        """Require ``element`` to start with ``value``; an empty value allows anything."""
        element = self._element(element)
        if (
            element in ("success_action_status", "content-length-range")
            or (element.startswith("x-amz-") and not element.startswith("x-amz-meta-"))
        ):
            raise ConstructionError("element", element, "is not supported for starts-with conditions")
        self._conditions[STARTS_WITH][element] = value

    def remove_starts_with_condition(self, element: str) -> None:
        self._conditions[STARTS_WITH].pop(_trim_dollar(element), None)

    def add_content_length_range_condition(self, lower: int, upper: int) -> None:
        if lower < 0 or upper < 0:
            raise ConstructionError("content-length-range", (lower, upper), "limits must not be negative")
        if lower > upper:
            raise ConstructionError("content-length-range", (lower, upper), "lower limit exceeds upper limit")
        self._content_length = (lower, upper)

    def remove_content_length_range_condition(self) -> None:
        self._content_length = None

    def policy_document(self, credential: str, date: str, session_token: str | None = None) -> dict[str, Any]:
        """The policy as a JSON-ready dict."""
        conditions: list[list[Any]] = [[EQ, "$bucket", self.bucket]]
        for operator, elements in self._conditions.items():
            for element, value in elements.items():
                conditions.append([operator, f"${element}", value])
        if self._content_length is not None:
            conditions.append(["content-length-range", *self._content_length])
        conditions.append([EQ, "$x-amz-algorithm", ALGORITHM])
        conditions.append([EQ, "$x-amz-credential", credential])
        if session_token:
            conditions.append([EQ, "$x-amz-security-token", session_token])
        conditions.append([EQ, "$x-amz-date", date])
        return {"expiration": _format_expiration(self.expiration), "conditions": conditions}

    def form_data(self, credentials: Credentials, timestamp: datetime, region: str) -> dict[str, str]:
        """Sign the policy and return the form fields to post alongside the file.

        Raises:
            ConstructionError: If no ``key`` condition was added or the region
                is empty.
        """
        if not region:
            raise ConstructionError("region", region, "must not be empty")
        if "key" not in self._conditions[EQ] and "key" not in self._conditions[STARTS_WITH]:
            raise ConstructionError("key", None, "a key condition must be set")

        date = amz_date(timestamp)
        credential = SigningScope.for_timestamp(timestamp, region).credential(credentials.access_key)
        document = self.policy_document(credential, date, credentials.session_token)
        policy = base64.b64encode(json.dumps(document).encode("utf-8")).decode("ascii")
        signature = RequestSigner(region).sign_string(policy, credentials, timestamp)

        form = {
            "x-amz-algorithm": ALGORITHM,
            "x-amz-credential": credential,
            "x-amz-date": date,
            "policy": policy,
            "x-amz-signature": signature,
        }
        if credentials.session_token:
            form["x-amz-security-token"] = credentials.session_token
        return form
