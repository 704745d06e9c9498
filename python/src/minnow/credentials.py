"""Access credentials and the providers that look them up."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Protocol

from minnow.errors import ConstructionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """An access key pair, optionally with a session token.

    The secret key is excluded from ``repr`` so credentials can be logged
    by accident without leaking it.

    Raises:
        ConstructionError: If the access key or secret key is empty.
    """

    access_key: str
    secret_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.access_key:
            raise ConstructionError("access_key", self.access_key, "must not be empty")
        if not self.secret_key:
            raise ConstructionError("secret_key", "", "must not be empty")


class Provider(Protocol):
    """Anything that can produce credentials."""

    def retrieve(self) -> Credentials | None: ...


class StaticProvider:
    """Always returns the same credentials."""

    def __init__(self, access_key: str, secret_key: str, session_token: str | None = None) -> None:
        self._credentials = Credentials(access_key, secret_key, session_token or None)

    def retrieve(self) -> Credentials:
        return self._credentials


class EnvironmentProvider:
    """Reads ``AWS_ACCESS_KEY_ID``, ``AWS_SECRET_ACCESS_KEY`` and ``AWS_SESSION_TOKEN``."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def retrieve(self) -> Credentials | None:
        access_key = self._environ.get("AWS_ACCESS_KEY_ID") or self._environ.get("AWS_ACCESS_KEY")
        secret_key = self._environ.get("AWS_SECRET_ACCESS_KEY") or self._environ.get(
            "AWS_SECRET_KEY"
        )
        if not access_key or not secret_key:
            return None
        return Credentials(access_key, secret_key, self._environ.get("AWS_SESSION_TOKEN") or None)


class MinioEnvironmentProvider:
    """Reads ``MINIO_ACCESS_KEY``/``MINIO_SECRET_KEY``, falling back to the root user pair."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def retrieve(self) -> Credentials | None:
        access_key = self._environ.get("MINIO_ACCESS_KEY") or self._environ.get("MINIO_ROOT_USER")
        secret_key = self._environ.get("MINIO_SECRET_KEY") or self._environ.get(
            "MINIO_ROOT_PASSWORD"
        )
        if not access_key or not secret_key:
            return None
        return Credentials(access_key, secret_key)


class ChainedProvider:
    """Returns the credentials of the first provider that has any.

    Attributes:
        providers: Providers tried in order.
    """

    def __init__(self, providers: list[Provider]) -> None:
        self.providers = list(providers)

    def retrieve(self) -> Credentials | None:
        for provider in self.providers:
            credentials = provider.retrieve()
            if credentials is not None:
                logger.debug("Using credentials from %s", type(provider).__name__)
                return credentials
        return None
