"""Scope checks against the active credential."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import PermissionDeniedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .model import MutationError, MutationKind
    from .ports import CredentialProvider

log = getLogger(__name__)

PAGES_WRITE: Final[str] = "pages:write"
CMS_WRITE: Final[str] = "cms:write"


@dataclass(frozen=True, slots=True)
class StaticCredentials:
    """Credential whose scopes are known up front (from config or a token response)."""

    access_token: str
    scopes: frozenset[str]

    @classmethod
    def from_scopes(cls, access_token: str, scopes: Iterable[str] | str) -> StaticCredentials:
        if isinstance(scopes, str):
            scopes = scopes.replace(",", " ").split()
        return cls(access_token=access_token, scopes=frozenset(scopes))

    @property
    def granted_scopes(self) -> frozenset[str]:
        return self.scopes


def required_scope(kind: MutationKind) -> str:
    return CMS_WRITE if kind.is_cms else PAGES_WRITE


def check_permissions(
    kind: MutationKind,
    credentials: CredentialProvider,
) -> MutationError | None:
    scope = required_scope(kind)
    if scope in credentials.granted_scopes:
        return None
    log.warning(f"Rejected {kind} mutation: credential lacks {scope}")
    return PermissionDeniedError(f"{scope} scope required").to_error()
