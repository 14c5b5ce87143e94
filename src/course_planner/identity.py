from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .errors import AuthenticationRequired
from .settings import Settings


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Identity:
    """
    Caller identity as supplied by the surrounding platform.

    Fields:
    - subject: stable caller identifier, used as the record owner
    - issuer: which credential path produced the identity (e.g. 'apiKey', 'userPool', 'basic')
    """

    subject: Optional[str] = None
    issuer: Optional[str] = None


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class IdentityPolicy:
    """
    Decides when a caller may act and which owner gets attached to new records.

    Callers whose issuer is listed in anonymous_issuers are on the guest path.
    Guests may create owner-scoped records without an owner only when
    allow_guest_writes is set; every other caller must carry a subject.
    """

    anonymous_issuers: FrozenSet[str] = field(default_factory=lambda: frozenset({"apiKey"}))
    allow_guest_writes: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityPolicy":
        return cls(
            anonymous_issuers=settings.anonymous_issuers,
            allow_guest_writes=settings.allow_guest_writes,
        )

    def is_guest(self, identity: Optional[Identity]) -> bool:
        return identity is not None and identity.issuer in self.anonymous_issuers

    def resolve_owner(self, identity: Optional[Identity]) -> Optional[str]:
        """
        Return the owner to stamp on new records.

        Raises:
            AuthenticationRequired if the caller has no subject and is not an
            allowed guest.
        """
        if identity is not None and identity.subject:
            return identity.subject
        if self.allow_guest_writes and self.is_guest(identity):
            return None
        raise AuthenticationRequired("Authentication required to create records")

    def require_subject(self, identity: Optional[Identity]) -> str:
        if identity is None or not identity.subject:
            raise AuthenticationRequired()
        return identity.subject
