from __future__ import annotations

from enum import Enum
from typing import Optional

from .entities import AuthRule, ModelDef
from .identity import Identity, IdentityPolicy
from .models import RecordDict


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    LIST = "list"


# PUBLIC_INTERFACE
def authorize(
    model: ModelDef,
    action: Action,
    identity: Optional[Identity],
    policy: IdentityPolicy,
) -> Optional[str]:
    """
    Apply the model's authorization rule to one action.

    Owner-scoped models need a caller subject for every action, creates
    included. Unowned Todos are only written by the batch creator on the
    guest path.

    Returns:
        For owner-scoped models, the owner to stamp on a created record or to
        scope reads by; None for guest models (no scoping).

    Raises:
        AuthenticationRequired if the caller may not perform the action.
    """
    if model.auth is AuthRule.GUEST:
        return None
    return policy.require_subject(identity)


def visible_to(record: RecordDict, owner: Optional[str], model: ModelDef) -> bool:
    """True if a record may be shown to a caller scoped to `owner`."""
    if model.auth is AuthRule.GUEST:
        return True
    return record.get("owner") == owner
