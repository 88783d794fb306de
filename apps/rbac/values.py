"""
Immutable values passed between the authorization components.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

REASON_BYPASS = 'role bypass'
REASON_DENY = 'explicit deny'
REASON_GRANT = 'explicit grant'
REASON_ROLE_DEFAULT = 'role default'
REASON_NO_GRANT = 'no matching grant'
REASON_STORE_UNAVAILABLE = 'store unavailable'
REASON_EVALUATION_ERROR = 'evaluation error'

KIND_GRANT = 'grant'
KIND_DENY = 'deny'
KINDS = (KIND_GRANT, KIND_DENY)


@dataclass(frozen=True)
class Decision:
    """Outcome of one authorization check."""
    allowed: bool
    reason: str


@dataclass(frozen=True)
class Capability:
    """A named action the platform can authorize."""
    code: str
    label: str
    category: str
    description: str = ''

    @classmethod
    def from_model(cls, permission):
        return cls(
            code=permission.code,
            label=permission.label,
            category=permission.category,
            description=permission.description,
        )


@dataclass(frozen=True)
class Override:
    """A per-user grant or deny on one capability."""
    user_id: str
    code: str
    kind: str
    granted_by: str
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user_permission):
        return cls(
            user_id=user_permission.user_id,
            code=user_permission.permission.code,
            kind=user_permission.kind,
            granted_by=user_permission.granted_by,
            reason=user_permission.reason,
            created_at=user_permission.created_at,
        )
