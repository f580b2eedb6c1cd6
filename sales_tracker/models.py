# sales_tracker/models.py
"""
Data containers shared by the stores, the auth manager and the UI.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from .constants import CREDENTIAL_HASHED, CREDENTIAL_PLAIN


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass
class User:
    """An account. `team_id` points at the manager whose team the user is in."""
    id: int
    username: str
    name: str
    role: str
    email: Optional[str] = None
    is_active: bool = True
    team_id: Optional[int] = None
    is_hidden: bool = False
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat() if self.created_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data['id'],
            username=data['username'],
            name=data.get('name') or data['username'],
            role=data['role'],
            email=data.get('email'),
            is_active=bool(data.get('is_active', True)),
            team_id=data.get('team_id'),
            is_hidden=bool(data.get('is_hidden', False)),
            created_at=_parse_datetime(data.get('created_at')),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.username


@dataclass
class CredentialRecord:
    username: str
    secret: str
    format: str = CREDENTIAL_HASHED

    @property
    def is_legacy(self) -> bool:
        return self.format == CREDENTIAL_PLAIN

    def __repr__(self) -> str:
        # Never expose the secret, even in tracebacks
        return f"CredentialRecord(username={self.username!r}, format={self.format!r})"


@dataclass
class Session:
    """In-memory view of the tab-scoped session record."""
    token: str
    user: User
    expires_at: datetime
    last_activity: datetime

    def to_payload(self) -> Dict[str, Any]:
        return {
            'user': self.user.to_dict(),
            'token': self.token,
            'expires_at': self.expires_at.isoformat(),
            'last_activity': self.last_activity.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Session":
        expires_at = _parse_datetime(payload['expires_at'])
        last_activity = _parse_datetime(payload['last_activity'])

        # Session clocks are naive local time
        if expires_at.tzinfo is not None or last_activity.tzinfo is not None:
            raise ValueError("session timestamps must not carry a UTC offset")

        return cls(
            token=str(payload['token']),
            user=User.from_dict(payload['user']),
            expires_at=expires_at,
            last_activity=last_activity,
        )

    def __repr__(self) -> str:
        return (
            f"Session(user={self.user.username!r}, expires_at={self.expires_at.isoformat()}, "
            f"last_activity={self.last_activity.isoformat()})"
        )


@dataclass(frozen=True)
class Capabilities:
    is_manager: bool = False
    is_admin: bool = False
    is_super_admin: bool = False
    is_agent: bool = False
    can_manage_users: bool = False
    can_manage_teams: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)
