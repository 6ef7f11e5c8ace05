"""
Data types shared by the cdrive login flow.

TokenSet is the only record that outlives a process. AuthorizationRequest and
CapturedCode live for a single `auth login` invocation, and the listener
outcome types form the contract between the redirect listener and the login
orchestrator.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ClientCredentials:
    """OAuth client identity registered with Google."""

    client_id: str
    client_secret: str

    def is_plausible(self) -> bool:
        """Google client ids and secrets are never this short."""
        return len(self.client_id) >= 10 and len(self.client_secret) >= 10


@dataclass(frozen=True)
class TokenSet:
    """Access/refresh token bundle returned by the token endpoint."""

    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expires_in: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSet":
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            token_type=data.get("token_type") or "Bearer",
            expires_in=int(data.get("expires_in") or 0),
        )


@dataclass(frozen=True)
class AuthorizationRequest:
    """One login attempt's view of the consent step."""

    authorization_url: str
    expected_redirect_port: int
    scope: str
    client_id: str


@dataclass(frozen=True)
class CapturedCode:
    """The single authorization code delivered by a callback."""

    value: str
    captured_at: datetime = field(default_factory=_utcnow)


# Listener outcomes


@dataclass(frozen=True)
class CodeCaptured:
    code: CapturedCode

    @property
    def value(self) -> str:
        return self.code.value


@dataclass(frozen=True)
class NoCodeInCallback:
    """A request arrived but carried no `code=` marker."""

    request_line: str = ""


@dataclass(frozen=True)
class BindFailed:
    reason: str


@dataclass(frozen=True)
class AcceptFailed:
    reason: str


@dataclass(frozen=True)
class Timeout:
    seconds: Optional[float] = None


@dataclass(frozen=True)
class Cancelled:
    reason: str = "cancelled"


ListenerOutcome = Union[
    CodeCaptured, NoCodeInCallback, BindFailed, AcceptFailed, Timeout, Cancelled
]
