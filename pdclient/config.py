from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Optional

from pdclient.errors import PagerDutyValidationError

DEFAULT_BASE_URL = "https://api.pagerduty.com"
ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"
AUTH_SCHEMES = ("token", "bearer")


def _api_token() -> str:
    return os.getenv("PAGERDUTY_API_TOKEN", "").strip()


def _base_url() -> str:
    return os.getenv("PAGERDUTY_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL


def _timeout_seconds() -> float:
    return float(os.getenv("PAGERDUTY_TIMEOUT_SECONDS", "30"))


def _auth_scheme() -> str:
    return os.getenv("PAGERDUTY_AUTH_SCHEME", "token").strip().lower() or "token"


def _from_email() -> Optional[str]:
    return os.getenv("PAGERDUTY_FROM_EMAIL", "").strip() or None


@dataclass(frozen=True)
class ClientConfig:
    token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30
    auth_scheme: str = "token"
    from_email: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.token:
            raise PagerDutyValidationError("PagerDuty API token is required.")
        if self.auth_scheme not in AUTH_SCHEMES:
            raise PagerDutyValidationError(f"auth_scheme must be one of {AUTH_SCHEMES}, got {self.auth_scheme!r}")
        if self.timeout <= 0:
            raise PagerDutyValidationError(f"timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            token=_api_token(),
            base_url=_base_url(),
            timeout=_timeout_seconds(),
            auth_scheme=_auth_scheme(),
            from_email=_from_email(),
        )

    def headers(self) -> Dict[str, str]:
        if self.auth_scheme == "bearer":
            authorization = f"Bearer {self.token}"
        else:
            authorization = f"Token token={self.token}"
        headers = {
            "Accept": ACCEPT_HEADER,
            "Authorization": authorization,
            "Content-Type": "application/json",
        }
        if self.from_email:
            headers["From"] = self.from_email
        return headers
