"""Hijack detection policies applied on refresh."""

from typing import Protocol

from app.core.exceptions import ConfigurationError
from app.models.refresh_token_session import RefreshTokenSession


class FingerprintPolicy(Protocol):
    """Decides whether a refresh request looks like a stolen token."""

    name: str

    def is_suspicious(self, session: RefreshTokenSession, ip_address: str, user_agent: str) -> bool:
        ...


class StrictFingerprintPolicy:
    """Any change of IP address or User-Agent counts as a hijack."""

    name = "strict"

    def is_suspicious(self, session: RefreshTokenSession, ip_address: str, user_agent: str) -> bool:
        return session.has_ip_changed(ip_address) or session.has_user_agent_changed(user_agent)


class NoFingerprintPolicy:
    """Never flags a request. For clients behind rotating proxies or mobile networks."""

    name = "off"

    def is_suspicious(self, session: RefreshTokenSession, ip_address: str, user_agent: str) -> bool:
        return False


POLICIES = {
    StrictFingerprintPolicy.name: StrictFingerprintPolicy,
    NoFingerprintPolicy.name: NoFingerprintPolicy,
}


def get_fingerprint_policy(name: str) -> FingerprintPolicy:
    try:
        return POLICIES[name.strip().lower()]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown fingerprint policy {name!r}; expected one of {sorted(POLICIES)}"
        )
