"""Account context shared by every remote tool client."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlparse


class AccountConfigError(Exception):
    """The account connection string is missing or malformed."""


@dataclass(frozen=True)
class AccountContext:
    """Credentials presented when constructing remote tool clients.

    Built once at startup. The connection string is a URL whose query
    carries ``connection_token``; other parameters are ignored.
    """

    connection_string: str = field(repr=False)
    auth_token: str = field(repr=False)

    @classmethod
    def from_connection_string(
        cls, connection_string: str
    ) -> AccountContext:
        value = connection_string.strip()
        if not value:
            raise AccountConfigError(
                "ATXP_CONNECTION_STRING is not set"
            )
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise AccountConfigError(
                "ATXP_CONNECTION_STRING must be a URL"
            )
        tokens = parse_qs(parsed.query).get("connection_token", [])
        if not tokens or not tokens[0].strip():
            raise AccountConfigError(
                "ATXP_CONNECTION_STRING has no connection_token"
            )
        return cls(connection_string=value, auth_token=tokens[0].strip())
