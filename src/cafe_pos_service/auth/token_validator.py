"""Bearer token validation for staff endpoints.

Tokens are issued outside this service. Each configured token maps to the
principal (user and role) it authenticates.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """An authenticated staff member."""

    user_id: str
    role: str


class BearerTokenValidator:
    """Validates bearer tokens and resolves them to principals."""

    def __init__(self, tokens: dict[str, Principal]) -> None:
        """Initialize validator with the accepted tokens.

        Args:
            tokens: Mapping of bearer token to the principal it authenticates

        Raises:
            ValueError: If no tokens are provided
        """
        if not tokens:
            raise ValueError("At least one bearer token must be provided")

        self.tokens = dict(tokens)

    @classmethod
    def from_config(cls, config: str) -> "BearerTokenValidator":
        """Build a validator from a "token:user_id:role,..." string.

        Args:
            config: Comma separated token entries

        Returns:
            BearerTokenValidator for the configured tokens

        Raises:
            ValueError: If an entry is malformed or no entries are present
        """
        tokens: dict[str, Principal] = {}
        for entry in config.split(","):
            entry = entry.strip()
            if not entry:
                continue
            parts = entry.split(":")
            if len(parts) != 3 or not all(parts):
                raise ValueError("Malformed token entry: expected token:user_id:role")
            token, user_id, role = parts
            tokens[token] = Principal(user_id=user_id, role=role)

        return cls(tokens)

    def validate(self, token: str) -> Principal | None:
        """Resolve a bearer token.

        Args:
            token: The bearer token to validate

        Returns:
            Principal if the token is valid, None otherwise
        """
        return self.tokens.get(token)
