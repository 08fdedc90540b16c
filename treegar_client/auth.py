"""Request header construction for the Treegar API."""

from __future__ import annotations


class TreegarAuth:
    """Builds the headers attached to every Treegar API request.

    Token issuance and refresh belong to the session layer; this class only
    carries the current bearer token.
    """

    def __init__(self, access_token: str = ""):
        """Initialize authenticator.

        Args:
            access_token: Bearer token. Empty means unauthenticated requests.
        """
        self.access_token = access_token

    def set_token(self, access_token: str) -> None:
        """Replace the bearer token (e.g. after the session layer refreshed it)."""
        self.access_token = access_token

    def get_headers(self, json_body: bool = False) -> dict[str, str]:
        """Generate headers for a request.

        Args:
            json_body: Whether the request carries a JSON body.

        Returns:
            Dictionary of request headers.
        """
        headers = {"Accept": "application/json"}

        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        if json_body:
            headers["Content-Type"] = "application/json"

        return headers
