"""Tests for request header construction."""

from treegar_client.auth import TreegarAuth


class TestTreegarAuth:
    """Test header generation."""

    def test_headers_with_token(self, access_token: str) -> None:
        """Test bearer token is attached when present."""
        auth = TreegarAuth(access_token)

        headers = auth.get_headers()

        assert headers["Authorization"] == f"Bearer {access_token}"
        assert headers["Accept"] == "application/json"
        assert "Content-Type" not in headers

    def test_headers_without_token(self) -> None:
        """Test no Authorization header for an empty token."""
        headers = TreegarAuth().get_headers()

        assert "Authorization" not in headers

    def test_json_body_sets_content_type(self, access_token: str) -> None:
        """Test Content-Type is only sent with a JSON body."""
        headers = TreegarAuth(access_token).get_headers(json_body=True)

        assert headers["Content-Type"] == "application/json"

    def test_set_token_replaces_token(self) -> None:
        """Test a refreshed token is used for later requests."""
        auth = TreegarAuth("old-token")
        auth.set_token("new-token")

        assert auth.get_headers()["Authorization"] == "Bearer new-token"
