"""Tests for vault.py module."""

from unittest.mock import MagicMock

import pytest
import requests

from vault_secret_sync.exceptions import ItemNotFoundError, UnauthorizedError, VaultUnavailableError
from vault_secret_sync.models import ItemField
from vault_secret_sync.vault import VaultClient


def _response(status_code=200, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    """Mock requests session."""
    mock = MagicMock()
    mock.headers = {}
    return mock


@pytest.fixture
def vault(session):
    """VaultClient wired to the mock session."""
    return VaultClient("http://connect:8080/", "token-123", timeout=5, session=session)


class TestVaultClientInit:
    """Tests for client setup."""

    def test_auth_header_is_set(self, vault, session):
        """Test the bearer token is sent with every request."""
        assert session.headers["Authorization"] == "Bearer token-123"

    def test_trailing_slash_is_stripped(self, vault):
        """Test the host is normalized."""
        assert vault.host == "http://connect:8080"

    def test_repr_hides_token(self, vault):
        """Test the token does not leak into debug output."""
        assert "token-123" not in repr(vault)


class TestVaultClientFetch:
    """Tests for item fetching."""

    def test_fetch_success(self, vault, session):
        """Test a successful fetch returns the parsed item."""
        session.get.return_value = _response(
            payload={
                "id": "item1",
                "vault": {"id": "vault1"},
                "version": 6,
                "fields": [{"label": "username", "value": "u"}, {"label": "password", "value": "p"}],
            }
        )

        item = vault.fetch("vault1", "item1")

        session.get.assert_called_once_with("http://connect:8080/v1/vaults/vault1/items/item1", timeout=5)
        assert item.version == 6
        assert item.fields == (ItemField("username", "u"), ItemField("password", "p"))

    def test_fetch_quotes_path_segments(self, vault, session):
        """Test identifiers cannot escape their URL path segment."""
        session.get.return_value = _response(payload={"id": "a/b", "vault": {"id": "v?x#y"}, "version": 1})

        vault.fetch("v?x#y", "a/b")

        session.get.assert_called_once_with("http://connect:8080/v1/vaults/v%3Fx%23y/items/a%2Fb", timeout=5)

    def test_fetch_not_found(self, vault, session):
        """Test HTTP 404 maps to ItemNotFoundError."""
        session.get.return_value = _response(status_code=404)

        with pytest.raises(ItemNotFoundError) as exc_info:
            vault.fetch("vault1", "item1")

        assert exc_info.value.vault_id == "vault1"
        assert exc_info.value.item_id == "item1"

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_fetch_unauthorized(self, vault, session, status_code):
        """Test HTTP 401 and 403 map to UnauthorizedError."""
        session.get.return_value = _response(status_code=status_code)

        with pytest.raises(UnauthorizedError):
            vault.fetch("vault1", "item1")

    @pytest.mark.parametrize("status_code", [500, 502, 429])
    def test_fetch_unexpected_status(self, vault, session, status_code):
        """Test other statuses map to VaultUnavailableError."""
        session.get.return_value = _response(status_code=status_code)

        with pytest.raises(VaultUnavailableError) as exc_info:
            vault.fetch("vault1", "item1")

        assert str(status_code) in str(exc_info.value)

    def test_fetch_connection_error(self, vault, session):
        """Test transport failures map to VaultUnavailableError."""
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(VaultUnavailableError) as exc_info:
            vault.fetch("vault1", "item1")

        assert "Failed to reach vault" in str(exc_info.value)

    def test_fetch_timeout(self, vault, session):
        """Test timeouts map to VaultUnavailableError."""
        session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(VaultUnavailableError):
            vault.fetch("vault1", "item1")

    def test_fetch_invalid_json(self, vault, session):
        """Test an undecodable body maps to VaultUnavailableError."""
        session.get.return_value = _response(json_error=ValueError("Expecting value"))

        with pytest.raises(VaultUnavailableError) as exc_info:
            vault.fetch("vault1", "item1")

        assert "invalid item document" in str(exc_info.value)

    def test_fetch_invalid_document(self, vault, session):
        """Test a document without a version maps to VaultUnavailableError."""
        session.get.return_value = _response(payload={"id": "item1", "vault": {"id": "vault1"}})

        with pytest.raises(VaultUnavailableError):
            vault.fetch("vault1", "item1")

    @pytest.mark.parametrize(("vault_id", "item_id"), [("", "item1"), ("vault1", ""), ("..", "item1"), ("vault1", ".")])
    def test_fetch_rejects_empty_ids(self, vault, session, vault_id, item_id):
        """Test empty and dot-segment identifiers are rejected before any request."""
        with pytest.raises(ValueError):
            vault.fetch(vault_id, item_id)

        session.get.assert_not_called()


class TestVaultClientLifecycle:
    """Tests for the context manager."""

    def test_context_manager_closes_session(self, session):
        """Test leaving the context closes the session."""
        with VaultClient("http://connect:8080", "token", session=session):
            pass

        session.close.assert_called_once()
