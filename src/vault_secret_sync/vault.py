"""Vault item fetching.

This module provides the VaultClient class, a thin wrapper around the
vault service REST API that retrieves the current state of one item.
There is no caching and no in-process retry: every sync cycle fetches
fresh state, and failed fetches are retried by the poll schedule.
"""

import requests
from icecream import ic
from requests.utils import quote

from vault_secret_sync.exceptions import ItemNotFoundError, UnauthorizedError, VaultUnavailableError
from vault_secret_sync.models import Item

_ITEM_ENDPOINT = "{host}/v1/vaults/{vault_id}/items/{item_id}"


class VaultClient:
    """Client for reading items from the vault service.

    Attributes:
        host: Base URL of the vault API, without a trailing slash.
        timeout: Per-request timeout in seconds.

    """

    def __init__(self, host: str, token: str, *, timeout: float = 30, session: requests.Session | None = None) -> None:
        """Initialize the client.

        Args:
            host: Base URL of the vault API.
            token: Bearer token used to authenticate every request.
            timeout: Per-request timeout in seconds.
            session: Optional pre-built session, mainly for tests.

        """
        self.host: str = host.rstrip("/")
        self.timeout: float = timeout
        self._session: requests.Session = session if session is not None else requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            }
        )

    def fetch(self, vault_id: str, item_id: str) -> Item:
        """Fetch the current state of an item.

        Args:
            vault_id: The vault ID.
            item_id: The item ID.

        Returns:
            The item with its fields, version and identity.

        Raises:
            ValueError: If either identifier is empty or a dot segment.
            ItemNotFoundError: If the item or vault no longer exists.
            UnauthorizedError: If the token is rejected.
            VaultUnavailableError: If the vault cannot be reached or returns
                an unexpected response.

        """
        if not vault_id or not item_id:
            raise ValueError("Vault and item identifiers must not be empty")
        if {vault_id, item_id} & {".", ".."}:
            raise ValueError("Vault and item identifiers must not be dot segments")

        url = _ITEM_ENDPOINT.format(
            host=self.host,
            vault_id=quote(vault_id, safe=""),
            item_id=quote(item_id, safe=""),
        )
        ic(url)
        ids = {"vault_id": vault_id, "item_id": item_id}

        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as err:
            raise VaultUnavailableError(f"Failed to reach vault at {self.host}: {err}", **ids) from err

        match response.status_code:
            case 200:
                pass
            case 404:
                raise ItemNotFoundError(f"Item vaults/{vault_id}/items/{item_id} not found", **ids)
            case 401 | 403:
                raise UnauthorizedError(
                    f"Access to vaults/{vault_id}/items/{item_id} denied (HTTP {response.status_code})", **ids
                )
            case status:
                raise VaultUnavailableError(f"Vault returned HTTP {status} for vaults/{vault_id}/items/{item_id}", **ids)

        try:
            return Item.from_dict(response.json())
        except ValueError as err:
            # requests' JSONDecodeError is a ValueError as well
            raise VaultUnavailableError(f"Vault returned an invalid item document: {err}", **ids) from err

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "VaultClient":
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"VaultClient(host={self.host!r}, timeout={self.timeout!r})"
