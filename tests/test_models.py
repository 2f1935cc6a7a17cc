"""Tests for models.py module."""

import pytest

from vault_secret_sync.models import Item, ItemField, ItemPath, SecretResult, SyncReport, SyncStatus, WorkloadRef


class TestItemFromDict:
    """Tests for parsing vault API documents."""

    def test_nested_vault_form(self):
        """Test the document form with a nested vault object."""
        item = Item.from_dict(
            {
                "id": "item1",
                "vault": {"id": "vault1"},
                "version": 7,
                "fields": [{"label": "username", "value": "u"}, {"label": "password", "value": "p"}],
            }
        )

        assert item.id == "item1"
        assert item.vault_id == "vault1"
        assert item.version == 7
        assert item.fields == (ItemField("username", "u"), ItemField("password", "p"))

    def test_flat_vault_id_form(self):
        """Test the document form with a flat vaultId key and string version."""
        item = Item.from_dict({"id": "item1", "vaultId": "vault1", "version": "3"})

        assert item.vault_id == "vault1"
        assert item.version == 3
        assert item.fields == ()

    def test_missing_values_become_empty_strings(self):
        """Test fields without a value or label are kept with empty strings."""
        item = Item.from_dict(
            {"id": "i", "vault": {"id": "v"}, "version": 1, "fields": [{"label": "otp"}, {"value": "x"}]}
        )

        assert item.fields == (ItemField("otp", ""), ItemField("", "x"))

    @pytest.mark.parametrize(
        "payload",
        [
            {"vault": {"id": "v"}, "version": 1},
            {"id": "i", "version": 1},
            {"id": "i", "vault": {"id": "v"}, "version": "latest"},
            {"id": "i", "vault": {"id": "v"}},
            ["not", "a", "mapping"],
        ],
    )
    def test_invalid_documents(self, payload):
        """Test documents missing identity or version are rejected."""
        with pytest.raises(ValueError):
            Item.from_dict(payload)

    def test_item_path(self):
        """Test an item knows its own locator."""
        item = Item(id="i", vault_id="v", version=1)
        assert str(item.path) == "vaults/v/items/i"


class TestIdentities:
    """Tests for string forms of identities."""

    def test_item_path_str(self):
        """Test ItemPath renders as the annotation value."""
        assert str(ItemPath("v", "i")) == "vaults/v/items/i"

    def test_workload_ref_str(self):
        """Test WorkloadRef renders as namespace/name."""
        assert str(WorkloadRef("default", "web")) == "default/web"


class TestSyncReport:
    """Tests for report aggregation."""

    def test_summary_counts(self):
        """Test summary counts every status."""
        report = SyncReport(
            results=[
                SecretResult("default", "a", SyncStatus.UPDATED),
                SecretResult("default", "b", SyncStatus.UNCHANGED),
                SecretResult("default", "c", SyncStatus.UNCHANGED),
                SecretResult("default", "d", SyncStatus.FAILED, ValueError("boom")),
            ],
            restarted=[WorkloadRef("default", "web")],
        )

        summary = report.summary()

        assert summary["Secrets examined"] == "4"
        assert summary["Updated"] == "1"
        assert summary["Unchanged"] == "2"
        assert summary["Failed"] == "1"
        assert summary["Skipped"] == "0"
        assert summary["Workloads restarted"] == "1"
        assert [result.name for result in report.updated] == ["a"]
