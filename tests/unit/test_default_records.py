"""
Unit tests for the one-default-per-(user, provider) rule on tokens and stores.
"""
import pytest

from app.errors import ConflictError, NotFoundError, ValidationError
from app.services.defaults import DefaultRecordMaintainer
from app.storage.json_store import StoreError
from app.storage.repositories import STORES_COLLECTION, TOKENS_COLLECTION
from conftest import set_created_at


def _defaults(repo, user_id, provider):
    return [r["id"] for r in repo.list(user_id, provider) if r["is_default"]]


@pytest.mark.unit
class TestTokenDefaults:

    def test_first_token_is_forced_default(self, tokens):
        """The first token of a provider becomes default even when not requested."""
        token = tokens.create("u1", "printify", "tok_aaaaaaaaaaaa", is_default=False)

        assert token["is_default"] is True

    def test_second_token_not_default_unless_requested(self, tokens):
        a = tokens.create("u1", "printify", "tok_a")
        b = tokens.create("u1", "printify", "tok_b")

        assert b["is_default"] is False
        assert _defaults(tokens, "u1", "printify") == [a["id"]]

    def test_create_with_default_clears_others(self, tokens):
        a = tokens.create("u1", "printify", "tok_a")
        b = tokens.create("u1", "printify", "tok_b", is_default=True)

        assert _defaults(tokens, "u1", "printify") == [b["id"]]
        assert tokens.get("u1", a["id"])["is_default"] is False

    def test_update_to_default_clears_previous(self, tokens):
        """Updating tokenB to default leaves tokenA non-default."""
        a = tokens.create("u1", "printify", "tok_a")
        b = tokens.create("u1", "printify", "tok_b")

        updated = tokens.update("u1", b["id"], is_default=True)

        assert updated["is_default"] is True
        assert tokens.get("u1", a["id"])["is_default"] is False

    def test_partitions_are_independent(self, tokens):
        p = tokens.create("u1", "printify", "tok_p")
        s = tokens.create("u1", "shopify", "tok_s")
        other = tokens.create("u2", "printify", "tok_o")

        tokens.create("u1", "printify", "tok_p2", is_default=True)

        assert tokens.get("u1", s["id"])["is_default"] is True
        assert tokens.get("u2", other["id"])["is_default"] is True
        assert tokens.get("u1", p["id"])["is_default"] is False

    def test_at_most_one_default_after_mixed_operations(self, tokens):
        ids = [tokens.create("u1", "printify", f"tok_{i}", is_default=i % 2 == 0)["id"] for i in range(5)]
        tokens.update("u1", ids[1], is_default=True)
        tokens.delete("u1", ids[1])
        tokens.update("u1", ids[3], is_default=True)
        tokens.create("u1", "printify", "tok_last")

        assert len(_defaults(tokens, "u1", "printify")) == 1

    def test_update_foreign_token_is_not_found(self, tokens):
        token = tokens.create("u1", "printify", "tok_a")

        with pytest.raises(NotFoundError):
            tokens.update("u2", token["id"], is_default=True)

    def test_invalid_provider(self, tokens):
        with pytest.raises(ValidationError, match="Invalid provider"):
            tokens.create("u1", "etsy", "tok_a")

    def test_delete_refused_while_store_references_token(self, tokens, stores):
        token = tokens.create("u1", "printify", "tok_a")
        stores.create("u1", "printify", "Main shop", shop_id=123, api_token=token["id"])

        with pytest.raises(ConflictError, match="Main shop"):
            tokens.delete("u1", token["id"])

        assert tokens.get("u1", token["id"])

    def test_touch_sets_last_used(self, tokens):
        token = tokens.create("u1", "printify", "tok_a")

        touched = tokens.touch("u1", token["id"])

        assert token["last_used_at"] is None
        assert touched["last_used_at"]


@pytest.mark.unit
class TestStoreDefaults:

    def test_delete_default_promotes_latest(self, stores, json_store):
        """Deleting the default of three promotes the most recently created remaining store."""
        s1 = stores.create("u2", "printify", "One", shop_id=1, api_token="t")
        s2 = stores.create("u2", "printify", "Two", shop_id=2, api_token="t")
        s3 = stores.create("u2", "printify", "Three", shop_id=3, api_token="t")
        set_created_at(json_store, STORES_COLLECTION, s1["id"], "2024-01-01T00:00:00+00:00")
        set_created_at(json_store, STORES_COLLECTION, s2["id"], "2024-01-02T00:00:00+00:00")
        set_created_at(json_store, STORES_COLLECTION, s3["id"], "2024-01-03T00:00:00+00:00")
        assert _defaults(stores, "u2", "printify") == [s1["id"]]

        stores.delete("u2", s1["id"])

        assert _defaults(stores, "u2", "printify") == [s3["id"]]

    def test_delete_non_default_keeps_default(self, stores):
        s1 = stores.create("u2", "printify", "One", shop_id=1, api_token="t")
        s2 = stores.create("u2", "printify", "Two", shop_id=2, api_token="t")

        stores.delete("u2", s2["id"])

        assert _defaults(stores, "u2", "printify") == [s1["id"]]

    def test_delete_last_store_leaves_no_default(self, stores):
        only = stores.create("u2", "printify", "Only", shop_id=1, api_token="t")

        stores.delete("u2", only["id"])

        assert stores.list("u2", "printify") == []

    def test_delete_missing_store(self, stores):
        with pytest.raises(NotFoundError, match="Store not found"):
            stores.delete("u2", "nope")

    def test_shop_id_is_stored_as_string(self, stores):
        store = stores.create("u2", "printify", "One", shop_id=98765, api_token="t")

        assert store["shop_id"] == "98765"


@pytest.mark.unit
class TestBestEffortMaintenance:
    """Clearing and promotion failures are logged; the primary write still lands."""

    def test_unset_failure_does_not_block_create(self, json_store, mocker):
        maintainer = DefaultRecordMaintainer(json_store, TOKENS_COLLECTION)
        maintainer.create("u1", "printify", {"token_ref": "a"})
        mocker.patch.object(json_store, "update", side_effect=StoreError("disk full"))

        row = maintainer.create("u1", "printify", {"token_ref": "b"}, requested_default=True)

        assert row["is_default"] is True
        assert json_store.get(TOKENS_COLLECTION, row["id"])

    def test_promotion_failure_does_not_block_delete(self, json_store, mocker):
        maintainer = DefaultRecordMaintainer(json_store, STORES_COLLECTION)
        first = maintainer.create("u1", "printify", {"name": "a"})
        maintainer.create("u1", "printify", {"name": "b"})
        mocker.patch.object(json_store, "update", side_effect=StoreError("disk full"))

        deleted = maintainer.delete("u1", first["id"], "Store")

        assert deleted["id"] == first["id"]
        assert json_store.get(STORES_COLLECTION, first["id"]) is None
