"""Tests for the encrypted credential store."""

from __future__ import annotations

import asyncio

import pytest
import yaml
from hypothesis import given, settings
from hypothesis import strategies as st

from tests.conftest import NO_CONTEXT_KUBECONFIG, TEST_KEY, TWO_CONTEXT_KUBECONFIG
from trivyglass.cache.backends import MemoryBackend
from trivyglass.cache.tiered import BackendKind, ResolvedBackend, TieredCache
from trivyglass.clusters.store import CLUSTER_NAMES_SET, KUBECONFIGS_HASH, CredentialStore
from trivyglass.crypto import Cipher
from trivyglass.errors import InvalidDocumentError, NoValidIdentitiesError, ProtectedClusterError
from trivyglass.models.clusters import LOCAL_CLUSTER

# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------


class TestSave:
    async def test_saves_one_record_per_context(self, store: CredentialStore, cipher: Cipher) -> None:
        """Saving a two-context document should store two encrypted records."""
        assert await store.save(TWO_CONTEXT_KUBECONFIG) == ["a", "b"]

        record = await store.get("a")
        assert record is not None
        document = yaml.safe_load(cipher.decrypt(record.encrypted_data, record.iv))
        assert [c["name"] for c in document["contexts"]] == ["a"]
        assert [c["name"] for c in document["clusters"]] == ["ca"]
        assert [u["name"] for u in document["users"]] == ["ua"]
        assert document["current-context"] == "a"

    async def test_records_use_distinct_ivs(self, store: CredentialStore) -> None:
        """Every stored record gets its own IV."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        a = await store.get("a")
        b = await store.get("b")
        assert a is not None and b is not None
        assert a.iv != b.iv

    async def test_plaintext_never_stored(self, store: CredentialStore, cache: TieredCache) -> None:
        """Credentials never reach the backend in plaintext."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        raw = await cache.hash_get(KUBECONFIGS_HASH, "a")
        assert raw is not None
        assert "token-a" not in raw
        assert "ca.example.com" not in raw

    async def test_no_contexts_stores_nothing(self, store: CredentialStore, cache: TieredCache) -> None:
        """A document without contexts is rejected before any write."""
        with pytest.raises(NoValidIdentitiesError, match="No valid contexts found in kubeconfig"):
            await store.save(NO_CONTEXT_KUBECONFIG)
        assert await cache.set_members(CLUSTER_NAMES_SET) == set()

    async def test_scalar_document_has_no_contexts(self, store: CredentialStore) -> None:
        """A scalar document has no contexts to save."""
        with pytest.raises(NoValidIdentitiesError):
            await store.save("invalid-kubeconfig")

    async def test_invalid_yaml_rejected(self, store: CredentialStore) -> None:
        """Malformed YAML is rejected."""
        with pytest.raises(InvalidDocumentError):
            await store.save("contexts: [")

    async def test_empty_document_rejected(self, store: CredentialStore) -> None:
        """An empty document is rejected as missing."""
        with pytest.raises(InvalidDocumentError, match="Kubeconfig is required"):
            await store.save("")

    async def test_local_context_reserved(self, store: CredentialStore, cache: TieredCache) -> None:
        """A context named local aborts the whole save."""
        document = TWO_CONTEXT_KUBECONFIG.replace("- name: b\n  context:", "- name: local\n  context:")
        with pytest.raises(ProtectedClusterError):
            await store.save(document)
        assert await cache.set_members(CLUSTER_NAMES_SET) == set()

    async def test_resave_replaces_record(self, store: CredentialStore, cipher: Cipher) -> None:
        """Saving an existing context name replaces its record."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        await store.save(TWO_CONTEXT_KUBECONFIG.replace("token-a", "token-a2"))

        record = await store.get("a")
        assert record is not None
        assert "token-a2" in cipher.decrypt(record.encrypted_data, record.iv)
        names = [info.name for info in await store.list()]
        assert names == [LOCAL_CLUSTER, "a", "b"]


# ---------------------------------------------------------------------------
# list / get / delete
# ---------------------------------------------------------------------------


class TestListing:
    async def test_local_only_when_empty(self, store: CredentialStore) -> None:
        """An empty store lists just the local cluster."""
        infos = await store.list()
        assert [info.name for info in infos] == [LOCAL_CLUSTER]
        assert infos[0].is_local is True

    async def test_local_first_then_sorted(self, store: CredentialStore) -> None:
        """local comes first, stored clusters follow by name."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        infos = await store.list()
        assert [info.name for info in infos] == [LOCAL_CLUSTER, "a", "b"]
        assert all(info.created_at is not None for info in infos[1:])
        assert "encryptedData" not in infos[1].to_dict()

    async def test_stale_index_entry_skipped(self, store: CredentialStore, cache: TieredCache) -> None:
        """Index entries without a record are left out of the listing."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        await cache.hash_delete(KUBECONFIGS_HASH, "a")
        assert [info.name for info in await store.list()] == [LOCAL_CLUSTER, "b"]

    async def test_corrupt_record_skipped(self, store: CredentialStore, cache: TieredCache) -> None:
        """A corrupt record is left out of the listing instead of failing it."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        await cache.hash_set(KUBECONFIGS_HASH, "a", "{not json")
        assert [info.name for info in await store.list()] == [LOCAL_CLUSTER, "b"]

    @settings(max_examples=25, deadline=None)
    @given(names=st.lists(st.from_regex(r"[a-z][a-z0-9-]{0,10}", fullmatch=True), min_size=1, max_size=6, unique=True))
    def test_listing_order_property(self, names: list[str]) -> None:
        """Any set of saved names lists as local followed by the sorted names."""
        names = [name for name in names if name != LOCAL_CLUSTER] or ["x"]
        contexts = "\n".join(f"- name: \"{name}\"\n  context: {{}}" for name in names)
        document = f"apiVersion: v1\nkind: Config\ncontexts:\n{contexts}\n"

        async def scenario() -> list[str]:
            cache = TieredCache(ResolvedBackend(backend=MemoryBackend(), kind=BackendKind.MEMORY))
            store = CredentialStore(cache, Cipher(TEST_KEY))
            await store.save(document)
            return [info.name for info in await store.list()]

        listed = asyncio.run(scenario())
        assert listed[0] == LOCAL_CLUSTER
        assert listed[1:] == sorted(names)


class TestGetAndDelete:
    async def test_get_local_and_unknown_are_none(self, store: CredentialStore) -> None:
        """get() returns None for local and for unknown names."""
        assert await store.get(LOCAL_CLUSTER) is None
        assert await store.get("missing") is None

    async def test_corrupt_record_raises(self, store: CredentialStore, cache: TieredCache) -> None:
        """Reading a corrupt record directly raises InvalidDocumentError."""
        await cache.hash_set(KUBECONFIGS_HASH, "a", "{not json")
        with pytest.raises(InvalidDocumentError):
            await store.get("a")

    async def test_delete_removes_record_and_index(self, store: CredentialStore, cache: TieredCache) -> None:
        """Deleting a cluster removes its record and its index entry."""
        await store.save(TWO_CONTEXT_KUBECONFIG)
        await store.delete("a")
        assert await store.get("a") is None
        assert await cache.set_members(CLUSTER_NAMES_SET) == {"b"}

    async def test_delete_unknown_is_noop(self, store: CredentialStore) -> None:
        """Deleting an unknown name should do nothing."""
        await store.delete("missing")

    async def test_delete_local_refused(self, store: CredentialStore) -> None:
        """The local cluster cannot be deleted."""
        with pytest.raises(ProtectedClusterError, match="Cannot delete local cluster"):
            await store.delete(LOCAL_CLUSTER)
