"""
Tests for bucket reconciliation.

Runs the reconciler against the in-memory store from every starting
state and checks the bucket always ends up the same way.
"""

import asyncio

import pytest

from sitedeploy.core.deployment.errors import StoreError
from sitedeploy.core.deployment.models import AccessPolicy, ReconcileStage
from sitedeploy.core.deployment.reconciler import BucketReconciler
from sitedeploy.infrastructure.storage.client import MockObjectStoreClient

BUCKET = "my-site"


class RecordingStore(MockObjectStoreClient):
    """Mock store that also remembers which keys each delete asked for."""

    def __init__(self) -> None:
        super().__init__()
        self.deleted_batches: list[list[str]] = []

    async def delete_objects(self, bucket, keys):
        self.deleted_batches.append(list(keys))
        await super().delete_objects(bucket, keys)


class FailingStore(MockObjectStoreClient):
    """Mock store whose `fail_on` operation always raises StoreError."""

    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    async def put_bucket_website(self, bucket, index_document, error_document):
        if self.fail_on == "put_bucket_website":
            self.calls.append(("put_bucket_website", bucket))
            raise StoreError("put_bucket_website", bucket, RuntimeError("AccessDenied"))
        await super().put_bucket_website(bucket, index_document, error_document)

    async def list_buckets(self):
        if self.fail_on == "list_buckets":
            self.calls.append(("list_buckets", None))
            raise StoreError("list_buckets", None, RuntimeError("ExpiredToken"))
        return await super().list_buckets()


def operations(store: MockObjectStoreClient) -> list[str]:
    return [operation for operation, _ in store.calls]


def assert_fully_configured(store: MockObjectStoreClient) -> None:
    bucket = store.buckets[BUCKET]
    assert bucket.objects == {}
    assert bucket.website == ("index.html", "error.html")
    assert bucket.policy == AccessPolicy(BUCKET).to_json()


# ---------------------------------------------------------------------------
# Starting states
# ---------------------------------------------------------------------------

class TestReconcileFromEachState:
    """Whatever the bucket looked like before, it ends up the same."""

    def test_absent_bucket_is_created_and_configured(self, store):
        reconciler = BucketReconciler(store)

        state = asyncio.run(reconciler.reconcile(BUCKET))

        assert not state.exists
        assert state.stage is ReconcileStage.AUTHORIZED
        assert operations(store) == [
            "list_buckets",
            "create_bucket",
            "put_bucket_website",
            "put_bucket_policy",
        ]
        assert_fully_configured(store)

    def test_empty_bucket_is_not_drained(self, store):
        """An empty bucket must not trigger an empty delete call."""
        store.seed(BUCKET)
        reconciler = BucketReconciler(store)

        state = asyncio.run(reconciler.reconcile(BUCKET))

        assert state.exists
        assert not state.has_objects
        assert operations(store) == [
            "list_buckets",
            "list_objects",
            "put_bucket_website",
            "put_bucket_policy",
        ]
        assert_fully_configured(store)

    def test_non_empty_bucket_is_drained_in_one_batch(self):
        store = RecordingStore()
        store.seed(BUCKET, {"old.txt": b"old", "stale.js": b"stale"})
        reconciler = BucketReconciler(store)

        state = asyncio.run(reconciler.reconcile(BUCKET))

        assert state.exists
        assert state.has_objects
        assert len(store.deleted_batches) == 1
        assert sorted(store.deleted_batches[0]) == ["old.txt", "stale.js"]
        assert "create_bucket" not in operations(store)
        assert_fully_configured(store)

    def test_other_buckets_are_not_touched(self, store):
        store.seed("someone-elses-bucket", {"keep.txt": b"keep"})
        reconciler = BucketReconciler(store)

        asyncio.run(reconciler.reconcile(BUCKET))

        assert store.buckets["someone-elses-bucket"].objects.keys() == {"keep.txt"}


class TestReconcileIdempotence:

    def test_running_twice_matches_running_once(self, store):
        store.seed(BUCKET, {"old.txt": b"old"})
        reconciler = BucketReconciler(store)

        asyncio.run(reconciler.reconcile(BUCKET))
        first = (store.buckets[BUCKET].website, store.buckets[BUCKET].policy)

        second_state = asyncio.run(reconciler.reconcile(BUCKET))
        second = (store.buckets[BUCKET].website, store.buckets[BUCKET].policy)

        assert first == second
        assert second_state.exists
        assert not second_state.has_objects
        assert_fully_configured(store)


class TestReconcileFailures:
    """No retries: the first failing call ends reconciliation."""

    def test_store_error_propagates_and_stops_sequence(self):
        store = FailingStore(fail_on="put_bucket_website")
        reconciler = BucketReconciler(store)

        with pytest.raises(StoreError) as exc_info:
            asyncio.run(reconciler.reconcile(BUCKET))

        assert exc_info.value.operation == "put_bucket_website"
        assert "put_bucket_policy" not in operations(store)

    def test_discovery_failure_makes_no_further_calls(self):
        store = FailingStore(fail_on="list_buckets")
        reconciler = BucketReconciler(store)

        with pytest.raises(StoreError):
            asyncio.run(reconciler.reconcile(BUCKET))

        assert operations(store) == ["list_buckets"]


def test_policy_uses_configured_partition(store):
    reconciler = BucketReconciler(store, arn_partition="aws-us-gov")

    asyncio.run(reconciler.reconcile(BUCKET))

    assert "arn:aws-us-gov:s3:::my-site/*" in store.buckets[BUCKET].policy
