"""Tests for the in-memory StorageClient."""

import httpx
import pytest

from storage_client_core.errors import (
    ConflictError,
    NetworkError,
    NotFoundError,
    PreconditionFailedError,
    UnimplementedError,
)
from storage_client_core.models import (
    BucketAttrs,
    BucketAttrsToUpdate,
    BucketConditions,
    ComposeObjectRequest,
    ComposeSource,
    Conditions,
    ObjectAttrs,
    ObjectAttrsToUpdate,
    Query,
    ReaderParams,
    WriterParams,
)
from storage_client_core.options import idempotent
from storage_client_core.testing import InMemoryStorageClient


async def put(client, name: str, data: bytes, conds: Conditions | None = None) -> ObjectAttrs:
    async with await client.open_writer(WriterParams(ObjectAttrs(bucket="bucket", name=name), conds)) as writer:
        await writer.write(data)
    return writer.attrs


class TestBuckets:
    """Test bucket lifecycle."""

    @pytest.mark.unit
    async def test_create_duplicate_bucket_conflicts(self, memory_client):
        with pytest.raises(ConflictError):
            await memory_client.create_bucket("project", BucketAttrs(name="bucket"))

    @pytest.mark.unit
    async def test_list_buckets_with_prefix_and_pages(self, memory_client):
        for name in ("logs-a", "logs-b", "logs-c", "other"):
            await memory_client.create_bucket("project", BucketAttrs(name=name))

        it = memory_client.list_buckets("project", prefix="logs-")
        it.page_size = 2
        pages = [page async for page in it.pages()]

        assert [[b.name for b in page] for page in pages] == [["logs-a", "logs-b"], ["logs-c"]]

    @pytest.mark.unit
    async def test_update_bucket_bumps_metageneration(self, memory_client):
        await memory_client.update_bucket("bucket", BucketAttrsToUpdate(set_labels={"a": "1", "b": "2"}))

        updated = await memory_client.update_bucket(
            "bucket",
            BucketAttrsToUpdate(versioning_enabled=True, delete_labels=("a",)),
            conds=BucketConditions(metageneration_match=2),
        )

        assert updated.metageneration == 3
        assert updated.versioning_enabled is True
        assert updated.labels == {"b": "2"}

    @pytest.mark.unit
    async def test_stale_metageneration_fails(self, memory_client):
        with pytest.raises(PreconditionFailedError):
            await memory_client.get_bucket("bucket", conds=BucketConditions(metageneration_match=5))

    @pytest.mark.unit
    async def test_delete_non_empty_bucket_conflicts(self, memory_client):
        await put(memory_client, "obj", b"x")

        with pytest.raises(ConflictError):
            await memory_client.delete_bucket("bucket")

        await memory_client.delete_object("bucket", "obj")
        await memory_client.delete_bucket("bucket")
        with pytest.raises(NotFoundError):
            await memory_client.get_bucket("bucket")


class TestObjects:
    """Test object reads, writes and metadata."""

    @pytest.mark.unit
    async def test_write_then_read(self, memory_client):
        attrs = await put(memory_client, "obj", b"hello world")

        async with await memory_client.open_reader(ReaderParams("bucket", "obj")) as reader:
            data = await reader.read()

        assert data == b"hello world"
        assert attrs.size == 11
        assert attrs.generation is not None

    @pytest.mark.unit
    async def test_ranged_read(self, memory_client):
        await put(memory_client, "obj", b"hello world")

        reader = await memory_client.open_reader(ReaderParams("bucket", "obj", offset=6, length=3))

        assert await reader.read() == b"wor"

    @pytest.mark.unit
    async def test_writer_discards_data_on_error(self, memory_client):
        with pytest.raises(RuntimeError):
            async with await memory_client.open_writer(WriterParams(ObjectAttrs("bucket", "obj"))) as writer:
                await writer.write(b"partial")
                raise RuntimeError("abort")

        assert ("bucket", "obj") not in memory_client.objects

    @pytest.mark.unit
    async def test_does_not_exist_prevents_overwrite(self, memory_client):
        await put(memory_client, "obj", b"first", Conditions(does_not_exist=True))

        with pytest.raises(PreconditionFailedError):
            await put(memory_client, "obj", b"second", Conditions(does_not_exist=True))

        assert memory_client.objects[("bucket", "obj")][1] == b"first"

    @pytest.mark.unit
    async def test_generation_changes_on_overwrite(self, memory_client):
        first = await put(memory_client, "obj", b"one")
        second = await put(memory_client, "obj", b"two", Conditions(generation_match=first.generation))

        assert second.generation > first.generation
        with pytest.raises(PreconditionFailedError):
            await memory_client.delete_object("bucket", "obj", conds=Conditions(generation_match=first.generation))

    @pytest.mark.unit
    async def test_update_object_metadata(self, memory_client):
        await put(memory_client, "obj", b"data")

        updated = await memory_client.update_object(
            "bucket", "obj", ObjectAttrsToUpdate(content_type="text/plain"), conds=Conditions(metageneration_match=1)
        )

        assert updated.content_type == "text/plain"
        assert updated.metageneration == 2
        assert updated.size == 4

    @pytest.mark.unit
    async def test_list_objects_with_prefix_and_offsets(self, memory_client):
        for name in ("a/1", "a/2", "a/3", "b/1"):
            await put(memory_client, name, b"")

        names = [o.name async for o in memory_client.list_objects("bucket", query=Query(prefix="a/", start_offset="a/2"))]

        assert names == ["a/2", "a/3"]

    @pytest.mark.unit
    async def test_list_objects_in_missing_bucket(self, memory_client):
        with pytest.raises(NotFoundError):
            await memory_client.list_objects("missing").collect()

    @pytest.mark.unit
    async def test_compose(self, memory_client):
        await put(memory_client, "part-1", b"hello ")
        await put(memory_client, "part-2", b"world")

        attrs = await memory_client.compose_object(
            ComposeObjectRequest("bucket", "joined", (ComposeSource("part-1"), ComposeSource("part-2")))
        )

        assert attrs.size == 11
        assert memory_client.objects[("bucket", "joined")][1] == b"hello world"


class TestInstrumentation:
    """Test recorded settings, injected errors and unsupported operations."""

    @pytest.mark.unit
    async def test_calls_record_resolved_settings(self):
        client = InMemoryStorageClient("billing", idempotent(False))
        await client.create_bucket("project", BucketAttrs(name="b"), idempotent(True))
        await client.get_bucket("b")

        assert [(method, settings.idempotent) for method, settings in client.calls] == [
            ("create_bucket", True),
            ("get_bucket", False),
        ]
        assert client.settings.idempotent is False

    @pytest.mark.unit
    async def test_options_follow_positional_arguments(self, memory_client):
        await memory_client.get_bucket("bucket", idempotent(True))
        memory_client.list_buckets("project", idempotent(True))

        assert [(method, settings.idempotent) for method, settings in memory_client.calls][-2:] == [
            ("get_bucket", True),
            ("list_buckets", True),
        ]

    @pytest.mark.unit
    async def test_injected_errors_are_normalized(self, memory_client):
        memory_client.inject_error("get_bucket", httpx.ConnectError("connection refused"))

        with pytest.raises(NetworkError):
            await memory_client.get_bucket("bucket")

        # Only the next call fails
        assert (await memory_client.get_bucket("bucket")).name == "bucket"

    @pytest.mark.unit
    async def test_unsupported_operations(self, memory_client):
        with pytest.raises(UnimplementedError) as exc_info:
            await memory_client.list_bucket_acls("bucket")

        assert exc_info.value.method == "list_bucket_acls"
        assert exc_info.value.transport == "in-memory"
