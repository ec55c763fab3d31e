"""Tests for the rewrite state machine."""

import logging

import pytest

from storage_client_core.errors import APIError, NotFoundError, RewriteCompleteError
from storage_client_core.models import ObjectAttrs, RewriteObjectRequest, RewriteObjectResponse, WriterParams
from storage_client_core.options import idempotent
from storage_client_core.rewrite import Rewriter, RewriteState


async def put_object(client, bucket: str, name: str, data: bytes) -> ObjectAttrs:
    writer = await client.open_writer(WriterParams(ObjectAttrs(bucket=bucket, name=name)))
    await writer.write(data)
    return await writer.close()


class ScriptedClient:
    """Stands in for a transport, replaying canned rewrite responses."""

    def __init__(self, responses: list[RewriteObjectResponse]):
        self.responses = list(responses)
        self.requests: list[RewriteObjectRequest] = []

    async def rewrite_object(self, req, *opts):
        self.requests.append(req)
        return self.responses.pop(0)


@pytest.mark.unit
async def test_rewrite_reaches_done_with_monotonic_progress(memory_client):
    """Repeated steps with the returned token finish with non-decreasing bytes written."""
    memory_client.rewrite_chunk_size = 10
    data = bytes(range(95))
    await put_object(memory_client, "bucket", "src", data)

    rewriter = Rewriter(memory_client, RewriteObjectRequest("bucket", "src", "bucket", "dst"))
    assert rewriter.state is RewriteState.PENDING

    progress = []
    steps = 0
    while rewriter.state is not RewriteState.DONE:
        resp = await rewriter.advance()
        progress.append(resp.written)
        steps += 1
        if not resp.done:
            assert resp.token
            assert rewriter.state is RewriteState.IN_PROGRESS
        assert steps < 100

    assert progress == sorted(progress)
    assert progress[-1] == len(data)
    assert steps == 10
    assert rewriter.resource.name == "dst"
    assert rewriter.token is None
    assert memory_client.objects[("bucket", "dst")][1] == data


@pytest.mark.unit
async def test_each_advance_is_exactly_one_call():
    client = ScriptedClient(
        [
            RewriteObjectResponse(done=False, written=5, size=10, token="t1"),
            RewriteObjectResponse(done=True, written=10, size=10, resource=ObjectAttrs(bucket="b", name="o")),
        ]
    )
    rewriter = Rewriter(client, RewriteObjectRequest("a", "x", "b", "o"))

    await rewriter.advance()

    assert len(client.requests) == 1
    assert client.requests[0].token is None
    assert rewriter.token == "t1"
    assert rewriter.written == 5

    await rewriter.advance()

    assert client.requests[1].token == "t1"
    assert rewriter.state is RewriteState.DONE


@pytest.mark.unit
async def test_advance_after_done_raises():
    client = ScriptedClient([RewriteObjectResponse(done=True, written=1, size=1, resource=ObjectAttrs("b", "o"))])
    rewriter = Rewriter(client, RewriteObjectRequest("a", "x", "b", "o"))
    await rewriter.advance()

    with pytest.raises(RewriteCompleteError):
        await rewriter.advance()


@pytest.mark.unit
async def test_resuming_from_token_starts_in_progress():
    client = ScriptedClient([RewriteObjectResponse(done=True, written=4, size=4, resource=ObjectAttrs("b", "o"))])
    rewriter = Rewriter(client, RewriteObjectRequest("a", "x", "b", "o", token="saved"))

    assert rewriter.state is RewriteState.IN_PROGRESS

    await rewriter.advance()

    assert client.requests[0].token == "saved"


@pytest.mark.unit
async def test_run_loops_until_done(memory_client):
    memory_client.rewrite_chunk_size = 3
    await put_object(memory_client, "bucket", "src", b"0123456789")

    resource = await Rewriter(memory_client, RewriteObjectRequest("bucket", "src", "bucket", "copy")).run(
        idempotent(True)
    )

    assert resource.size == 10
    rewrite_calls = [settings for method, settings in memory_client.calls if method == "rewrite_object"]
    assert len(rewrite_calls) == 4
    assert all(settings.idempotent for settings in rewrite_calls)


@pytest.mark.unit
async def test_backwards_progress_is_logged(caplog):
    client = ScriptedClient(
        [
            RewriteObjectResponse(done=False, written=8, size=10, token="t1"),
            RewriteObjectResponse(done=False, written=6, size=10, token="t2"),
            RewriteObjectResponse(done=True, written=10, size=10, resource=ObjectAttrs("b", "o")),
        ]
    )

    with caplog.at_level(logging.WARNING, logger="storage_client_core.rewrite"):
        await Rewriter(client, RewriteObjectRequest("a", "x", "b", "o")).run()

    assert "went backwards" in caplog.text


@pytest.mark.unit
async def test_rewrite_errors_propagate(memory_client):
    rewriter = Rewriter(memory_client, RewriteObjectRequest("bucket", "missing", "bucket", "dst"))

    with pytest.raises(NotFoundError):
        await rewriter.advance()

    assert rewriter.state is RewriteState.PENDING


@pytest.mark.unit
async def test_unfinished_step_without_token_stops_the_loop():
    client = ScriptedClient(
        [
            RewriteObjectResponse(done=False, written=5, size=10, token="t1"),
            RewriteObjectResponse(done=False, written=7, size=10, token=None),
        ]
    )
    rewriter = Rewriter(client, RewriteObjectRequest("a", "x", "b", "o"))

    with pytest.raises(APIError, match="without a rewrite token"):
        await rewriter.run()

    assert len(client.requests) == 2
    assert rewriter.state is RewriteState.IN_PROGRESS
    assert rewriter.token == "t1"
