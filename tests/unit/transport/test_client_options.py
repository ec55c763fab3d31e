"""Tests for HTTP client construction options."""

import httpx
import pytest

from storage_client_core.transport.client_options import (
    ClientConfig,
    build_client_config,
    with_endpoint,
    with_event_hook,
    with_headers,
    with_http_client,
    with_timeout,
    with_transport,
)


async def hook_a(request):
    pass


async def hook_b(request):
    pass


@pytest.mark.unit
def test_empty_options_give_defaults():
    config = build_client_config(())

    assert config == ClientConfig()
    assert config.event_hooks == {"request": [], "response": []}


@pytest.mark.unit
def test_last_scalar_option_wins():
    config = build_client_config(
        (with_endpoint("http://a/"), with_timeout(5.0), with_endpoint("http://b/"), with_timeout(1.0))
    )

    assert config.endpoint == "http://b/"
    assert config.timeout == 1.0


@pytest.mark.unit
def test_headers_merge_in_order():
    config = build_client_config(
        (with_headers({"X-A": "1", "X-B": "1"}), with_headers({"X-B": "2"}))
    )

    assert config.headers == {"X-A": "1", "X-B": "2"}


@pytest.mark.unit
def test_event_hooks_chain_in_order():
    config = build_client_config(
        (
            with_event_hook("request", hook_a),
            with_event_hook("response", hook_b),
            with_event_hook("request", hook_b),
        )
    )

    assert config.event_hooks["request"] == [hook_a, hook_b]
    assert config.event_hooks["response"] == [hook_b]


@pytest.mark.unit
def test_unknown_event_hook_kind():
    with pytest.raises(ValueError, match="Unknown event hook kind"):
        with_event_hook("error", hook_a)


@pytest.mark.unit
def test_configs_do_not_share_state():
    """Building twice from the same options gives independent configs."""
    opts = (with_headers({"X-A": "1"}), with_event_hook("request", hook_a))

    first = build_client_config(opts)
    first.headers["X-B"] = "2"
    first.event_hooks["request"].append(hook_b)
    second = build_client_config(opts)

    assert second.headers == {"X-A": "1"}
    assert second.event_hooks["request"] == [hook_a]


@pytest.mark.unit
async def test_transport_and_http_client():
    transport = httpx.MockTransport(lambda request: httpx.Response(204))
    http_client = httpx.AsyncClient(transport=transport)

    config = build_client_config((with_transport(transport), with_http_client(http_client)))

    assert config.transport is transport
    assert config.http_client is http_client
    await http_client.aclose()
