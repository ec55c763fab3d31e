"""Options applied while constructing a transport's HTTP client.

Options are applied in the order given, and the order is significant: headers
merge with later keys winning, and event hooks are chained in the order they
were added, so the first hook sees a request first.

Example:
    ```python
    from storage_client_core.options import with_client_options
    from storage_client_core.transport.client_options import with_endpoint, with_event_hook
    from storage_client_core.transport.http import HTTPStorageClient

    async def log_request(request):
        print(request.method, request.url)

    client = HTTPStorageClient(
        "billing-project",
        with_client_options(
            with_endpoint("http://localhost:4443/storage/v1/"),
            with_event_hook("request", log_request),
        ),
    )
    ```
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

import httpx

EventHook = Callable[..., Awaitable[None]]

EVENT_HOOK_KINDS: frozenset[str] = frozenset(["request", "response"])


@dataclass
class ClientConfig:
    """Transport construction parameters accumulated from ClientOptions."""

    endpoint: str | None = None
    http_client: httpx.AsyncClient | None = None
    transport: httpx.AsyncBaseTransport | None = None
    headers: dict[str, str] = field(default_factory=dict)
    event_hooks: dict[str, list[EventHook]] = field(default_factory=lambda: {"request": [], "response": []})
    timeout: float | None = None


class ClientOption(ABC):
    """One step of transport construction."""

    @abstractmethod
    def apply(self, config: ClientConfig) -> None: ...


@dataclass(frozen=True)
class EndpointOption(ClientOption):
    endpoint: str

    def apply(self, config: ClientConfig) -> None:
        config.endpoint = self.endpoint


@dataclass(frozen=True)
class HTTPClientOption(ClientOption):
    http_client: httpx.AsyncClient

    def apply(self, config: ClientConfig) -> None:
        config.http_client = self.http_client


@dataclass(frozen=True)
class TransportOption(ClientOption):
    transport: httpx.AsyncBaseTransport

    def apply(self, config: ClientConfig) -> None:
        config.transport = self.transport


@dataclass(frozen=True)
class HeadersOption(ClientOption):
    headers: tuple[tuple[str, str], ...]

    def apply(self, config: ClientConfig) -> None:
        config.headers.update(self.headers)


@dataclass(frozen=True)
class EventHookOption(ClientOption):
    kind: str
    hook: EventHook

    def apply(self, config: ClientConfig) -> None:
        config.event_hooks[self.kind].append(self.hook)


@dataclass(frozen=True)
class TimeoutOption(ClientOption):
    timeout: float

    def apply(self, config: ClientConfig) -> None:
        config.timeout = self.timeout


def with_endpoint(endpoint: str) -> ClientOption:
    """Base URL of the JSON API, e.g. ``https://storage.googleapis.com/storage/v1/``."""
    return EndpointOption(endpoint)


def with_http_client(http_client: httpx.AsyncClient) -> ClientOption:
    """Use a caller-owned httpx client. The transport will not close it."""
    return HTTPClientOption(http_client)


def with_transport(transport: httpx.AsyncBaseTransport) -> ClientOption:
    """Send requests through ``transport`` (e.g. a retrying or mock transport)."""
    return TransportOption(transport)


def with_headers(headers: Mapping[str, str]) -> ClientOption:
    """Add default headers sent with every request."""
    return HeadersOption(tuple((str(k), str(v)) for k, v in headers.items()))


def with_event_hook(kind: str, hook: EventHook) -> ClientOption:
    """Chain an httpx event hook (``"request"`` or ``"response"``)."""
    if kind not in EVENT_HOOK_KINDS:
        raise ValueError(f"Unknown event hook kind {kind!r}; expected one of {sorted(EVENT_HOOK_KINDS)}")
    return EventHookOption(kind, hook)


def with_timeout(timeout: float) -> ClientOption:
    """Per-request network timeout in seconds."""
    return TimeoutOption(timeout)


def build_client_config(opts: tuple[ClientOption, ...]) -> ClientConfig:
    """Apply ``opts`` in order onto a fresh ClientConfig."""
    config = ClientConfig()
    for opt in opts:
        opt.apply(config)
    return config
