"""Transport-agnostic call options for the StorageClient interface.

Each option writes exactly one field of a :class:`~storage_client_core.settings.Settings`
and never reads the others. Options are applied in the order given, so the last
option touching a field wins.

Options never modify a field's value in place. Sequence payloads are stored as
tuples and replace the field wholesale, which is what lets call-scoped settings
share references with the client defaults.

Example:
    ```python
    from storage_client_core.options import idempotent, with_call_options, with_retry_config, CallOption
    from storage_client_core.transport.retry import RetryConfig, RetryPolicy

    attrs = await client.get_bucket(
        "my-bucket",
        with_retry_config(RetryConfig(policy=RetryPolicy.RETRY_ALWAYS)),
        with_call_options(CallOption(timeout=10.0)),
        idempotent(True),
    )
    ```
"""

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storage_client_core.settings import Settings
    from storage_client_core.transport.client_options import ClientOption
    from storage_client_core.transport.retry import RetryConfig


@dataclass(frozen=True)
class CallOption:
    """Low-level options conveyed to a single remote call.

    Attributes:
        timeout: Deadline for the whole call, retries included, in seconds.
        headers: Extra request headers.
    """

    timeout: float | None = None
    headers: Mapping[str, str] | None = None


class StorageOption(ABC):
    """A single configuration write applied to Settings."""

    @abstractmethod
    def apply(self, settings: "Settings") -> "Settings":
        """Return ``settings`` with this option's field replaced."""


@dataclass(frozen=True)
class CallOptionsOption(StorageOption):
    opts: tuple[CallOption, ...]

    def apply(self, settings: "Settings") -> "Settings":
        return dataclasses.replace(settings, call_options=self.opts)


@dataclass(frozen=True)
class RetryOption(StorageOption):
    config: "RetryConfig | None"

    def apply(self, settings: "Settings") -> "Settings":
        return dataclasses.replace(settings, retry=self.config)


@dataclass(frozen=True)
class IdempotentOption(StorageOption):
    idempotent: bool

    def apply(self, settings: "Settings") -> "Settings":
        return dataclasses.replace(settings, idempotent=self.idempotent)


@dataclass(frozen=True)
class ClientOptionsOption(StorageOption):
    opts: tuple["ClientOption", ...]

    def apply(self, settings: "Settings") -> "Settings":
        return dataclasses.replace(settings, client_options=self.opts)


def with_call_options(*opts: CallOption) -> StorageOption:
    """Set the low-level call options for a call."""
    return CallOptionsOption(tuple(opts))


def with_retry_config(config: "RetryConfig | None") -> StorageOption:
    """Set the retry configuration. ``None`` falls back to the transport default."""
    return RetryOption(config)


def idempotent(flag: bool) -> StorageOption:
    """Mark whether the call is safe to retry automatically."""
    return IdempotentOption(flag)


def with_client_options(*opts: "ClientOption") -> StorageOption:
    """Set the options used to construct the transport. Order is preserved."""
    return ClientOptionsOption(tuple(opts))


def merge_call_options(opts: tuple[CallOption, ...]) -> CallOption:
    """Fold a sequence of call options into one.

    Later timeouts win; headers are merged with later keys winning.
    """
    timeout = None
    headers: dict[str, str] = {}
    for opt in opts:
        if opt.timeout is not None:
            timeout = opt.timeout
        if opt.headers:
            headers.update(opt.headers)
    return CallOption(timeout=timeout, headers=headers or None)
