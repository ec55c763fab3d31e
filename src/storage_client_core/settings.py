"""Transport-agnostic settings for calls made through the StorageClient interface.

A client holds one default :class:`Settings` for its lifetime. Each call
derives its own copy with :func:`call_settings`, so the defaults are never a
write target and concurrent calls on one client do not interfere.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storage_client_core.options import CallOption, StorageOption
    from storage_client_core.transport.client_options import ClientOption
    from storage_client_core.transport.retry import RetryConfig


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for a client or a single call.

    All transports must honour the settings that apply to them.

    Attributes:
        retry: Complete retry configuration used to decide whether a failed
            call is retried. ``None`` means the transport default.
        call_options: Low-level options conveyed to each remote call.
        idempotent: Whether the call is safe to retry.
        client_options: Options used during transport initialization. Only
            meaningful in the settings a client is constructed with.
    """

    retry: "RetryConfig | None" = None
    call_options: tuple["CallOption", ...] = ()
    idempotent: bool = False
    client_options: tuple["ClientOption", ...] = ()


def init_settings(*opts: "StorageOption") -> Settings:
    """Create settings from scratch with ``opts`` applied."""
    return resolve_options(Settings(), *opts)


def resolve_options(settings: Settings, *opts: "StorageOption") -> Settings:
    """Apply ``opts`` onto ``settings`` in order; the last write to a field wins."""
    for opt in opts:
        settings = opt.apply(settings)
    return settings


def call_settings(defaults: Settings | None, *opts: "StorageOption") -> Settings | None:
    """Resolve call options against client defaults for a single call.

    The defaults are left untouched. Fields holding references (retry config,
    option tuples) are shared with the result rather than copied; options
    always replace those fields instead of modifying them.

    Returns ``None`` when there are no defaults.

    Example: ``s = call_settings(client.settings, *opts)``
    """
    if defaults is None:
        return None
    return resolve_options(defaults, *opts)
