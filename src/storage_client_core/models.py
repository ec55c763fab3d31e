"""Value objects exchanged with storage transports.

These are plain immutable carriers. The caller-facing layer builds them, hands
them to a :class:`~storage_client_core.client.StorageClient` method once, and
transports turn them into whatever their wire protocol needs.
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# An ACL entity such as "user-alice@example.com", "group-admins@example.com",
# "domain-example.com", "project-owners-123", "allUsers" or "allAuthenticatedUsers".
ACLEntity = str

ALL_USERS: ACLEntity = "allUsers"
ALL_AUTHENTICATED_USERS: ACLEntity = "allAuthenticatedUsers"


class ACLRole(str, Enum):
    OWNER = "OWNER"
    READER = "READER"
    WRITER = "WRITER"


@dataclass(frozen=True)
class ACLRule:
    entity: ACLEntity
    role: ACLRole
    entity_id: str | None = None
    email: str | None = None
    domain: str | None = None


@dataclass(frozen=True)
class BucketConditions:
    """Metageneration preconditions for bucket operations."""

    metageneration_match: int | None = None
    metageneration_not_match: int | None = None

    def __post_init__(self):
        if self.metageneration_match is not None and self.metageneration_not_match is not None:
            raise ValueError("multiple conditions specified for metageneration")

    def is_idempotent(self) -> bool:
        return self.metageneration_match is not None


@dataclass(frozen=True)
class Conditions:
    """Generation and metageneration preconditions for object operations.

    Attributes:
        generation_match: Only act if the live object has this generation.
        generation_not_match: Only act if the live object does not have this generation.
        does_not_exist: Only act if there is no live object. Writes with this
            set never overwrite existing data.
        metageneration_match: Only act if the object metadata has this metageneration.
        metageneration_not_match: Only act if the metageneration differs.
    """

    generation_match: int | None = None
    generation_not_match: int | None = None
    does_not_exist: bool = False
    metageneration_match: int | None = None
    metageneration_not_match: int | None = None

    def __post_init__(self):
        generation_conds = [
            self.generation_match is not None,
            self.generation_not_match is not None,
            self.does_not_exist,
        ]
        if sum(generation_conds) > 1:
            raise ValueError("multiple conditions specified for generation")
        if self.metageneration_match is not None and self.metageneration_not_match is not None:
            raise ValueError("multiple conditions specified for metageneration")

    def is_idempotent(self) -> bool:
        """Whether a write guarded by these conditions can be repeated safely."""
        return self.generation_match is not None or self.does_not_exist

    def is_metageneration_idempotent(self) -> bool:
        """Whether a metadata update guarded by these conditions can be repeated safely."""
        return self.metageneration_match is not None


@dataclass(frozen=True)
class BucketAttrs:
    name: str
    location: str | None = None
    storage_class: str | None = None
    versioning_enabled: bool = False
    requester_pays: bool = False
    labels: Mapping[str, str] | None = None
    # Seconds; None when the bucket has no retention policy
    retention_period: int | None = None
    retention_policy_locked: bool = False
    default_event_based_hold: bool = False
    metageneration: int | None = None
    etag: str | None = None
    created: datetime | None = None


@dataclass(frozen=True)
class BucketAttrsToUpdate:
    """Bucket fields to patch. ``None`` leaves a field unchanged."""

    versioning_enabled: bool | None = None
    requester_pays: bool | None = None
    storage_class: str | None = None
    retention_period: int | None = None
    default_event_based_hold: bool | None = None
    set_labels: Mapping[str, str] | None = None
    delete_labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class ObjectAttrs:
    bucket: str
    name: str
    size: int = 0
    content_type: str | None = None
    content_encoding: str | None = None
    cache_control: str | None = None
    metadata: Mapping[str, str] | None = None
    generation: int | None = None
    metageneration: int | None = None
    storage_class: str | None = None
    md5_hash: str | None = None
    crc32c: str | None = None
    etag: str | None = None
    kms_key_name: str | None = None
    event_based_hold: bool = False
    temporary_hold: bool = False
    created: datetime | None = None
    updated: datetime | None = None


@dataclass(frozen=True)
class ObjectAttrsToUpdate:
    """Object metadata fields to patch. ``None`` leaves a field unchanged."""

    content_type: str | None = None
    content_encoding: str | None = None
    cache_control: str | None = None
    metadata: Mapping[str, str] | None = None
    event_based_hold: bool | None = None
    temporary_hold: bool | None = None


@dataclass(frozen=True)
class Query:
    """Filters for listing objects."""

    prefix: str | None = None
    delimiter: str | None = None
    versions: bool = False
    start_offset: str | None = None
    end_offset: str | None = None
    include_trailing_delimiter: bool = False


@dataclass(frozen=True)
class Binding:
    role: str
    members: tuple[str, ...] = ()


@dataclass(frozen=True)
class Policy:
    """An IAM policy attached to a bucket."""

    bindings: tuple[Binding, ...] = ()
    etag: str | None = None
    version: int = 1


class HMACKeyState(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"


@dataclass(frozen=True)
class HMACKey:
    access_id: str
    project_id: str
    service_account_email: str | None = None
    state: HMACKeyState = HMACKeyState.ACTIVE
    # Only populated by create_hmac_key
    secret: str | None = None
    etag: str | None = None
    created: datetime | None = None
    updated: datetime | None = None


@dataclass(frozen=True)
class HMACKeyDesc:
    """Identifies an HMAC key, or a set of keys when listing.

    ``service_account_email`` names the owner for create and filters listings.
    """

    project_id: str
    access_id: str | None = None
    user_project: str | None = None
    service_account_email: str | None = None
    show_deleted_keys: bool = False


@dataclass(frozen=True)
class HMACKeyAttrsToUpdate:
    state: HMACKeyState
    etag: str | None = None


@dataclass(frozen=True)
class ComposeSource:
    name: str
    generation: int | None = None
    generation_match: int | None = None


@dataclass(frozen=True)
class ComposeObjectRequest:
    """Concatenate ``sources`` from ``dst_bucket`` into ``dst_object``."""

    dst_bucket: str
    dst_object: str
    sources: tuple[ComposeSource, ...]
    dst_attrs: ObjectAttrs | None = None
    conds: Conditions | None = None
    predefined_acl: str | None = None


@dataclass(frozen=True)
class RewriteObjectRequest:
    """One step of a server-side copy.

    Large copies need several steps; pass the ``token`` of the previous
    response back in until the response says ``done``.
    """

    src_bucket: str
    src_object: str
    dst_bucket: str
    dst_object: str
    dst_kms_key_name: str | None = None
    dst_attrs: ObjectAttrs | None = None
    src_generation: int | None = None
    conds: Conditions | None = None
    predefined_acl: str | None = None
    token: str | None = None
    max_bytes_rewritten_per_call: int | None = None

    def with_token(self, token: str | None) -> "RewriteObjectRequest":
        return dataclasses.replace(self, token=token)


@dataclass(frozen=True)
class RewriteObjectResponse:
    """Result of one rewrite step.

    Attributes:
        resource: Attributes of the destination object, present once done.
        done: Whether the copy has finished.
        written: Total bytes rewritten so far.
        size: Total size of the source object.
        token: Continuation token for the next step; None once done.
    """

    done: bool
    written: int
    size: int = 0
    token: str | None = None
    resource: ObjectAttrs | None = None


@dataclass(frozen=True)
class ReaderParams:
    """Parameters for a streaming read.

    ``length`` of -1 reads to the end of the object.
    """

    bucket: str
    object: str
    generation: int | None = None
    offset: int = 0
    length: int = -1
    conds: Conditions | None = None


@dataclass(frozen=True)
class WriterParams:
    """Parameters for a streaming write. ``attrs`` names the destination."""

    attrs: ObjectAttrs
    conds: Conditions | None = None
    predefined_acl: str | None = None
