"""The transport-agnostic interface between the storage client library and its transports.

:class:`StorageClient` separates the transport-specific logic of making storage
API calls (HTTP/JSON, gRPC, in-memory fakes) from the logic of the library.

Requirements on implementations beyond overriding the methods:

* the constructor takes the billing ``user_project`` as an explicit argument;
* the resolved :class:`~storage_client_core.settings.Settings` are kept for the
  lifetime of the instance and never modified by a call;
* options are resolved in the order they are received;
* every failure of a remote call is raised as an
  :class:`~storage_client_core.errors.APIError` subclass;
* an operation the transport does not support raises
  :class:`~storage_client_core.errors.UnimplementedError`, which is what the
  inherited method bodies do.

Every operation is a coroutine. Cancel the awaiting task to abandon a call, and
pass ``with_call_options(CallOption(timeout=...))`` to give it a deadline.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from storage_client_core.errors import UnimplementedError
from storage_client_core.iterator import PageIterator
from storage_client_core.models import (
    ACLEntity,
    ACLRole,
    ACLRule,
    BucketAttrs,
    BucketAttrsToUpdate,
    BucketConditions,
    ComposeObjectRequest,
    Conditions,
    HMACKey,
    HMACKeyAttrsToUpdate,
    HMACKeyDesc,
    ObjectAttrs,
    ObjectAttrsToUpdate,
    Policy,
    Query,
    ReaderParams,
    RewriteObjectRequest,
    RewriteObjectResponse,
    WriterParams,
)
from storage_client_core.options import StorageOption
from storage_client_core.settings import Settings, call_settings, init_settings


class ObjectReader(ABC):
    """An open download of an object's content, consumed as byte chunks."""

    attrs: ObjectAttrs | None = None

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[bytes]: ...

    @abstractmethod
    async def aclose(self) -> None: ...

    async def read(self) -> bytes:
        """Read all remaining content."""
        chunks = [chunk async for chunk in self]
        return b"".join(chunks)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class ObjectWriter(ABC):
    """An open upload. Data is committed when the writer is closed."""

    attrs: ObjectAttrs | None = None

    @abstractmethod
    async def write(self, data: bytes) -> int: ...

    @abstractmethod
    async def close(self) -> ObjectAttrs:
        """Finish the upload and return the attributes of the new object."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # Nothing is committed if the block failed
        if exc_type is None:
            await self.close()


class StorageClient(ABC):
    """Base class for storage transports.

    Args:
        user_project: Project billed for requests (requester-pays buckets).
            Empty string when unused.
        *opts: Options resolved once into the client's default settings
    """

    transport_name = "abstract"

    def __init__(self, user_project: str, *opts: StorageOption):
        self.user_project = user_project
        self._settings = init_settings(*opts)

    @property
    def settings(self) -> Settings:
        """Default settings every call starts from."""
        return self._settings

    def _call_settings(self, *opts: StorageOption) -> Settings:
        return call_settings(self._settings, *opts)

    def _unimplemented(self, method: str) -> UnimplementedError:
        return UnimplementedError(method, self.transport_name)

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # Top-level methods.

    async def get_service_account(self, project: str, *opts: StorageOption) -> str:
        raise self._unimplemented("get_service_account")

    async def create_bucket(self, project: str, attrs: BucketAttrs, *opts: StorageOption) -> BucketAttrs:
        raise self._unimplemented("create_bucket")

    def list_buckets(self, project: str, *opts: StorageOption, prefix: str | None = None) -> PageIterator[BucketAttrs]:
        raise self._unimplemented("list_buckets")

    # Bucket methods.

    async def delete_bucket(self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None) -> None:
        raise self._unimplemented("delete_bucket")

    async def get_bucket(
        self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None
    ) -> BucketAttrs:
        raise self._unimplemented("get_bucket")

    async def update_bucket(
        self,
        bucket: str,
        uattrs: BucketAttrsToUpdate,
        *opts: StorageOption,
        conds: BucketConditions | None = None,
    ) -> BucketAttrs:
        raise self._unimplemented("update_bucket")

    async def lock_bucket_retention_policy(
        self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None
    ) -> None:
        raise self._unimplemented("lock_bucket_retention_policy")

    def list_objects(self, bucket: str, *opts: StorageOption, query: Query | None = None) -> PageIterator[ObjectAttrs]:
        raise self._unimplemented("list_objects")

    # Object metadata methods.

    async def delete_object(
        self, bucket: str, object: str, *opts: StorageOption, conds: Conditions | None = None
    ) -> None:
        raise self._unimplemented("delete_object")

    async def get_object(
        self, bucket: str, object: str, *opts: StorageOption, conds: Conditions | None = None
    ) -> ObjectAttrs:
        raise self._unimplemented("get_object")

    async def update_object(
        self,
        bucket: str,
        object: str,
        uattrs: ObjectAttrsToUpdate,
        *opts: StorageOption,
        conds: Conditions | None = None,
    ) -> ObjectAttrs:
        raise self._unimplemented("update_object")

    # Default Object ACL methods.

    async def delete_default_object_acl(self, bucket: str, entity: ACLEntity, *opts: StorageOption) -> None:
        raise self._unimplemented("delete_default_object_acl")

    async def list_default_object_acls(self, bucket: str, *opts: StorageOption) -> list[ACLRule]:
        raise self._unimplemented("list_default_object_acls")

    async def update_default_object_acl(
        self, bucket: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption
    ) -> ACLRule:
        raise self._unimplemented("update_default_object_acl")

    # Bucket ACL methods.

    async def delete_bucket_acl(self, bucket: str, entity: ACLEntity, *opts: StorageOption) -> None:
        raise self._unimplemented("delete_bucket_acl")

    async def list_bucket_acls(self, bucket: str, *opts: StorageOption) -> list[ACLRule]:
        raise self._unimplemented("list_bucket_acls")

    async def update_bucket_acl(self, bucket: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption) -> ACLRule:
        raise self._unimplemented("update_bucket_acl")

    # Object ACL methods.

    async def delete_object_acl(self, bucket: str, object: str, entity: ACLEntity, *opts: StorageOption) -> None:
        raise self._unimplemented("delete_object_acl")

    async def list_object_acls(self, bucket: str, object: str, *opts: StorageOption) -> list[ACLRule]:
        raise self._unimplemented("list_object_acls")

    async def update_object_acl(
        self, bucket: str, object: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption
    ) -> ACLRule:
        raise self._unimplemented("update_object_acl")

    # Media operations.

    async def compose_object(self, req: ComposeObjectRequest, *opts: StorageOption) -> ObjectAttrs:
        raise self._unimplemented("compose_object")

    async def rewrite_object(self, req: RewriteObjectRequest, *opts: StorageOption) -> RewriteObjectResponse:
        """Perform one step of a server-side copy. See :mod:`storage_client_core.rewrite`."""
        raise self._unimplemented("rewrite_object")

    async def open_reader(self, params: ReaderParams, *opts: StorageOption) -> ObjectReader:
        raise self._unimplemented("open_reader")

    async def open_writer(self, params: WriterParams, *opts: StorageOption) -> ObjectWriter:
        raise self._unimplemented("open_writer")

    # IAM methods.

    async def get_iam_policy(self, resource: str, version: int, *opts: StorageOption) -> Policy:
        raise self._unimplemented("get_iam_policy")

    async def set_iam_policy(self, resource: str, policy: Policy, *opts: StorageOption) -> None:
        raise self._unimplemented("set_iam_policy")

    async def test_iam_permissions(self, resource: str, permissions: list[str], *opts: StorageOption) -> list[str]:
        raise self._unimplemented("test_iam_permissions")

    # HMAC Key methods.

    async def get_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> HMACKey:
        raise self._unimplemented("get_hmac_key")

    def list_hmac_keys(self, desc: HMACKeyDesc, *opts: StorageOption) -> PageIterator[HMACKey]:
        raise self._unimplemented("list_hmac_keys")

    async def update_hmac_key(
        self, desc: HMACKeyDesc, attrs: HMACKeyAttrsToUpdate, *opts: StorageOption
    ) -> HMACKey:
        raise self._unimplemented("update_hmac_key")

    async def create_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> HMACKey:
        raise self._unimplemented("create_hmac_key")

    async def delete_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> None:
        raise self._unimplemented("delete_hmac_key")
