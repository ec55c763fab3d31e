"""StorageClient implementation for the storage JSON API over httpx.

Every operation resolves its options into call-scoped settings, runs the
request through :func:`~storage_client_core.transport.retry.run_with_retry`
under the call deadline, and raises failures as
:class:`~storage_client_core.errors.APIError` subclasses.

Example:
    ```python
    from storage_client_core.options import with_client_options
    from storage_client_core.transport.client_options import with_endpoint
    from storage_client_core.transport.http import HTTPStorageClient

    async with HTTPStorageClient("", with_client_options(with_endpoint(url))) as client:
        attrs = await client.get_bucket("my-bucket")
        async for obj in client.list_objects("my-bucket"):
            print(obj.name)
    ```
"""

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from storage_client_core.client import ObjectReader, ObjectWriter, StorageClient
from storage_client_core.config import ConfigResolver
from storage_client_core.errors import (
    APIError,
    DeadlineExceededError,
    error_from_response,
    raise_for_status,
    wrap_error,
)
from storage_client_core.iterator import PageIterator
from storage_client_core.models import (
    ACLEntity,
    ACLRole,
    ACLRule,
    Binding,
    BucketAttrs,
    BucketAttrsToUpdate,
    BucketConditions,
    ComposeObjectRequest,
    Conditions,
    HMACKey,
    HMACKeyAttrsToUpdate,
    HMACKeyDesc,
    HMACKeyState,
    ObjectAttrs,
    ObjectAttrsToUpdate,
    Policy,
    Query,
    ReaderParams,
    RewriteObjectRequest,
    RewriteObjectResponse,
    WriterParams,
)
from storage_client_core.options import StorageOption, idempotent, merge_call_options
from storage_client_core.settings import Settings
from storage_client_core.transport.client_options import ClientConfig, build_client_config
from storage_client_core.transport.retry import run_with_retry

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://storage.googleapis.com/storage/v1/"
EMULATOR_HOST_ENV_VAR = "STORAGE_EMULATOR_HOST"
USER_AGENT = "storage-client-core/0.1.0"


def _path(segment: str) -> str:
    return quote(segment, safe="")


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# JSON <-> value object conversion


def bucket_from_json(data: dict[str, Any]) -> BucketAttrs:
    retention = data.get("retentionPolicy") or {}
    return BucketAttrs(
        name=data["name"],
        location=data.get("location"),
        storage_class=data.get("storageClass"),
        versioning_enabled=bool((data.get("versioning") or {}).get("enabled", False)),
        requester_pays=bool((data.get("billing") or {}).get("requesterPays", False)),
        labels=data.get("labels"),
        retention_period=_parse_int(retention.get("retentionPeriod")),
        retention_policy_locked=bool(retention.get("isLocked", False)),
        default_event_based_hold=bool(data.get("defaultEventBasedHold", False)),
        metageneration=_parse_int(data.get("metageneration")),
        etag=data.get("etag"),
        created=_parse_time(data.get("timeCreated")),
    )


def bucket_to_json(attrs: BucketAttrs) -> dict[str, Any]:
    data = _compact(
        {
            "name": attrs.name,
            "location": attrs.location,
            "storageClass": attrs.storage_class,
            "labels": dict(attrs.labels) if attrs.labels else None,
        }
    )
    if attrs.versioning_enabled:
        data["versioning"] = {"enabled": True}
    if attrs.requester_pays:
        data["billing"] = {"requesterPays": True}
    if attrs.retention_period is not None:
        data["retentionPolicy"] = {"retentionPeriod": str(attrs.retention_period)}
    if attrs.default_event_based_hold:
        data["defaultEventBasedHold"] = True
    return data


def bucket_update_to_json(uattrs: BucketAttrsToUpdate) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if uattrs.versioning_enabled is not None:
        data["versioning"] = {"enabled": uattrs.versioning_enabled}
    if uattrs.requester_pays is not None:
        data["billing"] = {"requesterPays": uattrs.requester_pays}
    if uattrs.storage_class is not None:
        data["storageClass"] = uattrs.storage_class
    if uattrs.retention_period is not None:
        data["retentionPolicy"] = {"retentionPeriod": str(uattrs.retention_period)}
    if uattrs.default_event_based_hold is not None:
        data["defaultEventBasedHold"] = uattrs.default_event_based_hold
    if uattrs.set_labels or uattrs.delete_labels:
        labels: dict[str, str | None] = dict(uattrs.set_labels or {})
        # A null label value deletes the label
        for key in uattrs.delete_labels:
            labels[key] = None
        data["labels"] = labels
    return data


def object_from_json(data: dict[str, Any]) -> ObjectAttrs:
    return ObjectAttrs(
        bucket=data["bucket"],
        name=data["name"],
        size=_parse_int(data.get("size")) or 0,
        content_type=data.get("contentType"),
        content_encoding=data.get("contentEncoding"),
        cache_control=data.get("cacheControl"),
        metadata=data.get("metadata"),
        generation=_parse_int(data.get("generation")),
        metageneration=_parse_int(data.get("metageneration")),
        storage_class=data.get("storageClass"),
        md5_hash=data.get("md5Hash"),
        crc32c=data.get("crc32c"),
        etag=data.get("etag"),
        kms_key_name=data.get("kmsKeyName"),
        event_based_hold=bool(data.get("eventBasedHold", False)),
        temporary_hold=bool(data.get("temporaryHold", False)),
        created=_parse_time(data.get("timeCreated")),
        updated=_parse_time(data.get("updated")),
    )


def object_to_json(attrs: ObjectAttrs) -> dict[str, Any]:
    data = _compact(
        {
            "bucket": attrs.bucket,
            "name": attrs.name,
            "contentType": attrs.content_type,
            "contentEncoding": attrs.content_encoding,
            "cacheControl": attrs.cache_control,
            "metadata": dict(attrs.metadata) if attrs.metadata else None,
            "storageClass": attrs.storage_class,
            "md5Hash": attrs.md5_hash,
            "crc32c": attrs.crc32c,
            "kmsKeyName": attrs.kms_key_name,
        }
    )
    if attrs.event_based_hold:
        data["eventBasedHold"] = True
    if attrs.temporary_hold:
        data["temporaryHold"] = True
    return data


def object_update_to_json(uattrs: ObjectAttrsToUpdate) -> dict[str, Any]:
    return _compact(
        {
            "contentType": uattrs.content_type,
            "contentEncoding": uattrs.content_encoding,
            "cacheControl": uattrs.cache_control,
            "metadata": dict(uattrs.metadata) if uattrs.metadata is not None else None,
            "eventBasedHold": uattrs.event_based_hold,
            "temporaryHold": uattrs.temporary_hold,
        }
    )


def acl_from_json(data: dict[str, Any]) -> ACLRule:
    return ACLRule(
        entity=data["entity"],
        role=ACLRole(data["role"]),
        entity_id=data.get("entityId"),
        email=data.get("email"),
        domain=data.get("domain"),
    )


def policy_from_json(data: dict[str, Any]) -> Policy:
    bindings = tuple(Binding(role=b["role"], members=tuple(b.get("members", []))) for b in data.get("bindings", []))
    return Policy(bindings=bindings, etag=data.get("etag"), version=int(data.get("version", 1)))


def policy_to_json(policy: Policy) -> dict[str, Any]:
    return _compact(
        {
            "bindings": [{"role": b.role, "members": list(b.members)} for b in policy.bindings],
            "etag": policy.etag,
            "version": policy.version,
        }
    )


def hmac_key_from_json(data: dict[str, Any], secret: str | None = None) -> HMACKey:
    return HMACKey(
        access_id=data["accessId"],
        project_id=data["projectId"],
        service_account_email=data.get("serviceAccountEmail"),
        state=HMACKeyState(data.get("state", "ACTIVE")),
        secret=secret,
        etag=data.get("etag"),
        created=_parse_time(data.get("timeCreated")),
        updated=_parse_time(data.get("updated")),
    )


def rewrite_response_from_json(data: dict[str, Any]) -> RewriteObjectResponse:
    done = bool(data.get("done", False))
    return RewriteObjectResponse(
        done=done,
        written=_parse_int(data.get("totalBytesRewritten")) or 0,
        size=_parse_int(data.get("objectSize")) or 0,
        token=None if done else data.get("rewriteToken"),
        resource=object_from_json(data["resource"]) if data.get("resource") else None,
    )


def decode_response(response: httpx.Response, decode: Callable[[dict[str, Any]], Any] | None = None) -> Any:
    """Parse a successful response body, optionally converting it with ``decode``.

    A body that is not a JSON object, or that ``decode`` rejects, is raised as
    :class:`~storage_client_core.errors.APIError` carrying the response.
    """
    try:
        data = response.json() if response.content else {}
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        return decode(data) if decode is not None else data
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise APIError(
            f"Malformed response body ({type(e).__name__}: {e})",
            status_code=response.status_code,
            response=response,
        ) from e


def _page(convert: Callable[[dict[str, Any]], Any]) -> Callable[[dict[str, Any]], tuple[list[Any], str | None]]:
    def decode(data: dict[str, Any]) -> tuple[list[Any], str | None]:
        return [convert(item) for item in data.get("items", [])], data.get("nextPageToken")

    return decode


def object_conditions_params(conds: Conditions | None) -> dict[str, Any]:
    if conds is None:
        return {}
    params: dict[str, Any] = {
        "ifGenerationMatch": conds.generation_match,
        "ifGenerationNotMatch": conds.generation_not_match,
        "ifMetagenerationMatch": conds.metageneration_match,
        "ifMetagenerationNotMatch": conds.metageneration_not_match,
    }
    if conds.does_not_exist:
        params["ifGenerationMatch"] = 0
    return _compact(params)


def bucket_conditions_params(conds: BucketConditions | None) -> dict[str, Any]:
    if conds is None:
        return {}
    return _compact(
        {
            "ifMetagenerationMatch": conds.metageneration_match,
            "ifMetagenerationNotMatch": conds.metageneration_not_match,
        }
    )


def _is_idempotent(conds: Conditions | None) -> bool:
    return conds is not None and conds.is_idempotent()


class HTTPObjectReader(ObjectReader):
    """Streams the body of an ``alt=media`` download."""

    def __init__(self, response: httpx.Response | None, attrs: ObjectAttrs):
        self._response = response
        self.attrs = attrs

    async def _chunks(self) -> AsyncIterator[bytes]:
        if self._response is None:
            return
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise wrap_error(e) from e
        finally:
            await self.aclose()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def aclose(self) -> None:
        if self._response is not None:
            await self._response.aclose()


class HTTPObjectWriter(ObjectWriter):
    """Buffers written data and uploads it in one multipart request on close."""

    def __init__(self, upload: Callable[[bytes], Awaitable[ObjectAttrs]]):
        self._upload = upload
        self._buffer = bytearray()
        self._closed = False

    async def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed writer")
        self._buffer.extend(data)
        return len(data)

    async def close(self) -> ObjectAttrs:
        if self._closed:
            if self.attrs is None:
                raise ValueError("writer already closed")
            return self.attrs
        self._closed = True
        self.attrs = await self._upload(bytes(self._buffer))
        return self.attrs


class HTTPStorageClient(StorageClient):
    """StorageClient speaking the JSON API.

    Args:
        user_project: Project billed for requests; sent as ``userProject``
            when non-empty.
        *opts: Default settings. Client options among them configure the
            underlying httpx client, applied in order.
        resolver: Resolver used to read the emulator host from the
            environment. Defaults to a resolver that loads ``.env``.
    """

    transport_name = "http"

    def __init__(self, user_project: str, *opts: StorageOption, resolver: ConfigResolver | None = None):
        super().__init__(user_project, *opts)
        config = build_client_config(self.settings.client_options)
        self._endpoint = self._resolve_endpoint(config, resolver or ConfigResolver())
        self._upload_endpoint = self._derive_upload_endpoint(self._endpoint)

        if config.http_client is not None:
            self._http = config.http_client
            self._owns_http = False
        else:
            self._http = self._build_http_client(config)
            self._owns_http = True
        logger.debug(f"HTTP storage transport using endpoint {self._endpoint}")

    @staticmethod
    def _resolve_endpoint(config: ClientConfig, resolver: ConfigResolver) -> str:
        if config.endpoint is not None:
            endpoint = config.endpoint
        else:
            host = resolver.resolve(env_var_name=EMULATOR_HOST_ENV_VAR, mask_in_logs=False)
            if host:
                if "://" not in host:
                    host = f"http://{host}"
                endpoint = host.rstrip("/") + "/storage/v1/"
            else:
                endpoint = DEFAULT_ENDPOINT
        return endpoint if endpoint.endswith("/") else endpoint + "/"

    @staticmethod
    def _derive_upload_endpoint(endpoint: str) -> str:
        suffix = "storage/v1/"
        if endpoint.endswith(suffix):
            return endpoint[: -len(suffix)] + "upload/" + suffix
        return endpoint + "upload/"

    @staticmethod
    def _build_http_client(config: ClientConfig) -> httpx.AsyncClient:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        headers.update(config.headers)
        kwargs: dict[str, Any] = {
            "headers": headers,
            "event_hooks": {kind: list(hooks) for kind, hooks in config.event_hooks.items()},
        }
        if config.transport is not None:
            kwargs["transport"] = config.transport
        if config.timeout is not None:
            kwargs["timeout"] = config.timeout
        return httpx.AsyncClient(**kwargs)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # Request plumbing

    def _settings_for(self, opts: tuple[StorageOption, ...], safe: bool = False) -> Settings:
        # Operations that are safe to repeat default to idempotent; caller options still win
        if safe:
            return self._call_settings(idempotent(True), *opts)
        return self._call_settings(*opts)

    def _params(self, params: dict[str, Any] | None, user_project: str | None = None) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        project = user_project or self.user_project
        if project:
            merged["userProject"] = project
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            merged[key] = value
        return merged

    async def _invoke(self, settings: Settings, description: str, attempt: Callable[[], Awaitable[Any]]) -> Any:
        timeout = merge_call_options(settings.call_options).timeout
        try:
            async with asyncio.timeout(timeout):
                return await run_with_retry(
                    attempt,
                    retry=settings.retry,
                    idempotent=settings.idempotent,
                    description=description,
                )
        except TimeoutError as e:
            raise DeadlineExceededError(f"{description}: deadline of {timeout}s exceeded") from e

    async def _request(
        self,
        settings: Settings,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        base: str | None = None,
        user_project: str | None = None,
    ) -> httpx.Response:
        url = (base or self._endpoint) + path
        call_opts = merge_call_options(settings.call_options)
        request_headers = dict(call_opts.headers or {})
        request_headers.update(headers or {})
        query = self._params(params, user_project)

        async def attempt() -> httpx.Response:
            logger.debug(f"{method} {url}")
            response = await self._http.request(
                method, url, params=query, json=json_body, content=content, headers=request_headers
            )
            raise_for_status(response)
            return response

        return await self._invoke(settings, f"{method} {url}", attempt)

    async def _json(
        self,
        settings: Settings,
        method: str,
        path: str,
        decode: Callable[[dict[str, Any]], Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        response = await self._request(settings, method, path, **kwargs)
        return decode_response(response, decode)

    # Top-level methods.

    async def get_service_account(self, project: str, *opts: StorageOption) -> str:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings, "GET", f"projects/{_path(project)}/serviceAccount", decode=lambda data: data["email_address"]
        )

    async def create_bucket(self, project: str, attrs: BucketAttrs, *opts: StorageOption) -> BucketAttrs:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings, "POST", "b", decode=bucket_from_json, params={"project": project}, json_body=bucket_to_json(attrs)
        )

    def list_buckets(self, project: str, *opts: StorageOption, prefix: str | None = None) -> PageIterator[BucketAttrs]:
        settings = self._settings_for(opts, safe=True)

        async def fetch(token: str | None, page_size: int | None) -> tuple[list[BucketAttrs], str | None]:
            params = {"project": project, "prefix": prefix, "pageToken": token, "maxResults": page_size}
            return await self._json(settings, "GET", "b", decode=_page(bucket_from_json), params=params)

        return PageIterator(fetch)

    # Bucket methods.

    async def delete_bucket(self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None) -> None:
        settings = self._settings_for(opts, safe=True)
        await self._request(settings, "DELETE", f"b/{_path(bucket)}", params=bucket_conditions_params(conds))

    async def get_bucket(
        self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None
    ) -> BucketAttrs:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings, "GET", f"b/{_path(bucket)}", decode=bucket_from_json, params=bucket_conditions_params(conds)
        )

    async def update_bucket(
        self,
        bucket: str,
        uattrs: BucketAttrsToUpdate,
        *opts: StorageOption,
        conds: BucketConditions | None = None,
    ) -> BucketAttrs:
        settings = self._settings_for(opts, safe=conds is not None and conds.is_idempotent())
        return await self._json(
            settings,
            "PATCH",
            f"b/{_path(bucket)}",
            decode=bucket_from_json,
            params=bucket_conditions_params(conds),
            json_body=bucket_update_to_json(uattrs),
        )

    async def lock_bucket_retention_policy(
        self, bucket: str, *opts: StorageOption, conds: BucketConditions | None = None
    ) -> None:
        if conds is None or conds.metageneration_match is None:
            raise ValueError("lock_bucket_retention_policy requires a metageneration_match condition")
        settings = self._settings_for(opts, safe=True)
        await self._request(
            settings,
            "POST",
            f"b/{_path(bucket)}/lockRetentionPolicy",
            params=bucket_conditions_params(conds),
        )

    def list_objects(self, bucket: str, *opts: StorageOption, query: Query | None = None) -> PageIterator[ObjectAttrs]:
        settings = self._settings_for(opts, safe=True)
        query = query or Query()

        async def fetch(token: str | None, page_size: int | None) -> tuple[list[ObjectAttrs], str | None]:
            params = {
                "prefix": query.prefix,
                "delimiter": query.delimiter,
                "versions": query.versions or None,
                "startOffset": query.start_offset,
                "endOffset": query.end_offset,
                "includeTrailingDelimiter": query.include_trailing_delimiter or None,
                "pageToken": token,
                "maxResults": page_size,
            }
            path = f"b/{_path(bucket)}/o"
            return await self._json(settings, "GET", path, decode=_page(object_from_json), params=params)

        return PageIterator(fetch)

    # Object metadata methods.

    def _object_path(self, bucket: str, object: str) -> str:
        return f"b/{_path(bucket)}/o/{_path(object)}"

    async def delete_object(
        self, bucket: str, object: str, *opts: StorageOption, conds: Conditions | None = None
    ) -> None:
        settings = self._settings_for(opts, safe=_is_idempotent(conds))
        params = object_conditions_params(conds)
        await self._request(settings, "DELETE", self._object_path(bucket, object), params=params)

    async def get_object(
        self, bucket: str, object: str, *opts: StorageOption, conds: Conditions | None = None
    ) -> ObjectAttrs:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings,
            "GET",
            self._object_path(bucket, object),
            decode=object_from_json,
            params=object_conditions_params(conds),
        )

    async def update_object(
        self,
        bucket: str,
        object: str,
        uattrs: ObjectAttrsToUpdate,
        *opts: StorageOption,
        conds: Conditions | None = None,
    ) -> ObjectAttrs:
        settings = self._settings_for(opts, safe=conds is not None and conds.is_metageneration_idempotent())
        return await self._json(
            settings,
            "PATCH",
            self._object_path(bucket, object),
            decode=object_from_json,
            params=object_conditions_params(conds),
            json_body=object_update_to_json(uattrs),
        )

    # ACL methods share one shape: <resource>/<collection>[/<entity>]

    async def _delete_acl(self, path: str, entity: ACLEntity, opts: tuple[StorageOption, ...]) -> None:
        settings = self._settings_for(opts, safe=True)
        await self._request(settings, "DELETE", f"{path}/{_path(entity)}")

    async def _list_acls(self, path: str, opts: tuple[StorageOption, ...]) -> list[ACLRule]:
        settings = self._settings_for(opts, safe=True)
        items, _ = await self._json(settings, "GET", path, decode=_page(acl_from_json))
        return items

    async def _update_acl(
        self, path: str, entity: ACLEntity, role: ACLRole, opts: tuple[StorageOption, ...]
    ) -> ACLRule:
        settings = self._settings_for(opts, safe=True)
        body = {"entity": entity, "role": ACLRole(role).value}
        return await self._json(settings, "PUT", f"{path}/{_path(entity)}", decode=acl_from_json, json_body=body)

    async def delete_default_object_acl(self, bucket: str, entity: ACLEntity, *opts: StorageOption) -> None:
        await self._delete_acl(f"b/{_path(bucket)}/defaultObjectAcl", entity, opts)

    async def list_default_object_acls(self, bucket: str, *opts: StorageOption) -> list[ACLRule]:
        return await self._list_acls(f"b/{_path(bucket)}/defaultObjectAcl", opts)

    async def update_default_object_acl(
        self, bucket: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption
    ) -> ACLRule:
        return await self._update_acl(f"b/{_path(bucket)}/defaultObjectAcl", entity, role, opts)

    async def delete_bucket_acl(self, bucket: str, entity: ACLEntity, *opts: StorageOption) -> None:
        await self._delete_acl(f"b/{_path(bucket)}/acl", entity, opts)

    async def list_bucket_acls(self, bucket: str, *opts: StorageOption) -> list[ACLRule]:
        return await self._list_acls(f"b/{_path(bucket)}/acl", opts)

    async def update_bucket_acl(self, bucket: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption) -> ACLRule:
        return await self._update_acl(f"b/{_path(bucket)}/acl", entity, role, opts)

    async def delete_object_acl(self, bucket: str, object: str, entity: ACLEntity, *opts: StorageOption) -> None:
        await self._delete_acl(f"{self._object_path(bucket, object)}/acl", entity, opts)

    async def list_object_acls(self, bucket: str, object: str, *opts: StorageOption) -> list[ACLRule]:
        return await self._list_acls(f"{self._object_path(bucket, object)}/acl", opts)

    async def update_object_acl(
        self, bucket: str, object: str, entity: ACLEntity, role: ACLRole, *opts: StorageOption
    ) -> ACLRule:
        return await self._update_acl(f"{self._object_path(bucket, object)}/acl", entity, role, opts)

    # Media operations.

    async def compose_object(self, req: ComposeObjectRequest, *opts: StorageOption) -> ObjectAttrs:
        settings = self._settings_for(opts, safe=_is_idempotent(req.conds))
        destination = object_to_json(req.dst_attrs) if req.dst_attrs else {}
        destination.update({"bucket": req.dst_bucket, "name": req.dst_object})
        sources = []
        for src in req.sources:
            entry: dict[str, Any] = {"name": src.name}
            if src.generation is not None:
                entry["generation"] = str(src.generation)
            if src.generation_match is not None:
                entry["objectPreconditions"] = {"ifGenerationMatch": str(src.generation_match)}
            sources.append(entry)

        params = object_conditions_params(req.conds)
        params["destinationPredefinedAcl"] = req.predefined_acl
        return await self._json(
            settings,
            "POST",
            f"{self._object_path(req.dst_bucket, req.dst_object)}/compose",
            decode=object_from_json,
            params=params,
            json_body={"destination": destination, "sourceObjects": sources},
        )

    async def rewrite_object(self, req: RewriteObjectRequest, *opts: StorageOption) -> RewriteObjectResponse:
        settings = self._settings_for(opts, safe=_is_idempotent(req.conds))
        params = object_conditions_params(req.conds)
        params.update(
            {
                "rewriteToken": req.token,
                "sourceGeneration": req.src_generation,
                "destinationKmsKeyName": req.dst_kms_key_name,
                "destinationPredefinedAcl": req.predefined_acl,
                "maxBytesRewrittenPerCall": req.max_bytes_rewritten_per_call,
            }
        )
        path = (
            f"{self._object_path(req.src_bucket, req.src_object)}"
            f"/rewriteTo/{self._object_path(req.dst_bucket, req.dst_object)}"
        )
        body = object_to_json(req.dst_attrs) if req.dst_attrs else {}
        return await self._json(
            settings, "POST", path, decode=rewrite_response_from_json, params=params, json_body=body
        )

    async def open_reader(self, params: ReaderParams, *opts: StorageOption) -> ObjectReader:
        """Open a download. The call deadline covers opening the stream, not reading it."""
        if params.length == 0:
            return HTTPObjectReader(None, ObjectAttrs(bucket=params.bucket, name=params.object))

        settings = self._settings_for(opts, safe=True)
        url = self._endpoint + self._object_path(params.bucket, params.object)
        query = object_conditions_params(params.conds)
        query.update({"alt": "media", "generation": params.generation})
        query = self._params(query)

        headers = dict(merge_call_options(settings.call_options).headers or {})
        if params.offset > 0 or params.length > 0:
            end = str(params.offset + params.length - 1) if params.length > 0 else ""
            headers["Range"] = f"bytes={params.offset}-{end}"

        async def attempt() -> httpx.Response:
            logger.debug(f"GET {url} (media)")
            request = self._http.build_request("GET", url, params=query, headers=headers)
            response = await self._http.send(request, stream=True)
            if not response.is_success:
                await response.aread()
                await response.aclose()
                raise error_from_response(response)
            return response

        response = await self._invoke(settings, f"GET {url}", attempt)
        try:
            attrs = ObjectAttrs(
                bucket=params.bucket,
                name=params.object,
                size=_parse_int(response.headers.get("content-length")) or 0,
                content_type=response.headers.get("content-type"),
                content_encoding=response.headers.get("content-encoding"),
                generation=_parse_int(response.headers.get("x-goog-generation")),
                metageneration=_parse_int(response.headers.get("x-goog-metageneration")),
            )
        except ValueError as e:
            await response.aclose()
            raise APIError(
                f"Malformed download headers ({e})", status_code=response.status_code, response=response
            ) from e
        return HTTPObjectReader(response, attrs)

    async def open_writer(self, params: WriterParams, *opts: StorageOption) -> ObjectWriter:
        settings = self._settings_for(opts, safe=_is_idempotent(params.conds))
        attrs = params.attrs

        async def upload(data: bytes) -> ObjectAttrs:
            boundary = f"storage_client_core_{uuid.uuid4().hex}"
            metadata = json.dumps(object_to_json(attrs))
            media_type = attrs.content_type or "application/octet-stream"
            body = (
                f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n{metadata}\r\n"
                f"--{boundary}\r\nContent-Type: {media_type}\r\n\r\n"
            ).encode() + data + f"\r\n--{boundary}--\r\n".encode()

            query = object_conditions_params(params.conds)
            query.update({"uploadType": "multipart", "predefinedAcl": params.predefined_acl})
            return await self._json(
                settings,
                "POST",
                f"b/{_path(attrs.bucket)}/o",
                decode=object_from_json,
                params=query,
                content=body,
                headers={"Content-Type": f"multipart/related; boundary={boundary}"},
                base=self._upload_endpoint,
            )

        return HTTPObjectWriter(upload)

    # IAM methods.

    async def get_iam_policy(self, resource: str, version: int, *opts: StorageOption) -> Policy:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings,
            "GET",
            f"b/{_path(resource)}/iam",
            decode=policy_from_json,
            params={"optionsRequestedPolicyVersion": version},
        )

    async def set_iam_policy(self, resource: str, policy: Policy, *opts: StorageOption) -> None:
        settings = self._settings_for(opts, safe=policy.etag is not None)
        await self._request(settings, "PUT", f"b/{_path(resource)}/iam", json_body=policy_to_json(policy))

    async def test_iam_permissions(self, resource: str, permissions: list[str], *opts: StorageOption) -> list[str]:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings,
            "GET",
            f"b/{_path(resource)}/iam/testPermissions",
            decode=lambda data: list(data.get("permissions", [])),
            params={"permissions": list(permissions)},
        )

    # HMAC Key methods.

    @staticmethod
    def _hmac_path(desc: HMACKeyDesc, require_access_id: bool = True) -> str:
        path = f"projects/{_path(desc.project_id)}/hmacKeys"
        if require_access_id:
            if not desc.access_id:
                raise ValueError("HMAC key access_id is required")
            path += f"/{_path(desc.access_id)}"
        return path

    async def get_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> HMACKey:
        settings = self._settings_for(opts, safe=True)
        return await self._json(
            settings, "GET", self._hmac_path(desc), decode=hmac_key_from_json, user_project=desc.user_project
        )

    def list_hmac_keys(self, desc: HMACKeyDesc, *opts: StorageOption) -> PageIterator[HMACKey]:
        settings = self._settings_for(opts, safe=True)
        path = self._hmac_path(desc, require_access_id=False)

        async def fetch(token: str | None, page_size: int | None) -> tuple[list[HMACKey], str | None]:
            params = {
                "serviceAccountEmail": desc.service_account_email,
                "showDeletedKeys": desc.show_deleted_keys or None,
                "pageToken": token,
                "maxResults": page_size,
            }
            return await self._json(
                settings, "GET", path, decode=_page(hmac_key_from_json), params=params, user_project=desc.user_project
            )

        return PageIterator(fetch)

    async def update_hmac_key(
        self, desc: HMACKeyDesc, attrs: HMACKeyAttrsToUpdate, *opts: StorageOption
    ) -> HMACKey:
        settings = self._settings_for(opts, safe=attrs.etag is not None)
        body = _compact({"state": HMACKeyState(attrs.state).value, "etag": attrs.etag})
        return await self._json(
            settings,
            "PUT",
            self._hmac_path(desc),
            decode=hmac_key_from_json,
            json_body=body,
            user_project=desc.user_project,
        )

    async def create_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> HMACKey:
        if not desc.service_account_email:
            raise ValueError("service_account_email is required to create an HMAC key")
        settings = self._settings_for(opts)
        return await self._json(
            settings,
            "POST",
            self._hmac_path(desc, require_access_id=False),
            decode=lambda data: hmac_key_from_json(data["metadata"], secret=data.get("secret")),
            params={"serviceAccountEmail": desc.service_account_email},
            user_project=desc.user_project,
        )

    async def delete_hmac_key(self, desc: HMACKeyDesc, *opts: StorageOption) -> None:
        settings = self._settings_for(opts, safe=True)
        await self._request(settings, "DELETE", self._hmac_path(desc), user_project=desc.user_project)


def new_http_storage_client(
    user_project: str, *opts: StorageOption, resolver: ConfigResolver | None = None
) -> HTTPStorageClient:
    """Factory for the HTTP transport."""
    return HTTPStorageClient(user_project, *opts, resolver=resolver)
