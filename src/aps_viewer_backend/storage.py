"""
Object storage gateway for the application's bucket.

This module provides functionality for:
- Creating the bucket on first use (persistent retention policy)
- Uploading models through signed upload URLs
- Listing every object in the bucket, following pagination cursors

All calls use the internal (read/write) credential from the token cache.
"""

from __future__ import annotations

import logging
import math
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .errors import ContainerFailure, StorageFailure, UploadFailure
from .models import ObjectPage, SignedUpload, StoredObject, TokenScope
from .remote import Found, NotFound, OtherFailure, RemoteResult, bearer, send
from .token_cache import TokenCache

logger = logging.getLogger(__name__)

PAGE_SIZE = 64
UPLOAD_CHUNK_SIZE = 5 * 1024 * 1024
# signeds3upload hands out at most this many part URLs per request
MAX_PARTS_PER_REQUEST = 25


def next_cursor(next_url: Optional[str]) -> Optional[str]:
    """
    Extract the ``startAt`` cursor from a listing's continuation URL.

    Returns:
        The cursor, or None when there is no further page
    """
    if not next_url:
        return None
    return httpx.URL(next_url).params.get("startAt") or None


class StorageGateway:
    def __init__(self, http: httpx.AsyncClient, tokens: TokenCache, bucket: str) -> None:
        self._http = http
        self._tokens = tokens
        self.bucket = bucket

    async def _headers(self) -> dict[str, str]:
        credential = await self._tokens.get_credential(TokenScope.INTERNAL)
        return bearer(credential.access_token)

    def _object_path(self, name: str) -> str:
        return f"/oss/v2/buckets/{self.bucket}/objects/{quote(name, safe='')}"

    async def ensure_bucket_exists(self, bucket_key: Optional[str] = None) -> None:
        """
        Make sure the bucket exists, creating it when the platform reports it missing.

        Safe to call before every storage operation. A 409 on create means another
        request created it first.

        Raises:
            ContainerFailure: If the details lookup or the create call fails otherwise
        """
        key = bucket_key or self.bucket
        headers = await self._headers()

        details = await send(self._http, "GET", f"/oss/v2/buckets/{key}/details", headers=headers)
        if isinstance(details, Found):
            return
        if isinstance(details, OtherFailure):
            raise ContainerFailure(f"Could not inspect bucket {key}: {details.detail}", status_code=details.status_code)

        logger.info(f"Bucket {key} not found, creating it")
        created = await send(
            self._http,
            "POST",
            "/oss/v2/buckets",
            headers=headers,
            json={"bucketKey": key, "policyKey": "persistent"},
        )
        if isinstance(created, Found):
            logger.info(f"Bucket {key} created")
            return
        if isinstance(created, OtherFailure) and created.status_code == 409:
            logger.info(f"Bucket {key} was created concurrently")
            return
        raise ContainerFailure(
            f"Could not create bucket {key}: {created.detail}",
            status_code=created.status_code if isinstance(created, OtherFailure) else 404,
        )

    async def upload_model(self, name: str, content: bytes) -> StoredObject:
        """
        Upload content into the bucket under the given object name.

        The content is split into 5 MiB parts, each PUT to a signed URL, and the
        upload is then completed to obtain the object details.

        Raises:
            UploadFailure: If the platform reports an error at any step
        """
        await self.ensure_bucket_exists()
        headers = await self._headers()
        path = f"{self._object_path(name)}/signeds3upload"

        total_parts = max(1, math.ceil(len(content) / UPLOAD_CHUNK_SIZE))
        upload_key: Optional[str] = None
        part = 1
        while part <= total_parts:
            batch = min(MAX_PARTS_PER_REQUEST, total_parts - part + 1)
            params = {"parts": batch, "firstPart": part}
            if upload_key:
                params["uploadKey"] = upload_key
            signed = self._parse_signed(await send(self._http, "GET", path, headers=headers, params=params), name)
            upload_key = signed.upload_key
            if len(signed.urls) < batch:
                raise UploadFailure(f"Expected {batch} upload URLs for {name}, got {len(signed.urls)}")

            for url in signed.urls[:batch]:
                offset = (part - 1) * UPLOAD_CHUNK_SIZE
                chunk = content[offset : offset + UPLOAD_CHUNK_SIZE]
                # Signed URLs point outside the platform and must not carry the bearer token
                result = await send(self._http, "PUT", url, content=chunk)
                if not isinstance(result, Found):
                    raise UploadFailure(f"Part {part} of {name} was rejected: {result.detail}", status_code=_status(result))
                part += 1

        completed = await send(self._http, "POST", path, headers=headers, json={"uploadKey": upload_key})
        if not isinstance(completed, Found):
            raise UploadFailure(f"Upload of {name} could not be completed: {completed.detail}", status_code=_status(completed))
        try:
            stored = StoredObject.model_validate(completed.json())
        except (ValueError, ValidationError) as exc:
            raise UploadFailure(f"Upload of {name} returned unexpected details: {completed.response.text}") from exc

        logger.info(f"Uploaded {name} ({len(content)} bytes) to bucket {self.bucket}")
        return stored

    def _parse_signed(self, result: RemoteResult, name: str) -> SignedUpload:
        if not isinstance(result, Found):
            raise UploadFailure(f"Could not obtain upload URLs for {name}: {result.detail}", status_code=_status(result))
        try:
            return SignedUpload.model_validate(result.json())
        except (ValueError, ValidationError) as exc:
            raise UploadFailure(f"Unexpected upload URL response for {name}: {result.response.text}") from exc

    async def iter_objects(self) -> AsyncIterator[StoredObject]:
        """
        Yield every object in the bucket, one page of 64 at a time.

        Each call walks the listing from the first page; the iterator itself cannot
        be restarted.

        Raises:
            StorageFailure: If any page cannot be fetched or decoded
        """
        await self.ensure_bucket_exists()
        headers = await self._headers()
        path = f"/oss/v2/buckets/{self.bucket}/objects"

        cursor: Optional[str] = None
        while True:
            params = {"limit": PAGE_SIZE}
            if cursor:
                params["startAt"] = cursor
            result = await send(self._http, "GET", path, headers=headers, params=params)
            if not isinstance(result, Found):
                raise StorageFailure(f"Could not list objects in {self.bucket}: {result.detail}", status_code=_status(result))
            try:
                page = ObjectPage.model_validate(result.json())
            except (ValueError, ValidationError) as exc:
                raise StorageFailure(f"Unexpected object listing for {self.bucket}: {exc}") from exc

            for item in page.items:
                yield item

            cursor = next_cursor(page.next)
            if cursor is None:
                return

    async def list_objects(self) -> List[StoredObject]:
        return [item async for item in self.iter_objects()]


def _status(result: RemoteResult) -> Optional[int]:
    if isinstance(result, NotFound):
        return 404
    if isinstance(result, OtherFailure):
        return result.status_code
    return None
