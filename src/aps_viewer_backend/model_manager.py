"""
Model lifecycle orchestration for the viewer backend.

This module composes the token cache and the two platform gateways into the
workflows the HTTP layer exposes:
- Listing the models stored in the application's bucket
- Uploading a model and submitting it for translation
- Reporting translation status
- Handing out the read-only viewer token

The ModelManager holds no state of its own besides the injected collaborators;
every call re-fetches what it needs from the platform.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from .configuration import ApsSettings
from .derivatives import ConversionGateway
from .models import AccessToken, BucketObject, TokenScope, TranslationStatus
from .storage import StorageGateway
from .token_cache import TokenCache

logger = logging.getLogger(__name__)


class ModelManager:
    """
    Central coordinator for model storage and translation.

    Attributes:
        tokens: Credential cache shared by both gateways
        storage: Bucket and object operations
        conversion: Translation job and manifest operations
    """

    def __init__(self, tokens: TokenCache, storage: StorageGateway, conversion: ConversionGateway) -> None:
        self.tokens = tokens
        self.storage = storage
        self.conversion = conversion

    @classmethod
    def from_settings(cls, settings: ApsSettings, http: httpx.AsyncClient) -> "ModelManager":
        """
        Wire the collaborators for one process.

        Args:
            settings: Resolved platform settings
            http: Shared client whose base URL points at the platform
        """
        tokens = TokenCache(http, settings.client_id, settings.client_secret)
        return cls(
            tokens=tokens,
            storage=StorageGateway(http, tokens, settings.bucket),
            conversion=ConversionGateway(http, tokens),
        )

    async def public_token(self) -> AccessToken:
        credential = await self.tokens.get_credential(TokenScope.PUBLIC)
        remaining = round(credential.expires_at - self.tokens.clock())
        return AccessToken(access_token=credential.access_token, expires_in=max(0, remaining))

    async def list_models(self) -> List[BucketObject]:
        return [BucketObject(name=obj.name, urn=obj.encoded_id) async for obj in self.storage.iter_objects()]

    async def upload_and_translate(
        self,
        filename: str,
        content: bytes,
        entrypoint: Optional[str] = None,
    ) -> BucketObject:
        """
        Upload a model and submit it for translation.

        Args:
            filename: Object name in the bucket
            content: Raw file content
            entrypoint: For zip archives, the file inside the archive to translate

        Returns:
            The object name and the urn to poll for translation status
        """
        stored = await self.storage.upload_model(filename, content)
        job = await self.conversion.translate_model(stored.object_id, entrypoint or None)
        logger.info(f"Submitted {stored.name} for translation")
        return BucketObject(name=stored.name, urn=job.urn)

    async def model_status(self, urn: str) -> TranslationStatus:
        return await self.conversion.get_translation_status(urn)
