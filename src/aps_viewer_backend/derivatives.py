"""
Model Derivative gateway: submits translation jobs and reads their manifests.

The service addresses source objects by their base64 urn (see ``encode_urn``).
Manifests are decoded into typed models once and walked with plain loops.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .errors import StatusFetchFailure, TranslationFailure
from .models import (
    Job,
    JobFormat,
    JobInput,
    JobOutput,
    JobPayload,
    Manifest,
    TokenScope,
    TranslationStatus,
    encode_urn,
)
from .remote import Found, NotFound, bearer, send
from .token_cache import TokenCache

logger = logging.getLogger(__name__)

JOB_PATH = "/modelderivative/v2/designdata/job"
OUTPUT_FORMAT = "svf"
OUTPUT_VIEWS = ["2d", "3d"]


def build_job_payload(object_id: str, root_filename: Optional[str] = None) -> JobPayload:
    """
    Build the translation request for a stored object.

    When ``root_filename`` is given the source is treated as a zip archive and the
    named entry is translated as the root design file.
    """
    job_input = JobInput(urn=encode_urn(object_id))
    if root_filename:
        job_input.root_filename = root_filename
        job_input.compressed_urn = True
    return JobPayload(
        input=job_input,
        output=JobOutput(formats=[JobFormat(type=OUTPUT_FORMAT, views=list(OUTPUT_VIEWS))]),
    )


class ConversionGateway:
    def __init__(self, http: httpx.AsyncClient, tokens: TokenCache) -> None:
        self._http = http
        self._tokens = tokens

    async def _headers(self) -> dict[str, str]:
        credential = await self._tokens.get_credential(TokenScope.INTERNAL)
        return bearer(credential.access_token)

    async def translate_model(self, object_id: str, root_filename: Optional[str] = None) -> Job:
        """
        Submit a translation job for a stored object.

        Returns:
            The accepted job; its urn is the handle for status polling

        Raises:
            TranslationFailure: If the job is rejected or the response is malformed
        """
        payload = build_job_payload(object_id, root_filename)
        result = await send(self._http, "POST", JOB_PATH, headers=await self._headers(), json=payload.to_request())
        if not isinstance(result, Found):
            status_code = 404 if isinstance(result, NotFound) else result.status_code
            raise TranslationFailure(f"Translation of {object_id} was not accepted: {result.detail}", status_code=status_code)
        try:
            job = Job.model_validate(result.json())
        except (ValueError, ValidationError) as exc:
            raise TranslationFailure(f"Unexpected job response: {result.response.text}") from exc

        logger.info(f"Translation job {job.result} for urn {job.urn}")
        return job

    async def get_translation_status(self, urn: str) -> TranslationStatus:
        """
        Fetch and summarize the manifest for a urn.

        A urn without a manifest (not submitted yet, or unknown) is reported as the
        "n/a" status rather than an error, so clients can poll right after upload.

        Raises:
            StatusFetchFailure: If the manifest fetch fails for any other reason
        """
        result = await send(
            self._http,
            "GET",
            f"/modelderivative/v2/designdata/{urn}/manifest",
            headers=await self._headers(),
        )
        if isinstance(result, NotFound):
            return TranslationStatus.not_available()
        if not isinstance(result, Found):
            raise StatusFetchFailure(f"Could not fetch manifest for {urn}: {result.detail}", status_code=result.status_code)
        try:
            manifest = Manifest.model_validate(result.json())
        except (ValueError, ValidationError) as exc:
            raise StatusFetchFailure(f"Unexpected manifest for {urn}: {exc}") from exc
        return manifest.to_status()
