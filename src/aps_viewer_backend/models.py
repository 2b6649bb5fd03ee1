from __future__ import annotations

import base64
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def encode_urn(object_id: str) -> str:
    """
    Encode a platform object id into the urn form the Model Derivative service expects.

    Standard base64 with the trailing "=" padding removed.

    Example:
        >>> encode_urn("urn:adsk.objects:os.object:bucket/model.rvt")
        "dXJuOmFkc2sub2JqZWN0czpvcy5vYmplY3Q6YnVja2V0L21vZGVsLnJ2dA"
    """
    return base64.b64encode(object_id.encode("utf-8")).decode("ascii").rstrip("=")


class TokenScope(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"


class _PlatformModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Responses returned to the client application


class AccessToken(BaseModel):
    access_token: str
    expires_in: int


class BucketObject(BaseModel):
    name: str
    urn: str


class TranslationStatus(BaseModel):
    status: str
    progress: str
    messages: List[str] = Field(default_factory=list)

    @classmethod
    def not_available(cls) -> "TranslationStatus":
        return cls(status="n/a", progress="", messages=[])


# Documents exchanged with the platform


class StoredObject(_PlatformModel):
    bucket_key: str = Field(alias="bucketKey")
    name: str = Field(alias="objectKey")
    object_id: str = Field(alias="objectId")
    size: Optional[int] = None
    location: Optional[str] = None

    @property
    def encoded_id(self) -> str:
        return encode_urn(self.object_id)


class ObjectPage(_PlatformModel):
    items: List[StoredObject] = Field(default_factory=list)
    next: Optional[str] = None


class SignedUpload(_PlatformModel):
    upload_key: str = Field(alias="uploadKey")
    urls: List[str] = Field(default_factory=list)


class JobInput(_PlatformModel):
    urn: str
    root_filename: Optional[str] = Field(default=None, alias="rootFilename")
    compressed_urn: Optional[bool] = Field(default=None, alias="compressedUrn")


class JobFormat(_PlatformModel):
    type: str
    views: List[str]


class JobOutput(_PlatformModel):
    formats: List[JobFormat]


class JobPayload(_PlatformModel):
    input: JobInput
    output: JobOutput

    def to_request(self) -> Dict[str, Any]:
        """Serialize with platform field names, leaving unset optional inputs out."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Job(_PlatformModel):
    result: str
    urn: str


class ManifestMessage(_PlatformModel):
    type: Optional[str] = None
    code: Any = None
    # the platform does not guarantee a string here
    message: Any = None


class ManifestChild(_PlatformModel):
    messages: List[ManifestMessage] = Field(default_factory=list)


class ManifestDerivative(_PlatformModel):
    messages: List[ManifestMessage] = Field(default_factory=list)
    children: List[ManifestChild] = Field(default_factory=list)


class Manifest(_PlatformModel):
    urn: Optional[str] = None
    status: Optional[str] = None
    progress: Optional[str] = None
    derivatives: List[ManifestDerivative] = Field(default_factory=list)

    def error_messages(self) -> List[str]:
        """
        Collect error message strings in traversal order.

        Messages attached directly to derivatives come first, then those attached to
        derivative children. Non-error entries and non-string payloads are skipped.
        """
        collected: List[str] = []
        for derivative in self.derivatives:
            collected.extend(_errors(derivative.messages))
        for derivative in self.derivatives:
            for child in derivative.children:
                collected.extend(_errors(child.messages))
        return collected

    def to_status(self) -> TranslationStatus:
        return TranslationStatus(
            status=self.status or "",
            progress=self.progress or "",
            messages=self.error_messages(),
        )


def _errors(messages: List[ManifestMessage]) -> List[str]:
    return [m.message for m in messages if m.type == "error" and isinstance(m.message, str)]
