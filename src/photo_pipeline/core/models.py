"""Shared data models for the photo pipeline."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict


class AccessTier(str, Enum):
    """Whether a stored object is directly fetchable or needs a signed URL."""

    PUBLIC = "public"
    PRIVATE = "private"


class AuthContext(BaseModel):
    """Claims of a verified access token, derived once per request."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    tenant_id: Optional[str] = None
    role: str
    token_kind: str = "access"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class MainSelector(BaseModel):
    """Which item of an upload batch becomes the main photo."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["none", "first", "index"] = "none"
    index: Optional[int] = None

    @classmethod
    def from_form(
        cls, is_main: Optional[str] = None, main_index: Optional[str] = None
    ) -> "MainSelector":
        """
        Build a selector from the two request shapes seen in practice.

        An explicit ``main_index`` wins over the boolean flag. An index that
        does not parse as an integer means "no main photo", not an error.
        """
        if main_index is not None and str(main_index).strip() != "":
            try:
                return cls(mode="index", index=int(str(main_index).strip()))
            except ValueError:
                return cls(mode="none")
        if str(is_main).strip().lower() == "true":
            return cls(mode="first")
        return cls(mode="none")

    def is_main(self, index: int) -> bool:
        if self.mode == "first":
            return index == 0
        if self.mode == "index":
            return self.index == index
        return False


@dataclass
class RawItem:
    """
    One uploaded file, owned by the request for its lifetime.

    ``release`` closes the backing stream (and with it any spooled temp file);
    it is safe to call more than once.
    """

    stream: BinaryIO
    original_name: str
    size_bytes: int
    released: bool = False

    @classmethod
    def from_bytes(cls, data: bytes, original_name: str = "upload") -> "RawItem":
        return cls(stream=io.BytesIO(data), original_name=original_name, size_bytes=len(data))

    def read(self) -> bytes:
        self.stream.seek(0)
        return self.stream.read()

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self.stream.close()


@dataclass
class NormalizedItem:
    """Storage-ready image produced from one RawItem."""

    data: bytes
    width: int
    height: int
    format: str = "WEBP"
    content_type: str = "image/webp"
    extension: str = "webp"


@dataclass
class BatchRequest:
    """An upload batch as received from the HTTP boundary."""

    items: List[RawItem]
    entity_type: Optional[str]
    entity_id: Optional[str]
    access_tier: Optional[str] = AccessTier.PUBLIC.value
    main_selector: MainSelector = field(default_factory=MainSelector)

    @property
    def total_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items)

    def release_all(self) -> None:
        for item in self.items:
            item.release()


class ItemOutcome(BaseModel):
    """Result of processing a single upload item."""

    index: int
    status: Literal["ok", "error"]
    url: Optional[str] = None
    error: Optional[str] = None
    file: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_response(self) -> Dict[str, Any]:
        if self.ok:
            return {"status": "ok", "url": self.url}
        return {"status": "error", "error": self.error, "file": self.file}


class WorkDescriptor(BaseModel):
    """Record handed downstream for one stored item. Field names are the wire format."""

    entity_type: str
    entity_id: str
    agency_id: Optional[str] = None
    user_id: str
    file_url: str
    is_main: bool = False
    position: int
    access: AccessTier


class DispatchAck(BaseModel):
    queue: str
    count: int


class BatchOutcome(BaseModel):
    """Per-item outcomes in input order, plus the batch-level dispatch result."""

    model_config = ConfigDict(frozen=True)

    outcomes: List[ItemOutcome]
    dispatched: int = 0
    dispatch_error: Optional[str] = None

    @property
    def dispatch_failed(self) -> bool:
        return self.dispatch_error is not None

    @property
    def ok_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    def to_response(self) -> Dict[str, Any]:
        return {"results": [outcome.to_response() for outcome in self.outcomes]}


class DeletionOutcome(BaseModel):
    deleted: List[str]
    failed: List[str]
    notified: bool = False
    notify_error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        return {"status": "ok", "deleted": self.deleted, "failed": self.failed}


class SignedLink(BaseModel):
    key: Any
    status: Literal["ok", "error"]
    url: Optional[str] = None
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        if self.status == "ok":
            return {"key": self.key, "url": self.url, "status": "ok"}
        return {"key": self.key, "error": self.error, "status": "error"}
