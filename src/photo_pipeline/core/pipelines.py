"""
Batch orchestrators: upload, deletion and presigned access.

All three share one shape. The caller is authorized once, the request is
validated as a whole, every item is handled independently and folded into a
tagged result, and the results are aggregated in input order. Request-level
failures raise; item-level failures never do.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from ..processors import ItemRunner, serial_process_batch
from .access import DELETE_ROLES, PRESIGN_ROLES, UPLOAD_ROLES, AccessControl
from .error_handling import BatchOperationContextManager
from .exceptions import (
    DispatchError,
    ItemProcessingError,
    LimitExceeded,
    MalformedRequest,
    OwnershipViolation,
    StoreError,
)
from .keys import KeyOwnershipGuard, build_storage_key, is_safe_segment, validate_key
from .models import (
    AccessTier,
    AuthContext,
    BatchOutcome,
    BatchRequest,
    DeletionOutcome,
    ItemOutcome,
    MainSelector,
    RawItem,
    SignedLink,
    WorkDescriptor,
)
from .observability import LogContext, StructuredLogger
from .protocols import (
    LoggerProtocol,
    ObjectStoreProtocol,
    ObjectTransformProtocol,
    WorkDispatcherProtocol,
)

MAX_ITEMS = 30
MAX_BATCH_BYTES = 100 * 1024 * 1024
DEFAULT_PRESIGN_TTL = 3600


def _request_context(auth: AuthContext, operation: str, component: str) -> LogContext:
    return LogContext(
        operation=operation,
        component=component,
        subject_id=auth.subject_id,
        tenant_id=auth.tenant_id,
    )


@dataclass
class ProcessedItem:
    """Tagged per-item result: always an outcome, a descriptor only on success."""

    outcome: ItemOutcome
    descriptor: Optional[WorkDescriptor] = None


@dataclass
class ValidatedBatch:
    items: List[RawItem]
    entity_type: str
    entity_id: str
    tier: AccessTier
    main_selector: MainSelector


class UploadPipeline:
    """Validate, transform, store and dispatch a batch of uploaded images."""

    def __init__(
        self,
        access_control: AccessControl,
        transformer: ObjectTransformProtocol,
        store: ObjectStoreProtocol,
        dispatcher: WorkDispatcherProtocol,
        logger: Optional[LoggerProtocol] = None,
        item_runner: ItemRunner = serial_process_batch,
        max_items: int = MAX_ITEMS,
        max_batch_bytes: int = MAX_BATCH_BYTES,
    ):
        self._access_control = access_control
        self._transformer = transformer
        self._store = store
        self._dispatcher = dispatcher
        self._logger = logger or StructuredLogger("photo-pipeline.upload")
        self._item_runner = item_runner
        self._max_items = max_items
        self._max_batch_bytes = max_batch_bytes

    def authorize(self, credential: Optional[str]) -> AuthContext:
        return self._access_control.authorize(credential, UPLOAD_ROLES)

    def run(self, credential: Optional[str], request: BatchRequest) -> BatchOutcome:
        """Authorize and execute; every RawItem is released on every exit path."""
        try:
            auth = self.authorize(credential)
            return self.execute(auth, request)
        finally:
            request.release_all()

    def validate(self, request: BatchRequest) -> ValidatedBatch:
        """Reject the whole request before any per-item work."""
        if not request.items:
            raise MalformedRequest("No files provided")
        entity_type = (request.entity_type or "").strip().lower()
        if not entity_type:
            raise MalformedRequest("Missing entity_type")
        entity_id = (request.entity_id or "").strip()
        if not entity_id:
            raise MalformedRequest("Missing entity_id")
        if not (is_safe_segment(entity_type) and is_safe_segment(entity_id)):
            raise MalformedRequest("entity_type and entity_id must not contain '/' or be '..'")
        try:
            tier = AccessTier(request.access_tier or AccessTier.PUBLIC.value)
        except ValueError:
            raise MalformedRequest("access must be one of public|private") from None

        if len(request.items) > self._max_items:
            raise LimitExceeded(f"Too many files (max {self._max_items})")
        if request.total_bytes > self._max_batch_bytes:
            limit_mb = self._max_batch_bytes // (1024 * 1024)
            raise LimitExceeded(f"Total size exceeds {limit_mb}MB")

        return ValidatedBatch(
            items=list(request.items),
            entity_type=entity_type,
            entity_id=entity_id,
            tier=tier,
            main_selector=request.main_selector,
        )

    def execute(self, auth: AuthContext, request: BatchRequest) -> BatchOutcome:
        batch = self.validate(request)
        context = _request_context(auth, "upload", "upload_pipeline").with_metadata(
            entity=f"{batch.entity_type}_{batch.entity_id}",
            items=len(batch.items),
            access=batch.tier.value,
        )
        self._logger.info("Upload batch accepted", context)

        def handle(index: int, item: RawItem) -> ProcessedItem:
            return self._process_item(auth, batch, index, item, context)

        def on_error(index: int, item: RawItem, exc: Exception) -> ProcessedItem:
            item.release()
            self._logger.error(
                "Unexpected item failure", context, file=item.original_name, exc_info=exc
            )
            return ProcessedItem(self._error_outcome(index, item, str(exc)))

        with BatchOperationContextManager(f"Upload batch {context.correlation_id}") as tracker:
            processed = self._item_runner(batch.items, handle, on_error)
            for entry in processed:
                if not entry.outcome.ok:
                    tracker.add_error(entry.outcome.error or "", entry.outcome.file or "")

        outcomes = [entry.outcome for entry in processed]
        descriptors = [entry.descriptor for entry in processed if entry.descriptor is not None]

        dispatched = 0
        dispatch_error = None
        if descriptors:
            try:
                ack = self._dispatcher.dispatch(descriptors)
                dispatched = ack.count
                self._logger.info("Dispatched work descriptors", context, queue=ack.queue, count=ack.count)
            except DispatchError as e:
                # Stored objects stay stored; the outcomes above remain truthful.
                dispatch_error = str(e)
                self._logger.error("Dispatch failed after storage", context, error=dispatch_error)

        return BatchOutcome(outcomes=outcomes, dispatched=dispatched, dispatch_error=dispatch_error)

    def _process_item(
        self,
        auth: AuthContext,
        batch: ValidatedBatch,
        index: int,
        item: RawItem,
        context: LogContext,
    ) -> ProcessedItem:
        item_context = context.with_metadata(index=index, file=item.original_name)
        try:
            normalized = self._transformer.transform(item.read())
            key = build_storage_key(
                auth.tenant_id,
                batch.entity_type,
                batch.entity_id,
                batch.tier,
                extension=normalized.extension,
            )
            locator = self._store.put(normalized.data, key, batch.tier, normalized.content_type)
        except ItemProcessingError as e:
            self._logger.error("File upload failed", item_context, error=str(e))
            return ProcessedItem(self._error_outcome(index, item, str(e)))
        finally:
            item.release()

        self._logger.debug("File stored", item_context, key=key)
        descriptor = WorkDescriptor(
            entity_type=batch.entity_type,
            entity_id=batch.entity_id,
            agency_id=auth.tenant_id,
            user_id=auth.subject_id,
            file_url=locator,
            is_main=batch.main_selector.is_main(index),
            position=index + 1,
            access=batch.tier,
        )
        return ProcessedItem(ItemOutcome(index=index, status="ok", url=locator), descriptor)

    @staticmethod
    def _error_outcome(index: int, item: RawItem, message: str) -> ItemOutcome:
        return ItemOutcome(index=index, status="error", error=message, file=item.original_name)


class DeletionPipeline:
    """Delete keys owned by the caller and notify the system of record."""

    def __init__(
        self,
        access_control: AccessControl,
        store: ObjectStoreProtocol,
        dispatcher: WorkDispatcherProtocol,
        logger: Optional[LoggerProtocol] = None,
        guard: Optional[KeyOwnershipGuard] = None,
    ):
        self._access_control = access_control
        self._store = store
        self._dispatcher = dispatcher
        self._logger = logger or StructuredLogger("photo-pipeline.delete")
        self._guard = guard or KeyOwnershipGuard()

    def authorize(self, credential: Optional[str]) -> AuthContext:
        return self._access_control.authorize(credential, DELETE_ROLES)

    def delete(
        self,
        auth: AuthContext,
        entity_type: Any,
        entity_id: Any,
        keys: Any,
    ) -> DeletionOutcome:
        if not isinstance(entity_type, str) or not entity_type.strip():
            raise MalformedRequest("Missing or invalid parameters")
        if entity_id in (None, "") or isinstance(entity_id, (list, dict)):
            raise MalformedRequest("Missing or invalid parameters")
        if not isinstance(keys, list) or not keys or not all(isinstance(k, str) for k in keys):
            raise MalformedRequest("Missing or invalid parameters")

        entity_type = entity_type.strip().lower()
        entity_id = str(entity_id)
        if not (is_safe_segment(entity_type) and is_safe_segment(entity_id)):
            raise MalformedRequest("Missing or invalid parameters")
        context = _request_context(auth, "delete", "deletion_pipeline").with_metadata(
            entity=f"{entity_type}_{entity_id}", keys=len(keys)
        )

        deleted: List[str] = []
        failed: List[str] = []

        with BatchOperationContextManager(f"Delete batch {context.correlation_id}") as tracker:
            for key in keys:
                try:
                    self._guard.check(auth, key)
                except OwnershipViolation as e:
                    self._logger.warning("Blocked attempt to delete foreign file", context, key=key)
                    tracker.add_error(str(e), key)
                    failed.append(key)
                    continue

                try:
                    self._logger.info("Attempting to delete file", context, key=key)
                    if self._store.delete(key):
                        deleted.append(key)
                    else:
                        tracker.add_error("not found", key)
                        failed.append(key)
                except StoreError as e:
                    self._logger.error("Failed to delete file", context, key=key, error=str(e))
                    tracker.add_error(str(e), key)
                    failed.append(key)

        notified = False
        notify_error = None
        if deleted:
            try:
                self._dispatcher.notify_deleted(entity_type, entity_id, deleted)
                notified = True
            except DispatchError as e:
                # Objects are already gone; the notice is not retried.
                notify_error = str(e)
                self._logger.error("Deletion sync failed", context, error=notify_error)

        return DeletionOutcome(
            deleted=deleted, failed=failed, notified=notified, notify_error=notify_error
        )


class PresignPipeline:
    """Issue time-limited GET links for stored objects."""

    def __init__(
        self,
        access_control: AccessControl,
        store: ObjectStoreProtocol,
        ttl_seconds: int = DEFAULT_PRESIGN_TTL,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._access_control = access_control
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._logger = logger or StructuredLogger("photo-pipeline.presign")

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def authorize(self, credential: Optional[str]) -> AuthContext:
        return self._access_control.authorize(credential, PRESIGN_ROLES)

    def sign(self, auth: AuthContext, key: Any) -> str:
        """
        Sign one key.

        Raises:
            MalformedRequest: the key is missing or not addressable
            StoreError: the store could not sign it
        """
        if key is None or key == "":
            raise MalformedRequest("Missing key parameter")
        try:
            validate_key(key)
        except StoreError as e:
            raise MalformedRequest(str(e)) from e

        context = _request_context(auth, "presign", "presign_pipeline")
        try:
            return self._store.sign(key, self._ttl_seconds)
        except StoreError as e:
            self._logger.error("Failed to generate presigned URL", context, key=key, error=str(e))
            raise

    def sign_many(self, auth: AuthContext, keys: Iterable[Any]) -> List[SignedLink]:
        if not isinstance(keys, list):
            raise MalformedRequest("keys must be a list")

        context = _request_context(auth, "presign_many", "presign_pipeline").with_metadata(
            keys=len(keys)
        )
        links: List[SignedLink] = []
        for key in keys:
            try:
                validate_key(key)
                url = self._store.sign(key, self._ttl_seconds)
                links.append(SignedLink(key=key, status="ok", url=url))
            except StoreError as e:
                self._logger.warning("Could not sign key", context, key=key, error=str(e))
                links.append(SignedLink(key=key, status="error", error=str(e)))
        return links
