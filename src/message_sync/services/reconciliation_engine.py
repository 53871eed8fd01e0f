"""Keeps each conversation's message cache consistent with the remote service.

Every mutation of a conversation (load, send confirmation, delete) runs under
that conversation's lock, including all awaited gateway and store I/O.
Conversations never block each other.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Generator
from typing import Any

from message_sync.application.dto.remote_message import RemoteMessage
from message_sync.application.exceptions import (
    ConflictError,
    DeleteFailed,
    FetchFailed,
    NotFoundError,
    SendFailed,
    StorageUnavailable,
    ValidationError,
)
from message_sync.application.ports.clock import Clock, SystemClock
from message_sync.application.ports.gateway import MessageGateway
from message_sync.application.ports.store import MessageStore
from message_sync.domain.entities.conversation import Conversation
from message_sync.domain.entities.message import Message, build_message, with_status
from message_sync.domain.entities.message_cache import MessageCache, merge
from message_sync.domain.value_objects.enums import ErrorKind, MessageOrigin, MessageStatus
from message_sync.domain.value_objects.ids import new_placeholder_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

StoreUpdate = Callable[[list[Message]], list[Message] | None]


class PendingSend:
    """Handle returned by a send.

    ``message`` is the provisional cache entry. Awaiting the handle yields
    the confirmed message or raises SendFailed.
    """

    __slots__ = ("message", "_task")

    def __init__(self, message: Message, task: asyncio.Task[Message]) -> None:
        self.message = message
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    def __await__(self) -> Generator[Any, None, Message]:
        # A caller giving up (timeout, disconnect) must not abort the send.
        return asyncio.shield(self._task).__await__()


class ReconciliationEngine:
    def __init__(
        self,
        gateway: MessageGateway,
        store: MessageStore,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        gateway_timeout: float | None = None,
        clock: Clock | None = None,
        placeholder_ids: Callable[[], str] = new_placeholder_id,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._page_size = page_size
        self._gateway_timeout = gateway_timeout
        self._clock = clock or SystemClock()
        self._placeholder_ids = placeholder_ids
        self._conversations: dict[str, Conversation] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._inflight: dict[asyncio.Task[Message], tuple[Conversation, Message]] = {}

    # -- read side ---------------------------------------------------------

    def conversation(self, conversation_id: str) -> Conversation:
        conv = self._conversations.get(conversation_id)
        if conv is None:
            conv = self._conversations[conversation_id] = Conversation(id=conversation_id)
        return conv

    def messages(self, conversation_id: str) -> tuple[Message, ...]:
        return self.conversation(conversation_id).cache.messages

    def is_loading(self, conversation_id: str) -> bool:
        return self.conversation(conversation_id).loading

    def current_error(self, conversation_id: str) -> ErrorKind | None:
        return self.conversation(conversation_id).last_error

    def clear_error(self, conversation_id: str) -> None:
        self.conversation(conversation_id).last_error = None

    async def close(self) -> None:
        """Cancel confirmations still in flight; their messages end up failed."""
        tasks = list(self._inflight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # -- load --------------------------------------------------------------

    async def load_messages(self, conversation_id: str) -> list[Message]:
        """Fetch the first remote page, merge it with local messages and publish.

        On FetchFailed the cache is left exactly as it was.
        """
        conv = self.conversation(conversation_id)
        async with self._lock(conversation_id):
            conv.last_error = None
            conv.loading = True
            try:
                remote = await self._fetch_remote(conv)
                stored = await self._read_store(conv)
            finally:
                conv.loading = False

            # Taken after the last await so sends started meanwhile are kept.
            unconfirmed = [
                m for m in conv.cache.messages if m.origin is MessageOrigin.LOCAL_PENDING
            ]
            merged = merge(remote, [*stored, *unconfirmed])
            conv.cache = MessageCache(merged)

        logger.info(
            "Loaded conversation %s: %d messages (%d remote, %d stored, %d unconfirmed)",
            conversation_id, len(merged), len(remote), len(stored), len(unconfirmed),
        )
        return merged

    async def _fetch_remote(self, conv: Conversation) -> list[Message]:
        try:
            async with asyncio.timeout(self._gateway_timeout):
                page = await self._gateway.fetch_messages(conv.id, self._page_size)
            return [self._from_remote(conv.id, m) for m in page]
        except TimeoutError as exc:
            conv.last_error = ErrorKind.FETCH_FAILED
            logger.warning("Fetch timed out for conversation %s", conv.id)
            raise FetchFailed("Timed out fetching messages") from exc
        except FetchFailed as exc:
            conv.last_error = ErrorKind.FETCH_FAILED
            logger.warning("Fetch failed for conversation %s: %s", conv.id, exc.detail)
            raise
        except Exception as exc:
            conv.last_error = ErrorKind.FETCH_FAILED
            logger.exception("Unexpected fetch error for conversation %s", conv.id)
            raise FetchFailed(f"Unexpected fetch error: {exc}") from exc

    def _from_remote(self, conversation_id: str, remote: RemoteMessage) -> Message:
        return build_message(
            id=remote.id,
            conversation_id=conversation_id,
            text=remote.text,
            created_at=remote.created_at or self._clock.now(),
            origin=MessageOrigin.REMOTE,
            status=MessageStatus.DELETED if remote.deleted else MessageStatus.SENT,
        )

    async def _read_store(self, conv: Conversation) -> list[Message]:
        try:
            stored = await self._store.get_conversation_messages(conv.id) or []
        except StorageUnavailable as exc:
            conv.last_error = ErrorKind.STORAGE_UNAVAILABLE
            logger.warning(
                "Store read failed for conversation %s, using in-memory copies: %s",
                conv.id, exc.detail,
            )
            return [m for m in conv.cache.messages if m.origin is MessageOrigin.LOCAL_CONFIRMED]
        conv.persisted_ids = {m.id for m in stored}
        return stored

    # -- send --------------------------------------------------------------

    def send_message(self, conversation_id: str, text: str) -> PendingSend:
        """Insert an optimistic entry now and confirm it in the background.

        Must be called from within a running event loop.
        """
        if not text or not text.strip():
            raise ValidationError("Message text must not be empty")

        conv = self.conversation(conversation_id)
        optimistic = build_message(
            id=self._placeholder_ids(),
            conversation_id=conversation_id,
            text=text,
            created_at=self._clock.now(),
            origin=MessageOrigin.LOCAL_PENDING,
            status=MessageStatus.PENDING,
        )
        conv.cache.upsert(optimistic)
        logger.debug("Optimistic message %s added to conversation %s", optimistic.id, conversation_id)
        return self._schedule_confirmation(conv, optimistic)

    def retry_send(self, conversation_id: str, message_id: str) -> PendingSend:
        """Re-send a failed message under its existing placeholder id."""
        conv = self.conversation(conversation_id)
        entry = conv.cache.get(message_id)
        if entry is None:
            raise NotFoundError("Message not found")
        if entry.status is not MessageStatus.FAILED:
            raise ConflictError("Only failed messages can be retried")

        retry = with_status(entry, MessageStatus.PENDING, created_at=self._clock.now())
        conv.cache.upsert(retry)
        logger.info("Retrying message %s in conversation %s", message_id, conversation_id)
        return self._schedule_confirmation(conv, retry)

    def _schedule_confirmation(self, conv: Conversation, optimistic: Message) -> PendingSend:
        task = asyncio.create_task(
            self._confirm_send(conv, optimistic),
            name=f"confirm-send-{optimistic.id}",
        )
        self._inflight[task] = (conv, optimistic)
        task.add_done_callback(self._confirmation_done)
        return PendingSend(optimistic, task)

    def _confirmation_done(self, task: asyncio.Task[Message]) -> None:
        conv, optimistic = self._inflight.pop(task)
        if task.cancelled():
            # Cancelled before the server answered: leave it retryable.
            entry = conv.cache.get(optimistic.id)
            if entry is not None and entry.status is MessageStatus.PENDING:
                self._mark_failed(conv, optimistic, "cancelled")
        else:
            # Failures are already in the error slot; mark them retrieved.
            task.exception()

    async def _confirm_send(self, conv: Conversation, optimistic: Message) -> Message:
        async with self._lock(conv.id):
            conv.last_error = None
            confirmed = await self._send_remote(conv, optimistic)
            conv.cache.replace(optimistic.id, confirmed)
            await self._rewrite_store(
                conv,
                lambda stored: [*(m for m in stored if m.id != confirmed.id), confirmed],
            )

        logger.info(
            "Message %s confirmed as %s in conversation %s",
            optimistic.id, confirmed.id, conv.id,
        )
        return confirmed

    async def _send_remote(self, conv: Conversation, optimistic: Message) -> Message:
        try:
            async with asyncio.timeout(self._gateway_timeout):
                remote = await self._gateway.send_message(conv.id, optimistic.text)
            return build_message(
                id=remote.id,
                conversation_id=conv.id,
                text=optimistic.text,
                created_at=remote.created_at or optimistic.created_at,
                origin=MessageOrigin.LOCAL_CONFIRMED,
                status=MessageStatus.SENT,
            )
        except TimeoutError as exc:
            failed = self._mark_failed(conv, optimistic, "timed out")
            raise SendFailed("Timed out sending message", message=failed) from exc
        except SendFailed as exc:
            failed = self._mark_failed(conv, optimistic, exc.detail)
            raise SendFailed(
                exc.detail,
                status_code=exc.status_code,
                body=exc.body,
                message=failed,
            ) from exc
        except Exception as exc:
            logger.exception("Unexpected send error for %s", optimistic.id)
            failed = self._mark_failed(conv, optimistic, str(exc))
            raise SendFailed(f"Unexpected send error: {exc}", message=failed) from exc

    def _mark_failed(self, conv: Conversation, optimistic: Message, reason: str) -> Message:
        failed = with_status(optimistic, MessageStatus.FAILED)
        conv.cache.upsert(failed)
        conv.last_error = ErrorKind.SEND_FAILED
        logger.warning("Send of %s failed in conversation %s: %s", optimistic.id, conv.id, reason)
        return failed

    # -- delete ------------------------------------------------------------

    async def delete_message(self, message_id: str, conversation_id: str | None = None) -> None:
        """Delete remotely, then drop the message from the cache and the store.

        Raises DeleteFailed when the service rejects or does not answer, and
        ConflictError for a message whose send is still in flight.
        """
        conversation_id = conversation_id or self._find_conversation(message_id)
        if conversation_id is None:
            # Not cached anywhere: nothing local to reconcile.
            await self._delete_remote(message_id)
            return

        conv = self.conversation(conversation_id)
        async with self._lock(conversation_id):
            conv.last_error = None
            entry = conv.cache.get(message_id)

            if entry is not None and entry.origin is MessageOrigin.LOCAL_PENDING:
                if entry.status is MessageStatus.PENDING:
                    raise ConflictError("Message is still being sent")
                # A failed placeholder never reached the server.
                conv.cache.remove(message_id)
                logger.info("Discarded failed message %s in conversation %s", message_id, conversation_id)
                return

            try:
                await self._delete_remote(message_id)
            except DeleteFailed:
                conv.last_error = ErrorKind.DELETE_FAILED
                raise

            conv.cache.remove(message_id)
            was_local = entry is not None and entry.origin is MessageOrigin.LOCAL_CONFIRMED
            if was_local or message_id in conv.persisted_ids:
                await self._rewrite_store(
                    conv,
                    lambda stored: (
                        [m for m in stored if m.id != message_id]
                        if any(m.id == message_id for m in stored)
                        else None
                    ),
                )

        logger.info("Deleted message %s from conversation %s", message_id, conversation_id)

    async def _delete_remote(self, message_id: str) -> None:
        try:
            async with asyncio.timeout(self._gateway_timeout):
                await self._gateway.delete_message(message_id)
        except TimeoutError as exc:
            logger.warning("Delete of %s timed out", message_id)
            raise DeleteFailed("Timed out deleting message") from exc
        except DeleteFailed as exc:
            logger.warning("Delete of %s failed: %s", message_id, exc.detail)
            raise
        except Exception as exc:
            logger.exception("Unexpected delete error for %s", message_id)
            raise DeleteFailed(f"Unexpected delete error: {exc}") from exc

    def _find_conversation(self, message_id: str) -> str | None:
        for conv in self._conversations.values():
            if message_id in conv.cache:
                return conv.id
        return None

    # -- store -------------------------------------------------------------

    async def _rewrite_store(self, conv: Conversation, update: StoreUpdate) -> bool:
        """Read-merge-write of the persisted list; ``update`` returns None for no-op.

        Callers hold the conversation lock. A storage failure is recorded in
        the error slot; the in-memory state is kept as is.
        """
        try:
            stored = await self._store.get_conversation_messages(conv.id) or []
            updated = update(stored)
            if updated is None:
                return True
            await self._store.put_conversation_messages(conv.id, updated)
        except StorageUnavailable as exc:
            conv.last_error = ErrorKind.STORAGE_UNAVAILABLE
            logger.warning("Store write failed for conversation %s: %s", conv.id, exc.detail)
            return False
        conv.persisted_ids = {m.id for m in updated}
        return True

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock
