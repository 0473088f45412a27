"""Conversation orchestration: single sends, side-by-side comparisons, and
paced two-model discussions over a thread's message log.

Every operation holds its thread exclusively from the moment it is accepted
until it reaches a terminal state, so a thread's log has exactly one writer at
a time. Operations on different threads never wait on each other.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from config.config_loader import DiscussionConfig
from parley.catalog import ModelCatalog
from parley.delay import CancellationToken, cancellable_delay
from parley.errors import BusyError, ThreadKindError
from parley.message_log import MessageLog
from parley.models import (
    AssistantMessage,
    Comparison,
    ComparisonMessage,
    ComparisonSide,
    DiscussionSession,
    ErrorMessage,
    FileAttachment,
    Message,
    ModelDescriptor,
    ModelReply,
    ModelRequest,
    SessionStatus,
    SystemMessage,
    ThreadKind,
    UserMessage,
)
from parley.providers.base import ModelClient, ProviderError

logger = logging.getLogger(__name__)

STOPPED_MESSAGE = "Discussion stopped by user"


class ConversationOrchestrator:
    """Turns user intents into ordered model calls and log appends."""

    def __init__(
        self,
        log: MessageLog,
        client: ModelClient,
        catalog: ModelCatalog,
        discussion: DiscussionConfig | None = None,
    ) -> None:
        self._log = log
        self._client = client
        self._catalog = catalog
        self._discussion = discussion or DiscussionConfig()
        self._active: dict[str, str] = {}
        self._sessions: dict[str, DiscussionSession] = {}
        self._pending_deletes: set[str] = set()
        self._pending_stop_notes: set[str] = set()

    @property
    def log(self) -> MessageLog:
        return self._log

    @property
    def catalog(self) -> ModelCatalog:
        return self._catalog

    def active_operation(self, thread_id: str) -> str | None:
        return self._active.get(thread_id)

    def is_busy(self, thread_id: str) -> bool:
        return thread_id in self._active

    def session(self, thread_id: str) -> DiscussionSession | None:
        return self._sessions.get(thread_id)

    # --- Thread ownership ---

    def _require_chat_thread(self, thread_id: str) -> None:
        if self._log.get_thread(thread_id).kind is not ThreadKind.CHAT:
            raise ThreadKindError(thread_id)

    @contextmanager
    def _exclusive(self, thread_id: str, operation: str) -> Iterator[None]:
        active = self._active.get(thread_id)
        if active is not None:
            raise BusyError(thread_id, active)
        self._active[thread_id] = operation
        logger.debug("Thread %s acquired by %s", thread_id, operation)
        try:
            yield
        finally:
            del self._active[thread_id]
            logger.debug("Thread %s released by %s", thread_id, operation)
            self._after_release(thread_id)

    def _after_release(self, thread_id: str) -> None:
        if thread_id in self._pending_deletes:
            self._pending_deletes.discard(thread_id)
            self._pending_stop_notes.discard(thread_id)
            self._sessions.pop(thread_id, None)
            self._log.delete_thread(thread_id)
            logger.info("Deferred deletion of thread %s completed", thread_id)
        elif thread_id in self._pending_stop_notes:
            self._pending_stop_notes.discard(thread_id)
            self._log.append(thread_id, SystemMessage(STOPPED_MESSAGE))

    async def _call_model(
        self,
        model: ModelDescriptor,
        text: str,
        attachment: FileAttachment | None = None,
    ) -> ModelReply | ProviderError:
        """Send one prompt. Never raises: failures come back as ProviderError.

        No retry happens here; re-sending is the user's call.
        """
        request = ModelRequest(
            message=text,
            model_id=model.id,
            provider_id=model.provider_id,
            attachment=attachment,
        )
        try:
            return await self._client.send(request)
        except ProviderError as exc:
            logger.warning("Model %s failed (%s): %s", model.id, exc.kind.value, exc.detail)
            return exc
        except Exception as exc:
            err = ProviderError(model.provider_id, f"Unexpected error: {exc}")
            logger.warning("Model %s unexpected failure: %s", model.id, exc)
            return err

    # --- Operations ---

    async def send_single(
        self,
        thread_id: str,
        text: str,
        model_id: str,
        attachment: FileAttachment | None = None,
    ) -> Message:
        """Send ``text`` to one model and append its answer (or the error).

        Returns:
            The last message appended: the assistant reply or an error.

        Raises:
            BusyError: Another operation holds the thread.
            InvalidModelError: ``model_id`` is not in the catalog.
            ThreadNotFoundError: ``thread_id`` does not exist.
        """
        self._require_chat_thread(thread_id)
        with self._exclusive(thread_id, "send"):
            model = self._catalog.get(model_id)
            logger.info("Sending to %s on thread %s", model_id, thread_id)

            self._log.append(thread_id, UserMessage(text))
            result = await self._call_model(model, text, attachment)

            if isinstance(result, ProviderError):
                return self._log.append(thread_id, ErrorMessage(result.detail, model_id=model_id))

            self._log.set_last_used_model(thread_id, model_id)
            return self._log.append(thread_id, AssistantMessage(result.content, model_id=model_id))

    async def compare(self, thread_id: str, text: str, model1_id: str, model2_id: str) -> Message:
        """Ask two models the same question concurrently and append one combined result.

        Both must succeed for a comparison to be appended. Otherwise a single
        error is appended, model1's failure taking precedence over model2's.
        """
        self._require_chat_thread(thread_id)
        with self._exclusive(thread_id, "compare"):
            model1 = self._catalog.get(model1_id)
            model2 = self._catalog.get(model2_id)
            logger.info("Comparing %s vs %s on thread %s", model1_id, model2_id, thread_id)

            self._log.append(thread_id, UserMessage(text))
            result1, result2 = await asyncio.gather(
                self._call_model(model1, text),
                self._call_model(model2, text),
            )

            for model_id, result in ((model1_id, result1), (model2_id, result2)):
                if isinstance(result, ProviderError):
                    return self._log.append(thread_id, ErrorMessage(result.detail, model_id=model_id))

            comparison = Comparison(
                prompt_text=text,
                model1=ComparisonSide(id=model1_id, response=result1.content),
                model2=ComparisonSide(id=model2_id, response=result2.content),
            )
            return self._log.append(thread_id, ComparisonMessage(text, comparison=comparison))

    async def discuss(self, thread_id: str, text: str, model1_id: str, model2_id: str) -> DiscussionSession:
        """Run a paced round-robin dialogue between two models.

        model1 answers the current message, model2 answers model1, and
        model2's answer becomes the next round's message. The dialogue ends
        after ``max_rounds`` rounds, on the first model failure, or when
        stopped. A paused session on this thread is resumed instead of
        starting over: ``text`` re-seeds it and its round count is kept.

        Returns:
            The session in its final state (COMPLETED, STOPPED or PAUSED).
        """
        self._require_chat_thread(thread_id)
        with self._exclusive(thread_id, "discuss"):
            model1 = self._catalog.get(model1_id)
            model2 = self._catalog.get(model2_id)

            session = self._sessions.get(thread_id)
            if session is not None and session.status is SessionStatus.PAUSED:
                session.model1_id = model1_id
                session.model2_id = model2_id
                session.pending_message = text
                session.status = SessionStatus.RUNNING
                session.token = CancellationToken()
                logger.info("Resuming discussion on thread %s at round %d", thread_id, session.round)
            else:
                session = DiscussionSession(
                    thread_id=thread_id,
                    model1_id=model1_id,
                    model2_id=model2_id,
                    pending_message=text,
                    max_rounds=self._discussion.max_rounds,
                )
                self._sessions[thread_id] = session
                logger.info(
                    "Starting discussion %s <-> %s on thread %s (%d rounds)",
                    model1_id,
                    model2_id,
                    thread_id,
                    session.max_rounds,
                )

            self._log.append(thread_id, UserMessage(text))
            try:
                await self._run_discussion(session, model1, model2)
            except asyncio.CancelledError:
                session.status = SessionStatus.STOPPED
                session.token.cancel()
                self._announce_stop(session)
                raise
            except Exception:
                logger.exception("Discussion on thread %s aborted", thread_id)
                session.status = SessionStatus.COMPLETED
                session.token.cancel()
                raise
            finally:
                if session.finished:
                    self._sessions.pop(thread_id, None)

            logger.info(
                "Discussion on thread %s ended: %s after %d/%d rounds",
                thread_id,
                session.status.value,
                session.round,
                session.max_rounds,
            )
            return session

    def stop(self, thread_id: str) -> bool:
        """Ask the discussion on ``thread_id`` to stop. Safe to call repeatedly.

        A running discussion stops at its next boundary; a call already in
        flight is allowed to finish and its result is kept. Returns True if a
        live session was signalled.
        """
        session = self._sessions.get(thread_id)
        if session is None or session.finished:
            return False

        if session.status is SessionStatus.PAUSED:
            session.status = SessionStatus.STOPPED
            self._sessions.pop(thread_id, None)
            if thread_id in self._active:
                self._pending_stop_notes.add(thread_id)
            else:
                self._announce_stop(session)
            logger.info("Paused discussion on thread %s stopped", thread_id)
            return True

        session.status = SessionStatus.STOPPED
        session.token.cancel()
        logger.info("Stop requested for discussion on thread %s", thread_id)
        return True

    def pause(self, thread_id: str) -> bool:
        """Ask a running discussion to pause at its next boundary."""
        session = self._sessions.get(thread_id)
        if session is None or session.status is not SessionStatus.RUNNING:
            return False
        session.pause_requested = True
        session.token.cancel()
        logger.info("Pause requested for discussion on thread %s", thread_id)
        return True

    def delete_thread(self, thread_id: str) -> bool:
        """Delete a thread, or defer it until the active operation finishes.

        A running discussion is stopped as part of a deferred delete.

        Returns:
            True if the thread was removed now, False if removal is deferred.
        """
        if thread_id in self._active:
            self._pending_deletes.add(thread_id)
            self.stop(thread_id)
            logger.info("Deletion of thread %s deferred until %s finishes", thread_id, self._active[thread_id])
            return False
        self._sessions.pop(thread_id, None)
        self._log.delete_thread(thread_id)
        return True

    # --- Discussion loop ---

    def _announce_stop(self, session: DiscussionSession) -> None:
        if session.stop_announced:
            return
        session.stop_announced = True
        self._log.append(session.thread_id, SystemMessage(STOPPED_MESSAGE))

    def _halted(self, session: DiscussionSession) -> bool:
        """Boundary check: honour a pending stop or pause."""
        if session.status is SessionStatus.STOPPED:
            self._announce_stop(session)
            return True
        if session.pause_requested:
            session.pause_requested = False
            session.status = SessionStatus.PAUSED
            logger.info("Discussion on thread %s paused at round %d", session.thread_id, session.round)
            return True
        return False

    async def _pace(self, session: DiscussionSession) -> None:
        await cancellable_delay(
            self._discussion.turn_delay_sec,
            session.token,
            self._discussion.poll_interval_sec,
        )

    async def _take_turn(self, session: DiscussionSession, model: ModelDescriptor, prompt: str) -> str | None:
        """One model turn. Returns the reply text, or None if the session ended."""
        logger.debug("Round %d: %s's turn on thread %s", session.round + 1, model.id, session.thread_id)
        result = await self._call_model(model, prompt)

        if isinstance(result, ProviderError):
            self._log.append(session.thread_id, ErrorMessage(result.detail, model_id=model.id))
            if session.status is SessionStatus.STOPPED:
                self._announce_stop(session)
            else:
                session.status = SessionStatus.COMPLETED
            return None

        self._log.append(session.thread_id, AssistantMessage(result.content, model_id=model.id))
        return result.content

    async def _run_discussion(
        self,
        session: DiscussionSession,
        model1: ModelDescriptor,
        model2: ModelDescriptor,
    ) -> None:
        while True:
            if self._halted(session):
                return
            reply = await self._take_turn(session, model1, session.pending_message)
            if reply is None:
                return

            await self._pace(session)
            if self._halted(session):
                return
            reply = await self._take_turn(session, model2, reply)
            if reply is None:
                return

            session.pending_message = reply
            session.round += 1
            if session.status is SessionStatus.STOPPED:
                self._announce_stop(session)
                return
            if session.round >= session.max_rounds:
                session.status = SessionStatus.COMPLETED
                return
            await self._pace(session)
