"""Conversation controller: transcript, session, staged image, and send cycle."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from pathlib import Path
from typing import Protocol
import uuid

from .attachments import AttachmentManager
from .exceptions import SessionNotInitializedError
from .models import Message, PendingAttachment, Role, Submission
from .normalize import normalize_response
from .state import ConversationState, StateManager
from .transcript import Transcript

LOGGER = logging.getLogger(__name__)

FALLBACK_ERROR_TEXT = "Sorry, there was an error sending your message. Please try again."


class SubmissionTransport(Protocol):
    """Anything able to deliver a submission and return the raw reply body."""

    async def submit(self, submission: Submission) -> str: ...


ChangeListener = Callable[["ConversationController"], None]


class ConversationController:
    """Own the transcript and drive each send/receive exchange to completion.

    All mutation happens through ``initialize_session``, ``stage_attachment``,
    ``clear_attachment`` and ``send``. Sends are single-flight: a call made
    while another exchange is outstanding is dropped, not queued.
    """

    def __init__(
        self,
        client: SubmissionTransport,
        attachments: AttachmentManager | None = None,
    ) -> None:
        self._client = client
        self._attachments = attachments or AttachmentManager()
        self._transcript = Transcript()
        self._state = StateManager()
        self._session_id: str | None = None
        self._listeners: list[ChangeListener] = []

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def messages(self) -> tuple[Message, ...]:
        """Return an immutable snapshot of the transcript."""
        return self._transcript.messages

    @property
    def staged_attachment(self) -> PendingAttachment | None:
        return self._attachments.staged

    @property
    def is_busy(self) -> bool:
        return self._state.state == ConversationState.SENDING

    def on_change(self, callback: ChangeListener) -> None:
        """Register a callback invoked after every transcript or busy-state change."""
        self._listeners.append(callback)

    def initialize_session(self) -> str:
        """Generate a fresh session identifier and return it.

        Calling again starts a logically new conversation with the backend.
        """
        self._session_id = str(uuid.uuid4())
        LOGGER.info(
            "controller.session.initialized",
            extra={
                "event": "controller.session.initialized",
                "session_id": self._session_id,
            },
        )
        return self._session_id

    async def stage_attachment(
        self,
        source: str | Path | bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> PendingAttachment:
        """Validate and stage an image, replacing any previously staged one.

        Raises ``AttachmentValidationError`` and keeps prior state on failure.
        """
        attachment = await self._attachments.stage(
            source, filename=filename, content_type=content_type
        )
        self._notify()
        return attachment

    def clear_attachment(self) -> None:
        """Discard the staged attachment and its preview."""
        self._attachments.clear()
        self._notify()

    async def send(
        self, text: str, attachment: PendingAttachment | None = None
    ) -> Message | None:
        """Run one exchange and return the appended assistant message.

        Returns ``None`` without touching the transcript when there is
        nothing to send or another exchange is in flight. Network and backend
        failures never propagate; they become the fallback assistant reply.
        """
        if self._session_id is None:
            raise SessionNotInitializedError(
                "initialize_session() must be called before sending."
            )

        outgoing = attachment or self._attachments.staged
        if not text.strip() and outgoing is None:
            LOGGER.debug(
                "controller.send.empty",
                extra={"event": "controller.send.empty"},
            )
            return None

        # Atomic CAS: only proceed when IDLE -> SENDING succeeds.
        transitioned = await self._state.transition_if(
            ConversationState.IDLE, ConversationState.SENDING
        )
        if not transitioned:
            LOGGER.info(
                "controller.send.dropped",
                extra={"event": "controller.send.dropped", "reason": "busy"},
            )
            return None

        submission = Submission(
            text=text, session_id=self._session_id, attachment=outgoing
        )
        self._transcript.append(
            Message(
                role=Role.USER,
                text=text,
                image_url=outgoing.preview_url if outgoing is not None else None,
            )
        )
        self._attachments.clear()
        self._notify()

        try:
            reply_text = await self._exchange(submission)
            reply = self._transcript.append(
                Message(role=Role.ASSISTANT, text=reply_text)
            )
        finally:
            await self._state.transition_to(ConversationState.IDLE)
            self._notify()
        return reply

    async def _exchange(self, submission: Submission) -> str:
        """Submit and normalize, collapsing every failure into the fallback text."""
        try:
            raw = await self._client.submit(submission)
            reply_text = normalize_response(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.error(
                "controller.send.failed",
                exc_info=exc,
                extra={
                    "event": "controller.send.failed",
                    "session_id": submission.session_id,
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                },
            )
            return FALLBACK_ERROR_TEXT
        LOGGER.info(
            "controller.send.complete",
            extra={
                "event": "controller.send.complete",
                "session_id": submission.session_id,
                "reply_length": len(reply_text),
            },
        )
        return reply_text

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)
