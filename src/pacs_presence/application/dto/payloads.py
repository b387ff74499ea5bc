"""Wire payload models for the presence channel and REST collaborators."""
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, RootModel, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from pacs_presence.application.exceptions import ProtocolError
from pacs_presence.domain.entities.message import Message
from pacs_presence.domain.entities.peer import PeerUser
from pacs_presence.domain.entities.session import Session


class _WireModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class JoinPayload(_WireModel):
    """Client → /app/chat.addUser."""

    user_id: str = Field(alias="userid")
    username: str
    user_role: str = Field(alias="userRole")

    @classmethod
    def from_session(cls, session: Session) -> JoinPayload:
        return cls(
            user_id=session.subject_id,
            username=session.display_name,
            user_role=session.role,
        )


class OutboundChatMessage(_WireModel):
    """Client → /app/chat.privateMessage (no timestamp, the server stamps it)."""

    content: str
    sender_id: str = Field(alias="senderId")
    sender_name: str = Field(alias="senderName")
    recipient_id: str = Field(alias="recipientId")

    @classmethod
    def from_message(cls, message: Message) -> OutboundChatMessage:
        return cls(
            content=message.body,
            sender_id=message.sender_id,
            sender_name=message.sender_name,
            recipient_id=message.recipient_id,
        )


class InboundChatMessage(OutboundChatMessage):
    """Server → /user/{id}/queue/private, and history entries."""

    created_at: datetime = Field(alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # The server serialises LocalDateTime without an offset.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_message(self) -> Message:
        return Message(
            body=self.content,
            sender_id=self.sender_id,
            sender_name=self.sender_name,
            recipient_id=self.recipient_id,
            created_at=self.created_at,
        )


class PresenceSnapshot(RootModel[dict[str, str]]):
    """Server → /topic/onlineUsers: the complete online set."""

    model_config = ConfigDict(coerce_numbers_to_str=True)


class DirectoryEntry(_WireModel):
    user_id: str = Field(alias="userid")
    username: str
    user_role: str = Field(default="", alias="userRole")

    def to_peer(self) -> PeerUser:
        return PeerUser(peer_id=self.user_id, display_name=self.username, role=self.user_role)


_history_adapter = TypeAdapter(list[InboundChatMessage])
_directory_adapter = TypeAdapter(list[DirectoryEntry])


def decode_private_message(raw: str | bytes) -> Message:
    try:
        return InboundChatMessage.model_validate_json(raw).to_message()
    except PydanticValidationError as exc:
        raise ProtocolError(f"Malformed private message: {exc.error_count()} error(s)") from exc


def decode_presence_snapshot(raw: str | bytes) -> dict[str, str]:
    try:
        return PresenceSnapshot.model_validate_json(raw).root
    except PydanticValidationError as exc:
        raise ProtocolError(f"Malformed presence snapshot: {exc.error_count()} error(s)") from exc


def decode_history(raw: str | bytes) -> list[Message]:
    try:
        return [item.to_message() for item in _history_adapter.validate_json(raw)]
    except PydanticValidationError as exc:
        raise ProtocolError(f"Malformed history response: {exc.error_count()} error(s)") from exc


def decode_directory(raw: str | bytes) -> list[PeerUser]:
    try:
        return [entry.to_peer() for entry in _directory_adapter.validate_json(raw)]
    except PydanticValidationError as exc:
        raise ProtocolError(f"Malformed directory response: {exc.error_count()} error(s)") from exc
