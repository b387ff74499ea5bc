"""STOMP 1.2 frame encoding over WebSocket text messages."""
from __future__ import annotations

from dataclasses import dataclass, field

from pacs_presence.application.exceptions import ProtocolError

NULL = "\x00"

# CONNECT/CONNECTED headers are sent verbatim.
_RAW_HEADER_COMMANDS = frozenset({"CONNECT", "CONNECTED"})

_ESCAPES = {"\\": "\\\\", "\r": "\\r", "\n": "\\n", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "r": "\r", "n": "\n", "c": ":"}


@dataclass(frozen=True, slots=True)
class Frame:
    command: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


def _escape(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def _unescape(value: str) -> str:
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        if nxt not in _UNESCAPES:
            raise ProtocolError(f"Invalid header escape: \\{nxt}")
        out.append(_UNESCAPES[nxt])
    return "".join(out)


def encode_frame(frame: Frame) -> str:
    raw = frame.command in _RAW_HEADER_COMMANDS
    lines = [frame.command]
    for key, value in frame.headers.items():
        if raw:
            lines.append(f"{key}:{value}")
        else:
            lines.append(f"{_escape(key)}:{_escape(value)}")
    if frame.body and "content-length" not in frame.headers:
        lines.append(f"content-length:{len(frame.body.encode('utf-8'))}")
    return "\n".join(lines) + "\n\n" + frame.body + NULL


def decode_frame(data: str | bytes) -> Frame | None:
    """Parse one frame. Returns None for a bare heart-beat (EOL only)."""
    text = data.decode("utf-8") if isinstance(data, bytes) else data
    text = text.lstrip("\r\n")
    if not text:
        return None

    head_end = text.find("\n\n")
    sep_len = 2
    crlf_end = text.find("\r\n\r\n")
    if crlf_end != -1 and (head_end == -1 or crlf_end < head_end):
        head_end, sep_len = crlf_end, 4
    if head_end == -1:
        raise ProtocolError("Frame has no header terminator")

    head_lines = [line.rstrip("\r") for line in text[:head_end].split("\n")]
    command = head_lines[0]
    if not command:
        raise ProtocolError("Frame has no command")

    raw = command in _RAW_HEADER_COMMANDS
    headers: dict[str, str] = {}
    for line in head_lines[1:]:
        key, sep, value = line.partition(":")
        if not sep:
            raise ProtocolError(f"Malformed header line: {line!r}")
        if not raw:
            key, value = _unescape(key), _unescape(value)
        # Repeated headers: the first occurrence wins.
        headers.setdefault(key, value)

    rest = text[head_end + sep_len:]
    length = headers.get("content-length")
    if length is not None:
        try:
            size = int(length)
        except ValueError as exc:
            raise ProtocolError(f"Invalid content-length: {length!r}") from exc
        payload = rest.encode("utf-8")
        if len(payload) < size or payload[size:size + 1] != b"\x00":
            raise ProtocolError("Frame body shorter than content-length")
        body = payload[:size].decode("utf-8")
    else:
        end = rest.find(NULL)
        if end == -1:
            raise ProtocolError("Frame is not NULL-terminated")
        body = rest[:end]

    return Frame(command=command, headers=headers, body=body)
