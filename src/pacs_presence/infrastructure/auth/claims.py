from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pacs_presence.application.exceptions import InvalidCredentialError
from pacs_presence.domain.entities.session import Session


def session_from_claims(payload: dict[str, Any], now: datetime) -> Session:
    """Build a Session from decoded JWT claims.

    Rejects tokens whose ``exp`` is not strictly after *now*.
    """
    try:
        subject_id = str(payload["sub"])
        expires_at = datetime.fromtimestamp(float(payload["exp"]), tz=timezone.utc)
    except KeyError as exc:
        raise InvalidCredentialError(f"Missing claim: {exc.args[0]}") from exc
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidCredentialError("Invalid exp claim") from exc

    if expires_at <= now:
        raise InvalidCredentialError("Token expired")

    return Session(
        subject_id=subject_id,
        role=str(payload.get("auth", "")),
        display_name=str(payload.get("username", subject_id)),
        expires_at=expires_at,
    )
