"""Port used to deliver text replies through the messaging platform."""

from __future__ import annotations

from typing import Protocol


class ReplyGatewayPort(Protocol):
    """Single-use reply token delivery contract."""

    async def reply_text(
        self,
        *,
        reply_token: str,
        text: str,
        quote_token: str | None = None,
    ) -> None:
        """Send one text reply for the event that issued `reply_token`."""
