from typing import Any, Callable, Dict, List, Optional

import httpx

from familybank.schemas.chat import MarkReadResult, UnreadSnapshot


class FamilyBankAPI:
    """Thin async client for the REST endpoints the notification core needs."""

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self._token_provider = token_provider
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def unread_count(self) -> UnreadSnapshot:
        response = await self._client.get("/api/chat/unread-count", headers=self._headers())
        response.raise_for_status()
        return UnreadSnapshot.model_validate(response.json())

    async def mark_read(self, conversation_id: Optional[str] = None, message_ids: Optional[List[str]] = None) -> int:
        body: Dict[str, Any] = {}
        if conversation_id:
            body["conversation_id"] = conversation_id
        if message_ids:
            body["message_ids"] = message_ids
        response = await self._client.post("/api/chat/mark-read", json=body, headers=self._headers())
        response.raise_for_status()
        return MarkReadResult.model_validate(response.json()).count

    async def aclose(self) -> None:
        await self._client.aclose()
