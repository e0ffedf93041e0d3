"""Supabase Store - Persistence through Supabase's PostgREST API."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import httpx

from bmark.errors import ConfigurationError, StoreError
from bmark.logging import get_logger
from bmark.models.catalog import (
    CatalogModel,
    PromptRecord,
    PromptWithResults,
    StoredConsensusGroup,
    StoredResponse,
)

logger = get_logger("bmark.storage.supabase")

_RESPONSE_SELECT = "*,model:models(*)"


class SupabaseStore:
    """
    ``ModelStore`` backed by the models, prompts, responses and
    consensus_groups tables of a Supabase project.
    """

    def __init__(
        self,
        url: str,
        key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        if not url or not key:
            raise ConfigurationError("Supabase URL and key are required")
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.key = key
        self.timeout = timeout
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient()

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        action: str,
        method: str,
        table: str,
        params: Optional[dict] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> list[dict]:
        """Run one PostgREST call and return its rows.

        Raises:
            StoreError: ``"Failed to <action>: <message>"`` on any failure
        """
        try:
            response = await self.client.request(
                method,
                f"{self.rest_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("store_request_failed", action=action, error=str(e))
            raise StoreError(f"Failed to {action}: {e}") from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = (body.get("message") if isinstance(body, dict) else None) or response.text
            logger.error("store_error", action=action, status=response.status_code, error=message)
            raise StoreError(f"Failed to {action}: {message}")

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    async def get_models(self) -> list[CatalogModel]:
        rows = await self._request(
            "fetch models", "GET", "models",
            params={"select": "*", "order": "provider.asc,name.asc"},
        )
        return [CatalogModel.model_validate(row) for row in rows]

    async def upsert_models(self, models: Sequence[CatalogModel]) -> list[CatalogModel]:
        if not models:
            return []
        payload = [
            m.model_dump(mode="json", include={"name", "provider", "model_id", "enabled", "context_length"})
            for m in models
        ]
        rows = await self._request(
            "upsert models", "POST", "models",
            params={"on_conflict": "model_id"},
            json=payload,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return [CatalogModel.model_validate(row) for row in rows]

    async def update_model_enabled(self, id: str, enabled: bool) -> CatalogModel:
        rows = await self._request(
            "update model", "PATCH", "models",
            params={"id": f"eq.{id}"},
            json={"enabled": enabled, "updated_at": datetime.now(timezone.utc).isoformat()},
            prefer="return=representation",
        )
        if not rows:
            raise StoreError(f"Failed to update model: no model with id {id}")
        return CatalogModel.model_validate(rows[0])

    async def save_prompt(self, text: str) -> PromptRecord:
        rows = await self._request(
            "save prompt", "POST", "prompts",
            json={"text": text},
            prefer="return=representation",
        )
        if not rows:
            raise StoreError("Failed to save prompt: no row returned")
        return PromptRecord.model_validate(rows[0])

    async def save_responses(self, responses: Sequence[StoredResponse]) -> list[StoredResponse]:
        if not responses:
            return []
        payload = [
            r.model_dump(mode="json", include={"prompt_id", "model_id", "response_text", "response_time_ms"})
            for r in responses
        ]
        rows = await self._request(
            "save responses", "POST", "responses",
            params={"select": _RESPONSE_SELECT},
            json=payload,
            prefer="return=representation",
        )
        return [StoredResponse.model_validate(row) for row in rows]

    async def save_consensus_groups(
        self, groups: Sequence[StoredConsensusGroup]
    ) -> list[StoredConsensusGroup]:
        if not groups:
            return []
        payload = [
            g.model_dump(mode="json", exclude={"id", "created_at"})
            for g in groups
        ]
        rows = await self._request(
            "save consensus groups", "POST", "consensus_groups",
            json=payload,
            prefer="return=representation",
        )
        return [StoredConsensusGroup.model_validate(row) for row in rows]

    async def get_prompt_history(self, limit: int = 50) -> list[PromptRecord]:
        rows = await self._request(
            "fetch prompt history", "GET", "prompts",
            params={"select": "*", "order": "created_at.desc", "limit": str(limit)},
        )
        return [PromptRecord.model_validate(row) for row in rows]

    async def get_prompt_with_results(self, prompt_id: str) -> Optional[PromptWithResults]:
        prompts, responses, groups = await asyncio.gather(
            self._request("fetch prompt", "GET", "prompts", params={"select": "*", "id": f"eq.{prompt_id}"}),
            self._request(
                "fetch responses", "GET", "responses",
                params={"select": _RESPONSE_SELECT, "prompt_id": f"eq.{prompt_id}"},
            ),
            self._request(
                "fetch consensus groups", "GET", "consensus_groups",
                params={"select": "*", "prompt_id": f"eq.{prompt_id}"},
            ),
        )
        if not prompts:
            return None
        return PromptWithResults(
            prompt=PromptRecord.model_validate(prompts[0]),
            responses=[StoredResponse.model_validate(row) for row in responses],
            consensus_groups=[StoredConsensusGroup.model_validate(row) for row in groups],
        )

    async def close(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
