from __future__ import annotations

from typing import Optional

from devdocs.client.results import ApiResult
from devdocs.client.session import SessionAgent

SNIPPETS_PATH = "/api/snippets"


class SnippetsAPI:
    """Snippet history endpoints, called through a SessionAgent."""

    def __init__(self, agent: SessionAgent):
        self.agent = agent

    async def list(self) -> ApiResult:
        return await self.agent.get(SNIPPETS_PATH)

    async def create(self, language: str, code: str, title: Optional[str] = None) -> ApiResult:
        body = {"language": language, "code": code}
        if title:
            body["title"] = title
        return await self.agent.post(SNIPPETS_PATH, json=body)

    async def rename(self, snippet_id: str, title: str) -> ApiResult:
        return await self.agent.patch(f"{SNIPPETS_PATH}/{snippet_id}", json={"title": title})

    async def delete(self, snippet_id: str) -> ApiResult:
        return await self.agent.delete(f"{SNIPPETS_PATH}/{snippet_id}")
