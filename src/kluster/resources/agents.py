"""Agents resource for Kluster SDK."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from kluster._errors import handle_errors
from kluster._poller import AsyncConvergencePoller, ConvergencePoller, WaitContext
from kluster.exceptions import KlusterError
from kluster.models.agent import Agent, AgentState
from kluster.refreshers import AgentRefresher, AsyncAgentRefresher
from kluster.resources._base import AsyncResource, SyncResource

if TYPE_CHECKING:
    from kluster._config import PollingConfig
    from kluster._http import AsyncHttpClient, HttpClient

logger = logging.getLogger("kluster.resources")

AGENTS_PATH = "/api/v1/agents"


def _removed_tags(old: Mapping[str, str], new: Mapping[str, str]) -> list[str]:
    return [key for key in old if key not in new]


class Agents(SyncResource):
    """Agents resource for registered machines.

    Example:
        ```python
        # Wait up to five minutes for a freshly booted server to register
        agent = client.agents.wait_for(filter="@metadata_name = 'web-1'", timeout=300)
        client.agents.update_tags(agent.agent_id, agent.tags, {"role": "web"})
        ```
    """

    def __init__(self, http: HttpClient, polling: PollingConfig | None = None) -> None:
        super().__init__(http, polling)
        self._poller = ConvergencePoller()

    def list(self, *, filter: str | None = None) -> list[Agent]:
        """List agents, optionally matching a filter expression."""
        logger.debug("Agent list filter: %s", filter)
        data = self._http.get(AGENTS_PATH, params={"q": filter})
        return [Agent.model_validate(item) for item in data or []]

    def get(self, agent_id: str) -> Agent:
        """Get a specific agent."""
        data = self._http.get(f"{AGENTS_PATH}/{agent_id}")
        return Agent.model_validate(data)

    def get_facts(self, agent_id: str) -> dict[str, Any]:
        """Get the facts an agent reported about its host."""
        return self._http.get(f"{AGENTS_PATH}/{agent_id}/facts") or {}

    def read(self, agent: Agent) -> Agent:
        """Return ``agent`` with its facts filled in if they are missing.

        Facts are fetched best-effort; a failure leaves them empty.
        """
        if agent.facts:
            return agent
        try:
            facts = self.get_facts(agent.agent_id)
        except KlusterError as e:
            logger.warning("Unable to retrieve facts for agent %s: %s", agent.agent_id, e)
            return agent
        logger.debug("Retrieved facts for agent %s", agent.agent_id)
        return agent.model_copy(update={"facts": facts})

    def delete(self, agent_id: str) -> None:
        """Delete an agent registration."""
        with handle_errors(f"Error deleting agent {agent_id}"):
            self._http.delete(f"{AGENTS_PATH}/{agent_id}")

    def update_tags(
        self,
        agent_id: str,
        old: Mapping[str, str],
        new: Mapping[str, str],
    ) -> None:
        """Replace an agent's tags.

        Keys missing from ``new`` are deleted first, then every tag in ``new``
        is written.
        """
        for key in _removed_tags(old, new):
            with handle_errors(f"error deleting {key} tag from agent {agent_id}"):
                self._http.delete(f"{AGENTS_PATH}/{agent_id}/tags/{key}")

        with handle_errors(f"error updating tags for agent {agent_id}"):
            self._http.post(f"{AGENTS_PATH}/{agent_id}/tags", json=dict(new))

    def wait_for(
        self,
        agent_id: str = "",
        *,
        filter: str | None = None,
        timeout: float = 0,
        ctx: WaitContext | None = None,
    ) -> Agent:
        """Find an agent, waiting for it to register if a timeout is given.

        Args:
            agent_id: The agent id. Takes precedence over ``filter``.
            filter: Filter expression that must match exactly one agent.
            timeout: Seconds to wait. 0 looks once.
            ctx: Optional cancellation / deadline context.

        Raises:
            ValidationError: Neither id nor filter was given, or the filter is ambiguous.
            TransientAbsenceError: No agent found with a zero timeout.
            WaitTimeoutError: No agent registered within the timeout.
        """
        spec = self._convergence(AgentState.ACTIVE, (), timeout)
        refresher = AgentRefresher(self, filter=filter)
        return self._poller.await_state(agent_id, spec, refresher, ctx=ctx)


class AsyncAgents(AsyncResource):
    """Async agents resource."""

    def __init__(self, http: AsyncHttpClient, polling: PollingConfig | None = None) -> None:
        super().__init__(http, polling)
        self._poller = AsyncConvergencePoller()

    async def list(self, *, filter: str | None = None) -> list[Agent]:
        """List agents, optionally matching a filter expression."""
        data = await self._http.get(AGENTS_PATH, params={"q": filter})
        return [Agent.model_validate(item) for item in data or []]

    async def get(self, agent_id: str) -> Agent:
        """Get a specific agent."""
        data = await self._http.get(f"{AGENTS_PATH}/{agent_id}")
        return Agent.model_validate(data)

    async def get_facts(self, agent_id: str) -> dict[str, Any]:
        """Get the facts an agent reported about its host."""
        return await self._http.get(f"{AGENTS_PATH}/{agent_id}/facts") or {}

    async def read(self, agent: Agent) -> Agent:
        """Return ``agent`` with its facts filled in if they are missing."""
        if agent.facts:
            return agent
        try:
            facts = await self.get_facts(agent.agent_id)
        except KlusterError as e:
            logger.warning("Unable to retrieve facts for agent %s: %s", agent.agent_id, e)
            return agent
        return agent.model_copy(update={"facts": facts})

    async def delete(self, agent_id: str) -> None:
        """Delete an agent registration."""
        with handle_errors(f"Error deleting agent {agent_id}"):
            await self._http.delete(f"{AGENTS_PATH}/{agent_id}")

    async def update_tags(
        self,
        agent_id: str,
        old: Mapping[str, str],
        new: Mapping[str, str],
    ) -> None:
        """Replace an agent's tags."""
        for key in _removed_tags(old, new):
            with handle_errors(f"error deleting {key} tag from agent {agent_id}"):
                await self._http.delete(f"{AGENTS_PATH}/{agent_id}/tags/{key}")

        with handle_errors(f"error updating tags for agent {agent_id}"):
            await self._http.post(f"{AGENTS_PATH}/{agent_id}/tags", json=dict(new))

    async def wait_for(
        self,
        agent_id: str = "",
        *,
        filter: str | None = None,
        timeout: float = 0,
    ) -> Agent:
        """Find an agent, waiting for it to register if a timeout is given."""
        spec = self._convergence(AgentState.ACTIVE, (), timeout)
        refresher = AsyncAgentRefresher(self, filter=filter)
        return await self._poller.await_state(agent_id, spec, refresher)
