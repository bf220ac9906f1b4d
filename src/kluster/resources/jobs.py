"""Jobs resource for Kluster SDK."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from kluster._errors import handle_errors
from kluster._poller import AsyncConvergencePoller, ConvergencePoller, WaitContext
from kluster.exceptions import KlusterError
from kluster.models.job import Job, JobCreate, JobStatus
from kluster.refreshers import AsyncJobRefresher, JobRefresher
from kluster.resources._base import AsyncResource, SyncResource

if TYPE_CHECKING:
    from kluster._config import PollingConfig
    from kluster._http import AsyncHttpClient, HttpClient

logger = logging.getLogger("kluster.resources")

JOBS_PATH = "/api/v1/jobs"

# Returned by get_log when the log cannot be fetched.
LOG_NOT_AVAILABLE = b"Log not available"

JOB_PENDING = (JobStatus.QUEUED, JobStatus.EXECUTING)


def _filter_jobs(
    jobs: Iterable[Job],
    *,
    timeout: int = 0,
    agent: str = "",
    action: str = "",
    status: str = "",
) -> list[Job]:
    """Keep jobs matching every non-empty criterion."""
    result = []
    for job in jobs:
        if timeout > 0 and job.timeout != timeout:
            continue
        if agent and job.agent != agent:
            continue
        if action and job.action != action:
            continue
        if status and job.status != status:
            continue
        result.append(job)
    return result


class Jobs(SyncResource):
    """Jobs resource for running actions on agents.

    Example:
        ```python
        from kluster.models import JobCreate

        job = client.jobs.create(
            JobCreate(to="agent-id", agent="execute", action="script", payload="uptime")
        )
        print(job.status)
        print(client.jobs.get_log(job.request_id).decode())
        ```
    """

    def __init__(self, http: HttpClient, polling: PollingConfig | None = None) -> None:
        super().__init__(http, polling)
        self._poller = ConvergencePoller()

    def list(
        self,
        *,
        agent_id: str | None = None,
        timeout: int = 0,
        agent: str = "",
        action: str = "",
        status: str = "",
    ) -> list[Job]:
        """List jobs.

        Only ``agent_id`` is filtered by the server; the other criteria are
        applied to the returned jobs.

        Args:
            agent_id: Only jobs sent to this agent.
            timeout: Only jobs with this timeout (0 = any).
            agent: Only jobs for this agent type, e.g. ``execute``.
            action: Only jobs running this action.
            status: Only jobs in this status.
        """
        params = {"agent_id": agent_id}
        logger.debug("Job list options: %s", params)
        with handle_errors("unable to list jobs"):
            data = self._http.get(JOBS_PATH, params=params)
        jobs = [Job.model_validate(item) for item in data or []]
        return _filter_jobs(jobs, timeout=timeout, agent=agent, action=action, status=status)

    def get(self, request_id: str) -> Job:
        """Get a specific job.

        Args:
            request_id: The job's request id.
        """
        data = self._http.get(f"{JOBS_PATH}/{request_id}")
        return Job.model_validate(data)

    def create(
        self,
        job: JobCreate,
        *,
        wait: bool = True,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
    ) -> Job:
        """Submit a job.

        Args:
            job: Target agent, action and payload.
            wait: Wait until the job completes.
            timeout: Maximum wait time in seconds; defaults to the job's own timeout.
            ctx: Optional cancellation / deadline context.

        Returns:
            The job, as observed when it completed if waiting.
        """
        with handle_errors("Error creating job"):
            data = self._http.post(JOBS_PATH, json=job.to_payload())
        request_id = (data or {}).get("request_id", "")

        if not wait:
            return self.get(request_id)
        return self.wait_for(
            request_id, timeout=float(job.timeout) if timeout is None else timeout, ctx=ctx
        )

    def get_log(self, request_id: str) -> bytes:
        """Get a job's log, or LOG_NOT_AVAILABLE if it cannot be fetched."""
        try:
            return self._http.get_content(f"{JOBS_PATH}/{request_id}/log")
        except KlusterError as e:
            logger.debug("Error retrieving logs for job %s: %s", request_id, e)
            return LOG_NOT_AVAILABLE

    def wait_for(
        self,
        request_id: str,
        *,
        timeout: float | None = None,
        ctx: WaitContext | None = None,
    ) -> Job:
        """Wait for a job to complete.

        Raises:
            UnexpectedStateError: The job failed.
            WaitTimeoutError: The job was still queued or executing at the timeout.
        """
        spec = self._convergence(
            JobStatus.COMPLETE,
            JOB_PENDING,
            self._polling.update_timeout if timeout is None else timeout,
        )
        return self._poller.await_state(request_id, spec, JobRefresher(self), ctx=ctx)


class AsyncJobs(AsyncResource):
    """Async jobs resource."""

    def __init__(self, http: AsyncHttpClient, polling: PollingConfig | None = None) -> None:
        super().__init__(http, polling)
        self._poller = AsyncConvergencePoller()

    async def list(
        self,
        *,
        agent_id: str | None = None,
        timeout: int = 0,
        agent: str = "",
        action: str = "",
        status: str = "",
    ) -> list[Job]:
        """List jobs."""
        with handle_errors("unable to list jobs"):
            data = await self._http.get(JOBS_PATH, params={"agent_id": agent_id})
        jobs = [Job.model_validate(item) for item in data or []]
        return _filter_jobs(jobs, timeout=timeout, agent=agent, action=action, status=status)

    async def get(self, request_id: str) -> Job:
        """Get a specific job."""
        data = await self._http.get(f"{JOBS_PATH}/{request_id}")
        return Job.model_validate(data)

    async def create(
        self,
        job: JobCreate,
        *,
        wait: bool = True,
        timeout: float | None = None,
    ) -> Job:
        """Submit a job."""
        with handle_errors("Error creating job"):
            data = await self._http.post(JOBS_PATH, json=job.to_payload())
        request_id = (data or {}).get("request_id", "")

        if not wait:
            return await self.get(request_id)
        return await self.wait_for(
            request_id, timeout=float(job.timeout) if timeout is None else timeout
        )

    async def get_log(self, request_id: str) -> bytes:
        """Get a job's log, or LOG_NOT_AVAILABLE if it cannot be fetched."""
        try:
            return await self._http.get_content(f"{JOBS_PATH}/{request_id}/log")
        except KlusterError as e:
            logger.debug("Error retrieving logs for job %s: %s", request_id, e)
            return LOG_NOT_AVAILABLE

    async def wait_for(self, request_id: str, *, timeout: float | None = None) -> Job:
        """Wait for a job to complete."""
        spec = self._convergence(
            JobStatus.COMPLETE,
            JOB_PENDING,
            self._polling.update_timeout if timeout is None else timeout,
        )
        return await self._poller.await_state(request_id, spec, AsyncJobRefresher(self))
