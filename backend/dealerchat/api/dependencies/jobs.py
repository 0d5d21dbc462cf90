"""Job queue dependency."""

from fastapi import Request

from dealerchat.queues.job_queue import JobQueue


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue
