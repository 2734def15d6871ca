"""Polling client for the playbook service.

How often to poll and when to give up are client decisions; the service
only promises monotonic progress and an eventual terminal status.

Usage: python -m app.client docs.md [--base-url http://localhost:8000]
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

TERMINAL_STATUSES = {"complete", "failed"}


class PlaybookClientError(Exception):
    pass


class JobAbandonedError(PlaybookClientError):
    """The job did not finish within the client's patience."""

    def __init__(self, job_id: str, waited_seconds: float):
        self.job_id = job_id
        self.waited_seconds = waited_seconds
        super().__init__(f"Gave up on job {job_id} after {waited_seconds:.0f}s")


class PlaybookClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def start(self, text: str) -> str:
        """Submit documentation and return the new job id."""
        response = self.session.post(
            f"{self.base_url}/api/jobs", json={"input": text}, timeout=self.timeout
        )
        if response.status_code == 400:
            raise PlaybookClientError(response.json().get("detail", "Invalid input"))
        response.raise_for_status()
        return response.json()["jobId"]

    def status(self, job_id: str) -> Dict[str, Any]:
        response = self.session.get(f"{self.base_url}/api/jobs/{job_id}", timeout=self.timeout)
        if response.status_code == 404:
            raise PlaybookClientError(f"Job {job_id} not found")
        response.raise_for_status()
        return response.json()

    def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 5.0,
        give_up_after_seconds: float = 300.0,
        on_progress: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> Dict[str, Any]:
        """Poll until the job is complete or failed and return the final record."""
        started = time.monotonic()
        while True:
            job = self.status(job_id)
            if on_progress:
                on_progress(job)
            if job.get("status") in TERMINAL_STATUSES:
                return job
            waited = time.monotonic() - started
            if waited >= give_up_after_seconds:
                raise JobAbandonedError(job_id, waited)
            time.sleep(poll_interval)


def _print_progress(job: Dict[str, Any]) -> None:
    progress = job.get("progress", {})
    print(
        f"[{job.get('status')}] step {progress.get('currentStepIndex')}/{progress.get('totalSteps')}: "
        f"{progress.get('stepLabel')} (~{progress.get('estimatedSecondsRemaining')}s left)"
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate a launch playbook and wait for it.")
    parser.add_argument("document", help="Markdown file describing the product")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--interval", type=float, default=5.0)
    parser.add_argument("--give-up-after", type=float, default=300.0)
    args = parser.parse_args(argv)

    client = PlaybookClient(args.base_url)
    try:
        job_id = client.start(Path(args.document).read_text())
        print(f"Started job {job_id}")
        job = client.wait_for_completion(
            job_id,
            poll_interval=args.interval,
            give_up_after_seconds=args.give_up_after,
            on_progress=_print_progress,
        )
    except (PlaybookClientError, requests.RequestException) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if job["status"] == "failed":
        print(f"Job failed: {job.get('error')}", file=sys.stderr)
        return 1
    print(job["result"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
