# -*- coding: utf-8 -*-
"""Submit a video job to a running server and follow it until it finishes."""
import argparse
import json
import sys

from config import POLL_INTERVAL_S, STATUS_CLIENT_BASE_URL
from jobs import JobPoller, JobStatus
from services.status_client import StatusClient


def _print_update(poller: JobPoller) -> None:
    snapshot = poller.snapshot or {}
    line = {"jobId": poller.job_id, "status": snapshot.get("status"), "progress": snapshot.get("progress")}
    if snapshot.get("video"):
        line["video"] = snapshot["video"].get("url")
    if poller.error:
        line["error"] = poller.error
    print(json.dumps(line, ensure_ascii=False), flush=True)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("prompt", help="Prompt for the video generation request")
    parser.add_argument("--base-url", default=STATUS_CLIENT_BASE_URL, help="API base URL, including /api")
    parser.add_argument("--interval", type=float, default=POLL_INTERVAL_S, help="Seconds between status checks")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    args = parser.parse_args(argv)

    with StatusClient(args.base_url) as client:
        job_id = client.submit_video(args.prompt)
        print(f"Submitted job {job_id}", flush=True)
        with JobPoller(client.check_status, interval_s=args.interval, on_update=_print_update) as poller:
            poller.start(job_id)
            if not poller.wait(args.timeout):
                print("Timed out waiting for the job", file=sys.stderr)
                return 1
            snapshot = poller.snapshot or {}
    return 0 if snapshot.get("status") == JobStatus.COMPLETED.value else 1


if __name__ == "__main__":
    sys.exit(main())
