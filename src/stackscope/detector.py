"""Orchestrates CloudFormation drift detection for a single stack."""

import logging
from collections.abc import Callable

from botocore.exceptions import BotoCoreError, ClientError

from stackscope.aws.client import CloudFormationClient
from stackscope.errors import (
    DriftDetectionFailed,
    DriftDetectionTimeout,
    OperationCancelled,
    TransientFetchError,
)
from stackscope.models import DetectionRun, DetectionStatus, DriftReport
from stackscope.options import DriftOptions
from stackscope.ticker import Ticker

logger = logging.getLogger(__name__)

RunCallback = Callable[[DetectionRun], None]


class DriftOrchestrator:
    """Starts drift detection, polls it to a terminal state and collects drifted resources.

    States: requested -> in progress -> complete | failed. With ``wait``
    disabled the requested run is returned as soon as detection starts.
    """

    def __init__(
        self,
        client: CloudFormationClient,
        options: DriftOptions | None = None,
        ticker: Ticker | None = None,
    ):
        self._client = client
        self._options = options or DriftOptions()
        self._ticker = ticker or Ticker(self._options.poll_interval)

    def run(
        self,
        stack_name: str,
        on_started: RunCallback | None = None,
        on_poll: RunCallback | None = None,
    ) -> DetectionRun | DriftReport:
        """Detect drift for ``stack_name``.

        Returns the requested DetectionRun when not waiting, otherwise a
        DriftReport. Raises DriftDetectionFailed, DriftDetectionTimeout or
        OperationCancelled when the run does not complete.
        """
        run = self.start(stack_name)
        if on_started is not None:
            on_started(run)

        if not self._options.wait:
            return run

        finished = self.wait_for(run, on_poll=on_poll)
        return self.collect(finished)

    def start(self, stack_name: str) -> DetectionRun:
        run = self._client.detect_drift(stack_name)
        logger.info("Drift detection %s started for %s", run.detection_id, stack_name)
        return run

    def wait_for(self, run: DetectionRun, on_poll: RunCallback | None = None) -> DetectionRun:
        """Poll once per interval until the run completes."""
        started = self._ticker.elapsed
        timeout = self._options.timeout

        while True:
            if not self._ticker.wait():
                raise OperationCancelled(f"drift detection for {run.stack_name} cancelled")

            try:
                current = self._poll(run)
            except TransientFetchError as exc:
                logger.warning("%s", exc)
            else:
                if on_poll is not None:
                    on_poll(current)
                if current.is_terminal:
                    if current.status == DetectionStatus.FAILED:
                        raise DriftDetectionFailed(run.stack_name, current.status_reason)
                    return current

            if timeout is not None and self._ticker.elapsed - started >= timeout:
                raise DriftDetectionTimeout(
                    f"drift detection for {run.stack_name} did not finish within {timeout:g}s"
                )

    def collect(self, run: DetectionRun) -> DriftReport:
        """Fetch the MODIFIED and DELETED resources of a completed run."""
        drifts = self._client.get_resource_drifts(run.stack_name)
        return DriftReport(run=run, resource_drifts=drifts)

    def _poll(self, run: DetectionRun) -> DetectionRun:
        try:
            return self._client.poll_detection(run.detection_id, run.stack_name)
        except (ClientError, BotoCoreError) as exc:
            raise TransientFetchError(f"failed to get drift status for {run.stack_name}: {exc}") from exc
