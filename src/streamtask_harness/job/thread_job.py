# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Thread-based stream job.

ThreadJob runs a StreamContainer on a daemon thread and exposes the job's
status machine to the harness. Status changes are published through a
Condition, so waiters observe every transition without polling.

Status flow::

    submit():           NEW -> STARTING
    thread starts:      STARTING -> RUNNING
    kill():             * -> KILLING -> UNSUCCESSFUL_FINISH
    task shutdown:      RUNNING -> COMPLETING -> SUCCESSFUL_FINISH
    container failure:  * -> UNSUCCESSFUL_FINISH
"""

from __future__ import annotations

import logging
import threading
import time

from streamtask_harness.enums import EnumApplicationStatus, is_allowed_transition
from streamtask_harness.errors import JobStateError, ModelHarnessErrorContext
from streamtask_harness.job.stream_container import StreamContainer
from streamtask_harness.utils import sanitize_error_message

logger = logging.getLogger(__name__)


class ThreadJob:
    """A stream job whose container runs on a dedicated thread."""

    def __init__(self, name: str, container: StreamContainer) -> None:
        self.name = name
        self._container = container
        self._status = EnumApplicationStatus.NEW
        self._condition = threading.Condition()
        self._kill_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._failure: BaseException | None = None

    @property
    def status(self) -> EnumApplicationStatus:
        with self._condition:
            return self._status

    @property
    def failure(self) -> BaseException | None:
        """Exception that ended the container, if any."""
        with self._condition:
            return self._failure

    @property
    def container(self) -> StreamContainer:
        return self._container

    def submit(self) -> ThreadJob:
        """Start the container thread.

        Raises:
            JobStateError: If the job was already submitted
        """
        with self._condition:
            self._transition(EnumApplicationStatus.STARTING)
            self._thread = threading.Thread(
                target=self._run, name=f"stream-job-{self.name}", daemon=True
            )
        self._thread.start()
        logger.info("Job %s submitted", self.name, extra={"job_name": self.name})
        return self

    def kill(self) -> None:
        """Ask the container to stop without committing. No-op once finished."""
        with self._condition:
            if self._status.is_terminal or self._status == EnumApplicationStatus.KILLING:
                return
            if self._status == EnumApplicationStatus.NEW:
                self._transition(EnumApplicationStatus.KILLING)
                self._transition(EnumApplicationStatus.UNSUCCESSFUL_FINISH)
                return
            self._transition(EnumApplicationStatus.KILLING)
            self._kill_event.set()
        logger.info("Job %s killed", self.name, extra={"job_name": self.name})

    def wait_for_status(
        self, target: EnumApplicationStatus, timeout: float
    ) -> EnumApplicationStatus:
        """Wait until the job reaches ``target`` or a terminal status.

        Returns:
            The status observed when the wait ended, which differs from
            ``target`` if a terminal status came first or time ran out.
        """
        deadline = time.monotonic() + timeout
        with self._condition:
            while self._status != target and not self._status.is_terminal:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(remaining)
            return self._status

    def wait_for_finish(self, timeout: float) -> EnumApplicationStatus:
        """Wait until the job reaches a terminal status or time runs out."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while not self._status.is_terminal:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(remaining)
            return self._status

    def _run(self) -> None:
        with self._condition:
            if self._status == EnumApplicationStatus.STARTING:
                self._transition(EnumApplicationStatus.RUNNING)

        completed = False
        failure: BaseException | None = None
        try:
            completed = self._container.run(self._kill_event, self._mark_completing)
        except Exception as e:
            failure = e
            logger.exception(
                "Job %s failed: %s",
                self.name,
                sanitize_error_message(e),
                extra={"job_name": self.name},
            )

        with self._condition:
            self._failure = failure
            if completed and self._status == EnumApplicationStatus.COMPLETING:
                self._transition(EnumApplicationStatus.SUCCESSFUL_FINISH)
            else:
                self._transition(EnumApplicationStatus.UNSUCCESSFUL_FINISH)
        logger.info(
            "Job %s finished with status %s",
            self.name,
            self.status.value,
            extra={"job_name": self.name},
        )

    def _mark_completing(self) -> None:
        with self._condition:
            if self._status == EnumApplicationStatus.RUNNING:
                self._transition(EnumApplicationStatus.COMPLETING)

    def _transition(self, target: EnumApplicationStatus) -> None:
        # caller holds self._condition
        if not is_allowed_transition(self._status, target):
            raise JobStateError(
                f"Job {self.name} cannot move from {self._status.value} to {target.value}",
                context=ModelHarnessErrorContext(
                    component="thread_job", operation="transition", target_name=self.name
                ),
            )
        logger.debug(
            "Job %s: %s -> %s",
            self.name,
            self._status.value,
            target.value,
            extra={"job_name": self.name},
        )
        self._status = target
        self._condition.notify_all()


__all__ = ["ThreadJob"]
