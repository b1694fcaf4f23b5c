"""Run a wrapped command with inherited standard streams and measure it."""

import logging
import os
import signal
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

from tracebuild.constants import SIGNAL_EXIT_BASE
from tracebuild.errors import ChildSpawnFailure
from tracebuild.telemetry.clock import now

logger = logging.getLogger(__name__)

# Signals sent to tracebuild that the child should see as well
FORWARDED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


@dataclass(frozen=True)
class ChildResult:
    start: int
    end: int
    returncode: int

    @property
    def term_signal(self) -> Optional[signal.Signals]:
        """Signal that terminated the child, if any."""
        if self.returncode >= 0:
            return None
        try:
            return signal.Signals(-self.returncode)
        except ValueError:
            return None

    @property
    def exit_code(self) -> int:
        """Exit status a shell would report for the child."""
        if self.returncode < 0:
            return SIGNAL_EXIT_BASE - self.returncode
        return self.returncode


@contextmanager
def forward_signals(process: subprocess.Popen) -> Iterator[None]:
    """
    Relay termination signals to ``process`` while it runs.

    SIGINT is ignored here since the terminal already delivers it to the
    child's process group. Previous handlers are restored on exit.
    """

    def _forward(signum, _frame):
        if process.poll() is None:
            logger.debug(f"Forwarding {signal.Signals(signum).name} to child {process.pid}")
            try:
                process.send_signal(signum)
            except ProcessLookupError:
                pass

    previous = {}
    try:
        for signum in FORWARDED_SIGNALS:
            previous[signum] = signal.signal(signum, _forward)
        previous[signal.SIGINT] = signal.signal(signal.SIGINT, signal.SIG_IGN)
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def run_child(argv: Sequence[str], env: Optional[dict] = None) -> ChildResult:
    """
    Spawn ``argv`` and wait for it to finish, by exit or by signal.

    The start time is taken right before spawning and the end time right
    after the child has been reaped. Raises ``ChildSpawnFailure`` if the
    program cannot be started at all.
    """
    command = argv[0]
    start = now()
    try:
        process = subprocess.Popen(list(argv), env=env)
    except OSError as e:
        raise ChildSpawnFailure(command, e) from e

    try:
        with forward_signals(process):
            returncode = process.wait()
    finally:
        # Never leave the child behind, e.g. on KeyboardInterrupt
        if process.poll() is None:
            try:
                os.kill(process.pid, signal.SIGKILL)
                process.wait()
            except (ProcessLookupError, OSError):
                pass
    end = now()

    result = ChildResult(start=start, end=end, returncode=returncode)
    if result.term_signal is not None:
        logger.warning(f"{command} was terminated by {result.term_signal.name}")
    else:
        logger.debug(f"{command} exited with code {returncode}")
    return result
