"""Verification Test: Chaos Monkey - processes exiting during a snapshot.

The snapshot is taken once per run while the rest of the system keeps going.
Processes that exit, turn into zombies or deny access while the process table
is being walked must be skipped, never crash the capture.
"""

import multiprocessing
import random
import threading
import time

import psutil
import pytest

from pyw.models import ProcessSnapshot
from pyw.snapshot import capture_snapshot

pytestmark = pytest.mark.skipif(not psutil.LINUX, reason="reads /proc")


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_snapshot_survives_process_termination(self):
        """
        Test that capture_snapshot doesn't crash when processes die mid-scan.

        A background thread terminates workers while snapshots are captured
        back to back.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        def killer():
            for p in random.sample(processes, len(processes)):
                if p.is_alive():
                    p.terminate()
                time.sleep(0.01)

        thread = threading.Thread(target=killer, daemon=True)
        try:
            thread.start()
            snapshots = []
            while thread.is_alive():
                snapshots.append(capture_snapshot())
            snapshots.append(capture_snapshot())

            assert snapshots
            for snap in snapshots:
                assert isinstance(snap, ProcessSnapshot)
        finally:
            thread.join(timeout=5.0)
            for p in processes:
                if p.is_alive():
                    p.terminate()
            for p in processes:
                p.join(timeout=1.0)

    def test_terminated_process_not_reported(self):
        """Test a process that has exited and been reaped is absent."""
        p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
        p.start()
        time.sleep(0.1)
        pid = p.pid

        p.terminate()
        p.join(timeout=1.0)

        snap = capture_snapshot()
        assert pid not in {record.pid for record in snap}

    def test_zombie_process_handling(self):
        """
        Test that zombies are captured without crashing.

        A child that exited but was not yet waited for has no command line;
        it must still show up with its bracketed name or be skipped.
        """
        p = multiprocessing.Process(target=dummy_worker, args=(0.05,))
        p.start()
        time.sleep(0.3)

        try:
            snap = capture_snapshot()
            zombies = [record for record in snap if record.pid == p.pid]
            for record in zombies:
                assert record.cmdline
        finally:
            p.join(timeout=1.0)
