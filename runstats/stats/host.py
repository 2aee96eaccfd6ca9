"""Flat read of process and host facts, taken fresh on every call."""

from __future__ import annotations

import os
import threading
import time

import psutil


class HostStats:
    """Collects memory, thread, uptime and CPU facts for the current process.

    ``heap_*`` describe the process address space (resident, virtual, and the
    host's physical memory as the ceiling); ``nonheap_used`` is memory shared
    with other processes. Times are in milliseconds.
    """

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process(os.getpid())
        self._peak_threads = 0
        self._lock = threading.Lock()

    def snapshot(self) -> dict[str, int]:
        memory = self._process.memory_info()
        threads = threading.enumerate()
        thread_count = self._process.num_threads()
        with self._lock:
            self._peak_threads = max(self._peak_threads, thread_count)
            peak = self._peak_threads

        start_time = int(self._process.create_time() * 1000)
        now = int(time.time() * 1000)

        return {
            "heap_committed": memory.vms,
            "heap_max": psutil.virtual_memory().total,
            "heap_used": memory.rss,
            "nonheap_used": getattr(memory, "shared", 0),
            "thread_daemon_count": sum(1 for thread in threads if thread.daemon),
            "thread_count": thread_count,
            "thread_peak_count": peak,
            "start_time": start_time,
            "uptime": max(now - start_time, 0),
            "num_cpus": psutil.cpu_count() or os.cpu_count() or 1,
        }
