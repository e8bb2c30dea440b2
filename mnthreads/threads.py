"""User threads, kernel threads and their states."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

MAX_KTHREADS = 4
MAX_UTHREADS = 128
MAX_ASSIGNED = 4


class ThreadState(IntEnum):
    """Lifecycle state of a user thread."""

    RUNNING = 0
    READY = 1
    BLOCKED = 2
    TERMINATED = 3


class ThreadError(Exception):
    """Raised when threads are created, assigned or scheduled wrongly."""


@dataclass(eq=False)
class UserThread:
    """A cooperative thread that runs on one kernel thread at a time."""

    id: int
    kernel_thread_id: int
    routine: Callable[[Any], Any]
    arg: Any = None
    state: ThreadState = ThreadState.READY
    _resume: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False
    )
    _worker: threading.Thread | None = field(default=None, init=False, repr=False)


@dataclass(eq=False)
class KernelThread:
    """A kernel thread that multiplexes up to four user threads."""

    id: int
    assigned: list[UserThread] = field(default_factory=list)
    current_thread: UserThread | None = None
    _resume: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False
    )

    def assign(self, thread: UserThread) -> None:
        """Attach a user thread to this kernel thread."""
        if thread.kernel_thread_id != self.id:
            raise ThreadError(
                f"user thread {thread.id} belongs to kernel thread "
                f"{thread.kernel_thread_id}, not {self.id}"
            )
        if len(self.assigned) >= MAX_ASSIGNED:
            raise ThreadError(
                f"kernel thread {self.id} already holds {MAX_ASSIGNED} user threads"
            )
        self.assigned.append(thread)

    def all_terminated(self) -> bool:
        """True once every assigned user thread has terminated."""
        return all(t.state is ThreadState.TERMINATED for t in self.assigned)