"""Many-to-many scheduling of cooperative user threads onto kernel threads."""

from __future__ import annotations

import logging
import threading
import time

from .threads import (
    MAX_ASSIGNED,
    MAX_KTHREADS,
    MAX_UTHREADS,
    KernelThread,
    ThreadError,
    ThreadState,
    UserThread,
)

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.01


class _Terminated(BaseException):
    """Unwinds the worker of a user thread that has finished."""


class Runtime:
    """Maps user threads onto kernel threads and switches between them.

    User thread ids on kernel thread ``k`` are ``k + j * num_kthreads``;
    yielding moves round robin through that group.
    """

    def __init__(self, num_uthreads, num_kthreads, time_quantum, burst_time):
        if not 1 <= num_kthreads <= MAX_KTHREADS:
            raise ThreadError(f"num_kthreads must be between 1 and {MAX_KTHREADS}")
        if not num_kthreads <= num_uthreads <= MAX_UTHREADS:
            raise ThreadError(
                f"num_uthreads must be between num_kthreads and {MAX_UTHREADS}"
            )
        if num_uthreads // num_kthreads > MAX_ASSIGNED:
            raise ThreadError(
                f"at most {MAX_ASSIGNED} user threads fit on one kernel thread"
            )
        self.num_uthreads = num_uthreads
        self.num_kthreads = num_kthreads
        self.threads_per_kthread = num_uthreads // num_kthreads
        self.time_quantum = time_quantum
        self.burst_time = burst_time
        self.uthreads: dict[int, UserThread] = {}
        self.kthreads = [KernelThread(id=k) for k in range(num_kthreads)]
        self.current_thread_per_kthread = [-1] * num_kthreads
        self.events: list[str] = []
        self._errors: list[BaseException] = []
        self._broken = threading.Event()
        self._lock = threading.Lock()

    def _log(self, message: str) -> None:
        with self._lock:
            self.events.append(message)
        logger.info(message)

    def _thread(self, thread_id: int, *, own: bool = False) -> UserThread:
        thread = self.uthreads.get(thread_id)
        if thread is None:
            raise ThreadError(f"no user thread {thread_id}")
        if own and threading.current_thread() is not thread._worker:
            raise ThreadError(
                f"user thread {thread_id} can only be switched from its own code"
            )
        return thread

    def create(self, thread_id, kernel_thread_id, routine, arg):
        """Create a ready user thread and assign it to its kernel thread."""
        if not 0 <= thread_id < MAX_UTHREADS:
            raise ThreadError(f"thread id must be between 0 and {MAX_UTHREADS - 1}")
        if not 0 <= kernel_thread_id < self.num_kthreads:
            raise ThreadError(f"no kernel thread {kernel_thread_id}")
        if thread_id in self.uthreads:
            raise ThreadError(f"user thread {thread_id} already exists")
        thread = UserThread(
            id=thread_id, kernel_thread_id=kernel_thread_id, routine=routine, arg=arg
        )
        self.kthreads[kernel_thread_id].assign(thread)
        self.uthreads[thread_id] = thread
        self._log(f"Created thread {thread_id}")
        return thread

    def _wake(self, thread: UserThread) -> None:
        if thread._worker is None:
            thread._worker = threading.Thread(
                target=self._run_worker, args=(thread,), daemon=True
            )
            thread._worker.start()
        thread._resume.set()

    @staticmethod
    def _suspend(thread: UserThread) -> None:
        if thread.state is ThreadState.TERMINATED:
            raise _Terminated
        thread._resume.wait()
        thread._resume.clear()

    def _fail(self, exc: BaseException) -> None:
        with self._lock:
            self._errors.append(exc)

    def _run_worker(self, thread: UserThread) -> None:
        self._suspend(thread)
        try:
            try:
                thread.routine(thread.arg)
            except Exception as exc:
                logger.exception("user thread %d failed", thread.id)
                self._fail(exc)
            self.exit_thread(thread.id)
        except _Terminated:
            pass
        except Exception as exc:
            self._fail(exc)
            self._broken.set()
            self.kthreads[thread.kernel_thread_id]._resume.set()

    def yield_thread(self, thread_id):
        """Give up the kernel thread to the next live user thread in its group."""
        prev = self._thread(thread_id, own=True)
        k = prev.kernel_thread_id
        self._log(f"Yielding from thread {thread_id} (K-Thread {k})")
        if prev.state is not ThreadState.TERMINATED:
            prev.state = ThreadState.READY

        j = ((thread_id - k) // self.num_kthreads + 1) % self.threads_per_kthread
        next_id = k + j * self.num_kthreads
        checked = 0
        while (
            self._thread(next_id).state is ThreadState.TERMINATED
            and checked < MAX_ASSIGNED
        ):
            j = (j + 1) % self.threads_per_kthread
            next_id = k + j * self.num_kthreads
            checked += 1

        kthread = self.kthreads[k]
        if checked >= self.threads_per_kthread:
            self._log(f"All threads in kernel thread {k} terminated.")
            self.current_thread_per_kthread[k] = -1
            kthread.current_thread = None
            kthread._resume.set()
            self._suspend(prev)
            return

        target = self._thread(next_id)
        self.current_thread_per_kthread[k] = next_id
        kthread.current_thread = target
        self._log(f"Switching to thread {next_id} (K-Thread {k})")
        target.state = ThreadState.RUNNING
        if target is not prev:
            self._wake(target)
            self._suspend(prev)

    def exit_thread(self, thread_id):
        """Terminate a user thread and hand its kernel thread on."""
        thread = self._thread(thread_id, own=True)
        self._log(f"Exiting thread {thread_id} (K-Thread {thread.kernel_thread_id})")
        thread.state = ThreadState.TERMINATED
        self.yield_thread(thread_id)

    def wait(self, kthread):
        """Block until every user thread of ``kthread`` has terminated."""
        while not kthread.all_terminated() and not self._broken.is_set():
            time.sleep(_POLL_INTERVAL)

    def mapping(self):
        """Return (user thread, kernel thread) pairs ordered by user thread id."""
        pairs = [(t.id, t.kernel_thread_id) for _, t in sorted(self.uthreads.items())]
        self._log("User Thread -> Kernel Thread Mapping:")
        for uid, kid in pairs:
            self._log(f"User Thread {uid} -> Kernel Thread {kid}")
        return pairs

    def _check_layout(self, kthread: KernelThread) -> None:
        if not kthread.assigned:
            return
        for j in range(self.threads_per_kthread):
            expected = kthread.id + j * self.num_kthreads
            thread = self.uthreads.get(expected)
            if thread is None or thread.kernel_thread_id != kthread.id:
                raise ThreadError(
                    f"kernel thread {kthread.id} is missing user thread {expected}"
                )

    def start(self, kthread):
        """Run the user threads of ``kthread`` until all have terminated."""
        if not kthread.assigned:
            return
        self._check_layout(kthread)
        first = kthread.assigned[0]
        kthread.current_thread = first
        self.current_thread_per_kthread[kthread.id] = first.id
        self._log(f"[K-Thread {kthread.id}] Starting first U-Thread-{first.id}")
        first.state = ThreadState.RUNNING
        self._wake(first)
        kthread._resume.wait()
        kthread._resume.clear()
        self.wait(kthread)

    def run(self):
        """Run every kernel thread in parallel and wait for them all."""
        for kthread in self.kthreads:
            self._check_layout(kthread)
        workers = [threading.Thread(target=self.start, args=(k,)) for k in self.kthreads]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()
        if self._errors:
            raise ThreadError(f"{len(self._errors)} user thread(s) failed") from self._errors[0]