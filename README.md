# mnthreads

`mnthreads` is a small M:N threading runtime. It maps many user threads onto a
few kernel threads. Each kernel thread is a real Python thread. Inside each
kernel-thread group the user threads take turns cooperatively, in round-robin
order: only one user thread of a group runs at a time, and control passes on
only when a thread yields or exits.

## Modules

- `mnthreads.threads`
  - `ThreadState`: an `IntEnum` with the members `RUNNING`, `READY`, `BLOCKED`
    and `TERMINATED`.
  - `ThreadError`: raised when a thread is created, assigned or scheduled
    wrongly.
  - `UserThread`: a dataclass with these fields:
    - `id`
    - `kernel_thread_id`
    - `routine`
    - `arg`
    - `state` (it starts as `READY`)
  - `KernelThread`: a dataclass with these fields:
    - `id`
    - `assigned`, the list of its user threads
    - `current_thread`

    `assign(thread)` attaches a user thread to it. It raises `ThreadError` if
    the thread belongs to another kernel thread, or if four threads are already
    assigned. `all_terminated()` is true once every assigned thread has
    terminated.
- `mnthreads.runtime`
  - `Runtime`: holds the configuration and the threads, switches between user
    threads, and runs the kernel threads.

## Layout of threads

`Runtime(num_uthreads, num_kthreads, time_quantum, burst_time)` checks its
arguments and raises `ThreadError` when any of these fails:

- `num_kthreads` must be between 1 and 4.
- `num_uthreads` must be between `num_kthreads` and 128.
- `num_uthreads // num_kthreads` must be at most 4.

That last value is stored as `threads_per_kthread`.

The user threads of kernel thread `k` must have these ids:

    k + j * num_kthreads    for j in 0 .. threads_per_kthread - 1

When a thread yields, the runtime moves to the next `j` in that group and skips
threads that have terminated. `start` and `run` raise `ThreadError` if a kernel
thread that has user threads is missing one of these ids.

## Usage

```python
from mnthreads.runtime import Runtime

rt = Runtime(num_uthreads=6, num_kthreads=3, time_quantum=0, burst_time=0)
results = {}

def work(thread_id):
    results[thread_id] = thread_id * 10

for i in range(rt.num_uthreads):
    rt.create(i, i % rt.num_kthreads, work, i)

print(rt.mapping())   # [(0, 0), (1, 1), (2, 2), (3, 0), (4, 1), (5, 2)]
rt.run()
print(results)
```

### Runtime methods

- `create(thread_id, kernel_thread_id, routine, arg)` makes a `READY` user
  thread, assigns it to its kernel thread and returns it. It raises
  `ThreadError` if:
  - the id is outside 0–127,
  - the kernel thread does not exist, or
  - the id is already taken.
- `yield_thread(thread_id)` hands the kernel thread to the next live user
  thread in the same group. If no live thread is left, control goes back to the
  kernel thread.
- `exit_thread(thread_id)` marks the thread `TERMINATED` and then yields.
- `mapping()` returns `(user thread id, kernel thread id)` pairs, sorted by user
  thread id.
- `start(kthread)` runs one kernel thread. It begins with that kernel thread's
  first assigned user thread and returns once all of its user threads have
  terminated.
- `wait(kthread)` polls until every user thread of `kthread` has terminated.
- `run()` starts every kernel thread in parallel and joins them all.

### Rules for user threads

- `yield_thread` and `exit_thread` may only be called from the code of the user
  thread they name. Calling them from anywhere else raises `ThreadError`.
- A routine does not need to call `exit_thread` itself. When the routine
  returns, the thread exits on its own.
- If a routine raises an exception, the thread still exits, and `run()` then
  raises `ThreadError` chained from the first failure.

### Records and logging

Every scheduling step adds a message to `Runtime.events`, for example:

- `Created thread 0`
- `Switching to thread 4 (K-Thread 0)`

The same message is logged at `INFO` level on the `mnthreads.runtime` logger.
`current_thread_per_kthread` holds the id of the user thread each kernel thread
is running, or `-1`.

## What it does not do

- There is no preemption and no timer. `time_quantum` and `burst_time` are
  stored on the runtime for routines to read, but the runtime never enforces
  them. A thread runs until it yields or exits.
- There is no command-line program. The package is a library only.

## Running the tests

```
pip install -e .[test]
pytest
```