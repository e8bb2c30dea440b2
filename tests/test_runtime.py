import pytest

from mnthreads.runtime import Runtime
from mnthreads.threads import ThreadError, ThreadState


def _noop(arg):
    return None


def test_init_computes_threads_per_kthread():
    rt = Runtime(16, 4, 5, 12)
    assert rt.threads_per_kthread == 4
    assert rt.time_quantum == 5
    assert rt.burst_time == 12
    assert len(rt.kthreads) == 4
    assert rt.current_thread_per_kthread == [-1, -1, -1, -1]


@pytest.mark.parametrize(
    "uthreads, kthreads",
    [(4, 0), (8, 5), (2, 3), (200, 4), (20, 4)],
)
def test_init_rejects_bad_configuration(uthreads, kthreads):
    with pytest.raises(ThreadError):
        Runtime(uthreads, kthreads, 0, 0)


def test_create_registers_ready_thread():
    rt = Runtime(6, 3, 0, 0)
    thread = rt.create(4, 1, _noop, 4)
    assert rt.uthreads[4] is thread
    assert thread.state is ThreadState.READY
    assert rt.kthreads[1].assigned == [thread]
    assert rt.events == ["Created thread 4"]


def test_create_rejects_bad_ids():
    rt = Runtime(6, 3, 0, 0)
    with pytest.raises(ThreadError):
        rt.create(128, 0, _noop, None)
    with pytest.raises(ThreadError):
        rt.create(0, 3, _noop, None)
    rt.create(0, 0, _noop, None)
    with pytest.raises(ThreadError):
        rt.create(0, 0, _noop, None)
    assert list(rt.uthreads) == [0]


def test_yield_outside_user_thread_is_rejected():
    rt = Runtime(2, 1, 0, 0)
    rt.create(0, 0, _noop, None)
    with pytest.raises(ThreadError):
        rt.yield_thread(0)
    with pytest.raises(ThreadError):
        rt.yield_thread(7)
    with pytest.raises(ThreadError):
        rt.exit_thread(0)
    assert rt.uthreads[0].state is ThreadState.READY


def test_mapping_lists_threads_in_id_order():
    rt = Runtime(16, 4, 5, 12)
    for k in range(4):
        for j in range(4):
            rt.create(k + j * 4, k, _noop, None)
    pairs = rt.mapping()
    assert pairs[:5] == [(0, 0), (1, 1), (2, 2), (3, 3), (4, 0)]
    assert pairs[-1] == (15, 3)
    assert "User Thread -> Kernel Thread Mapping:" in rt.events
    assert "User Thread 15 -> Kernel Thread 3" in rt.events


def test_factorial_example():
    n = 15
    rt = Runtime(6, 3, 0, 0)
    results = {}

    def compute_partial_factorial(thread_id):
        kernel_thread_id = rt.uthreads[thread_id].kernel_thread_id
        is_second_thread = thread_id % 2 == 1
        chunk_size = n // rt.num_kthreads
        start_k = kernel_thread_id * chunk_size + 1
        end_k = start_k + chunk_size - 1
        mid = (start_k + end_k) // 2
        start, end = (mid + 1, end_k) if is_second_thread else (start_k, mid)
        product = 1
        for i in range(start, end + 1):
            product *= i
        results[thread_id] = product
        rt.uthreads[thread_id].state = ThreadState.TERMINATED
        rt.yield_thread(thread_id)

    for i in range(6):
        rt.create(i, i % 3, compute_partial_factorial, i)
    rt.run()

    partial = []
    for kthread in rt.kthreads:
        product = 1
        for thread in kthread.assigned:
            product *= results[thread.id]
        partial.append(product)

    factorial = 1
    for p in partial:
        factorial *= p
    assert factorial == 1307674368000
    assert all(t.state is ThreadState.TERMINATED for t in rt.uthreads.values())
    assert rt.current_thread_per_kthread == [-1, -1, -1]


def test_http_simulation_round_robin():
    rt = Runtime(16, 4, 5, 12)
    slices = {k: [] for k in range(4)}

    def simulate_http_request(thread_id):
        k = rt.uthreads[thread_id].kernel_thread_id
        remaining = rt.burst_time
        x = rt.burst_time % rt.time_quantum
        slices[k].append((thread_id, remaining))
        while remaining > 0:
            remaining -= 1
            if remaining % rt.time_quantum == x:
                rt.yield_thread(thread_id)
                if remaining > 0:
                    slices[k].append((thread_id, remaining))
        rt.uthreads[thread_id].state = ThreadState.TERMINATED
        rt.yield_thread(thread_id)

    for i in range(4):
        for j in range(4):
            idx = i + j * 4
            rt.create(idx, i, simulate_http_request, idx)
    rt.run()

    for k in range(4):
        group = [k, k + 4, k + 8, k + 12]
        expected = (
            [(t, 12) for t in group] + [(t, 7) for t in group] + [(t, 2) for t in group]
        )
        assert slices[k] == expected
        assert rt.events.count(f"All threads in kernel thread {k} terminated.") == 1
    assert all(t.state is ThreadState.TERMINATED for t in rt.uthreads.values())
    assert rt.current_thread_per_kthread == [-1, -1, -1, -1]


def test_returning_routine_exits_and_hands_over():
    rt = Runtime(2, 1, 0, 0)
    order = []
    for i in range(2):
        rt.create(i, 0, order.append, i)
    rt.run()
    assert order == [0, 1]
    assert "Exiting thread 0 (K-Thread 0)" in rt.events
    assert "Switching to thread 1 (K-Thread 0)" in rt.events
    assert rt.events[-1] == "All threads in kernel thread 0 terminated."


def test_failing_routine_is_reported_after_others_finish():
    rt = Runtime(2, 1, 0, 0)
    ran = []

    def broken(arg):
        raise ValueError("boom")

    rt.create(0, 0, broken, None)
    rt.create(1, 0, ran.append, "done")
    with pytest.raises(ThreadError) as info:
        rt.run()
    assert isinstance(info.value.__cause__, ValueError)
    assert ran == ["done"]
    assert rt.uthreads[0].state is ThreadState.TERMINATED


def test_run_rejects_incomplete_layout():
    rt = Runtime(4, 2, 0, 0)
    rt.create(0, 0, _noop, None)
    rt.create(2, 0, _noop, None)
    rt.create(1, 1, _noop, None)
    with pytest.raises(ThreadError):
        rt.run()
    assert rt.uthreads[0].state is ThreadState.READY


def test_wait_returns_once_all_terminated():
    rt = Runtime(2, 1, 0, 0)
    for i in range(2):
        rt.create(i, 0, _noop, None).state = ThreadState.TERMINATED
    rt.wait(rt.kthreads[0])
    assert rt.kthreads[0].all_terminated() is True