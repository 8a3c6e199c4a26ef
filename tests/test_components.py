"""
Тесты для ограничителя скорости, token bucket и канала задач.
"""

import random
import threading
import pytest

from concurrency_kit.core.rate_limiter import RateLimiter, RateLimiterConfig
from concurrency_kit.core.task_channel import TaskChannel
from concurrency_kit.models.token_bucket import TokenBucket
from concurrency_kit.models.task import Task, TaskStatus
from concurrency_kit.utils.decorators import rate_limited
from concurrency_kit.exceptions import (
    ConfigurationError,
    TaskChannelError,
    RateLimitExceededError
)


class FakeClock:
    """Управляемые монотонные часы."""

    def __init__(self, start: float = 100.0):
        self.now = start
        self._lock = threading.Lock()

    def advance(self, seconds: float):
        with self._lock:
            self.now += seconds

    def __call__(self) -> float:
        with self._lock:
            return self.now


class TestTokenBucket:
    """Тесты для модели token bucket."""

    def test_bucket_starts_full(self):
        bucket = TokenBucket(capacity=3, refill_rate=1, last_refill_time=0.0)
        assert bucket.tokens == 3

    def test_no_refill_before_whole_second(self):
        bucket = TokenBucket(capacity=3, refill_rate=1, last_refill_time=0.0, tokens=0)

        assert bucket.refill(0.999) == 0
        assert bucket.tokens == 0
        assert bucket.last_refill_time == 0.0

    def test_refill_credits_only_whole_seconds(self):
        bucket = TokenBucket(capacity=10, refill_rate=2, last_refill_time=0.0, tokens=0)

        assert bucket.refill(2.7) == 4
        assert bucket.tokens == 4
        # Дробная часть теряется вместе со сдвигом времени пополнения
        assert bucket.last_refill_time == 2.7
        assert bucket.refill(3.3) == 0

    def test_refill_is_clamped_to_capacity(self):
        bucket = TokenBucket(capacity=5, refill_rate=3, last_refill_time=0.0, tokens=4)

        assert bucket.refill(10.0) == 1
        assert bucket.tokens == 5

    def test_try_consume(self):
        bucket = TokenBucket(capacity=1, refill_rate=1, last_refill_time=0.0)

        assert bucket.try_consume(0.1)
        assert not bucket.try_consume(0.2)
        assert bucket.tokens == 0
        assert bucket.try_consume(1.2)


class TestRateLimiter:
    """Тесты для ограничителя скорости."""

    @pytest.mark.parametrize("capacity, refill_rate", [
        (0, 1),
        (-1, 1),
        (5, 0),
        (5, -2),
        (2.5, 1),
        (True, 1),
    ])
    def test_invalid_configuration(self, capacity, refill_rate):
        """Тест отказа при недопустимых параметрах."""
        with pytest.raises(ConfigurationError):
            RateLimiter(capacity, refill_rate)

    def test_admits_exactly_capacity_within_window(self):
        """Тест: 5 запросов разрешены, 6-й отклонен."""
        clock = FakeClock()
        limiter = RateLimiter(5, 100, clock=clock)

        results = [limiter.allow_request() for _ in range(6)]

        assert results == [True] * 5 + [False]

    def test_refill_after_one_second(self):
        """Тест пополнения после опустошения."""
        clock = FakeClock()
        limiter = RateLimiter(5, 2, clock=clock)

        for _ in range(5):
            assert limiter.allow_request()
        assert not limiter.allow_request()

        clock.advance(1.0)

        assert limiter.allow_request()
        assert limiter.allow_request()
        assert not limiter.allow_request()

    def test_partial_second_does_not_refill(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 2, clock=clock)

        limiter.allow_request()
        limiter.allow_request()
        clock.advance(0.9)

        assert not limiter.allow_request()

    def test_refill_capped_at_capacity(self):
        clock = FakeClock()
        limiter = RateLimiter(5, 2, clock=clock)

        for _ in range(5):
            limiter.allow_request()
        clock.advance(60)

        assert limiter.available_tokens == 5
        allowed = sum(limiter.allow_request() for _ in range(10))
        assert allowed == 5

    def test_bucket_bounds_hold_for_random_sequences(self):
        """Тест инварианта 0 <= tokens <= capacity."""
        rng = random.Random(42)
        clock = FakeClock()
        limiter = RateLimiter(7, 3, clock=clock)

        for _ in range(500):
            if rng.random() < 0.2:
                clock.advance(rng.uniform(0, 2.5))
            limiter.allow_request()
            tokens = limiter.get_metrics()['tokens']
            assert 0 <= tokens <= 7

    def test_concurrent_callers_never_exceed_supply(self):
        """Тест потокобезопасности при конкурентных вызовах."""
        clock = FakeClock()
        limiter = RateLimiter(50, 10, clock=clock)
        allowed = []
        allowed_lock = threading.Lock()
        barrier = threading.Barrier(16)

        def hammer():
            barrier.wait()
            local = sum(limiter.allow_request() for _ in range(100))
            with allowed_lock:
                allowed.append(local)

        threads = [threading.Thread(target=hammer) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        # Часы стоят: пополнений не было
        assert sum(allowed) == 50

        metrics = limiter.get_metrics()
        assert metrics['requests_allowed'] == 50
        assert metrics['requests_rejected'] == 16 * 100 - 50

    def test_concurrent_callers_with_real_clock(self):
        limiter = RateLimiter(20, 5)
        results = []
        results_lock = threading.Lock()

        def hammer():
            local = [limiter.allow_request() for _ in range(50)]
            with results_lock:
                results.extend(local)

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        # Тест укладывается в пару секунд: не больше двух пополнений
        assert sum(results) <= 20 + 2 * 5

    def test_from_config(self):
        limiter = RateLimiter.from_config(RateLimiterConfig(capacity=3, refill_rate=1))

        assert limiter.capacity == 3
        assert limiter.refill_rate == 1


class TestRateLimitedDecorator:
    """Тесты для декоратора rate_limited."""

    def test_rejected_call_raises(self):
        clock = FakeClock()
        limiter = RateLimiter(2, 1, clock=clock)
        calls = []

        @rate_limited(limiter)
        def handle(request_id):
            calls.append(request_id)
            return request_id

        assert handle(1) == 1
        assert handle(2) == 2
        with pytest.raises(RateLimitExceededError):
            handle(3)

        assert calls == [1, 2]
        assert handle.limiter is limiter

        clock.advance(1)
        assert handle(4) == 4


class TestTaskChannel:
    """Тесты для канала задач."""

    def test_fifo_order(self):
        channel = TaskChannel()
        tasks = [Task(name=f"task-{i}", func=lambda: None) for i in range(5)]

        for task in tasks:
            channel.put(task)

        assert len(channel) == 5
        assert [channel.get(timeout=1).name for _ in range(5)] == [t.name for t in tasks]
        assert len(channel) == 0

    def test_get_timeout_returns_none(self):
        channel = TaskChannel()
        assert channel.get(timeout=0.05) is None

    def test_close_after_pending_tasks(self):
        """Тест: закрытие не теряет задачи, маркер виден всем потребителям."""
        channel = TaskChannel()
        channel.put(Task(name="a", func=lambda: None))
        channel.put(Task(name="b", func=lambda: None))

        channel.close()

        assert channel.is_closed()
        assert len(channel) == 2
        assert channel.get().name == "a"
        assert channel.get().name == "b"
        assert channel.get() is None
        assert channel.get() is None

    def test_put_after_close_raises(self):
        channel = TaskChannel()
        channel.close()

        with pytest.raises(TaskChannelError):
            channel.put(Task(func=lambda: None))

    def test_close_wakes_blocked_consumers(self):
        channel = TaskChannel()
        results = []

        def consume():
            results.append(channel.get())

        consumers = [threading.Thread(target=consume) for _ in range(3)]
        for consumer in consumers:
            consumer.start()

        channel.close()
        for consumer in consumers:
            consumer.join(timeout=2)

        assert results == [None, None, None]

    def test_drain(self):
        channel = TaskChannel()
        for i in range(3):
            channel.put(Task(name=str(i), func=lambda: None))
        channel.close()

        drained = channel.drain()

        assert [t.name for t in drained] == ["0", "1", "2"]
        assert channel.get(timeout=0.1) is None
        assert channel.get_metrics()['tasks_drained'] == 3

    def test_multiple_consumers_receive_each_task_once(self):
        channel = TaskChannel()
        received = []
        received_lock = threading.Lock()

        def consume():
            while True:
                task = channel.get()
                if task is None:
                    return
                with received_lock:
                    received.append(task.id)

        consumers = [threading.Thread(target=consume) for _ in range(4)]
        for consumer in consumers:
            consumer.start()

        ids = []
        for _ in range(300):
            task = Task(func=lambda: None)
            ids.append(task.id)
            channel.put(task)
        channel.close()

        for consumer in consumers:
            consumer.join(timeout=5)

        assert sorted(received) == sorted(ids)
        assert len(set(received)) == 300


class TestTask:
    """Тесты для модели задачи."""

    def test_task_requires_callable(self):
        with pytest.raises(ValueError):
            Task(name="broken")
        with pytest.raises(ValueError):
            Task(func="not callable")

    def test_task_name_defaults_to_function_name(self):
        def fetch_quotes():
            return 1

        assert Task(func=fetch_quotes).name == "fetch_quotes"

    def test_run_records_status(self):
        task = Task(func=lambda x, y=0: x + y, args=(2,), kwargs={'y': 3})

        assert task.run() == 5
        assert task.status == TaskStatus.COMPLETED
        assert task.result == 5
        assert task.started_at is not None
        assert task.completed_at is not None

    def test_run_failure(self):
        def broken():
            raise RuntimeError("boom")

        task = Task(func=broken)
        with pytest.raises(RuntimeError):
            task.run()

        assert task.status == TaskStatus.FAILED
        assert isinstance(task.error, RuntimeError)


if __name__ == "__main__":
    pytest.main([__file__])
