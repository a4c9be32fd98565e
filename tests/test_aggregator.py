"""Tests for the thread-safe SenderTally."""

import random
import threading
from collections import Counter

from sendertally.pipeline.aggregator import SenderTally, rank_senders


class TestRecord:
    def test_empty_snapshot(self):
        assert SenderTally().snapshot() == {}

    def test_record_creates_then_increments(self):
        tally = SenderTally()

        assert tally.record("jane@x.com") is True
        assert tally.record("jane@x.com") is False
        assert tally.record("bob@y.com") is True

        assert tally.snapshot() == {"jane@x.com": 2, "bob@y.com": 1}

    def test_snapshot_is_a_copy(self):
        tally = SenderTally()
        tally.record("jane@x.com")

        snap = tally.snapshot()
        snap["jane@x.com"] = 99

        assert tally.snapshot() == {"jane@x.com": 1}


class TestRanking:
    def test_snapshot_ranked_by_count_then_address(self):
        tally = SenderTally()
        for address in ["b@x.com", "a@x.com", "c@x.com", "c@x.com", "b@x.com", "c@x.com"]:
            tally.record(address)

        assert rank_senders(tally.snapshot()) == [("c@x.com", 3), ("b@x.com", 2), ("a@x.com", 1)]

    def test_rank_senders_ties_broken_alphabetically(self):
        assert rank_senders({"z@x.com": 1, "a@x.com": 1, "m@x.com": 5}) == [
            ("m@x.com", 5),
            ("a@x.com", 1),
            ("z@x.com", 1),
        ]


class TestConcurrentRecord:
    """No lost or duplicated increments under N-way concurrent writers."""

    def test_concurrent_writers_exact_counts(self):
        rng = random.Random(1234)
        addresses = [f"user{i}@example.com" for i in range(20)]
        workloads = [[rng.choice(addresses) for _ in range(2_000)] for _ in range(16)]
        expected = Counter(address for workload in workloads for address in workload)

        tally = SenderTally()
        start = threading.Barrier(len(workloads))
        new_keys: list[int] = []
        new_keys_lock = threading.Lock()

        def writer(workload):
            start.wait()
            created = sum(1 for address in workload if tally.record(address))
            with new_keys_lock:
                new_keys.append(created)

        threads = [threading.Thread(target=writer, args=(w,)) for w in workloads]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tally.snapshot() == dict(expected)
        # Each key is reported as new by exactly one record() call.
        assert sum(new_keys) == len(expected)

    def test_single_hot_key(self):
        tally = SenderTally()

        def writer():
            for _ in range(5_000):
                tally.record("hot@x.com")

        threads = [threading.Thread(target=writer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tally.snapshot() == {"hot@x.com": 40_000}
