# -*- coding: utf-8 -*-
import threading

from services.behavior_tracker import BehaviorTracker, content_hash

T0 = 1_700_000_000.0


def test_first_submission_is_clean():
    tracker = BehaviorTracker()
    check = tracker.record_and_check("id-1", content_hash("hello"), T0)
    assert check.is_new
    assert not check.is_burst
    assert not check.is_duplicate_recent
    assert check.violation_count == 0


def test_burst_inside_min_spacing():
    tracker = BehaviorTracker(min_spacing_seconds=10)
    tracker.record_and_check("id-1", content_hash("one"), T0)
    check = tracker.record_and_check("id-1", content_hash("two"), T0 + 9.9)
    assert check.is_burst
    assert check.violation_count == 1


def test_spacing_beyond_window_is_not_burst():
    tracker = BehaviorTracker(min_spacing_seconds=10)
    tracker.record_and_check("id-1", content_hash("one"), T0)
    assert not tracker.record_and_check("id-1", content_hash("two"), T0 + 10).is_burst


def test_rejected_burst_does_not_extend_the_window():
    tracker = BehaviorTracker(min_spacing_seconds=10)
    tracker.record_and_check("id-1", content_hash("one"), T0)
    assert tracker.record_and_check("id-1", content_hash("two"), T0 + 5).is_burst
    # measured from the last accepted submission, not the rejected one
    assert not tracker.record_and_check("id-1", content_hash("three"), T0 + 11).is_burst


def test_duplicate_within_window():
    tracker = BehaviorTracker(duplicate_window_seconds=300)
    digest = content_hash("Same text")
    tracker.record_and_check("id-1", digest, T0)
    assert tracker.record_and_check("id-1", content_hash("  same TEXT "), T0 + 60).is_duplicate_recent
    assert not tracker.record_and_check("id-1", digest, T0 + 60 + 301).is_duplicate_recent


def test_duplicates_are_per_identity():
    tracker = BehaviorTracker()
    digest = content_hash("shared")
    tracker.record_and_check("id-1", digest, T0)
    assert not tracker.record_and_check("id-2", digest, T0 + 1).is_duplicate_recent


def test_history_is_bounded():
    tracker = BehaviorTracker(history_size=3, min_spacing_seconds=0)
    first = content_hash("first")
    tracker.record_and_check("id-1", first, T0)
    for i in range(3):
        tracker.record_and_check("id-1", content_hash(f"other {i}"), T0 + i + 1)
    # "first" has been evicted from the 3-entry window
    assert not tracker.record_and_check("id-1", first, T0 + 10).is_duplicate_recent


def test_violations_mark_identity_suspicious():
    tracker = BehaviorTracker(suspicious_violations=3)
    tracker.record_violation("id-1", T0)
    tracker.record_violation("id-1", T0)
    assert not tracker.snapshot("id-1").suspicious
    assert tracker.record_violation("id-1", T0) == 3
    assert tracker.snapshot("id-1").suspicious
    assert tracker.snapshot("unknown") is None


def test_sweep_evicts_idle_identities():
    tracker = BehaviorTracker(idle_ttl_seconds=3600)
    tracker.record_and_check("idle", content_hash("a"), T0)
    tracker.record_and_check("active", content_hash("b"), T0 + 3000)
    assert len(tracker) == 2
    evicted = tracker.sweep(now=T0 + 3601)
    assert evicted == 1
    assert len(tracker) == 1
    assert tracker.snapshot("idle") is None
    assert tracker.snapshot("active") is not None


def test_concurrent_submissions_from_one_identity_admit_only_one():
    tracker = BehaviorTracker(min_spacing_seconds=10, shards=4)
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(16)

    def submit(i):
        barrier.wait()
        check = tracker.record_and_check("same-id", content_hash(f"msg {i}"), T0)
        with lock:
            results.append(check)

    threads = [threading.Thread(target=submit, args=(i,)) for i in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for r in results if not r.is_burst) == 1
    assert max(r.violation_count for r in results) == 15


def test_concurrent_submissions_from_distinct_identities_do_not_interfere():
    tracker = BehaviorTracker(min_spacing_seconds=10, shards=4)
    results = []
    lock = threading.Lock()

    def submit(i):
        check = tracker.record_and_check(f"id-{i}", content_hash("hello"), T0)
        with lock:
            results.append(check)

    threads = [threading.Thread(target=submit, args=(i,)) for i in range(32)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 32
    assert not any(r.is_burst or r.is_duplicate_recent for r in results)
    assert len(tracker) == 32


def test_background_sweeper_starts_and_stops():
    tracker = BehaviorTracker(sweep_interval_seconds=0.01)
    tracker.start()
    assert tracker._sweeper is not None and tracker._sweeper.is_alive()
    tracker.stop()
    assert tracker._sweeper is None
