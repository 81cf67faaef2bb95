from __future__ import annotations

from rtu_recon.services.publisher import ResultPublisher


def test_run_ids_increase():
    """Run ids increase."""
    publisher: ResultPublisher[str] = ResultPublisher()
    assert [publisher.begin_run() for _ in range(3)] == [1, 2, 3]


def test_stale_result_discarded():
    """Results of superseded runs are discarded."""
    publisher: ResultPublisher[str] = ResultPublisher()
    older = publisher.begin_run()
    newer = publisher.begin_run()
    assert publisher.publish(newer, "newer") is True
    assert publisher.publish(older, "older") is False
    assert publisher.latest == "newer"
    assert publisher.latest_run_id == newer


def test_in_order_publishes_replace_latest():
    """In-order publishes replace the latest result."""
    publisher: ResultPublisher[str] = ResultPublisher()
    assert publisher.latest is None
    first = publisher.begin_run()
    assert publisher.publish(first, "a")
    second = publisher.begin_run()
    assert publisher.publish(second, "b")
    assert publisher.latest == "b"


def test_same_run_cannot_publish_twice():
    """A run publishes at most once."""
    publisher: ResultPublisher[str] = ResultPublisher()
    run_id = publisher.begin_run()
    assert publisher.publish(run_id, "a")
    assert not publisher.publish(run_id, "again")
    assert publisher.latest == "a"
