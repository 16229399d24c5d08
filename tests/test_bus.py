"""Tests for the in-process event bus.

Covers:
  - Fan-out to every subscriber in publish order
  - No replay for late subscribers
  - Idempotent unsubscribe and unsubscribe-is-terminal
  - Failure isolation between subscribers
  - Topic isolation and concurrent publishers
"""

from __future__ import annotations

import threading

from sfudash.core.bus import FRONT_TOPIC, EventBus, Subscription


class TestSubscribe:
    def test_subscribe_returns_handle_for_topic(self):
        b = EventBus()
        sub = b.subscribe("front", lambda env: None)
        assert isinstance(sub, Subscription)
        assert sub.topic == "front"
        assert b.subscriber_count("front") == 1

    def test_handles_are_distinct(self):
        b = EventBus()
        s1 = b.subscribe("front", lambda env: None)
        s2 = b.subscribe("front", lambda env: None)
        assert s1 != s2
        assert b.subscriber_count("front") == 2

    def test_unknown_topic_is_created_implicitly(self):
        b = EventBus()
        assert b.subscriber_count("never-seen") == 0
        b.subscribe("never-seen", lambda env: None)
        assert b.subscriber_count("never-seen") == 1


class TestPublish:
    def test_fan_out_in_publish_order(self):
        b = EventBus()
        inboxes = [[] for _ in range(4)]
        for inbox in inboxes:
            b.subscribe(FRONT_TOPIC, inbox.append)

        envelopes = [{"type": "t", "n": i} for i in range(10)]
        for env in envelopes:
            assert b.publish(FRONT_TOPIC, env) == 4

        for inbox in inboxes:
            assert inbox == envelopes

    def test_subscribers_called_in_subscription_order(self):
        b = EventBus()
        calls = []
        b.subscribe(FRONT_TOPIC, lambda env: calls.append("first"))
        b.subscribe(FRONT_TOPIC, lambda env: calls.append("second"))
        b.subscribe(FRONT_TOPIC, lambda env: calls.append("third"))
        b.publish(FRONT_TOPIC, {"type": "x"})
        assert calls == ["first", "second", "third"]

    def test_envelope_passed_by_reference(self):
        b = EventBus()
        seen = []
        b.subscribe(FRONT_TOPIC, seen.append)
        env = {"type": "x"}
        b.publish(FRONT_TOPIC, env)
        assert seen[0] is env

    def test_publish_without_subscribers_is_discarded(self):
        b = EventBus()
        assert b.publish(FRONT_TOPIC, {"type": "lost"}) == 0

    def test_no_replay_for_late_subscriber(self):
        b = EventBus()
        b.publish(FRONT_TOPIC, {"type": "early"})
        seen = []
        b.subscribe(FRONT_TOPIC, seen.append)
        b.publish(FRONT_TOPIC, {"type": "late"})
        assert seen == [{"type": "late"}]

    def test_topics_are_isolated(self):
        b = EventBus()
        front, other = [], []
        b.subscribe(FRONT_TOPIC, front.append)
        b.subscribe("other", other.append)
        b.publish("other", {"type": "x"})
        assert front == []
        assert other == [{"type": "x"}]


class TestFailureIsolation:
    def test_raising_subscriber_does_not_block_others(self):
        b = EventBus()
        before, after = [], []

        def broken(env):
            raise RuntimeError("write failed")

        b.subscribe(FRONT_TOPIC, before.append)
        b.subscribe(FRONT_TOPIC, broken)
        b.subscribe(FRONT_TOPIC, after.append)

        delivered = b.publish(FRONT_TOPIC, {"type": "x"})

        assert delivered == 2
        assert before == [{"type": "x"}]
        assert after == [{"type": "x"}]

    def test_failure_is_logged_not_raised(self, caplog):
        b = EventBus()
        b.subscribe(FRONT_TOPIC, lambda env: 1 / 0)
        with caplog.at_level("WARNING", logger="sfudash.bus"):
            b.publish(FRONT_TOPIC, {"type": "x"})
        assert any("continuing fan-out" in r.getMessage() for r in caplog.records)


class TestUnsubscribe:
    def test_unsubscribe_is_terminal(self):
        b = EventBus()
        seen = []
        sub = b.subscribe(FRONT_TOPIC, seen.append)
        b.publish(FRONT_TOPIC, {"n": 1})
        b.unsubscribe(FRONT_TOPIC, sub)
        b.publish(FRONT_TOPIC, {"n": 2})
        assert seen == [{"n": 1}]
        assert b.subscriber_count(FRONT_TOPIC) == 0

    def test_repeated_unsubscribe_is_noop(self):
        b = EventBus()
        sub = b.subscribe(FRONT_TOPIC, lambda env: None)
        b.unsubscribe(FRONT_TOPIC, sub)
        b.unsubscribe(FRONT_TOPIC, sub)
        assert b.subscriber_count(FRONT_TOPIC) == 0

    def test_unknown_handle_is_noop(self):
        b = EventBus()
        b.subscribe(FRONT_TOPIC, lambda env: None)
        b.unsubscribe(FRONT_TOPIC, Subscription(topic=FRONT_TOPIC, token=999))
        b.unsubscribe("missing", Subscription(topic="missing", token=1))
        assert b.subscriber_count(FRONT_TOPIC) == 1

    def test_handle_for_other_topic_is_noop(self):
        b = EventBus()
        sub = b.subscribe("a", lambda env: None)
        b.subscribe("b", lambda env: None)
        b.unsubscribe("b", Subscription(topic="a", token=sub.token))
        assert b.subscriber_count("a") == 1
        assert b.subscriber_count("b") == 1

    def test_unsubscribe_from_inside_callback(self):
        b = EventBus()
        seen = []
        holder = {}

        def once(env):
            seen.append(env)
            b.unsubscribe(FRONT_TOPIC, holder["sub"])

        holder["sub"] = b.subscribe(FRONT_TOPIC, once)
        b.publish(FRONT_TOPIC, {"n": 1})
        b.publish(FRONT_TOPIC, {"n": 2})
        assert seen == [{"n": 1}]

    def test_clear_drops_everything(self):
        b = EventBus()
        b.subscribe("a", lambda env: None)
        b.subscribe("b", lambda env: None)
        b.clear()
        assert b.subscriber_count("a") == 0
        assert b.subscriber_count("b") == 0


class TestConcurrentPublishers:
    def test_every_subscriber_sees_the_same_sequence(self):
        b = EventBus()
        inboxes = [[] for _ in range(3)]
        for inbox in inboxes:
            b.subscribe(FRONT_TOPIC, inbox.append)

        def producer(worker: int) -> None:
            for i in range(50):
                b.publish(FRONT_TOPIC, (worker, i))

        threads = [threading.Thread(target=producer, args=(w,)) for w in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(inboxes[0]) == 200
        assert inboxes[0] == inboxes[1] == inboxes[2]
        for worker in range(4):
            mine = [i for w, i in inboxes[0] if w == worker]
            assert mine == list(range(50))
