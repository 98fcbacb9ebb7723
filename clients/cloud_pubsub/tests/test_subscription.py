import pytest

from google.api_core import exceptions as gax_exceptions
from google.cloud import pubsub_v1
from google.cloud.pubsub_v1 import types

from clients.cloud_pubsub.src.config import Settings
from clients.cloud_pubsub.src.exceptions import PreconditionError
from clients.cloud_pubsub.src.received_message import ReceivedMessage
from clients.cloud_pubsub.src.subscription import Subscription

SUB_PATH = "projects/my-project/subscriptions/my-sub"

class _DummySubscriber:
    """Records requests; raises queued errors before succeeding."""

    def __init__(self, errors=None, received=None):
        self.errors = list(errors or [])
        self.received = received or []
        self.calls = []

    def _maybe_fail(self):
        if self.errors:
            raise self.errors.pop(0)

    def pull(self, request=None, **kwargs):
        self.calls.append(("pull", request))
        self._maybe_fail()
        return types.PullResponse(received_messages=self.received)

    def acknowledge(self, request=None, **kwargs):
        self.calls.append(("acknowledge", request))
        self._maybe_fail()

    def modify_ack_deadline(self, request=None, **kwargs):
        self.calls.append(("modify_ack_deadline", request))
        self._maybe_fail()

@pytest.fixture
def settings():
    return Settings(
        project_id="my-project",
        subscription_name="my-sub",
        pull_max_messages=10,
        ack_max_retries=2,
        ack_retry_budget_s=5,
        ack_backoff_base_ms=1,
        ack_backoff_cap_ms=1,
    )

def _received(ack_id, data):
    return types.ReceivedMessage(ack_id=ack_id, message=types.PubsubMessage(data=data, message_id=ack_id))

def test_from_settings_builds_path(settings):
    sub = Subscription.from_settings(settings, subscriber=_DummySubscriber())
    assert sub.name == SUB_PATH
    assert sub.name == pubsub_v1.SubscriberClient.subscription_path("my-project", "my-sub")

def test_from_settings_requires_names():
    with pytest.raises(PreconditionError):
        Subscription.from_settings(Settings(project_id=None, subscription_name=None))

def test_pull_wraps_messages_with_back_reference(settings):
    subscriber = _DummySubscriber(received=[_received("a1", b"one"), _received("a2", b"two")])
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    messages = sub.pull()

    assert [type(m) for m in messages] == [ReceivedMessage, ReceivedMessage]
    assert [m.ack_id for m in messages] == ["a1", "a2"]
    assert [m.data for m in messages] == [b"one", b"two"]
    assert all(m.subscription is sub for m in messages)
    assert subscriber.calls == [("pull", {"subscription": SUB_PATH, "max_messages": 10})]

def test_pull_leaves_out_return_immediately_by_default(settings):
    subscriber = _DummySubscriber()
    Subscription(SUB_PATH, subscriber=subscriber, settings=settings).pull(max_messages=5)

    _, request = subscriber.calls[0]
    assert "return_immediately" not in request
    assert request == {"subscription": SUB_PATH, "max_messages": 5}

def test_pull_immediate_sends_flag_when_asked(settings):
    subscriber = _DummySubscriber()
    Subscription(SUB_PATH, subscriber=subscriber, settings=settings).pull(immediate=True)

    _, request = subscriber.calls[0]
    assert request["return_immediately"] is True

def test_pulled_message_acknowledges_through_subscription(settings):
    subscriber = _DummySubscriber(received=[_received("a1", b"one")])
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    sub.pull(max_messages=1)[0].acknowledge()

    assert subscriber.calls[-1] == ("acknowledge", {"subscription": SUB_PATH, "ack_ids": ["a1"]})

def test_delay_sends_deadline(settings):
    subscriber = _DummySubscriber()
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    sub.delay(120, "a1", "a2")

    assert subscriber.calls == [("modify_ack_deadline", {
        "subscription": SUB_PATH,
        "ack_ids": ["a1", "a2"],
        "ack_deadline_seconds": 120,
    })]

def test_acknowledge_accepts_list_and_skips_empty(settings):
    subscriber = _DummySubscriber()
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    sub.acknowledge()
    sub.ack(["a1", "a2"])

    assert subscriber.calls == [("acknowledge", {"subscription": SUB_PATH, "ack_ids": ["a1", "a2"]})]

def test_transient_errors_are_retried(settings):
    subscriber = _DummySubscriber(errors=[gax_exceptions.ServiceUnavailable("try again")])
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    sub.acknowledge("a1")

    assert [name for name, _ in subscriber.calls] == ["acknowledge", "acknowledge"]

def test_retry_budget_exhausted_reraises_last_error(settings):
    errors = [gax_exceptions.DeadlineExceeded(f"slow {i}") for i in range(3)]
    subscriber = _DummySubscriber(errors=errors)
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    with pytest.raises(gax_exceptions.DeadlineExceeded, match="slow 2"):
        sub.delay(0, "a1")

    assert len(subscriber.calls) == 3

def test_permanent_errors_are_not_retried(settings):
    subscriber = _DummySubscriber(errors=[gax_exceptions.InvalidArgument("bad ack id")])
    sub = Subscription(SUB_PATH, subscriber=subscriber, settings=settings)

    with pytest.raises(gax_exceptions.InvalidArgument):
        sub.acknowledge("nope")

    assert len(subscriber.calls) == 1
