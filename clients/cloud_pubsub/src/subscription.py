from typing import Any, Callable, List, Optional

from google.api_core import exceptions as gax_exceptions
from google.cloud import pubsub_v1
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, stop_after_delay, wait_random_exponential

from .config import Settings, settings as default_settings
from .exceptions import PreconditionError
from .logging import jlog
from .received_message import ReceivedMessage

# Retryable exception types for subscriber calls; others will bubble
RETRYABLE_SUBSCRIBER_EXC = (
    gax_exceptions.ServiceUnavailable,
    gax_exceptions.DeadlineExceeded,
    gax_exceptions.InternalServerError,
    gax_exceptions.Aborted,
    gax_exceptions.ResourceExhausted,
    gax_exceptions.Unknown,
    gax_exceptions.Cancelled,
)

class Subscription:
    """
    A Pub/Sub subscription, pulled from synchronously.

    Messages returned by pull() keep a reference back to this object so that
    ReceivedMessage.acknowledge() and ReceivedMessage.delay() land here.
    Transient API errors are retried with full-jitter exponential backoff;
    the last error is re-raised once the attempt or time budget runs out.
    """

    def __init__(self, name: str, subscriber: Optional[pubsub_v1.SubscriberClient] = None,
                 settings: Optional[Settings] = None):
        self.name = name
        self.settings = settings or default_settings
        self._subscriber = subscriber

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None,
                      subscriber: Optional[pubsub_v1.SubscriberClient] = None) -> "Subscription":
        settings = settings or default_settings
        if not settings.project_id or not settings.subscription_name:
            raise PreconditionError("Missing PROJECT_ID or SUBSCRIPTION_NAME")
        path = pubsub_v1.SubscriberClient.subscription_path(settings.project_id, settings.subscription_name)
        return cls(path, subscriber=subscriber, settings=settings)

    @property
    def subscriber(self) -> pubsub_v1.SubscriberClient:
        # Lazy client; creating it needs credentials
        if self._subscriber is None:
            self._subscriber = pubsub_v1.SubscriberClient()
        return self._subscriber

    # -----------------------
    # Operations
    # -----------------------

    def pull(self, max_messages: Optional[int] = None, immediate: bool = False) -> List[ReceivedMessage]:
        max_messages = max_messages or self.settings.pull_max_messages
        request = {"subscription": self.name, "max_messages": max_messages}
        # deprecated flag; only sent when asked for
        if immediate:
            request["return_immediately"] = True

        def _pull():
            kwargs = {}
            if self.settings.pull_timeout_s is not None:
                kwargs["timeout"] = self.settings.pull_timeout_s
            return self.subscriber.pull(request=request, **kwargs)

        response = self._call("pull", _pull)
        received = [ReceivedMessage.from_grpc(rm, self) for rm in response.received_messages]
        jlog(event="pull_ok", subscription=self.name, max_messages=max_messages, count=len(received))
        return received

    def acknowledge(self, *ack_ids: str) -> None:
        ack_ids = _flatten(ack_ids)
        if not ack_ids:
            return
        self._call("acknowledge", lambda: self.subscriber.acknowledge(
            request={"subscription": self.name, "ack_ids": ack_ids}
        ))
        jlog(event="acknowledge_ok", subscription=self.name, count=len(ack_ids))

    ack = acknowledge

    def delay(self, new_deadline: int, *ack_ids: str) -> None:
        ack_ids = _flatten(ack_ids)
        if not ack_ids:
            return
        self._call("modify_ack_deadline", lambda: self.subscriber.modify_ack_deadline(
            request={
                "subscription": self.name,
                "ack_ids": ack_ids,
                "ack_deadline_seconds": new_deadline,
            }
        ))
        jlog(event="delay_ok", subscription=self.name, count=len(ack_ids), new_deadline=new_deadline)

    # -----------------------
    # Retry
    # -----------------------

    def _call(self, op: str, fn: Callable[[], Any]) -> Any:
        s = self.settings
        max_attempts = max(1, s.ack_max_retries + 1)  # first try + retries
        base_s = max(0.01, s.ack_backoff_base_ms / 1000.0)
        wait = wait_random_exponential(multiplier=base_s, max=max(base_s, s.ack_backoff_cap_ms / 1000.0))
        stop = (stop_after_attempt(max_attempts) | stop_after_delay(s.ack_retry_budget_s))

        for attempt in Retrying(
            retry=retry_if_exception_type(RETRYABLE_SUBSCRIBER_EXC),
            wait=wait,
            stop=stop,
            reraise=True,
            before_sleep=lambda rs: jlog(
                event=f"{op}_retry",
                severity="WARNING",
                attempt=rs.attempt_number,
                wait_s=getattr(getattr(rs, "next_action", None), "sleep", None),
                error=str(rs.outcome.exception()) if rs.outcome and rs.outcome.failed else None,
                subscription=self.name,
            ),
        ):
            with attempt:
                return fn()

def _flatten(ack_ids) -> List[str]:
    # accepts acknowledge("a", "b") as well as acknowledge(["a", "b"])
    flat: List[str] = []
    for ack_id in ack_ids:
        if isinstance(ack_id, (list, tuple)):
            flat.extend(ack_id)
        else:
            flat.append(ack_id)
    return flat
