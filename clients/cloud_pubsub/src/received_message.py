from typing import Any, Dict, Optional

from google.cloud.pubsub_v1 import types

from .exceptions import PreconditionError
from .message import Message

class ReceivedMessage:
    """
    A pulled Pub/Sub message that can be acknowledged or delayed.

    Holds the wire ReceivedMessage and a reference to the Subscription it was
    pulled from; acknowledge() and delay() are forwarded to that subscription.

    Example:
        for received in subscription.pull():
            print(received.message.data)
            received.acknowledge()
    """

    def __init__(self, grpc: Optional[types.ReceivedMessage] = None, subscription: Optional[Any] = None):
        self.grpc = grpc if grpc is not None else types.ReceivedMessage()
        self.subscription = subscription

    @property
    def ack_id(self) -> str:
        return self.grpc.ack_id

    @property
    def message(self) -> Message:
        return Message.from_grpc(self.grpc.message)

    msg = message

    @property
    def data(self) -> bytes:
        return self.message.data

    @property
    def attributes(self) -> Dict[str, str]:
        return self.message.attributes

    @property
    def message_id(self) -> str:
        """Server-assigned at publish time; unique within the topic."""
        return self.message.message_id

    msg_id = message_id

    @property
    def delivery_attempt(self) -> int:
        # 0 unless the subscription has a dead letter policy
        return self.grpc.delivery_attempt

    def acknowledge(self) -> None:
        self._ensure_subscription()
        self.subscription.acknowledge(self.ack_id)

    ack = acknowledge

    def delay(self, new_deadline: int) -> None:
        """
        Modify the ack deadline to new_deadline seconds from now.
        Must be >= 0; 0 makes the message available for redelivery right away.
        """
        self._ensure_subscription()
        self.subscription.delay(new_deadline, self.ack_id)

    @classmethod
    def from_grpc(cls, grpc: types.ReceivedMessage, subscription: Optional[Any]) -> "ReceivedMessage":
        return cls(grpc=grpc, subscription=subscription)

    def _ensure_subscription(self) -> None:
        if self.subscription is None:
            raise PreconditionError("Must have active subscription")

    def __repr__(self) -> str:
        return f"ReceivedMessage(ack_id={self.ack_id!r}, message_id={self.message_id!r})"
