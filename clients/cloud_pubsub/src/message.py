from datetime import datetime
from typing import Dict, Optional, Union

from google.cloud.pubsub_v1 import types

class Message:
    """
    A Pub/Sub message: data bytes plus string attributes.
    The message ID and publish time are assigned by the server and are only
    set on messages that were received.

    Example:
        msg = Message(b"payload", event_type="audit.requested")
        msg.attributes["event_type"]  # "audit.requested"
    """

    def __init__(self, data: Union[bytes, str] = b"", **attributes: str):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.grpc = types.PubsubMessage(data=data, attributes=attributes)

    @property
    def data(self) -> bytes:
        return self.grpc.data

    @property
    def attributes(self) -> Dict[str, str]:
        return dict(self.grpc.attributes)

    @property
    def message_id(self) -> str:
        return self.grpc.message_id

    msg_id = message_id

    @property
    def publish_time(self) -> Optional[datetime]:
        return self.grpc.publish_time

    @property
    def ordering_key(self) -> str:
        return self.grpc.ordering_key

    def to_grpc(self) -> types.PubsubMessage:
        return self.grpc

    @classmethod
    def from_grpc(cls, grpc: types.PubsubMessage) -> "Message":
        msg = cls.__new__(cls)
        msg.grpc = grpc
        return msg

    def __repr__(self) -> str:
        return f"Message(message_id={self.message_id!r}, size={len(self.data)}, attributes={self.attributes!r})"
