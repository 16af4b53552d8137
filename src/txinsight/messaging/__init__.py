"""txinsight messaging — publish port and broker adapters."""

from txinsight.messaging.adapters.memory import InMemoryMessageBroker
from txinsight.messaging.config import MessagingProperties, create_broker
from txinsight.messaging.ports.outbound import MessageBrokerPort, MessageHandler
from txinsight.messaging.types import Message

__all__ = [
    "InMemoryMessageBroker",
    "Message",
    "MessageBrokerPort",
    "MessageHandler",
    "MessagingProperties",
    "create_broker",
]
