"""Messaging ports."""

from txinsight.messaging.ports.outbound import MessageBrokerPort, MessageHandler

__all__ = ["MessageBrokerPort", "MessageHandler"]
