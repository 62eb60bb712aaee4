from .broker_message_handler import BrokerMessageHandler

__all__ = ['BrokerMessageHandler']
