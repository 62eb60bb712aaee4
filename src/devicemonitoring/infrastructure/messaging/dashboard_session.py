from abc import ABC, abstractmethod


class DashboardSession(ABC):
    """One connected dashboard client"""

    @abstractmethod
    def is_open(self) -> bool:
        """True while the underlying transport can be written to"""

    @abstractmethod
    def send(self, message: dict):
        """Deliver one JSON envelope to the client"""
