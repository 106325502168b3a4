"""Business logic services for the quadvote application."""

from .aggregation import VoteAggregator
from .ledger import CreditLedger
from .notifications import InMemoryChangeNotifier, RedisChangeNotifier, get_notifier
from .privacy import PrivacyLayer, get_privacy_layer
from .voting import VoteReceipt, VotingEngine

__all__ = [
    "CreditLedger",
    "VoteAggregator",
    "VotingEngine", "VoteReceipt",
    "PrivacyLayer", "get_privacy_layer",
    "InMemoryChangeNotifier", "RedisChangeNotifier", "get_notifier",
]
