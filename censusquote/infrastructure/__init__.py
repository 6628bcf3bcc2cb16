"""Infrastructure layer exports."""

from .duckdb_store import DuckDBRecordStore
from .record_store import InMemoryRecordStore, RecordStore
from .slack import ChatClient, ChatClientFactory, SlackClient, SlackError, slack_client_factory

__all__ = [
    "ChatClient",
    "ChatClientFactory",
    "DuckDBRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
    "SlackClient",
    "SlackError",
    "slack_client_factory",
]
