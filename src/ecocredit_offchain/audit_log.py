"""
Retirement Audit Log

Publishes retirement records to an append-only topic for public audit.
Publishing is fire-and-forget: a failed publish is logged and never undoes
the retirement it describes.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_serializer

logger = logging.getLogger(__name__)


class RetirementLogEntry(BaseModel):
    """Message body published for every retirement"""

    model_config = ConfigDict(populate_by_name=True)

    account: str
    amount: Decimal
    reason: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    transaction_id: str = Field(alias="transactionId")

    @field_serializer("amount")
    def _serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

    def to_message(self) -> str:
        return self.model_dump_json(by_alias=True)


class RelayReceipt(BaseModel):
    """Relay answer to a submitted message"""

    sequence_number: Optional[int] = Field(default=None, alias="sequenceNumber")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")


@dataclass()
class PublishResult:
    success: bool
    topic_id: Optional[str] = None
    sequence_number: Optional[int] = None
    transaction_id: Optional[str] = None


class TopicSink(Protocol):
    """Append-only message destination"""

    topic_id: Optional[str]

    def publish(self, message: str) -> PublishResult: ...


class MemoryTopicSink:
    """Keeps messages in memory (tests, local ledger)"""

    def __init__(self, topic_id: str = "local"):
        self.topic_id = topic_id
        self.messages: List[str] = []
        self._lock = threading.Lock()

    def publish(self, message: str) -> PublishResult:
        with self._lock:
            self.messages.append(message)
            sequence_number = len(self.messages)
        return PublishResult(success=True, topic_id=self.topic_id, sequence_number=sequence_number)

    def entries(self) -> List[dict]:
        return [json.loads(message) for message in self.messages]


class JsonlTopicSink:
    """Appends one JSON message per line to a local file"""

    def __init__(self, path: Path, topic_id: Optional[str] = None):
        self.path = Path(path)
        self.topic_id = topic_id or self.path.stem
        self._lock = threading.Lock()

    def publish(self, message: str) -> PublishResult:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(message.rstrip("\n") + "\n")
        return PublishResult(success=True, topic_id=self.topic_id)


class HttpTopicSink:
    """
    Submits messages to a consensus topic through an HTTP relay.

    The relay receives ``POST {base_url}/api/v1/topics/{topic_id}/messages``
    with ``{"message": ...}`` and answers with the sequence number and the
    submit transaction id.
    """

    def __init__(
        self,
        base_url: str,
        topic_id: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.topic_id = topic_id
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def publish(self, message: str) -> PublishResult:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(
                f"{self.base_url}/api/v1/topics/{self.topic_id}/messages",
                json={"message": message},
                headers=self._headers(),
            )
            response.raise_for_status()
            # Raises pydantic.ValidationError (a ValueError) for any non-object body
            receipt = RelayReceipt.model_validate(response.json())

        return PublishResult(
            success=True,
            topic_id=self.topic_id,
            sequence_number=receipt.sequence_number,
            transaction_id=receipt.transaction_id,
        )


class RetirementLogger:
    """Formats retirement records and hands them to the configured sink"""

    def __init__(self, sink: Optional[TopicSink] = None):
        self.sink = sink

    def log_retirement(self, entry: RetirementLogEntry) -> Optional[PublishResult]:
        """
        Publish a retirement record.

        Returns:
            PublishResult, or None when no sink is configured or publishing failed
        """
        if self.sink is None:
            logger.warning("Topic sink not configured, retirement not logged")
            return None

        try:
            result = self.sink.publish(entry.to_message())
        except Exception as e:
            # The retirement is already final on the ledger
            logger.exception(f"Retirement log publish failed for {entry.transaction_id}: {e}")
            return None

        logger.info(f"Retirement logged to topic {result.topic_id}: {entry.transaction_id}")
        return result
