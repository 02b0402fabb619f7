"""
Amazon SQS queue endpoint.

Both service queues are FIFO queues: every send carries a deduplication id
and a message group id, and the ``Action`` travels as a string message
attribute.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from ...core.domain.messages import ACTION_ATTRIBUTE, InboundMessage, OutboundMessage
from ...core.exceptions import PublishError, QueueError
from ...core.interfaces.queues import IMessageQueue
from ..clients.base import AWSClient
from ..config.models import AWSConfig

logger = logging.getLogger(__name__)


def _message_from_sqs(raw: Dict[str, Any]) -> InboundMessage:
    attributes = {
        key: value.get("StringValue", "")
        for key, value in raw.get("MessageAttributes", {}).items()
        if value.get("DataType", "String").startswith("String")
    }
    receive_count = raw.get("Attributes", {}).get("ApproximateReceiveCount", "1")

    return InboundMessage(
        message_id=raw.get("MessageId", ""),
        receipt_handle=raw["ReceiptHandle"],
        body=raw.get("Body", ""),
        attributes=attributes,
        receive_count=int(receive_count),
    )


class SQSMessageQueue(AWSClient, IMessageQueue):
    """One SQS queue, addressed by its URL."""

    service_name = "sqs"

    def __init__(self,
                 config: AWSConfig,
                 queue_url: str,
                 client: Optional[Any] = None,
                 name: Optional[str] = None) -> None:
        super().__init__(config, client=client, name=name or "SQSMessageQueue")
        self._queue_url = queue_url

    @property
    def url(self) -> str:
        return self._queue_url

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        health['details']['queue_url'] = self._queue_url
        return health

    async def receive(self,
                      max_messages: int = 10,
                      wait_time_seconds: int = 20,
                      visibility_timeout: int = 60,
                      attribute_names: Optional[Sequence[str]] = None) -> List[InboundMessage]:
        """Long-poll for up to ``max_messages`` messages."""
        try:
            response = await self._call(
                "receive_message",
                QueueUrl=self._queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=wait_time_seconds,
                VisibilityTimeout=visibility_timeout,
                MessageAttributeNames=list(attribute_names or [ACTION_ATTRIBUTE]),
                AttributeNames=["ApproximateReceiveCount"],
            )
        except (BotoCoreError, ClientError) as e:
            raise QueueError(f"Failed to receive from {self._queue_url}: {e}") from e

        return [_message_from_sqs(raw) for raw in response.get("Messages", [])]

    async def send(self, message: OutboundMessage) -> str:
        """Send an event with its action attribute, dedup and group ids."""
        try:
            response = await self._call(
                "send_message",
                QueueUrl=self._queue_url,
                MessageBody=message.serialize_body(),
                MessageAttributes={
                    key: {"DataType": "String", "StringValue": value}
                    for key, value in message.attributes.items()
                },
                MessageDeduplicationId=message.deduplication_id,
                MessageGroupId=message.group_id,
            )
        except (BotoCoreError, ClientError) as e:
            raise PublishError(
                f"Failed to send {message.action.value} for command "
                f"{message.command_id} to {self._queue_url}: {e}",
                command_id=message.command_id) from e

        logger.debug(f"Sent message to {self._queue_url} : {message.action.value}")
        return str(response.get("MessageId", ""))

    async def delete(self, receipt_handle: str) -> None:
        """Delete a received message."""
        try:
            await self._call(
                "delete_message",
                QueueUrl=self._queue_url,
                ReceiptHandle=receipt_handle,
            )
        except (BotoCoreError, ClientError) as e:
            raise QueueError(f"Failed to delete message from {self._queue_url}: {e}") from e
