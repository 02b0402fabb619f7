"""
DynamoDB command store.

Records are stored one item per command, keyed by ``id``. Status updates
are conditional writes so that a record is never resurrected by an update
arriving after its deletion, and never moved along a forbidden transition.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from ...core.domain.commands import Command, CommandStatus
from ...core.exceptions import CommandNotFoundError, InvalidTransitionError, StoreError
from ...core.interfaces.storage import ICommandStore
from ..clients.base import AWSClient
from ..config.models import AWSConfig

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def to_dynamo_item(data: Dict[str, Any]) -> Dict[str, Any]:
    """Serialize a plain dict to DynamoDB attribute values (floats become Decimals)."""
    normalized = json.loads(json.dumps(data, default=str), parse_float=Decimal)
    return {key: _serializer.serialize(value) for key, value in normalized.items()}


def from_dynamo_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Deserialize DynamoDB attribute values back to plain JSON types."""
    return {key: _plain(_deserializer.deserialize(value)) for key, value in item.items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, set):
        return sorted(_plain(v) for v in value)
    return value


def _error_code(error: Exception) -> Optional[str]:
    if not isinstance(error, ClientError):
        return None
    return error.response.get("Error", {}).get("Code")


class DynamoDBCommandStore(AWSClient, ICommandStore):
    """Command store backed by a DynamoDB table."""

    service_name = "dynamodb"

    def __init__(self,
                 config: AWSConfig,
                 table_name: str,
                 client: Optional[Any] = None) -> None:
        super().__init__(config, client=client, name="DynamoDBCommandStore")
        self._table_name = table_name

    @property
    def table_name(self) -> str:
        return self._table_name

    async def check_health(self) -> Dict[str, Any]:
        health = await super().check_health()
        health['details']['table_name'] = self._table_name
        return health

    async def put(self, command: Command) -> None:
        """Insert or overwrite a command record."""
        try:
            await self._call(
                "put_item",
                TableName=self._table_name,
                Item=to_dynamo_item(command.to_dict()),
            )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Failed to put command {command.id}: {e}",
                             command_id=command.id) from e

        logger.debug(f"Stored command {command.id} ({command.status.value})")

    async def update_status(self, command_id: str, status: CommandStatus) -> None:
        """Conditionally set the status of an existing record."""
        sources = sorted(source.value for source in CommandStatus.allowed_sources(status))
        if not sources:
            raise InvalidTransitionError(
                f"No status may move to {status.value} through an update",
                command_id=command_id)

        placeholders = {f":from{i}": {"S": value} for i, value in enumerate(sources)}

        try:
            await self._call(
                "update_item",
                TableName=self._table_name,
                Key={"id": {"S": command_id}},
                UpdateExpression="SET #status = :status",
                ConditionExpression=(
                    f"attribute_exists(#id) AND #status IN ({', '.join(placeholders)})"),
                ExpressionAttributeNames={"#id": "id", "#status": "status"},
                ExpressionAttributeValues={":status": {"S": status.value}, **placeholders},
                ReturnValuesOnConditionCheckFailure="ALL_OLD",
            )
        except ClientError as e:
            if _error_code(e) != "ConditionalCheckFailedException":
                raise StoreError(f"Failed to update command {command_id}: {e}",
                                 command_id=command_id) from e

            old_item = e.response.get("Item")
            if not old_item:
                raise CommandNotFoundError(
                    f"Command {command_id} does not exist", command_id=command_id) from e

            current = from_dynamo_item(old_item).get("status")
            raise InvalidTransitionError(
                f"Command {command_id} is {current}, cannot move to {status.value}",
                command_id=command_id,
                current_status=current) from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to update command {command_id}: {e}",
                             command_id=command_id) from e

        logger.debug(f"Updated command {command_id} to {status.value}")

    async def delete(self, command_id: str) -> None:
        """Delete a record; a missing record is not an error."""
        try:
            await self._call(
                "delete_item",
                TableName=self._table_name,
                Key={"id": {"S": command_id}},
            )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Failed to delete command {command_id}: {e}",
                             command_id=command_id) from e

        logger.debug(f"Deleted command {command_id}")

    async def scan(self) -> List[Command]:
        """Scan the whole table, following pagination."""
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"TableName": self._table_name}

        try:
            while True:
                response = await self._call("scan", **kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise StoreError(f"Failed to scan {self._table_name}: {e}") from e

        commands = []
        for item in items:
            try:
                commands.append(Command.from_dict(from_dynamo_item(item)))
            except ValueError as e:
                logger.warning(f"Skipping unreadable record in {self._table_name}: {e}")
        return commands
