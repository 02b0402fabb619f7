"""
Tests for the command domain model and queue actions.
"""

import uuid
from datetime import datetime

import pytest

from commands_service.core.domain.actions import InboundAction, OutboundAction
from commands_service.core.domain.commands import Command, CommandStatus, group_id_for


class TestCommandStatus:
    """Test cases for the status state machine."""

    def test_only_deleted_is_terminal(self) -> None:
        assert CommandStatus.DELETED.is_terminal
        assert not CommandStatus.IN_PROCESS.is_terminal
        assert not CommandStatus.VALIDATED.is_terminal
        assert not CommandStatus.CANCELED.is_terminal

    def test_validate_and_cancel_leave_in_process(self) -> None:
        assert CommandStatus.IN_PROCESS.can_transition_to(CommandStatus.VALIDATED)
        assert CommandStatus.IN_PROCESS.can_transition_to(CommandStatus.CANCELED)

    def test_repeated_update_is_allowed(self) -> None:
        assert CommandStatus.VALIDATED.can_transition_to(CommandStatus.VALIDATED)
        assert CommandStatus.CANCELED.can_transition_to(CommandStatus.CANCELED)

    def test_validated_and_canceled_are_exclusive(self) -> None:
        assert not CommandStatus.VALIDATED.can_transition_to(CommandStatus.CANCELED)
        assert not CommandStatus.CANCELED.can_transition_to(CommandStatus.VALIDATED)

    def test_nothing_returns_to_in_process(self) -> None:
        for status in CommandStatus:
            assert not status.can_transition_to(CommandStatus.IN_PROCESS)

    def test_delete_allowed_from_any_status(self) -> None:
        for status in CommandStatus:
            assert status.can_transition_to(CommandStatus.DELETED)


class TestCommand:
    """Test cases for the Command record."""

    def test_new_command(self) -> None:
        command = Command.new([{"sku": "A1", "qty": 2}])

        assert uuid.UUID(command.id)
        assert command.status is CommandStatus.IN_PROCESS
        assert command.items == [{"sku": "A1", "qty": 2}]
        assert datetime.fromisoformat(command.date)

    def test_new_commands_get_distinct_ids(self) -> None:
        assert Command.new(None).id != Command.new(None).id

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            Command(id="")

    def test_status_string_is_coerced(self) -> None:
        command = Command(id="c1", status="VALIDATED")  # type: ignore[arg-type]
        assert command.status is CommandStatus.VALIDATED

    def test_to_dict(self) -> None:
        command = Command(id="c1", items={"a": 1}, date="2024-01-01T00:00:00+00:00")

        assert command.to_dict() == {
            "id": "c1",
            "date": "2024-01-01T00:00:00+00:00",
            "items": {"a": 1},
            "status": "IN_PROCESS",
        }

    def test_from_dict_round_trip(self) -> None:
        command = Command(id="c1", items=[1, 2], status=CommandStatus.CANCELED)
        assert Command.from_dict(command.to_dict()) == command

    def test_from_dict_defaults(self) -> None:
        command = Command.from_dict({"id": "c1"})

        assert command.status is CommandStatus.IN_PROCESS
        assert command.items is None
        assert command.date

    def test_from_dict_without_id(self) -> None:
        with pytest.raises(ValueError):
            Command.from_dict({"items": []})

    def test_from_dict_unknown_status(self) -> None:
        with pytest.raises(ValueError):
            Command.from_dict({"id": "c1", "status": "ARCHIVED"})

    def test_with_status(self) -> None:
        command = Command(id="c1", items=[1])
        validated = command.with_status(CommandStatus.VALIDATED)

        assert validated.status is CommandStatus.VALIDATED
        assert validated.items == command.items
        assert validated.date == command.date
        assert command.status is CommandStatus.IN_PROCESS

    def test_with_status_rejects_forbidden_transition(self) -> None:
        command = Command(id="c1", status=CommandStatus.VALIDATED)

        with pytest.raises(ValueError):
            command.with_status(CommandStatus.CANCELED)

    def test_group_id(self) -> None:
        assert Command(id="c1").group_id == "Commands-c1"
        assert group_id_for("abc") == "Commands-abc"


class TestActions:
    """Test cases for inbound and outbound queue actions."""

    @pytest.mark.parametrize("value", ["CREATE", "VALIDATE", "CANCEL", "DELETE"])
    def test_parse_known_action(self, value: str) -> None:
        assert InboundAction.parse(value) is InboundAction(value)

    @pytest.mark.parametrize("value", [None, "", "PURGE", "validate"])
    def test_parse_unknown_action(self, value: str) -> None:
        assert InboundAction.parse(value) is None

    def test_every_inbound_action_has_a_reply(self) -> None:
        assert InboundAction.CREATE.reply is OutboundAction.CREATED
        assert InboundAction.VALIDATE.reply is OutboundAction.VALIDATED
        assert InboundAction.CANCEL.reply is OutboundAction.CANCELED
        assert InboundAction.DELETE.reply is OutboundAction.DELETED
