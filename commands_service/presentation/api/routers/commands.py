"""
Command record API router.

Every write goes through the lifecycle engine, so an HTTP-triggered change
is stored and announced to the orchestrator exactly like a queue-triggered
one. Errors are not handled here; they reach the error middleware, which
answers with a generic 500.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from ....core.domain.commands import Command
from ....core.services.lifecycle_engine import CommandLifecycleEngine
from ..dependencies import get_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commands")


class CreateCommandRequest(BaseModel):
    """Command creation request model."""
    items: Any = Field(default=None, description="Opaque command payload")


def _resource_location(request: Request, command_id: str) -> str:
    base = str(request.url.replace(query=None, fragment=None)).rstrip("/")
    return f"{base}/{command_id}"


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_command(
    request: Request,
    response: Response,
    body: Optional[CreateCommandRequest] = None,
    engine: CommandLifecycleEngine = Depends(get_engine)
) -> Dict[str, Any]:
    """
    Create a command in ``IN_PROCESS`` status and announce it.

    Returns the stored record with a ``Location`` header pointing at it.
    """
    command = Command.new(body.items if body is not None else None)
    await engine.create(command)

    response.headers["Location"] = _resource_location(request, command.id)
    return command.to_dict()


@router.delete("/{command_id}")
async def delete_command(
    command_id: str,
    engine: CommandLifecycleEngine = Depends(get_engine)
) -> Response:
    """Delete a command and announce it. Unknown ids are not an error."""
    await engine.delete(command_id)
    return Response(status_code=status.HTTP_200_OK)


@router.get("")
async def list_commands(
    engine: CommandLifecycleEngine = Depends(get_engine)
) -> List[Dict[str, Any]]:
    """List every stored command."""
    commands = await engine.list_commands()
    return [command.to_dict() for command in commands]
