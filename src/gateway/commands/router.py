"""Routing of inbound command frames to the watcher."""

import asyncio
import contextlib
import json
from typing import Any

import structlog

from gateway.commands.schemas import (
    ADD_ITEM,
    AddItemCommand,
    Command,
    CommandResponse,
    GetStatsCommand,
    RemoveItemCommand,
    command_adapter,
    echo_action,
    restore_numeric_fields,
)
from gateway.connections import Connection
from gateway.watcher import WatcherFacade

logger = structlog.get_logger()


class CommandRouter:
    """Decodes command frames, calls the watcher and replies to the sender.

    Every frame gets exactly one response on the connection it came
    from. Failures of any kind become ``success: 0`` responses and never
    reach the transport.

    By default ``addItem`` is acknowledged before the watcher has
    accepted the item. A later rejection is reported to the sender as a
    follow-up ``addItem`` failure carrying the error.
    """

    def __init__(
        self,
        watcher: WatcherFacade,
        numeric_fields: list[str],
        await_submission: bool = False,
    ) -> None:
        """Initialize router.

        Args:
            watcher: Watcher that commands are forwarded to.
            numeric_fields: Item fields restored to decimals before submission.
            await_submission: Hold addItem responses until submission completes.
        """
        self._watcher = watcher
        self._numeric_fields = list(numeric_fields)
        self._await_submission = await_submission
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_submissions(self) -> int:
        """Number of item submissions still in flight."""
        return len(self._pending)

    async def handle_frame(
        self,
        connection: Connection,
        text: str | None,
    ) -> CommandResponse:
        """Process one inbound frame and queue the response.

        Args:
            connection: Connection the frame arrived on.
            text: Frame payload, or None for a binary frame.

        Returns:
            The response that was queued for the connection.
        """
        response = await self._route(connection, text)
        payload = self._serialize(response)
        logger.info(
            "command_response",
            client=connection.remote_address,
            payload=payload,
        )
        connection.send(payload)
        return response

    async def _route(self, connection: Connection, text: str | None) -> CommandResponse:
        if text is None:
            logger.warning("binary_frame_rejected", client=connection.remote_address)
            return CommandResponse(action="", success=0)

        logger.info("command_received", client=connection.remote_address, size=len(text))

        action = ""
        try:
            data = json.loads(text)
            action = echo_action(data)
            command: Command = command_adapter.validate_python(data)
            logger.info(
                "command_dispatched",
                client=connection.remote_address,
                action=command.action,
            )
            return await self._dispatch(connection, command)
        except Exception as e:
            logger.warning(
                "command_failed",
                client=connection.remote_address,
                action=action,
                error_type=type(e).__name__,
                error=str(e),
            )
            return CommandResponse(action=action, success=0)

    async def _dispatch(self, connection: Connection, command: Command) -> CommandResponse:
        if isinstance(command, AddItemCommand):
            descriptor = restore_numeric_fields(command.params.item, self._numeric_fields)
            if self._await_submission:
                item_id = await self._watcher.submit_item(descriptor)
                return CommandResponse(
                    action=command.action,
                    success=1,
                    result={"itemId": item_id},
                )
            task = asyncio.create_task(self._submit(connection, descriptor))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return CommandResponse(action=command.action, success=1)

        if isinstance(command, RemoveItemCommand):
            self._watcher.remove_item(command.params.item_id)
            return CommandResponse(action=command.action, success=1)

        if isinstance(command, GetStatsCommand):
            return CommandResponse(
                action=command.action,
                success=1,
                result=self._watcher.get_stats(),
            )

        raise ValueError(f"Unhandled command: {command!r}")

    async def _submit(self, connection: Connection, descriptor: dict[str, Any]) -> None:
        """Submit an item in the background and report a rejection."""
        try:
            item_id = await self._watcher.submit_item(descriptor)
        except Exception as e:
            logger.warning(
                "item_submission_failed",
                client=connection.remote_address,
                error=str(e),
            )
            followup = CommandResponse(
                action=ADD_ITEM,
                success=0,
                result={"error": str(e)},
            )
            connection.send(self._serialize(followup))
            return

        logger.info("item_submitted", client=connection.remote_address, item_id=item_id)

    @staticmethod
    def _serialize(response: CommandResponse) -> str:
        try:
            return response.to_json()
        except Exception as e:
            logger.error("response_serialization_failed", action=response.action, error=str(e))
            return CommandResponse(action=response.action, success=0).to_json()

    async def shutdown(self) -> None:
        """Cancel submissions that are still in flight."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if pending:
            logger.info("router_submissions_cancelled", count=len(pending))
