"""Group message delivery over one or more chat bot channels."""

from __future__ import annotations

import logging

import aiohttp


class DeliveryError(Exception):
    """A channel could not deliver a message."""


class OneBotHttpChannel:
    """Sends group messages through a OneBot v11 HTTP API endpoint."""

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout_seconds: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session

    @property
    def name(self) -> str:
        return f"onebot:{self.base_url}"

    async def send_message(self, group_id: str, text: str) -> None:
        """Primary method: generic send_msg addressed to a group."""
        await self._call("send_msg", {"message_type": "group", "group_id": _group_id_value(group_id), "message": text})

    async def send_group_msg(self, group_id: str, text: str) -> None:
        """Fallback method: the group-only send_group_msg action."""
        await self._call("send_group_msg", {"group_id": _group_id_value(group_id), "message": text})

    async def _call(self, action: str, payload: dict) -> None:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.session is not None:
            await self._post(self.session, action, payload, headers)
            return
        async with aiohttp.ClientSession() as session:
            await self._post(session, action, payload, headers)

    async def _post(self, session: aiohttp.ClientSession, action: str, payload: dict, headers: dict) -> None:
        url = f"{self.base_url}/{action}"
        async with session.post(url, json=payload, headers=headers, timeout=self.timeout) as response:
            if response.status >= 400:
                raise DeliveryError(f"{action} returned HTTP {response.status}")
            reply = await response.json(content_type=None)
        if not isinstance(reply, dict):
            raise DeliveryError(f"{action} returned an unexpected reply: {reply!r}")
        # retcode 1 is OneBot's "accepted, delivered asynchronously".
        if reply.get("status") == "failed" or reply.get("retcode", 0) not in (0, 1):
            raise DeliveryError(f"{action} failed: {reply.get('wording') or reply.get('msg') or reply}")


class LogChannel:
    """Writes notifications to the log instead of a chat. Used for dry runs."""

    name = "log"

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    async def send_message(self, group_id: str, text: str) -> None:
        self.logger.info("Notification for group %s:\n%s", group_id, text)

    async def send_group_msg(self, group_id: str, text: str) -> None:
        await self.send_message(group_id, text)


class Notifier:
    """Tries each channel in order, primary method first, then its fallback."""

    def __init__(self, channels=(), logger: logging.Logger | None = None):
        self.channels = list(channels)
        self.logger = logger or logging.getLogger(__name__)

    async def send(self, group_id: str, text: str) -> bool:
        if not self.channels:
            self.logger.warning("Send failed: no delivery channel is configured.")
            return False

        for channel in self.channels:
            try:
                await channel.send_message(group_id, text)
                self.logger.info("Message sent to group %s via %s.", group_id, channel.name)
                return True
            except Exception as e:
                self.logger.error("Channel %s failed to send to group %s: %s", channel.name, group_id, e)

            try:
                await channel.send_group_msg(group_id, text)
                self.logger.info("Message sent to group %s via %s fallback.", group_id, channel.name)
                return True
            except Exception as e:
                self.logger.error("Fallback on %s also failed: %s", channel.name, e)

        self.logger.error("All channels failed to send to group %s.", group_id)
        return False


def _group_id_value(group_id: str):
    # OneBot implementations expect numeric group ids.
    return int(group_id) if str(group_id).isdigit() else group_id
