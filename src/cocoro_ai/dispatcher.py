"""
Protocol dispatcher — turns raw inbound messages into client events.

    chat   -> chat_reply       {text}
    config -> config_response  {status, message, settings}
    status -> status_update    {cpu, label}
    system -> logged only
    other  -> ignored

Messages without a payload are ignored.

A message that fails to decode yields an `error` event instead of raising,
so one bad message never takes down the receive loop.
"""

import logging
from typing import Optional, Union

from cocoro_ai.errors import ProtocolError
from cocoro_ai.models.chat import ChatResponsePayload
from cocoro_ai.models.config import ConfigResponsePayload
from cocoro_ai.models.control import StatusMessagePayload, SystemMessagePayload
from cocoro_ai.models.envelope import Envelope, MessageType
from cocoro_ai.models.events import ClientEvent, CompanionEvent
from cocoro_ai.transport.envelope import parse_envelope, parse_payload

logger = logging.getLogger(__name__)

SYSTEM_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ProtocolDispatcher:
    def dispatch(self, raw: Union[str, bytes]) -> Optional[CompanionEvent]:
        try:
            envelope = parse_envelope(raw)
        except ProtocolError as e:
            logger.warning("Dropping malformed message: %s", e)
            return CompanionEvent(ClientEvent.ERROR, {"message": f"Message parse error: {e}"})

        try:
            return self._dispatch_envelope(envelope)
        except ProtocolError as e:
            logger.warning("Dropping %s message: %s", envelope.type, e)
            return CompanionEvent(ClientEvent.ERROR, {"message": f"Message parse error: {e}"})

    def _dispatch_envelope(self, envelope: Envelope) -> Optional[CompanionEvent]:
        if envelope.payload is None:
            logger.debug("Ignoring %r message without payload", envelope.type)
            return None

        if envelope.type == MessageType.CHAT.value:
            chat = parse_payload(envelope, ChatResponsePayload)
            return CompanionEvent(ClientEvent.CHAT_REPLY, {"text": chat.response})

        if envelope.type == MessageType.CONFIG.value:
            config = parse_payload(envelope, ConfigResponsePayload)
            return CompanionEvent(ClientEvent.CONFIG_RESPONSE, {
                "status": config.status,
                "message": config.message,
                "settings": config.settings,
            })

        if envelope.type == MessageType.STATUS.value:
            status = parse_payload(envelope, StatusMessagePayload)
            return CompanionEvent(ClientEvent.STATUS_UPDATE, {
                "cpu": status.current_cpu,
                "label": status.status,
            })

        if envelope.type == MessageType.SYSTEM.value:
            system = parse_payload(envelope, SystemMessagePayload)
            level = SYSTEM_LOG_LEVELS.get(system.level.lower(), logging.INFO)
            logger.log(level, "Runtime: %s", system.message)
            return None

        logger.debug("Ignoring message of unknown type %r", envelope.type)
        return None
