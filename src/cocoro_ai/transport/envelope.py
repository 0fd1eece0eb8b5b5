"""
Envelope construction and parsing.

Decoding is two-phase: the envelope shell first, then the payload once the
type tag has selected the concrete model.
"""

import json
from datetime import datetime
from typing import Any, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from cocoro_ai.errors import ProtocolError
from cocoro_ai.models.envelope import Envelope, MessageType

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def build_envelope(message_type: Union[MessageType, str], payload: Any) -> dict[str, Any]:
    """Build an outbound envelope as a dict ready for JSON encoding."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True, mode="json")
    tag = message_type.value if isinstance(message_type, MessageType) else str(message_type)
    envelope = Envelope(
        type=tag,
        timestamp=datetime.now().astimezone().isoformat(),
        payload=payload,
    )
    return envelope.model_dump()


def encode_envelope(message_type: Union[MessageType, str], payload: Any) -> str:
    # Non-ASCII text (the runtime chats in Japanese) goes out unescaped.
    return json.dumps(build_envelope(message_type, payload), ensure_ascii=False)


def parse_envelope(raw: Union[str, bytes]) -> Envelope:
    """Parse the envelope shell. The payload is left as decoded JSON."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid JSON message: {e}")
    if not isinstance(data, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return Envelope.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(f"Invalid envelope: {e.error_count()} error(s)", details={"errors": e.errors()})


def parse_payload(envelope: Envelope, model: Type[PayloadT]) -> PayloadT:
    """Parse the envelope payload into `model`."""
    try:
        return model.model_validate(envelope.payload)
    except ValidationError as e:
        raise ProtocolError(
            f"Invalid {envelope.type} payload: {e.error_count()} error(s)",
            details={"errors": e.errors()},
        )
