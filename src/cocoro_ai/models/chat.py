"""
Chat payloads — outbound user turn, inbound runtime reply.
"""

from pydantic import Field

from cocoro_ai.models.envelope import WireModel


class ChatMessagePayload(WireModel):
    user_id: str = Field("", alias="userId")
    session_id: str = Field("", alias="sessionId")
    message: str = ""


class ChatResponsePayload(WireModel):
    response: str
