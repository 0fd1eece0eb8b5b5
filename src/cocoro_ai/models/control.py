"""
Control, status and system payloads.
"""

from pydantic import Field

from cocoro_ai.models.envelope import WireModel


class ControlMessagePayload(WireModel):
    command: str
    reason: str = ""


class StatusMessagePayload(WireModel):
    current_cpu: int = Field(0, alias="currentCpu")
    status: str = ""


class SystemMessagePayload(WireModel):
    """Reserved: the runtime may push these, nothing consumes them yet."""

    level: str = "info"
    message: str = ""
