"""
Config payloads and the settings snapshot exchanged with the runtime.

CharacterSettings is carried, never interpreted: unknown keys are kept so a
record received from the runtime goes back out unchanged.
"""

from typing import Literal, Optional

from pydantic import ConfigDict, Field

from cocoro_ai.models.envelope import WireModel


class CharacterSettings(WireModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", protected_namespaces=())

    is_read_only: bool = Field(False, alias="isReadOnly")
    model_name: str = Field("", alias="modelName")
    vrm_file_path: str = Field("", alias="vrmFilePath")
    is_use_llm: bool = Field(False, alias="isUseLLM")
    api_key: str = Field("", alias="apiKey")
    llm_model: str = Field("", alias="llmModel")
    system_prompt: str = Field("", alias="systemPrompt")
    is_use_nijivoice: bool = Field(False, alias="isUseNijivoice")
    nijivoice_api_key: str = Field("", alias="nijivoiceApiKey")
    nijivoice_actor_id: str = Field("", alias="nijivoiceActorId")


class ConfigSettings(WireModel):
    # current_character_index must index character_list when it is non-empty;
    # the runtime and the settings store own that contract.
    is_topmost: bool = Field(False, alias="isTopmost")
    is_escape_cursor: bool = Field(False, alias="isEscapeCursor")
    is_auto_move: bool = Field(False, alias="isAutoMove")
    window_size: float = Field(0.0, alias="windowSize")
    current_character_index: int = Field(0, alias="currentCharacterIndex")
    character_list: list[CharacterSettings] = Field(default_factory=list, alias="characterList")


class ConfigRequestPayload(WireModel):
    action: Literal["get"] = "get"


class ConfigUpdatePayload(WireModel):
    action: Literal["update"] = "update"
    settings: ConfigSettings = Field(default_factory=ConfigSettings)


class ConfigMessagePayload(WireModel):
    """Legacy single key/value change, kept for older runtimes."""

    setting_key: str = Field("", alias="settingKey")
    value: str = ""


class ConfigResponsePayload(WireModel):
    status: str = ""
    message: str = ""
    settings: Optional[ConfigSettings] = None

    @property
    def ok(self) -> bool:
        return self.status.lower() == "ok"
