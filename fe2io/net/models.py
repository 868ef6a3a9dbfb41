"""Pydantic validation models for server frames.

The validation layer is kept apart from the event dataclasses in
``protocol.py``: a frame is validated here first, and only a frame that
passes becomes a ``Death`` / ``MusicCue`` / ... event.

- unknown fields are ignored (the server adds fields freely)
- camelCase and snake_case spellings are both accepted
- validation failure raises ``pydantic.ValidationError``
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MsgType(str, Enum):
    GAME_STATUS = "gameStatus"
    BGM = "bgm"


class StatusType(str, Enum):
    DIED = "died"
    LEFT = "left"
    ROUND_START = "roundStart"
    ROUND_END = "roundEnd"


class ServerMsgModel(BaseModel):
    """Outer structure shared by every server frame."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    msg_type: str = Field(
        min_length=1,
        validation_alias=AliasChoices("msgType", "msg_type", "type"),
    )


class GameStatusData(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    status_type: StatusType = Field(validation_alias=AliasChoices("statusType", "status_type"))


class BgmData(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    audio_url: str = Field(min_length=1, validation_alias=AliasChoices("audioUrl", "audio_url"))


# Message types with a payload model; other types only pass the outer check
DATA_VALIDATORS: dict[str, type[BaseModel]] = {
    MsgType.GAME_STATUS.value: GameStatusData,
    MsgType.BGM.value: BgmData,
}


def validate_server_message(raw_json: str | bytes) -> tuple[ServerMsgModel, BaseModel | None]:
    """Validate one raw frame.

    Returns the outer model and the payload model, or ``None`` as the payload
    when the message type has no payload model.

    Raises:
        pydantic.ValidationError: the frame is not valid JSON, not an object,
            or misses a required field
    """
    msg = ServerMsgModel.model_validate_json(raw_json)
    validator_cls = DATA_VALIDATORS.get(msg.msg_type)
    if validator_cls is None:
        return msg, None
    return msg, validator_cls.model_validate_json(raw_json)
