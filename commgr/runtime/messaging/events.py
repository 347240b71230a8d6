"""Inbound control events accepted by the communication manager."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Event(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class HelpEntryIn(BaseModel):
    model_config = ConfigDict(extra="allow")

    cmd: Any = Field(default=None, validation_alias=AliasChoices("cmd", "command"))
    txt: Any = Field(default=None, validation_alias=AliasChoices("txt", "description"))


class RegisterHandlerEvent(_Event):
    type: Literal["register-msg-handler"]
    mskey: str | None = Field(default=None, validation_alias=AliasChoices("mskey", "key"))
    mstype: str | None = Field(
        default=None, validation_alias=AliasChoices("mstype", "messageType"),
    )
    mshelp: list[HelpEntryIn] | None = Field(
        default=None, validation_alias=AliasChoices("mshelp", "helpEntries"),
    )

    def help_dicts(self) -> list[dict[str, Any]] | None:
        if self.mshelp is None:
            return None
        return [{"cmd": h.cmd, "txt": h.txt} for h in self.mshelp]


class MessageEvent(_Event):
    type: Literal["message", "not-owner-message"]
    chan: str | None = Field(default=None, validation_alias=AliasChoices("chan", "channel"))
    ctx: Any = Field(default=None, validation_alias=AliasChoices("ctx", "context"))
    msg: str | None = Field(default=None, validation_alias=AliasChoices("msg", "body"))


class ReplyEvent(_Event):
    type: Literal["reply"]
    chan: str | None = Field(default=None, validation_alias=AliasChoices("chan", "channel"))
    ctx: Any = Field(default=None, validation_alias=AliasChoices("ctx", "context"))
    msg: str | None = Field(default=None, validation_alias=AliasChoices("msg", "text"))
    addl: Any = Field(default=None, validation_alias=AliasChoices("addl", "extra"))


class ReplyOnLastChannelEvent(_Event):
    type: Literal["reply-on-last-channel"]
    msg: str | None = Field(default=None, validation_alias=AliasChoices("msg", "text"))
    addl: Any = Field(default=None, validation_alias=AliasChoices("addl", "extra"))


EVENT_TYPES: dict[str, type[_Event]] = {
    "register-msg-handler": RegisterHandlerEvent,
    "message": MessageEvent,
    "not-owner-message": MessageEvent,
    "reply": ReplyEvent,
    "reply-on-last-channel": ReplyOnLastChannelEvent,
}
