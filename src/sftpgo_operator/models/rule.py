"""SFTPGo event rule models."""

from typing import Any

from pydantic import Field

from sftpgo_operator.constants import RULE_TRIGGER_IDP_LOGIN
from sftpgo_operator.models.common import ResourceModel, SFTPGoModel, optional


class Schedule(SFTPGoModel):
    """Cron-like schedule, evaluated in UTC."""

    minute: str = "0"
    hour: str
    day_of_week: str
    day_of_month: str
    month: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Schedule":
        return cls(
            minute=data.get("minute") or "0",
            hour=data.get("hour", ""),
            day_of_week=data.get("day_of_week", ""),
            day_of_month=data.get("day_of_month", ""),
            month=data.get("month", ""),
        )


class ConditionPattern(SFTPGoModel):
    pattern: str
    inverse_match: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        return {"pattern": self.pattern, "inverse_match": bool(self.inverse_match)}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "ConditionPattern":
        return cls(
            pattern=data.get("pattern", ""),
            inverse_match=optional(data.get("inverse_match")),
        )


_PATTERN_OPTIONS = ("names", "group_names", "role_names", "fs_paths")


class ConditionOptions(SFTPGoModel):
    names: list[ConditionPattern] | None = None
    group_names: list[ConditionPattern] | None = None
    role_names: list[ConditionPattern] | None = None
    fs_paths: list[ConditionPattern] | None = None
    protocols: list[str] | None = None
    provider_objects: list[str] | None = None
    min_size: int | None = Field(None, ge=0)
    max_size: int | None = Field(None, ge=0)
    event_statuses: list[int] | None = None
    concurrent_execution: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            name: [p.to_wire() for p in getattr(self, name) or []]
            for name in _PATTERN_OPTIONS
        }
        wire.update(
            protocols=self.protocols or [],
            provider_objects=self.provider_objects or [],
            min_size=self.min_size or 0,
            max_size=self.max_size or 0,
            event_statuses=self.event_statuses or [],
            concurrent_execution=bool(self.concurrent_execution),
        )
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None) -> "ConditionOptions":
        data = data or {}
        values: dict[str, Any] = {
            name: optional([ConditionPattern.from_wire(p) for p in data.get(name) or []])
            for name in _PATTERN_OPTIONS
        }
        for name in (
            "protocols",
            "provider_objects",
            "min_size",
            "max_size",
            "event_statuses",
            "concurrent_execution",
        ):
            values[name] = optional(data.get(name))
        return cls(**values)


class RuleConditions(SFTPGoModel):
    fs_events: list[str] | None = None
    provider_events: list[str] | None = None
    schedules: list[Schedule] | None = None
    idp_login_event: int | None = Field(
        None, ge=0, le=2, description="0 any, 1 user login, 2 admin login"
    )
    options: ConditionOptions = Field(default_factory=ConditionOptions)

    def to_wire(self) -> dict[str, Any]:
        return {
            "fs_events": self.fs_events or [],
            "provider_events": self.provider_events or [],
            "schedules": [s.to_wire() for s in self.schedules or []],
            "idp_login_event": self.idp_login_event or 0,
            "options": self.options.to_wire(),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None, trigger: int) -> "RuleConditions":
        data = data or {}
        idp_login_event = data.get("idp_login_event", 0)
        # for identity provider logins "any" (0) is a meaningful value
        if trigger != RULE_TRIGGER_IDP_LOGIN:
            idp_login_event = optional(idp_login_event)
        return cls(
            fs_events=optional(data.get("fs_events")),
            provider_events=optional(data.get("provider_events")),
            schedules=optional([Schedule.from_wire(s) for s in data.get("schedules") or []]),
            idp_login_event=idp_login_event,
            options=ConditionOptions.from_wire(data.get("options")),
        )


class RuleAction(SFTPGoModel):
    """Reference to an event action executed by a rule."""

    name: str = Field(..., description="Name of an existing event action")
    is_failure_action: bool | None = None
    stop_on_failure: bool | None = None
    execute_sync: bool | None = None

    def to_wire(self, order: int) -> dict[str, Any]:
        return {
            "name": self.name,
            "order": order,
            "relation_options": {
                "is_failure_action": bool(self.is_failure_action),
                "stop_on_failure": bool(self.stop_on_failure),
                "execute_sync": bool(self.execute_sync),
            },
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "RuleAction":
        options = data.get("relation_options") or {}
        return cls(
            name=data["name"],
            is_failure_action=optional(options.get("is_failure_action")),
            stop_on_failure=optional(options.get("stop_on_failure")),
            execute_sync=optional(options.get("execute_sync")),
        )


class EventRule(ResourceModel):
    """SFTPGo event rule."""

    name: str = Field(..., min_length=1, description="Unique rule name")
    status: int = Field(1, ge=0, le=1, description="1 enabled, 0 disabled")
    description: str | None = None
    trigger: int = Field(
        ...,
        ge=1,
        le=7,
        description=(
            "1 filesystem event, 2 provider event, 3 schedule, 4 IP blocked, "
            "5 certificate renewal, 6 on demand, 7 identity provider login"
        ),
    )
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: list[RuleAction] = Field(..., min_length=1)

    created_at: int | None = None
    updated_at: int | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "description": self.description or "",
            "trigger": self.trigger,
            "conditions": self.conditions.to_wire(),
            # execution order follows the configured list
            "actions": [a.to_wire(idx + 1) for idx, a in enumerate(self.actions)],
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "EventRule":
        trigger = data.get("trigger", 0)
        actions = sorted(data.get("actions") or [], key=lambda a: a.get("order", 0))
        return cls(
            name=data["name"],
            status=data.get("status", 0),
            description=optional(data.get("description")),
            trigger=trigger,
            conditions=RuleConditions.from_wire(data.get("conditions"), trigger),
            actions=[RuleAction.from_wire(a) for a in actions],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
