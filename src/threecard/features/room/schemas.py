from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...ai.policy import Decision
from ...table.actions import ActionEvent, HandResult, ShowdownResult

__all__ = [
    "DecisionPayload",
    "ShowdownPayload",
    "HandResultPayload",
    "EventPayload",
]


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DecisionPayload(_APIModel):
    action: str
    amount: int = 0
    target: int | None = None
    tier: str | None = None
    layer: str | None = None

    @classmethod
    def from_decision(cls, decision: Decision) -> DecisionPayload:
        return cls(
            action=decision.action.value,
            amount=decision.amount,
            target=decision.target,
            tier=decision.tier.value if decision.tier else None,
            layer=decision.layer or None,
        )


class ShowdownPayload(_APIModel):
    challenger: int
    target: int
    winner: int
    loser: int
    cost: int

    @classmethod
    def from_result(cls, result: ShowdownResult) -> ShowdownPayload:
        return cls(
            challenger=result.challenger,
            target=result.target,
            winner=result.winner,
            loser=result.loser,
            cost=result.cost,
        )


class HandResultPayload(_APIModel):
    winner: int
    identity: str
    pot: int
    by_fold: bool = Field(alias="byFold")

    @classmethod
    def from_result(cls, result: HandResult) -> HandResultPayload:
        return cls(winner=result.winner, identity=result.identity, pot=result.pot, by_fold=result.by_fold)


class EventPayload(_APIModel):
    """Broadcast form of an applied action; never carries cards."""

    kind: str
    seat: int
    amount: int = 0
    chips_left: int = Field(0, alias="chipsLeft")
    blind: bool = False
    showdown: ShowdownPayload | None = None
    result: HandResultPayload | None = None

    @classmethod
    def from_event(cls, event: ActionEvent) -> EventPayload:
        return cls(
            kind=event.kind.value,
            seat=event.seat,
            amount=event.amount,
            chips_left=event.chips_left,
            blind=event.blind,
            showdown=ShowdownPayload.from_result(event.showdown) if event.showdown else None,
            result=HandResultPayload.from_result(event.hand_result) if event.hand_result else None,
        )
