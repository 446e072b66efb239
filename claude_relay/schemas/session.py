from __future__ import annotations

from pydantic import BaseModel, Field

from claude_relay.session import Exchange, Session


class ExchangeView(BaseModel):
    index: int = Field(..., description="Ordinal assigned when the exchange was sent")
    user: str
    assistant: str
    created_at: float

    @classmethod
    def from_exchange(cls, exchange: Exchange) -> "ExchangeView":
        user, assistant = exchange.as_pair()
        return cls(
            index=exchange.index,
            user=user,
            assistant=assistant,
            created_at=exchange.created_at,
        )


class RestoredExchange(BaseModel):
    user: str
    assistant: str


class SessionStateResponse(BaseModel):
    session_key: str
    exchanges: list[ExchangeView] = Field(default_factory=list)
    checkpoints: int = 0
    can_undo: bool = False
    can_restore: bool = False
    restorable: list[RestoredExchange] = Field(
        default_factory=list, description="Exchanges a restore would bring back"
    )

    @classmethod
    def from_session(cls, session: Session) -> "SessionStateResponse":
        return cls(
            session_key=session.key,
            exchanges=[ExchangeView.from_exchange(e) for e in session.log.exchanges],
            checkpoints=len(session.checkpoints),
            can_undo=session.can_undo(),
            can_restore=session.can_restore(),
            restorable=[
                RestoredExchange(user=user, assistant=assistant)
                for user, assistant in session.pending_restore()
            ],
        )


class RestoreResponse(BaseModel):
    session_key: str
    restored: list[RestoredExchange] = Field(default_factory=list)
    state: SessionStateResponse


__all__ = [
    "ExchangeView",
    "RestoreResponse",
    "RestoredExchange",
    "SessionStateResponse",
]
