"""
portfolio_runtime.models.user

Owner profile shown in the hero and footer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portfolio_runtime.core.events import EventBus, EventKind, UserLoaded
from portfolio_runtime.core.lifecycle import InitContext, LifecycleModule
from portfolio_runtime.data.portfolio import USER_PROFILE
from portfolio_runtime.errors import InitializationError


class ProfileLink(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    url: str


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    title: str = ""
    tagline: str = ""
    location: str | None = None
    email: str | None = None
    links: tuple[ProfileLink, ...] = ()


FALLBACK_USER = UserProfile(name="Portfolio", title="Content temporarily unavailable")


class UserModel(LifecycleModule):
    name = "user"

    def __init__(self, *, bus: EventBus, source: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._bus = bus
        self._source = source if source is not None else USER_PROFILE
        self._profile: UserProfile | None = None

    @property
    def profile(self) -> UserProfile | None:
        return self._profile

    async def on_initialize(self, ctx: InitContext | None) -> UserProfile:
        try:
            self._profile = UserProfile.model_validate(dict(self._source))
        except ValidationError as exc:
            raise InitializationError(self.name, f"invalid user profile: {exc}") from exc
        self._bus.publish(EventKind.USER_LOADED, UserLoaded(user_name=self._profile.name))
        return self._profile

    async def on_destroy(self) -> None:
        self._profile = None
