"""
Profile editor: a signed-in member edits their own directory entry.

The stored profile only changes after the server confirms a save; until
then edits live in ``form``. A failed save keeps its ``error`` until the
next attempt, while the success confirmation clears itself after
``confirmation_seconds``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Optional

import structlog

from membermap_shared.schemas.profiles import (
    EDITABLE_PROFILE_FIELDS,
    ProfileEnvelope,
    ProfileResponse,
)

from .config import ClientConfig
from .errors import AuthenticationRequired, GatewayError
from .gateway import DataGateway

log = structlog.get_logger()

LOGIN_PATH = "/login"
SAVED_MESSAGE = "Profile saved"


class ProfileEditor:
    """View state for the profile screen."""

    def __init__(
        self,
        gateway: DataGateway,
        config: ClientConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.confirmation_seconds = config.views.confirmation_seconds
        self._clock = clock

        self.profile: Optional[ProfileResponse] = None
        self.form: dict[str, Any] = {}
        self.message: Optional[str] = None
        self.error: Optional[str] = None
        self.loading = False
        self.saving = False
        self.redirect_to: Optional[str] = None

        self._confirmation: Optional[str] = None
        self._confirmed_at: Optional[float] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def has_profile(self) -> bool:
        return self.profile is not None

    @property
    def confirmation(self) -> Optional[str]:
        if self._confirmation is not None and self._confirmed_at is not None:
            if self._clock() - self._confirmed_at >= self.confirmation_seconds:
                self._clear_confirmation()
        return self._confirmation

    def _clear_confirmation(self) -> None:
        self._confirmation = None
        self._confirmed_at = None
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def _confirm(self, text: str) -> None:
        self._clear_confirmation()
        self._confirmation = text
        self._confirmed_at = self._clock()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._clear_handle = loop.call_later(self.confirmation_seconds, self._clear_confirmation)

    def _show(self, envelope: ProfileEnvelope) -> None:
        self.profile = envelope.profile
        if envelope.profile is None:
            self.form = {}
            self.message = envelope.message
        else:
            self.form = envelope.profile.model_dump(include=set(EDITABLE_PROFILE_FIELDS))
            self.message = None

    def _fail(self, exc: GatewayError, event: str) -> None:
        if isinstance(exc, AuthenticationRequired):
            self.redirect_to = LOGIN_PATH
        self.error = exc.message
        log.warning(event, error=exc.message, status=exc.status)

    async def load(self) -> None:
        self.loading = True
        self.error = None
        try:
            envelope = ProfileEnvelope.model_validate(await self.gateway.get("profile"))
        except GatewayError as exc:
            self._fail(exc, "profile.load_failed")
            return
        finally:
            self.loading = False
        self._show(envelope)

    def update_form(self, **fields: Any) -> None:
        unknown = set(fields) - set(EDITABLE_PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        self.form.update(fields)

    async def save(self) -> bool:
        """Send the form. Returns ``True`` once the server has stored it."""
        self.error = None
        self._clear_confirmation()
        if self.profile is None:
            self.error = self.message or "No profile to save"
            return False

        patch = {k: v for k, v in self.form.items() if k in EDITABLE_PROFILE_FIELDS}
        self.saving = True
        try:
            envelope = ProfileEnvelope.model_validate(await self.gateway.patch("profile", patch))
        except GatewayError as exc:
            self._fail(exc, "profile.save_failed")
            return False
        finally:
            self.saving = False

        self._show(envelope)
        self._confirm(SAVED_MESSAGE)
        log.info("profile.saved", member_id=str(self.profile.id) if self.profile else None)
        return True

    async def claim(self) -> bool:
        """Link the admin-entered profile carrying this account's email."""
        self.error = None
        try:
            envelope = ProfileEnvelope.model_validate(await self.gateway.post("profile/claim"))
        except GatewayError as exc:
            self._fail(exc, "profile.claim_failed")
            return False
        self._show(envelope)
        return True
