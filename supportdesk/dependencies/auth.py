from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Request

from supportdesk.core.config import Settings, get_settings


async def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if isinstance(settings, Settings):
        return settings
    return get_settings()


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def verify_admin_password(password: str | None, settings: Settings) -> bool:
    """Compare a submitted password against the shared staff secret.

    This is a placeholder mechanism: there is no server session and the
    caller keeps its own "authenticated" flag once this returns ``True``.
    """

    if not password:
        return False
    return hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
