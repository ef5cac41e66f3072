# OAuth2 callback router — completes the Fastmail login started by /start.
# Created: 2026-10-11
#
# The state nonce is consumed (read + deleted) before the code exchange, so a
# callback URL works once. Collaborators live on app.state, set by create_app.

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from telegram.error import TelegramError

from maskbot.errors import AlreadyExistsError, InternalError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth2"])

_PAGE_HTML = """<!DOCTYPE html>
<html><head><title>maskbot</title>
<style>
body {{ font-family: system-ui; max-width: 480px; margin: 40px auto; padding: 20px; }}
h2 {{ margin-bottom: 8px; }}
</style></head><body>
<h2>{title}</h2>
<p>{body}</p>
</body></html>"""


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(_PAGE_HTML.format(title=title, body=body), status_code=status_code)


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/oauth2/callback")
async def oauth2_callback(
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    error: str = Query(""),
):
    """Exchange the authorization code and store the user's token."""
    if error:
        logger.info("Authorization denied: %s", error)
        return _page("Login cancelled", "You can close this page and try /start again.", 400)
    if not code or not state:
        raise HTTPException(status_code=400, detail="code and state are required")

    store = request.app.state.store
    oauth = request.app.state.oauth
    notifier = request.app.state.notifier

    try:
        pending = store.consume_oauth2_state(state)
    except NotFoundError:
        logger.warning("OAuth2 callback with unknown state")
        raise HTTPException(status_code=400, detail="Unknown or already used state")
    except InternalError:
        raise HTTPException(status_code=500, detail="Storage error")

    try:
        credential = await oauth.exchange_code(code, pending.code_verifier)
    except UpstreamError as e:
        logger.warning("Code exchange for %s failed: %s", pending.telegram_id, e)
        raise HTTPException(status_code=502, detail="Fastmail rejected the authorization code")

    try:
        try:
            store.create_user(pending.telegram_id, request.app.state.default_language)
        except AlreadyExistsError:
            pass
        store.update_token(pending.telegram_id, credential.to_json())
        user = store.get_user(pending.telegram_id)
    except (InternalError, NotFoundError):
        raise HTTPException(status_code=500, detail="Storage error")

    logger.info("User %s logged in with Fastmail", pending.telegram_id)
    try:
        await notifier.send_message(user.telegram_id, user.language_code, "auth_success")
    except TelegramError as e:
        logger.warning("Could not notify %s about login: %s", user.telegram_id, e)

    return _page("You are logged in", "Go back to Telegram and send the bot a link.")
