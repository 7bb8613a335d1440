# api/v1/meals.py
from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, WebSocket, WebSocketDisconnect, status

from core.daily_meals import ViewState, build_ready
from core.day_window import local_day_window
from core.meal_mapping import MealMappingError, map_meal, meal_fields
from core.session import MealSessionCoordinator, NotSignedInError
from services.auth import InvalidSessionError, SessionProvider
from services.db import get_store
from services.meal_store import MealStore
from api.v1.schemas import MealIn, ViewOut
from api.v1.session import current_user

_LOG = logging.getLogger(__name__)

router = APIRouter()

WS_INVALID_SESSION = 4401


# ───────────────────────── read ─────────────────────────────
@router.get(
    "/today",
    response_model=ViewOut,
    status_code=status.HTTP_200_OK,
    summary="Today's meals and running totals",
)
async def get_today(
    user_id: str = Depends(current_user),
    store: MealStore = Depends(get_store),
) -> ViewOut:
    """
    One-shot read of the first snapshot for today's window.
    """
    stream = store.subscribe_meals(user_id, local_day_window())
    try:
        documents = await stream.__anext__()
    finally:
        await stream.aclose()
    try:
        ready = build_ready(map_meal(doc) for doc in documents)
    except MealMappingError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)) from exc
    return ViewOut.from_state(ready)


# ───────────────────────── write ────────────────────────────
@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Log a meal for now",
)
async def add_meal(
    body: MealIn,
    user_id: str = Depends(current_user),
    store: MealStore = Depends(get_store),
) -> dict[str, str]:
    await store.add_meal(
        user_id, meal_fields(body.name, body.calories, body.protein, body.carbs, body.fat)
    )
    return {"status": "accepted"}


@router.delete(
    "/{meal_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a meal by its ID",
)
async def delete_meal(
    meal_id: str,
    user_id: str = Depends(current_user),
    store: MealStore = Depends(get_store),
) -> Response:
    await store.delete_meal(user_id, meal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ───────────────────────── live view ────────────────────────
async def _dispatch(
    msg: Any,
    coordinator: MealSessionCoordinator,
    provider: SessionProvider,
) -> dict[str, Any] | None:
    if not isinstance(msg, dict):
        return {"type": "error", "detail": "expected a JSON object"}
    action = msg.get("action")
    if action == "add":
        # numbers may arrive as JSON numbers or as typed text
        await coordinator.add_meal(
            str(msg.get("name") or ""),
            *(str(msg.get(key, "")) for key in ("calories", "protein", "carbs", "fat")),
        )
    elif action == "delete":
        await coordinator.delete_meal(str(msg.get("meal_id", "")))
    elif action == "sign_out":
        provider.sign_out()
    elif action == "sign_in":
        return {"type": "session", **provider.sign_in_anonymously().model_dump()}
    else:
        return {"type": "error", "detail": f"unknown action {action!r}"}
    return None


@router.websocket("/today/stream")
async def stream_today(
    websocket: WebSocket,
    token: str | None = None,
    store: MealStore = Depends(get_store),
) -> None:
    await websocket.accept()
    provider = SessionProvider()
    if token:
        try:
            provider.sign_in_with_token(token)
        except InvalidSessionError as exc:
            _LOG.info("rejected live view: %s", exc)
            await websocket.close(code=WS_INVALID_SESSION)
            return
    else:
        session = provider.sign_in_anonymously()
        await websocket.send_json({"type": "session", **session.model_dump()})

    async def render(state: ViewState) -> None:
        view = ViewOut.from_state(state).model_dump(mode="json")
        await websocket.send_json({"type": "view", **view})

    coordinator = MealSessionCoordinator(store, provider.current_identity(), render)
    task = asyncio.create_task(coordinator.run())
    try:
        while True:
            try:
                msg = await websocket.receive_json()
            except (ValueError, KeyError) as exc:
                # undecodable text or a binary frame
                reply = {"type": "error", "detail": f"invalid JSON: {exc}"}
            else:
                try:
                    reply = await _dispatch(msg, coordinator, provider)
                except NotSignedInError as exc:
                    reply = {"type": "error", "detail": str(exc)}
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        _LOG.debug("live view disconnected")
    finally:
        task.cancel()
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            _LOG.warning("live view coordinator ended: %s", task.exception())
