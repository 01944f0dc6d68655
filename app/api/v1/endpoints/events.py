"""
Endpoint WebSocket de eventos en tiempo real.

Cada conexión se suscribe a una sala del broadcaster y recibe los eventos
publicados en ella como JSON: {"room", "event", "data"}.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.security import get_token_subject
from app.models.user import User
from app.schemas.leaderboard import LeaderboardPeriod
from app.services.broadcast_service import (
    Broadcaster,
    challenge_room,
    get_broadcaster,
    leaderboard_room,
    user_room,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ROOMS = {
    "user": user_room,
    "challenge": challenge_room,
    "leaderboard": leaderboard_room,
}


def _active_user_id(db: Session, token: Optional[str]) -> Optional[str]:
    if not token:
        return None

    try:
        user_id = get_token_subject(token)
    except JWTError:
        return None

    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()
    return user.id if user else None


def _can_join(user_id: Optional[str], room_type: str, room_id: str) -> bool:
    if user_id is None or room_type not in ROOMS:
        return False
    if room_type == "user":
        return room_id == user_id
    if room_type == "leaderboard":
        return room_id in LeaderboardPeriod.__members__
    return True


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


@router.websocket("/{room_type}/{room_id}")
async def room_events(
    websocket: WebSocket,
    room_type: str,
    room_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Recibir los eventos de una sala.

    Salas:
    - user/{id}: eventos de progreso del propio usuario
    - challenge/{id}: inscripciones en el reto
    - leaderboard/{DAILY|WEEKLY|MONTHLY|ALL_TIME}: cambios del ranking

    Requiere el access token en el query param token. Si no es válido o la
    sala no está permitida se cierra con 1008.
    """
    user_id = _active_user_id(db, token)
    # Liberar la conexión a la base mientras el socket sigue abierto
    db.rollback()

    if not _can_join(user_id, room_type, room_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def deliver(room: str, event: str, payload: Dict[str, Any]) -> None:
        # publish() corre en el threadpool de los endpoints síncronos
        loop.call_soon_threadsafe(queue.put_nowait, {"room": room, "event": event, "data": payload})

    room = ROOMS[room_type](room_id)
    broadcaster.subscribe(room, deliver)
    await websocket.accept()
    logger.info(f"WebSocket abierto: usuario {user_id}, sala {room}")

    sender = asyncio.create_task(_forward(websocket, queue))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket cerrado: usuario {user_id}, sala {room}")
    finally:
        sender.cancel()
        broadcaster.unsubscribe(room, deliver)
