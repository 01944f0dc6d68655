"""
Servicio de difusión en tiempo real.

Publica eventos en salas (user:<id>, challenge:<id>, leaderboard:<period>).
Las conexiones WebSocket de /api/v1/events se suscriben a las salas; la
publicación es fire-and-forget y nunca hace fallar la operación que la emite.
"""
import logging
from collections import defaultdict
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Firma de los suscriptores: (sala, evento, payload)
Subscriber = Callable[[str, str, Dict[str, Any]], None]


class Events:
    """Nombres de eventos publicados."""
    CHALLENGE_JOINED = "challenge:joined"
    STAGE_COMPLETED = "stage:completed"
    CHALLENGE_COMPLETED = "challenge:completed"
    LEADERBOARD_UPDATE = "leaderboard:update"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def challenge_room(challenge_id: str) -> str:
    return f"challenge:{challenge_id}"


def leaderboard_room(period: str) -> str:
    return f"leaderboard:{period}"


class Broadcaster:
    """Pub/sub en proceso por salas."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, room: str, subscriber: Subscriber) -> None:
        """Suscribir un callback a una sala."""
        with self._lock:
            self._subscribers[room].append(subscriber)

    def unsubscribe(self, room: str, subscriber: Subscriber) -> None:
        """Quitar un callback de una sala."""
        with self._lock:
            if subscriber in self._subscribers.get(room, []):
                self._subscribers[room].remove(subscriber)

    def publish(self, room: str, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """
        Publicar un evento en una sala.

        Los errores de los suscriptores se registran y se ignoran.

        Returns:
            Cantidad de suscriptores notificados con éxito
        """
        with self._lock:
            subscribers = list(self._subscribers.get(room, []))

        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber(room, event, payload or {})
                delivered += 1
            except Exception:
                logger.warning(f"Fallo al notificar evento {event} en sala {room}", exc_info=True)

        logger.debug(f"Evento {event} publicado en {room} ({delivered}/{len(subscribers)})")
        return delivered


# Instancia Singleton
_broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    """Obtener instancia Singleton del broadcaster."""
    return _broadcaster
