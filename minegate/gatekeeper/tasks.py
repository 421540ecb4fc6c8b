import asyncio
import logging
from typing import Tuple

from discord.ext import tasks

from minegate.ec2_client import ControlPlaneError, EC2ControlPlane

from .enums import ServerStatus
from .status import StatusResolver

logger = logging.getLogger(__name__)


def next_inactivity_state(
    previous: int, status: ServerStatus, player_count: int, maximum: int
) -> Tuple[int, bool]:
    """
    Calcula el siguiente valor del contador de inactividad.

    Devuelve (nuevo_contador, hay_que_apagar). Solo cuenta un minuto de
    inactividad si el servidor está online y vacío; cualquier otra cosa
    (incluido un estado desconocido) reinicia el contador.
    """
    if status == ServerStatus.ONLINE and player_count == 0:
        counter = min(previous + 1, maximum)
    else:
        counter = 0
    return counter, counter == maximum


class InactivityCounter:
    """Minutos consecutivos con el servidor online y vacío."""

    def __init__(self):
        self.value = 0
        self.lock = asyncio.Lock()

    def reset(self):
        self.value = 0


class InactivityWatcher:
    def __init__(
        self,
        resolver: StatusResolver,
        control_plane: EC2ControlPlane,
        instance_id: str,
        counter: InactivityCounter,
        inactivity_timer_max: int,
    ):
        self.resolver = resolver
        self.control_plane = control_plane
        self.instance_id = instance_id
        self.counter = counter
        self.inactivity_timer_max = inactivity_timer_max

    async def tick(self) -> bool:
        """Ejecuta una comprobación. Devuelve True si se envió la orden de apagado."""
        snapshot = await self.resolver.resolve_or_unknown(self.instance_id)

        async with self.counter.lock:
            counter, should_stop = next_inactivity_state(
                self.counter.value,
                snapshot.server_status,
                snapshot.player_count,
                self.inactivity_timer_max,
            )
            self.counter.value = counter
            logger.info(
                "Auto-Shutdown: %s, %d jugadores, inactivo %d/%d min",
                snapshot.server_status,
                snapshot.player_count,
                counter,
                self.inactivity_timer_max,
            )

            if not should_stop:
                return False

            logger.info(
                "Auto-Shutdown: Tiempo de inactividad superado. Deteniendo la instancia %s.",
                self.instance_id,
            )
            try:
                await asyncio.to_thread(self.control_plane.stop, self.instance_id)
            except ControlPlaneError as e:
                logger.error("Auto-Shutdown: No se pudo detener la instancia: %s", e)
            finally:
                self.counter.reset()
            return True


@tasks.loop(minutes=1.0)
async def inactivity_check_loop(watcher: InactivityWatcher):
    try:
        await watcher.tick()
    except Exception:
        logger.exception("Auto-Shutdown: Error inesperado en la comprobación de inactividad")
