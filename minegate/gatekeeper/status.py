import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from minegate.ec2_client import ControlPlaneError, EC2ControlPlane

from .enums import ServerStatus
from .live_ping import LivePing, status_from_ping

logger = logging.getLogger(__name__)

# Estado del ciclo de vida EC2 -> estado del servidor. Lo demás es UNKNOWN.
COMPUTE_STATE_TO_STATUS = {
    "stopped": ServerStatus.OFFLINE,
    "stopping": ServerStatus.SHUTTING_DOWN,
    "pending": ServerStatus.STARTING_COMPUTE,
    "shutting-down": ServerStatus.SHUTTING_DOWN,
}


@dataclass(frozen=True)
class ServerStatusSnapshot:
    instance_id: str
    public_address: Optional[str]
    compute_state: Optional[str]
    server_status: ServerStatus
    player_count: int = 0

    @classmethod
    def unknown(cls, instance_id: str) -> "ServerStatusSnapshot":
        return cls(
            instance_id=instance_id,
            public_address=None,
            compute_state=None,
            server_status=ServerStatus.UNKNOWN,
        )


class StatusResolver:
    """
    Combina el estado de la instancia EC2 y, si hace falta, un ping al servidor
    de Minecraft para obtener un único estado autoritativo.
    """

    def __init__(self, control_plane: EC2ControlPlane, live_ping: LivePing):
        self.control_plane = control_plane
        self.live_ping = live_ping

    async def resolve(self, instance_id: str) -> ServerStatusSnapshot:
        """
        Resuelve el estado actual. Propaga ControlPlaneError si la API de EC2
        falla o no devuelve la instancia; los fallos del ping no son errores.
        """
        instance = await asyncio.to_thread(
            self.control_plane.describe_instance, instance_id
        )
        server_status = COMPUTE_STATE_TO_STATUS.get(
            instance.state, ServerStatus.UNKNOWN
        )

        # Una instancia spot recién detenida no se puede arrancar hasta que
        # su spot request termine de actualizarse.
        if server_status == ServerStatus.OFFLINE:
            pending_stop = await asyncio.to_thread(
                self.control_plane.describe_pending_stop, instance_id
            )
            if pending_stop:
                server_status = ServerStatus.SHUTTING_DOWN

        # Si la instancia no está corriendo, ya sabemos que el servidor tampoco
        if server_status != ServerStatus.UNKNOWN or instance.public_ip is None:
            return ServerStatusSnapshot(
                instance_id=instance_id,
                public_address=instance.public_ip,
                compute_state=instance.state,
                server_status=server_status,
            )

        ping = await self.live_ping.ping(instance.public_ip)
        server_status = status_from_ping(ping)

        try:
            player_count = await self.live_ping.player_count(instance.public_ip)
        except Exception as e:
            logger.debug("No se pudo obtener el número de jugadores: %r", e)
            player_count = 0

        return ServerStatusSnapshot(
            instance_id=instance_id,
            public_address=instance.public_ip,
            compute_state=instance.state,
            server_status=server_status,
            player_count=player_count,
        )

    async def resolve_or_unknown(self, instance_id: str) -> ServerStatusSnapshot:
        """Como resolve(), pero degrada a UNKNOWN/0 si falla el plano de control."""
        try:
            return await self.resolve(instance_id)
        except ControlPlaneError as e:
            logger.warning("No se pudo consultar la instancia %s: %s", instance_id, e)
            return ServerStatusSnapshot.unknown(instance_id)
