import asyncio
import logging
from typing import FrozenSet

from minegate.codec import (
    ConnectionState,
    Handshake,
    LoginDisconnect,
    LoginStart,
    MinecraftConnection,
    NextState,
    ProtocolError,
    StatusPing,
    StatusPong,
    StatusRequest,
    StatusResponse,
)
from minegate.ec2_client import ControlPlaneError, EC2ControlPlane
from minegate.logging_utils import log_connection_usage, setup_connection_logger

from .chat import from_traditional
from .enums import ServerStatus
from .status import StatusResolver

logger = logging.getLogger(__name__)
connection_logger = setup_connection_logger()
log_connection = log_connection_usage(connection_logger)

ANYONE = "*"
VERSION_NAME = "minegate"
STATUS_PREFIX = "&lStatus:&r "

LOGIN_ACKNOWLEDGED = "&lLogin acknowledged: &6Starting server up..."
LOGIN_DENIED = "&lLogin denied: &4Server is offline"
LOGIN_MESSAGES = {
    ServerStatus.STARTING_COMPUTE: "&6&lServer is still spinning up &7&o(give it a few minutes)",
    ServerStatus.STARTING_APP: "&6&lServer is still spinning up &7&o(give it a few minutes)",
    ServerStatus.ONLINE: "&2&lServer is online&r, but DNS hasn't updated yet\n&7&o(wait a minute, then try again)",
    ServerStatus.SHUTTING_DOWN: "&c&lServer is shutting down...",
    ServerStatus.UNKNOWN: "&b&lServer status isn't known\n&r&o(usually it's just starting up the EC2 instance, but it could be an error)",
}


def is_allowed_to_start_server(username: str, allowed_usernames: FrozenSet[str]) -> bool:
    return ANYONE in allowed_usernames or username in allowed_usernames


def build_status_response(status: ServerStatus, protocol_version: int) -> dict:
    # El watcher nunca aloja jugadores reales: siempre 0/0
    return {
        "version": {"name": VERSION_NAME, "protocol": protocol_version},
        "players": {"max": 0, "online": 0, "sample": []},
        "description": from_traditional(STATUS_PREFIX + status.motd),
    }


class ConnectionHandler:
    """Atiende las conexiones de los clientes de Minecraft antes de que exista el servidor real."""

    def __init__(
        self,
        resolver: StatusResolver,
        control_plane: EC2ControlPlane,
        instance_id: str,
        allowed_usernames: FrozenSet[str],
    ):
        self.resolver = resolver
        self.control_plane = control_plane
        self.instance_id = instance_id
        self.allowed_usernames = allowed_usernames
        self.serve_connection = log_connection(self.handle_connection)

    async def __call__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        await self.serve_connection(reader, writer)

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        connection = MinecraftConnection(reader, writer)
        packet = await connection.read_packet()
        if not isinstance(packet, Handshake):
            raise ProtocolError(f"Se esperaba un handshake, se recibió {packet!r}")

        if packet.next_state == NextState.STATUS:
            await self.handle_status(connection, packet)
        else:
            await self.handle_login(connection)

    async def handle_status(
        self, connection: MinecraftConnection, handshake: Handshake
    ) -> None:
        connection.set_state(ConnectionState.STATUS)
        status = (await self.resolver.resolve_or_unknown(self.instance_id)).server_status
        logger.info("Sirviendo estado: %s", status)

        response = build_status_response(status, handshake.protocol_version)
        await connection.write_packet(StatusResponse(response))

        # El cliente manda su StatusRequest y después, opcionalmente, un ping
        for _ in range(2):
            packet = await connection.read_packet()
            if packet is None:
                break
            if isinstance(packet, StatusRequest):
                continue
            if isinstance(packet, StatusPing):
                await connection.write_packet(StatusPong(packet.payload))
                break
            raise ProtocolError(f"Paquete inesperado en Status: {packet!r}")

    async def handle_login(self, connection: MinecraftConnection) -> None:
        connection.set_state(ConnectionState.LOGIN)
        packet = await connection.read_packet()
        if not isinstance(packet, LoginStart):
            raise ProtocolError(f"Se esperaba LoginStart, se recibió {packet!r}")

        username = packet.name
        status = (await self.resolver.resolve_or_unknown(self.instance_id)).server_status
        logger.info("Intento de login de %s con el servidor en %s", username, status)

        if status == ServerStatus.OFFLINE:
            message = await self._start_for(username)
        else:
            message = LOGIN_MESSAGES[status]

        await connection.write_packet(LoginDisconnect(from_traditional(message)))

    async def _start_for(self, username: str) -> str:
        if not is_allowed_to_start_server(username, self.allowed_usernames):
            logger.info("%s no tiene permiso para arrancar el servidor", username)
            return LOGIN_DENIED

        logger.info("%s arranca la instancia %s", username, self.instance_id)
        try:
            await asyncio.to_thread(self.control_plane.start, self.instance_id)
        except ControlPlaneError as e:
            # El jugador recibe el acuse de todas formas
            logger.error("No se pudo arrancar la instancia %s: %s", self.instance_id, e)
        return LOGIN_ACKNOWLEDGED
