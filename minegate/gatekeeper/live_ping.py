import asyncio
import logging
from dataclasses import dataclass

from mcstatus import JavaServer

from .enums import ServerStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PingResult:
    reachable: bool
    handshake_ok: bool
    pong_ok: bool


def status_from_ping(result: PingResult) -> ServerStatus:
    """Traduce el resultado de un ping al estado del servidor."""
    if not result.reachable:
        return ServerStatus.STARTING_COMPUTE
    if not result.handshake_ok:
        return ServerStatus.STARTING_APP
    if result.pong_ok:
        return ServerStatus.ONLINE
    return ServerStatus.UNKNOWN


class LivePing:
    """Cliente mínimo del protocolo para preguntarle al servidor real si está vivo."""

    def __init__(self, port: int = 25565, timeout: float = 3.0):
        self.port = port
        self.timeout = timeout

    async def _tcp_reachable(self, address: str) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def ping(self, address: str) -> PingResult:
        if not await self._tcp_reachable(address):
            logger.debug("Sin respuesta TCP en %s:%s", address, self.port)
            return PingResult(reachable=False, handshake_ok=False, pong_ok=False)

        server = JavaServer(address, self.port, timeout=self.timeout)
        try:
            latency = await server.async_ping(tries=1)
        except (ConnectionError, asyncio.TimeoutError) as e:
            # El puerto abre pero Minecraft aún no completa el handshake
            logger.debug("Handshake fallido con %s: %r", address, e)
            return PingResult(reachable=True, handshake_ok=False, pong_ok=False)
        except Exception as e:
            logger.debug("Respuesta de ping inválida de %s: %r", address, e)
            return PingResult(reachable=True, handshake_ok=True, pong_ok=False)

        logger.debug("Pong de %s en %.1f ms", address, latency)
        return PingResult(reachable=True, handshake_ok=True, pong_ok=True)

    async def player_count(self, address: str) -> int:
        server = JavaServer(address, self.port, timeout=self.timeout)
        status = await server.async_status(tries=1)
        return max(status.players.online, 0)
