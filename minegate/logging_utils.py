import functools
import logging
from typing import Awaitable, Callable

import boto3
import botocore
from rich.console import Console
from rich.logging import RichHandler

from minegate.codec import ProtocolError

console = Console()


def setup_logging(level: str = "INFO"):
    logging_handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        tracebacks_suppress=[boto3, botocore],
    )
    logging.basicConfig(
        level="NOTSET", format="%(message)s", datefmt="[%X]", handlers=[logging_handler]
    )
    # botocore es muy ruidoso en DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("discord").setLevel(logging.WARNING)


def setup_connection_logger() -> logging.Logger:
    return logging.getLogger("minegate.connections")


def log_connection_usage(logger: logging.Logger):
    """
    Decorador para los handlers de conexión de asyncio.start_server.

    Registra el inicio y fin de cada conexión y se asegura de que ningún error
    escape del handler: un fallo solo afecta a su propia conexión.
    """

    def decorator(
        func: Callable[..., Awaitable[None]],
    ) -> Callable[..., Awaitable[None]]:
        @functools.wraps(func)
        async def wrapper(reader, writer, *args, **kwargs):
            peer = writer.get_extra_info("peername")
            logger.info("Conexión recibida de %s", peer)
            try:
                await func(reader, writer, *args, **kwargs)
            except ProtocolError as e:
                logger.warning("Error de protocolo con %s: %s", peer, e)
            except OSError as e:
                logger.warning("Conexión con %s perdida: %s", peer, e)
            except Exception:
                logger.exception("Error inesperado atendiendo a %s", peer)
            finally:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError:
                    pass
                logger.info("Conexión con %s terminada", peer)

        return wrapper

    return decorator
