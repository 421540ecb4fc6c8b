import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from minegate.config import GatekeeperConfig, load_config
from minegate.logging_utils import setup_logging
from minegate.server import serve

logger = logging.getLogger(__name__)


async def main(config: GatekeeperConfig):
    logger.info("Inicializando el watcher del servidor de Minecraft")
    await serve(config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Responde a los clientes de Minecraft y arranca/apaga la instancia EC2 según la actividad."
    )
    parser.add_argument(
        "env_file",
        type=str,
        nargs="?",
        default=None,
        help="Ruta al archivo de configuración .env",
    )
    parser.add_argument("--ec2-instance", help="ID de la instancia EC2 a vigilar")
    parser.add_argument("--aws-region", help="Región de AWS de la instancia")
    parser.add_argument(
        "--watcher-port", type=int, help="Puerto TCP en el que escucha el watcher"
    )
    parser.add_argument(
        "--server-port", type=int, help="Puerto TCP del servidor de Minecraft remoto"
    )
    parser.add_argument(
        "--inactivity-timer",
        type=int,
        help="Minutos de inactividad antes de apagar la instancia",
    )
    parser.add_argument(
        "--usernames-allowed-to-start-server",
        help="Usuarios separados por comas que pueden arrancar el servidor, o '*'",
    )
    return parser


def run(argv: Optional[List[str]] = None):
    """Función de entrada para el comando de consola."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            args.env_file,
            ec2_instance=args.ec2_instance,
            aws_region=args.aws_region,
            watcher_port=args.watcher_port,
            server_port=args.server_port,
            inactivity_timer=args.inactivity_timer,
            usernames_allowed_to_start_server=args.usernames_allowed_to_start_server,
        )
    except (FileNotFoundError, ValidationError) as e:
        print(f"Fallo en la configuración. El watcher no se ha iniciado.\n{e}")
        sys.exit(1)

    setup_logging(config.log_level)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Cerrando el watcher...")


if __name__ == "__main__":
    run()
