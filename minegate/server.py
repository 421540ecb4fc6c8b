import asyncio
import logging
from typing import Optional

from minegate.config import GatekeeperConfig
from minegate.ec2_client import EC2ControlPlane
from minegate.gatekeeper.handlers import ConnectionHandler
from minegate.gatekeeper.live_ping import LivePing
from minegate.gatekeeper.status import StatusResolver
from minegate.gatekeeper.tasks import (
    InactivityCounter,
    InactivityWatcher,
    inactivity_check_loop,
)

logger = logging.getLogger(__name__)


async def serve(config: GatekeeperConfig, control_plane: Optional[EC2ControlPlane] = None):
    """Arranca el watcher de inactividad y el listener TCP; no retorna."""
    control_plane = control_plane or EC2ControlPlane(region_name=config.aws_region)
    live_ping = LivePing(port=config.server_port, timeout=config.ping_timeout)
    resolver = StatusResolver(control_plane, live_ping)

    logger.info("Iniciando el watcher de inactividad de %s", config.ec2_instance)
    watcher = InactivityWatcher(
        resolver=resolver,
        control_plane=control_plane,
        instance_id=config.ec2_instance,
        counter=InactivityCounter(),
        inactivity_timer_max=config.inactivity_timer,
    )
    inactivity_check_loop.start(watcher)

    handler = ConnectionHandler(
        resolver=resolver,
        control_plane=control_plane,
        instance_id=config.ec2_instance,
        allowed_usernames=config.allowed_usernames,
    )
    server = await asyncio.start_server(
        handler, config.watcher_host, config.watcher_port
    )
    logger.info(
        "Watcher escuchando en %s:%s", config.watcher_host, config.watcher_port
    )
    try:
        async with server:
            await server.serve_forever()
    finally:
        inactivity_check_loop.cancel()
