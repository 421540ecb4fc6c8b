import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

SPOT_MARKED_FOR_STOP = "marked-for-stop"
INSTANCE_NOT_FOUND = "InvalidInstanceID.NotFound"


class ControlPlaneError(Exception):
    """Error base al consultar o controlar la instancia EC2."""


class ControlPlaneDataError(ControlPlaneError):
    """La API respondió, pero sin la instancia o sin los campos necesarios."""


class ControlPlaneTransportError(ControlPlaneError):
    """Fallo de red, credenciales o error devuelto por la API de AWS."""


@dataclass(frozen=True)
class InstanceDescription:
    instance_id: str
    state: str
    public_ip: Optional[str]


class EC2ControlPlane:
    """Operaciones sobre la única instancia EC2 que aloja el servidor de Minecraft."""

    def __init__(self, client: Any = None, region_name: Optional[str] = None):
        self.client = client or boto3.client("ec2", region_name=region_name)

    def _call(self, operation: str, **kwargs: Any) -> dict:
        try:
            return getattr(self.client, operation)(**kwargs)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == INSTANCE_NOT_FOUND:
                raise ControlPlaneDataError(f"{operation}: la instancia no existe: {e}") from e
            raise ControlPlaneTransportError(f"{operation} falló: {e}") from e
        except BotoCoreError as e:
            raise ControlPlaneTransportError(f"{operation} falló: {e}") from e

    def describe_instance(self, instance_id: str) -> InstanceDescription:
        response = self._call("describe_instances", InstanceIds=[instance_id])
        try:
            instance = response["Reservations"][0]["Instances"][0]
            state = instance["State"]["Name"]
        except (KeyError, IndexError, TypeError) as e:
            raise ControlPlaneDataError(
                f"La respuesta de describe_instances para {instance_id} no contiene la instancia o su estado"
            ) from e

        return InstanceDescription(
            instance_id=instance_id,
            state=state,
            public_ip=instance.get("PublicIpAddress"),
        )

    def describe_pending_stop(self, instance_id: str) -> bool:
        """
        Comprueba si la spot request de la instancia sigue marcada para detenerse.

        Tras detener una instancia spot, EC2 rechaza arrancarla de nuevo hasta que
        la spot request termina de actualizarse.
        """
        response = self._call(
            "describe_spot_instance_requests",
            Filters=[{"Name": "instance-id", "Values": [instance_id]}],
        )
        requests = response.get("SpotInstanceRequests") or []
        if not requests:
            return False
        code = requests[0].get("Status", {}).get("Code")
        return code == SPOT_MARKED_FOR_STOP

    def start(self, instance_id: str) -> None:
        self._call("start_instances", InstanceIds=[instance_id])
        logger.info("Orden de arranque enviada a la instancia %s", instance_id)

    def stop(self, instance_id: str) -> None:
        self._call("stop_instances", InstanceIds=[instance_id])
        logger.info("Orden de apagado enviada a la instancia %s", instance_id)
