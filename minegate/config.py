from pathlib import Path
from typing import Any, FrozenSet, Optional, Union

from pydantic import Field
from pydantic_settings import BaseSettings


class GatekeeperConfig(BaseSettings):
    """Configuración del watcher de la instancia EC2 con el servidor de Minecraft."""

    ec2_instance: str = Field(..., description="ID de la instancia EC2 a vigilar")
    aws_region: Optional[str] = Field(
        None, description="Región de AWS (por defecto la del perfil de boto3)"
    )

    watcher_host: str = Field("0.0.0.0", description="Interfaz en la que escucha el watcher")
    watcher_port: int = Field(
        25565, ge=1, le=65535, description="Puerto TCP en el que escucha el watcher"
    )
    server_port: int = Field(
        25565, ge=1, le=65535, description="Puerto TCP del servidor de Minecraft remoto"
    )

    # variables para el apagado automático
    inactivity_timer: int = Field(
        20,
        ge=1,
        description="Minutos que el servidor debe estar vacío antes de apagar la instancia.",
    )
    usernames_allowed_to_start_server: str = Field(
        "",
        description="Usuarios que pueden arrancar el servidor separados por comas, o '*' para todos",
    )

    ping_timeout: float = Field(
        3.0, gt=0, description="Segundos de espera al hacer ping al servidor remoto"
    )
    log_level: str = Field("INFO", description="Nivel de logging")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_prefix = "MINEGATE_"

    @property
    def allowed_usernames(self) -> FrozenSet[str]:
        return frozenset(
            name.strip()
            for name in self.usernames_allowed_to_start_server.split(",")
            if name.strip()
        )


def load_config(
    env_path: Optional[Union[Path, str]] = None, **overrides: Any
) -> GatekeeperConfig:
    """
    Carga la configuración desde el entorno y, si se indica, desde un archivo .env.

    Los valores de `overrides` (p. ej. argumentos de la CLI) tienen prioridad.
    """
    overrides = {key: value for key, value in overrides.items() if value is not None}

    if env_path is not None:
        env_file = Path(env_path) if isinstance(env_path, str) else env_path
        if not env_file.exists():
            raise FileNotFoundError(f"El archivo de configuración {env_file} no existe.")
        overrides["_env_file"] = env_file

    return GatekeeperConfig(**overrides)
