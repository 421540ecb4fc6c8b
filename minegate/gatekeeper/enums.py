from enum import Enum


class ServerStatus(Enum):
    OFFLINE = "Offline"
    STARTING_COMPUTE = "StartingCompute"
    STARTING_APP = "StartingApp"
    ONLINE = "Online"
    SHUTTING_DOWN = "ShuttingDown"
    UNKNOWN = "Unknown"

    @property
    def label(self) -> str:
        return STATUS_DISPLAY[self][0]

    @property
    def motd(self) -> str:
        return STATUS_DISPLAY[self][1]

    def __str__(self) -> str:
        return f"ServerStatus::{self.value}"


# Estado -> (etiqueta, motd). Los motd usan códigos de formato con '&'.
STATUS_DISPLAY = {
    ServerStatus.OFFLINE: ("Offline", "&4Offline &f&o(join to start server up)"),
    ServerStatus.STARTING_COMPUTE: ("Starting EC2", "&6Starting EC2 instance..."),
    ServerStatus.STARTING_APP: ("Starting up", "&6Starting minecraft server..."),
    # Con el servidor online el propio Minecraft se encarga del MOTD
    ServerStatus.ONLINE: ("Online", "&2Online"),
    ServerStatus.SHUTTING_DOWN: ("Shutting down", "&cShutting down..."),
    ServerStatus.UNKNOWN: ("Unknown", "Unknown"),
}
