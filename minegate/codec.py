import asyncio
import json
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

# El cliente nunca envía paquetes tan grandes durante el handshake/login.
MAX_PACKET_LENGTH = 2**21 - 1
LEGACY_PING_BYTE = 0xFE


class ProtocolError(Exception):
    """Paquete inesperado, malformado o conexión cerrada a mitad de un intercambio."""


class ConnectionState(Enum):
    HANDSHAKING = "Handshaking"
    STATUS = "Status"
    LOGIN = "Login"


class NextState(Enum):
    STATUS = 1
    LOGIN = 2


# --- Paquetes ---


@dataclass
class Handshake:
    protocol_version: int
    server_address: str
    server_port: int
    next_state: NextState


@dataclass
class StatusRequest:
    pass


@dataclass
class StatusResponse:
    response: dict


@dataclass
class StatusPing:
    payload: int


@dataclass
class StatusPong:
    payload: int


@dataclass
class LoginStart:
    name: str


@dataclass
class LoginDisconnect:
    reason: dict


@dataclass
class UnknownPacket:
    state: ConnectionState
    packet_id: int
    data: bytes = field(repr=False, default=b"")


Packet = Union[
    Handshake,
    StatusRequest,
    StatusResponse,
    StatusPing,
    StatusPong,
    LoginStart,
    LoginDisconnect,
    UnknownPacket,
]


# --- Tipos primitivos ---


def encode_varint(value: int) -> bytes:
    value &= 0xFFFFFFFF
    out = bytearray()
    while True:
        temp = value & 0x7F
        value >>= 7
        if value:
            temp |= 0x80
        out.append(temp)
        if not value:
            return bytes(out)


def _to_signed(value: int) -> int:
    if value & (1 << 31):
        return value - (1 << 32)
    return value


def encode_string(value: str) -> bytes:
    data = value.encode("utf-8")
    return encode_varint(len(data)) + data


class PacketBuffer:
    """Lector secuencial sobre el cuerpo de un paquete ya enmarcado."""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def remaining(self) -> int:
        return len(self.data) - self.offset

    def read(self, length: int) -> bytes:
        if length < 0 or self.remaining() < length:
            raise ProtocolError(
                f"Se esperaban {length} bytes pero quedan {self.remaining()}"
            )
        chunk = self.data[self.offset : self.offset + length]
        self.offset += length
        return chunk

    def read_varint(self) -> int:
        value = 0
        for position in range(5):
            byte = self.read(1)[0]
            value |= (byte & 0x7F) << (7 * position)
            if not byte & 0x80:
                return _to_signed(value)
        raise ProtocolError("VarInt demasiado grande")

    def read_string(self) -> str:
        length = self.read_varint()
        try:
            return self.read(length).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Cadena UTF-8 inválida: {e}") from e

    def read_ushort(self) -> int:
        return struct.unpack(">H", self.read(2))[0]

    def read_long(self) -> int:
        return struct.unpack(">q", self.read(8))[0]


# --- Codificación / decodificación ---


def decode_packet(state: ConnectionState, body: bytes) -> Packet:
    """Convierte el cuerpo de un paquete serverbound en su tipo según el estado."""
    buffer = PacketBuffer(body)
    packet_id = buffer.read_varint()

    if state == ConnectionState.HANDSHAKING and packet_id == 0x00:
        protocol_version = buffer.read_varint()
        server_address = buffer.read_string()
        server_port = buffer.read_ushort()
        raw_next_state = buffer.read_varint()
        try:
            next_state = NextState(raw_next_state)
        except ValueError:
            raise ProtocolError(
                f"next_state desconocido en el handshake: {raw_next_state}"
            ) from None
        return Handshake(protocol_version, server_address, server_port, next_state)

    if state == ConnectionState.STATUS:
        if packet_id == 0x00:
            return StatusRequest()
        if packet_id == 0x01:
            return StatusPing(buffer.read_long())

    if state == ConnectionState.LOGIN and packet_id == 0x00:
        # Las versiones nuevas añaden el UUID tras el nombre; solo usamos el nombre.
        return LoginStart(buffer.read_string())

    return UnknownPacket(state, packet_id, body[buffer.offset :])


def _json_string(value: Any) -> bytes:
    return encode_string(json.dumps(value, ensure_ascii=False))


def encode_packet(packet: Packet) -> bytes:
    """Serializa un paquete con su prefijo de longitud listo para enviarse."""
    if isinstance(packet, Handshake):
        body = (
            encode_varint(0x00)
            + encode_varint(packet.protocol_version)
            + encode_string(packet.server_address)
            + struct.pack(">H", packet.server_port)
            + encode_varint(packet.next_state.value)
        )
    elif isinstance(packet, StatusRequest):
        body = encode_varint(0x00)
    elif isinstance(packet, StatusResponse):
        body = encode_varint(0x00) + _json_string(packet.response)
    elif isinstance(packet, (StatusPing, StatusPong)):
        body = encode_varint(0x01) + struct.pack(">q", packet.payload)
    elif isinstance(packet, LoginStart):
        body = encode_varint(0x00) + encode_string(packet.name)
    elif isinstance(packet, LoginDisconnect):
        body = encode_varint(0x00) + _json_string(packet.reason)
    elif isinstance(packet, UnknownPacket):
        body = encode_varint(packet.packet_id) + packet.data
    else:
        raise TypeError(f"Tipo de paquete no soportado: {type(packet).__name__}")
    return encode_varint(len(body)) + body


class MinecraftConnection:
    """
    Conexión del lado servidor sobre un par de streams de asyncio.

    Lee paquetes serverbound según el estado actual y escribe paquetes clientbound.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        state: ConnectionState = ConnectionState.HANDSHAKING,
    ):
        self.reader = reader
        self.writer = writer
        self.state = state

    def set_state(self, state: ConnectionState) -> None:
        self.state = state

    async def _read_frame_length(self) -> Optional[int]:
        value = 0
        for position in range(5):
            try:
                byte = (await self.reader.readexactly(1))[0]
            except asyncio.IncompleteReadError:
                if position == 0:
                    return None
                raise ProtocolError("Conexión cerrada a mitad de la longitud del paquete")

            if (
                position == 0
                and byte == LEGACY_PING_BYTE
                and self.state == ConnectionState.HANDSHAKING
            ):
                raise ProtocolError("Ping legacy (pre-1.7) no soportado")

            value |= (byte & 0x7F) << (7 * position)
            if not byte & 0x80:
                return value
        raise ProtocolError("VarInt de longitud demasiado grande")

    async def read_packet(self) -> Optional[Packet]:
        """Devuelve el siguiente paquete, o None si el cliente cerró limpiamente."""
        length = await self._read_frame_length()
        if length is None:
            return None
        if length <= 0 or length > MAX_PACKET_LENGTH:
            raise ProtocolError(f"Longitud de paquete inválida: {length}")
        try:
            body = await self.reader.readexactly(length)
        except asyncio.IncompleteReadError as e:
            raise ProtocolError(
                f"Conexión cerrada tras {len(e.partial)} de {length} bytes"
            ) from e
        return decode_packet(self.state, body)

    async def write_packet(self, packet: Packet) -> None:
        self.writer.write(encode_packet(packet))
        await self.writer.drain()
