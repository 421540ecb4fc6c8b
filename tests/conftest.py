"""Fakes compartidos: plano de control EC2, ping en vivo y streams de asyncio."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

from minegate.codec import PacketBuffer, encode_packet
from minegate.ec2_client import ControlPlaneDataError, InstanceDescription
from minegate.gatekeeper.live_ping import PingResult

INSTANCE_ID = "i-0123456789abcdef0"
PUBLIC_IP = "203.0.113.10"

PONG = PingResult(reachable=True, handshake_ok=True, pong_ok=True)
REFUSED = PingResult(reachable=False, handshake_ok=False, pong_ok=False)
NO_HANDSHAKE = PingResult(reachable=True, handshake_ok=False, pong_ok=False)
NO_PONG = PingResult(reachable=True, handshake_ok=True, pong_ok=False)


class FakeControlPlane:
    def __init__(
        self,
        state: Optional[str] = "stopped",
        public_ip: Optional[str] = None,
        pending_stop: bool = False,
        describe_error: Optional[Exception] = None,
        start_error: Optional[Exception] = None,
        stop_error: Optional[Exception] = None,
    ):
        self.state = state
        self.public_ip = public_ip
        self.pending_stop = pending_stop
        self.describe_error = describe_error
        self.start_error = start_error
        self.stop_error = stop_error
        self.describe_calls = 0
        self.pending_stop_calls = 0
        self.start_calls = []
        self.stop_calls = []

    def describe_instance(self, instance_id):
        self.describe_calls += 1
        if self.describe_error is not None:
            raise self.describe_error
        if self.state is None:
            raise ControlPlaneDataError("sin estado")
        return InstanceDescription(instance_id, self.state, self.public_ip)

    def describe_pending_stop(self, instance_id):
        self.pending_stop_calls += 1
        return self.pending_stop

    def start(self, instance_id):
        self.start_calls.append(instance_id)
        if self.start_error is not None:
            raise self.start_error

    def stop(self, instance_id):
        self.stop_calls.append(instance_id)
        if self.stop_error is not None:
            raise self.stop_error


class FakeLivePing:
    def __init__(
        self,
        result: PingResult = PONG,
        players: int = 0,
        player_error: Optional[Exception] = None,
    ):
        self.result = result
        self.players = players
        self.player_error = player_error
        self.ping_calls = []
        self.player_count_calls = []

    async def ping(self, address):
        self.ping_calls.append(address)
        return self.result

    async def player_count(self, address):
        self.player_count_calls.append(address)
        if self.player_error is not None:
            raise self.player_error
        return self.players


class FakeWriter:
    """Sustituto mínimo de asyncio.StreamWriter que guarda lo escrito."""

    def __init__(self, peername=("198.51.100.7", 51234)):
        self.buffer = bytearray()
        self.closed = False
        self.peername = peername

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self.peername
        return default


def make_reader(*chunks: bytes) -> asyncio.StreamReader:
    """StreamReader con los bytes dados y EOF. Debe llamarse dentro de un test async."""
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    reader.feed_eof()
    return reader


def client_bytes(*packets) -> bytes:
    return b"".join(encode_packet(packet) for packet in packets)


def parse_clientbound(data: bytes):
    """Divide lo enviado por el servidor en (packet_id, PacketBuffer con el resto)."""
    frames = []
    buffer = PacketBuffer(bytes(data))
    while buffer.remaining():
        length = buffer.read_varint()
        body = PacketBuffer(buffer.read(length))
        frames.append((body.read_varint(), body))
    return frames


def read_json(body: PacketBuffer) -> dict:
    return json.loads(body.read_string())

