import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional

from orulab.commons.logger import logger

VT = b"\x0b"  # start block
FS = b"\x1c"  # end block
CR = b"\x0d"

END_BLOCK = FS + CR


def _decode(payload: bytes) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return payload.decode("latin-1")


def take_frames(buf: bytearray) -> list:
    """Pop every complete VT ... FS CR frame off ``buf``; leftovers stay for the next read."""
    frames = []
    while True:
        start = buf.find(VT)
        if start < 0:
            # nothing framed yet, drop the noise
            buf.clear()
            break
        end = buf.find(END_BLOCK, start + 1)
        if end < 0:
            if start:
                del buf[:start]
            break
        frames.append(_decode(bytes(buf[start + 1 : end])))
        del buf[: end + len(END_BLOCK)]
    return frames


async def read_mllp_messages(reader: asyncio.StreamReader, chunk_size: int = 4096) -> AsyncIterator[str]:
    """Yield HL7 messages from an MLLP stream; several messages per connection are fine."""
    buf = bytearray()
    while True:
        chunk = await reader.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        for msg in take_frames(buf):
            yield msg


class TcpServer:
    def __init__(self, host: str, port: int, on_message_async: Callable[[str, object], Awaitable[None]]):
        self.host = host
        self.port = port
        self.on_message_async = on_message_async
        self._server: Optional[asyncio.AbstractServer] = None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        peer = writer.get_extra_info("peername")
        logger.info(f"MLLP connection from {peer}")
        try:
            async for hl7 in read_mllp_messages(reader):
                await self.on_message_async(hl7, peer)
        finally:
            writer.close()
            await writer.wait_closed()

    async def start(self):
        self._server = await asyncio.start_server(self._handle, self.host, self.port)
        async with self._server:
            await self._server.serve_forever()
