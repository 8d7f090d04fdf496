import pytest

from orulab.helpers.tcp_transport import CR, FS, VT, read_mllp_messages, take_frames

MSG_A = b"MSH|^~\\&|LAB|ND|EHR|ND|20250817142000||ORU^R01|A|P|2.5\rOBX|1|NM|718-7^HGB||13.5|g/dL|12-17.5|||N|F\r"
MSG_B = b"MSH|^~\\&|LAB|ND|EHR|ND|20250817142005||ORU^R01|B|P|2.5\rOBX|1|NM|2345-7^GLU||88|mg/dL|70-100|||N|F\r"


class ChunkReader:
    """Stands in for StreamReader.read, returning the given chunks then EOF."""

    def __init__(self, *chunks: bytes):
        self._chunks = list(chunks)

    async def read(self, n):
        return self._chunks.pop(0) if self._chunks else b""


async def collect(reader):
    return [m async for m in read_mllp_messages(reader)]


@pytest.mark.asyncio
async def test_two_messages_in_one_read():
    data = VT + MSG_A + FS + CR + VT + MSG_B + FS + CR
    msgs = await collect(ChunkReader(data))
    assert len(msgs) == 2
    assert msgs[0].startswith("MSH|") and "|A|" in msgs[0]
    assert "|B|" in msgs[1]


@pytest.mark.asyncio
async def test_frame_split_across_reads():
    data = VT + MSG_A + FS + CR
    msgs = await collect(ChunkReader(data[:10], data[10:-1], data[-1:]))
    assert msgs == [MSG_A.decode("utf-8")]


def test_noise_before_start_block_is_discarded():
    buf = bytearray(b"garbage" + VT + MSG_A + FS + CR + b"tail")
    assert take_frames(buf) == [MSG_A.decode("utf-8")]
    assert buf == bytearray()


def test_incomplete_frame_is_kept():
    buf = bytearray(b"xx" + VT + b"MSH|partial")
    assert take_frames(buf) == []
    assert bytes(buf) == VT + b"MSH|partial"


def test_latin1_fallback():
    buf = bytearray(VT + "MSH|^~\\&|Año".encode("latin-1") + FS + CR)
    assert take_frames(buf) == ["MSH|^~\\&|Año"]
