import logging

import pytest

from tasd.enum import Compliant
from tasd.exceptions import ChunkUnpackException, UnrecoverableException
from tasd.movie.enum import (
    Console,
    Controller,
    MemoryInitKind,
    Region,
    TransitionKind,
)
from tasd.movie.framing import write_record
from tasd.movie.packets import (
    MAX_EMBEDDING_DEPTH,
    Author,
    BlankFrames,
    Category,
    ClockFilter,
    ConsoleRegion,
    ConsoleType,
    DumpLastModified,
    EmulatorCore,
    EmulatorName,
    EmulatorVersion,
    GameGenieCode,
    GameTitle,
    InputChunks,
    LagFrameChunk,
    LatchFilter,
    Malformed,
    MemoryInit,
    MovieTransition,
    Overread,
    PortController,
    Rerecords,
    SourceLink,
    TASLastModified,
    TotalFrames,
    Transition,
    Unsupported,
    Verified,
)
from tasd.movie.registry import registry


def decode(raw, **kwargs):
    packet, offset = registry.decode(raw, **kwargs)

    assert offset == len(raw)
    assert packet.raw == raw

    return packet


def roundtrip(packet):
    decoded = decode(packet.raw)

    assert type(decoded) is type(packet)

    return decoded


def test_console_type():
    packet = ConsoleType(Console.NES)

    assert packet.raw == b'\x00\x01\x01\x01\x01'
    assert packet.format() == 'NES'
    assert roundtrip(packet).kind.value == Console.NES

    packet = decode(b'\x00\x01\x01\x01\x01')

    assert str(packet) == 'ConsoleType: NES'


def test_console_type_custom():
    packet = decode(b'\x00\x01\x01\x0a\xffMyConsole')

    assert isinstance(packet, ConsoleType)
    assert packet.kind.value == Console.CUSTOM
    assert packet.custom.value == 'MyConsole'
    assert packet.format() == 'Custom: MyConsole'

    packet = ConsoleType(Console.CUSTOM, 'MyConsole')

    assert packet.raw == b'\x00\x01\x01\x0a\xffMyConsole'

    with pytest.raises(ValueError):
        ConsoleType(Console.NES, custom='MyConsole')


def test_console_type_unknown(caplog):
    with caplog.at_level(logging.WARNING):
        packet = decode(b'\x00\x01\x01\x01\x42')

    assert packet.kind.value == 0x42
    assert packet.format() == 'Unknown'
    assert 'doesn\'t have element with value 0x42' in caplog.text

    with pytest.raises(UnrecoverableException) as e:
        registry.decode(b'\x00\x01\x01\x01\x42', compliant=Compliant.ENUM)

    assert e.value.chain == ['kind']


def test_console_region():
    packet = ConsoleRegion(Region.PAL)

    assert packet.raw == b'\x00\x02\x01\x01\x02'
    assert roundtrip(packet).format() == 'PAL'
    assert decode(b'\x00\x02\x01\x01\x09').format() == 'Unknown'


@pytest.mark.parametrize('cls', [
    GameTitle,
    Author,
    Category,
    EmulatorName,
    EmulatorVersion,
    EmulatorCore,
    SourceLink,
    GameGenieCode,
])
def test_text_packets(cls):
    packet = cls('Super Mario Bros. ™')

    decoded = roundtrip(packet)

    assert decoded.text.value == 'Super Mario Bros. ™'
    assert decoded.format() == 'Super Mario Bros. ™'
    assert decoded.raw == cls.KEY + b'\x01\x15' + 'Super Mario Bros. ™'.encode('utf-8')


def test_text_is_lossy_but_the_bytes_are_kept():
    packet = decode(b'\x00\x03\x01\x02\xffA')

    assert packet.format() == '\ufffdA'
    assert packet.raw == b'\x00\x03\x01\x02\xffA'

    # changing a field encodes the packet again
    packet.text = 'A'

    assert packet.raw == b'\x00\x03\x01\x01A'


@pytest.mark.parametrize('cls,epoch,formatted', [
    (TASLastModified, 0, '1970-01-01 00:00:00 UTC'),
    (DumpLastModified, 1234567890, '2009-02-13 23:31:30 UTC'),
    (DumpLastModified, -1, '1969-12-31 23:59:59 UTC'),
])
def test_timestamps(cls, epoch, formatted):
    packet = cls(epoch)

    assert len(packet.raw) == 2 + 1 + 1 + 8

    decoded = roundtrip(packet)

    assert decoded.epoch.value == epoch
    assert decoded.format() == formatted


def test_timestamp_out_of_range():
    packet = TASLastModified(1 << 62)

    assert packet.format() == 'Invalid timestamp (%d)' % (1 << 62)


@pytest.mark.parametrize('cls', [TotalFrames, Rerecords])
def test_counters(cls):
    packet = cls(1000)

    assert packet.raw == cls.KEY + b'\x01\x04\x00\x00\x03\xe8'
    assert roundtrip(packet).format() == '1000'


def test_counter_of_declared_width():
    raw = b'\x00\x0b\x01\x08' + (1000).to_bytes(8, 'big')

    packet = decode(raw)

    assert isinstance(packet, TotalFrames)
    assert packet.count.value == 1000
    assert packet.format() == '1000'

    packet.count = 1001

    assert packet.raw == b'\x00\x0b\x01\x08' + (1001).to_bytes(8, 'big')

    with pytest.raises(ValueError):
        TotalFrames(1 << 32)


def test_blank_frames():
    packet = BlankFrames(-5)

    assert packet.raw == b'\x00\x0e\x01\x02\xff\xfb'
    assert roundtrip(packet).format() == '-5'
    assert BlankFrames(300).format() == '300'


@pytest.mark.parametrize('raw,formatted', [
    (b'\x00\x0f\x01\x01\x00', 'No'),
    (b'\x00\x0f\x01\x01\x01', 'Yes'),
    (b'\x00\x0f\x01\x01\x07', 'Unknown (07)'),
])
def test_verified(raw, formatted):
    assert decode(raw).format() == formatted


def test_verified_authoring():
    assert Verified(True).raw == b'\x00\x0f\x01\x01\x01'


def test_memory_init():
    packet = MemoryInit(MemoryInitKind.ALL_00, True, 'WRAM')

    assert packet.raw == b'\x00\x10\x01\x08' + b'\x03\x01\x01\x04WRAM'
    assert packet.format() == 'All 0x00, Required: Yes, Space: WRAM'

    decoded = roundtrip(packet)

    assert decoded.kind.value == MemoryInitKind.ALL_00
    assert decoded.required.value == 1
    assert decoded.space.value == 'WRAM'
    assert decoded.payload.value is None


def test_memory_init_custom():
    packet = MemoryInit(MemoryInitKind.CUSTOM, False, 'SRAM', b'\x01\x02')

    assert packet.format() == 'Custom, Required: No, Space: SRAM, Payload: 01 02'

    decoded = roundtrip(packet)

    assert decoded.space.value == 'SRAM'
    assert decoded.payload.value == b'\x01\x02'

    with pytest.raises(ValueError):
        MemoryInit(MemoryInitKind.RANDOM, False, 'SRAM', b'\x01\x02')


def test_memory_init_space_truncated():
    packet = decode(b'\x00\x10\x01\x04\x03\x01\x01\x09')

    assert isinstance(packet, Malformed)
    assert packet.describe().name == 'MemoryInit'


def test_port_controller():
    packet = PortController(1, Controller.NES_STANDARD)

    assert packet.raw == b'\x00\xf0\x01\x03\x01\x01\x01'
    assert roundtrip(packet).format() == 'Port #1, Controller Type: NES Standard Controller'
    assert decode(b'\x00\xf0\x01\x03\x02\x12\x34').format() == 'Port #2, Controller Type: Unknown (1234)'
    assert decode(b'\x00\xf0\x01\x03\x02\x00\x42').format() == 'Port #2, Controller Type: Unknown (42)'


def test_latch_filter():
    packet = decode(b'\x01\x01\x01\x01\x0a')

    assert isinstance(packet, LatchFilter)
    assert packet.format() == '1.0ms'

    with pytest.raises(ValueError):
        LatchFilter(256)


def test_clock_filter():
    assert roundtrip(ClockFilter(10)).format() == '2.50us'


@pytest.mark.parametrize('value,formatted', [
    (0, 'HIGH'),
    (1, 'LOW'),
    (2, 'Unknown (02)'),
])
def test_overread(value, formatted):
    assert roundtrip(Overread(value)).format() == formatted


def test_input_chunks():
    packet = InputChunks(1, b'\xff\x00\xab')

    assert packet.raw == b'\xfe\x01\x01\x04\x01\xff\x00\xab'

    decoded = roundtrip(packet)

    assert decoded.port.value == 1
    assert decoded.chunks.value == b'\xff\x00\xab'
    assert decoded.format() == 'Port #1, Chunks: FF 00 AB'


def test_input_chunks_long():
    packet = InputChunks(2, b'\x00' * 1000)

    assert packet.raw[:5] == b'\xfe\x01\x02\x03\xe9'
    assert roundtrip(packet).chunks.value == b'\x00' * 1000


def test_lag_frame_chunk():
    packet = LagFrameChunk(100, 3)

    assert packet.raw == b'\xfe\x03\x01\x08' + b'\x00\x00\x00\x64\x00\x00\x00\x03'
    assert roundtrip(packet).format() == 'Index: 100, Length: 3'


def test_fields_by_keyword():
    assert LagFrameChunk(index=1, length=2).raw == LagFrameChunk(1, 2).raw

    with pytest.raises(TypeError):
        LagFrameChunk(1, index=2)

    with pytest.raises(TypeError):
        LagFrameChunk(start=1)

    with pytest.raises(TypeError):
        LagFrameChunk(1, 2, 3)


def test_transition():
    packet = Transition(7, TransitionKind.POWER_RESET)

    assert packet.raw == b'\xfe\x02\x01\x05\x00\x00\x00\x07\x02'
    assert roundtrip(packet).format() == 'Index: 7, Kind: Power Reset'

    assert decode(b'\xfe\x02\x01\x05\x00\x00\x00\x07\x09').format() == 'Index: 7, Kind: Unknown (09)'


def test_transition_embedding_a_malformed_packet():
    raw = b'\xfe\x02\x01\x08' + b'\x00\x00\x00\x05\xff' + b'\x00\x02\x00'

    packet = decode(raw)

    assert isinstance(packet, Transition)
    assert packet.format() == 'Index: 5, Kind: Packet Derived from ConsoleRegion: Invalid payload'


def test_transition_embedding():
    raw = b'\xfe\x02\x01\x0a' + b'\x00\x00\x00\x05\xff' + b'\x00\x02\x01\x01\x02'

    packet = decode(raw)
    embedded = packet.packet.value

    assert isinstance(embedded, ConsoleRegion)
    assert embedded.depth == 1
    assert packet.format() == 'Index: 5, Kind: Packet Derived from ConsoleRegion: PAL'

    authored = Transition(5, TransitionKind.PACKET_DERIVED, ConsoleRegion(Region.PAL))

    assert authored.raw == raw


def test_transition_embedded_change():
    packet = decode(b'\xfe\x02\x01\x0a' + b'\x00\x00\x00\x05\xff' + b'\x00\x02\x01\x01\x02')

    packet.packet.value.region = Region.NTSC

    assert packet.raw == b'\xfe\x02\x01\x0a' + b'\x00\x00\x00\x05\xff' + b'\x00\x02\x01\x01\x01'
    assert packet.format().endswith('from ConsoleRegion: NTSC')


@pytest.mark.parametrize('embedded', [
    b'\x07',                      # too short for a record
    b'\x00\x02\x01\x05\x01',      # truncated record
    b'\x00\x02\x01\x01\x02\xaa',  # garbage after the record
])
def test_transition_invalid_embedding(embedded, caplog):
    raw = write_record(Transition.KEY, b'\x00\x00\x00\x05\xff' + embedded)

    with caplog.at_level(logging.WARNING):
        packet = decode(raw)

    assert packet.packet.value is None
    assert packet.packet.select().error is not None
    assert packet.format() == 'Index: 5, Kind: Packet Derived from invalid packet: %s' % (
        ' '.join('%02X' % _ for _ in embedded))
    assert 'invalid packet embedded' in caplog.text


def test_transition_without_embedded_bytes():
    packet = decode(write_record(Transition.KEY, b'\x00\x00\x00\x05\xff'))

    assert packet.packet.value is None
    assert packet.format() == 'Index: 5, Kind: Packet Derived'


def test_transition_authoring_validation():
    with pytest.raises(ValueError):
        Transition(5, TransitionKind.PACKET_DERIVED)

    with pytest.raises(ValueError):
        Transition(5, TransitionKind.SOFT_RESET, ConsoleRegion(Region.PAL))


def test_embedding_depth_is_limited():
    raw = ConsoleRegion(Region.PAL).raw

    for _ in range(MAX_EMBEDDING_DEPTH + 1):
        raw = write_record(Transition.KEY, b'\x00\x00\x00\x00\xff' + raw)

    packet = decode(raw)

    for depth in range(1, MAX_EMBEDDING_DEPTH + 1):
        packet = packet.packet.value

        assert isinstance(packet, Transition)
        assert packet.depth == depth

    assert packet.packet.value is None
    assert 'from invalid packet: ' in packet.format()


def test_movie_transition():
    packet = MovieTransition(3, TransitionKind.PACKET_DERIVED, ConsoleType(Console.SNES))

    assert packet.raw[:2] == b'\xfe\x04'

    decoded = roundtrip(packet)

    assert decoded.format() == 'Index: 3, Kind: Packet Derived from ConsoleType: SNES'


def test_unsupported():
    raw = b'\x12\x34\x02\x00\x02\xab\xcd'

    packet = decode(raw)

    assert isinstance(packet, Unsupported)
    assert packet.key == b'\x12\x34'
    assert packet.describe().name == 'Unsupported'
    assert packet.format() == 'AB CD'

    assert Unsupported(b'\xab', key=b'\x12\x34').raw == b'\x12\x34\x01\x01\xab'

    with pytest.raises(ValueError):
        Unsupported(b'\xab')


def test_malformed(caplog):
    with caplog.at_level(logging.WARNING):
        packet = decode(b'\x00\x0f\x01\x02\x01\x02')

    assert isinstance(packet, Malformed)
    assert packet.variant is Verified
    assert packet.describe().name == 'Verified'
    assert packet.format() == 'Invalid payload: 01 02'
    assert 'malformed' in caplog.text

    with pytest.raises(ChunkUnpackException):
        registry.decode(b'\x00\x0f\x01\x02\x01\x02', compliant=Compliant.LAYOUT)

    with pytest.raises(ChunkUnpackException) as e:
        registry.decode(b'\x00\x02\x00', compliant=Compliant.LAYOUT)

    assert e.value.chain == ['region']
