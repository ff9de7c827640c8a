'''
# Packets

Each packet of a movie is a record with a key selecting its kind and a payload
whose layout depends on the kind; the classes here describe the payloads and
the way they are shown to humans.

A packet keeps the exact bytes it was decoded from until one of its fields is
changed: only then the record is encoded again from the fields.

    >>> packet = LatchFilter(10)
    >>> packet.raw
    b'\\x01\\x01\\x01\\x01\\n'
    >>> packet.format()
    '1.0ms'
'''
import logging
from collections import namedtuple
from datetime import datetime, timezone

from ..core import Chunk
from .. import fields
from ..common.varlen import SizeField
from ..enum import Compliant
from ..exceptions import (
    ChunkUnpackException,
    MalformedEmbeddingException,
    TruncatedRecordException,
)
from ..properties import Dependency
from ..streams import Stream
from .enum import (
    Console,
    Controller,
    MemoryInitKind,
    Region,
    TransitionKind,
)
from .framing import read_record, write_record


logger = logging.getLogger(__name__)

MAX_EMBEDDING_DEPTH = 8

PacketSpec = namedtuple('PacketSpec', ['key', 'name', 'description'])


def hexdump(data):
    return ' '.join('%02X' % _ for _ in data)


def yes_no(value):
    return {0: 'No', 1: 'Yes'}.get(value, 'Unknown (%02X)' % value)


class Packet(Chunk):
    '''Base class of every packet.

    The positional arguments of the constructor follow the order of the fields,
    the keyword arguments are the fields by name; "key" is needed only by the
    classes without a KEY of their own.'''
    KEY = None
    NAME = None
    DESCRIPTION = ''

    def __init__(self, *args, key=None, **kwargs):
        key = self.KEY if key is None else key

        if not key:
            raise ValueError(f'{self.__class__.__name__} needs a key')

        names = self.get_ordered_fields_name()

        if len(args) > len(names):
            raise TypeError(f'{self.__class__.__name__} takes at most {len(names)} values, {len(args)} given')

        values = dict(zip(names, args))

        for name in kwargs:
            if name not in names:
                raise TypeError(f'{self.__class__.__name__} has no field named \'{name}\'')
            if name in values:
                raise TypeError(f'{self.__class__.__name__} got multiple values for \'{name}\'')

        values.update(kwargs)

        self.key = bytes(key)
        self.depth = 0
        self._raw = None

        super().__init__()

        for name in names:
            if name in values:
                setattr(self, name, values[name])

    def __repr__(self):
        return '<%s(%s)>' % (self.describe().name, self.format())

    def __str__(self):
        return '%s: %s' % (self.describe().name, self.format())

    @classmethod
    def spec(cls, key=None):
        return PacketSpec(bytes(key or cls.KEY), cls.NAME or cls.__name__, cls.DESCRIPTION)

    def describe(self):
        return self.spec(self.key)

    def format(self):
        '''Human readable representation of the payload.'''
        return hexdump(self.get_payload())

    def changed(self):
        self._raw = None
        super().changed()

    def get_payload(self):
        if self._raw is not None:
            return read_record(self._raw, key_width=len(self.key))[2]

        return Chunk._get_raw(self)

    def _get_raw(self):
        if self._raw is None:
            self._raw = write_record(self.key, self.get_payload())

        return self._raw

    def _get_size(self):
        return len(self.raw)

    @classmethod
    def decode(cls, key, raw, payload, depth=0, compliant=Compliant.NONE, father=None):
        '''Build the packet from the record already sliced by the framing.

        The payload must be consumed entirely, otherwise ChunkUnpackException is raised.'''
        packet = cls(key=key)
        packet.depth = depth
        packet.compliant = compliant
        packet.father = father

        stream = Stream(payload)
        packet.unpack(stream)

        left = stream.remaining()

        if left:
            raise ChunkUnpackException(chain=[], message=f'{left} bytes left over in the payload')

        packet._raw = bytes(raw)

        return packet


class Unsupported(Packet):
    '''Packet of a kind we don't know: the bytes are kept as they are.'''
    NAME = 'Unsupported'
    DESCRIPTION = 'Packet is not known to this software.'

    data = fields.BlobField()


class Malformed(Unsupported):
    '''Known kind with a payload not following its layout.'''

    def __init__(self, *args, variant=None, reason=None, **kwargs):
        self.variant = variant
        self.reason = reason
        super().__init__(*args, **kwargs)

    def describe(self):
        if self.variant is None:
            return super().describe()

        return self.variant.spec(self.key)

    def format(self):
        payload = self.get_payload()
        return 'Invalid payload: %s' % hexdump(payload) if payload else 'Invalid payload'


class ConsoleType(Packet):
    KEY = b'\x00\x01'
    NAME = 'ConsoleType'
    DESCRIPTION = 'The console this TAS is made for.'

    kind = fields.StructField('B', enum=Console, default=Console.NES)
    custom = fields.SelectField('kind', {
        Console.CUSTOM: (fields.StringField, (), {}),
        fields.SelectField.Type.DEFAULT: (fields.NullField, (), {}),
    })

    def __init__(self, kind=Console.NES, custom=None, **kwargs):
        if custom is not None:
            if kind not in (Console.CUSTOM, Console.CUSTOM.value):
                raise ValueError('a custom label is allowed only for the Custom console')
            kwargs['custom'] = custom

        super().__init__(kind=kind, **kwargs)

    def format(self):
        label = Console.describe(self.kind.value, unknown='Unknown')

        if self.kind.value == Console.CUSTOM:
            return '%s: %s' % (label, self.custom.value)

        return label


class ConsoleRegion(Packet):
    KEY = b'\x00\x02'
    NAME = 'ConsoleRegion'
    DESCRIPTION = 'Console region required to play this TAS.'

    region = fields.StructField('B', enum=Region, default=Region.NTSC)

    def format(self):
        return Region.describe(self.region.value, unknown='Unknown')


class TextPacket(Packet):
    '''Payload made only of an UTF-8 string'''
    text = fields.StringField()

    def format(self):
        return self.text.value


class GameTitle(TextPacket):
    KEY = b'\x00\x03'
    NAME = 'GameTitle'
    DESCRIPTION = '(string) Title of the game.'


class Author(TextPacket):
    KEY = b'\x00\x04'
    NAME = 'Author'
    DESCRIPTION = '(string) Name of one author of the TAS. (e.g. "Bender B. Rodriguez")'


class Category(TextPacket):
    KEY = b'\x00\x05'
    NAME = 'Category'
    DESCRIPTION = '(string) Category of the TAS. (e.g. "any%")'


class EmulatorName(TextPacket):
    KEY = b'\x00\x06'
    NAME = 'EmulatorName'
    DESCRIPTION = '(string) Name of the emulator used to dump this file.'


class EmulatorVersion(TextPacket):
    KEY = b'\x00\x07'
    NAME = 'EmulatorVersion'
    DESCRIPTION = '(string) Version of the emulator.'


class EmulatorCore(TextPacket):
    KEY = b'\x00\x08'
    NAME = 'EmulatorCore'
    DESCRIPTION = '(string) Name of emulation core being used. (may not be applicable to all emulators)'


class TimestampPacket(Packet):
    '''Seconds from the Unix epoch, signed'''
    epoch = fields.StructField('q')

    def format(self):
        try:
            when = datetime.fromtimestamp(self.epoch.value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return 'Invalid timestamp (%d)' % self.epoch.value

        return when.strftime('%Y-%m-%d %H:%M:%S UTC')


class TASLastModified(TimestampPacket):
    KEY = b'\x00\x09'
    NAME = 'TASLastModified'
    DESCRIPTION = '(Unix epoch in seconds) Last time the TAS movie was edited. Usually TASVideos.org publication date.'


class DumpLastModified(TimestampPacket):
    KEY = b'\x00\x0a'
    NAME = 'DumpLastModified'
    DESCRIPTION = '(Unix Epoch in seconds) Last time this file was edited.'


class CounterPacket(Packet):
    count = fields.UIntField(4)

    def format(self):
        return str(self.count.value)


class TotalFrames(CounterPacket):
    KEY = b'\x00\x0b'
    NAME = 'TotalFrames'
    DESCRIPTION = 'Total number of frames from original movie, including lag frames. (useful for calculating movie length)'


class Rerecords(CounterPacket):
    KEY = b'\x00\x0c'
    NAME = 'Rerecords'
    DESCRIPTION = 'TAS rerecord count.'


class SourceLink(TextPacket):
    KEY = b'\x00\x0d'
    NAME = 'SourceLink'
    DESCRIPTION = '(string) URL link to publication, video upload of this TAS, or any other relevant websites.'


class BlankFrames(Packet):
    KEY = b'\x00\x0e'
    NAME = 'BlankFrames'
    DESCRIPTION = ('Signed 16-bit number of blank frames to prepend to the TAS inputs (positive number), '
                   'or frames to ignore from the start of the TAS (negative number).')

    frames = fields.StructField('h')

    def format(self):
        return str(self.frames.value)


class Verified(Packet):
    KEY = b'\x00\x0f'
    NAME = 'Verified'
    DESCRIPTION = 'Whether or not this TAS has been verified by someone. (boolean, value of either 00 or 01)'

    verified = fields.StructField('B')

    def format(self):
        return yes_no(self.verified.value)


class MemoryInit(Packet):
    '''
    The payload is

     1. the kind of initialization
     2. if it's required for verification (0 optional, 1 required)
     3. the name of the memory space, prefixed by its size with the same encoding of the records
     4. the content of the memory, only for the custom kind
    '''
    KEY = b'\x00\x10'
    NAME = 'MemoryInit'
    DESCRIPTION = 'Initialization of named memory space.'

    kind = fields.StructField('B', enum=MemoryInitKind, default=MemoryInitKind.NONE_REQUIRED)
    required = fields.StructField('B')
    space_size = SizeField('space')
    space = fields.StringField(n=Dependency('.space_size'))
    payload = fields.SelectField('kind', {
        MemoryInitKind.CUSTOM: (fields.BlobField, (), {}),
        fields.SelectField.Type.DEFAULT: (fields.NullField, (), {}),
    })

    def __init__(self, kind=MemoryInitKind.NONE_REQUIRED, required=False, space='', payload=None, **kwargs):
        if payload is not None:
            if kind not in (MemoryInitKind.CUSTOM, MemoryInitKind.CUSTOM.value):
                raise ValueError('a payload is allowed only for the Custom initialization')
            kwargs['payload'] = payload

        super().__init__(kind=kind, required=int(required), space=space, **kwargs)

    def format(self):
        text = '%s, Required: %s, Space: %s' % (
            MemoryInitKind.describe(self.kind.value, unknown='Unknown Kind'),
            yes_no(self.required.value),
            self.space.value,
        )

        if self.kind.value == MemoryInitKind.CUSTOM and self.payload.value:
            text += ', Payload: %s' % hexdump(self.payload.value)

        return text


class PortController(Packet):
    KEY = b'\x00\xf0'
    NAME = 'PortController'
    DESCRIPTION = ('Specify which controller is plugged into a specific port number (1-indexed). '
                   '(1 byte Port Number, 2 byte Controller Type)')

    port = fields.StructField('B', default=1)
    controller = fields.StructField('H', enum=Controller, default=Controller.NES_STANDARD)

    def format(self):
        return 'Port #%d, Controller Type: %s' % (
            self.port.value,
            Controller.describe(self.controller.value),
        )


class LatchFilter(Packet):
    KEY = b'\x01\x01'
    NAME = 'LatchFilter'
    DESCRIPTION = 'Latch Filter time span. (value multiplied by 0.1ms; inclusive range of 0.0ms to 25.5ms)'

    filter = fields.StructField('B')

    def format(self):
        return '%.1fms' % (self.filter.value * 0.1)


class ClockFilter(Packet):
    KEY = b'\x01\x02'
    NAME = 'ClockFilter'
    DESCRIPTION = 'Clock Filter time span. (value multiplied by 0.25us; inclusive range of 0.0us to 63.75us)'

    filter = fields.StructField('B')

    def format(self):
        return '%.2fus' % (self.filter.value * 0.25)


class Overread(Packet):
    KEY = b'\x01\x03'
    NAME = 'Overread'
    DESCRIPTION = 'The data value to use when overread clock pulses occur. (active-low: 0 = HIGH, 1 = LOW)'

    overread = fields.StructField('B')

    def format(self):
        return {0: 'HIGH', 1: 'LOW'}.get(self.overread.value, 'Unknown (%02X)' % self.overread.value)


class GameGenieCode(TextPacket):
    KEY = b'\x01\x04'
    NAME = 'GameGenieCode'
    DESCRIPTION = '(string) 6 or 8 character game genie code.'


class InputChunks(Packet):
    '''The inputs of a port are the concatenation of the chunks
    of all the packets for that port, in the order of the file.'''
    KEY = b'\xfe\x01'
    NAME = 'InputChunks'
    DESCRIPTION = 'Port number (1-indexed) + a variable number of input chunks for that port.'

    port = fields.StructField('B', default=1)
    chunks = fields.BlobField()

    def format(self):
        return 'Port #%d, Chunks: %s' % (self.port.value, hexdump(self.chunks.value))


class PacketField(fields.Field):
    """Complete record embedded at the end of the payload of a packet.

    It's decoded with the key width of the packet containing it; when the bytes are
    not a valid record they are kept as they are, the value is None and "error"
    tells what went wrong."""

    def init(self):
        self._value = None
        self._data = b''
        self.error = None

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self._value if self._value is not None else self._data)

    def _set_value(self, value):
        if not isinstance(value, Packet):
            raise ValueError(f'{self.name} must be a packet, not {value.__class__.__name__}')

        value.father = self
        self._value = value
        self._data = b''
        self.error = None

    def _get_raw(self) -> bytes:
        return self._value.raw if self._value is not None else self._data

    def decode(self, data, key_width, depth):
        from .registry import registry

        if depth > MAX_EMBEDDING_DEPTH:
            raise MalformedEmbeddingException(chain=[], message=f'embedding deeper than {MAX_EMBEDDING_DEPTH} levels')

        if len(data) < key_width + 1:
            raise MalformedEmbeddingException(
                chain=[], message=f'{len(data)} bytes are too few for a record with a key of {key_width} bytes')

        try:
            packet, end = registry.decode(
                data, key_width=key_width, compliant=Compliant.INHERIT, depth=depth, father=self)
        except TruncatedRecordException as e:
            raise MalformedEmbeddingException(chain=[], message=e.message) from e

        if end != len(data):
            raise MalformedEmbeddingException(
                chain=[], message=f'{len(data) - end} bytes of garbage after the embedded record')

        return packet

    def unpack(self, stream):
        owner = self.father
        data = stream.read_all()

        self.init()

        try:
            self._value = self.decode(data, len(owner.key), owner.depth + 1)
        except MalformedEmbeddingException as e:
            logger.warning('invalid packet embedded into %s: %s' % (owner.__class__.__name__, e))
            self._data = data
            self.error = e


def is_packet_derived(kind):
    return kind in (TransitionKind.PACKET_DERIVED, TransitionKind.PACKET_DERIVED.value)


class Transition(Packet):
    '''
    A transition happens at an index counted on the inputs of all the InputChunks
    packets; when the kind is "packet derived" the rest of the payload is a complete
    packet, otherwise optional bytes.
    '''
    KEY = b'\xfe\x02'
    NAME = 'Transition'
    DESCRIPTION = ('Defines a transition at a specific point in the TAS. First 4 bytes is the frame/index number '
                   '(0-indexed) based on all inputs contained in all FE01 packets. Then 1 byte specifying the '
                   'transition type. Followed by a variable number of bytes if applicable.')

    index = fields.StructField('I')
    kind = fields.StructField('B', enum=TransitionKind, default=TransitionKind.SOFT_RESET)
    packet = fields.SelectField('kind', {
        TransitionKind.PACKET_DERIVED: (PacketField, (), {}),
        fields.SelectField.Type.DEFAULT: (fields.BlobField, (), {'optional': True}),
    })

    def __init__(self, index=0, kind=TransitionKind.SOFT_RESET, packet=None, **kwargs):
        if is_packet_derived(kind):
            if not isinstance(packet, Packet):
                raise ValueError(f'the kind {TransitionKind.PACKET_DERIVED.label} needs a packet to embed')
        elif isinstance(packet, Packet):
            raise ValueError('only a packet derived transition can embed a packet')

        if packet is not None:
            kwargs['packet'] = packet

        super().__init__(index=index, kind=kind, **kwargs)

    def format(self):
        text = 'Index: %d, Kind: %s' % (self.index.value, TransitionKind.describe(self.kind.value))

        if not is_packet_derived(self.kind.value):
            return text

        embedded = self.packet.select()

        if embedded.value is None:
            if not embedded.raw:
                return text

            return text + ' from invalid packet: %s' % hexdump(embedded.raw)

        return text + ' from %s: %s' % (embedded.value.describe().name, embedded.value.format())


class LagFrameChunk(Packet):
    KEY = b'\xfe\x03'
    NAME = 'LagFrameChunk'
    DESCRIPTION = ('Specifies a chunk of lag frames based on the original TAS movie. First 4 bytes is the frame '
                   'number (0-indexed) this chunk starts on. Second 4 bytes is the number of sequential lag '
                   'frames in this chunk.')

    index = fields.StructField('I')
    length = fields.StructField('I')

    def format(self):
        return 'Index: %d, Length: %d' % (self.index.value, self.length.value)


class MovieTransition(Transition):
    KEY = b'\xfe\x04'
    NAME = 'MovieTransition'
    DESCRIPTION = ('Defines a transition based on the original TAS movie frames (including lag frames). Using '
                   'this packet requires FE03 packets. First 4 bytes is the movie frame number (0-indexed). Then '
                   '1 byte specifying the transition type. Followed by a variable number of bytes if applicable.')


key2packet = {
    _.KEY: _ for _ in (
        ConsoleType,
        ConsoleRegion,
        GameTitle,
        Author,
        Category,
        EmulatorName,
        EmulatorVersion,
        EmulatorCore,
        TASLastModified,
        DumpLastModified,
        TotalFrames,
        Rerecords,
        SourceLink,
        BlankFrames,
        Verified,
        MemoryInit,
        PortController,
        LatchFilter,
        ClockFilter,
        Overread,
        GameGenieCode,
        InputChunks,
        Transition,
        LagFrameChunk,
        MovieTransition,
    )
}
