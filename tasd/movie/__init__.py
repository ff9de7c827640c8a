'''
# TASD

Container of the inputs of a tool assisted speedrun, together with the metadata
needed to play them back on the real console.

The file is

  .-----------------------------------------------------.
  | magic "TASD" (4 bytes)                              |
  | version (2 bytes, big-endian)                       |
  | key width (1 byte)                                  |
  | packets, one after the other up to the end          |
  '-----------------------------------------------------'

see tasd.movie.framing for the layout of a single packet.

    >>> movie = Movie()
    >>> movie.packets.append(ConsoleType(Console.NES))
    >>> Movie(movie.pack()).describe()
    [(0, 'ConsoleType', 'NES')]
'''
import logging
import os
import time

from ..core import Chunk
from .. import fields
from ..enum import Compliant
from ..exceptions import (
    KeyWidthException,
    MagicException,
    TruncatedRecordException,
)
from ..properties import Dependency
from .enum import (
    Console,
    Controller,
    MemoryInitKind,
    Region,
    TransitionKind,
)
from .framing import KEY_WIDTH
from .packets import (
    MAX_EMBEDDING_DEPTH,
    Packet,
    PacketSpec,
    Unsupported,
    Malformed,
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
from .registry import PacketRegistry, registry


logger = logging.getLogger(__name__)

MAGIC = b'TASD'
LATEST_VERSION = 1
HEADER_SIZE = 7


class MovieHeader(Chunk):
    magic     = fields.BlobField(len(MAGIC), default=MAGIC)
    version   = fields.StructField('H', default=LATEST_VERSION)
    key_width = fields.StructField('B', default=KEY_WIDTH)


class PacketArrayField(fields.Field):
    '''Sequence of packets filling up the rest of the data.

    It behaves like a list; every packet must have a key as wide as the one
    declared in the header.'''

    def __init__(self, key_width=Dependency('header.key_width'), **kw):
        self._key_width = key_width
        super().__init__(**kw)

    def init(self):
        self._value = []

    def __repr__(self):
        return '<%s(%d packets)>' % (self.__class__.__name__, len(self._value))

    @property
    def key_width(self):
        if self.father is None:
            return KEY_WIDTH

        return self._key_width.resolve(self)

    def _check(self, packet):
        if not isinstance(packet, Packet):
            raise ValueError(f'only packets can be added to a movie, not {packet.__class__.__name__}')

        if len(packet.key) != self.key_width:
            raise ValueError(f'the key {packet.key.hex()} is not {self.key_width} bytes wide')

        return packet

    def _adopt(self, packet):
        packet.father = self
        return packet

    def _set_value(self, value):
        packets = [self._check(_) for _ in value]
        self._value = [self._adopt(_) for _ in packets]

    def __len__(self):
        return len(self._value)

    def __iter__(self):
        return iter(self._value)

    def __getitem__(self, index):
        return self._value[index]

    def __setitem__(self, index, packet):
        if isinstance(index, slice):
            packets = [self._check(_) for _ in packet]
            self._value[index] = [self._adopt(_) for _ in packets]
        else:
            self._value[index] = self._adopt(self._check(packet))

        self.changed()

    def __delitem__(self, index):
        removed = self._value[index]

        for packet in (removed if isinstance(index, slice) else [removed]):
            packet.father = None

        del self._value[index]
        self.changed()

    def __contains__(self, packet):
        return any(_ is packet for _ in self._value)

    def index(self, packet):
        for position, _ in enumerate(self._value):
            if _ is packet:
                return position

        raise ValueError(f'{packet!r} is not in the movie')

    def append(self, packet):
        self._value.append(self._adopt(self._check(packet)))
        self.changed()

    def insert(self, index, packet):
        self._value.insert(index, self._adopt(self._check(packet)))
        self.changed()

    def extend(self, packets):
        packets = [self._check(_) for _ in packets]
        self._value.extend(self._adopt(_) for _ in packets)
        self.changed()

    def remove(self, packet):
        del self[self.index(packet)]

    def clear(self):
        del self._value[:]
        self.changed()

    def _get_raw(self) -> bytes:
        return b''.join(_.raw for _ in self._value)

    def unpack(self, stream):
        # the offsets of the records are relative to the whole file
        data = stream.getvalue()
        offset = stream.tell()
        key_width = self.key_width

        packets = []
        while offset < len(data):
            packet, offset = registry.decode(
                data, offset, key_width=key_width, compliant=Compliant.INHERIT, father=self)
            logger.debug('decoded %s' % packet)
            packets.append(packet)

        stream.seek(offset)

        self._value = packets


class Movie(Chunk):
    '''
    Passing bytes or a path decodes them; without data an empty movie with the
    latest version is built.

    A bad magic raises MagicException, a header declaring empty keys
    KeyWidthException, a record not complete TruncatedRecordException:
    in no case a partial movie is returned.
    '''
    header  = MovieHeader()
    packets = PacketArrayField()

    def __init__(self, data=None, compliant=Compliant.NONE):
        self.path = data if isinstance(data, (str, os.PathLike)) else None
        super().__init__(data=data, compliant=compliant)

    @classmethod
    def load(cls, data, compliant=Compliant.NONE):
        return cls(data, compliant=compliant)

    @property
    def version(self):
        return self.header.version.value

    @version.setter
    def version(self, value):
        self.header.version.value = value

    @property
    def key_width(self):
        return self.header.key_width.value

    def unpack(self, stream):
        data = stream.getvalue()

        if not data.startswith(MAGIC):
            raise MagicException(chain=['magic', 'header'], message=f'the data starts with {data[:len(MAGIC)]!r}')

        if len(data) < HEADER_SIZE:
            raise TruncatedRecordException(0, message=f'the header needs {HEADER_SIZE} bytes, only {len(data)} available')

        if data[HEADER_SIZE - 1] == 0:
            raise KeyWidthException(chain=['key_width', 'header'], message='the packets cannot have empty keys')

        super().unpack(stream)

        logger.debug('movie version %d with %d packets' % (self.version, len(self.packets)))

    def save(self, path=None):
        '''Write the movie into path or, without it, into the file it was loaded from.'''
        path = path if path is not None else self.path

        if path is None:
            raise ValueError('there is no path to save the movie into')

        data = self.pack()

        with open(path, 'wb') as f:
            f.write(data)

        self.path = path

    def search_by_key(self, *keys):
        '''Return the packets with one of the given keys, in order.

        Keys can be passed one by one or as a single list; a packet class stands for its key.'''
        if len(keys) == 1 and isinstance(keys[0], (list, tuple, set, frozenset)):
            keys = keys[0]

        keys = {_.KEY if isinstance(_, type) else bytes(_) for _ in keys}

        return [_ for _ in self.packets if _.key in keys]

    def get_inputs(self, port):
        '''All the input chunks for the port, joined in the order of the file.'''
        return b''.join(
            _.chunks.value for _ in self.search_by_key(InputChunks)
            if isinstance(_, InputChunks) and _.port.value == port)

    def touch(self, epoch=None):
        '''Set the time of the last modification of the dump, keeping a single
        DumpLastModified packet at the position of the first one.'''
        if epoch is None:
            epoch = int(time.time())

        found = self.search_by_key(DumpLastModified)

        for duplicate in found[1:]:
            self.packets.remove(duplicate)

        packet = found[0] if found else None

        if isinstance(packet, DumpLastModified):
            packet.epoch = epoch
        elif packet is not None:
            index = self.packets.index(packet)
            packet = DumpLastModified(epoch)
            self.packets[index] = packet
        else:
            packet = DumpLastModified(epoch)
            self.packets.append(packet)

        return packet

    def describe(self):
        '''List of (index, name, formatted payload) for each packet.'''
        return [(index, _.describe().name, _.format()) for index, _ in enumerate(self.packets)]
