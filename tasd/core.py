"""
Chunks: fields grouped together, in the order they are declared.
"""
import logging
from typing import Tuple, List, Dict

from .fields import Field
from .meta import MetaChunk
from .streams import Stream
from .exceptions import (
    ChunkUnpackException,
    UnpackException,
    UnrecoverableException,
)
from .properties import ChunkPhase


logger = logging.getLogger(__name__)


class Chunk(Field, metaclass=MetaChunk):
    """
    A field made of other fields: its size is the sum of the sizes of its
    children and its raw value their concatenation.

    Passing some data (bytes or a path) to the constructor unpacks it,
    otherwise every field takes its default.
    """

    def __init__(self, data=None, **kwargs):
        super().__init__(**kwargs)

        if data is not None:
            stream = Stream(data)
            logger.debug('unpacking \'%s\' from %s' % (self.__class__.__name__, stream))
            self.unpack(stream)
        else:
            self.relayout()

    def create(self, father):
        '''A sub-chunk needs its own fields, so we build a new instance.'''
        instance = self.__class__()
        instance.father = father
        return instance

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''Couples (name, instance), in the order of the layout.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        children = ','.join('%s=%r' % (name, field) for name, field in self.get_fields())
        return '<%s(%s)>' % (self.__class__.__name__, children)

    def __str__(self):
        return ''.join('%s: %r\n' % (name, field) for name, field in self.get_fields())

    def init(self):
        for _, field in self.get_fields():
            field.init()

    def _get_value(self):
        return self

    def _set_value(self, value):
        raise AttributeError(f'cannot set the value of {self.__class__.__name__}, set its fields')

    def _get_size(self):
        return sum(field.size for _, field in self.get_fields())

    def _get_raw(self):
        value = b''
        for name, field in self.get_fields():
            field_raw = field.raw
            logger.debug("field '{}' raw={}".format(name, field_raw))
            value += field_raw

        return value

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        '''Offset and size of each field.'''
        return {name: (field.offset, field.size) for name, field in self.get_fields()}

    def relayout(self, offset=0):
        '''Recompute the offsets of the children starting from offset,
        returning the resulting size.'''
        previous = self._phase
        self._phase = ChunkPhase.RELAYOUTING
        self.offset = offset

        size = 0
        for name, field in self.get_fields():
            logger.debug('relayouting %s.%s' % (self.__class__.__name__, name))
            size += field.relayout(offset=offset + size)

        self._phase = previous

        return size

    def pack(self, stream=None):
        '''Encode the fields one after the other, writing into the stream if
        one is passed; the encoded bytes are returned.'''
        self._phase = ChunkPhase.PACKING
        self.relayout(offset=self.offset or 0)

        value = b''
        for name, field in self.get_fields():
            logger.debug('packing %s.%s' % (self.__class__.__name__, name))
            value += field.pack()

        if stream is not None:
            stream.write(value)

        self._phase = ChunkPhase.DONE

        return value

    def unpack(self, stream):
        '''Decode the fields in order from the current position of the stream.

        When a field fails its name is appended to the chain of the exception,
        so that the caller can tell where the data went wrong.
        '''
        self._phase = ChunkPhase.UNPACKING
        for name, field in self.get_fields():
            logger.debug('unpacking %s.%s' % (self.__class__.__name__, name))

            offset = stream.tell()

            try:
                field.unpack(stream)
            except UnrecoverableException as e:
                e.chain.append(name)
                raise
            except (UnpackException, ChunkUnpackException) as e:
                raise ChunkUnpackException(chain=e.chain + [name], message=e.message) from e
            field.offset = offset

        self._phase = ChunkPhase.DONE
