'''
Dispatch of the records to the class of packet indicated by their key.

Unknown keys are not an error: the record becomes an Unsupported packet that
writes back the very same bytes.
'''
import logging

from ..enum import Compliant
from ..exceptions import ChunkUnpackException
from .framing import KEY_WIDTH, read_record
from .packets import Malformed, Unsupported, key2packet


logger = logging.getLogger(__name__)


class PacketRegistry(object):

    def __init__(self, mapping, default=Unsupported):
        self.mapping = dict(mapping)
        self.default = default

    def __contains__(self, key):
        return bytes(key) in self.mapping

    def __iter__(self):
        return iter(self.specs())

    def get(self, key):
        return self.mapping.get(bytes(key), self.default)

    def specs(self):
        '''The PacketSpec of every known kind, in order of key.'''
        return [self.mapping[key].spec(key) for key in sorted(self.mapping)]

    def describe(self, key):
        return self.get(key).spec(key)

    def decode(self, data, offset=0, key_width=KEY_WIDTH, compliant=Compliant.NONE, depth=0, father=None):
        '''Decode the record starting at offset, returning the packet and the offset
        of the next record.

        A payload that doesn't follow the layout of its kind becomes a Malformed packet,
        unless the compliance asks for Compliant.LAYOUT.'''
        key, raw, payload, new_offset = read_record(data, offset, key_width=key_width)

        cls = self.get(key)

        try:
            packet = cls.decode(key, raw, payload, depth=depth, compliant=compliant, father=father)
        except ChunkUnpackException as e:
            packet = Malformed.decode(key, raw, payload, depth=depth, compliant=compliant, father=father)
            packet.variant = cls
            packet.reason = str(e)

            if packet.is_compliant(Compliant.LAYOUT):
                raise

            logger.warning('%s at offset 0x%x is malformed: %s' % (cls.NAME or cls.__name__, offset, e))

        return packet, new_offset


registry = PacketRegistry(key2packet)
