'''
Variable-length encoding of sizes.

A size is written as one byte, the exponent, telling how many bytes follow,
and then the value itself in big-endian using as few bytes as possible

    length   0 -> 00
    length   5 -> 01 05
    length 256 -> 02 01 00

so that a zero length doesn't have any byte after the exponent.
'''
from bitstring import BitArray

from .. import fields
from ..exceptions import TruncatedRecordException
from ..properties import ChunkPhase


def encode_length(n):
    '''Returns the couple (exponent, length bytes) for the given length.'''
    if n < 0:
        raise ValueError(f'a length cannot be negative ({n})')

    exponent = (n.bit_length() + 7) // 8

    if exponent > 0xff:
        raise ValueError(f'{n} is too big to be encoded as a length')

    length_bytes = BitArray(uint=n, length=exponent * 8).bytes if exponent else b''

    return exponent, length_bytes


def decode_length(data, offset=0):
    '''Returns (exponent, length, consumed) reading the size that starts at offset.'''
    if offset >= len(data):
        raise TruncatedRecordException(offset, message=f'missing size exponent at offset 0x{offset:x}')

    exponent = data[offset]
    end = offset + 1 + exponent

    if end > len(data):
        raise TruncatedRecordException(
            offset,
            message=f'size at offset 0x{offset:x} needs {exponent} bytes, {len(data) - offset - 1} available')

    length = BitArray(bytes(data[offset + 1:end])).uint if exponent else 0

    return exponent, length, 1 + exponent


def pack_length(n):
    exponent, length_bytes = encode_length(n)

    return bytes([exponent]) + length_bytes


class SizeField(fields.Field):
    """Size of a sibling field, encoded with the variable-length encoding.

    While its father is unpacking the value is the one read from the data (so that
    the sibling can use it via a Dependency), otherwise it's always the actual size
    of the sibling: it cannot be set."""

    def __init__(self, target, **kwargs):
        self.target = target
        super().__init__(default=0, **kwargs)

    def _get_value(self):
        if self.father is None or self.father._phase == ChunkPhase.UNPACKING:
            return self._value

        return getattr(self.father, self.target).size

    def _set_value(self, value):
        raise ValueError(f'the size is derived from the field \'{self.target}\'')

    def _get_raw(self) -> bytes:
        return pack_length(self.value)

    def unpack(self, stream):
        exponent = stream.read_exact(1)[0]
        length_bytes = stream.read_exact(exponent)

        self._value = BitArray(length_bytes).uint if exponent else 0
