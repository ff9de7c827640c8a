'''
Framing of the records (packets) of a movie.

Each record is

  .-----------------------------------------------------.
  | key (key width bytes)                               |
  | exponent (1 byte)                                   |
  | length (exponent bytes, big-endian)                 |
  | payload (length bytes)                              |
  '-----------------------------------------------------'

nothing here knows about the meaning of the payload.
'''
import logging

from ..common.varlen import decode_length, pack_length
from ..exceptions import TruncatedRecordException


logger = logging.getLogger(__name__)

KEY_WIDTH = 2


def read_record(data, offset=0, key_width=KEY_WIDTH):
    '''Slice the record starting at offset.

    It returns (key, raw, payload, new_offset) where raw is the whole record.'''
    size_offset = offset + key_width

    if size_offset > len(data):
        raise TruncatedRecordException(offset, message=f'truncated key at offset 0x{offset:x}')

    key = bytes(data[offset:size_offset])

    try:
        exponent, length, consumed = decode_length(data, size_offset)
    except TruncatedRecordException as e:
        raise TruncatedRecordException(offset, message=e.message) from e

    end = size_offset + consumed + length

    if end > len(data):
        raise TruncatedRecordException(
            offset,
            message=f'record {key.hex()} at offset 0x{offset:x} declares {length} bytes of payload, '
                    f'{len(data) - size_offset - consumed} available')

    raw = bytes(data[offset:end])
    payload = raw[key_width + consumed:]

    logger.debug('record %s at 0x%x: exponent %d, payload %d bytes' % (key.hex(), offset, exponent, length))

    return key, raw, payload, end


def write_record(key, payload):
    '''Build the raw record from its key and payload.'''
    return bytes(key) + pack_length(len(payload)) + bytes(payload)
