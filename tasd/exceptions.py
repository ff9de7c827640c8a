class TasdException(Exception):
    '''Base class to extend in order to throw exception in tasd.

    It takes a single argument that represents the chain of the layer that
    caused the exception.
    '''

    def __init__(self, chain, message=None):
        self.chain = chain
        self.message = message
        super().__init__(message)

    def __str__(self):
        where = '.'.join(reversed(self.chain))
        if where and self.message:
            return f'{where}: {self.message}'

        return self.message or where


class UnpackException(TasdException):
    pass


class MagicException(TasdException):
    '''The data doesn't start with the magic of the format.'''
    pass


class ChunkUnpackException(TasdException):
    pass


class TruncatedRecordException(TasdException):
    '''There are not enough bytes to complete a record: the offset
    is the position of the record inside the buffer being decoded.'''

    def __init__(self, offset, message=None, chain=None):
        self.offset = offset
        super().__init__(
            chain if chain is not None else [],
            message or f'truncated record at offset 0x{offset:x}',
        )


class MalformedEmbeddingException(TasdException):
    '''The bytes embedded into a transition are not a valid record.

    This is never fatal: who catches it keeps the bytes as they are.'''
    pass


class UnrecoverableException(TasdException):
    '''This is useful when is not possible to let an unknown value
    slip through the parsing.'''
    pass


class KeyWidthException(TasdException):
    '''The header declares keys that cannot identify a packet.'''
    pass
