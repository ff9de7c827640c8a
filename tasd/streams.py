import io
import logging

from .exceptions import UnpackException


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/File object to
    uniform its properties: mainly we need exact reads that fail
    loudly when the data is over.'''
    def __init__(self, obj):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self.obj = obj

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)

        if init_method is None:
            raise ValueError('\'%s\' cannot be used as a stream' % self.obj.__class__.__name__)

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __del__(self):
        obj = self.__dict__.get('obj')
        if obj is not None and hasattr(obj, 'close'):
            obj.close()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self._type.__name__)

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        with open(self.obj, 'rb') as f:
            self.obj = io.BytesIO(f.read())

    init_PosixPath = init_str
    init_WindowsPath = init_str

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_bytearray(self):
        self.obj = io.BytesIO(bytes(self.obj))

    init_memoryview = init_bytearray

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        self.obj.seek(offset)

        return self

    def read_exact(self, n):
        '''Read exactly n bytes or raise UnpackException.'''
        offset = self.obj.tell()
        data = self.obj.read(n)

        if len(data) != n:
            raise UnpackException(
                chain=[],
                message=f'needed {n} bytes at offset 0x{offset:x}, only {len(data)} available',
            )

        return data

    def read_all(self):
        '''Returns all the data from the actual position up to the end.'''
        return self.obj.read()

    def remaining(self):
        position = self.obj.tell()
        end = self.obj.seek(0, io.SEEK_END)
        self.obj.seek(position)

        return end - position

    def getvalue(self):
        return self.obj.getvalue()

    def write(self, data):
        return self.obj.write(data)

