"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable without need for relayouting.
"""
import logging
import struct
from enum import Enum, Flag, auto

from bitstring import BitArray

from .enum import Compliant
from .meta import FieldBase, Endianess
from .properties import Dependency, ChunkPhase
from .exceptions import UnpackException, UnrecoverableException


logger = logging.getLogger(__name__)


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, name=None, father=None, default=None, offset=None,
                 endianess=Endianess.BIG_ENDIAN, compliant=Compliant.INHERIT):
        super().__init__()
        self._phase = ChunkPhase.INIT
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess
        self.compliant = compliant

        self.init()

    def init(self):
        self._value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.value)

    def is_compliant(self, level):
        '''Returns True if this field, or a father it inherits from, asks for the given level'''
        instance = self
        while instance is not None:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    def changed(self):
        '''Notify the hierarchy that something below has a new value.'''
        if self.father is not None:
            self.father.changed()

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = value

    def __set_value(self, value):
        self._set_value(value)
        self.changed()

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self.__set_value(value))

    def _get_size(self):
        return len(self.raw)

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
    )

    def relayout(self, offset=0):
        logger.debug("relayouting %s", self.__class__.__name__)
        self.offset = offset

        return self.size

    def pack(self, stream=None):
        raw = self.raw

        if stream is not None:
            stream.write(raw)

        return raw

    def unpack(self, stream):
        raise NotImplementedError('you need to implement this in the subclass')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the integer value of the field itself.
    A value missing from the enum is kept as a plain integer unless the field is compliant
    with Compliant.ENUM.
    """

    def __init__(self, format, default=0, enum=None, **kw):
        self.format = format
        self.enum = enum
        super().__init__(default=default, **kw)

    def __str__(self):
        width = struct.calcsize(self.get_format()) * 2
        return '0x%0*x' % (width, self.as_int())

    def value_from_default(self):
        return self._to_enum(self.default) if self.enum else self.default

    def get_format(self):
        return '%s%s' % ('<' if self.endianess == Endianess.LITTLE_ENDIAN else '>', self.format)

    def as_int(self) -> int:
        return self.value.value if isinstance(self.value, Enum) else self.value

    def _to_enum(self, value):
        if isinstance(value, self.enum):
            return value

        try:
            return self.enum(value)
        except ValueError:
            return value

    def _set_value(self, value) -> None:
        if isinstance(value, Enum):
            if self.enum is None or not isinstance(value, self.enum):
                raise ValueError(f'{value!r} is not a valid value for {self.__class__.__name__}({self.format})')
            integer = value.value
        else:
            integer = int(value)

        try:
            struct.pack(self.get_format(), integer)
        except struct.error as e:
            raise ValueError(f'{value!r} does not fit into \'{self.format}\': {e}') from e

        self._value = self._to_enum(integer) if self.enum else integer

    def _get_raw(self) -> bytes:
        return struct.pack(self.get_format(), self.as_int())

    def _unpack_enum(self, value: int):
        try:
            return self.enum(value)
        except ValueError:
            if self.is_compliant(Compliant.ENUM):
                raise UnrecoverableException(
                    chain=[],
                    message=f'{self.enum.__name__} doesn\'t have element with value 0x{value:x}')

            logger.warning(f'{self.enum.__name__} doesn\'t have element with value 0x{value:x} in it')

        return value

    def unpack(self, stream):
        raw = stream.read_exact(struct.calcsize(self.get_format()))
        value = struct.unpack(self.get_format(), raw)[0]

        if self.enum:
            value = self._unpack_enum(value)

        self._value = value


class UIntField(Field):
    """Unsigned big-endian integer taking all the bytes it's given.

    Some producers write counters wider than needed, so when unpacking the
    width is the one found in the data and it's kept for packing back."""

    def __init__(self, width=4, default=0, **kw):
        self.width = width
        super().__init__(default=default, **kw)

    def init(self):
        self._width = self.width
        super().init()

    def _set_value(self, value):
        value = int(value)

        if value < 0 or value.bit_length() > self._width * 8:
            raise ValueError(f'{value} does not fit into an unsigned integer of {self._width} bytes')

        self._value = value

    def _get_raw(self) -> bytes:
        return BitArray(uint=self._value, length=self._width * 8).bytes

    def unpack(self, stream):
        raw = stream.read_all()

        if not raw:
            raise UnpackException(chain=[], message='no bytes for an unsigned integer')

        self._width = len(raw)
        self._value = BitArray(raw).uint


class StringField(Field):
    """Represent an UTF-8 string.

    Its length is given by "n", an integer or a Dependency; if missing the string
    takes all the bytes remaining. Invalid sequences are replaced while unpacking.
    """

    def __init__(self, n=None, default='', **kw):
        if n is not None and not isinstance(n, (int, Dependency)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self._n = n
        super().__init__(default=default, **kw)

    def __str__(self):
        return self.value

    @property
    def length(self):
        if isinstance(self._n, Dependency):
            return self._n.resolve(self)

        return self._n

    def _set_value(self, value) -> None:
        if not isinstance(value, str):
            raise ValueError(f'{self.__class__.__name__} can only contain str, not {value.__class__.__name__}')

        if isinstance(self._n, int) and len(value.encode('utf-8')) != self._n:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self._n} bytes)')

        self._value = value

    def _get_raw(self) -> bytes:
        return self.value.encode('utf-8')

    def unpack(self, stream):
        length = self.length

        raw = stream.read_all() if length is None else stream.read_exact(length)

        self._value = raw.decode('utf-8', errors='replace')


class BlobField(Field):
    '''Contiguous chunk of bytes: "n" of them or, without it, as much stream as possible.

    With "optional" the value is None when there is nothing left.'''

    def __init__(self, n=None, optional=False, **kw):
        self.length = n
        self.optional = optional
        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.value.hex() if self.value else self.value)

    def value_from_default(self):
        if self.default is not None:
            return self.default

        return None if self.optional else b''

    def _set_value(self, value):
        if value is None:
            if not self.optional:
                raise ValueError(f'{self.name} is not optional')
        else:
            value = bytes(value)

            if self.length is not None and len(value) != self.length:
                raise ValueError(f'{self.name} must be {self.length} bytes long')

        self._value = value

    def _get_raw(self) -> bytes:
        return self.value or b''

    def unpack(self, stream):
        raw = stream.read_all() if self.length is None else stream.read_exact(self.length)

        self._value = None if (self.optional and not raw) else raw


class NullField(Field):
    '''Field that occupies nothing: useful as a branch of SelectField.'''

    def _set_value(self, value):
        if value is not None:
            raise ValueError(f'{self.name} cannot hold a value here')

    def _get_raw(self) -> bytes:
        return b''

    def unpack(self, stream):
        pass


class SelectField(Field):
    """Allow to select the kind of final field based on condition in the parent chunk.
    You need to pass the name of the field to use as key and a dictionary with the mapping
    between type and field. You can use Type.DEFAULT as a default.

    Like in the following example we have a format the use the first byte to indicate what
    follows: for value 0xff you have a string, otherwise nothing

        kind2field = {
            Kind.CUSTOM: (fields.StringField, (), {}),
            fields.SelectField.Type.DEFAULT: (fields.NullField, (), {}),
        }

        class DummyChunk(Chunk):
            kind = fields.StructField('B', enum=Kind)
            data = fields.SelectField('kind', kind2field)

    When the key changes the selected field is built again, losing its value.
    """
    class Type(Flag):
        DEFAULT = auto()

    def __init__(self, key, mapping, **kwargs):
        self._key = key
        self._mapping = mapping

        super().__init__(**kwargs)

    def __repr__(self):
        return f'<{self.__class__.__name__}{self._field!r}>'

    def init(self):
        self._field = None
        self._selected = None

    def _get_key(self):
        if self.father is None:
            return SelectField.Type.DEFAULT

        value = getattr(self.father, self._key).value

        return value if value in self._mapping else SelectField.Type.DEFAULT

    def select(self):
        '''Return the field for the actual value of the key, building it if necessary.'''
        key = self._get_key()

        if self._field is None or self._selected != key:
            logger.debug('using key \'%s\' for field \'%s\'' % (key, self.name))
            field_class, args, kwargs = self._mapping[key]
            self._field = field_class(*args, **kwargs)
            # the selected field lives at the same level of this one
            self._field.father = self.father
            self._field.name = self.name
            self._selected = key

        return self._field

    def _get_value(self):
        return self.select().value

    def _set_value(self, value):
        self.select().value = value

    def _get_raw(self) -> bytes:
        return self.select().raw

    def unpack(self, stream):
        self._field = None
        field = self.select()
        logger.debug(f'unpacking {field!r}')

        field.unpack(stream)
