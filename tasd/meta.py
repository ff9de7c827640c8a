import copy
import logging
from enum import Enum, auto


logger = logging.getLogger(__name__)


class Endianess(Enum):
    LITTLE_ENDIAN = auto()
    BIG_ENDIAN    = auto()


class FieldDescriptor(object):
    """Gives each chunk instance its own copy of a field declared in the class."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self

        fields = instance.__dict__

        if self.field.name not in fields:
            logger.debug("instancing field '%s'", self.field.name)
            fields[self.field.name] = self.field.create(father=instance)

        return fields[self.field.name]

    def __set__(self, instance, value):
        # a field of the right type replaces the current one
        if isinstance(value, self.field.__class__):
            value.father = instance
            value.name = self.field.name
            instance.__dict__[self.field.name] = value
        else:
            self.__get__(instance).value = value


class FieldBase(object):

    def contribute_to_chunk(self, cls, name):
        setattr(cls, name, FieldDescriptor(self, name))

    def create(self, father):
        '''Build the per-instance copy of the prototype declared in the class.

        The values a field can hold are immutable, so a shallow copy with a
        fresh initialization is enough.'''
        instance = copy.copy(self)
        instance.father = father
        instance.init()
        return instance


class Meta(object):
    """What the metaclass learns about a chunk class"""

    def __init__(self):
        self.fields = []


class MetaChunk(type):
    '''Collects the fields of a chunk class in the order they are declared,
    the ones of the parents first.'''

    def __new__(cls, names, bases, attrs):
        namespace = {'__module__': attrs.pop('__module__')}
        if '__classcell__' in attrs:
            namespace['__classcell__'] = attrs.pop('__classcell__')

        new_cls = super(MetaChunk, cls).__new__(cls, names, bases, namespace)

        new_cls._meta = Meta()

        for parent in (_ for _ in bases if isinstance(_, MetaChunk)):
            for field_name in parent._meta.fields:
                if field_name in new_cls._meta.fields:
                    continue
                setattr(new_cls, field_name, parent.__dict__[field_name])
                new_cls._meta.fields.append(field_name)

        for attr_name, attr in attrs.items():
            new_cls.add_to_class(attr_name, attr)

        return new_cls

    def add_to_class(cls, name, value):
        if not isinstance(value, type) and hasattr(value, 'contribute_to_chunk'):
            logger.debug('field \'%s\' added to %s' % (name, cls.__name__))
            # a subclass can redefine a field keeping its position
            if name not in cls._meta.fields:
                cls._meta.fields.append(name)
            value.contribute_to_chunk(cls, name)
        else:
            setattr(cls, name, value)
