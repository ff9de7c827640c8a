import logging
from enum import Enum, auto


logger = logging.getLogger(__name__)


class ChunkPhase(Enum):
    '''What a chunk is doing right now'''
    INIT        = 0
    RELAYOUTING = auto()
    PACKING     = auto()
    UNPACKING   = auto()
    DONE        = auto()


def get_root(instance):
    '''Walk up the fathers until the outermost chunk.'''
    while instance.father is not None:
        instance = instance.father

    return instance


class Dependency:
    '''Reference to the value of another field, resolved lazily.

    It allows to write

        class Memory(Chunk):
            space_size = SizeField('space')
            space      = fields.StringField(n=Dependency('.space_size'))

    so that while unpacking the number of bytes of 'space' is read from
    'space_size'.

    An expression starting with '.' is looked up among the siblings,
    otherwise the path starts from the outermost chunk (e.g. 'header.key_width'
    from inside a movie).
    '''
    def __init__(self, expression):
        self.expression = expression

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def resolve_field(self, instance):
        logger.debug('resolving \'%s\' for \'%s\'' % (
            self.expression,
            instance.__class__.__name__,
        ))

        # '.size' -> ['', 'size'], 'header.key_width' -> ['header', 'key_width']
        components = self.expression.split('.')

        if components[0] != '':
            field = get_root(instance)
        else:
            field = instance.father
            if field is None:
                raise AttributeError(f'{instance!r} has no father to resolve \'{self.expression}\'')
            components = components[1:]

        logger.debug(' starting from \'%s\'' % field.__class__.__name__)

        for name in components:
            field = getattr(field, name)

        return field

    def resolve(self, instance):
        '''Value of the referenced field, as seen from instance.'''
        value = self.resolve_field(instance).value

        logger.debug(' resolved with value %s' % value)

        return value
