"""
Registry of the field types.

Each concrete type is registered once, at its definition site, under a
symbolic name derived from its class name

    @register
    class Uint32le(IntField):
        ...

so that later it's possible to refer to it by name

    >>> lookup('uint32le')
    <class 'binform.fields.Uint32le'>

The registry is append-only: an entry can't be replaced and, once
sealed, no new entry can be added.
"""
import logging
import re
from typing import Dict, List

from .exceptions import ConfigurationException, LookupException


logger = logging.getLogger(__name__)


def underscore_name(name: str) -> str:
    '''Canonical form of a type name, e.g. "ConcreteSingle" -> "concrete_single".'''
    name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)

    return name.replace('-', '_').lower()


class TypeRegistry(object):

    def __init__(self):
        self._types: Dict[str, type] = {}
        self._sealed = False

    def __contains__(self, name):
        return underscore_name(name) in self._types

    def __len__(self):
        return len(self._types)

    def __repr__(self):
        return f'<{self.__class__.__name__}({len(self)} types)>'

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self):
        '''No more registration after this.'''
        logger.debug('sealing registry with %d types', len(self))
        self._sealed = True

    def register(self, cls, name=None):
        key = underscore_name(name or cls.__name__)

        if self._sealed:
            raise ConfigurationException(msg=f'registry is sealed, can\'t register \'{key}\'')

        old = self._types.get(key)
        if old is cls:
            return cls
        if old is not None:
            raise ConfigurationException(
                msg=f'\'{key}\' is already registered for {old.__module__}.{old.__name__}')

        logger.debug('registering %s as \'%s\'', cls.__name__, key)
        self._types[key] = cls

        return cls

    def lookup(self, name: str) -> type:
        key = underscore_name(name)
        try:
            return self._types[key]
        except KeyError:
            raise LookupException(msg=f'no type registered with name \'{key}\'') from None

    def create(self, name: str, **params):
        '''Instantiate the type registered under name.'''
        return self.lookup(name)(**params)

    def names(self) -> List[str]:
        return sorted(self._types)


registry = TypeRegistry()


def register(cls=None, name=None):
    '''Class decorator that adds the class to the global registry.

    It can be used bare or passing the name explicitly

        @register('string')
        class StringField(Field):
            ...
    '''
    if isinstance(cls, str):
        name, cls = cls, None

    if cls is None:
        return lambda _cls: registry.register(_cls, name=name)

    return registry.register(cls, name=name)


def lookup(name: str) -> type:
    return registry.lookup(name)
