"""
Parameters of a field.

Any option of a field (value, initial_value, check_value, the length of
a string, ...) can be given in two ways

 1. as a constant, used as it is
 2. as a deferred expression, i.e. a callable taking a Context and
    evaluated every time the parameter is needed

The Context is a read-only view of the fields at the same level of the
one owning the parameter, so that it's possible to write something like

    class Simple(Struct):
        length = Uint32le(value=lambda ctx: len(ctx.data))
        data   = StringField(initial_length=Dependency('.length'))
"""
import logging
import operator

from .exceptions import ConfigurationException, ResolutionException


logger = logging.getLogger(__name__)


def get_root_from_field(instance):
    return get_instance_from_field(instance, condition=lambda x: x.father is None)


def get_instance_from_field(instance, condition):
    while not condition(instance):
        instance = instance.father

    return instance


class Context(object):
    '''Named access to the values of the fields contained in a container.

    Values are reachable both as attributes and as items; extra bindings
    passed as keywords take precedence over the fields. Names starting
    with an underscore are reachable only as items.

    The containers that don't name their children (arrays and choices)
    are transparent: the names are looked up in their father.'''

    def __init__(self, container=None, **bindings):
        self._container = container
        self._bindings = bindings

    def __repr__(self):
        container = self._container.__class__.__name__ if self._container is not None else None
        return f'<{self.__class__.__name__}({container}, bindings={list(self._bindings)})>'

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)

        return self[name]

    def __getitem__(self, name):
        if name in self._bindings:
            return self._bindings[name]

        return self.field(name).snapshot()

    def __contains__(self, name):
        if name in self._bindings:
            return True

        return self._owner(name) is not None

    def _owner(self, name):
        container = self._container
        while container is not None:
            if name in container.field_names():
                return container
            if not container.transparent:
                break
            container = container.father

        return None

    def field(self, name):
        '''Return the field instance (not its value) named name.'''
        owner = self._owner(name)
        if owner is None:
            raise ResolutionException(msg=f'no field named \'{name}\' in {self!r}')

        return getattr(owner, name)

    @property
    def parent(self):
        if self._container is None or self._container.father is None:
            raise ResolutionException(msg='there is no enclosing container')

        return Context(self._container.father)

    @property
    def root(self):
        if self._container is None:
            return self

        return Context(get_root_from_field(self._container))


class Parameter(object):
    is_constant = False

    def resolve(self, context):
        raise NotImplementedError(f"method {self.__class__.__name__}.resolve() not implemented")


class Constant(Parameter):
    is_constant = True

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.value!r})>'

    def resolve(self, context):
        return self.value


class Deferred(Parameter):

    def __init__(self, expression):
        if not callable(expression):
            raise ConfigurationException(msg=f'{expression!r} is not callable')

        self.expression = expression

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression!r})>'

    def resolve(self, context):
        value = self.expression(context)
        logger.debug('%r resolved with value %r', self, value)

        return value


class Dependency(Deferred):
    '''This makes the relation between fields possible.

    The expression is a dotted path of field names: a leading '.' means
    that the first component is a sibling, any further leading '.' moves
    up one container; without a leading '.' the path starts from the root

     - '.length'        the sibling named length
     - '..header.size'  the field size of the sibling named header of the father
     - 'header.size'    the same starting from the outermost container
    '''
    def __init__(self, expression):
        components = expression.split('.')
        if not components[-1]:
            raise ConfigurationException(msg=f'\'{expression}\' is not a valid field path')

        self.expression = expression

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def resolve_field(self, context):
        fields_path = self.expression.split('.')
        # '.miao'.split(".") -> ['', 'miao']
        # 'miao'.split(".") -> ['miao']

        if fields_path[0] != '':
            context = context.root
        else:
            fields_path = fields_path[1:]
            while fields_path[0] == '':
                context = context.parent
                fields_path = fields_path[1:]

        field = context.field(fields_path[0])

        for component_name in fields_path[1:]:
            if component_name not in field.field_names():
                raise ResolutionException(
                    msg=f'\'{self.expression}\': {field.__class__.__name__} has no field named \'{component_name}\'')
            field = getattr(field, component_name)

        return field

    def resolve(self, context):
        value = self.resolve_field(context).snapshot()
        logger.debug('%r resolved with value %r', self, value)

        return value


def make_parameter(raw):
    '''Classify a raw option: None is absent, callables are deferred,
    everything else is a constant.'''
    if raw is None or isinstance(raw, Parameter):
        return raw

    if callable(raw):
        return Deferred(raw)

    return Constant(raw)


class CheckOutcome(object):
    '''What a check_value resolved to.'''

    @staticmethod
    def from_resolved(resolved):
        if isinstance(resolved, bool):
            return Predicate(resolved)

        return Expected(resolved)

    def passes(self, actual, equals=operator.eq) -> bool:
        raise NotImplementedError()


class Predicate(CheckOutcome):

    def __init__(self, result: bool):
        self.result = result

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.result})>'

    def passes(self, actual, equals=operator.eq) -> bool:
        return self.result


class Expected(CheckOutcome):

    def __init__(self, expected):
        self.expected = expected

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expected!r})>'

    def passes(self, actual, equals=operator.eq) -> bool:
        return equals(actual, self.expected)


class PropertyDescriptor(object):
    """This the glue between the type specific options of a field and
    the parameters: the value is stored as a Parameter and resolved
    against the field's context when accessed."""

    def __init__(self, name: str, _type: type = None):
        self.name = name
        self.type = _type

    def __get__(self, instance, owner):
        if instance is None:
            return self

        parameter = instance.__dict__.get(self.name)
        if parameter is None:
            return None

        value = parameter.resolve(instance.context())

        if self.type is not None and not isinstance(value, self.type):
            raise ConfigurationException(
                msg=f'\'{self.name}\' must be of type {self.type.__name__}, got {value!r}')

        return value

    def __set__(self, instance, value):
        instance.__dict__[self.name] = make_parameter(value)
