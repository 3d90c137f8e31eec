import copy
import logging

from .exceptions import ConfigurationException


class hybridmethod(object):
    """Method with a class level and an instance level implementation
    sharing the same name, like Field.read()."""

    def __init__(self, fclass, finstance=None):
        self.fclass = fclass
        self.finstance = finstance
        self.__doc__ = fclass.__doc__

    def instancemethod(self, finstance):
        return type(self)(self.fclass, finstance)

    def __get__(self, instance, owner=None):
        if instance is None:
            return self.fclass.__get__(owner, type(owner))

        return self.finstance.__get__(instance, owner)


class FieldDescriptor(object):
    """Wrapper around field access of a Struct related class."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self.field

        data = instance.__dict__

        if self.field.name in data:
            return data[self.field.name]
        else:
            self.logger.debug("create new field for field named '%s'", self.field.name)
            new_field = self.field.create(father=instance)
            data[self.field.name] = new_field
            return data[self.field.name]

    def __set__(self, instance, value):
        self.logger.debug("__set__ from %s for field named '%s'", instance.__class__.__name__, self.field.name)
        data = instance.__dict__

        # if the value is the same type then set as it is
        if isinstance(value, self.field.__class__):
            value.father = instance
            value.name = self.field.name
            data[self.field.name] = value
        # otherwise delegate to the field
        else:
            self.__get__(instance).value = value


class FieldBase(object):

    def contribute_to_struct(self, cls, name):
        if name.startswith('_'):
            raise ConfigurationException(msg=f'field names can\'t start with an underscore: \'{name}\'')

        if hasattr(cls, name) or name in getattr(cls, 'reserved_names', ()):
            raise ConfigurationException(msg=f'field {name} is already present in class {cls.__name__}')

        setattr(cls, name, FieldDescriptor(self, name))

    def create(self, father):
        '''Fresh copy of a declared field, to be used by an instance of father.'''
        prototype_father, self.father = self.father, None
        try:
            instance = copy.deepcopy(self)
        finally:
            self.father = prototype_father
        instance.father = father
        return instance


class Meta(object):
    """Class containing metadata about the structure"""

    def __init__(self):
        self.fields = []


class MetaStruct(type):
    logger = logging.getLogger(__name__)

    def __new__(cls, names, bases, attrs):
        '''All of this is a big hack, maybe too inspired by how Django does a similar thing!'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaStruct, cls).__new__(cls, names, bases, new_attrs)

        new_cls._meta = Meta()

        # handle inheritance
        parents = [_ for _ in bases if isinstance(_, MetaStruct)]
        for parent in parents:
            for obj_name in parent._meta.fields:
                if obj_name in new_cls._meta.fields:
                    continue
                new_cls._meta.fields.append(obj_name)

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_struct'):
            cls.logger.debug('contribute_to_struct() found for field \'%s\'' % name)
            value.contribute_to_struct(cls, name)
            cls._meta.fields.append(name)
        else:
            setattr(cls, name, value)
