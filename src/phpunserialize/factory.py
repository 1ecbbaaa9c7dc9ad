"""Create Python objects to represent the PHP objects in serialized data."""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    ClassVar,
    Final,
    Literal,
    NamedTuple,
    Protocol,
    get_origin,
    runtime_checkable,
)

from phpunserialize._errors import ObjectCreationDecodePHPSerializeError
from phpunserialize.phptypes import MixedArray

if TYPE_CHECKING:
    from typing_extensions import TypeAlias

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectFactory(Protocol):
    """Creates a Python object from the class name and properties of a PHP object.

    Errors raised by `create_object()` abort decoding. They are raised from the
    decoder as `ObjectCreationDecodePHPSerializeError`.
    """

    def create_object(self, class_name: str, properties: MixedArray[object]) -> object:
        """
        Create an object to represent a PHP object.

        Parameters
        ----------
        class_name
            The PHP class name of the object, e.g. `App\\Models\\User`.
        properties
            The decoded properties of the object. Names of private and
            protected properties are in PHP's mangled form, see
            `demangle_property_name()`.
        """


class ObjectFactoryFn(Protocol):
    """A function with the signature of `ObjectFactory.create_object`."""

    def __call__(
        self, class_name: str, properties: MixedArray[object], /
    ) -> object: ...


AnyObjectFactory: TypeAlias = "ObjectFactory | ObjectFactoryFn"
"""Either an `ObjectFactory` or an `ObjectFactoryFn`."""


class PropertyName(NamedTuple):
    """A PHP property name, separated from its visibility mangling."""

    name: str
    visibility: Literal["public", "protected", "private"]
    declaring_class: str | None = None
    """The class that declares a private property, None otherwise."""


def demangle_property_name(raw_name: str) -> PropertyName:
    """Split a serialized property name into its name and visibility.

    PHP serializes protected properties as `\\0*\\0name` and private properties
    as `\\0ClassName\\0name`.

    >>> demangle_property_name("\\0*\\0secret")
    PropertyName(name='secret', visibility='protected', declaring_class=None)
    >>> demangle_property_name("\\0App\\\\User\\0id")
    PropertyName(name='id', visibility='private', declaring_class='App\\\\User')
    >>> demangle_property_name("title")
    PropertyName(name='title', visibility='public', declaring_class=None)
    """
    if not raw_name.startswith("\0"):
        return PropertyName(raw_name, "public")
    owner, separator, name = raw_name[1:].partition("\0")
    if not separator:
        return PropertyName(raw_name, "public")
    if owner == "*":
        return PropertyName(name, "protected")
    return PropertyName(name, "private", owner)


_IMMUTABLE_QUALIFIERS: Final = {ClassVar: "ClassVar", Final: "Final"}


def _annotation_qualifier(annotation: object) -> str | None:
    """Get "ClassVar" or "Final" if an annotation uses one of them."""
    if isinstance(annotation, str):
        # Annotations are strings under `from __future__ import annotations`
        head = annotation.split("[", 1)[0].strip().rpartition(".")[2]
        return head if head in _IMMUTABLE_QUALIFIERS.values() else None
    origin = get_origin(annotation) or annotation
    return _IMMUTABLE_QUALIFIERS.get(origin)  # type: ignore[call-overload]


class FieldInfo(NamedTuple):
    owner: type
    annotation: object | None


def find_field(instance: object, name: str) -> FieldInfo:
    """Find where the field `name` of `instance` is declared.

    Fields are attributes declared with a class annotation or in `__slots__`,
    searched along the class's MRO, or attributes the instance already has in
    its `__dict__`.

    Raises
    ------
    AttributeError
        If the instance has no such field.
    """
    cls = type(instance)
    for owner in cls.__mro__:
        if owner is object:
            continue
        annotations = inspect.get_annotations(owner)
        if name in annotations:
            return FieldInfo(owner, annotations[name])
        slots = vars(owner).get("__slots__", ())
        if name in ((slots,) if isinstance(slots, str) else slots):
            return FieldInfo(owner, None)
    if name in getattr(instance, "__dict__", {}):
        return FieldInfo(cls, None)
    raise AttributeError(f"Type {cls.__qualname__!r} has no field {name!r}")


@dataclass(init=False)
class DefaultObjectFactory(ObjectFactory):
    """
    Create instances of Python classes named after PHP classes.

    The PHP class name is mapped to a Python import path: namespace separators
    (`\\`) become `.`, and the `module_prefix` (if any) is prepended. The last
    part of the path is the class, the rest is the module it's imported from.
    Classes can also be registered explicitly with `classes`, which is checked
    before importing anything.

    The class is called without arguments, then each property is assigned to
    the attribute with the same (demangled) name. The attribute must be a field
    of the class (see `find_field()`), and must not be annotated as `ClassVar`
    or `Final`.

    Any error is raised as `ObjectCreationDecodePHPSerializeError`.

    Parameters
    ----------
    module_prefix
        A module path to prepend to class names, e.g. `"myapp.models"`. A
        trailing `.` is added if missing. Empty or None means no prefix.
    classes
        A mapping of PHP class names to the classes (or no-argument factory
        functions) used to create them.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Point:
    ...     x: int = 0
    ...     y: int = 0
    >>> from phpunserialize import loads
    >>> factory = DefaultObjectFactory(classes={"Point": Point})
    >>> loads('O:5:"Point":2:{s:1:"x";i:1;s:1:"y";i:2;}', object_factory=factory)
    Point(x=1, y=2)
    """

    module_prefix: str | None
    classes: Mapping[str, Callable[[], object]]

    def __init__(
        self,
        module_prefix: str | None = None,
        *,
        classes: Mapping[str, Callable[[], object]] | None = None,
    ) -> None:
        if module_prefix and not module_prefix.endswith("."):
            module_prefix = f"{module_prefix}."
        self.module_prefix = module_prefix or None
        self.classes = MappingProxyType(dict(classes or {}))

    def get_python_class_name(self, php_class_name: str) -> str:
        name = php_class_name.lstrip("\\").replace("\\", ".")
        if self.module_prefix is not None:
            return f"{self.module_prefix}{name}"
        return name

    def get_class(self, php_class_name: str) -> Callable[[], object]:
        if php_class_name in self.classes:
            return self.classes[php_class_name]

        python_name = self.get_python_class_name(php_class_name)
        module_name, _, attr_name = python_name.rpartition(".")
        if not module_name:
            raise LookupError(
                f"No class is registered for {php_class_name!r} and "
                f"{python_name!r} is not an importable path"
            )
        module = importlib.import_module(module_name)
        cls = getattr(module, attr_name)
        logger.debug("Resolved PHP class %r to %r", php_class_name, cls)
        return cls  # type: ignore[no-any-return]

    def create_instance(self, php_class_name: str) -> object:
        return self.get_class(php_class_name)()

    def set_property(self, instance: object, name: str, value: object) -> None:
        field = find_field(instance, name)
        qualifier = _annotation_qualifier(field.annotation)
        if qualifier == "ClassVar":
            raise AttributeError(
                f"Found field {name!r} of {field.owner.__qualname__} but it is "
                f"a ClassVar"
            )
        if qualifier == "Final":
            raise AttributeError(
                f"Found field {name!r} of {field.owner.__qualname__} but it is "
                f"Final"
            )
        setattr(instance, name, value)

    def create_object(self, class_name: str, properties: MixedArray[object]) -> object:
        try:
            instance = self.create_instance(class_name)
            for key, value in properties.items():
                name = demangle_property_name(str(key)).name
                self.set_property(instance, name, value)
            return instance
        except Exception as e:
            raise ObjectCreationDecodePHPSerializeError(
                "Unable to create object", class_name=class_name, cause=e
            ) from e
