"""Deserialize PHP values from the PHP serialize() format into Python values."""

from __future__ import annotations

import codecs
import logging
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    Final,
    Generator,
    Literal,
    Protocol,
)

from phpunserialize._errors import (
    DecodePHPSerializeError,
    InvalidReferenceDecodePHPSerializeError,
    MalformedTokenDecodePHPSerializeError,
    ObjectCreationDecodePHPSerializeError,
    UnexpectedEndDecodePHPSerializeError,
    UnhandledTagDecodePHPSerializeError,
)
from phpunserialize._references import (
    DecodeHistory,
    HistoryIndexOutOfRangePHPSerializeError,
)
from phpunserialize.constants import (
    ARRAY_KEY_TAGS,
    CLASS_NAME_KEY,
    INT64_RANGE,
    TypeTag,
)
from phpunserialize.factory import AnyObjectFactory, ObjectFactory
from phpunserialize.phptypes import MixedArray, php_type_name
from phpunserialize.phptypes.mixedarray import ArrayKey
from phpunserialize.sources import ByteSource, BytesSource, StreamSource

if TYPE_CHECKING:
    from typing_extensions import Buffer, Never, TypeAlias

    from _typeshed import SupportsRead

logger = logging.getLogger(__name__)

DEFAULT_ENCODING: Final = sys.getdefaultencoding()
"""The encoding used for string contents when no encoding is specified."""

_DIGITS: Final = frozenset(b"0123456789")
_INT64_MAGNITUDE_LIMIT: Final = 2**63
_READ_CHUNK_SIZE: Final = 65536
_SELF_RECORDING_TAGS: Final = frozenset({TypeTag.Array, TypeTag.Object})


@dataclass(slots=True)
class ReadableTokenStream:
    """Reads the tokens of the PHP serialize() grammar from a `ByteSource`.

    A stream holds all the state of one decode operation: the read position
    and the history of decoded values used to resolve back-references. Streams
    are not thread-safe and are not re-used between decode operations.
    """

    source: ByteSource
    encoding: str = field(default=DEFAULT_ENCODING)
    position: int = field(default=0)
    history: DecodeHistory = field(default_factory=DecodeHistory)

    def throw(self, message: str, *, cause: BaseException | None = None) -> Never:
        raise DecodePHPSerializeError(message, position=self.position) from cause

    def throw_unexpected(self, *, expected: str, actual: str) -> Never:
        raise MalformedTokenDecodePHPSerializeError(
            "Unexpected character",
            expected=expected,
            actual=actual,
            position=self.position,
        )

    def read_byte(self) -> int:
        """Read one byte, failing if the end of the input has been reached."""
        data = self.source.read(1)
        if not data:
            raise UnexpectedEndDecodePHPSerializeError(
                "Unexpected end of data", position=self.position
            )
        self.position += 1
        return data[0]

    def read_exactly(self, count: int) -> bytes:
        """Read `count` bytes, failing if fewer than `count` are available."""
        chunks = []
        remaining = count
        while remaining > 0:
            chunk = self.source.read(min(remaining, _READ_CHUNK_SIZE))
            if not chunk:
                raise UnexpectedEndDecodePHPSerializeError(
                    f"Unexpected end of data: Expected {count} bytes but "
                    f"{count - remaining} available",
                    position=self.position,
                )
            chunks.append(chunk)
            remaining -= len(chunk)
            self.position += len(chunk)
        return b"".join(chunks)

    def expect(self, expected: str) -> None:
        """Read one byte and fail unless it's the `expected` character."""
        actual = self.read_byte()
        if actual != ord(expected):
            self.throw_unexpected(expected=repr(expected), actual=repr(chr(actual)))

    def read_tag(self, allowed: AbstractSet[TypeTag] | None = None) -> TypeTag:
        """Read the type tag at the start of a value.

        If `allowed` is set, tags outside it are rejected as malformed.
        """
        value = self.read_byte()
        try:
            tag = TypeTag(value)
        except ValueError:
            raise UnhandledTagDecodePHPSerializeError(
                f"Unable to unserialize unknown type {chr(value)!r}",
                tag=chr(value),
                position=self.position,
            ) from None
        if allowed is not None and tag not in allowed:
            self.throw_unexpected(
                expected=" or ".join(repr(t.char) for t in sorted(allowed)),
                actual=repr(tag.char),
            )
        return tag

    def read_int(self, terminator: str) -> int:
        """Read a decimal integer, up to and including `terminator`.

        An optional leading `-` is allowed. Integers that don't fit PHP's
        64-bit int are rejected.
        """
        end = ord(terminator)
        negative = False
        digits = 0
        value = 0

        byte = self.read_byte()
        if byte == ord("-"):
            negative = True
            byte = self.read_byte()
        while byte != end or digits == 0:
            if byte not in _DIGITS:
                allowed = "0...9" if digits == 0 else f"0...9 or {terminator!r}"
                self.throw_unexpected(expected=allowed, actual=repr(chr(byte)))
            value = value * 10 + (byte - 0x30)
            digits += 1
            # Already out of range, no need to read the remaining digits
            if value > _INT64_MAGNITUDE_LIMIT:
                break
            byte = self.read_byte()

        if negative:
            value = -value
        if value not in INT64_RANGE:
            raise MalformedTokenDecodePHPSerializeError(
                "Integer is out of range for a 64-bit int",
                expected=f"{INT64_RANGE.start}...{INT64_RANGE.stop - 1}",
                actual=f"{'-' if negative else ''}{abs(value)}...",
                position=self.position,
            )
        return value

    def read_length(self, terminator: str) -> int:
        """Read a non-negative integer such as a byte length or item count."""
        length = self.read_int(terminator)
        if length < 0:
            raise MalformedTokenDecodePHPSerializeError(
                "Length must not be negative",
                expected="0...9",
                actual=repr("-"),
                position=self.position,
            )
        return length

    def read_raw_string(self) -> str:
        """Read a length-prefixed, double-quoted string: `<length>:"<bytes>"`.

        The length is a number of bytes, not characters.
        """
        length = self.read_length(":")
        self.expect('"')
        raw = self.read_exactly(length)
        try:
            value = codecs.decode(raw, self.encoding)
        except UnicodeDecodeError as e:
            self.throw(f"String is not valid {self.encoding} data", cause=e)
        self.expect('"')
        return value

    def read_null(self, *, tag: bool = False) -> None:
        if tag:
            self.read_tag({TypeTag.Null})
        self.expect(";")

    def read_bool(self, *, tag: bool = False) -> bool:
        if tag:
            self.read_tag({TypeTag.Bool})
        self.expect(":")
        value = self.read_int(";")
        if value not in (0, 1):
            raise MalformedTokenDecodePHPSerializeError(
                "Unexpected boolean value",
                expected="0 or 1",
                actual=str(value),
                position=self.position,
            )
        return value == 1

    def read_php_int(self, *, tag: bool = False) -> int:
        if tag:
            self.read_tag({TypeTag.Int})
        self.expect(":")
        return self.read_int(";")

    def read_php_float(self, *, tag: bool = False) -> float:
        """Read `d:<decimal>;`, digits with an optional leading `-` and `.`."""
        if tag:
            self.read_tag({TypeTag.Float})
        self.expect(":")

        chars: list[str] = []
        digits = 0
        allow_point = True
        while True:
            byte = self.read_byte()
            if byte in _DIGITS:
                digits += 1
            elif byte == ord("-") and not chars:
                pass
            elif byte == ord(".") and allow_point:
                allow_point = False
            elif byte == ord(";") and digits:
                break
            else:
                allowed = ["0...9"]
                if not chars:
                    allowed.append("'-'")
                if allow_point:
                    allowed.append("'.'")
                if digits:
                    allowed.append("';'")
                self.throw_unexpected(
                    expected=" or ".join(allowed), actual=repr(chr(byte))
                )
            chars.append(chr(byte))
        return float("".join(chars))

    def read_php_string(self, *, tag: bool = False) -> str:
        if tag:
            self.read_tag({TypeTag.String})
        self.expect(":")
        value = self.read_raw_string()
        self.expect(";")
        return value

    def read_reference(self, *, tag: bool = False) -> object:
        """Read `R:<index>;` and return the earlier value it refers to."""
        if tag:
            self.read_tag({TypeTag.Reference})
        self.expect(":")
        index = self.read_int(";")
        try:
            return self.history.resolve(index)
        except HistoryIndexOutOfRangePHPSerializeError as e:
            raise InvalidReferenceDecodePHPSerializeError(
                "Reference index does not refer to a decoded value",
                index=index,
                history_length=e.history_length,
                position=self.position,
            ) from e

    def read_array_header(self, *, tag: bool = False) -> int:
        """Read the start of an array, `a:<count>:{`, and return the count."""
        if tag:
            self.read_tag({TypeTag.Array})
        self.expect(":")
        count = self.read_length(":")
        self.expect("{")
        return count

    def read_object_header(self, *, tag: bool = False) -> tuple[str, int]:
        """Read the start of an object, `O:<length>:"<class name>":<count>:{`."""
        if tag:
            self.read_tag({TypeTag.Object})
        self.expect(":")
        class_name = self.read_raw_string()
        self.expect(":")
        count = self.read_length(":")
        self.expect("{")
        return class_name, count

    def read_entries(
        self, ctx: DecodeContext, count: int
    ) -> Generator[tuple[ArrayKey, object], None, int]:
        """Read the key-value pairs of an array or object body, and the `}`."""
        for _ in range(count):
            key = ctx.decode_key()
            yield key, ctx.decode_value()
        self.expect("}")
        return count


class DecodeContext(Protocol):
    """Provides decode steps with the stream and the ability to decode values."""

    if TYPE_CHECKING:

        @property
        def stream(self) -> ReadableTokenStream:
            """The `ReadableTokenStream` this context reads from."""

    else:
        stream: ReadableTokenStream
        """The `ReadableTokenStream` this context reads from."""

    def decode_value(self, *, tag: TypeTag | None = None) -> object:
        """
        Return a value by reading a tag's data from this context's stream.

        If `tag` is None, the stream is positioned on a tag which must be read
        first. Otherwise the tag has already been read.

        The value is recorded in the stream's history, except for arrays and
        objects, which are recorded by `TagReader` before their contents are
        decoded.
        """

    def decode_key(self) -> ArrayKey:
        """Decode an array or object key.

        Keys must be `i` or `s` values, and are not recorded in the history.
        """


class DecodeNextFn(Protocol):
    def __call__(self, tag: TypeTag, /) -> object: ...


class DecodeStepFn(Protocol):
    """
    The type of a function that decodes a value of one or more types.

    Decode steps can either read the `ctx.stream` directly, or delegate to the
    next decode step by calling `next()`. Steps can modify the value decoded by
    the next step before returning it.
    """

    def __call__(
        self, tag: TypeTag, /, ctx: DecodeContext, next: DecodeNextFn
    ) -> object: ...


class DecodeStepObject(Protocol):
    decode: DecodeStepFn
    """The same as `DecodeStepFn`."""


DecodeStep: TypeAlias = "DecodeStepObject | DecodeStepFn"
"""Either a `DecodeStepObject` or `DecodeStepFn`."""


@dataclass(init=False, slots=True)
class DefaultDecodeContext(DecodeContext):
    """The default implementation of `DecodeContext`."""

    decode_steps: Sequence[DecodeStep]
    stream: ReadableTokenStream

    def __init__(
        self,
        *,
        stream: ReadableTokenStream,
        decode_steps: Iterable[DecodeStep] | None = None,
    ) -> None:
        self.stream = stream
        self.decode_steps = list(
            default_decode_steps if decode_steps is None else decode_steps
        )

    def __decode_tag_with_step(self, tag: TypeTag, *, i: int) -> object:
        if i < len(self.decode_steps):
            step = self.decode_steps[i]
            next = partial(self.__decode_tag_with_step, i=i + 1)
            if callable(step):
                return step(tag, ctx=self, next=next)
            return step.decode(tag, ctx=self, next=next)
        self._report_unhandled_tag(tag)

    def decode_value(self, *, tag: TypeTag | None = None) -> object:
        if tag is None:
            tag = self.stream.read_tag()
        value = self.__decode_tag_with_step(tag, i=0)
        if tag not in _SELF_RECORDING_TAGS:
            self.stream.history.append(value)
        return value

    def decode_key(self) -> ArrayKey:
        tag = self.stream.read_tag(ARRAY_KEY_TAGS)
        key = self.decode_value(tag=tag)
        self.stream.history.remove_last()
        if isinstance(key, bool) or not isinstance(key, (int, str)):
            self.stream.throw(
                f"Array key must decode to int or str, not {type(key).__name__}"
            )
        return key

    def _report_unhandled_tag(self, tag: TypeTag) -> Never:
        raise UnhandledTagDecodePHPSerializeError(
            f"No decode step was able to read the tag {tag.name}",
            tag=tag,
            position=self.stream.position,
        )


class TagReaderFn(Protocol):
    """
    The type of a function that reads tags on behalf of a `TagReader`.

    Typically this is an unbound method of `TagReader`.
    """

    def __call__(
        self, tag_reader: TagReader, tag: TypeTag, ctx: DecodeContext, /
    ) -> object: ...


@dataclass(init=False, slots=True)
class TagReaderRegistry:
    """
    A registry of `TypeTag`s and the functions that can read them.

    `TagReader` uses this to dispatch decode calls to an appropriate function.
    """

    index: Mapping[TypeTag, TagReaderFn]
    _index: dict[TypeTag, TagReaderFn]

    def __init__(self, entries: TagReaderRegistry | None = None) -> None:
        self._index = {}
        self.index = MappingProxyType(self._index)
        if entries:
            self.register_all(entries)

    def register(self, tag: TypeTag, tag_reader: TagReaderFn) -> None:
        """Associate a function with a tag, so that `match()` will return it."""
        self._index[tag] = tag_reader

    def register_all(self, registry: TagReaderRegistry) -> None:
        """
        Copy the registrations of another registry into this one.

        Existing registrations that also occur in `registry` are overwritten.
        """
        self._index.update(registry.index)

    def match(self, tag: TypeTag) -> TagReaderFn | None:
        """Get the `TagReaderFn` function registered for a tag, or `None`."""
        return self._index.get(tag)

    def __len__(self) -> int:
        return len(self._index)


@dataclass(init=False, slots=True)
class TagReader(DecodeStepObject):
    """
    Controls how PHP serialized data is converted to Python values.

    Scalars become `None`, `bool`, `int`, `float` and `str`. Arrays become
    `MixedArray`. Objects are passed to the `object_factory`, or without one,
    become a `MixedArray` of their properties with an extra `class_name_key`
    item holding the PHP class name.

    Parameters
    ----------
    object_factory
        An `ObjectFactory` (or a function with the signature of
        `ObjectFactory.create_object`) that creates Python objects from PHP
        class names and properties. Default: none.
    class_name_key
        The key of the class name item added to object properties when no
        `object_factory` is set. Default: `"class"`.
    tag_readers
        Override the tag reader functions for some tags. Default: no overrides.
    """

    object_factory: AnyObjectFactory | None
    class_name_key: ArrayKey
    tag_readers: TagReaderRegistry

    def __init__(
        self,
        object_factory: AnyObjectFactory | None = None,
        class_name_key: ArrayKey = CLASS_NAME_KEY,
        tag_readers: TagReaderRegistry | None = None,
    ) -> None:
        self.object_factory = object_factory
        self.class_name_key = class_name_key

        self.tag_readers = TagReaderRegistry()
        self.register_tag_readers(self.tag_readers)
        if tag_readers:
            self.tag_readers.register_all(tag_readers)

    def register_tag_readers(self, tag_readers: TagReaderRegistry) -> None:
        r = tag_readers.register

        r(TypeTag.Null, TagReader.deserialize_null)
        r(TypeTag.Bool, TagReader.deserialize_bool)
        r(TypeTag.Int, TagReader.deserialize_int)
        r(TypeTag.Float, TagReader.deserialize_float)
        r(TypeTag.String, TagReader.deserialize_string)
        r(TypeTag.Array, TagReader.deserialize_array)
        r(TypeTag.Object, TagReader.deserialize_object)
        r(TypeTag.Reference, TagReader.deserialize_reference)

    def decode(
        self, tag: TypeTag, /, ctx: DecodeContext, next: DecodeNextFn
    ) -> object:
        read_tag = self.tag_readers.match(tag)
        if not read_tag:
            return next(tag)
        return read_tag(self, tag, ctx)

    def deserialize_null(self, tag: Literal[TypeTag.Null], ctx: DecodeContext) -> None:
        ctx.stream.read_null()

    def deserialize_bool(self, tag: Literal[TypeTag.Bool], ctx: DecodeContext) -> bool:
        return ctx.stream.read_bool()

    def deserialize_int(self, tag: Literal[TypeTag.Int], ctx: DecodeContext) -> int:
        return ctx.stream.read_php_int()

    def deserialize_float(
        self, tag: Literal[TypeTag.Float], ctx: DecodeContext
    ) -> float:
        return ctx.stream.read_php_float()

    def deserialize_string(
        self, tag: Literal[TypeTag.String], ctx: DecodeContext
    ) -> str:
        return ctx.stream.read_php_string()

    def deserialize_reference(
        self, tag: Literal[TypeTag.Reference], ctx: DecodeContext
    ) -> object:
        return ctx.stream.read_reference()

    def deserialize_array(
        self, tag: Literal[TypeTag.Array], ctx: DecodeContext
    ) -> MixedArray[object]:
        count = ctx.stream.read_array_header()
        array = MixedArray[object](expected_size=count)
        # Recorded before the contents so that items can refer to the array
        ctx.stream.history.append(array)
        array.update(ctx.stream.read_entries(ctx, count))
        return array

    def deserialize_object(
        self, tag: Literal[TypeTag.Object], ctx: DecodeContext
    ) -> object:
        class_name, count = ctx.stream.read_object_header()
        properties = MixedArray[object](expected_size=count)
        # The properties hold the object's position until the object exists
        index = ctx.stream.history.append(properties)
        properties.update(ctx.stream.read_entries(ctx, count))

        factory = self.object_factory
        if factory is None:
            properties[self.class_name_key] = class_name
            return properties
        obj = self.create_object(factory, class_name, properties, ctx)
        ctx.stream.history.replace(index, obj)
        return obj

    def create_object(
        self,
        factory: AnyObjectFactory,
        class_name: str,
        properties: MixedArray[object],
        ctx: DecodeContext,
    ) -> object:
        try:
            if isinstance(factory, ObjectFactory):
                return factory.create_object(class_name, properties)
            return factory(class_name, properties)
        except ObjectCreationDecodePHPSerializeError as e:
            raise ObjectCreationDecodePHPSerializeError(
                e.message,
                class_name=e.class_name,
                cause=e.cause,
                position=ctx.stream.position,
            ) from e
        except DecodePHPSerializeError:
            raise
        except Exception as e:
            raise ObjectCreationDecodePHPSerializeError(
                "Unable to create object",
                class_name=class_name,
                cause=e,
                position=ctx.stream.position,
            ) from e


default_decode_steps: Final[Sequence[DecodeStep]] = (TagReader(),)
"""
The default sequence of decode steps used to map `TypeTag`s to Python values.

This is an instance of `TagReader` with no options changed from the defaults.
"""


@dataclass(init=False)
class Decoder:
    """
    A re-usable configuration for deserializing PHP serialize() format data.

    A Decoder holds no state from one decode call to the next, each call
    uses its own stream position and reference history.

    Parameters
    ----------
    encoding
        The text encoding of the serialized strings. `str` data passed to
        `decodes()` is encoded with it before decoding. Default: the platform's
        default encoding.
    decode_steps
        A sequence of decode steps, which are responsible for creating Python
        values to represent the PHP values found when decoding data.
    """

    encoding: str
    decode_steps: Sequence[DecodeStep]

    def __init__(
        self,
        encoding: str | None = None,
        decode_steps: Iterable[DecodeStep] | None = None,
    ) -> None:
        encoding = DEFAULT_ENCODING if encoding is None else encoding
        # Unknown encodings fail here, before any data is read
        self.encoding = codecs.lookup(encoding).name
        self.decode_steps = (
            default_decode_steps if decode_steps is None else tuple(decode_steps)
        )

    def create_context(self, source: ByteSource) -> DefaultDecodeContext:
        """Create a context for a single decode operation reading from `source`."""
        return DefaultDecodeContext(
            stream=ReadableTokenStream(source, encoding=self.encoding),
            decode_steps=self.decode_steps,
        )

    def decode_source(self, source: ByteSource) -> object:
        """
        Deserialize the next value from a `ByteSource`.

        The source is left open, positioned after the value.
        """
        ctx = self.create_context(source)
        logger.debug(
            "Decoding PHP serialized value from %s with encoding %r",
            type(source).__name__,
            self.encoding,
        )
        value = ctx.decode_value()
        logger.debug(
            "Decoded PHP %s from %d bytes with %d history entries",
            php_type_name(value),
            ctx.stream.position,
            len(ctx.stream.history),
        )
        return value

    def decode(self, fp: SupportsRead[bytes]) -> object:
        """
        Deserialize PHP serialize() format data from a binary file.

        Only the first value is read from `fp`, and `fp` is not closed.
        """
        return self.decode_source(StreamSource(fp))

    def decodes(self, data: Buffer | str) -> object:
        """
        Deserialize PHP serialize() format data from a bytes-like object or str.

        A `str` is encoded with this Decoder's `encoding` first. Data after the
        first value is ignored.
        """
        if isinstance(data, str):
            data = data.encode(self.encoding)
        source = BytesSource(data)
        try:
            return self.decode_source(source)
        finally:
            source.close()


def create_decoder(
    *,
    encoding: str | None,
    decode_steps: Iterable[DecodeStep] | None,
    object_factory: AnyObjectFactory | None,
    class_name_key: ArrayKey | None,
) -> Decoder:
    """Create a `Decoder` from the keyword arguments accepted by `loads()`."""
    if decode_steps is not None:
        if not (object_factory is None and class_name_key is None):
            raise TypeError(
                "'decode_steps' argument cannot be passed with 'object_factory' "
                "or 'class_name_key' arguments for TagReader"
            )
        return Decoder(encoding=encoding, decode_steps=decode_steps)

    if object_factory is None and class_name_key is None:
        return Decoder(encoding=encoding)
    tag_reader = TagReader(
        object_factory=object_factory,
        class_name_key=CLASS_NAME_KEY if class_name_key is None else class_name_key,
    )
    return Decoder(encoding=encoding, decode_steps=[tag_reader])


def loads(
    data: Buffer | str,
    *,
    encoding: str | None = None,
    decode_steps: Iterable[DecodeStep] | None = None,
    object_factory: AnyObjectFactory | None = None,
    class_name_key: ArrayKey | None = None,
) -> object:
    """Deserialize a PHP value encoded in the PHP serialize() format.

    Parameters
    ----------
    data
        The data to deserialize as a bytes-like object, or a `str` which is
        encoded with `encoding` first.
    encoding
        The text encoding of the serialized strings. Default: the platform's
        default encoding.
    decode_steps
        A sequence of decode steps. When set, `object_factory` and
        `class_name_key` cannot be set, as they configure the default
        `TagReader`.
    object_factory
        Creates Python objects for PHP objects. See `TagReader`.
    class_name_key
        The key holding the class name of objects decoded without an
        `object_factory`. Default: `"class"`.

    Returns
    -------
    :
        The first value in `data`.

    Raises
    ------
    DecodePHPSerializeError
        When `data` is not well-formed PHP serialize() format data.

    Examples
    --------
    >>> loads('a:2:{i:0;s:1:"a";s:1:"k";b:1;}')
    MixedArray({0: 'a', 'k': True})
    >>> loads(b'O:3:"Foo":1:{s:1:"a";i:1;}')
    MixedArray({'a': 1, 'class': 'Foo'})
    """
    decoder = create_decoder(
        encoding=encoding,
        decode_steps=decode_steps,
        object_factory=object_factory,
        class_name_key=class_name_key,
    )
    return decoder.decodes(data)


def load(
    fp: SupportsRead[bytes],
    *,
    encoding: str | None = None,
    decode_steps: Iterable[DecodeStep] | None = None,
    object_factory: AnyObjectFactory | None = None,
    class_name_key: ArrayKey | None = None,
) -> object:
    """Deserialize the first PHP value in a binary file.

    Arguments other than `fp` behave as they do for `loads()`. The file is not
    closed.
    """
    decoder = create_decoder(
        encoding=encoding,
        decode_steps=decode_steps,
        object_factory=object_factory,
        class_name_key=class_name_key,
    )
    return decoder.decode(fp)
