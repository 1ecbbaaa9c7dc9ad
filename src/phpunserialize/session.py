"""Decode the variables stored by PHP's default (`php`) session serializer.

Session data is a series of `<name>|<serialized value>` entries with nothing
between them, e.g. `user|s:5:"alice";count|i:3;`. A name starting with `!`
marks a variable that was unset, which has no value.

Values are decoded with a single reference history for the whole session, so a
value can refer back to values of earlier variables, as it can in PHP.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Generator

from phpunserialize.constants import SESSION_DELIMITER, SESSION_UNDEFINED_MARKER
from phpunserialize.decode import DecodeContext, Decoder, DecodeStep, create_decoder
from phpunserialize.factory import AnyObjectFactory
from phpunserialize.phptypes.mixedarray import ArrayKey
from phpunserialize.sources import BytesSource

if TYPE_CHECKING:
    from typing_extensions import Buffer

logger = logging.getLogger(__name__)


def _read_variable_name(ctx: DecodeContext) -> str:
    stream = ctx.stream
    raw = bytearray()
    while (byte := stream.read_byte()) != SESSION_DELIMITER:
        raw.append(byte)
    try:
        return codecs.decode(raw, stream.encoding)
    except UnicodeDecodeError as e:
        stream.throw(f"Session variable name is not valid {stream.encoding}", cause=e)


def iter_session(
    data: Buffer | str, *, decoder: Decoder | None = None
) -> Generator[tuple[str, object], None, None]:
    """Decode session variables one at a time, as `(name, value)` pairs.

    Unset variables (marked with `!`) are skipped.

    Raises
    ------
    DecodePHPSerializeError
        If a value is malformed, or if the data ends with a name that is not
        followed by `|`.
    """
    if decoder is None:
        decoder = Decoder()
    if isinstance(data, str):
        data = data.encode(decoder.encoding)
    source = BytesSource(data)
    ctx = decoder.create_context(source)

    try:
        while source.position < len(source.data):
            name = _read_variable_name(ctx)
            if name.startswith(chr(SESSION_UNDEFINED_MARKER)):
                logger.debug("Skipping unset session variable %r", name[1:])
                continue
            yield name, ctx.decode_value()
    finally:
        source.close()


def loads_session(
    data: Buffer | str,
    *,
    encoding: str | None = None,
    decode_steps: Iterable[DecodeStep] | None = None,
    object_factory: AnyObjectFactory | None = None,
    class_name_key: ArrayKey | None = None,
) -> dict[str, object]:
    """Decode PHP session data into a dict of variable names and values.

    Keyword arguments behave as they do for `loads()`.

    Examples
    --------
    >>> loads_session('user|s:5:"alice";!gone|count|i:3;')
    {'user': 'alice', 'count': 3}
    """
    decoder = create_decoder(
        encoding=encoding,
        decode_steps=decode_steps,
        object_factory=object_factory,
        class_name_key=class_name_key,
    )
    return dict(iter_session(data, decoder=decoder))
