"""The main public API of phpunserialize."""

from __future__ import annotations

from phpunserialize._errors import DecodePHPSerializeError as DecodePHPSerializeError
from phpunserialize._errors import (
    InvalidReferenceDecodePHPSerializeError as InvalidReferenceDecodePHPSerializeError,
)
from phpunserialize._errors import (
    MalformedTokenDecodePHPSerializeError as MalformedTokenDecodePHPSerializeError,
)
from phpunserialize._errors import (
    ObjectCreationDecodePHPSerializeError as ObjectCreationDecodePHPSerializeError,
)
from phpunserialize._errors import PHPSerializeError as PHPSerializeError
from phpunserialize._errors import (
    UnexpectedEndDecodePHPSerializeError as UnexpectedEndDecodePHPSerializeError,
)
from phpunserialize._errors import (
    UnhandledTagDecodePHPSerializeError as UnhandledTagDecodePHPSerializeError,
)
from phpunserialize.constants import TypeTag as TypeTag
from phpunserialize.decode import Decoder as Decoder
from phpunserialize.decode import DecodeStep as DecodeStep
from phpunserialize.decode import DecodeStepFn as DecodeStepFn
from phpunserialize.decode import DecodeStepObject as DecodeStepObject
from phpunserialize.decode import TagReader as TagReader
from phpunserialize.decode import default_decode_steps as default_decode_steps
from phpunserialize.decode import load as load
from phpunserialize.decode import loads as loads
from phpunserialize.factory import DefaultObjectFactory as DefaultObjectFactory
from phpunserialize.factory import ObjectFactory as ObjectFactory
from phpunserialize.factory import ObjectFactoryFn as ObjectFactoryFn
from phpunserialize.phptypes import MixedArray as MixedArray
from phpunserialize.session import loads_session as loads_session
from phpunserialize.sources import ByteSource as ByteSource
from phpunserialize.sources import BytesSource as BytesSource
from phpunserialize.sources import StreamSource as StreamSource
