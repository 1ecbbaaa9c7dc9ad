"""Python representations of the PHP values in the serialize() format."""

from __future__ import annotations

from phpunserialize.phptypes._gettype import php_type_name as php_type_name
from phpunserialize.phptypes.mixedarray import ArrayKey as ArrayKey
from phpunserialize.phptypes.mixedarray import MixedArray as MixedArray
from phpunserialize.phptypes.mixedarray import check_array_key as check_array_key
