"""Protocol layer: line framing, command builders, and payload decoders."""

from .framing import LineFramer
from .commands import Command, PROPERTY_SEPARATOR, WILDCARD_ADDRESS
