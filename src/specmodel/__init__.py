"""
Specification Model Package

Language-independent representation of hierarchical data element
specifications, plus the engine that resolves their effective shape.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Grammar or text parsing
    - Export formats (schemas, profiles, documentation)
    - File or network I/O beyond the serialization helpers

The registry defines SPECIFICATION STRUCTURE.
The resolver answers questions about it.

All exporters consume the resolved view unchanged.
"""

__version__ = "0.1.0"
