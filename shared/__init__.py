"""
Shared Kernel

Entity and event base classes, value objects, the error taxonomy, the
message bus and the unit of work used by every AgriStore context.
"""
