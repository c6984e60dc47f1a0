"""Invoice engine for Mexican CFDI 4.0 electronic invoices.

The main entry points are :func:`cfdimx.calculator.recompute`,
:func:`cfdimx.validator.validate`, the transitions in
:mod:`cfdimx.lifecycle` and :func:`cfdimx.serializer.serialize`.
"""

__version__ = "0.1.0"

__all__ = [
    "calculator",
    "catalogs",
    "cli",
    "codec",
    "commands",
    "exceptions",
    "lifecycle",
    "logging",
    "models",
    "reporting",
    "schema",
    "serializer",
    "service",
    "store",
    "utils",
    "validator",
]
