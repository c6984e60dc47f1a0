"""Command line entry points for the CFDI tools."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from .commands import cancel, create, export, report, stamp, validate
from .exceptions import CfdiError

CommandCallable = Callable[[list[str] | None], int | None]


@dataclass(frozen=True)
class CommandSpec:
    """Metadata describing a CLI command exposed by :mod:`cfdimx.cli`."""

    name: str
    summary: str
    handler: CommandCallable
    module: str

    def run(self, argv: list[str] | None) -> int:
        """Execute the command and normalise the resulting exit code."""

        try:
            result = self.handler(argv)
        except SystemExit as exc:  # argparse exits on --help and usage errors
            code = exc.code
            if code is None:
                return 0
            if isinstance(code, int):
                return code
            print(str(code), file=sys.stderr)
            return 1
        except CfdiError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 2
        if result is None:
            return 0
        return int(result)


_COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec(
        name="validate",
        summary="Valida un CFDI en JSON y lista todos los errores.",
        handler=validate.main,
        module="cfdimx.commands.validate",
    ),
    CommandSpec(
        name="create",
        summary="Guarda un CFDI en borrador a partir de un JSON.",
        handler=create.main,
        module="cfdimx.commands.create",
    ),
    CommandSpec(
        name="stamp",
        summary="Registra el timbre fiscal de un CFDI en borrador.",
        handler=stamp.main,
        module="cfdimx.commands.stamp",
    ),
    CommandSpec(
        name="cancel",
        summary="Cancela un CFDI timbrado.",
        handler=cancel.main,
        module="cfdimx.commands.cancel",
    ),
    CommandSpec(
        name="export",
        summary="Genera el XML CFDI 4.0 de un CFDI guardado.",
        handler=export.main,
        module="cfdimx.commands.export",
    ),
    CommandSpec(
        name="report",
        summary="Reporte en Excel con totales por estado.",
        handler=report.main,
        module="cfdimx.commands.report",
    ),
)

_COMMAND_INDEX: Mapping[str, CommandSpec] = {spec.name: spec for spec in _COMMANDS}


def available_commands() -> Iterable[CommandSpec]:
    """Return the commands registered in the CLI."""

    return _COMMANDS


def build_parser() -> argparse.ArgumentParser:
    """Return the base argument parser shared across commands."""

    parser = argparse.ArgumentParser(prog="cfdimx", description="Herramientas CFDI 4.0")
    subparsers = parser.add_subparsers(dest="command", metavar="comando")
    subparsers.required = True

    for spec in _COMMANDS:
        subparsers.add_parser(
            spec.name,
            help=spec.summary,
            description=spec.summary,
            add_help=False,
        )

    return parser


def run(command: str, argv: Sequence[str] | None = None) -> int:
    """Execute *command* forwarding ``argv`` to the underlying handler."""

    spec = _COMMAND_INDEX.get(command)
    if spec is None:
        raise ValueError(f"Comando desconocido: {command}")
    forwarded = list(argv or [])
    return spec.run(forwarded)


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the command line interface."""

    parser = build_parser()
    args = list(sys.argv[1:] if argv is None else argv)
    # Only the command name is parsed here; its options belong to the handler.
    namespace = parser.parse_args(args[:1])
    return run(namespace.command, args[1:])


if __name__ == "__main__":  # pragma: no cover - ejecución directa
    raise SystemExit(main())
