"""Schema helpers for CFDI XML documents."""

from __future__ import annotations

from pathlib import Path

from lxml import etree

CFDI_XSD_NAME = "cfdv40.xsd"


def load_cfdi_file(path: Path) -> etree._Element:
    """Parse the CFDI XML file at *path* and return its root element."""

    return etree.parse(str(path)).getroot()


def parse_cfdi(text: str) -> etree._Element:
    """Parse serialized CFDI ``text`` (with or without XML declaration)."""

    return etree.fromstring(text.encode("utf-8"))


def default_xsd_path(search_dirs: list[Path] | None = None) -> Path | None:
    """Return the first ``cfdv40.xsd`` found in ``search_dirs``."""

    if search_dirs is None:
        search_dirs = [Path.cwd(), Path.cwd() / "schemas"]
    for base in search_dirs:
        candidate = base / CFDI_XSD_NAME
        if candidate.exists():
            return candidate
    return None


def validate_xsd(xml: str | etree._Element, xsd_path: Path) -> tuple[bool, list[str]]:
    """Validate ``xml`` against the schema at ``xsd_path``.

    Returns the outcome and the schema error messages. A schema that cannot
    be parsed is reported as a failed validation.
    """

    root = parse_cfdi(xml) if isinstance(xml, str) else xml
    try:
        schema = etree.XMLSchema(etree.parse(str(xsd_path)))
    except (OSError, etree.XMLSyntaxError, etree.XMLSchemaParseError) as exc:
        return False, [f"XSD validation exception: {exc}"]

    ok = schema.validate(root)
    errors = [f"line {e.line}: {e.message}" for e in schema.error_log] if not ok else []
    return ok, errors


__all__ = [
    "default_xsd_path",
    "load_cfdi_file",
    "parse_cfdi",
    "validate_xsd",
]
