"""Library for formatting output."""

from collections.abc import Generator
import json
import sys
from typing import Any, TextIO

import yaml

PADDING = 4

TABLE = "table"
YAML = "yaml"
JSON = "json"
OUTPUT_FORMATS = [TABLE, YAML, JSON]


def column_format_string(rows: list[list[str]]) -> str:
    """Produce a format string based on max width of columns."""
    widths = [0] * len(rows[0])
    for row in rows:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(str(value)))
    return "".join([f"{{:{w+PADDING}}}" for w in widths])


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the header and rows aligned in columns."""
    data = [headers] + rows
    if format_string := column_format_string(data):
        for row in data:
            yield format_string.format(*[str(x) for x in row])


class PrintFormatter:
    """A formatter that prints human readable console output."""

    def __init__(self, keys: list[str] | None = None):
        """Initialize the PrintFormatter with optional keys to print."""
        self._keys = keys

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the data objects."""
        if not data:
            return
        keys = self._keys if self._keys is not None else list(data[0])
        rows = [[_cell(row[key]) for key in keys] for row in data]
        cols = [col.upper() for col in keys]
        yield from format_columns(cols, rows)

    def print(
        self, data: list[dict[str, Any]], file: TextIO | None = None
    ) -> None:
        """Output the data objects, default to stdout."""
        for result in self.format(data):
            print(result.rstrip(), file=file or sys.stdout)


def _cell(value: Any) -> str:
    if isinstance(value, list):
        return ",".join(str(item) for item in value) or "-"
    return str(value) if value != "" else "-"


class YamlListFormatter:
    """A formatter that prints a yaml list."""

    def print(
        self, data: list[dict[str, Any]], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        print(yaml.dump(data, sort_keys=False, explicit_start=True), end="", file=file)


class JsonFormatter:
    """A formatter that prints json output."""

    def print(
        self, data: list[dict[str, Any]], file: TextIO | None = None
    ) -> None:
        file = file or sys.stdout
        json.dump(data, sort_keys=False, indent=4, fp=file)
        print(file=file)


def formatter(
    output: str, keys: list[str] | None = None
) -> PrintFormatter | YamlListFormatter | JsonFormatter:
    """Return the formatter for an output format name."""
    if output == YAML:
        return YamlListFormatter()
    if output == JSON:
        return JsonFormatter()
    return PrintFormatter(keys)
