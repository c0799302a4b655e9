"""Tab-separated output for extracted event definitions.

Both pipelines write the same shape of file: UTF-8 without a byte-order
mark, a header row naming every column, then one record per line with
fields separated by a literal tab.
"""

from pathlib import Path
from typing import Iterable, List, Sequence, Union

from .exceptions import OutputWriteError

FIELD_SEPARATOR = "\t"
LINE_SEPARATOR = "\n"
OUTPUT_ENCODING = "utf-8"


class TsvFormatter:
    """Tab-separated output formatter."""

    def format_row(self, fields: Sequence[str]) -> str:
        """Join one row's fields, keeping every field on one line."""
        return FIELD_SEPARATOR.join(self._sanitize_cell(value) for value in fields)

    def format_lines(
        self, header: Sequence[str], rows: Iterable[Sequence[str]]
    ) -> List[str]:
        """Return the header line followed by one line per row."""
        lines = [self.format_row(header)]
        lines.extend(self.format_row(row) for row in rows)
        return lines

    def format(self, header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
        """Format header and rows as TSV text."""
        return LINE_SEPARATOR.join(self.format_lines(header, rows)) + LINE_SEPARATOR

    def write(
        self,
        output: Union[str, Path],
        header: Sequence[str],
        rows: Iterable[Sequence[str]],
    ) -> Path:
        """Write formatted output to a file, replacing any existing content.

        The whole document is built in memory and written in one call.

        Returns:
            The path written to.

        Raises:
            OutputWriteError: If the file cannot be written.
        """
        path = Path(output)
        content = self.format(header, rows)
        try:
            with path.open("w", encoding=OUTPUT_ENCODING, newline="") as f:
                f.write(content)
        except OSError as e:
            raise OutputWriteError(f"Cannot write output file ({e})", str(path))
        return path

    @staticmethod
    def _sanitize_cell(value: str) -> str:
        """Replace tabs and line breaks with spaces."""
        if not value:
            return ""
        for token in ("\r\n", "\r", "\n", "\t"):
            value = value.replace(token, " ")
        return value


def write_tsv(
    output: Union[str, Path],
    header: Sequence[str],
    rows: Iterable[Sequence[str]],
) -> Path:
    """Write rows to a TSV file with the default formatter."""
    return TsvFormatter().write(output, header, rows)
