"""Parser for message table dumps of legacy event resource files.

A dump is a sequence of text lines in which every message starts with a
header line of the form::

    ID 0x40000001 (1073741825) Language: 0409

followed by the lines of the message body. The header carries the packed
32-bit message ID, whose top nybble hints at the message type, whose next
three hex digits are the facility code and whose low 16 bits are the
event ID assigned by the developer.

The message type labels are a heuristic. Message compilers reuse the top
nybble both for severity bits and for manifest string categories, so the
label is only an annotation and never a reason to reject a record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .exceptions import MessageHeaderError
from .utils import replace_control_chars

logger = logging.getLogger(__name__)

HEADER_MARKER = "ID 0x"
MIN_HEADER_TOKENS = 5
HEX_ID_LENGTH = 10

MESSAGE_TYPE_MAP: Dict[str, str] = {
    "0x0": "Success",
    "0x1": "Keywords",
    "0x2": "Success (Customer)",
    "0x3": "Opcode",
    "0x4": "Informational",
    "0x5": "Level",
    "0x6": "Informational (Customer)",
    "0x7": "Task",
    "0x8": "Warning",
    "0x9": "Channel / Provider",
    "0xa": "Warning (Customer)",
    "0xb": "Event",
    "0xc": "Error",
    "0xd": "Map",
    "0xe": "Error (Customer)",
    "0xf": "Error (Customer, Reserved)",
}

# Applied in order to each message body
ESCAPE_SUBSTITUTIONS = (
    ("%n", "[NL]"),
    ("%t", "[TAB]"),
    ("%b", " "),
    ("%0", " "),
    ("\\n", "[NL]"),
    ("\\t", "[TAB]"),
)

MESSAGE_COLUMNS = [
    "ChannelName",
    "EventSource",
    "ExportFile",
    "ExportMessageID",
    "ExportMessageIDHex",
    "MessageId",
    "MessageType",
    "FacilityCode",
    "LocaleId",
    "Message",
]


@dataclass
class MessageHeader:
    """Decoded message header line."""

    message_id: int
    message_id_hex: str
    event_id: int
    type_key: str
    facility_code: str
    language: str

    @property
    def message_type(self) -> str:
        return classify_message_type(self.type_key)


@dataclass
class MessageRecord:
    """One message from a dumped resource file."""

    channel: str
    source: str
    resource_file: str
    message_id: int
    message_id_hex: str
    event_id: int
    message_type: str
    facility_code: str
    language: str
    message: str

    def to_row(self) -> List[str]:
        """Return the field values in MESSAGE_COLUMNS order."""
        return [
            self.channel,
            self.source,
            self.resource_file,
            str(self.message_id),
            self.message_id_hex,
            str(self.event_id),
            self.message_type,
            self.facility_code,
            self.language,
            self.message,
        ]


@dataclass
class MessageParseResult:
    """Result of parsing one dump.

    Attributes:
        records: Parsed messages in dump order.
        header_count: Number of header lines found.
        dropped_trailing_blocks: 1 when the block after the last header was
            not converted into a record, else 0.
        errors: Per-block parse failures.
    """

    records: List[MessageRecord] = field(default_factory=list)
    header_count: int = 0
    dropped_trailing_blocks: int = 0
    errors: List[MessageHeaderError] = field(default_factory=list)

    @property
    def parse_errors(self) -> int:
        return len(self.errors)


def classify_message_type(type_key: str) -> str:
    """Return the label for a message-type key such as ``0xc``.

    Unknown keys give an empty label.
    """
    return MESSAGE_TYPE_MAP.get(type_key.lower(), "")


def is_header_line(line: str) -> bool:
    return line.startswith(HEADER_MARKER)


def find_header_indices(lines: Sequence[str]) -> List[int]:
    """Return the indices of all header lines."""
    return [index for index, line in enumerate(lines) if is_header_line(line)]


def parse_header_line(line: str, line_number: int = 0) -> MessageHeader:
    """Decode a header line into its ID fields.

    The line is split on single spaces; token 1 is the hex ID, token 2 the
    decimal ID in parentheses and token 4 the language code.

    Args:
        line: The header line.
        line_number: Index of the line in the dump, used in error messages.

    Returns:
        MessageHeader with the decoded fields.

    Raises:
        MessageHeaderError: If the line does not have the expected shape or
            the hex and decimal IDs disagree.

    Example:
        >>> header = parse_header_line("ID 0xC0000064 (3221225572) Language: 0409")
        >>> header.event_id, header.facility_code, header.message_type
        (100, '000', 'Error')
    """
    tokens = line.rstrip("\r\n").split(" ")
    if len(tokens) < MIN_HEADER_TOKENS:
        raise MessageHeaderError(
            line,
            line_number,
            f"expected at least {MIN_HEADER_TOKENS} tokens, got {len(tokens)}",
        )

    hex_id = tokens[1]
    if len(hex_id) < HEX_ID_LENGTH:
        raise MessageHeaderError(
            line, line_number, f"hex ID {hex_id!r} is shorter than {HEX_ID_LENGTH}"
        )

    decimal_token = tokens[2].strip("()")
    try:
        message_id = int(hex_id, 16)
        decimal_id = int(decimal_token)
        event_id = int(hex_id[-4:], 16)
    except ValueError:
        raise MessageHeaderError(
            line, line_number, f"non-numeric ID {hex_id!r} / {tokens[2]!r}"
        )

    if message_id != decimal_id:
        raise MessageHeaderError(
            line,
            line_number,
            f"hex ID {hex_id} ({message_id}) does not match decimal ID {decimal_id}",
        )

    return MessageHeader(
        message_id=message_id,
        message_id_hex=hex_id,
        event_id=event_id,
        type_key=hex_id[:3].lower(),
        facility_code=hex_id[3:6],
        language=tokens[4],
    )


def flatten_message_body(lines: Sequence[str]) -> str:
    """Join the lines of a message body into one tab- and newline-free line.

    Each line is trimmed, trailing blank lines are dropped and the rest are
    joined with single spaces before the escape tokens are substituted.
    """
    trimmed = [line.strip() for line in lines]
    while trimmed and not trimmed[-1]:
        trimmed.pop()

    body = " ".join(trimmed)
    for token, replacement in ESCAPE_SUBSTITUTIONS:
        body = body.replace(token, replacement)
    return replace_control_chars(body)


def parse_message_dump(
    lines: Sequence[str],
    channel: str,
    source: str,
    resource_file: str,
    include_trailing_block: bool = False,
) -> MessageParseResult:
    """Split a dump into message records.

    Blocks run from one header line up to the next. With N header lines
    this yields N-1 blocks; the block that follows the last header has no
    closing header and is dropped unless ``include_trailing_block`` is set,
    in which case it runs to the end of the dump. A dropped trailing block
    is counted in the result so callers can report it.

    A block whose header cannot be decoded is skipped and its error is
    recorded; the remaining blocks are still parsed.

    Args:
        lines: Output lines of the dump tool.
        channel: Channel of the event source that references the file.
        source: Name of the event source.
        resource_file: Path of the dumped file.
        include_trailing_block: Also emit the block after the last header.

    Returns:
        MessageParseResult with records and per-block errors.
    """
    result = MessageParseResult()
    headers = find_header_indices(lines)
    result.header_count = len(headers)

    if not headers:
        logger.debug(f"No message headers in dump of {resource_file}")
        return result

    boundaries = headers[1:]
    if include_trailing_block:
        boundaries = boundaries + [len(lines)]
    else:
        result.dropped_trailing_blocks = 1
        logger.debug(
            f"{resource_file}: message at line {headers[-1]} has no closing "
            "header and was not exported"
        )

    for start, end in zip(headers, boundaries):
        try:
            header = parse_header_line(lines[start], start)
        except MessageHeaderError as e:
            logger.warning(f"{resource_file}: {e}")
            result.errors.append(e)
            continue

        result.records.append(
            MessageRecord(
                channel=channel,
                source=source,
                resource_file=resource_file,
                message_id=header.message_id,
                message_id_hex=header.message_id_hex,
                event_id=header.event_id,
                message_type=header.message_type,
                facility_code=header.facility_code,
                language=header.language,
                message=flatten_message_body(lines[start + 1 : end]),
            )
        )

    return result
