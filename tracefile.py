# tracefile.py
import enum
import logging
import re
from typing import NamedTuple

from errors import MalformedTraceError, TraceFileError

logger = logging.getLogger(__name__)

# Longest accepted line including its newline.
MAX_LINE_LENGTH = 99

_LINE_RE = re.compile(r"\s*(\S+)\s+([0-9a-fA-F]{1,16}),(\d+)\s*")


class Operation(enum.Enum):
    LOAD = "L"
    STORE = "S"
    MODIFY = "M"

    @classmethod
    def from_code(cls, code):
        """Return the Operation for a trace op code, or None when it is not a data op."""
        try:
            return cls(code)
        except ValueError:
            return None


class TraceRecord(NamedTuple):
    code: str
    address: int
    size: int
    text: str = ""

    @property
    def operation(self):
        return Operation.from_code(self.code)


def parse_trace_line(line, line_number=None):
    """
    Parse one raw trace line (newline included) into a TraceRecord.
    Raises MalformedTraceError if the line breaks the format.
    """
    if len(line) > MAX_LINE_LENGTH:
        raise MalformedTraceError(f"line longer than {MAX_LINE_LENGTH} characters", line_number)
    if not line.endswith("\n"):
        raise MalformedTraceError("line is not newline-terminated", line_number)
    text = line[:-1]
    match = _LINE_RE.fullmatch(text)
    if match is None:
        raise MalformedTraceError(f"cannot parse {text!r}", line_number)
    code, address, size = match.groups()
    return TraceRecord(code, int(address, 16), int(size), text.strip())


def iter_trace_lines(f):
    """
    Yield (line_number, line) from a binary file, never reading more than one
    bounded line at a time.
    """
    line_number = 0
    while True:
        line_number += 1
        raw = f.readline(MAX_LINE_LENGTH + 1)
        if not raw:
            return
        if raw.endswith(b"\r\n"):
            raw = raw[:-2] + b"\n"
        try:
            line = raw.decode("ascii")
        except UnicodeDecodeError as exc:
            raise MalformedTraceError("line is not ASCII text", line_number) from exc
        yield line_number, line


def read_trace(path):
    """
    Read and parse a whole trace file.
    Every line is validated before any record is returned, so a malformed
    line anywhere means no records at all.
    """
    try:
        f = open(path, "rb")
    except OSError as exc:
        raise TraceFileError(f"cannot open trace file {path}: {exc.strerror}") from exc

    records = []
    with f:
        for line_number, line in iter_trace_lines(f):
            records.append(parse_trace_line(line, line_number))
    logger.info("Read %d trace records from %s", len(records), path)
    return records
