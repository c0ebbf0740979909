"""Reader and writer for the line-oriented properties format.

The format is the classic one:

    # comment
    ! also a comment
    key=value
    key: value
    key value
    long.key = first part \\
               second part

Byte streams are read and written as ISO-8859-1, one byte per character,
with everything outside printable ASCII written as ``\\uXXXX`` escapes.
Character streams are read as-is and, unless asked, written without
Unicode escapes.

Neither ``load`` nor ``store`` closes the stream it is given.
"""

import datetime
import io
from typing import AnyStr
from typing import Iterator
from typing import MutableMapping
from typing import Optional
from typing import Tuple

from stringprops.exceptions import FormatError


LATIN1 = "iso-8859-1"
LINE_SEPARATOR = "\n"
WHITESPACE = " \t\f"
HEX_DIGITS = "0123456789abcdefABCDEF"

_LOAD_ESCAPES = {
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "f": "\f",
}

_SAVE_ESCAPES = {
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
    "=": "\\=",
    ":": "\\:",
    "#": "\\#",
    "!": "\\!",
}


class LineReader:
    """Iterates over the logical lines of a stream.

    Comment lines, blank lines and the leading whitespace of each natural
    line are dropped. Continuation lines are joined, without the trailing
    backslash and without the leading whitespace of the continued line.
    """
    def __init__(self, stream, chunk_size=8192):
        self.stream = stream
        self.chunk_size = chunk_size
        self._chunk = ""
        self._offset = 0

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.read_line()
            if line is None:
                return
            yield line

    def _next_char(self) -> Optional[str]:
        if self._offset >= len(self._chunk):
            data = self.stream.read(self.chunk_size)
            if not data:
                return None
            if isinstance(data, (bytes, bytearray)):
                data = data.decode(LATIN1)
            self._chunk = data
            self._offset = 0
        c = self._chunk[self._offset]
        self._offset += 1
        return c

    def read_line(self) -> Optional[str]:
        """Returns the next logical line, or None at end of input."""
        buf = []
        skip_white_space = True
        is_comment_line = False
        is_new_line = True
        appended_line_begin = False
        preceding_backslash = False
        skip_lf = False

        while True:
            c = self._next_char()
            if c is None:
                if not buf or is_comment_line:
                    return None
                if preceding_backslash:
                    # Continuation with nothing left to continue onto.
                    buf.pop()
                return "".join(buf)

            if skip_lf:
                skip_lf = False
                if c == "\n":
                    continue

            if skip_white_space:
                if c in WHITESPACE:
                    continue
                if not appended_line_begin and c in "\r\n":
                    continue
                skip_white_space = False
                appended_line_begin = False

            if is_new_line:
                is_new_line = False
                if c in "#!":
                    is_comment_line = True
                    continue

            if c not in "\r\n":
                if is_comment_line:
                    continue
                buf.append(c)
                if c == "\\":
                    preceding_backslash = not preceding_backslash
                else:
                    preceding_backslash = False
                continue

            # End of a natural line.
            if is_comment_line or not buf:
                is_comment_line = False
                is_new_line = True
                skip_white_space = True
                preceding_backslash = False
                buf = []
                continue
            if not preceding_backslash:
                return "".join(buf)
            buf.pop()
            skip_white_space = True
            appended_line_begin = True
            preceding_backslash = False
            if c == "\r":
                skip_lf = True


def split_line(line: AnyStr) -> Tuple[str, str]:
    """Splits a logical line into its decoded key and value."""
    limit = len(line)
    key_len = 0
    value_start = limit
    has_sep = False
    preceding_backslash = False

    while key_len < limit:
        c = line[key_len]
        if c in "=:" and not preceding_backslash:
            value_start = key_len + 1
            has_sep = True
            break
        if c in WHITESPACE and not preceding_backslash:
            value_start = key_len + 1
            break
        if c == "\\":
            preceding_backslash = not preceding_backslash
        else:
            preceding_backslash = False
        key_len += 1

    while value_start < limit:
        c = line[value_start]
        if c not in WHITESPACE:
            if not has_sep and c in "=:":
                has_sep = True
            else:
                break
        value_start += 1

    return load_convert(line[:key_len]), load_convert(line[value_start:])


def load_convert(raw: AnyStr) -> str:
    """Decodes backslash escapes, including \\uXXXX, in a key or value."""
    if "\\" not in raw:
        return raw
    out = []
    i = 0
    n = len(raw)
    while i < n:
        c = raw[i]
        i += 1
        if c != "\\":
            out.append(c)
            continue
        if i >= n:
            break
        c = raw[i]
        i += 1
        if c == "u":
            digits = raw[i:i + 4]
            if len(digits) < 4 or any(d not in HEX_DIGITS for d in digits):
                raise FormatError("Malformed \\uxxxx encoding.", raw)
            out.append(chr(int(digits, 16)))
            i += 4
        else:
            out.append(_LOAD_ESCAPES.get(c, c))
    return _join_surrogates("".join(out))


def _join_surrogates(s):
    if not any("\ud800" <= c <= "\udfff" for c in s):
        return s
    return s.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


def _unicode_escape(c):
    data = c.encode("utf-16-be", "surrogatepass")
    return "".join(
        "\\u%04X" % int.from_bytes(data[i:i + 2], "big")
        for i in range(0, len(data), 2)
    )


def save_convert(text: AnyStr, escape_space: bool, escape_unicode: bool) -> str:
    """Escapes a key or value for writing."""
    out = []
    for index, c in enumerate(text):
        code = ord(c)
        if 61 < code < 127:
            out.append("\\\\" if c == "\\" else c)
        elif c == " ":
            out.append("\\ " if index == 0 or escape_space else " ")
        elif c in _SAVE_ESCAPES:
            out.append(_SAVE_ESCAPES[c])
        elif escape_unicode and (code < 0x20 or code > 0x7E):
            out.append(_unicode_escape(c))
        else:
            out.append(c)
    return "".join(out)


def write_comments(write, comments: AnyStr) -> None:
    write("#")
    length = len(comments)
    current = 0
    last = 0
    while current < length:
        c = comments[current]
        if ord(c) > 0xFF or c in "\r\n":
            if last != current:
                write(comments[last:current])
            if ord(c) > 0xFF:
                write(_unicode_escape(c))
            else:
                write(LINE_SEPARATOR)
                if c == "\r" and current != length - 1 and comments[current + 1] == "\n":
                    current += 1
                if current == length - 1 or comments[current + 1] not in "#!":
                    write("#")
            last = current + 1
        current += 1
    if last != current:
        write(comments[last:current])
    write(LINE_SEPARATOR)


def timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).strftime("%a %b %d %H:%M:%S UTC %Y")


def is_text_stream(stream) -> bool:
    return isinstance(stream, io.TextIOBase)


def load(stream, mapping: Optional[MutableMapping[str, str]] = None) -> MutableMapping[str, str]:
    """Reads every entry of stream into mapping.

    A later occurrence of a key overwrites an earlier one. Raises
    FormatError on a malformed \\uXXXX escape; whatever was read before
    the error is left in mapping.
    """
    if mapping is None:
        mapping = {}
    for line in LineReader(stream):
        key, value = split_line(line)
        mapping[key] = value
    return mapping


def loads(text: AnyStr) -> dict:
    return load(io.StringIO(text), {})


def store(mapping, stream, comments: Optional[str] = None, escape_unicode: Optional[bool] = None) -> None:
    """Writes mapping to stream in iteration order.

    Byte streams always get Unicode escapes. Character streams get them
    only when escape_unicode is true.
    """
    if is_text_stream(stream):
        write = stream.write
        escape_unicode = bool(escape_unicode)
    else:
        def write(s, stream=stream):
            stream.write(s.encode(LATIN1))
        escape_unicode = True

    if comments is not None:
        write_comments(write, comments)
    write("#" + timestamp() + LINE_SEPARATOR)
    for key, value in mapping.items():
        write(save_convert(key, True, escape_unicode))
        write("=")
        write(save_convert(value, False, escape_unicode))
        write(LINE_SEPARATOR)
    if hasattr(stream, "flush"):
        stream.flush()


def dumps(mapping, comments: Optional[str] = None, escape_unicode: bool = False) -> str:
    out = io.StringIO()
    store(mapping, out, comments=comments, escape_unicode=escape_unicode)
    return out.getvalue()
