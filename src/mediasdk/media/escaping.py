"""
Escaping of literal values embedded in an FFmpeg ``-filter_complex`` graph.

A drawtext ``text`` value is read by three parsers in turn, and each one
strips its own layer of escaping:

1. the filter-graph parser splits the graph on ``[ ] , ;`` and removes
   backslash escapes and single quotes;
2. the option parser splits the filter arguments on ``:`` and again removes
   backslash escapes and single quotes, and trims unquoted whitespace;
3. drawtext expands the text, where ``%`` starts an expansion and a
   backslash escapes the next character.

Escaping is applied innermost first (3, then 2, then 1) and exactly once.
"""

_WHITESPACE = " \n\t\r"
# Characters the filter-graph parser treats specially; backslash goes first.
_GRAPH_SPECIALS = ("\\", "'", "[", "]", ",", ";")
# Characters that make the option parser need a quoted value.
_OPTION_SPECIALS = ("\\", "'", ":")


def _escape_expansion(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%")


def _quote_option(value: str) -> str:
    """Single-quote an option value when the option parser would alter it."""
    needs_quotes = any(char in value for char in _OPTION_SPECIALS) or (
        value != value.strip(_WHITESPACE)
    )
    if not needs_quotes:
        return value
    # A quote cannot appear inside quotes: close, emit an escaped quote, reopen.
    return "'" + value.replace("'", "'\\''") + "'"


def _escape_graph(value: str) -> str:
    for char in _GRAPH_SPECIALS:
        value = value.replace(char, "\\" + char)
    return value


def escape_drawtext_text(text: str) -> str:
    """
    Escape literal text for the drawtext ``text`` option of a filter graph.

    Characters outside the grammar, including newlines, emoji and combining
    marks, pass through untouched. Apply exactly once.

    Args:
        text: Literal text to display

    Returns:
        Escaped text to embed as ``text=<escaped>`` in ``-filter_complex``
    """
    if not text:
        return ""
    return _escape_graph(_quote_option(_escape_expansion(text)))


def escape_filter_value(value: str) -> str:
    """
    Escape a plain string option value such as a font name, path or color.

    Args:
        value: Option value

    Returns:
        Value quoted for the option parser and escaped for the graph parser
    """
    return _escape_graph(_quote_option(value))


def _read_token(value: str) -> str:
    """Remove one layer of backslash escapes and single quotes, as FFmpeg does."""
    out = []
    end = 0  # length of the protected prefix that trailing-space trimming keeps
    i = 0
    while i < len(value) and value[i] in _WHITESPACE:
        i += 1
    while i < len(value):
        char = value[i]
        i += 1
        if char == "\\" and i < len(value):
            out.append(value[i])
            i += 1
            end = len(out)
        elif char == "'":
            closing = value.find("'", i)
            if closing == -1:
                out.extend(value[i:])
                i = len(value)
            else:
                out.extend(value[i:closing])
                i = closing + 1
                end = len(out)
        else:
            out.append(char)
    while len(out) > end and out[-1] in _WHITESPACE:
        out.pop()
    return "".join(out)


def unescape_drawtext_text(escaped: str) -> str:
    """Reverse escape_drawtext_text, yielding the text the renderer displays."""
    text = _read_token(_read_token(escaped))
    out = []
    chars = iter(text)
    for char in chars:
        if char == "\\":
            out.append(next(chars, ""))
        else:
            out.append(char)
    return "".join(out)
