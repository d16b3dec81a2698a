"""Shared test fixtures and configuration."""

import tempfile

import pytest

from mediasdk.captions import CaptionEntry


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


@pytest.fixture
def sample_srt():
    """Two well-formed SRT entries, the second one bold."""
    return (
        "1\n"
        "00:00:01,000 --> 00:00:04,000\n"
        "Hello world\n"
        "\n"
        "2\n"
        "00:00:05,500 --> 00:00:07,250\n"
        "<b>Bold</b> line\n"
    )


@pytest.fixture
def malformed_srt():
    """A good entry, a corrupted block and another good entry."""
    return (
        "1\n"
        "00:00:01,000 --> 00:00:02,000\n"
        "First\n"
        "\n"
        "garbage block\n"
        "this is not a time range\n"
        "\n"
        "3\n"
        "00:00:05,000 --> 00:00:06,000\n"
        "Third\n"
    )


@pytest.fixture
def overlapping_entries():
    """Entries at [0,5], [2,7], [4,9], [10,15] and [12,20]."""
    spans = [(0, 5), (2, 7), (4, 9), (10, 15), (12, 20)]
    return [
        CaptionEntry(text=f"Caption {i}", start_time=start, end_time=end)
        for i, (start, end) in enumerate(spans, 1)
    ]


_WHITESPACE = " \n\t\r"


class FilterGraphReader:
    """
    Reads a ``-filter_complex`` string the way FFmpeg does.

    Graph level and option level both tokenize with ``av_get_token`` rules;
    drawtext then expands its text, where only ``\\`` escapes and a bare
    ``%`` is an error.
    """

    @staticmethod
    def token(buf, pos, term):
        """Return (token, position of the terminator) following av_get_token."""
        out = []
        end = 0
        while pos < len(buf) and buf[pos] in _WHITESPACE:
            pos += 1
        while pos < len(buf) and buf[pos] not in term:
            char = buf[pos]
            pos += 1
            if char == "\\" and pos < len(buf):
                out.append(buf[pos])
                pos += 1
                end = len(out)
            elif char == "'":
                while pos < len(buf) and buf[pos] != "'":
                    out.append(buf[pos])
                    pos += 1
                if pos < len(buf):
                    pos += 1
                    end = len(out)
            else:
                out.append(char)
        while len(out) > end and out[-1] in _WHITESPACE:
            out.pop()
        return "".join(out), pos

    def filters(self, graph):
        """List (name, args) for every filter in the graph."""
        found = []
        pos = 0
        while pos < len(graph):
            while graph.startswith("[", pos):
                pos = graph.index("]", pos) + 1
            name, pos = self.token(graph, pos, "=,;[")
            args = None
            if graph.startswith("=", pos):
                args, pos = self.token(graph, pos + 1, "[],;")
            found.append((name, args))
            while pos < len(graph) and graph[pos] in "[,;":
                pos = graph.index("]", pos) + 1 if graph[pos] == "[" else pos + 1
        return found

    def options(self, args):
        """Split filter args into a dict; positional values are keyed by index."""
        parsed = {}
        pos = 0
        index = 0
        while pos < len(args):
            key_end = pos
            while key_end < len(args) and (args[key_end].isalnum() or args[key_end] in "-_./"):
                key_end += 1
            key = None
            if key_end > pos and args.startswith("=", key_end):
                key = args[pos:key_end]
                pos = key_end + 1
            value, pos = self.token(args, pos, ":")
            parsed[key if key is not None else index] = value
            index += 1
            if args.startswith(":", pos):
                pos += 1
        return parsed

    @staticmethod
    def expand_text(text):
        """Expand drawtext text; raises ValueError on a stray percent sign."""
        out = []
        i = 0
        while i < len(text):
            if text[i] == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
            elif text[i] == "%":
                raise ValueError(f"Stray % near {text[i:]!r}")
            else:
                out.append(text[i])
                i += 1
        return "".join(out)

    def drawtext(self, graph):
        """Options of every drawtext filter, with the text already expanded."""
        result = []
        for name, args in self.filters(graph):
            if name == "drawtext":
                options = self.options(args or "")
                options["text"] = self.expand_text(options.get("text", ""))
                result.append(options)
        return result


@pytest.fixture
def graph_reader():
    """Parser that reads filter graphs with FFmpeg's escaping rules."""
    return FilterGraphReader()
