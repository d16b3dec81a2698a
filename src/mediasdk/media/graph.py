"""Filter graph model rendered to an FFmpeg ``-filter_complex`` string."""

from typing import Any, List, Optional, Sequence, Tuple, Union

from ..core.timing import format_number
from .escaping import escape_drawtext_text, escape_filter_value
from .expr import Expr, Num, Var, Raw


class Text:
    """Literal display text; escaped for drawtext when rendered."""

    __slots__ = ("value",)

    def __init__(self, value: str):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Text) and other.value == self.value

    def __repr__(self):
        return f"Text({self.value!r})"


OptionValue = Union[Expr, Text, str, int, float, bool]


def render_value(value: OptionValue) -> str:
    """Render one option value with the quoting or escaping its type needs."""
    if isinstance(value, Text):
        return escape_drawtext_text(value.value)
    if isinstance(value, Expr):
        text = value.render()
        if isinstance(value, (Num, Var)) or (
            isinstance(value, Raw) and value.precedence == 3
        ):
            return text
        return f"'{text}'"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return format_number(value)
    return escape_filter_value(str(value))


class Filter:
    """
    One filter with its options.

    Options with a key render as ``key=value``; options without a key render
    positionally, as in ``scale=1280:720``.
    """

    def __init__(self, name: str, *args: OptionValue, **kwargs: Any):
        self.name = name
        self.options: List[Tuple[Optional[str], OptionValue]] = [
            (None, arg) for arg in args
        ]
        for key, value in kwargs.items():
            if value is not None:
                self.options.append((key, value))

    def set(self, key: str, value: Optional[OptionValue]) -> "Filter":
        """Set or replace a keyword option; None removes it."""
        self.options = [(k, v) for k, v in self.options if k != key]
        if value is not None:
            self.options.append((key, value))
        return self

    def get(self, key: str) -> Optional[OptionValue]:
        for k, v in self.options:
            if k == key:
                return v
        return None

    def render(self) -> str:
        if not self.options:
            return self.name
        parts = [
            render_value(value) if key is None else f"{key}={render_value(value)}"
            for key, value in self.options
        ]
        return f"{self.name}={':'.join(parts)}"

    def __repr__(self):
        return f"Filter({self.render()!r})"


class FilterStage:
    """A chain of filters between labelled inputs and outputs."""

    def __init__(
        self,
        inputs: Sequence[str],
        filters: Sequence[Filter],
        outputs: Sequence[str],
    ):
        self.inputs = list(inputs)
        self.filters = list(filters)
        self.outputs = list(outputs)

    def render(self) -> str:
        ins = "".join(f"[{label}]" for label in self.inputs)
        outs = "".join(f"[{label}]" for label in self.outputs)
        chain = ",".join(f.render() for f in self.filters)
        return f"{ins}{chain}{outs}"


class FilterGraph:
    """Ordered list of stages; order is paint order for overlays."""

    def __init__(self):
        self.stages: List[FilterStage] = []

    def add(
        self,
        inputs: Sequence[str],
        filters: Sequence[Filter],
        outputs: Sequence[str],
    ) -> FilterStage:
        stage = FilterStage(inputs, filters, outputs)
        self.stages.append(stage)
        return stage

    def __len__(self) -> int:
        return len(self.stages)

    def render(self) -> str:
        return ";".join(stage.render() for stage in self.stages)
