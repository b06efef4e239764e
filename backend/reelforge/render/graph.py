"""FFmpeg filter_complex program model.

A program is an ordered list of statements. Each statement reads zero or more
pads (input file streams such as ``0:v`` or labels produced earlier), applies
a comma-separated filter chain and writes one or more freshly allocated
labels. Labels come from a per-graph arena so two renders never share a
counter and a label is never issued twice.

``lint_program`` re-parses the emitted text the way FFmpeg's graph parser
tokenizes it (backslash escapes, single-quoted spans, ``;`` between
statements) and reports every label that is consumed before it is produced,
consumed twice, produced twice or left dangling.
"""

import re
from dataclasses import dataclass, field
from itertools import count

from reelforge.exceptions import FilterGraphError

STATEMENT_SEPARATOR = ";"
INPUT_PAD_RE = re.compile(r"^(\d+):([va])$")
_LEADING_PADS_RE = re.compile(r"^((?:\[[^\[\]]+\])+)")
_TRAILING_PADS_RE = re.compile(r"((?:\[[^\[\]]+\])+)$")
_PAD_RE = re.compile(r"\[([^\[\]]+)\]")


def format_number(value: float) -> str:
    """Render a number for the filter DSL: ``5`` not ``5.0``, at most 3 decimals."""
    if isinstance(value, int):
        return str(value)
    rounded = round(float(value), 3)
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.3f}".rstrip("0").rstrip(".")


def input_pad(index: int, kind: str = "v") -> str:
    """Pad name for stream ``kind`` of the ``index``-th ``-i`` input."""
    return f"{index}:{kind}"


@dataclass(frozen=True)
class Statement:
    """One ``[in]...filter,filter...[out]`` statement."""

    inputs: tuple[str, ...]
    filters: tuple[str, ...]
    outputs: tuple[str, ...]

    def render(self) -> str:
        ins = "".join(f"[{pad}]" for pad in self.inputs)
        outs = "".join(f"[{pad}]" for pad in self.outputs)
        return f"{ins}{','.join(self.filters)}{outs}"


class LabelArena:
    """Issues unique stream labels for one render job."""

    def __init__(self) -> None:
        self._counter = count()
        self._issued: set[str] = set()

    def new(self, stem: str) -> str:
        label = f"{stem}{next(self._counter)}"
        self._issued.add(label)
        return label

    def issued(self, label: str) -> bool:
        return label in self._issued


@dataclass
class FilterGraph:
    """Ordered filter_complex program under construction."""

    input_count: int = 0
    statements: list[Statement] = field(default_factory=list)
    labels: LabelArena = field(default_factory=LabelArena)
    _consumed: set[str] = field(default_factory=set)

    def add(
        self,
        inputs: list[str] | tuple[str, ...],
        filters: str | list[str],
        stem: str = "s",
        outputs: int = 1,
    ) -> str | list[str]:
        """Append a statement and return its fresh output label(s).

        Raises:
            FilterGraphError: if an input label was never produced or has
                already been consumed
        """
        problems = []
        for pad in inputs:
            if INPUT_PAD_RE.match(pad):
                continue
            if not self.labels.issued(pad):
                problems.append(f"label [{pad}] consumed before it is produced")
            elif pad in self._consumed:
                problems.append(f"label [{pad}] consumed twice")
        if problems:
            raise FilterGraphError(problems)

        self._consumed.update(p for p in inputs if not INPUT_PAD_RE.match(p))
        chain = (filters,) if isinstance(filters, str) else tuple(filters)
        labels = tuple(self.labels.new(stem) for _ in range(outputs))
        self.statements.append(Statement(tuple(inputs), chain, labels))
        return labels[0] if outputs == 1 else list(labels)

    def render(self) -> str:
        return STATEMENT_SEPARATOR.join(statement.render() for statement in self.statements)

    def validate(self, mapped: list[str]) -> str:
        """Render the program and lint it against the labels mapped to outputs.

        Raises:
            FilterGraphError: if the program is not well formed
        """
        program = self.render()
        problems = lint_program(program, self.input_count, mapped)
        if problems:
            raise FilterGraphError(problems)
        return program


def split_statements(program: str) -> tuple[list[str], list[str]]:
    """Split a program on top-level ``;`` honouring escapes and quotes."""
    statements: list[str] = []
    problems: list[str] = []
    current: list[str] = []
    in_quote = False
    i = 0
    while i < len(program):
        ch = program[i]
        if in_quote:
            # FFmpeg does not honour escapes inside single quotes
            if ch == "'":
                in_quote = False
            current.append(ch)
        elif ch == "\\" and i + 1 < len(program):
            current.append(program[i : i + 2])
            i += 1
        elif ch == "'":
            in_quote = True
            current.append(ch)
        elif ch == STATEMENT_SEPARATOR:
            statements.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    if in_quote:
        problems.append("unterminated quote")
    statements.append("".join(current))
    return statements, problems


def lint_program(program: str, input_count: int, mapped: list[str]) -> list[str]:
    """Statically check label flow in an emitted filter_complex program.

    Args:
        program: the joined filter_complex text
        input_count: number of ``-i`` inputs on the command line
        mapped: labels passed to ``-map`` (they must be produced and unconsumed)

    Returns:
        A list of problems; empty when the program is well formed.
    """
    statements, problems = split_statements(program)
    produced: set[str] = set()
    consumed: set[str] = set()

    for index, text in enumerate(statements):
        if not text.strip():
            problems.append(f"statement {index} is empty")
            continue

        lead = _LEADING_PADS_RE.match(text)
        inputs = _PAD_RE.findall(lead.group(1)) if lead else []
        body = text[lead.end() :] if lead else text
        trail = _TRAILING_PADS_RE.search(body)
        outputs = _PAD_RE.findall(trail.group(1)) if trail else []
        chain = body[: trail.start()] if trail else body

        if not outputs:
            problems.append(f"statement {index} has no output label")
        if not chain:
            problems.append(f"statement {index} has no filter")

        for pad in inputs:
            match = INPUT_PAD_RE.match(pad)
            if match:
                if int(match.group(1)) >= input_count:
                    problems.append(f"statement {index} reads missing input [{pad}]")
                continue
            if pad not in produced:
                problems.append(f"statement {index} consumes [{pad}] before it is produced")
            elif pad in consumed:
                problems.append(f"statement {index} consumes [{pad}] twice")
            consumed.add(pad)

        for pad in outputs:
            if pad in produced:
                problems.append(f"statement {index} produces [{pad}] twice")
            produced.add(pad)

    for pad in mapped:
        if pad not in produced:
            problems.append(f"mapped label [{pad}] is never produced")
        elif pad in consumed:
            problems.append(f"mapped label [{pad}] is also consumed inside the graph")

    dangling = produced - consumed - set(mapped)
    for pad in sorted(dangling):
        problems.append(f"label [{pad}] is produced but never used")
    return problems
