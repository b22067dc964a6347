"""Wadler-style pretty-printing documents and a width-aware renderer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Doc:
    """Base class for documents."""

    def __add__(self, other: Doc) -> Doc:
        return Concat(self, other)

    def render(self, width: int = 80) -> str:
        return render(self, width)


@dataclass(frozen=True)
class Nil(Doc):
    pass


@dataclass(frozen=True)
class Text(Doc):
    text: str

    def __post_init__(self) -> None:
        if "\n" in self.text:
            raise ValueError("Text documents must not contain newlines; use line()")


@dataclass(frozen=True)
class Line(Doc):
    """A space when its enclosing group fits on the line, a newline otherwise."""


@dataclass(frozen=True)
class Concat(Doc):
    left: Doc
    right: Doc


@dataclass(frozen=True)
class Nest(Doc):
    indent: int
    doc: Doc


@dataclass(frozen=True)
class Group(Doc):
    doc: Doc


def text(s: str) -> Doc:
    return Text(s)


def line() -> Doc:
    return Line()


def nest(indent: int, doc: Doc) -> Doc:
    return Nest(indent, doc)


def group(doc: Doc) -> Doc:
    return Group(doc)


def join(sep: Doc, docs: Iterable[Doc]) -> Doc:
    result: Doc = Nil()
    for i, d in enumerate(docs):
        result = d if i == 0 else result + sep + d
    return result


def paren(doc: Doc) -> Doc:
    """Wrap in parentheses, aligning broken lines just inside the bracket."""
    return text("(") + nest(1, doc) + text(")")


def _fits(width: int, doc: Doc, rest: list[tuple[int, bool, Doc]]) -> bool:
    """
    Whether ``doc`` laid out flat, followed by the pending ``rest`` of the
    render stack up to its next line break, stays within ``width`` columns.
    """
    items: list[tuple[bool, Doc]] = [(True, doc)]
    pending = len(rest)
    while width >= 0:
        if not items:
            if not pending:
                return True
            pending -= 1
            _, flat, d = rest[pending]
            items.append((flat, d))
        flat, d = items.pop()
        match d:
            case Text(s):
                width -= len(s)
            case Line():
                if not flat:
                    return True
                width -= 1
            case Concat(left, right):
                items.append((flat, right))
                items.append((flat, left))
            case Nest(_, inner) | Group(inner):
                items.append((flat, inner))
    return False


def render(doc: Doc, width: int = 80) -> str:
    """Lay ``doc`` out within ``width`` columns where groups allow it."""

    out: list[str] = []
    col = 0
    # (indent, flat, doc); the top of the stack is laid out next
    stack: list[tuple[int, bool, Doc]] = [(0, False, doc)]
    while stack:
        indent, flat, d = stack.pop()
        match d:
            case Nil():
                pass
            case Text(s):
                out.append(s)
                col += len(s)
            case Line():
                if flat:
                    out.append(" ")
                    col += 1
                else:
                    out.append("\n" + " " * indent)
                    col = indent
            case Concat(left, right):
                stack.append((indent, flat, right))
                stack.append((indent, flat, left))
            case Nest(extra, inner):
                stack.append((indent + extra, flat, inner))
            case Group(inner):
                fits = flat or _fits(width - col, inner, stack)
                stack.append((indent, fits, inner))
            case _:
                raise TypeError(f"Cannot render unknown document: {d!r}")
    return "".join(out)
