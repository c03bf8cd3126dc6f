"""
Conversion between the editor's rich-text tree and the vault's markup text.

The tree uses the editor's JSON shape (`doc`, `paragraph`, `heading`,
`bulletList`, `orderedList`, `taskList`, `listItem`, `taskItem`, `codeBlock`,
`blockquote`, `horizontalRule`, `image`, `text`, `hardBreak`) so a legacy
JSON body validates straight into `Node`.

- to_text: depth-first walk, one block per paragraph/heading/list/etc,
  blocks separated by a blank line. Inline marks are emitted as runs with a
  fixed nesting (link outermost, code innermost).
- from_text: line scanner; fenced code first, then one prefix test per block
  kind, greedy runs, paragraph as the fallback. Inline text is read in one
  left-to-right pass with a delimiter stack; code spans are taken whole as
  soon as they are seen and unmatched delimiters stay literal. Never raises.

Plain text is backslash-escaped on the way out, and whitespace is moved out
of emphasis edges, so that to_text(from_text(s)) is a fixed point of
to_text(from_text(...)) for any s.
"""
from __future__ import annotations
from string import punctuation
from typing import Any, NamedTuple, Optional, Union
from urllib.parse import quote
import re

from pydantic import BaseModel, ConfigDict


class Mark(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    attrs: Optional[dict[str, Any]] = None


class Node(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    content: Optional[list[Node]] = None
    text: Optional[str] = None
    marks: Optional[list[Mark]] = None
    attrs: Optional[dict[str, Any]] = None

    def attr(self, key: str, default: Any = None) -> Any:
        return (self.attrs or {}).get(key, default)


Node.model_rebuild()


LIST_TYPES = ("bulletList", "orderedList", "taskList")
INLINE_TYPES = ("text", "hardBreak", "image")

# innermost first; link always outermost
MARK_ORDER = ("code", "italic", "bold", "strike", "underline", "link")
_OUTER_FIRST = tuple(reversed(MARK_ORDER[1:]))
_OPENERS = {"italic": "*", "bold": "**", "strike": "~~", "underline": "<u>", "link": "["}
_CLOSERS = {"italic": "*", "bold": "**", "strike": "~~", "underline": "</u>"}
_STARS = ("italic", "bold")

_TEXT_ESCAPE_RE = re.compile(r"([\\`*_~\[\]<])")
_HREF_ESCAPE_RE = re.compile(r"([\\)])")
_SPACE_RE = re.compile(r"\s")


def _int(value: Any, default: int) -> int:
    """Attribute values from legacy trees can be anything."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _str(value: Any) -> str:
    return "" if value is None else str(value)


# ---------- builders ----------

def text(value: str, *marks: str, link: Optional[str] = None) -> Node:
    kinds = [Mark(type=m) for m in marks]
    if link is not None:
        kinds.append(Mark(type="link", attrs={"href": link}))
    return Node(type="text", text=value, marks=_sorted_marks(kinds))


def block(type_: str, *children: Node, **attrs: Any) -> Node:
    return Node(type=type_, content=list(children) or None, attrs=attrs or None)


def doc(*children: Node) -> Node:
    return Node(type="doc", content=list(children))


def _sorted_marks(marks: list[Mark]) -> Optional[list[Mark]]:
    if not marks:
        return None
    rank = {name: i for i, name in enumerate(MARK_ORDER)}
    return sorted(marks, key=lambda m: rank.get(m.type, len(rank)))


# ---------- block-start detection (shared by parser and escaper) ----------

_HEADING_RE = re.compile(r"^(#{1,6}) +(.+)$")
_HR_RE = re.compile(r"^[-*_]{3,}\s*$")
_FENCE_RE = re.compile(r"^```[^`]*$")
_HTML_IMG_RE = re.compile(r'^<img\s+src="([^"]*)"\s+alt="([^"]*)"(?:\s+width="(\d+)")?\s*/?>$')
_IMG_LINE_RE = re.compile(r"^!\[([^\]]*)\]\(([^)\s]*)\)$")
_TASK_RE = re.compile(r"^( *)[-*+] +\[([ xX])\](?: +(.*))?$")
_LIST_RE = re.compile(r"^( *)([-*+]|\d+\.)(?: +(.*))?$")
_NUMBER_RE = re.compile(r" *\d+")


class _Marker(NamedTuple):
    indent: int
    kind: str  # bulletList | orderedList | taskList
    text: str
    checked: bool = False
    number: int = 1


def _list_marker(line: str) -> Optional[_Marker]:
    m = _TASK_RE.match(line)
    if m:
        return _Marker(len(m.group(1)), "taskList", m.group(3) or "", checked=m.group(2) != " ")
    m = _LIST_RE.match(line)
    if m:
        marker = m.group(2)
        if marker[0].isdigit():
            return _Marker(len(m.group(1)), "orderedList", m.group(3) or "", number=int(marker[:-1]))
        return _Marker(len(m.group(1)), "bulletList", m.group(3) or "")
    return None


def _is_image_line(line: str) -> bool:
    return bool(_HTML_IMG_RE.match(line) or _IMG_LINE_RE.match(line))


def _starts_block(line: str) -> bool:
    return bool(
        _FENCE_RE.match(line)
        or line.startswith(">")
        or _HEADING_RE.match(line)
        or _HR_RE.match(line)
        or _is_image_line(line)
        or _list_marker(line)
    )


def _escape_line(line: str) -> str:
    """Backslash the marker char of a text line that would open a block."""
    if not _starts_block(line) or _is_image_line(line):
        return line
    if _HR_RE.match(line):
        # '*' and '_' here are emphasis delimiters; '-' is always text
        at = line.find("-")
    else:
        lead = len(line) - len(line.lstrip(" "))
        number = _NUMBER_RE.match(line)
        if number and number.end() > lead:
            at = number.end()
        elif line[lead] in "-+#>":
            at = lead
        else:
            at = -1
    if at < 0:
        return line
    return line[:at] + "\\" + line[at:]


# ---------- tree -> text ----------

def to_text(tree: Node) -> str:
    nodes = (tree.content or []) if tree.type == "doc" else [tree]
    return _blocks(nodes)


def _blocks(nodes: list[Node]) -> str:
    return "\n".join(b for b in (_block(n) for n in nodes) if b)


def _block(node: Node) -> str:
    t = node.type
    if t == "heading":
        level = min(max(_int(node.attr("level"), 1), 1), 6)
        line = _render(_spans(node.content), "<br>")
        line = line.lstrip(" ") or (" " if line else "")
        return f"{'#' * level} {line}\n"
    if t in LIST_TYPES:
        body = _list(node, 0)
        return body + "\n" if body else ""
    if t == "codeBlock":
        lang = _SPACE_RE.sub(" ", _str(node.attr("language"))).replace("`", "").strip()
        code = _plain(node).replace("\r\n", "\n").replace("\r", "\n")
        return f"```{lang}\n{code}\n```\n"
    if t == "blockquote":
        inner = _blocks(node.content or []).rstrip("\n")
        return "\n".join(f"> {ln}" if ln else ">" for ln in inner.split("\n")) + "\n"
    if t == "horizontalRule":
        return "---\n"
    if t == "image":
        return _block_image(node) + "\n"
    # paragraph, stray inline nodes, and anything unknown
    return _paragraph(_leaves(node))


def _leaves(node: Node) -> list[Node]:
    """Inline nodes under `node`; nested blocks are joined with hard breaks."""
    if node.type in INLINE_TYPES:
        return [node]
    out: list[Node] = []
    for child in node.content or []:
        if child.type in INLINE_TYPES:
            out.append(child)
            continue
        if out:
            out.append(Node(type="hardBreak"))
        out.extend(_leaves(child))
    return out


def _paragraph(inlines: list[Node]) -> str:
    lines = [_escape_line(ln) for ln in _render(_spans(inlines), "\n").split("\n")]
    if all(_line_fits(ln, len(lines)) for ln in lines):
        return "\n".join(lines) + "\n"
    # a break at an edge, a blank line, or a line that still reads as a block
    line = _escape_line(_render(_spans(inlines), "<br>"))
    return line + "\n" if line.strip() else ""


def _line_fits(line: str, count: int) -> bool:
    if not line.strip():
        return False
    if _is_image_line(line):
        return count == 1
    return not _starts_block(line)


def _list(node: Node, depth: int) -> str:
    start = max(_int(node.attr("start"), 1), 0)
    lines = []
    for i, item in enumerate(node.content or []):
        if node.type == "orderedList":
            prefix = f"{start + i}. "
        elif node.type == "taskList":
            prefix = "- [x] " if item.attr("checked") else "- [ ] "
        else:
            prefix = "- "
        lines.append(_list_item(item, depth, prefix))
    return "\n".join(lines)


def _list_item(item: Node, depth: int, prefix: str) -> str:
    indent = "  " * depth
    out = []
    for child in item.content or []:
        if child.type in LIST_TYPES:
            if not out:
                out.append(indent + prefix)
            nested = _list(child, depth + 1)
            if nested:
                out.append(nested)
            continue
        line = _render(_spans(_leaves(child)), "<br>")
        if not out:
            out.append(indent + prefix + line.lstrip(" "))
        elif line.strip():
            out.append(indent + "  " + _escape_line(line))
    return "\n".join(out) or indent + prefix


# ---------- inline runs ----------

MarkKey = tuple[str, Optional[str]]


class _Span(NamedTuple):
    text: str
    marks: tuple[MarkKey, ...]  # outer first, code excluded
    code: bool = False


_Item = Union[_Span, Node]


def _mark_keys(marks: Optional[list[Mark]]) -> tuple[tuple[MarkKey, ...], bool]:
    found: dict[str, Optional[str]] = {}
    for m in marks or []:
        if m.type == "link":
            found.setdefault("link", _str((m.attrs or {}).get("href")))
        elif m.type in MARK_ORDER:
            found.setdefault(m.type, None)
    keys = tuple((kind, found[kind]) for kind in _OUTER_FIRST if kind in found)
    return keys, "code" in found


def _spans(nodes: Optional[list[Node]]) -> list[_Item]:
    items: list[_Item] = []
    for n in nodes or []:
        if n.type in ("hardBreak", "image"):
            items.append(n)
        elif n.type == "text" and n.text:
            marks, code = _mark_keys(n.marks)
            value = n.text.replace("\r\n", "\n").replace("\r", "\n")
            if code:
                items.append(_Span(value.replace("\n", " "), marks, True))
                continue
            for i, part in enumerate(value.split("\n")):
                if i:
                    items.append(Node(type="hardBreak"))
                if part:
                    items.append(_Span(part, marks))
        elif n.content:
            items.extend(_spans(n.content))
    return _settle(items)


def _shared(a: tuple, b: tuple) -> int:
    n = 0
    while n < len(a) and n < len(b) and a[n] == b[n]:
        n += 1
    return n


def _merge(items: list[_Item]) -> list[_Item]:
    out: list[_Item] = []
    for item in items:
        last = out[-1] if out else None
        if (
            isinstance(item, _Span) and isinstance(last, _Span)
            and last.marks == item.marks and last.code == item.code
        ):
            out[-1] = _Span(last.text + item.text, item.marks, item.code)
        else:
            out.append(item)
    return out


def _settle(items: list[_Item]) -> list[_Item]:
    """
    Move whitespace out of emphasis edges.

    A star run that closes must follow a non-space char, otherwise it reads
    as an opener; an italic run that opens on a space reads as a bullet at
    the start of a line.
    """
    while True:
        items = _merge(items)
        for i, item in enumerate(items):
            if not isinstance(item, _Span) or item.code:
                continue
            prev = items[i - 1] if i and isinstance(items[i - 1], _Span) else None
            nxt = items[i + 1] if i + 1 < len(items) and isinstance(items[i + 1], _Span) else None

            keep = _shared(item.marks, nxt.marks if nxt else ())
            if item.text[-1].isspace() and any(k in _STARS for k, _ in item.marks[keep:]):
                body = item.text.rstrip()
                tail = _Span(item.text[len(body):], item.marks[:keep])
                items[i:i + 1] = ([_Span(body, item.marks)] if body else []) + [tail]
                break

            keep = _shared(prev.marks if prev else (), item.marks)
            if item.text[0].isspace() and any(k == "italic" for k, _ in item.marks[keep:]):
                body = item.text.lstrip()
                head = _Span(item.text[:len(item.text) - len(body)], item.marks[:keep])
                items[i:i + 1] = [head] + ([_Span(body, item.marks)] if body else [])
                break
        else:
            return items


def _render(items: list[_Item], newline: str) -> str:
    out: list[str] = []
    stack: list[MarkKey] = []
    after_text = False

    def close_to(n: int) -> None:
        nonlocal after_text
        while len(stack) > n:
            kind, href = stack.pop()
            out.append(f"]({_href(href)})" if kind == "link" else _CLOSERS[kind])
            after_text = False

    for item in items:
        if not isinstance(item, _Span):
            close_to(0)
            out.append(newline if item.type == "hardBreak" else _inline_image(item))
            after_text = False
            continue
        close_to(_shared(tuple(stack), item.marks))
        for kind, href in item.marks[len(stack):]:
            if kind == "link" and after_text and out[-1].endswith("!"):
                # "![" would start an image
                out[-1] = out[-1][:-1] + "\\!"
            out.append(_OPENERS[kind])
            stack.append((kind, href))
            after_text = False
        if item.code:
            out.append(_code_span(item.text))
            after_text = False
        else:
            out.append(_TEXT_ESCAPE_RE.sub(r"\\\1", item.text))
            after_text = True
    close_to(0)
    return "".join(out)


def _href(value: Optional[str]) -> str:
    value = _SPACE_RE.sub(lambda m: quote(m.group()), value or "")
    return _HREF_ESCAPE_RE.sub(r"\\\1", value)


def _code_span(s: str) -> str:
    runs = {len(r) for r in re.findall(r"`+", s)}
    fence = 1
    while fence in runs:
        fence += 1
    if s[0] == "`" or s[-1] == "`" or (s[0] == s[-1] == " " and s.strip(" ")):
        s = f" {s} "
    return "`" * fence + s + "`" * fence


def _inline_image(node: Node) -> str:
    alt = _SPACE_RE.sub(" ", _str(node.attr("alt"))).replace("]", "").replace("\\", "\\\\")
    return f"![{alt}]({_href(_str(node.attr('src')))})"


def _block_image(node: Node) -> str:
    src = _SPACE_RE.sub(lambda m: quote(m.group()), _str(node.attr("src")))
    alt = _SPACE_RE.sub(" ", _str(node.attr("alt")))
    width = _int(node.attr("width"), 0)
    if width > 0 or ")" in src:
        src = src.replace('"', "%22")
        size = f' width="{width}"' if width > 0 else ""
        return f'<img src="{src}" alt="{alt.replace(chr(34), "")}"{size}>'
    return f"![{alt.replace(']', '')}]({src})"


def _plain(node: Node) -> str:
    if node.text:
        return node.text
    return "".join(_plain(c) for c in node.content or [])


# ---------- text -> tree ----------

def from_text(source: str) -> Node:
    lines = (source or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return Node(type="doc", content=_parse_blocks(lines))


def _parse_blocks(lines: list[str]) -> list[Node]:
    blocks: list[Node] = []
    i = 0
    while i < len(lines):
        line = lines[i]

        if _FENCE_RE.match(line):
            lang = line[3:].strip() or None
            code: list[str] = []
            i += 1
            while i < len(lines) and not lines[i].startswith("```"):
                code.append(lines[i])
                i += 1
            i += 1  # closing fence (or end of input)
            body = "\n".join(code)
            blocks.append(Node(
                type="codeBlock",
                attrs={"language": lang},
                content=[Node(type="text", text=body)] if body else None,
            ))
            continue

        if not line.strip():
            i += 1
            continue

        m = _HEADING_RE.match(line)
        if m:
            blocks.append(Node(
                type="heading",
                attrs={"level": len(m.group(1))},
                content=_parse_inline(m.group(2)),
            ))
            i += 1
            continue

        if _HR_RE.match(line):
            blocks.append(Node(type="horizontalRule"))
            i += 1
            continue

        m = _HTML_IMG_RE.match(line)
        if m:
            attrs: dict[str, Any] = {"src": m.group(1), "alt": m.group(2)}
            if m.group(3):
                attrs["width"] = int(m.group(3))
            blocks.append(Node(type="image", attrs=attrs))
            i += 1
            continue

        m = _IMG_LINE_RE.match(line)
        if m:
            blocks.append(Node(type="image", attrs={"src": m.group(2), "alt": m.group(1)}))
            i += 1
            continue

        marker = _list_marker(line)
        if marker:
            node, i = _parse_list(lines, i, marker.indent)
            blocks.append(node)
            continue

        if line.startswith(">"):
            quoted: list[str] = []
            while i < len(lines) and lines[i].startswith(">"):
                quoted.append(re.sub(r"^> ?", "", lines[i]))
                i += 1
            blocks.append(Node(type="blockquote", content=_parse_blocks(quoted) or None))
            continue

        para = [line]
        i += 1
        while i < len(lines) and lines[i].strip() and not _starts_block(lines[i]):
            para.append(lines[i])
            i += 1
        blocks.append(Node(type="paragraph", content=_parse_inline("\n".join(para))))

    return blocks


def _parse_list(lines: list[str], i: int, indent: int) -> tuple[Node, int]:
    first = _list_marker(lines[i])
    kind = first.kind
    items: list[Node] = []
    while i < len(lines):
        m = _list_marker(lines[i])
        if m is None or m.indent != indent or m.kind != kind:
            break
        children = [Node(type="paragraph", content=_parse_inline(m.text))]
        i += 1
        while i < len(lines):
            line = lines[i]
            if not line.strip():
                break
            sub = _list_marker(line)
            if sub and sub.indent > indent:
                nested, i = _parse_list(lines, i, sub.indent)
                children.append(nested)
                continue
            if sub is None and len(line) - len(line.lstrip(" ")) >= indent + 2:
                children.append(Node(type="paragraph", content=_parse_inline(line[indent + 2:])))
                i += 1
                continue
            break
        if kind == "taskList":
            items.append(Node(type="taskItem", attrs={"checked": m.checked}, content=children))
        else:
            items.append(Node(type="listItem", content=children))
    attrs = {"start": first.number} if kind == "orderedList" and first.number != 1 else None
    return Node(type=kind, attrs=attrs, content=items), i


# ---------- inline spans ----------

_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(((?:\\.|[^)\s\\])*)\)")
_LINK_TAIL_RE = re.compile(r"\]\(((?:\\.|[^)\s\\])*)\)")
_BREAK_RE = re.compile(r"<br\s*/?>")
_UNESCAPE_RE = re.compile(r"\\([%s])" % re.escape(punctuation))
_WORD_RE = re.compile(r"\w")

_DELIM_MARKS = {"*": "italic", "_": "italic", "**": "bold", "__": "bold", "~~": "strike", "<u>": "underline"}


def _unescape(s: str) -> str:
    return _UNESCAPE_RE.sub(r"\1", s)


def _run_length(s: str, i: int) -> int:
    j = i
    while j < len(s) and s[j] == s[i]:
        j += 1
    return j - i


class _InlineScanner:
    """
    One pass over a block's inline text.

    Tokens are [kind, value, mark]; kind is text, code, image, break or
    delim. Delimiters are paired on a stack as they are read; openers left
    unpaired at the end (or dropped by a closer further out) stay literal.
    """

    def __init__(self, s: str):
        self.s = s
        self.tokens: list[list[Any]] = []
        self.stack: list[int] = []
        self.pairs: dict[int, int] = {}

    def scan(self) -> list[Node]:
        s, i = self.s, 0
        while i < len(s):
            ch = s[i]
            if ch == "\\" and i + 1 < len(s) and s[i + 1] in punctuation:
                self._text(s[i + 1])
                i += 2
            elif ch == "`":
                i = self._code(i)
            elif ch == "!" and s.startswith("![", i) and _IMAGE_RE.match(s, i):
                m = _IMAGE_RE.match(s, i)
                self.tokens.append(["image", Node(type="image", attrs={
                    "src": _unescape(m.group(2)), "alt": _unescape(m.group(1)),
                }), None])
                i = m.end()
            elif ch == "[":
                self._open("[")
                i += 1
            elif ch == "]":
                i = self._link_tail(i)
            elif ch == "\n":
                self.tokens.append(["break", None, None])
                i += 1
            elif ch == "<":
                i = self._angle(i)
            elif ch == "*":
                i = self._stars(i)
            elif ch == "_":
                i = self._underscores(i)
            elif ch == "~":
                n = _run_length(s, i)
                for _ in range(n // 2):
                    self._toggle("~~")
                if n % 2:
                    self._text("~")
                i += n
            else:
                self._text(ch)
                i += 1
        return self._nodes()

    # -- token helpers --

    def _text(self, value: str) -> None:
        if self.tokens and self.tokens[-1][0] == "text":
            self.tokens[-1][1] += value
        else:
            self.tokens.append(["text", value, None])

    def _delim(self, literal: str) -> int:
        self.tokens.append(["delim", literal, None])
        return len(self.tokens) - 1

    def _open(self, literal: str) -> None:
        idx = self._delim(literal)
        if literal in _DELIM_MARKS:
            self.tokens[idx][2] = Mark(type=_DELIM_MARKS[literal])
        self.stack.append(idx)

    def _find(self, literal: str) -> Optional[int]:
        for pos in range(len(self.stack) - 1, -1, -1):
            if self.tokens[self.stack[pos]][1] == literal:
                return pos
        return None

    def _close(self, pos: int, literal: str) -> None:
        opener = self.stack[pos]
        del self.stack[pos:]
        self.pairs[opener] = self._delim(literal)

    def _toggle(self, literal: str) -> None:
        pos = self._find(literal)
        if pos is None:
            self._open(literal)
        else:
            self._close(pos, literal)

    # -- constructs --

    def _code(self, i: int) -> int:
        n = _run_length(self.s, i)
        closer = re.compile(r"(?<!`)`{%d}(?!`)" % n).search(self.s, i + n)
        if closer is None:
            self._text("`" * n)
            return i + n
        content = self.s[i + n:closer.start()]
        if len(content) > 2 and content[0] == content[-1] == " " and content.strip(" "):
            content = content[1:-1]
        self.tokens.append(["code", content, None])
        return closer.end()

    def _link_tail(self, i: int) -> int:
        m = _LINK_TAIL_RE.match(self.s, i)
        pos = self._find("[")
        if m is None or pos is None:
            self._text("]")
            return i + 1
        self.tokens[self.stack[pos]][2] = Mark(type="link", attrs={"href": _unescape(m.group(1))})
        self._close(pos, m.group(0))
        return m.end()

    def _angle(self, i: int) -> int:
        m = _BREAK_RE.match(self.s, i)
        if m:
            self.tokens.append(["break", None, None])
            return m.end()
        if self.s.startswith("<u>", i):
            self._open("<u>")
            return i + 3
        if self.s.startswith("</u>", i):
            pos = self._find("<u>")
            if pos is not None:
                self._close(pos, "</u>")
            else:
                self._text("</u>")
            return i + 4
        self._text("<")
        return i + 1

    def _stars(self, i: int) -> int:
        n = _run_length(self.s, i)
        rest = n
        # a run right after a space can only open
        if i and not self.s[i - 1].isspace():
            while rest and self.stack:
                top = self.tokens[self.stack[-1]][1]
                if top not in ("*", "**") or len(top) > rest:
                    break
                self._close(len(self.stack) - 1, top)
                rest -= len(top)
        while rest >= 2:
            self._open("**")
            rest -= 2
        if rest:
            self._open("*")
        return i + n

    def _underscores(self, i: int) -> int:
        n = _run_length(self.s, i)
        if n == 1:
            before = self.s[i - 1] if i else ""
            after = self.s[i + 1] if i + 1 < len(self.s) else ""
            pos = self._find("_")
            if pos is not None and not _WORD_RE.match(after):
                self._close(pos, "_")
            elif not _WORD_RE.match(before):
                self._open("_")
            else:
                self._text("_")
            return i + 1
        for _ in range(n // 2):
            self._toggle("__")
        if n % 2:
            self._text("_")
        return i + n

    # -- tree --

    def _nodes(self) -> list[Node]:
        closers = {c: o for o, c in self.pairs.items()}
        active: list[tuple[int, Mark]] = []
        nodes: list[Node] = []
        for idx, (kind, value, mark) in enumerate(self.tokens):
            if kind == "delim":
                if idx in self.pairs:
                    active.append((idx, mark))
                    continue
                if idx in closers:
                    opener = closers[idx]
                    active = [a for a in active if a[0] != opener]
                    continue
                kind = "text"
            if kind == "image":
                nodes.append(value)
            elif kind == "break":
                nodes.append(Node(type="hardBreak"))
            else:
                marks = {m.type: m for _, m in active}
                if kind == "code":
                    marks["code"] = Mark(type="code")
                _push(nodes, value, list(marks.values()))
        return nodes


def _parse_inline(s: str) -> Optional[list[Node]]:
    return _InlineScanner(s).scan() or None


def _push(nodes: list[Node], value: str, marks: list[Mark]) -> None:
    if not value:
        return
    _extend(nodes, [Node(type="text", text=value, marks=_sorted_marks(list(marks)))])


def _extend(nodes: list[Node], more: list[Node]) -> None:
    for n in more:
        last = nodes[-1] if nodes else None
        if last is not None and last.type == n.type == "text" and last.marks == n.marks:
            nodes[-1] = Node(type="text", text=last.text + n.text, marks=last.marks)
        else:
            nodes.append(n)
