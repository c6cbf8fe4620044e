#!/usr/bin/env python3
"""phrasebook_generator.py

A seeded phrase book generator: weighted text grammars rendered from
human-readable seeds.

Key features:
- Indentation-based grammar format (categories, weighted alternatives).
- {{ placeholder }} substitution expanded on an explicit stack.
- Steppable seeds ("walrus204" -> "wren204") with reproducible output.
- A time parameter for animation; every frame is reproducible on its own.
- Live previews for ``seed`` fenced blocks in markdown documents.

Run:
  python phrasebook_generator.py generate grammar.seed --seed walrus204
  python phrasebook_generator.py animate grammar.seed --frames 60
  python phrasebook_generator.py seed walrus204 --next 3
  python phrasebook_generator.py --help
"""

from __future__ import annotations

import argparse
import functools
import html
import itertools
import logging
import math
import os
import random
import re
import sys
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, cast

logger = logging.getLogger(__name__)


# -------------------------
# Errors / Validation
# -------------------------


class PhraseBookError(ValueError):
    pass


class ParseError(PhraseBookError):
    """Malformed grammar text. ``line``/``column`` are 1-based when known."""

    def __init__(
        self, message: str, line: int | None = None, column: int | None = None
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        if line is None:
            text = message
        elif column is None:
            text = f"line {line}: {message}"
        else:
            text = f"line {line}, column {column}: {message}"
        super().__init__(text)


class GenerationError(PhraseBookError):
    def __init__(self, message: str, category: str | None = None) -> None:
        self.message = message
        self.category = category
        super().__init__(message)


class SeedError(PhraseBookError):
    pass


def _require(
    cond: bool, msg: str, line: int | None = None, column: int | None = None
) -> None:
    if not cond:
        raise ParseError(msg, line, column)


# -------------------------
# Phrase book model
# -------------------------

PREAMBLE_KEY = "%preamble"

AnimationMode = Literal["bounce", "once"]
ANIMATION_MODES: tuple[str, ...] = ("bounce", "once")


@dataclass(frozen=True)
class Placeholder:
    name: str


Segment = str | Placeholder


@dataclass(frozen=True)
class Alternative:
    segments: tuple[Segment, ...]
    weight: float = 1.0
    # source line, for messages only
    line: int | None = None

    def __post_init__(self) -> None:
        _require(
            math.isfinite(self.weight) and self.weight >= 0,
            f"weight must be a finite number >= 0, got {self.weight!r}",
            self.line,
        )

    def placeholders(self) -> list[Placeholder]:
        return [s for s in self.segments if isinstance(s, Placeholder)]


@dataclass(frozen=True)
class Preamble:
    duration: float = 2.0
    animation: AnimationMode = "bounce"

    def __post_init__(self) -> None:
        _require(
            math.isfinite(self.duration) and self.duration > 0,
            f"duration must be > 0, got {self.duration!r}",
        )
        _require(
            self.animation in ANIMATION_MODES,
            f"animation must be one of {', '.join(ANIMATION_MODES)}; "
            f"got {self.animation!r}",
        )


@dataclass(frozen=True)
class PhraseBook:
    """Parsed grammar: category name -> alternatives, plus playback settings.

    ``categories`` is wrapped in a read-only mapping; editing the source text
    means parsing a new book.
    """

    categories: Mapping[str, tuple[Alternative, ...]]
    preamble: Preamble = field(default_factory=Preamble)

    def __post_init__(self) -> None:
        frozen = {name: tuple(alts) for name, alts in self.categories.items()}
        object.__setattr__(self, "categories", MappingProxyType(frozen))

    def __contains__(self, name: object) -> bool:
        return name in self.categories

    def references(self) -> set[str]:
        """Names of every category referenced by some placeholder."""
        return {
            p.name
            for alts in self.categories.values()
            for alt in alts
            for p in alt.placeholders()
        }

    def missing_references(self) -> list[str]:
        return sorted(n for n in self.references() if n not in self.categories)


# -------------------------
# Parser
# -------------------------

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.-]*\Z")
# "3x ", "0.5x ", "0x " at the start of an alternative
_WEIGHT_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)x(?=\s|\Z)\s*")
_DOUBLE_QUOTE_ESCAPES = {"\\": "\\", '"': '"', "n": "\n", "t": "\t"}


@dataclass(frozen=True)
class _Line:
    number: int
    indent: int
    content: str


@dataclass
class _Section:
    name: str
    line: int
    body: list[_Line]


def _is_list_item(content: str) -> bool:
    return content == "-" or content.startswith("- ")


def _split_sections(text: str) -> list[_Section]:
    """Group non-blank lines under their top-level ``name:`` headers."""
    sections: list[_Section] = []
    seen: dict[str, int] = {}

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        content = line.lstrip()
        if not content or content.startswith("#"):
            continue

        leading = line[: len(line) - len(content)]
        _require(
            "\t" not in leading,
            "tabs are not allowed in indentation",
            number,
            leading.find("\t") + 1,
        )
        indent = len(leading)

        if indent > 0 or _is_list_item(content):
            _require(
                bool(sections),
                "expected a category name (e.g. 'root:') before this line",
                number,
                indent + 1,
            )
            sections[-1].body.append(_Line(number, indent, content))
            continue

        name, colon, rest = content.partition(":")
        name = name.rstrip()
        _require(bool(colon), f"expected '{name}:' at top level", number, 1)
        _require(
            not rest.strip(),
            f"unexpected value after '{name}:'; put each alternative on its "
            "own '- ' line below",
            number,
            len(name) + 2,
        )
        _require(
            name == PREAMBLE_KEY or bool(_NAME_RE.match(name)),
            f"invalid category name {name!r}",
            number,
            1,
        )
        if name in seen:
            raise ParseError(
                f"duplicate category '{name}' (first defined on line {seen[name]})",
                number,
                1,
            )
        seen[name] = number
        sections.append(_Section(name, number, []))

    return sections


def _unquote(text: str) -> tuple[str, list[int]]:
    """Strip one level of YAML-style quotes.

    Returns the text and, for each output character, its offset in ``text``.
    """
    if len(text) < 2 or text[0] != text[-1] or text[0] not in "'\"":
        return text, list(range(len(text)))

    quote = text[0]
    out: list[str] = []
    sources: list[int] = []
    i = 1
    while i < len(text) - 1:
        ch = text[i]
        if quote == "'" and ch == "'" and text[i + 1 : i + 2] == "'":
            out.append("'")
            sources.append(i)
            i += 2
            continue
        if quote == '"' and ch == "\\" and i + 1 < len(text) - 1:
            nxt = text[i + 1]
            out.append(_DOUBLE_QUOTE_ESCAPES.get(nxt, "\\" + nxt))
            sources.extend([i] * len(out[-1]))
            i += 2
            continue
        out.append(ch)
        sources.append(i)
        i += 1
    return "".join(out), sources


class _Locator:
    """Maps offsets in a joined multi-line alternative back to line/column."""

    def __init__(self) -> None:
        self.parts: list[tuple[int, int, int]] = []  # (offset, line, column)
        self.text = ""

    def add(self, line: int, column: int, text: str) -> None:
        if self.parts:
            self.text += " "
        self.parts.append((len(self.text), line, column))
        self.text += text

    def locate(self, offset: int) -> tuple[int, int]:
        start, line, column = self.parts[0]
        for part in self.parts:
            if part[0] > offset:
                break
            start, line, column = part
        return line, column + (offset - start)


def parse_template(
    text: str, locate: Callable[[int], tuple[int, int]] | None = None
) -> tuple[Segment, ...]:
    """Split an alternative into literal text and ``{{ name }}`` placeholders."""
    segments: list[Segment] = []
    pos = 0
    while True:
        start = text.find("{{", pos)
        if start < 0:
            break
        end = text.find("}}", start + 2)
        line, column = locate(start) if locate else (None, None)
        _require(end >= 0, "unterminated placeholder: missing '}}'", line, column)
        name = text[start + 2 : end].strip()
        _require(
            bool(_NAME_RE.match(name)),
            f"invalid placeholder name {name!r}",
            line,
            column,
        )
        if start > pos:
            segments.append(text[pos:start])
        segments.append(Placeholder(name))
        pos = end + 2
    if pos < len(text):
        segments.append(text[pos:])
    return tuple(segments)


def _parse_alternative(lines: list[_Line]) -> Alternative:
    first = lines[0]
    loc = _Locator()
    item_text = first.content[1:]
    body = item_text.lstrip()
    loc.add(first.number, first.indent + 2 + len(item_text) - len(body), body)
    for cont in lines[1:]:
        loc.add(cont.number, cont.indent + 1, cont.content)

    text = loc.text
    weight = 1.0
    offset = 0
    m = _WEIGHT_RE.match(text)
    if m:
        weight = float(m.group(1))
        offset = m.end()

    body, sources = _unquote(text[offset:])
    segments = parse_template(body, lambda i: loc.locate(offset + sources[i]))
    return Alternative(segments=segments, weight=weight, line=first.number)


def _parse_category(section: _Section) -> tuple[Alternative, ...]:
    items: list[list[_Line]] = []
    item_indent: int | None = None

    for ln in section.body:
        if item_indent is None:
            item_indent = ln.indent
        if ln.indent == item_indent:
            _require(
                _is_list_item(ln.content),
                f"expected a '- ' alternative in '{section.name}'",
                ln.number,
                ln.indent + 1,
            )
            items.append([ln])
        elif ln.indent > item_indent:
            items[-1].append(ln)
        else:
            raise ParseError(
                f"inconsistent indentation in '{section.name}': expected "
                f"{item_indent} spaces, found {ln.indent}",
                ln.number,
                ln.indent + 1,
            )

    _require(
        bool(items), f"category '{section.name}' has no alternatives", section.line, 1
    )
    return tuple(_parse_alternative(lines) for lines in items)


def _parse_preamble(section: _Section) -> Preamble:
    settings: dict[str, object] = {}
    indent: int | None = None

    for ln in section.body:
        if indent is None:
            indent = ln.indent
        _require(
            ln.indent == indent,
            f"inconsistent indentation in '{PREAMBLE_KEY}': expected {indent} "
            f"spaces, found {ln.indent}",
            ln.number,
            ln.indent + 1,
        )
        key, colon, value = ln.content.partition(":")
        key = key.strip()
        value, _ = _unquote(value.strip())
        _require(
            bool(colon) and not _is_list_item(ln.content),
            f"expected 'key: value' in '{PREAMBLE_KEY}'",
            ln.number,
            ln.indent + 1,
        )
        _require(
            key not in settings,
            f"duplicate setting '{key}' in '{PREAMBLE_KEY}'",
            ln.number,
            ln.indent + 1,
        )
        column = ln.indent + ln.content.index(":") + 2

        if key == "duration":
            try:
                duration = float(value)
            except ValueError:
                raise ParseError(
                    f"duration must be a number of seconds, got {value!r}",
                    ln.number,
                    column,
                ) from None
            _require(
                math.isfinite(duration) and duration > 0,
                f"duration must be > 0, got {value!r}",
                ln.number,
                column,
            )
            settings[key] = duration
        elif key == "animation":
            _require(
                value in ANIMATION_MODES,
                f"animation must be one of {', '.join(ANIMATION_MODES)}; got {value!r}",
                ln.number,
                column,
            )
            settings[key] = value
        else:
            raise ParseError(
                f"unknown setting '{key}' in '{PREAMBLE_KEY}'",
                ln.number,
                ln.indent + 1,
            )

    return Preamble(
        duration=cast(float, settings.get("duration", 2.0)),
        animation=cast(AnimationMode, settings.get("animation", "bounce")),
    )


def parse_phrase_book(text: str) -> PhraseBook:
    """Parse grammar text into a PhraseBook.

    Placeholder targets are not checked here: categories may be defined after
    their first use and may refer to themselves.
    """
    categories: dict[str, tuple[Alternative, ...]] = {}
    preamble = Preamble()

    for section in _split_sections(text):
        if section.name == PREAMBLE_KEY:
            preamble = _parse_preamble(section)
        else:
            categories[section.name] = _parse_category(section)

    logger.debug(
        "parsed phrase book: %d categories, %d alternatives",
        len(categories),
        sum(len(alts) for alts in categories.values()),
    )
    return PhraseBook(categories=categories, preamble=preamble)


@functools.lru_cache(maxsize=32)
def cached_parse(text: str) -> PhraseBook:
    """Parse once per distinct source text; books are immutable, so sharing is safe."""
    return parse_phrase_book(text)


# -------------------------
# Seeds
# -------------------------

SEED_WORDS: tuple[str, ...] = (
    "acorn", "amber", "anchor", "apple", "arrow", "aspen", "autumn", "badger",
    "bamboo", "beacon", "birch", "bison", "blossom", "bramble", "breeze", "brook",
    "cactus", "canyon", "cedar", "cherry", "cinder", "clover", "cobalt", "comet",
    "copper", "coral", "cricket", "crystal", "cypress", "daisy", "dawn", "delta",
    "desert", "dove", "dragon", "dune", "eagle", "echo", "ember", "falcon",
    "fern", "fig", "finch", "fjord", "flint", "forest", "fox", "galaxy",
    "garnet", "geyser", "ginger", "glacier", "granite", "gull", "harbor", "hazel",
    "heron", "hollow", "honey", "horizon", "iris", "island", "ivory", "ivy",
    "jade", "jasper", "juniper", "kelp", "kestrel", "lagoon", "lantern", "lark",
    "laurel", "lemon", "lichen", "lily", "lotus", "lynx", "maple", "marble",
    "meadow", "meteor", "mint", "moss", "moth", "nebula", "nectar", "oak",
    "oasis", "ocean", "olive", "onyx", "orchid", "otter", "owl", "pebble",
    "pepper", "pine", "plum", "pollen", "poppy", "prairie", "quartz", "quill",
    "rain", "raven", "reed", "river", "robin", "ruby", "sage", "sapphire",
    "shadow", "sparrow", "spruce", "storm", "summit", "thistle", "thunder", "tide",
    "tulip", "valley", "violet", "walrus", "willow", "wren", "yarrow", "zephyr",
)  # fmt: skip
SEED_SUFFIX_RANGE = 10_000
SEED_SPACE = len(SEED_WORDS) * SEED_SUFFIX_RANGE

_WORD_INDEX = {word: i for i, word in enumerate(SEED_WORDS)}
_SEED_RE = re.compile(r"([a-z]+)(0|[1-9][0-9]*)\Z")


def number_to_seed(number: int) -> str:
    """Encode a numeric state as a seed string, wrapping around the seed space."""
    suffix, index = divmod(number % SEED_SPACE, len(SEED_WORDS))
    return f"{SEED_WORDS[index]}{suffix}"


DEFAULT_SEED = number_to_seed(0)


def seed_to_number(seed: str) -> int:
    """Decode a canonical seed (vocabulary word + suffix without leading zeros).

    Distinct canonical seeds always decode to distinct numbers.
    """
    m = _SEED_RE.match(seed) if isinstance(seed, str) else None
    if m is None:
        raise SeedError(
            f"invalid seed {seed!r}: expected a word followed by a number, "
            f"e.g. {DEFAULT_SEED!r}"
        )
    word, suffix = m.group(1), int(m.group(2))
    if word not in _WORD_INDEX:
        raise SeedError(f"invalid seed {seed!r}: unknown word {word!r}")
    if suffix >= SEED_SUFFIX_RANGE:
        raise SeedError(
            f"invalid seed {seed!r}: number must be below {SEED_SUFFIX_RANGE}"
        )
    return suffix * len(SEED_WORDS) + _WORD_INDEX[word]


def random_text_seed(rng: random.Random | None = None) -> str:
    number = rng.randrange(SEED_SPACE) if rng else random.randrange(SEED_SPACE)
    return number_to_seed(number)


def next_text_seed(seed: str) -> str:
    return number_to_seed(seed_to_number(seed) + 1)


def prev_text_seed(seed: str) -> str:
    return number_to_seed(seed_to_number(seed) - 1)


# -------------------------
# Draws
# -------------------------

Path = tuple[int, ...]


def draw(numeric_seed: int, path: Path, t: float = 0.0) -> float:
    """Reproducible sample in [0, 1) for one expansion site.

    The base value comes from ``random.Random`` seeded with a string key,
    which CPython hashes with SHA-512, so it is stable across processes and
    machines. ``t`` rotates the base value: over one period each site spends
    time on every alternative in proportion to its weight, and ``t = 1``
    lines up with ``t = 0``.
    """
    if not math.isfinite(t):
        raise ValueError(f"t must be finite, got {t!r}")
    key = f"{numeric_seed}:{'.'.join(str(i) for i in path)}"
    u = (random.Random(key).random() + t) % 1.0
    # tiny negative sums round up to 1.0
    return u if u < 1.0 else 0.0


def choose_alternative(alternatives: tuple[Alternative, ...], u: float) -> int:
    """Index whose cumulative-weight interval [lo, hi) holds ``u * total``.

    Returns -1 when no alternative has positive weight.
    """
    total = math.fsum(alt.weight for alt in alternatives)
    if total <= 0:
        return -1

    x = u * total
    cumulative = 0.0
    last = -1
    for i, alt in enumerate(alternatives):
        if alt.weight <= 0:
            continue
        cumulative += alt.weight
        last = i
        if x < cumulative:
            return i
    return last


# -------------------------
# Generation
# -------------------------

DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_EXPANSIONS = 100_000


def _select(
    book: PhraseBook, category: str, numeric_seed: int, path: Path, t: float
) -> tuple[int, Alternative]:
    alternatives = book.categories.get(category)
    if alternatives is None:
        raise GenerationError(f"unknown category '{category}'", category)
    if len(alternatives) == 1 and alternatives[0].weight > 0:
        return 0, alternatives[0]
    index = choose_alternative(alternatives, draw(numeric_seed, path, t))
    if index < 0:
        raise GenerationError(
            f"category '{category}' has no alternative with positive weight",
            category,
        )
    return index, alternatives[index]


def generate_string(
    book: PhraseBook,
    start: str = "root",
    context: Mapping[str, str] | None = None,
    seed: str = DEFAULT_SEED,
    t: float = 0.0,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_expansions: int = DEFAULT_MAX_EXPANSIONS,
) -> str:
    """Expand ``start`` into a string.

    Output is a pure function of the arguments. Placeholders bound in
    ``context`` emit the bound string instead of expanding a category.
    Literal text, markup included, is copied verbatim without escaping.

    Uses an explicit stack of (segments, index, path, choice, depth) frames;
    a placeholder at index k of the alternative chosen as ``choice`` at
    ``path`` is expanded at ``path + (choice, k)``.
    """
    if not math.isfinite(t):
        raise GenerationError(f"time parameter must be finite, got {t!r}")
    numeric_seed = seed_to_number(seed)
    bound = MappingProxyType({k: str(v) for k, v in (context or {}).items()})

    choice, alt = _select(book, start, numeric_seed, (), t)
    expansions = 1

    out: list[str] = []
    stack: list[tuple[tuple[Segment, ...], int, Path, int, int]] = [
        (alt.segments, 0, (), choice, 0)
    ]

    while stack:
        segments, i, path, choice, depth = stack.pop()
        if i >= len(segments):
            continue

        seg = segments[i]
        # Continuation goes below the child so the child is fully emitted first.
        stack.append((segments, i + 1, path, choice, depth))

        if isinstance(seg, str):
            out.append(seg)
            continue
        if seg.name in bound:
            out.append(bound[seg.name])
            continue

        if depth >= max_depth:
            raise GenerationError(
                f"maximum recursion depth {max_depth} exceeded while expanding "
                f"'{seg.name}'",
                seg.name,
            )
        expansions += 1
        if expansions > max_expansions:
            raise GenerationError(
                f"expansion limit {max_expansions} exceeded while expanding "
                f"'{seg.name}'",
                seg.name,
            )

        child_path = path + (choice, i)
        child_choice, child = _select(book, seg.name, numeric_seed, child_path, t)
        stack.append((child.segments, 0, child_path, child_choice, depth + 1))

    result = "".join(out)
    logger.debug(
        "generated %d chars from '%s' (seed=%s, t=%.4f, expansions=%d)",
        len(result),
        start,
        seed,
        t,
        expansions,
    )
    return result


# -------------------------
# Playback / editing session
# -------------------------


def frame_time(elapsed_seconds: float, preamble: Preamble) -> float | None:
    """Map wall-clock playback time to ``t``; None once a 'once' animation ends."""
    if elapsed_seconds < 0:
        raise ValueError(f"elapsed_seconds must be >= 0, got {elapsed_seconds!r}")
    if preamble.animation == "once" and elapsed_seconds >= preamble.duration:
        return None
    return (elapsed_seconds / preamble.duration) % 1.0


@dataclass(frozen=True)
class RenderResult:
    output: str
    error: str | None = None


@dataclass
class Sketch:
    """Source text plus seed, as held by an editing surface.

    Errors never replace the output: ``render`` reports the message and keeps
    the last successful result.
    """

    source: str
    seed: str = field(default_factory=random_text_seed)
    start: str = "root"
    last_output: str = ""

    @property
    def book(self) -> PhraseBook:
        return cached_parse(self.source)

    def render(self, t: float = 0.0) -> RenderResult:
        try:
            output = generate_string(self.book, self.start, {}, self.seed, t)
        except PhraseBookError as e:
            logger.debug("render failed: %s", e)
            return RenderResult(self.last_output, str(e))
        self.last_output = output
        return RenderResult(output)

    def next_seed(self) -> str:
        self.seed = next_text_seed(self.seed)
        return self.seed

    def prev_seed(self) -> str:
        self.seed = prev_text_seed(self.seed)
        return self.seed

    def play(self, fps: float = 30.0) -> Iterator[RenderResult]:
        """Yield one render per frame; stops after an error or a finished 'once'."""
        if not (math.isfinite(fps) and fps > 0):
            raise ValueError(f"fps must be a finite number > 0, got {fps!r}")
        for frame in itertools.count():
            try:
                preamble = self.book.preamble
            except ParseError as e:
                yield RenderResult(self.last_output, str(e))
                return
            t = frame_time(frame / fps, preamble)
            if t is None:
                return
            result = self.render(t)
            yield result
            if result.error is not None:
                return


# -------------------------
# Markdown previews
# -------------------------

_SEED_FENCE_RE = re.compile(
    r"^(?P<fence>```|~~~)[ \t]*seed[ \t]*\n(?P<code>.*?)^(?P=fence)[ \t]*$",
    re.MULTILINE | re.DOTALL,
)


def render_markdown_previews(
    markdown: str,
    *,
    seed: str = DEFAULT_SEED,
    parse: Callable[[str], PhraseBook] = cached_parse,
    generate: Callable[..., str] = generate_string,
) -> str:
    """Replace each ```seed fenced block with its source and a rendered result.

    The rest of the document is returned untouched. Generated output is
    inserted as-is (it may be markup); error messages are escaped.
    """

    def replace(m: re.Match[str]) -> str:
        code = m.group("code")
        try:
            result = generate(parse(code), "root", {}, seed)
        except PhraseBookError as e:
            logger.warning("preview failed: %s", e)
            result = html.escape(str(e))
        source = html.escape(code.rstrip("\n"))
        return (
            f'<div class="code-wrap"><pre><code>{source}</code></pre>'
            f'<div class="code-result">{result}</div></div>'
        )

    return _SEED_FENCE_RE.sub(replace, markdown)


# -------------------------
# File helpers
# -------------------------


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def load_text(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        try:
            return f.read()
        except UnicodeDecodeError as e:
            raise ParseError(f"{path} is not valid UTF-8: {e}") from e


def dump_text(text: str, path: str) -> None:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
GRAMMAR SYNTAX

A phrase book is a list of categories. Each category is a name followed by a
colon and one alternative per '- ' line:

    root:
    - Dear {{ giver }}, thank you for the {{ object }}.
    - Hey {{ giver }}, thanks for the {{ object }}!

    giver:
    - Aunt Emma
    - Uncle Bob

  Generation starts at 'root' (see --start) and picks one alternative.
  Each {{ name }} is replaced by an expansion of the category 'name'.
  Everything else, HTML or SVG markup included, is copied verbatim.

  Alternatives may be written at column 0 or indented, but all alternatives
  of one category must share the same indentation. A line indented deeper
  than its '- ' continues the alternative (joined with one space).
  Lines starting with '#' are comments.

Weights

    object:
    - 3x purple vase
    - 0.5x dishwasher
    - golden retriever

  A leading '<number>x' sets the relative weight (default 1). A weight of 0
  disables an alternative. Quote the text to start it with such a token:
  - "3x more"

Preamble

    %preamble:
      duration: 4
      animation: once

  duration: seconds per animation cycle (default 2.0)
  animation: bounce (loop, default) or once (stop after one cycle)

SEEDS

  Seeds are a word followed by a number, e.g. walrus204. 'seed --next' and
  'seed --prev' step through them in a fixed cyclic order. The same grammar,
  seed and time always produce the same output.

EXAMPLES

  python phrasebook_generator.py generate example/thank_you.seed --seed otter12
  python phrasebook_generator.py animate example/blinking_stars.seed --fps 10
  python phrasebook_generator.py docs docs/index.md build/index.md
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="phrasebook_generator.py",
        description="Seeded phrase book generator.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pg = sub.add_parser("generate", help="Generate text from a grammar file.")
    pg.add_argument("grammar", help="Path to the grammar file.")
    pg.add_argument("--seed", default=None, help="Seed (default: random).")
    pg.add_argument("--start", default="root", help="Start category.")
    pg.add_argument(
        "--time", type=float, default=0.0, help="Animation time t in [0, 1)."
    )
    pg.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of outputs, using successive seeds.",
    )

    pv = sub.add_parser(
        "validate", help="Parse a grammar, print a summary and try one generation."
    )
    pv.add_argument("grammar", help="Path to the grammar file.")
    pv.add_argument("--start", default="root", help="Start category.")

    ps = sub.add_parser("seed", help="Print a random seed or step a given one.")
    ps.add_argument("seed", nargs="?", default=None, help="Seed to step from.")
    step = ps.add_mutually_exclusive_group()
    step.add_argument("--next", type=int, default=0, metavar="N")
    step.add_argument("--prev", type=int, default=0, metavar="N")

    pa = sub.add_parser("animate", help="Print one output per animation frame.")
    pa.add_argument("grammar", help="Path to the grammar file.")
    pa.add_argument("--seed", default=None, help="Seed (default: random).")
    pa.add_argument("--start", default="root", help="Start category.")
    pa.add_argument("--fps", type=float, default=30.0, help="Frames per second.")
    pa.add_argument(
        "--frames",
        type=int,
        default=None,
        help="Maximum number of frames (default: one cycle).",
    )

    pd = sub.add_parser(
        "docs", help="Render ```seed blocks in a markdown file with live results."
    )
    pd.add_argument("markdown", help="Path to the input markdown.")
    pd.add_argument("output", help="Where to write the rendered markdown.")
    pd.add_argument("--seed", default=DEFAULT_SEED, help="Seed for every block.")

    return p


# -------------------------
# Commands
# -------------------------


def _seed_or_random(seed: str | None) -> str:
    if seed is not None:
        seed_to_number(seed)
        return seed
    seed = random_text_seed()
    print(f"seed: {seed}", file=sys.stderr)
    return seed


def cmd_generate(
    grammar_path: str, seed: str | None, start: str, t: float, count: int
) -> None:
    book = parse_phrase_book(load_text(grammar_path))
    seed = _seed_or_random(seed)
    for _ in range(count):
        print(generate_string(book, start, {}, seed, t))
        seed = next_text_seed(seed)


def cmd_validate(grammar_path: str, start: str) -> None:
    book = parse_phrase_book(load_text(grammar_path))
    alternatives = sum(len(alts) for alts in book.categories.values())

    print(f"categories: {len(book.categories)}")
    print(f"alternatives: {alternatives}")
    print(
        f"preamble: duration={book.preamble.duration} "
        f"animation={book.preamble.animation}"
    )
    for name in book.missing_references():
        print(f"warning: '{name}' is referenced but never defined")

    # A single trial run catches unknown start categories and runaway recursion.
    generate_string(book, start, {}, DEFAULT_SEED)
    print(f"sample ({DEFAULT_SEED}): ok")


def cmd_seed(seed: str | None, forward: int, backward: int) -> None:
    if seed is None:
        seed = random_text_seed()
    number = seed_to_number(seed) + forward - backward
    print(number_to_seed(number))


def cmd_animate(
    grammar_path: str, seed: str | None, start: str, fps: float, frames: int | None
) -> None:
    if not (math.isfinite(fps) and fps > 0):
        raise PhraseBookError(f"--fps must be a finite number > 0, got {fps}")
    book = parse_phrase_book(load_text(grammar_path))
    seed = _seed_or_random(seed)
    if frames is None:
        frames = max(1, math.ceil(book.preamble.duration * fps))

    for frame in range(frames):
        t = frame_time(frame / fps, book.preamble)
        if t is None:
            break
        print(generate_string(book, start, {}, seed, t))


def cmd_docs(markdown_path: str, output_path: str, seed: str) -> None:
    seed_to_number(seed)
    rendered = render_markdown_previews(load_text(markdown_path), seed=seed)
    dump_text(rendered, output_path)


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "generate":
            cmd_generate(args.grammar, args.seed, args.start, args.time, args.count)
        elif args.cmd == "validate":
            cmd_validate(args.grammar, args.start)
        elif args.cmd == "seed":
            cmd_seed(args.seed, args.next, args.prev)
        elif args.cmd == "animate":
            cmd_animate(args.grammar, args.seed, args.start, args.fps, args.frames)
        elif args.cmd == "docs":
            cmd_docs(args.markdown, args.output, args.seed)
        else:
            raise AssertionError("unreachable")
    except ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 2
    except GenerationError as e:
        print(f"Generation error: {e}", file=sys.stderr)
        return 2
    except PhraseBookError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
