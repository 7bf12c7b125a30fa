"""Locale rule tables for the text structurer.

Every heuristic the structurer applies is data here: conjunction sets,
ordered block matchers, emphasis and transition word lists. Adding a locale
means adding a LocaleRules entry to LOCALES.
"""

import dataclasses
import re
from dataclasses import dataclass
from enum import Enum

from .errors import ConfigurationError

UPPERCASE = "A-ZÁÀÂÃÉÊÍÓÔÕÚÇ"
LOWERCASE = "a-záàâãéêíóôõúç"


class BlockKind(str, Enum):
    """How a sentence is rendered in the structured document."""

    HEADING = "heading"
    LIST_ITEM = "list_item"
    QUOTE = "quote"
    SENTENCE = "sentence"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BlockMatcher:
    """One entry of the ordered sentence classification table.

    A matcher applies when its pattern matches and the sentence is within the
    optional length limits (characters strictly below max_chars, words at most
    max_words).
    """

    name: str
    kind: BlockKind
    pattern: re.Pattern
    level: int = 0
    max_chars: int | None = None
    max_words: int | None = None

    def matches(self, sentence: str) -> bool:
        if self.max_chars is not None and len(sentence) >= self.max_chars:
            return False
        if self.max_words is not None and len(sentence.split()) > self.max_words:
            return False
        return self.pattern.search(sentence) is not None


def word_alternation(words: tuple[str, ...]) -> str:
    """Regex alternation of escaped words, longest first so phrases win."""
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


def bounded(words: tuple[str, ...]) -> re.Pattern:
    """Case-insensitive pattern matching any of words as whole words."""
    return re.compile(rf"(?<!\w)(?:{word_alternation(words)})(?!\w)", re.IGNORECASE)


def leading(words: tuple[str, ...]) -> re.Pattern:
    """Case-insensitive pattern matching any of words at the start of a sentence."""
    return re.compile(rf"^(?:{word_alternation(words)})(?!\w)", re.IGNORECASE)


@dataclass(frozen=True)
class LocaleRules:
    """All structuring heuristics for one dialect."""

    dialect: str
    subordinating_conjunctions: tuple[str, ...]
    contrastive_conjunctions: tuple[str, ...]
    block_matchers: tuple[BlockMatcher, ...]
    transition_words: tuple[str, ...]
    emphasis_words: tuple[str, ...]
    exclamations: tuple[str, ...] = ()

    @property
    def comma_conjunctions(self) -> tuple[str, ...]:
        return self.subordinating_conjunctions + self.contrastive_conjunctions

    def classify(self, sentence: str) -> BlockMatcher | None:
        """First matcher in priority order that accepts sentence, or None."""
        for matcher in self.block_matchers:
            if matcher.matches(sentence):
                return matcher
        return None

    def starts_with_transition(self, sentence: str) -> bool:
        return leading(self.transition_words).search(sentence.strip()) is not None


# Title markers: chapter/section words followed by a word, or known section names
_PT_SECTION_MARKERS = re.compile(r"^(?:capítulo|secção|seção|parte|título)\s+\w+", re.IGNORECASE)
_PT_SECTION_NAMES = re.compile(r"^(?:introdução|conclusão|resumo|abstract)(?!\w)", re.IGNORECASE)
_PT_TITLE_PHRASE = re.compile(rf"^[{UPPERCASE}][{LOWERCASE}\s]{{2,30}}$")
_CAPITALIZED = re.compile(rf"^[{UPPERCASE}]")

_PT_LIST_MARKERS = (
    "primeiro", "segundo", "terceiro", "em seguida", "depois", "finalmente", "por último",
)
_PT_QUOTE_INDICATORS = (
    "disse", "afirmou", "declarou", "mencionou", "referiu",
    "segundo", "conforme", "de acordo com", "como disse",
)

PT_PT = LocaleRules(
    dialect="pt-PT",
    subordinating_conjunctions=("que", "quando", "onde", "como", "porque", "se"),
    contrastive_conjunctions=("mas", "porém", "contudo", "todavia", "entretanto"),
    block_matchers=(
        BlockMatcher("section-marker", BlockKind.HEADING, _PT_SECTION_MARKERS, level=1, max_chars=50),
        BlockMatcher("section-name", BlockKind.HEADING, _PT_SECTION_NAMES, level=1, max_chars=50),
        BlockMatcher("title-phrase", BlockKind.HEADING, _PT_TITLE_PHRASE, level=1, max_chars=50),
        BlockMatcher("long-section-marker", BlockKind.HEADING, _PT_SECTION_MARKERS, level=2),
        BlockMatcher("long-section-name", BlockKind.HEADING, _PT_SECTION_NAMES, level=2),
        BlockMatcher("short-form", BlockKind.HEADING, _CAPITALIZED, level=2, max_chars=50, max_words=6),
        BlockMatcher("ordinal", BlockKind.LIST_ITEM, leading(_PT_LIST_MARKERS)),
        BlockMatcher("lettered", BlockKind.LIST_ITEM, re.compile(r"^[a-e]\)\s*\S")),
        BlockMatcher("numbered", BlockKind.LIST_ITEM, re.compile(r"^\d+[)\-:]?\s+\S")),
        BlockMatcher("reported-speech", BlockKind.QUOTE, bounded(_PT_QUOTE_INDICATORS)),
    ),
    transition_words=(
        "portanto", "contudo", "todavia", "entretanto", "assim",
        "consequentemente", "por conseguinte", "além disso",
        "por outro lado", "em primeiro lugar", "finalmente",
    ),
    emphasis_words=(
        "muito", "extremamente", "absolutamente", "completamente",
        "definitivamente", "certamente", "obviamente", "claramente",
    ),
    exclamations=("que bom", "que mau", "que bonito", "que feio", "que interessante"),
)

# Mozambican Portuguese follows the European written norm
PT_MZ = dataclasses.replace(PT_PT, dialect="pt-MZ")

LOCALES: dict[str, LocaleRules] = {rules.dialect: rules for rules in (PT_PT, PT_MZ)}

SUPPORTED_DIALECTS = frozenset(LOCALES)


def rules_for(dialect: str) -> LocaleRules:
    """Look up the rule table for a dialect.

    Raises:
        ConfigurationError: If the dialect has no rule table.
    """
    try:
        return LOCALES[dialect]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported dialect '{dialect}'. Use: {sorted(SUPPORTED_DIALECTS)}"
        ) from None
