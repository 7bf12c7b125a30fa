"""Deterministic text structuring: punctuation, document structure, emphasis.

The passes are pure string transforms driven by the locale tables in
patterns.py. They run in a fixed order (punctuation, structure, formatting),
and each one can be switched off through StructureOptions.
"""

import logging
import re
from dataclasses import dataclass

from .config import StructureOptions
from .patterns import LOWERCASE, UPPERCASE, BlockKind, LocaleRules, rules_for, word_alternation
from .types import StructuredDocument, StructureStats

logger = logging.getLogger(__name__)

# Heuristic quality indicator: a fixed base plus a bonus per enabled pass.
BASE_CONFIDENCE = 0.8
PUNCTUATION_BONUS = 0.1
STRUCTURE_BONUS = 0.05
FORMATTING_BONUS = 0.05

_WHITESPACE = re.compile(r"\s+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]*")
_TERMINATORS = ".!?"

# Block separators and heading lines never occur in a stitched transcript,
# which is a single whitespace-joined line
_STRUCTURE_MARKERS = re.compile(r"\n[ \t]*\n|^#{1,2} \S", re.MULTILINE)


@dataclass(frozen=True)
class Sentence:
    """A sentence body and its collapsed terminal punctuation."""

    body: str
    terminator: str = "."

    @property
    def text(self) -> str:
        return self.body + self.terminator


def split_sentences(text: str) -> list[Sentence]:
    """Split text on runs of . ! ? keeping the first delimiter of each run.

    Empty sentences are dropped; a trailing fragment with no delimiter gets a
    period.
    """
    sentences = []
    for match in _SENTENCE.finditer(text):
        chunk = match.group(0)
        body = chunk.rstrip(_TERMINATORS).strip()
        if not body:
            continue
        run = chunk[len(chunk.rstrip(_TERMINATORS)):]
        sentences.append(Sentence(body=body, terminator=run[0] if run else "."))
    return sentences


def confidence_for(options: StructureOptions) -> float:
    """Heuristic quality indicator for a set of enabled passes, clamped to [0, 1].

    This is a UI hint only, not a statistical accuracy measure.
    """
    score = BASE_CONFIDENCE
    if options.enable_punctuation:
        score += PUNCTUATION_BONUS
    if options.enable_structure_detection:
        score += STRUCTURE_BONUS
    if options.enable_formatting:
        score += FORMATTING_BONUS
    return round(min(max(score, 0.0), 1.0), 4)


def looks_structured(text: str) -> bool:
    """True if text already carries block markup produced by this module.

    A leading dash or quote is not enough: speech recognisers emit both in
    ordinary dialogue.
    """
    return _STRUCTURE_MARKERS.search(text) is not None


def count_structure(markup: str) -> StructureStats:
    """Count blocks in structured markup (blocks are separated by blank lines)."""
    stats = StructureStats()
    for block in (b.strip() for b in markup.split("\n\n")):
        if not block:
            continue
        if block.startswith("#"):
            stats.headings += 1
        elif block.startswith("- "):
            stats.lists += 1
        elif block.startswith('"'):
            stats.quotes += 1
        else:
            stats.paragraphs += 1
    return stats


class TextStructurer:
    """Applies the structuring passes for one dialect."""

    def __init__(self, dialect: str = "pt-PT"):
        self.rules: LocaleRules = rules_for(dialect)
        conjunctions = word_alternation(self.rules.comma_conjunctions)
        # Conjunctions are matched lowercase only: capitalised ones open a sentence
        self._comma_before = re.compile(rf"(?<=[^\s,;:.!?])\s+({conjunctions})\s+")
        self._sentence_boundary = re.compile(rf"([{LOWERCASE}])\s+([{UPPERCASE}])")
        # Exclamatory phrases only where they close a sentence
        exclamations = word_alternation(self.rules.exclamations)
        self._exclamation = (
            re.compile(rf"(?<!\w)(?i:{exclamations})(?=$| [{UPPERCASE}])") if exclamations else None
        )
        self._emphasis = self._wrap_pattern(self.rules.emphasis_words)
        self._transition = self._wrap_pattern(self.rules.transition_words)

    @property
    def dialect(self) -> str:
        return self.rules.dialect

    @staticmethod
    def _wrap_pattern(words: tuple[str, ...]) -> re.Pattern:
        # Neighbouring "*" means the word is already wrapped
        return re.compile(rf"(?<![\w*])(?:{word_alternation(words)})(?![\w*])", re.IGNORECASE)

    def restore_punctuation(self, text: str) -> str:
        """Insert commas before conjunctions, exclamation marks after
        exclamatory phrases, periods at sentence boundaries, and a terminal
        period when the text has none."""
        text = _WHITESPACE.sub(" ", text).strip()
        if not text:
            return text
        text = self._comma_before.sub(r", \1 ", text)
        if self._exclamation is not None:
            text = self._exclamation.sub(r"\g<0>!", text)
        text = self._sentence_boundary.sub(r"\1. \2", text)
        if text[-1] not in _TERMINATORS:
            text += "."
        return text

    def detect_structure(self, text: str, stats: StructureStats | None = None) -> str:
        """Group sentences into headings, list items, quotes and paragraphs.

        Args:
            text: Plain text to structure.
            stats: Counters to update in place. A fresh one is used if None.

        Returns:
            Markup with one block per heading, list item, quote or paragraph,
            separated by blank lines.
        """
        stats = stats if stats is not None else StructureStats()
        sentences = split_sentences(text)
        blocks: list[str] = []
        paragraph: list[Sentence] = []

        def flush() -> None:
            if paragraph:
                blocks.append(" ".join(s.text for s in paragraph))
                paragraph.clear()
                stats.paragraphs += 1

        for i, sentence in enumerate(sentences):
            matcher = self.rules.classify(sentence.body)
            kind = matcher.kind if matcher else BlockKind.SENTENCE

            if kind is BlockKind.HEADING:
                flush()
                blocks.append(f"{'#' * matcher.level} {sentence.body}")
                stats.headings += 1
            elif kind is BlockKind.LIST_ITEM:
                flush()
                blocks.append(f"- {sentence.text}")
                stats.lists += 1
            elif kind is BlockKind.QUOTE:
                flush()
                blocks.append(f'"{sentence.text}"')
                stats.quotes += 1
            else:
                paragraph.append(sentence)
                following = sentences[i + 1] if i + 1 < len(sentences) else None
                # Topic change: the next sentence opens with a transition word
                if following and self.rules.starts_with_transition(following.body):
                    flush()

        flush()
        return "\n\n".join(blocks)

    def apply_formatting(self, text: str) -> str:
        """Bold emphasis words and italicise transition words.

        Occurrences that are already wrapped are left alone, so running the
        pass twice gives the same result as running it once.
        """
        text = self._emphasis.sub(lambda m: f"**{m.group(0)}**", text)
        return self._transition.sub(lambda m: f"*{m.group(0)}*", text)

    def structure(
        self, plain_text: str, options: StructureOptions | None = None
    ) -> StructuredDocument:
        """Run the enabled passes over plain_text.

        Text that already carries block markup skips the punctuation and
        structure passes, which would mangle it. Its blocks are counted instead
        and only the formatting pass counts towards the confidence score.
        """
        options = options or StructureOptions()
        text = plain_text.strip()
        if not text:
            return StructuredDocument(
                markup_text="", structure=StructureStats(), confidence_score=confidence_for(options)
            )

        if looks_structured(text):
            logger.warning("Input already carries structure markup; skipping restructuring")
            if options.enable_formatting:
                text = self.apply_formatting(text)
            stats = count_structure(text) if options.enable_structure_detection else StructureStats()
            ran = StructureOptions(False, False, options.enable_formatting)
            return StructuredDocument(markup_text=text, structure=stats, confidence_score=confidence_for(ran))

        confidence = confidence_for(options)
        stats = StructureStats()
        if options.enable_punctuation:
            text = self.restore_punctuation(text)
        if options.enable_structure_detection:
            text = self.detect_structure(text, stats)
        if options.enable_formatting:
            text = self.apply_formatting(text)

        logger.debug(
            "Structured %d chars: %d paragraph(s), %d heading(s), %d list item(s), %d quote(s)",
            len(text), stats.paragraphs, stats.headings, stats.lists, stats.quotes,
        )
        return StructuredDocument(markup_text=text, structure=stats, confidence_score=confidence)


def structure_text(
    plain_text: str, options: StructureOptions | None = None, dialect: str = "pt-PT"
) -> StructuredDocument:
    """Convenience wrapper building a TextStructurer for one call."""
    return TextStructurer(dialect).structure(plain_text, options)
