"""Tests for structurer.py."""

import itertools

import pytest

from escriba.config import StructureOptions
from escriba.errors import ConfigurationError
from escriba.structurer import (
    Sentence,
    TextStructurer,
    confidence_for,
    count_structure,
    looks_structured,
    split_sentences,
    structure_text,
)
from escriba.types import StructureStats

BODY_ONE = "Neste trabalho vamos analisar o impacto das alterações climáticas nas zonas costeiras do país"
BODY_TWO = "Os resultados mostram uma subida consistente do nível médio do mar nas últimas décadas"

ONLY_PUNCTUATION = StructureOptions(True, False, False)
ONLY_STRUCTURE = StructureOptions(False, True, False)
ONLY_FORMATTING = StructureOptions(False, False, True)


@pytest.fixture
def structurer():
    return TextStructurer("pt-PT")


class TestSplitSentences:
    """Tests for split_sentences function."""

    def test_splits_on_terminators(self):
        assert split_sentences("Olá. Tudo bem? Sim!") == [
            Sentence("Olá", "."), Sentence("Tudo bem", "?"), Sentence("Sim", "!"),
        ]

    def test_runs_collapse_to_first_delimiter(self):
        assert split_sentences("Verdade?!... Claro") == [
            Sentence("Verdade", "?"), Sentence("Claro", "."),
        ]

    def test_empty_sentences_dropped(self):
        assert split_sentences(" . . ") == []


class TestRestorePunctuation:
    """Tests for the punctuation pass."""

    def test_comma_before_contrastive_conjunction(self, structurer):
        assert structurer.restore_punctuation("isto e bom mas aquilo e mau") == (
            "isto e bom, mas aquilo e mau."
        )

    def test_comma_before_subordinating_conjunction(self, structurer):
        assert structurer.restore_punctuation("vou sair quando parar de chover") == (
            "vou sair, quando parar de chover."
        )

    def test_no_double_comma(self, structurer):
        assert structurer.restore_punctuation("isto e bom, mas aquilo e mau.") == (
            "isto e bom, mas aquilo e mau."
        )

    def test_conjunction_inside_word_untouched(self, structurer):
        assert structurer.restore_punctuation("as massas estavam boas") == "as massas estavam boas."

    def test_sentence_boundary_before_capital(self, structurer):
        assert structurer.restore_punctuation("chegamos cedo Depois fomos embora") == (
            "chegamos cedo. Depois fomos embora."
        )

    def test_exclamation_phrase_closing_text(self, structurer):
        assert structurer.restore_punctuation("que bom") == "que bom!"

    def test_exclamation_phrase_before_new_sentence(self, structurer):
        assert structurer.restore_punctuation("foi ótimo que bom Amanhã voltamos") == (
            "foi ótimo, que bom! Amanhã voltamos."
        )

    def test_exclamation_phrase_inside_sentence_untouched(self, structurer):
        assert structurer.restore_punctuation("que bom dia") == "que bom dia."

    def test_exclamation_not_doubled(self, structurer):
        assert structurer.restore_punctuation("que bom!") == "que bom!"

    def test_whitespace_collapsed(self, structurer):
        assert structurer.restore_punctuation("  olá \n\n  mundo  ") == "olá mundo."

    def test_existing_terminator_kept(self, structurer):
        assert structurer.restore_punctuation("tudo bem?") == "tudo bem?"

    def test_empty_text(self, structurer):
        assert structurer.restore_punctuation("   ") == ""


class TestDetectStructure:
    """Tests for the structure detection pass."""

    def test_heading_then_paragraph(self, structurer):
        stats = StructureStats()
        markup = structurer.detect_structure(f"Introdução. {BODY_ONE}. {BODY_TWO}.", stats)

        assert markup == f"# Introdução\n\n{BODY_ONE}. {BODY_TWO}."
        assert stats == StructureStats(paragraphs=1, headings=1, lists=0, quotes=0)

    def test_section_marker_heading(self, structurer):
        markup = structurer.detect_structure(f"Capítulo dois. {BODY_ONE}.")

        assert markup.startswith("# Capítulo dois\n\n")

    def test_long_section_name_is_level_two(self, structurer):
        sentence = "Conclusão geral sobre todos os aspetos discutidos ao longo desta apresentação"
        markup = structurer.detect_structure(f"{sentence}.")

        assert markup == f"## {sentence}"

    def test_short_capitalised_sentence_is_subheading(self, structurer):
        markup = structurer.detect_structure(f"Metodologia do estudo de 2024. {BODY_TWO}.")

        assert markup.split("\n\n")[0] == "## Metodologia do estudo de 2024"

    def test_ordinal_list_item(self, structurer):
        item = "Primeiro vamos preparar todos os ingredientes necessários para a receita"
        stats = StructureStats()
        markup = structurer.detect_structure(f"{item}.", stats)

        assert markup == f"- {item}."
        assert stats.lists == 1

    def test_numbered_and_lettered_list_items(self, structurer):
        text = (
            "1) lavar bem todos os legumes antes de os cortar em pedaços pequenos. "
            "b) colocar tudo numa panela grande com água e deixar ferver devagar."
        )
        stats = StructureStats()
        markup = structurer.detect_structure(text, stats)

        assert markup.split("\n\n") == [
            "- 1) lavar bem todos os legumes antes de os cortar em pedaços pequenos.",
            "- b) colocar tudo numa panela grande com água e deixar ferver devagar.",
        ]
        assert stats.lists == 2

    def test_reported_speech_quote(self, structurer):
        sentence = "O ministro disse que a economia vai crescer bastante no próximo ano"
        stats = StructureStats()
        markup = structurer.detect_structure(f"{sentence}.", stats)

        assert markup == f'"{sentence}."'
        assert stats.quotes == 1

    def test_transition_word_starts_new_paragraph(self, structurer):
        first = "A primeira parte do relatório descreve a metodologia usada no estudo."
        second = "Portanto os resultados devem ser lidos com alguma cautela pelos leitores."
        stats = StructureStats()
        markup = structurer.detect_structure(f"{first} {second}", stats)

        assert markup == f"{first}\n\n{second}"
        assert stats.paragraphs == 2

    def test_terminators_preserved(self, structurer):
        question = "Será que os resultados se mantêm quando alargamos a amostra a outras regiões?"
        markup = structurer.detect_structure(question)

        assert markup == question

    def test_empty_text(self, structurer):
        assert structurer.detect_structure("") == ""


class TestApplyFormatting:
    """Tests for the formatting pass."""

    def test_emphasis_word_bolded(self, structurer):
        assert structurer.apply_formatting("isto é muito importante") == "isto é **muito** importante"

    def test_transition_word_italicised(self, structurer):
        assert structurer.apply_formatting("Portanto vamos continuar") == "*Portanto* vamos continuar"

    def test_multi_word_transition(self, structurer):
        assert structurer.apply_formatting("por outro lado não") == "*por outro lado* não"

    def test_wraps_exactly_once(self, structurer):
        once = structurer.apply_formatting("é muito claro, portanto seguimos")
        twice = structurer.apply_formatting(once)

        assert once == "é **muito** claro, *portanto* seguimos"
        assert twice == once

    def test_word_fragments_untouched(self, structurer):
        assert structurer.apply_formatting("muitos assimilam") == "muitos assimilam"


class TestStructure:
    """Tests for the full structure() run."""

    def test_punctuation_only_adds_comma(self, structurer):
        document = structurer.structure("isto e bom mas aquilo e mau", ONLY_PUNCTUATION)

        assert document.markup_text == "isto e bom, mas aquilo e mau."

    def test_all_passes(self, structurer):
        document = structurer.structure(f"Introdução. {BODY_ONE}. É muito claro que {BODY_TWO.lower()}.")

        assert document.markup_text.startswith("# Introdução\n\n")
        assert "**muito**" in document.markup_text
        assert document.structure.headings == 1
        assert document.structure.paragraphs == 1
        assert document.confidence_score == 1.0

    def test_disabled_passes_leave_text_alone(self, structurer):
        document = structurer.structure("isto e muito bom mas aquilo", StructureOptions(False, False, False))

        assert document.markup_text == "isto e muito bom mas aquilo"
        assert document.confidence_score == pytest.approx(0.8)

    def test_empty_input(self, structurer):
        document = structurer.structure("   ")

        assert document.markup_text == ""
        assert document.structure == StructureStats()

    def test_already_structured_text_not_restructured(self, structurer):
        markup = f"# Introdução\n\n{BODY_ONE}."
        document = structurer.structure(markup)

        assert document.markup_text == markup
        assert document.structure.headings == 1
        assert document.structure.paragraphs == 1
        assert document.confidence_score == pytest.approx(0.85)

    def test_dialogue_dash_is_not_mistaken_for_markup(self, structurer):
        document = structurer.structure("- sim isto e bom mas aquilo e mau")

        assert document.markup_text == "- sim isto e bom, mas aquilo e mau."
        assert document.structure.lists == 0
        assert document.structure.paragraphs == 1
        assert document.confidence_score == 1.0

    def test_leading_quote_is_not_mistaken_for_markup(self, structurer):
        document = structurer.structure('"Olá" disse ele isto e bom mas aquilo e mau')

        assert ", mas aquilo e mau." in document.markup_text
        assert document.structure.quotes == 1

    def test_structuring_twice_is_stable(self, structurer):
        first = structurer.structure(f"Introdução. {BODY_ONE}. É muito claro.")
        second = structurer.structure(first.markup_text)

        assert second.markup_text == first.markup_text

    def test_structure_text_helper(self):
        document = structure_text("isto e bom mas aquilo e mau", ONLY_PUNCTUATION, dialect="pt-MZ")

        assert document.markup_text == "isto e bom, mas aquilo e mau."


class TestConfidence:
    """Tests for the heuristic quality indicator."""

    def test_values(self):
        assert confidence_for(StructureOptions()) == 1.0
        assert confidence_for(StructureOptions(False, False, False)) == 0.8
        assert confidence_for(ONLY_PUNCTUATION) == 0.9
        assert confidence_for(ONLY_STRUCTURE) == 0.85
        assert confidence_for(ONLY_FORMATTING) == 0.85

    def test_enabling_a_pass_never_lowers_confidence(self):
        for flags in itertools.product([False, True], repeat=3):
            base = confidence_for(StructureOptions(*flags))
            for i, enabled in enumerate(flags):
                if enabled:
                    continue
                more = list(flags)
                more[i] = True
                assert confidence_for(StructureOptions(*more)) >= base

    def test_always_in_unit_range(self):
        for flags in itertools.product([False, True], repeat=3):
            assert 0.0 <= confidence_for(StructureOptions(*flags)) <= 1.0


class TestHelpers:
    """Tests for markup detection helpers."""

    def test_looks_structured(self):
        assert looks_structured("# Título\n\ntexto")
        assert looks_structured("primeiro parágrafo.\n\nsegundo parágrafo.")
        assert not looks_structured("- item")
        assert not looks_structured('"Olá" disse ele')
        assert not looks_structured("#hashtag sem espaço")
        assert not looks_structured("texto simples sem marcação")

    def test_count_structure(self):
        markup = '# A\n\n## B\n\n- item.\n\n"citação."\n\ntexto. mais texto.'

        assert count_structure(markup) == StructureStats(paragraphs=1, headings=2, lists=1, quotes=1)

    def test_unknown_dialect_rejected(self):
        with pytest.raises(ConfigurationError):
            TextStructurer("pt-BR")

    def test_mozambican_dialect(self):
        structurer = TextStructurer("pt-MZ")

        assert structurer.dialect == "pt-MZ"
        assert structurer.restore_punctuation("isto e bom mas aquilo e mau") == (
            "isto e bom, mas aquilo e mau."
        )
