"""
Unit tests for core/terminology.py - LegalTerminologyStore
"""
import json

import pytest

from core.models import Language, LegalDomain
from core.terminology import DEFAULT_TERMS, LegalTerm, LegalTerminologyStore, TerminologyAdapter


class TestTranslateTerm:

    def test_french_to_arabic(self, terminology):
        assert terminology.translate_term("contrat", Language.FRENCH, Language.ARABIC) == "عقد"

    def test_case_and_whitespace_ignored(self, terminology):
        assert terminology.translate_term(" Contrat ", Language.FRENCH, Language.ARABIC) == "عقد"

    def test_variant_resolves_to_canonical(self, terminology):
        assert terminology.translate_term("delit", Language.FRENCH, Language.ARABIC) == "جنحة"
        assert terminology.translate_term("محامى", Language.ARABIC, Language.FRENCH) == "avocat"

    def test_unknown_term(self, terminology):
        assert terminology.translate_term("bonjour", Language.FRENCH, Language.ARABIC) is None


class TestApplyTerminology:

    def test_arabic_variant_rewritten(self, terminology):
        assert terminology.apply_terminology("يمثله محامى", None, Language.ARABIC) == "يمثله محامي"

    def test_french_variant_rewritten(self, terminology):
        text = terminology.apply_terminology("La responsabilite civile du vendeur", None, Language.FRENCH)
        assert text == "La responsabilité civile du vendeur"

    def test_domain_filter(self, terminology):
        # avocat belongs to procedural law
        text = terminology.apply_terminology("يمثله محامى", LegalDomain.CIVIL_LAW, Language.ARABIC)
        assert text == "يمثله محامى"


class TestLookup:

    def test_known_terms(self, terminology):
        assert "contrat" in terminology.known_terms(Language.FRENCH)
        assert "عقد" in terminology.known_terms(Language.ARABIC)

    def test_find_terms(self, terminology):
        found = terminology.find_terms("Le contrat est soumis au tribunal", Language.FRENCH)
        assert found == ["contrat", "tribunal"]

    def test_french_terms_match_whole_words(self, terminology):
        assert terminology.find_terms("Les contrats", Language.FRENCH) == []


class TestValidateTranslation:

    def test_all_terms_present(self, terminology):
        score, warnings = terminology.validate_translation(
            "عقد البيع", "Le contrat de vente", Language.ARABIC, Language.FRENCH
        )
        assert score == 1.0
        assert warnings == []

    def test_missing_term(self, terminology):
        score, warnings = terminology.validate_translation(
            "عقد البيع", "La vente", Language.ARABIC, Language.FRENCH
        )
        assert score == 0.9
        assert len(warnings) == 1
        assert "contrat" in warnings[0]


class TestPersistence:

    def test_save_and_load(self, tmp_path, terminology):
        terminology.add_term(LegalTerm("huissier", "محضر قضائي", LegalDomain.PROCEDURAL_LAW))
        path = tmp_path / "terms.json"
        terminology.save(path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data["terms"]) == len(DEFAULT_TERMS) + 1

        loaded = LegalTerminologyStore(terms=[], terminology_file=path)
        assert loaded.get_term_count() == len(DEFAULT_TERMS) + 1
        assert loaded.translate_term("huissier", Language.FRENCH, Language.ARABIC) == "محضر قضائي"

    def test_missing_file_keeps_defaults(self, tmp_path):
        store = LegalTerminologyStore(terminology_file=tmp_path / "absent.json")
        assert store.get_term_count() == len(DEFAULT_TERMS)

    def test_malformed_file_is_ignored(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        store = LegalTerminologyStore(terminology_file=path)
        assert store.get_term_count() == len(DEFAULT_TERMS)

    def test_add_term_replaces_by_french_key(self, terminology):
        terminology.add_term(LegalTerm("Contrat", "اتفاق", LegalDomain.CIVIL_LAW))
        assert terminology.get_term_count() == len(DEFAULT_TERMS)
        assert terminology.translate_term("contrat", Language.FRENCH, Language.ARABIC) == "اتفاق"


class TestAdapterInterface:

    def test_validate_translation_is_required(self):
        class LookupOnly(TerminologyAdapter):
            def translate_term(self, term, source, target):
                return None

            def apply_terminology(self, text, domain, language):
                return text

            def known_terms(self, language):
                return []

        with pytest.raises(TypeError):
            LookupOnly()

    def test_store_implements_adapter(self, terminology):
        assert isinstance(terminology, TerminologyAdapter)
