#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Legal terminology - canonical French/Arabic legal terms for Algerian law
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from config.logging_config import get_logger
from core.models import Language, LegalDomain

logger = get_logger(__name__)


class TerminologyAdapter(ABC):
    """Legal dictionary collaborator used by validation and post-processing"""

    @abstractmethod
    def translate_term(self, term: str, source: Language, target: Language) -> Optional[str]:
        """Canonical target-language term, or None when unknown"""
        pass

    @abstractmethod
    def apply_terminology(self, text: str, domain: Optional[LegalDomain], language: Language) -> str:
        """Rewrite non-canonical term spellings in text"""
        pass

    @abstractmethod
    def known_terms(self, language: Language) -> List[str]:
        """Canonical terms in the given language"""
        pass

    @abstractmethod
    def validate_translation(self, source_text: str, translated: str,
                             source: Language, target: Language) -> Tuple[float, List[str]]:
        """
        Score how well source terms carry over into the translation.

        Returns:
            (score in [0, 1], one message per missing canonical term)
        """
        pass


@dataclass
class LegalTerm:
    """One dictionary entry"""
    french: str
    arabic: str
    domain: LegalDomain
    french_variants: List[str] = field(default_factory=list)
    arabic_variants: List[str] = field(default_factory=list)

    def canonical(self, language: Language) -> str:
        return self.arabic if language == Language.ARABIC else self.french

    def variants(self, language: Language) -> List[str]:
        return self.arabic_variants if language == Language.ARABIC else self.french_variants

    def to_dict(self) -> dict:
        data = asdict(self)
        data["domain"] = self.domain.value
        return data


def _term(fr: str, ar: str, domain: LegalDomain, fr_variants=None, ar_variants=None) -> LegalTerm:
    return LegalTerm(fr, ar, domain, list(fr_variants or []), list(ar_variants or []))


DEFAULT_TERMS: List[LegalTerm] = [
    # Civil law
    _term("contrat", "عقد", LegalDomain.CIVIL_LAW),
    _term("obligation", "التزام", LegalDomain.CIVIL_LAW, ar_variants=["إلتزام"]),
    _term("responsabilité civile", "المسؤولية المدنية", LegalDomain.CIVIL_LAW,
          fr_variants=["responsabilite civile"], ar_variants=["المسئولية المدنية"]),
    _term("dommages-intérêts", "التعويض", LegalDomain.CIVIL_LAW,
          fr_variants=["dommages et intérêts", "dommages-interets"]),
    _term("propriété", "الملكية", LegalDomain.CIVIL_LAW, fr_variants=["propriete"]),
    # Criminal law
    _term("crime", "جناية", LegalDomain.CRIMINAL_LAW),
    _term("délit", "جنحة", LegalDomain.CRIMINAL_LAW, fr_variants=["delit"]),
    _term("contravention", "مخالفة", LegalDomain.CRIMINAL_LAW),
    _term("peine", "عقوبة", LegalDomain.CRIMINAL_LAW),
    _term("Code pénal", "قانون العقوبات", LegalDomain.CRIMINAL_LAW, fr_variants=["code penal"]),
    # Commercial law
    _term("société", "شركة", LegalDomain.COMMERCIAL_LAW, fr_variants=["societe"]),
    _term("commerçant", "تاجر", LegalDomain.COMMERCIAL_LAW, fr_variants=["commercant"]),
    _term("faillite", "إفلاس", LegalDomain.COMMERCIAL_LAW, ar_variants=["افلاس"]),
    _term("registre de commerce", "السجل التجاري", LegalDomain.COMMERCIAL_LAW),
    # Administrative law
    _term("décision administrative", "قرار إداري", LegalDomain.ADMINISTRATIVE_LAW,
          fr_variants=["decision administrative"], ar_variants=["قرار اداري"]),
    _term("recours", "طعن", LegalDomain.ADMINISTRATIVE_LAW),
    _term("Conseil d'État", "مجلس الدولة", LegalDomain.ADMINISTRATIVE_LAW,
          fr_variants=["conseil d'etat", "Conseil d'Etat"]),
    # Family law
    _term("mariage", "زواج", LegalDomain.FAMILY_LAW),
    _term("divorce", "طلاق", LegalDomain.FAMILY_LAW),
    _term("pension alimentaire", "نفقة", LegalDomain.FAMILY_LAW),
    _term("succession", "ميراث", LegalDomain.FAMILY_LAW),
    # Procedure
    _term("jugement", "حكم", LegalDomain.PROCEDURAL_LAW),
    _term("appel", "استئناف", LegalDomain.PROCEDURAL_LAW, ar_variants=["إستئناف"]),
    _term("cassation", "نقض", LegalDomain.PROCEDURAL_LAW),
    _term("avocat", "محامي", LegalDomain.PROCEDURAL_LAW, ar_variants=["محامى"]),
    _term("tribunal", "محكمة", LegalDomain.PROCEDURAL_LAW),
    _term("juge", "قاضي", LegalDomain.PROCEDURAL_LAW, ar_variants=["قاضى"]),
]


class LegalTerminologyStore(TerminologyAdapter):
    """In-memory terminology dictionary, loadable from JSON"""

    def __init__(self, terms: Optional[List[LegalTerm]] = None, terminology_file: Optional[Path] = None):
        self.terms: List[LegalTerm] = list(DEFAULT_TERMS if terms is None else terms)
        self.regex_cache: Dict[Tuple[str, str], re.Pattern] = {}
        if terminology_file:
            path = Path(terminology_file)
            if path.exists():
                self.load(path)
            else:
                logger.warning(f"Terminology file not found: {path}")

    def load(self, path: Path):
        """Load terms from a JSON file and merge them"""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            loaded = [
                LegalTerm(
                    french=item["french"],
                    arabic=item["arabic"],
                    domain=LegalDomain(item.get("domain", LegalDomain.CIVIL_LAW.value)),
                    french_variants=item.get("french_variants", []),
                    arabic_variants=item.get("arabic_variants", []),
                )
                for item in data.get("terms", [])
            ]
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Cannot load terminology {path}: {e}")
            return
        for term in loaded:
            self.add_term(term)
        logger.info(f"Loaded {len(loaded)} legal terms from {Path(path).name}")

    def save(self, path: Path):
        """Save terms to a JSON file"""
        data = {
            "version": "1.0",
            "terms": [term.to_dict() for term in self.terms],
        }
        Path(path).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(self.terms)} legal terms to {path}")

    def add_term(self, term: LegalTerm):
        """Add or update a term (keyed by its French form)"""
        self.remove_term(term.french)
        self.terms.append(term)
        self.regex_cache.clear()

    def remove_term(self, french: str):
        self.terms = [t for t in self.terms if t.french.lower() != french.lower()]
        self.regex_cache.clear()

    def _regex(self, phrase: str, language: Language) -> re.Pattern:
        key = (phrase, language.value)
        if key not in self.regex_cache:
            if language == Language.FRENCH:
                pattern = r"(?<![\w])" + re.escape(phrase) + r"(?![\w])"
                self.regex_cache[key] = re.compile(pattern, re.IGNORECASE)
            else:
                # Arabic terms take attached prefixes (ال, و, ب...), match as substrings
                self.regex_cache[key] = re.compile(re.escape(phrase))
        return self.regex_cache[key]

    def translate_term(self, term: str, source: Language, target: Language) -> Optional[str]:
        needle = term.strip().lower()
        for entry in self.terms:
            forms = [entry.canonical(source)] + entry.variants(source)
            if needle in (form.lower() for form in forms):
                return entry.canonical(target)
        return None

    def apply_terminology(self, text: str, domain: Optional[LegalDomain], language: Language) -> str:
        for entry in self.terms:
            if domain is not None and entry.domain != domain:
                continue
            canonical = entry.canonical(language)
            for variant in entry.variants(language):
                text = self._regex(variant, language).sub(canonical, text)
        return text

    def known_terms(self, language: Language) -> List[str]:
        return [entry.canonical(language) for entry in self.terms]

    def find_terms(self, text: str, language: Language) -> List[str]:
        """Canonical terms of the given language present in text"""
        return [
            entry.canonical(language)
            for entry in self.terms
            if self._regex(entry.canonical(language), language).search(text)
        ]

    def validate_translation(self, source_text: str, translated: str,
                             source: Language, target: Language) -> Tuple[float, List[str]]:
        """Check that terms found in the source have their canonical translation"""
        score = 1.0
        warnings = []

        for entry in self.terms:
            if self._regex(entry.canonical(source), source).search(source_text):
                expected = entry.canonical(target)
                if not self._regex(expected, target).search(translated):
                    warnings.append(f"Missing term: {entry.canonical(source)} → {expected}")
                    score -= 0.1

        return max(0.0, round(score, 2)), warnings

    def get_term_count(self) -> int:
        return len(self.terms)
