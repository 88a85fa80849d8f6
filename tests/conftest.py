"""
Pytest configuration and shared fixtures for the pure translation core tests.
"""
import sys
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, Mock

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import Settings
from core.cleaner import SpecializedPatternCleaner
from core.escalation import ErrorEscalationSystem
from core.fallback import FallbackContentGenerator
from core.fallback_logging import FallbackLoggingSystem
from core.health_monitor import HealthMonitor
from core.models import Language, TranslationRequest
from core.pipeline import PureTranslationPipeline
from core.purity import PurityPolicy, PurityValidator
from core.rules import PatternRuleRegistry
from core.terminology import LegalTerminologyStore
from engines.base import EngineResult, TranslationEngine


# ============================================================================
# Fixtures: Configuration & Settings
# ============================================================================

@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from .env, with short engine timeouts."""
    return Settings(
        _env_file=None,
        processing_timeout=0.5,
        concurrent_request_limit=2,
        escalation_cooldown_seconds=300,
        notification_webhook_url=None,
        fallback_log_db=None,
        terminology_file=None,
        data_dir=tmp_path / "data",
        logs_dir=tmp_path / "logs",
    )


# ============================================================================
# Fixtures: Sample Data
# ============================================================================

@pytest.fixture
def sample_texts():
    """Arabic and French legal samples, clean and contaminated."""
    return {
        "ui_concatenated": "محامي دي زاد متصل محامي Pro تحليل ملفات V2 AUTO-TRANSLATE",
        "ui_glued": "محاميProV2AUTO-TRANSLATE",
        "cyrillic": "قانون процедة الإجراءات",
        "clean_ar": "عقد البيع بين الطرفين",
        "clean_fr": "Le contrat de vente est conclu entre les parties.",
        "clean_ar_output": "أبرم عقد البيع بين الطرفين.",
    }


@pytest.fixture
def ar_to_fr_request(sample_texts):
    return TranslationRequest(
        text=sample_texts["clean_ar"],
        source_language=Language.ARABIC,
        target_language=Language.FRENCH,
    )


# ============================================================================
# Fixtures: Core Components
# ============================================================================

@pytest.fixture
def registry():
    """Fresh rule registry seeded with the default rules."""
    return PatternRuleRegistry()


@pytest.fixture
def cleaner(registry):
    return SpecializedPatternCleaner(registry)


@pytest.fixture
def terminology():
    return LegalTerminologyStore()


@pytest.fixture
def validator(terminology):
    return PurityValidator(PurityPolicy(), terminology)


@pytest.fixture
def monitor():
    """Health monitor with fixed resource readings."""
    return HealthMonitor(sample_resources=False)


@pytest.fixture
def escalation():
    return ErrorEscalationSystem(cooldown_seconds=300)


@pytest.fixture
def fallback_logging():
    return FallbackLoggingSystem()


# ============================================================================
# Fixtures: Engines (Mocked)
# ============================================================================

@pytest.fixture
def stub_engine(sample_texts):
    """Engine whose primary tier returns a pure French translation."""
    engine = Mock(spec=TranslationEngine)
    engine.translate_primary = AsyncMock(
        return_value=EngineResult(result=sample_texts["clean_fr"], confidence=0.95)
    )
    engine.translate_secondary = AsyncMock(
        return_value=EngineResult(result=sample_texts["clean_fr"], confidence=0.9)
    )
    engine.detect_content_intent = AsyncMock(side_effect=FallbackContentGenerator().detect_intent)
    return engine


@pytest.fixture
def failing_engine():
    """Engine whose translation methods always raise."""
    engine = Mock(spec=TranslationEngine)
    engine.translate_primary = AsyncMock(side_effect=ConnectionError("primary down"))
    engine.translate_secondary = AsyncMock(side_effect=ConnectionError("secondary down"))
    engine.detect_content_intent = AsyncMock(side_effect=ConnectionError("intent down"))
    return engine


# ============================================================================
# Fixtures: Pipeline
# ============================================================================

@pytest.fixture
def make_pipeline(test_settings, registry, terminology, monitor):
    """Factory building a pipeline around a given engine."""
    def _make(engine, **kwargs):
        kwargs.setdefault("escalation", ErrorEscalationSystem(cooldown_seconds=300))
        kwargs.setdefault("fallback_logging", FallbackLoggingSystem())
        return PureTranslationPipeline(
            engine=engine,
            registry=registry,
            terminology=terminology,
            monitor=monitor,
            settings=test_settings,
            **kwargs,
        )
    return _make


@pytest.fixture
def pipeline(make_pipeline, stub_engine):
    return make_pipeline(stub_engine)


# ============================================================================
# Session-level Setup/Teardown
# ============================================================================

def pytest_configure(config):
    """Register the markers added at collection time."""
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: pipeline scenarios across components")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        # Auto-add 'unit' marker to test files in tests/unit/
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        # Auto-add 'integration' marker to test files in tests/integration/
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
