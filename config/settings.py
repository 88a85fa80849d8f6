#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional
from pydantic_settings import BaseSettings

from .constants import DEFAULT_PURITY_WEIGHTS, FALLBACK_LOG_MAX_ENTRIES


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== Purity Policy ==========
    zero_tolerance_enabled: bool = True
    minimum_purity_score: float = 100.0
    minimum_confidence: float = 0.8
    terminology_accuracy_threshold: float = 0.95

    # Weights of the overall purity score (must sum to 1)
    purity_weight_script: float = DEFAULT_PURITY_WEIGHTS["script_purity"]
    purity_weight_terminology: float = DEFAULT_PURITY_WEIGHTS["terminology_consistency"]
    purity_weight_encoding: float = DEFAULT_PURITY_WEIGHTS["encoding_integrity"]
    purity_weight_coherence: float = DEFAULT_PURITY_WEIGHTS["contextual_coherence"]
    purity_weight_ui: float = DEFAULT_PURITY_WEIGHTS["ui_elements_removed"]

    # ========== Performance ==========
    max_retry_attempts: int = 3
    concurrent_request_limit: int = 10
    processing_timeout: float = 30.0  # seconds per engine call

    # ========== Translation Engine ==========
    primary_engine_url: Optional[str] = None
    secondary_engine_url: Optional[str] = None
    engine_api_key: str = ""

    # ========== Escalation ==========
    escalation_cooldown_seconds: float = 300.0
    notification_webhook_url: Optional[str] = None

    # ========== Fallback Logging ==========
    fallback_log_max_entries: int = FALLBACK_LOG_MAX_ENTRIES
    fallback_log_db: Optional[Path] = None  # sqlite file; in-memory when unset

    # ========== Terminology ==========
    terminology_file: Optional[Path] = None

    # ========== Cleaning Rules ==========
    rules_file: Optional[Path] = None  # persisted rule snapshot; data_dir/cleaning_rules.json when unset

    # ========== Directories ==========
    data_dir: Path = BASE_DIR / "data"
    logs_dir: Path = BASE_DIR / "logs"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def purity_weights(self) -> Dict[str, float]:
        """Weights keyed by purity sub-score name"""
        return {
            "script_purity": self.purity_weight_script,
            "terminology_consistency": self.purity_weight_terminology,
            "encoding_integrity": self.purity_weight_encoding,
            "contextual_coherence": self.purity_weight_coherence,
            "ui_elements_removed": self.purity_weight_ui,
        }

    def rules_path(self) -> Path:
        """Where the CLI persists imported cleaning rules"""
        return self.rules_file or self.data_dir / "cleaning_rules.json"

    def log_file(self) -> Path:
        return self.logs_dir / "pure_translation.log"

    def ensure_directories(self):
        """Create data and log directories"""
        for dir_path in [self.data_dir, self.logs_dir]:
            dir_path.mkdir(exist_ok=True, parents=True)


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings instance"""
    return Settings()
