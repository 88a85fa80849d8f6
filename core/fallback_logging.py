#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FallbackLoggingSystem - append-only record of fallback activations

Every request that reached the generated-fallback or emergency tier is
written as a FallbackLogEntry with user impact, escalation level and
improvement suggestions. Entries feed analytics and JSON/CSV export.
"""

import csv
import io
import json
import sqlite3
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import Counter, OrderedDict
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config.constants import (
    FALLBACK_LOG_MAX_ENTRIES,
    FREQUENT_ERROR_THRESHOLD,
    DOMINANT_ERROR_SHARE,
    TREND_CHANGE_THRESHOLD,
)
from config.logging_config import get_logger
from core.models import (
    EscalationLevel,
    FallbackLogEntry,
    ImpactLevel,
    ImprovementSuggestion,
    PureTranslationResult,
    RecoveryAttempt,
    Severity,
    SystemStateSnapshot,
    TranslationMethod,
    TranslationPriority,
    TranslationRequest,
    UserImpact,
)

logger = get_logger(__name__)

DAY_SECONDS = 24 * 3600


# ============================================================================
# Sinks
# ============================================================================

class FallbackLogSink(ABC):
    """Storage for fallback log entries"""

    @abstractmethod
    def append(self, entry: FallbackLogEntry):
        pass

    @abstractmethod
    def entries(self) -> List[FallbackLogEntry]:
        """All entries, oldest first"""
        pass

    @abstractmethod
    def remove_older_than(self, timestamp: float) -> int:
        """Delete entries older than timestamp; return how many were removed"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class InMemoryLogSink(FallbackLogSink):
    """Bounded in-process store; the oldest entries are evicted first"""

    def __init__(self, max_entries: int = FALLBACK_LOG_MAX_ENTRIES):
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, FallbackLogEntry]" = OrderedDict()

    def append(self, entry: FallbackLogEntry):
        with self._lock:
            self._entries[entry.id] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def entries(self) -> List[FallbackLogEntry]:
        with self._lock:
            return list(self._entries.values())

    def remove_older_than(self, timestamp: float) -> int:
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.timestamp < timestamp]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)


class SQLiteLogSink(FallbackLogSink):
    """SQLite store with one JSON payload row per entry"""

    def __init__(self, db_path: Path, max_entries: int = FALLBACK_LOG_MAX_ENTRIES):
        self.db_path = Path(db_path)
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self.conn = None
        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS fallback_logs (
                id TEXT PRIMARY KEY,
                timestamp REAL NOT NULL,
                error_code TEXT NOT NULL,
                escalation_level TEXT NOT NULL,
                payload TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_fallback_timestamp ON fallback_logs(timestamp)
        """)
        self.conn.commit()

    def append(self, entry: FallbackLogEntry):
        payload = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                INSERT OR REPLACE INTO fallback_logs (id, timestamp, error_code, escalation_level, payload)
                VALUES (?, ?, ?, ?, ?)
            """, (entry.id, entry.timestamp, entry.error_code, entry.escalation_level.value, payload))
            cursor.execute("""
                DELETE FROM fallback_logs WHERE id IN (
                    SELECT id FROM fallback_logs ORDER BY timestamp DESC LIMIT -1 OFFSET ?
                )
            """, (self.max_entries,))
            self.conn.commit()

    def entries(self) -> List[FallbackLogEntry]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT payload FROM fallback_logs ORDER BY timestamp ASC")
            rows = cursor.fetchall()
        return [FallbackLogEntry.from_dict(json.loads(row["payload"])) for row in rows]

    def remove_older_than(self, timestamp: float) -> int:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM fallback_logs WHERE timestamp < ?", (timestamp,))
            deleted = cursor.rowcount
            self.conn.commit()
        return deleted

    def count(self) -> int:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM fallback_logs")
            return cursor.fetchone()[0]

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()


# ============================================================================
# Logging system
# ============================================================================

IMPACT_ORDER = [ImpactLevel.MINIMAL, ImpactLevel.MODERATE, ImpactLevel.SIGNIFICANT, ImpactLevel.SEVERE]

SEVERITY_IMPACT = {
    Severity.LOW: (ImpactLevel.MINIMAL, "low"),
    Severity.MEDIUM: (ImpactLevel.MODERATE, "medium"),
    Severity.HIGH: (ImpactLevel.SIGNIFICANT, "high"),
    Severity.CRITICAL: (ImpactLevel.SEVERE, "critical"),
}

ESCALATION_LOG_LEVEL = {
    EscalationLevel.CRITICAL_INCIDENT: "critical",
    EscalationLevel.ADMIN_ALERT: "error",
    EscalationLevel.TEAM_NOTIFICATION: "warning",
    EscalationLevel.AUTOMATIC: "info",
    EscalationLevel.NONE: "info",
}

CSV_FIELDS = [
    "id", "timestamp", "request_id", "error_code", "error_severity", "fallback_method",
    "emergency_content_used", "recovery_attempts", "user_impact", "escalation_level",
    "improvement_suggestions", "purity_score", "confidence", "processing_time",
]


def _raise_impact(level: ImpactLevel) -> ImpactLevel:
    return IMPACT_ORDER[min(IMPACT_ORDER.index(level) + 1, len(IMPACT_ORDER) - 1)]


class FallbackLoggingSystem:
    """Records fallback activations and derives analytics from them"""

    def __init__(self, sink: Optional[FallbackLogSink] = None,
                 clock: Callable[[], float] = time.time):
        self.sink = sink or InMemoryLogSink()
        self.clock = clock

    @classmethod
    def from_settings(cls, settings) -> "FallbackLoggingSystem":
        if settings.fallback_log_db:
            sink = SQLiteLogSink(settings.fallback_log_db, settings.fallback_log_max_entries)
        else:
            sink = InMemoryLogSink(settings.fallback_log_max_entries)
        return cls(sink=sink)

    def log_fallback_activation(self, request: TranslationRequest, error: Exception,
                                recovery_attempts: List[RecoveryAttempt],
                                result: PureTranslationResult,
                                system_state: SystemStateSnapshot) -> str:
        """
        Write one fallback activation.

        Args:
            request: The original request
            error: Terminal failure that forced the fallback tier
            recovery_attempts: Attempts made for this request, in order
            result: Result returned to the caller
            system_state: Snapshot captured at fallback time

        Returns:
            Log entry id
        """
        code = getattr(error, "code", type(error).__name__)
        severity = getattr(error, "severity", Severity.MEDIUM)
        if not isinstance(severity, Severity):
            severity = Severity.MEDIUM

        user_impact = self._assess_user_impact(request, severity, recovery_attempts, result)
        escalation_level = self._escalation_level(severity, user_impact.level, recovery_attempts)

        entry = FallbackLogEntry(
            id=uuid.uuid4().hex[:12],
            timestamp=self.clock(),
            request=request.to_dict(),
            error_code=code,
            error_message=getattr(error, "message", None) or str(error),
            error_severity=severity,
            fallback_method=result.method,
            emergency_content_used=result.method == TranslationMethod.EMERGENCY,
            recovery_attempts=list(recovery_attempts),
            result={
                "translated_text": result.translated_text,
                "method": result.method.value,
                "purity_score": result.purity_score,
                "confidence": result.confidence,
            },
            system_state=system_state,
            user_impact=user_impact,
            escalation_level=escalation_level,
            improvement_suggestions=self._improvement_suggestions(code, recovery_attempts, system_state),
            processing_time=result.processing_time,
        )
        self.sink.append(entry)

        log = getattr(logger, ESCALATION_LOG_LEVEL[escalation_level])
        log(
            f"Fallback activated [{entry.id}] request={request.request_id} error={code} "
            f"method={result.method.value} impact={user_impact.level.value} "
            f"escalation={escalation_level.value}"
        )
        return entry.id

    # ------------------------------------------------------------------
    # Assessment
    # ------------------------------------------------------------------

    @staticmethod
    def _assess_user_impact(request: TranslationRequest, severity: Severity,
                            attempts: List[RecoveryAttempt], result: PureTranslationResult) -> UserImpact:
        level, urgency = SEVERITY_IMPACT[severity]
        if request.priority == TranslationPriority.URGENT:
            level = _raise_impact(level)
            urgency = "critical"
        elif request.priority == TranslationPriority.HIGH:
            level = _raise_impact(level)
            if urgency in ("low", "medium"):
                urgency = "high"
        if len(attempts) >= 3:
            level = _raise_impact(level)

        return UserImpact(
            level=level,
            urgency=urgency,
            user_type="registered" if request.user_id else "anonymous",
            expected_quality_loss=round(max(0.0, 1.0 - result.confidence), 2),
        )

    @staticmethod
    def _escalation_level(severity: Severity, impact: ImpactLevel,
                          attempts: List[RecoveryAttempt]) -> EscalationLevel:
        if severity == Severity.CRITICAL or impact == ImpactLevel.SEVERE:
            return EscalationLevel.CRITICAL_INCIDENT
        if severity == Severity.HIGH or len(attempts) > 3:
            return EscalationLevel.ADMIN_ALERT
        if severity == Severity.MEDIUM:
            return EscalationLevel.TEAM_NOTIFICATION
        return EscalationLevel.AUTOMATIC

    @staticmethod
    def _improvement_suggestions(code: str, attempts: List[RecoveryAttempt],
                                 state: SystemStateSnapshot) -> List[ImprovementSuggestion]:
        suggestions = []
        if state.system_load > 0.8:
            suggestions.append(ImprovementSuggestion(
                category="infrastructure",
                description="System load is high during fallbacks, consider scaling engine capacity",
                priority=Severity.HIGH,
                estimated_impact=0.35,
            ))
        if len(attempts) > 2:
            suggestions.append(ImprovementSuggestion(
                category="recovery",
                description="Several recovery tiers were needed, review engine routing",
                priority=Severity.MEDIUM,
                estimated_impact=0.5,
            ))
        if "validation" in code or "purity" in code or "cleaning" in code:
            suggestions.append(ImprovementSuggestion(
                category="cleaning",
                description="Purity failures suggest a missing cleaning rule for this contamination",
                priority=Severity.HIGH,
                estimated_impact=0.6,
            ))
        return suggestions

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _entries(self, start: Optional[float] = None, end: Optional[float] = None) -> List[FallbackLogEntry]:
        entries = self.sink.entries()
        if start is not None:
            entries = [e for e in entries if e.timestamp >= start]
        if end is not None:
            entries = [e for e in entries if e.timestamp <= end]
        return entries

    def get_fallback_logs(self, error_code: Optional[str] = None,
                          escalation_level: Optional[EscalationLevel] = None,
                          limit: Optional[int] = None) -> List[FallbackLogEntry]:
        """Entries newest first, optionally filtered"""
        entries = list(reversed(self.sink.entries()))
        if error_code is not None:
            entries = [e for e in entries if e.error_code == error_code]
        if escalation_level is not None:
            entries = [e for e in entries if e.escalation_level == EscalationLevel(escalation_level)]
        return entries[:limit] if limit else entries

    def get_critical_incidents(self) -> List[FallbackLogEntry]:
        return self.get_fallback_logs(escalation_level=EscalationLevel.CRITICAL_INCIDENT)

    def clear_old_logs(self, older_than_days: float = 30) -> int:
        """Remove entries older than the given age in days"""
        deleted = self.sink.remove_older_than(self.clock() - older_than_days * DAY_SECONDS)
        if deleted:
            logger.info(f"Cleared {deleted} fallback log entries older than {older_than_days} days")
        return deleted

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def generate_fallback_analytics(self, start: Optional[float] = None,
                                    end: Optional[float] = None) -> Dict[str, Any]:
        """
        Aggregate fallback entries in [start, end] (epoch seconds).

        Returns:
            Totals by method and error type, average recovery time, success
            rate, user impact distribution, improvement opportunities and trend
        """
        entries = self._entries(start, end)
        total = len(entries)

        by_error = Counter(e.error_code for e in entries)
        successful = sum(
            1 for e in entries
            if not e.emergency_content_used and e.result.get("purity_score", 0) >= 100.0
        )

        return {
            "total_fallbacks": total,
            "by_method": dict(Counter(e.fallback_method.value for e in entries)),
            "by_error_type": dict(by_error),
            "average_recovery_time": round(sum(e.processing_time for e in entries) / total, 4) if total else 0.0,
            "success_rate": round(successful / total * 100, 2) if total else 100.0,
            "user_impact_distribution": dict(Counter(e.user_impact.level.value for e in entries)),
            "improvement_opportunities": self._opportunities(by_error, total),
            "trend": self._trend(entries),
        }

    @staticmethod
    def _opportunities(by_error: Counter, total: int) -> List[Dict[str, Any]]:
        opportunities = []
        for code, count in by_error.items():
            share = count / total if total else 0.0
            if count > FREQUENT_ERROR_THRESHOLD or (count >= 3 and share > DOMINANT_ERROR_SHARE):
                opportunities.append({
                    "error_code": code,
                    "frequency": count,
                    "share": round(share, 3),
                    "impact": count * 10,
                    "recommendation": f"Add a dedicated cleaning rule for recurring {code} failures",
                })
        return sorted(opportunities, key=lambda o: o["impact"], reverse=True)

    def _trend(self, entries: List[FallbackLogEntry]) -> Dict[str, Any]:
        now = self.clock()
        recent = sum(1 for e in entries if e.timestamp >= now - DAY_SECONDS)
        previous = sum(1 for e in entries if now - 2 * DAY_SECONDS <= e.timestamp < now - DAY_SECONDS)

        trend = "stable"
        change_rate = 0.0
        if previous > 0:
            change_rate = (recent - previous) / previous * 100
            if change_rate > TREND_CHANGE_THRESHOLD:
                trend = "worsening"
            elif change_rate < -TREND_CHANGE_THRESHOLD:
                trend = "improving"

        return {
            "period": "day",
            "trend": trend,
            "change_rate": round(change_rate, 2),
            "last_24h": recent,
            "previous_24h": previous,
        }

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_fallback_logs(self, format: str = "json", output_path: Optional[Path] = None,
                             start: Optional[float] = None, end: Optional[float] = None) -> str:
        """
        Export entries as JSON or CSV.

        Args:
            format: 'json' or 'csv'
            output_path: Also write the export to this file when given

        Raises:
            ValueError: Unknown format
        """
        entries = self._entries(start, end)

        if format == "json":
            content = json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2)
        elif format == "csv":
            buffer = io.StringIO()
            writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS)
            writer.writeheader()
            for e in entries:
                writer.writerow({
                    "id": e.id,
                    "timestamp": e.timestamp,
                    "request_id": e.request.get("request_id"),
                    "error_code": e.error_code,
                    "error_severity": e.error_severity.value,
                    "fallback_method": e.fallback_method.value,
                    "emergency_content_used": e.emergency_content_used,
                    "recovery_attempts": len(e.recovery_attempts),
                    "user_impact": e.user_impact.level.value,
                    "escalation_level": e.escalation_level.value,
                    "improvement_suggestions": len(e.improvement_suggestions),
                    "purity_score": e.result.get("purity_score"),
                    "confidence": e.result.get("confidence"),
                    "processing_time": e.processing_time,
                })
            content = buffer.getvalue()
        else:
            raise ValueError(f"Unsupported export format: {format}")

        if output_path:
            Path(output_path).write_text(content, encoding="utf-8")
            logger.info(f"Exported {len(entries)} fallback log entries to {output_path}")
        return content
