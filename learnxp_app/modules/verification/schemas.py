from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...core.error_handlers import ConsistencyDrift


@dataclass
class HealthReport:
    """Integrity report for one user."""

    user_id: int
    health_score: int = 100
    drifts: List[ConsistencyDrift] = field(default_factory=list)
    advisories: List[str] = field(default_factory=list)
    checks: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    categories: List[Dict[str, Any]] = field(default_factory=list)
    subcategories: List[Dict[str, Any]] = field(default_factory=list)
    recent_sessions: List[Dict[str, Any]] = field(default_factory=list)
    recent_answers: List[Dict[str, Any]] = field(default_factory=list)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def critical_issues(self) -> List[str]:
        return [d.message for d in self.drifts if d.critical]

    @property
    def warnings(self) -> List[str]:
        return [d.message for d in self.drifts if not d.critical] + list(self.advisories)

    @property
    def is_healthy(self) -> bool:
        return not self.drifts

    def to_dict(self, include_details: bool = True) -> Dict[str, Any]:
        data = {
            'user_id': self.user_id,
            'health_score': self.health_score,
            'critical_issues': self.critical_issues,
            'warnings': self.warnings,
            'generated_at': self.generated_at.isoformat(),
        }
        if include_details:
            data.update({
                'drifts': [d.details for d in self.drifts],
                'checks': self.checks,
                'categories': self.categories,
                'subcategories': self.subcategories,
                'recent_sessions': self.recent_sessions,
                'recent_answers': self.recent_answers,
            })
        return data


@dataclass
class VerificationSummary:
    """Result of verifying every user, possibly cut short by the time budget."""

    reports: List[HealthReport] = field(default_factory=list)
    users_total: int = 0
    truncated: bool = False

    @property
    def health_score(self) -> int:
        return min((r.health_score for r in self.reports), default=100)

    def to_dict(self) -> Dict[str, Any]:
        unhealthy = [r for r in self.reports if not r.is_healthy or r.advisories]
        return {
            'scope': 'all',
            'health_score': self.health_score,
            'users_total': self.users_total,
            'users_checked': len(self.reports),
            'truncated': self.truncated,
            'critical_issue_count': sum(len(r.critical_issues) for r in self.reports),
            'warning_count': sum(len(r.warnings) for r in self.reports),
            'users': [r.to_dict(include_details=False) for r in unhealthy],
        }
